# faturacao_app/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import os

from flask import Flask, request
from config import Config, TestingConfig, StagingConfig, ProductionConfig
from .extensions import scheduler, init_extensions, register_cli, schedule_retry_job
from .services.audit import init_audit
from .services.auth import init_auth
from .services.rate_limit import init_rate_limiters
from .blueprints.auth import bp as auth_bp
from .blueprints.payments import bp as payments_bp
from .blueprints.documents import bp as documents_bp
from .blueprints.emissores import bp as emissores_bp
from .blueprints.destinatarios import bp as destinatarios_bp

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    pkg_logger = logging.getLogger("faturacao_app")
    pkg_logger.setLevel(level)
    if not pkg_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        pkg_logger.addHandler(handler)
    app.logger.setLevel(level)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

def allowed_methods(app: Flask) -> str:
    """Métodos aceites pela URL do pedido (todas as regras que casam com o path)."""
    adapter = app.url_map.bind_to_environ(request.environ)
    methods = {m for m in adapter.allowed_methods() if m != "HEAD"}
    methods.add("OPTIONS")
    return ", ".join(sorted(methods))

def register_cors(app: Flask) -> None:
    @app.before_request
    def _preflight():
        if request.method == "OPTIONS":
            return app.make_response(("", 204))

    @app.after_request
    def _cors_headers(resp):
        resp.headers["Access-Control-Allow-Origin"] = app.config.get("ALLOWED_ORIGIN", "http://localhost:3000")
        resp.headers["Access-Control-Allow-Methods"] = allowed_methods(app)
        resp.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization, X-CSRF-Token"
        resp.headers["Access-Control-Allow-Credentials"] = "true"
        resp.headers["Access-Control-Expose-Headers"] = "X-CSRF-Token"
        return resp

def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    app_env = os.getenv("APP_ENV", "").lower()

    if config_object is not None:
        app.config.from_object(config_object)
    elif app_env == "testing":
        app.config.from_object(TestingConfig)
    elif app_env == "staging":
        app.config.from_object(StagingConfig)
    elif app_env == "production":
        app.config.from_object(ProductionConfig)
    else:
        app.config.from_object(Config)

    # URI explícita no ambiente vence a da classe (testes usam um SQLite temporário)
    if os.getenv("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = os.environ["SQLALCHEMY_DATABASE_URI"]

    configure_logging(app)

    # Extensões (DB/Bcrypt/Migrate/Scheduler)
    init_extensions(app)

    # Componentes partilhados pela app — ficam em app.extensions
    init_rate_limiters(app)   # app.extensions["rate_limiters"]
    init_auth(app)            # app.extensions["auth"]
    init_audit(app)           # app.extensions["audit"]

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(emissores_bp)
    app.register_blueprint(destinatarios_bp)
    register_cors(app)
    # CLI (ex.: flask init-db, flask retry-payments)
    register_cli(app)

    # Scheduler do reprocessamento (desligado por omissão)
    if not app.config.get("TESTING") and os.getenv("DISABLE_SCHEDULER") != "1":
        if schedule_retry_job(app) and not scheduler.running:
            scheduler.start()

    return app
