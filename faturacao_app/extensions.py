# faturacao_app/extensions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import text
import click



db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()
scheduler = BackgroundScheduler(daemon=True)

def init_extensions(app):
    # DB/Bcrypt/Migrate
    db.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)

def register_cli(app):
    @app.cli.command("init-db")
    def init_db_cmd():
        """Cria as tabelas iniciais (DEV/MVP). Para produção: use flask db upgrade."""
        with app.app_context():
            # sanity check
            db.session.execute(text("SELECT 1"))
            db.create_all()
            print("Tabelas criadas.")

    @app.cli.command("retry-payments")
    @click.option("--max-users", default=50, show_default=True, help="Máximo de utilizadores por execução.")
    def retry_payments_cmd(max_users):
        """Reprocessa pagamentos pagos que ainda aguardam documento."""
        from .services.retry import build_retry_scanner
        with app.app_context():
            results = build_retry_scanner().run_all(max_users=max_users)
            associated = sum(1 for r in results if r["outcome"] == "associated")
            print(f"Processados: {len(results)} | associados: {associated}")

def schedule_retry_job(app):
    """Agenda o scanner de reprocessamento (RETRY_SCHEDULER_MINUTES > 0)."""
    minutes = int(app.config.get("RETRY_SCHEDULER_MINUTES") or 0)
    if minutes <= 0:
        return None

    def _job():
        from .services.retry import build_retry_scanner
        with app.app_context():
            build_retry_scanner().run_all()

    return scheduler.add_job(_job, "interval", minutes=minutes, id="retry_payments", replace_existing=True)
