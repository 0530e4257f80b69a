# faturacao_app/blueprints/auth.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from faturacao_app.decorators import api_guard
from faturacao_app.errors import EmailInUse, InvalidCredentials, ValidationError, success_response
from faturacao_app.extensions import db
from faturacao_app.models import User
from faturacao_app.services.audit import get_audit
from faturacao_app.services.auth import login_user, logout_user
from faturacao_app.services.csrf import generate_csrf_token, issue_csrf_token

bp = Blueprint("auth", __name__, url_prefix="/auth")


@bp.route("/csrf", methods=["GET"])
@api_guard(rate={"limit": 30})
def csrf_token():
    existing = request.cookies.get(current_app.config.get("CSRF_COOKIE_NAME", "csrf_token"))
    token = existing or generate_csrf_token()
    resp = jsonify({"csrfToken": token})
    issue_csrf_token(resp, token)
    return resp

@bp.route("/login", methods=["POST"])
@api_guard(rate={"limit": 10})
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    pwd = data.get("password") or ""

    u = User.query.filter_by(email=email).first()
    if not u or not u.active or not u.check_password(pwd):
        get_audit().log_security_event("login_failed", "low", email=email)
        raise InvalidCredentials()

    login_user(u)
    get_audit().log("user_login", f"Login: {u.email}", user_id=u.id)
    return success_response(u.identity(), "Login efetuado.")

@bp.route("/register", methods=["POST"])
@api_guard(rate={"limit": 5})
def register():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "Usuário").strip()
    email = (data.get("email") or "").strip().lower()
    pwd = data.get("password") or ""

    if not email or not pwd:
        raise ValidationError("Informe e-mail e senha.")
    if User.query.filter_by(email=email).first():
        raise EmailInUse()

    u = User(name=name, email=email, company=data.get("company"))
    u.set_password(pwd)
    db.session.add(u)
    db.session.commit()

    login_user(u)
    return success_response(u.identity(), "Conta criada com sucesso.", status=201)

@bp.route("/logout", methods=["POST"])
@api_guard(csrf=True)
def logout():
    logout_user()
    return success_response(None, "Você saiu da sessão.")

@bp.route("/user", methods=["GET"])
@api_guard(auth=True)
def current(identity):
    return success_response(identity)
