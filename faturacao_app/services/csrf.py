# faturacao_app/services/csrf.py
# -*- coding: utf-8 -*-
"""Proteção CSRF por double-submit cookie.

O cliente obtém o token em ``GET /auth/csrf`` (cookie httpOnly + header
``X-CSRF-Token``) e reenvia-o no header ``x-csrf-token`` em cada mutação.
"""
from __future__ import annotations
import hmac
import secrets

from flask import current_app

CSRF_HEADER = "X-CSRF-Token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def generate_csrf_token() -> str:
    return secrets.token_hex(16)

def verify_csrf_token(sent: str | None, stored: str | None) -> bool:
    if not sent or not stored:
        return False
    try:
        a = sent.encode("utf-8")
        b = stored.encode("utf-8")
        if len(a) != len(b):
            return False
        return hmac.compare_digest(a, b)
    except Exception:
        return False

def requires_csrf(method: str) -> bool:
    return (method or "").upper() not in SAFE_METHODS

def _is_production() -> bool:
    return current_app.config.get("FLASK_ENV") == "production"

def issue_csrf_token(response, existing: str | None = None) -> str:
    """Reaproveita o token do cookie (se houver) e grava cookie + header."""
    token = existing or generate_csrf_token()
    response.set_cookie(
        current_app.config.get("CSRF_COOKIE_NAME", "csrf_token"),
        token,
        max_age=int(current_app.config.get("CSRF_MAX_AGE", 3600)),
        path="/",
        httponly=True,
        samesite="Strict",
        secure=_is_production(),
    )
    response.headers[CSRF_HEADER] = token
    return token
