# faturacao_app/decorators.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import time
from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import ApiError, CsrfInvalid, RateLimited, Unauthorized, error_response
from .services.audit import get_audit
from .services.auth import get_auth_resolver
from .services.csrf import requires_csrf, verify_csrf_token
from .services.rate_limit import get_rate_limiters


def client_identifier() -> str:
    fwd = request.headers.get("X-Forwarded-For")
    if not fwd:
        return "anonymous"
    return fwd.split(",")[0].strip() or "anonymous"


def _to_response(result):
    if isinstance(result, (dict, list)):
        return jsonify(result)
    return current_app.make_response(result)


def api_guard(auth: bool = False, rate: dict | None = None, csrf: bool = False, audit_label: str | None = None):
    """Envolve uma view com rate limit -> auth -> CSRF -> handler -> auditoria.

    ``rate`` = ``{"limit": 10, "interval_ms": 60000}``. Com ``auth=True`` a view
    recebe ``identity`` como keyword. A primeira verificação que falhar
    responde e nenhuma etapa seguinte corre.
    """
    config = (bool(auth), tuple(sorted((rate or {}).items())), bool(csrf), audit_label)

    def decorator(view_func):
        if getattr(view_func, "__api_guard__", None) == config:
            return view_func

        @wraps(view_func)
        def wrapper(*args, **kwargs):
            start = time.monotonic()
            status = 500
            audit = get_audit()
            try:
                # 1) rate limit
                if rate:
                    interval = int(rate.get("interval_ms") or current_app.config.get("RATE_LIMIT_INTERVAL_MS", 60_000))
                    limiter = get_rate_limiters().for_interval(interval)
                    if limiter.check(int(rate["limit"]), client_identifier()):
                        resp, status = error_response(RateLimited())
                        return resp, status

                # 2) autenticação
                identity = None
                if auth:
                    identity = get_auth_resolver().resolve()
                    if not identity:
                        resp, status = error_response(Unauthorized())
                        return resp, status
                    g.identity = identity
                    kwargs["identity"] = identity

                # 3) CSRF (só métodos que alteram estado)
                if csrf and requires_csrf(request.method):
                    sent = request.headers.get("X-CSRF-Token")
                    stored = request.cookies.get(current_app.config.get("CSRF_COOKIE_NAME", "csrf_token"))
                    if not verify_csrf_token(sent, stored):
                        audit.log_security_event(
                            "csrf_validation_failed", "medium",
                            path=request.path, method=request.method,
                            has_header=bool(sent), has_cookie=bool(stored),
                        )
                        resp, status = error_response(CsrfInvalid())
                        return resp, status

                # 4) handler
                try:
                    resp = _to_response(view_func(*args, **kwargs))
                except ApiError as e:
                    resp, status = error_response(e)
                    return resp, status
                status = resp.status_code
                return resp
            except Exception as e:
                current_app.logger.exception("Erro não tratado em %s", audit_label or request.path)
                audit.log_error(e, audit_label or "api_guard_error", path=request.path)
                details = None if current_app.config.get("FLASK_ENV") == "production" else str(e)
                resp, status = error_response(ApiError("Erro interno", details=details))
                return resp, status
            finally:
                # 5) auditoria (sempre)
                elapsed = int((time.monotonic() - start) * 1000)
                audit.log_api_call(request.path, request.method, elapsed, status < 400)

        wrapper.__api_guard__ = config
        return wrapper
    return decorator
