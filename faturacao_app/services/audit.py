# faturacao_app/services/audit.py
# -*- coding: utf-8 -*-
"""Registo de auditoria em ``system_logs`` + logger da aplicação.

Falhas ao gravar nunca sobem para o fluxo do pedido: fazem rollback e
ficam apenas no logger.
"""
from __future__ import annotations
import traceback

from flask import current_app, has_request_context, request, g
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.log import SystemLog

_DEFAULT_LEVELS = {
    "document_create": "audit",
    "document_delete": "audit",
    "payment_success": "audit",
    "payment_create": "info",
    "payment_failed": "warn",
    "user_login": "audit",
    "user_logout": "info",
    "api_call": "info",
    "validation": "warn",
    "security_event": "warn",
    "error": "error",
    "system_alert": "error",
}

_PY_LEVELS = {"debug": 10, "info": 20, "audit": 20, "warn": 30, "error": 40}


class AuditLogger:
    def _context(self) -> dict:
        if not has_request_context():
            return {"ip_address": "unknown", "user_agent": "unknown", "endpoint": "unknown", "method": "unknown"}
        fwd = request.headers.get("X-Forwarded-For") or request.headers.get("X-Real-IP")
        return {
            "ip_address": (fwd or request.remote_addr or "unknown").split(",")[0].strip()[:64],
            "user_agent": (request.headers.get("User-Agent") or "unknown")[:200],
            "endpoint": (request.path or "unknown")[:100],
            "method": request.method,
        }

    def _user_id(self):
        if not has_request_context():
            return None
        identity = getattr(g, "identity", None) or {}
        return identity.get("id")

    def log(self, action: str, message: str, level: str | None = None, *, details: dict | None = None,
            resource_type: str | None = None, resource_id=None, duration_ms: int | None = None,
            user_id=None) -> None:
        level = level or _DEFAULT_LEVELS.get(action, "info")
        if level == "debug" and current_app.config.get("FLASK_ENV") == "production":
            return

        current_app.logger.log(_PY_LEVELS.get(level, 20), "[%s] %s", action, message)

        entry = SystemLog(
            user_id=user_id if user_id is not None else self._user_id(),
            level=level,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            message=message[:500],
            details=details or {},
            duration_ms=duration_ms,
            **self._context(),
        )
        try:
            db.session.add(entry)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.warning("Falha ao gravar log de auditoria (%s): %s", action, e)

    # ---- atalhos ----
    def log_api_call(self, endpoint: str, method: str, duration_ms: int, success: bool, **details) -> None:
        self.log(
            "api_call",
            f"{method} {endpoint} - {'Sucesso' if success else 'Erro'} ({duration_ms}ms)",
            level="info" if success else "error",
            details={"endpoint": endpoint, "method": method, "duration_ms": duration_ms, "success": success, **details},
            duration_ms=duration_ms,
        )

    def log_error(self, err: BaseException, context: str, **details) -> None:
        info = {"error_message": str(err), "context": context, **details}
        if current_app.config.get("FLASK_ENV") != "production":
            info["error_stack"] = "".join(traceback.format_exception(type(err), err, err.__traceback__))[-2000:]
        self.log("error", f"Erro em {context}: {str(err)[:200]}", level="error", details=info)

    def log_security_event(self, event: str, severity: str, **details) -> None:
        self.log(
            "security_event",
            f"Evento de segurança: {event}",
            level="error" if severity == "high" else "warn",
            details={"event": event, "severity": severity, **details},
        )

    def log_document_creation(self, tipo_documento: str, documento_id, numero: str, **details) -> None:
        label = {"fatura": "Fatura", "cotacao": "Cotação", "recibo": "Recibo"}.get(tipo_documento, "Documento")
        self.log(
            "document_create",
            f"{label} emitida: {numero}" if tipo_documento != "recibo" else f"{label} emitido: {numero}",
            resource_type=tipo_documento,
            resource_id=documento_id,
            details={"numero": numero, **details},
        )


def init_audit(app):
    app.extensions["audit"] = AuditLogger()

def get_audit() -> AuditLogger:
    audit = current_app.extensions.get("audit")
    if audit is None:
        audit = AuditLogger()
        current_app.extensions["audit"] = audit
    return audit
