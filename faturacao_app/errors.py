# faturacao_app/errors.py
# -*- coding: utf-8 -*-
"""Erros de API com código estável e o envelope JSON de resposta.

Toda resposta segue ``{success, data?, error?: {code, message, details?}}``.
As subclasses de :class:`ApiError` carregam o status HTTP e o código
legível por máquina; o ``api_guard`` traduz qualquer outra exceção em
``INTERNAL_ERROR``.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any

from flask import jsonify


class ApiError(Exception):
    code = "INTERNAL_ERROR"
    status = 500
    message = "Erro interno"

    def __init__(self, message: str | None = None, details: Any = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details

    def to_dict(self) -> dict:
        err = {"code": self.code, "message": self.message}
        if self.details is not None:
            err["details"] = self.details
        return err


class ValidationError(ApiError):
    code, status, message = "VALIDATION_ERROR", 400, "Dados inválidos"

class Unauthorized(ApiError):
    code, status, message = "UNAUTHORIZED", 401, "Não autenticado"

class InvalidCredentials(ApiError):
    code, status, message = "INVALID_CREDENTIALS", 401, "Credenciais inválidas"

class CsrfInvalid(ApiError):
    code, status, message = "CSRF_INVALID", 403, "Token CSRF inválido"

class PaymentNotFound(ApiError):
    code, status, message = "PAYMENT_NOT_FOUND", 404, "Pagamento não encontrado"

class DocumentNotFound(ApiError):
    code, status, message = "DOCUMENT_NOT_FOUND", 404, "Documento não encontrado"

class InvalidStatus(ApiError):
    code, status, message = "INVALID_STATUS", 409, "Pagamento não está aguardando documento"

class EmailInUse(ApiError):
    code, status, message = "EMAIL_IN_USE", 409, "E-mail já cadastrado"

class IssuerNotFound(ApiError):
    code, status, message = "ISSUER_NOT_FOUND", 404, "Emissor não encontrado"

class RecipientNotFound(ApiError):
    code, status, message = "RECIPIENT_NOT_FOUND", 404, "Destinatário não encontrado"

class IssuerDuplicate(ApiError):
    code, status, message = "ISSUER_DUPLICATE", 409, "Já existe um emissor com este documento"

class PartyInUse(ApiError):
    code, status, message = "PARTY_IN_USE", 409, "Existem documentos vinculados a este registo"

class DocumentFieldsMissing(ApiError):
    code, status, message = "DOCUMENT_FIELDS_MISSING", 400, "emitente_id, destinatario_id e numero são obrigatórios"

class RateLimited(ApiError):
    code, status, message = "RATE_LIMITED", 429, "Muitas requisições"

class DocumentCreateFailed(ApiError):
    code, status, message = "DOCUMENT_CREATE_FAILED", 500, "Falha ao criar documento base"

class DocumentSpecializedFailed(ApiError):
    code, status, message = "DOCUMENT_SPECIALIZED_FAILED", 500, "Falha na criação especializada"

class PaymentUpdateFailed(ApiError):
    code, status, message = "PAYMENT_UPDATE_FAILED", 500, "Documento criado mas falhou a associação do pagamento"

class GatewayError(ApiError):
    code, status, message = "MPESA_GATEWAY_ERROR", 502, "Erro ao processar pagamento M-Pesa"


class StoreError(Exception):
    """Falha do datastore (já com rollback feito na sessão)."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(data: Any = None, message: str | None = None, status: int = 200):
    body = {"success": True, "data": data, "timestamp": _now_iso()}
    if message:
        body["message"] = message
    return jsonify(body), status


def error_response(err: ApiError):
    return jsonify({"success": False, "error": err.to_dict()}), err.status
