# faturacao_app/models/payment.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

STATUS_AGUARDANDO = "aguardando_documento"
STATUS_PAGO = "pago"
STATUS_FALHOU = "failed"

class Payment(db.Model):
    __tablename__ = "pagamentos"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    documento_id = db.Column(db.Integer, db.ForeignKey("documentos_base.id"), nullable=True, index=True)
    tipo_documento = db.Column(db.String(20), nullable=False)     # fatura, cotacao, recibo
    status = db.Column(db.String(30), nullable=False, default=STATUS_AGUARDANDO, index=True)
    metodo = db.Column(db.String(20), default="mpesa")
    valor = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    moeda = db.Column(db.String(8), default="MZN")
    external_id = db.Column(db.String(120), index=True)          # transaction_reference
    phone_number = db.Column(db.String(20))
    mpesa_transaction_id = db.Column(db.String(120))
    mpesa_conversation_id = db.Column(db.String(120))
    mpesa_third_party_reference = db.Column(db.String(120))

    # reprocessamento
    retry_count = db.Column(db.Integer, nullable=True)           # NULL = nunca tentado
    last_retry_at = db.Column(db.DateTime)

    # "metadata" é reservado no declarative; o nome da coluna mantém-se
    meta = db.Column("metadata", db.JSON, default=dict)

    paid_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def original_payload(self) -> dict:
        original = (self.meta or {}).get("originalPayload") or {}
        if not isinstance(original, dict):
            return {}
        payload = original.get("document_payload")
        return payload if isinstance(payload, dict) else original

class MpesaTransaction(db.Model):
    __tablename__ = "mpesa_transacoes"

    id = db.Column(db.Integer, primary_key=True)
    pagamento_id = db.Column(db.Integer, db.ForeignKey("pagamentos.id"), index=True, nullable=False)
    transaction_reference = db.Column(db.String(120), nullable=False)
    third_party_reference = db.Column(db.String(120))
    mpesa_transaction_id = db.Column(db.String(120))
    mpesa_conversation_id = db.Column(db.String(120))
    customer_msisdn = db.Column(db.String(20))
    amount = db.Column(db.Numeric(14, 2), default=0)
    response_code = db.Column(db.String(20))
    response_description = db.Column(db.String(255))
    status = db.Column(db.String(20), default="completed")
    request_payload = db.Column(db.JSON)
    response_payload = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    payment = db.relationship("Payment", backref=db.backref("mpesa_transacoes", lazy="dynamic"))
