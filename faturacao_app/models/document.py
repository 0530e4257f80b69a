# faturacao_app/models/document.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class DocumentBase(db.Model):
    __tablename__ = "documentos_base"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    emitente_id = db.Column(db.Integer, db.ForeignKey("emissores.id"), nullable=False)
    destinatario_id = db.Column(db.Integer, db.ForeignKey("destinatarios.id"), nullable=False)
    numero = db.Column(db.String(40), nullable=False, index=True)
    status = db.Column(db.String(20), default="emitida")          # emitida, paga, anulada
    moeda = db.Column(db.String(8), default="MZN")
    termos = db.Column(db.Text)
    ordem_compra = db.Column(db.String(120))
    html_content = db.Column(db.Text)
    html_generated_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    itens = db.relationship("DocumentItem", backref="documento", lazy="dynamic",
                            cascade="all, delete-orphan", passive_deletes=True)

# ---- tabelas especializadas (mesma PK do documento base) ----

class Invoice(db.Model):
    __tablename__ = "faturas"
    id = db.Column(db.Integer, db.ForeignKey("documentos_base.id", ondelete="CASCADE"), primary_key=True)
    data_vencimento = db.Column(db.Date, nullable=False)
    desconto = db.Column(db.Numeric(14, 2), default=0)
    tipo_desconto = db.Column(db.String(12), default="fixed")    # fixed, percent
    documento_referencia = db.Column(db.String(120))
    metodo_pagamento = db.Column(db.String(40))

class Quotation(db.Model):
    __tablename__ = "cotacoes"
    id = db.Column(db.Integer, db.ForeignKey("documentos_base.id", ondelete="CASCADE"), primary_key=True)
    validez_dias = db.Column(db.Integer, default=15)
    desconto = db.Column(db.Numeric(14, 2), default=0)
    tipo_desconto = db.Column(db.String(12), default="fixed")

class Receipt(db.Model):
    __tablename__ = "recibos"
    id = db.Column(db.Integer, db.ForeignKey("documentos_base.id", ondelete="CASCADE"), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    tipo_recibo = db.Column(db.String(30), default="pagamento")
    valor_recebido = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    forma_pagamento = db.Column(db.String(30), default="mpesa")
    referencia_recebimento = db.Column(db.String(120))
    motivo_pagamento = db.Column(db.String(255))
    documento_referencia = db.Column(db.String(120))

class DocumentItem(db.Model):
    __tablename__ = "itens_documento"
    id = db.Column(db.Integer, primary_key=True)
    documento_id = db.Column(db.Integer, db.ForeignKey("documentos_base.id", ondelete="CASCADE"),
                             index=True, nullable=False)
    id_original = db.Column(db.Integer, nullable=False)          # posição 1-based
    quantidade = db.Column(db.Numeric(14, 3), default=1)
    descricao = db.Column(db.String(255), default="Item")
    preco_unitario = db.Column(db.Numeric(14, 2), default=0)

class DocumentSequence(db.Model):
    __tablename__ = "documento_sequencias"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    tipo_documento = db.Column(db.String(20), nullable=False)
    ultimo_numero = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("user_id", "tipo_documento", name="uq_documento_sequencia_user_tipo"),
    )

SPECIALIZED_MODELS = {
    "fatura": Invoice,
    "cotacao": Quotation,
    "recibo": Receipt,
}
