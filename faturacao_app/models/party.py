# faturacao_app/models/party.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class Issuer(db.Model):
    __tablename__ = "emissores"
    __table_args__ = (db.UniqueConstraint("user_id", "documento", name="uq_emissor_user_documento"),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    nome_empresa = db.Column(db.String(180), nullable=False)
    documento = db.Column(db.String(40))          # NUIT
    pais = db.Column(db.String(80))
    cidade = db.Column(db.String(80))
    bairro = db.Column(db.String(120))
    pessoa_contato = db.Column(db.String(120))
    email = db.Column(db.String(180))
    telefone = db.Column(db.String(30))
    padrao = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nome_empresa": self.nome_empresa,
            "documento": self.documento,
            "pais": self.pais,
            "cidade": self.cidade,
            "bairro": self.bairro,
            "pessoa_contato": self.pessoa_contato,
            "email": self.email,
            "telefone": self.telefone,
            "padrao": bool(self.padrao),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

class Recipient(db.Model):
    __tablename__ = "destinatarios"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    nome_completo = db.Column(db.String(180), nullable=False)
    documento = db.Column(db.String(40))
    pais = db.Column(db.String(80))
    cidade = db.Column(db.String(80))
    bairro = db.Column(db.String(120))
    email = db.Column(db.String(180))
    telefone = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nome_completo": self.nome_completo,
            "documento": self.documento,
            "pais": self.pais,
            "cidade": self.cidade,
            "bairro": self.bairro,
            "email": self.email,
            "telefone": self.telefone,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
