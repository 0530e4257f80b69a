# faturacao_app/schemas.py
# -*- coding: utf-8 -*-
"""Schemas de entrada da API (pydantic).

O JSON que chega do cliente (ou do ``metadata`` do pagamento) é validado
aqui, antes de qualquer escrita: tipos errados viram ``VALIDATION_ERROR``
e nunca chegam ao datastore. Campos ausentes, ``null`` ou em branco
assumem o default do modelo.
"""
from __future__ import annotations
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

TIPOS_DOCUMENTO = ("fatura", "cotacao", "recibo")
REQUIRED_FIELDS = ("emitente_id", "destinatario_id", "numero")

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _error_details(e: PydanticValidationError) -> dict:
    return {
        "erros": [
            {"campo": ".".join(str(p) for p in err["loc"]) or "payload", "mensagem": err["msg"]}
            for err in e.errors()
        ]
    }


class _Schema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_blanks(cls, data: Any):
        # null / "" -> default do campo
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None and not (isinstance(v, str) and not v.strip())}
        return data

    @classmethod
    def from_dict(cls, raw: Any, message: str = "Dados inválidos"):
        if not isinstance(raw, dict):
            raise ValidationError("Payload JSON inválido")
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as e:
            raise ValidationError(message, details=_error_details(e)) from e


# ---------------- documentos ----------------
class ItemPayload(_Schema):
    quantidade: Decimal = Field(Decimal("1"), gt=0)
    descricao: str = Field("Item", max_length=255)
    preco_unitario: Decimal = Field(Decimal("0"), ge=0)


class DocumentPayload(_Schema):
    tipo_documento: str

    emitente_id: Optional[int] = Field(None, gt=0)
    destinatario_id: Optional[int] = Field(None, gt=0)
    numero: Optional[str] = Field(None, max_length=40)
    moeda: str = Field("MZN", min_length=3, max_length=8)
    termos: Optional[str] = None
    ordem_compra: Optional[str] = Field(None, max_length=120)
    html_content: Optional[str] = None
    itens: list[ItemPayload] = Field(default_factory=list)

    def missing_fields(self) -> list[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def base_row(self) -> dict:
        return {
            "emitente_id": self.emitente_id,
            "destinatario_id": self.destinatario_id,
            "numero": self.numero,
            "status": "emitida",
            "moeda": self.moeda,
            "termos": self.termos,
            "ordem_compra": self.ordem_compra,
            "html_content": self.html_content,
            "html_generated_at": datetime.utcnow() if self.html_content else None,
        }

    def specialized_row(self, payment) -> dict:
        raise NotImplementedError


class InvoicePayload(DocumentPayload):
    tipo_documento: Literal["fatura"]

    data_vencimento: Optional[date] = None
    desconto: Decimal = Field(Decimal("0"), ge=0)
    tipo_desconto: Literal["fixed", "percent"] = "fixed"
    documento_referencia: Optional[str] = Field(None, max_length=120)
    metodo_pagamento: Optional[str] = Field(None, max_length=40)

    def specialized_row(self, payment) -> dict:
        return {
            "data_vencimento": self.data_vencimento or date.today(),
            "desconto": self.desconto,
            "tipo_desconto": self.tipo_desconto,
            "documento_referencia": self.documento_referencia,
            "metodo_pagamento": self.metodo_pagamento,
        }


class QuotationPayload(DocumentPayload):
    tipo_documento: Literal["cotacao"]

    validez_dias: int = Field(15, gt=0)
    desconto: Decimal = Field(Decimal("0"), ge=0)
    tipo_desconto: Literal["fixed", "percent"] = "fixed"

    def specialized_row(self, payment) -> dict:
        return {
            "validez_dias": self.validez_dias,
            "desconto": self.desconto,
            "tipo_desconto": self.tipo_desconto,
        }


class ReceiptPayload(DocumentPayload):
    tipo_documento: Literal["recibo"]

    tipo_recibo: str = Field("pagamento", max_length=30)
    valor_recebido: Optional[Decimal] = Field(None, ge=0)
    forma_pagamento: str = Field("mpesa", max_length=30)
    referencia_recebimento: Optional[str] = Field(None, max_length=120)
    motivo_pagamento: Optional[str] = Field(None, max_length=255)
    documento_referencia: Optional[str] = Field(None, max_length=120)

    def specialized_row(self, payment) -> dict:
        return {
            "user_id": payment.user_id,
            "tipo_recibo": self.tipo_recibo,
            "valor_recebido": self.valor_recebido if self.valor_recebido else payment.valor,
            "forma_pagamento": self.forma_pagamento,
            "referencia_recebimento": self.referencia_recebimento,
            "motivo_pagamento": self.motivo_pagamento,
            "documento_referencia": self.documento_referencia,
        }


_DOCUMENT_ADAPTER = TypeAdapter(
    Annotated[Union[InvoicePayload, QuotationPayload, ReceiptPayload], Field(discriminator="tipo_documento")]
)


def parse_document_payload(raw: Any, tipo_documento: str | None = None, moeda: str | None = None) -> DocumentPayload:
    """Valida o JSON solto e devolve o payload do tipo certo.

    ``tipo_documento``/``moeda`` do próprio payload têm prioridade sobre os
    valores do pagamento passados como default.
    """
    if not isinstance(raw, dict):
        raise ValidationError("document_payload deve ser um objeto")
    provided = raw.get("tipo_documento") or tipo_documento
    tipo = str(provided or "").strip().lower()
    if tipo not in TIPOS_DOCUMENTO:
        raise ValidationError("tipo_documento inválido ou ausente", details={"provided": provided})

    data = dict(raw, tipo_documento=tipo)
    if moeda and not raw.get("moeda"):
        data["moeda"] = moeda
    try:
        return _DOCUMENT_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError("document_payload inválido", details=_error_details(e)) from e


# ---------------- pagamentos ----------------
class MpesaPaymentRequest(_Schema):
    amount: Decimal = Field(gt=0)
    customer_msisdn: str = Field(min_length=1, max_length=20)
    transaction_reference: str = Field(min_length=1, max_length=120)
    tipo_documento: Literal["fatura", "cotacao", "recibo"]
    moeda: str = Field("MZN", min_length=3, max_length=8)
    third_party_reference: Optional[str] = Field(None, max_length=120)
    document_payload: dict = Field(default_factory=dict)

    @field_validator("amount", mode="before")
    @classmethod
    def numeric_amount(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
            raise ValueError("amount deve ser numérico")
        return v

    @field_validator("transaction_reference", "third_party_reference", mode="before")
    @classmethod
    def reference_as_text(cls, v):
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @field_validator("tipo_documento", mode="before")
    @classmethod
    def lower_tipo(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class FinalizeRequest(_Schema):
    payment_id: int = Field(gt=0, strict=True)
    document_payload: dict = Field(min_length=1)


# ---------------- emissores / destinatários ----------------
def _check_email(v):
    if v is not None and not _EMAIL_RE.match(v):
        raise ValueError("Email inválido")
    return v


class IssuerPayload(_Schema):
    nome_empresa: str = Field(max_length=180)
    documento: str = Field(max_length=40)
    pais: str = Field(max_length=80)
    cidade: str = Field(max_length=80)
    bairro: str = Field(max_length=120)
    email: str = Field(max_length=180)
    telefone: str = Field(max_length=30)
    pessoa_contato: Optional[str] = Field(None, max_length=120)
    padrao: bool = False

    @field_validator("email")
    @classmethod
    def valid_email(cls, v):
        return _check_email(v)


class IssuerUpdate(_Schema):
    nome_empresa: Optional[str] = Field(None, max_length=180)
    documento: Optional[str] = Field(None, max_length=40)
    pais: Optional[str] = Field(None, max_length=80)
    cidade: Optional[str] = Field(None, max_length=80)
    bairro: Optional[str] = Field(None, max_length=120)
    email: Optional[str] = Field(None, max_length=180)
    telefone: Optional[str] = Field(None, max_length=30)
    pessoa_contato: Optional[str] = Field(None, max_length=120)

    @field_validator("email")
    @classmethod
    def valid_email(cls, v):
        return _check_email(v)


class RecipientPayload(_Schema):
    nome_completo: str = Field(max_length=180)
    documento: Optional[str] = Field(None, max_length=40)
    pais: Optional[str] = Field(None, max_length=80)
    cidade: Optional[str] = Field(None, max_length=80)
    bairro: Optional[str] = Field(None, max_length=120)
    email: Optional[str] = Field(None, max_length=180)
    telefone: Optional[str] = Field(None, max_length=30)

    @field_validator("email")
    @classmethod
    def valid_email(cls, v):
        return _check_email(v)


class RecipientUpdate(RecipientPayload):
    nome_completo: Optional[str] = Field(None, max_length=180)
