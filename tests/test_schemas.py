# tests/test_schemas.py
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from faturacao_app.errors import ValidationError
from faturacao_app.schemas import (
    FinalizeRequest, InvoicePayload, IssuerPayload, MpesaPaymentRequest, QuotationPayload, ReceiptPayload,
    RecipientUpdate, parse_document_payload,
)


def test_parse_uses_payment_defaults():
    p = parse_document_payload({"emitente_id": "3", "destinatario_id": 4, "numero": " FAT-1 "}, "fatura", "USD")
    assert isinstance(p, InvoicePayload)
    assert (p.emitente_id, p.destinatario_id, p.numero, p.moeda) == (3, 4, "FAT-1", "USD")
    assert p.missing_fields() == []
    assert p.specialized_row(None)["data_vencimento"] == date.today()

def test_payload_fields_win_over_defaults():
    p = parse_document_payload({"tipo_documento": "COTACAO", "moeda": "EUR"}, "fatura", "MZN")
    assert isinstance(p, QuotationPayload)
    assert p.moeda == "EUR"
    assert p.validez_dias == 15

def test_item_defaults():
    p = parse_document_payload({"itens": [{}, {"quantidade": "2.5", "preco_unitario": None}]}, "fatura")
    assert p.itens[0].quantidade == Decimal("1")
    assert p.itens[0].descricao == "Item"
    assert p.itens[1].quantidade == Decimal("2.5")
    assert p.itens[1].preco_unitario == Decimal("0")

@pytest.mark.parametrize("field,value", [
    ("termos", {"a": 1}),
    ("emitente_id", "abc"),
    ("destinatario_id", -1),
    ("itens", "muitos"),
    ("tipo_desconto", "metade"),
])
def test_parse_rejects_mistyped_fields(field, value):
    with pytest.raises(ValidationError) as exc:
        parse_document_payload({field: value}, "fatura")
    assert exc.value.code == "VALIDATION_ERROR"
    assert exc.value.details["erros"][0]["campo"].split(".")[-1] == field

def test_item_price_must_be_numeric():
    with pytest.raises(ValidationError) as exc:
        parse_document_payload({"itens": [{"preco_unitario": "x"}]}, "fatura")
    assert exc.value.details["erros"][0]["campo"].endswith("itens.0.preco_unitario")

def test_discriminator_picks_variant_fields():
    p = parse_document_payload({"tipo_documento": "cotacao", "validez_dias": "30", "data_vencimento": "x"})
    assert isinstance(p, QuotationPayload)
    assert p.validez_dias == 30
    assert not hasattr(p, "data_vencimento")

def test_receipt_amount_falls_back_to_payment():
    p = parse_document_payload({}, "recibo")
    assert isinstance(p, ReceiptPayload)
    row = p.specialized_row(SimpleNamespace(user_id=7, valor=Decimal("99.90")))
    assert row["valor_recebido"] == Decimal("99.90")
    assert row["user_id"] == 7

@pytest.mark.parametrize("raw,tipo", [(None, "fatura"), ([], "fatura"), ({}, None), ({}, "nota")])
def test_parse_rejects_bad_input(raw, tipo):
    with pytest.raises(ValidationError):
        parse_document_payload(raw, tipo)

def test_missing_fields_lists_required():
    assert parse_document_payload({}, "fatura").missing_fields() == ["emitente_id", "destinatario_id", "numero"]

def test_mpesa_request_defaults_currency():
    req = MpesaPaymentRequest.from_dict({
        "amount": 10.5, "customer_msisdn": "842010505", "transaction_reference": 123, "tipo_documento": "Recibo",
    })
    assert req.moeda == "MZN"
    assert req.tipo_documento == "recibo"
    assert req.transaction_reference == "123"
    assert req.amount == Decimal("10.5")

def test_mpesa_request_missing_fields():
    with pytest.raises(ValidationError) as exc:
        MpesaPaymentRequest.from_dict({"amount": 1})
    campos = [e["campo"] for e in exc.value.details["erros"]]
    assert campos == ["customer_msisdn", "transaction_reference", "tipo_documento"]

def test_mpesa_request_rejects_boolean_amount():
    with pytest.raises(ValidationError):
        MpesaPaymentRequest.from_dict({
            "amount": True, "customer_msisdn": "842010505", "transaction_reference": "R", "tipo_documento": "fatura",
        })

@pytest.mark.parametrize("payment_id", [{"a": 1}, "abc", "7", 0, -3, True, 1.5])
def test_finalize_request_requires_positive_int_id(payment_id):
    with pytest.raises(ValidationError):
        FinalizeRequest.from_dict({"payment_id": payment_id, "document_payload": {"numero": "X"}})

def test_finalize_request_requires_payload_object():
    with pytest.raises(ValidationError):
        FinalizeRequest.from_dict({"payment_id": 1, "document_payload": {}})
    with pytest.raises(ValidationError):
        FinalizeRequest.from_dict({"payment_id": 1, "document_payload": ["x"]})
    assert FinalizeRequest.from_dict({"payment_id": 1, "document_payload": {"numero": "X"}}).payment_id == 1

def test_issuer_payload_requires_contact_fields():
    with pytest.raises(ValidationError) as exc:
        IssuerPayload.from_dict({"nome_empresa": "ACME", "documento": "1", "email": "sem-arroba"})
    campos = {e["campo"] for e in exc.value.details["erros"]}
    assert campos == {"pais", "cidade", "bairro", "email", "telefone"}

def test_recipient_update_keeps_only_sent_fields():
    upd = RecipientUpdate.from_dict({"telefone": " 841234567 ", "email": ""})
    assert upd.model_dump(exclude_unset=True) == {"telefone": "841234567"}
