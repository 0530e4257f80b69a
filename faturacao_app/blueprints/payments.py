# faturacao_app/blueprints/payments.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request

from ..decorators import api_guard
from ..errors import ValidationError, success_response
from ..models.payment import STATUS_AGUARDANDO
from ..schemas import FinalizeRequest, MpesaPaymentRequest
from ..services.audit import get_audit
from ..services.finalization import build_pipeline
from ..services.mpesa import format_msisdn, get_mpesa_client, validate_msisdn
from ..services.retry import build_retry_scanner, OUTCOME_ASSOCIATED, OUTCOME_FAILED, OUTCOME_SKIPPED
from ..services.stores import PaymentStore

bp = Blueprint("payments", __name__, url_prefix="/payments")


@bp.route("/mpesa", methods=["POST"])
@api_guard(auth=True, rate={"limit": 5}, csrf=True, audit_label="mpesa_payment")
def mpesa_payment(identity):
    """Cobra via M-Pesa e regista o pagamento à espera do documento."""
    body = request.get_json(silent=True)
    data = MpesaPaymentRequest.from_dict(body)
    if not validate_msisdn(data.customer_msisdn):
        raise ValidationError("Número M-Pesa inválido", details={"customer_msisdn": data.customer_msisdn})
    msisdn = format_msisdn(data.customer_msisdn)

    client = get_mpesa_client()
    sent, mpesa = client.c2b_payment(
        transaction_reference=data.transaction_reference,
        customer_msisdn=msisdn,
        amount=data.amount,
        third_party_reference=data.third_party_reference,
    )

    store = PaymentStore()
    payment = store.create(
        user_id=identity["id"],
        documento_id=None,
        tipo_documento=data.tipo_documento,
        external_id=data.transaction_reference,
        metodo="mpesa",
        status=STATUS_AGUARDANDO,
        valor=data.amount,
        moeda=data.moeda,
        phone_number=msisdn,
        mpesa_transaction_id=mpesa.get("transaction_id"),
        mpesa_conversation_id=mpesa.get("conversation_id"),
        mpesa_third_party_reference=data.third_party_reference,
        meta={"originalPayload": body},
    )
    store.add_gateway_record(
        payment,
        transaction_reference=data.transaction_reference,
        third_party_reference=data.third_party_reference,
        mpesa_transaction_id=mpesa.get("transaction_id"),
        mpesa_conversation_id=mpesa.get("conversation_id"),
        customer_msisdn=msisdn,
        amount=data.amount,
        response_code=mpesa.get("response_code") or "0",
        response_description=mpesa.get("response_description") or "SUCCESS",
        status="completed",
        request_payload=sent,
        response_payload=mpesa or None,
    )
    get_audit().log(
        "payment_create", f"Pagamento M-Pesa {data.transaction_reference} registado",
        resource_type="pagamento", resource_id=payment.id,
        details={"valor": str(data.amount), "moeda": data.moeda, "tipo_documento": data.tipo_documento},
    )
    return success_response(
        {
            "payment_id": payment.id,
            "status": payment.status,
            "mpesa_transaction_id": payment.mpesa_transaction_id,
            "conversation_id": payment.mpesa_conversation_id,
        },
        "Pagamento processado via M-Pesa",
        status=201,
    )

@bp.route("/finalize", methods=["POST"])
@api_guard(auth=True, rate={"limit": 10}, csrf=True, audit_label="mpesa_finalize")
def finalize(identity):
    body = request.get_json(silent=True) or {}
    data = FinalizeRequest.from_dict(body, "payment_id e document_payload são obrigatórios")

    result = build_pipeline().finalize(identity["id"], data.payment_id, data.document_payload)
    if result.reused:
        return success_response(result.to_dict(), "Pagamento já associado anteriormente (idempotente)")
    return success_response(result.to_dict(), "Documento criado e pagamento associado com sucesso")

@bp.route("/retry", methods=["POST"])
@api_guard(auth=True, rate={"limit": 3}, csrf=True, audit_label="mpesa_retry")
def retry(identity):
    processed = build_retry_scanner().run(identity["id"])
    return success_response(
        {
            "processed": processed,
            "total": len(processed),
            "associated": sum(1 for r in processed if r["outcome"] == OUTCOME_ASSOCIATED),
            "skipped": sum(1 for r in processed if r["outcome"] == OUTCOME_SKIPPED),
            "failed": sum(1 for r in processed if r["outcome"] == OUTCOME_FAILED),
        },
        "Reprocessamento executado",
    )
