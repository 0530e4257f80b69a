# faturacao_app/services/finalization.py
# -*- coding: utf-8 -*-
"""Finalização: pagamento confirmado -> documento emitido, uma única vez.

O ``documento_id`` do pagamento é o marcador de idempotência. Como os
inserts não partilham transação, cada falha depois de uma escrita
compensa o que ficou para trás antes de devolver o erro.

Limitação conhecida: duas chamadas concorrentes para o mesmo pagamento
ainda não associado podem passar ambas pela verificação de idempotência e
criar dois documentos. Também se a associação final falhar o documento
fica órfão e um reprocessamento cria outro.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass

from ..errors import (
    DocumentCreateFailed,
    DocumentFieldsMissing,
    DocumentSpecializedFailed,
    InvalidStatus,
    PaymentNotFound,
    PaymentUpdateFailed,
    StoreError,
    Unauthorized,
    ValidationError,
)
from ..models.payment import Payment, STATUS_AGUARDANDO
from ..schemas import DocumentPayload, parse_document_payload
from .audit import get_audit
from .stores import DocumentStore, PaymentStore

log = logging.getLogger(__name__)

STATUS_ASSOCIADO = "associado"


@dataclass
class FinalizationResult:
    documento_id: int
    payment_id: int
    status: str
    reused: bool = False

    def to_dict(self) -> dict:
        return {"documento_id": self.documento_id, "payment_id": self.payment_id, "status": self.status}


class FinalizationPipeline:
    def __init__(self, payments: PaymentStore | None = None, documents: DocumentStore | None = None, audit=None):
        self.payments = payments or PaymentStore()
        self.documents = documents or DocumentStore()
        self.audit = audit

    def finalize(self, user_id, payment_id, raw_payload) -> FinalizationResult:
        if not user_id:
            raise Unauthorized()

        payment = self.payments.get_for_user(payment_id, user_id)
        if payment is None:
            raise PaymentNotFound()

        # idempotência: antes de qualquer escrita
        if payment.documento_id:
            return FinalizationResult(payment.documento_id, payment.id, payment.status, reused=True)

        if payment.status != STATUS_AGUARDANDO:
            raise InvalidStatus(details={"status_atual": payment.status})

        payload = parse_document_payload(raw_payload, payment.tipo_documento, payment.moeda)
        missing = payload.missing_fields()
        if missing:
            raise DocumentFieldsMissing(details={"missing_fields": missing})
        self.check_parties(payment, payload)

        documento_id = self.create_document(payment, payload)
        return FinalizationResult(documento_id, payment.id, STATUS_ASSOCIADO)

    def check_parties(self, payment: Payment, payload: DocumentPayload) -> None:
        """Emissor e destinatário têm de pertencer ao dono do pagamento."""
        foreign = self.documents.foreign_parties(payment.user_id, payload.emitente_id, payload.destinatario_id)
        if foreign:
            raise ValidationError("Emissor ou destinatário inválido para este utilizador", details={"campos": foreign})

    def create_document(self, payment: Payment, payload: DocumentPayload) -> int:
        """Etapas de escrita: base -> especializada -> itens -> associação."""
        try:
            doc = self.documents.insert_base(payment.user_id, payload.base_row())
        except StoreError as e:
            log.error("Falha ao criar documento base (pagamento %s): %s", payment.id, e)
            self._register_failure(payment)
            raise DocumentCreateFailed(details=str(e)) from e
        documento_id = doc.id

        try:
            self.documents.insert_specialized(payload.tipo_documento, documento_id, payload.specialized_row(payment))
        except StoreError as e:
            log.error("Falha na tabela %s (documento %s); a remover base", payload.tipo_documento, documento_id)
            self._compensate_base(documento_id)
            self._register_failure(payment)
            raise DocumentSpecializedFailed(details=str(e)) from e

        if payload.itens:
            try:
                self.documents.insert_items(documento_id, payload.itens)
            except StoreError as e:
                # sem compensação: o documento fica válido, só sem itens
                log.warning("Itens do documento %s não gravados: %s", documento_id, e)

        try:
            self.payments.link_document(payment, documento_id)
        except StoreError as e:
            log.error("Documento %s criado mas pagamento %s não associado: %s", documento_id, payment.id, e)
            raise PaymentUpdateFailed(details={"documento_id": documento_id, "error": str(e)}) from e

        if self.audit is not None:
            self.audit.log_document_creation(
                payload.tipo_documento, documento_id, payload.numero,
                payment_id=payment.id, itens_count=len(payload.itens),
            )
        return documento_id

    def _compensate_base(self, documento_id) -> None:
        try:
            self.documents.delete_base(documento_id)
        except StoreError as e:
            log.critical("Documento base %s órfão: rollback manual falhou: %s", documento_id, e)

    def _register_failure(self, payment: Payment) -> None:
        try:
            self.payments.register_failure(payment)
        except StoreError as e:
            log.error("Não foi possível atualizar retry_count do pagamento %s: %s", payment.id, e)


def build_pipeline() -> FinalizationPipeline:
    return FinalizationPipeline(PaymentStore(), DocumentStore(), audit=get_audit())
