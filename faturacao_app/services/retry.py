# faturacao_app/services/retry.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import logging

from flask import current_app

from ..errors import ApiError, StoreError
from .finalization import FinalizationPipeline, build_pipeline
from .numbering import gerar_numero_documento
from .stores import PaymentStore
from ..schemas import parse_document_payload

log = logging.getLogger(__name__)

OUTCOME_ASSOCIATED = "associated"
OUTCOME_SKIPPED = "skipped"
OUTCOME_FAILED = "failed"


class RetryScanner:
    """Reprocessa pagamentos em ``aguardando_documento`` sem documento.

    Não passa pela verificação de idempotência: a seleção já filtra
    ``documento_id IS NULL``. Pagamentos com ``retry_count`` no teto ficam
    de fora.
    """

    def __init__(self, pipeline: FinalizationPipeline, payments: PaymentStore | None = None,
                 max_attempts: int = 5, batch_size: int = 10, numbering=gerar_numero_documento):
        self.pipeline = pipeline
        self.payments = payments or pipeline.payments
        self.max_attempts = max_attempts
        self.batch_size = batch_size
        self.numbering = numbering

    def run(self, user_id) -> list[dict]:
        results = []
        for payment in self.payments.list_pending(user_id, self.max_attempts, self.batch_size):
            results.append(self._process(payment))
        return results

    def run_all(self, max_users: int = 50) -> list[dict]:
        results = []
        for user_id in self.payments.users_with_pending(self.max_attempts, max_users):
            results.extend(self.run(user_id))
        log.info("Reprocessamento concluído: %d pagamento(s)", len(results))
        return results

    def _process(self, payment) -> dict:
        try:
            payload = parse_document_payload(payment.original_payload(), payment.tipo_documento, payment.moeda)
        except ApiError as e:
            self._skip(payment)
            return {"payment_id": payment.id, "outcome": OUTCOME_SKIPPED, "reason": e.message}

        if not payload.emitente_id or not payload.destinatario_id:
            self._skip(payment)
            return {"payment_id": payment.id, "outcome": OUTCOME_SKIPPED, "reason": "missing emitente/destinatario"}

        try:
            self.pipeline.check_parties(payment, payload)
        except ApiError:
            self._skip(payment)
            return {"payment_id": payment.id, "outcome": OUTCOME_SKIPPED, "reason": "foreign emitente/destinatario"}

        if not payload.numero:
            try:
                payload.numero = self.numbering(payment.user_id, payload.tipo_documento)
            except (StoreError, ApiError) as e:
                log.warning("Sem número para o pagamento %s: %s", payment.id, e)
                self._skip(payment)
                return {"payment_id": payment.id, "outcome": OUTCOME_SKIPPED, "reason": "numero indisponível"}

        try:
            documento_id = self.pipeline.create_document(payment, payload)
        except ApiError as e:
            return {"payment_id": payment.id, "outcome": OUTCOME_FAILED, "reason": e.code}
        return {"payment_id": payment.id, "outcome": OUTCOME_ASSOCIATED, "documento_id": documento_id}

    def _skip(self, payment) -> None:
        try:
            self.payments.register_failure(payment)
        except StoreError as e:
            log.error("Não foi possível atualizar retry_count do pagamento %s: %s", payment.id, e)


def build_retry_scanner() -> RetryScanner:
    cfg = current_app.config
    return RetryScanner(
        build_pipeline(),
        max_attempts=int(cfg.get("RETRY_MAX_ATTEMPTS", 5)),
        batch_size=int(cfg.get("RETRY_BATCH_SIZE", 10)),
    )
