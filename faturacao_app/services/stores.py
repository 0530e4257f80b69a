# faturacao_app/services/stores.py
# -*- coding: utf-8 -*-
"""Acesso a ``pagamentos``, documentos, emissores e destinatários.

Cada operação faz o seu próprio commit: não existe transação entre as
etapas da finalização, por isso o pipeline compensa manualmente.
"""
from __future__ import annotations
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreError
from ..extensions import db
from ..models.document import DocumentBase, DocumentItem, SPECIALIZED_MODELS
from ..models.payment import Payment, MpesaTransaction, STATUS_AGUARDANDO, STATUS_PAGO
from ..models.party import Issuer, Recipient


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StoreError(str(e)) from e


class PaymentStore:
    def get_for_user(self, payment_id, user_id) -> Payment | None:
        try:
            return db.session.execute(
                select(Payment).where(Payment.id == payment_id, Payment.user_id == user_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreError(str(e)) from e

    def create(self, **fields) -> Payment:
        p = Payment(**fields)
        db.session.add(p)
        _commit()
        return p

    def add_gateway_record(self, payment: Payment, **fields) -> MpesaTransaction:
        tx = MpesaTransaction(pagamento_id=payment.id, **fields)
        db.session.add(tx)
        _commit()
        return tx

    def register_failure(self, payment: Payment) -> None:
        payment.retry_count = (payment.retry_count or 0) + 1
        payment.last_retry_at = datetime.utcnow()
        _commit()

    def link_document(self, payment: Payment, documento_id) -> None:
        payment.documento_id = documento_id
        payment.status = STATUS_PAGO
        payment.paid_at = datetime.utcnow()
        _commit()

    def _pending_query(self, max_retries: int):
        return (
            select(Payment)
            .where(Payment.status == STATUS_AGUARDANDO)
            .where(Payment.documento_id.is_(None))
            .where(or_(Payment.retry_count.is_(None), Payment.retry_count < max_retries))
        )

    def list_pending(self, user_id, max_retries: int = 5, limit: int = 10) -> list[Payment]:
        stmt = (
            self._pending_query(max_retries)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.asc(), Payment.id.asc())
            .limit(limit)
        )
        return list(db.session.execute(stmt).scalars())

    def users_with_pending(self, max_retries: int = 5, limit: int = 50) -> list[int]:
        stmt = (
            self._pending_query(max_retries)
            .with_only_columns(Payment.user_id)
            .distinct()
            .order_by(Payment.user_id)
            .limit(limit)
        )
        return [uid for uid in db.session.execute(stmt).scalars()]


class DocumentStore:
    def insert_base(self, user_id, row: dict) -> DocumentBase:
        doc = DocumentBase(user_id=user_id, **row)
        db.session.add(doc)
        _commit()
        return doc

    def insert_specialized(self, tipo_documento: str, documento_id, row: dict):
        model = SPECIALIZED_MODELS.get(tipo_documento)
        if model is None:
            raise StoreError(f"tipo_documento sem tabela especializada: {tipo_documento}")
        obj = model(id=documento_id, **row)
        db.session.add(obj)
        _commit()
        return obj

    def delete_base(self, documento_id) -> None:
        doc = db.session.get(DocumentBase, documento_id)
        if doc is None:
            return
        db.session.delete(doc)
        _commit()

    def insert_items(self, documento_id, itens) -> list[DocumentItem]:
        rows = [
            DocumentItem(
                documento_id=documento_id,
                id_original=idx,
                quantidade=it.quantidade,
                descricao=it.descricao,
                preco_unitario=it.preco_unitario,
            )
            for idx, it in enumerate(itens, start=1)
        ]
        db.session.add_all(rows)
        _commit()
        return rows

    def get_for_user(self, documento_id, user_id) -> DocumentBase | None:
        return db.session.execute(
            select(DocumentBase).where(DocumentBase.id == documento_id, DocumentBase.user_id == user_id)
        ).scalar_one_or_none()

    def specialized_for(self, doc: DocumentBase):
        for tipo, model in SPECIALIZED_MODELS.items():
            obj = db.session.get(model, doc.id)
            if obj is not None:
                return tipo, obj
        return None, None

    def foreign_parties(self, user_id, emitente_id, destinatario_id) -> list[str]:
        """Campos cujo emissor/destinatário não existe ou é de outro utilizador."""
        foreign = []
        if not IssuerStore().get_for_user(emitente_id, user_id):
            foreign.append("emitente_id")
        if not RecipientStore().get_for_user(destinatario_id, user_id):
            foreign.append("destinatario_id")
        return foreign


class _PartyStore:
    model = None
    document_column = None

    def list_for_user(self, user_id) -> list:
        stmt = select(self.model).where(self.model.user_id == user_id).order_by(*self._ordering())
        return list(db.session.execute(stmt).scalars())

    def _ordering(self):
        return (self.model.updated_at.desc(), self.model.id.desc())

    def get_for_user(self, party_id, user_id):
        if not party_id:
            return None
        return db.session.execute(
            select(self.model).where(self.model.id == party_id, self.model.user_id == user_id)
        ).scalar_one_or_none()

    def create(self, user_id, **fields):
        obj = self.model(user_id=user_id, **fields)
        db.session.add(obj)
        _commit()
        return obj

    def update(self, obj, **fields):
        for key, value in fields.items():
            setattr(obj, key, value)
        _commit()
        return obj

    def in_use(self, obj) -> bool:
        column = getattr(DocumentBase, self.document_column)
        stmt = select(DocumentBase.id).where(column == obj.id, DocumentBase.user_id == obj.user_id).limit(1)
        return db.session.execute(stmt).first() is not None

    def delete(self, obj) -> None:
        db.session.delete(obj)
        _commit()


class IssuerStore(_PartyStore):
    model = Issuer
    document_column = "emitente_id"

    def _ordering(self):
        return (Issuer.padrao.desc(), *super()._ordering())

    def default_for(self, user_id) -> Issuer | None:
        return db.session.execute(
            select(Issuer).where(Issuer.user_id == user_id, Issuer.padrao.is_(True)).limit(1)
        ).scalar_one_or_none()

    def documento_taken(self, user_id, documento, exclude_id=None) -> bool:
        stmt = select(Issuer.id).where(Issuer.user_id == user_id, Issuer.documento == documento)
        if exclude_id is not None:
            stmt = stmt.where(Issuer.id != exclude_id)
        return db.session.execute(stmt.limit(1)).first() is not None

    def _clear_default(self, user_id, keep_id=None) -> None:
        stmt = update(Issuer).where(Issuer.user_id == user_id, Issuer.padrao.is_(True))
        if keep_id is not None:
            stmt = stmt.where(Issuer.id != keep_id)
        db.session.execute(stmt.values(padrao=False))

    def create(self, user_id, padrao: bool = False, **fields) -> Issuer:
        # só um emissor padrão por utilizador, no mesmo commit
        if padrao:
            self._clear_default(user_id)
        return super().create(user_id, padrao=bool(padrao), **fields)

    def set_default(self, issuer: Issuer) -> Issuer:
        self._clear_default(issuer.user_id, keep_id=issuer.id)
        issuer.padrao = True
        _commit()
        return issuer


class RecipientStore(_PartyStore):
    model = Recipient
    document_column = "destinatario_id"

    def find_existing(self, user_id, documento=None, nome_completo=None) -> Recipient | None:
        """Mesmo documento, ou mesmo nome quando não há documento."""
        if documento:
            cond = Recipient.documento == documento
        elif nome_completo:
            cond = Recipient.nome_completo == nome_completo
        else:
            return None
        return db.session.execute(
            select(Recipient).where(Recipient.user_id == user_id, cond).order_by(Recipient.id).limit(1)
        ).scalar_one_or_none()
