# faturacao_app/services/numbering.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import StoreError, ValidationError
from ..extensions import db
from ..models.document import DocumentSequence

PREFIXOS = {"fatura": "FAT", "cotacao": "COT", "recibo": "REC"}


def gerar_numero_documento(user_id: int, tipo_documento: str) -> str:
    """Próximo número sequencial do utilizador para o tipo (ex.: FAT-0007)."""
    prefixo = PREFIXOS.get(tipo_documento)
    if not prefixo:
        raise ValidationError("Tipo de documento inválido", details={"provided": tipo_documento})

    for _ in range(3):
        try:
            seq = db.session.execute(
                select(DocumentSequence)
                .where(DocumentSequence.user_id == user_id, DocumentSequence.tipo_documento == tipo_documento)
                .with_for_update()
            ).scalar_one_or_none()
            if seq is None:
                seq = DocumentSequence(user_id=user_id, tipo_documento=tipo_documento, ultimo_numero=0)
                db.session.add(seq)
            seq.ultimo_numero = (seq.ultimo_numero or 0) + 1
            numero = seq.ultimo_numero
            db.session.commit()
            return f"{prefixo}-{numero:04d}"
        except IntegrityError:
            # outra requisição criou a sequência ao mesmo tempo
            db.session.rollback()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreError(str(e)) from e
    raise StoreError("Não foi possível reservar número de documento")
