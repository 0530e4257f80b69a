# faturacao_app/blueprints/documents.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal

from flask import Blueprint, request

from ..decorators import api_guard
from ..errors import DocumentNotFound, success_response
from ..models.document import DocumentItem
from ..services.numbering import gerar_numero_documento
from ..services.stores import DocumentStore

bp = Blueprint("documents", __name__, url_prefix="/documentos")


def _plain(v):
    if isinstance(v, Decimal):
        return float(v)
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    return v

def _row(obj, *skip) -> dict:
    return {c.name: _plain(getattr(obj, c.key)) for c in obj.__table__.columns if c.name not in skip}


@bp.route("/proximo-numero", methods=["GET"])
@api_guard(auth=True, rate={"limit": 30})
def next_number(identity):
    tipo = (request.args.get("tipo") or "").strip().lower()
    numero = gerar_numero_documento(identity["id"], tipo)
    return success_response({"numero": numero, "tipo": tipo})

@bp.route("/<int:documento_id>", methods=["GET"])
@api_guard(auth=True)
def detail(documento_id: int, identity):
    store = DocumentStore()
    doc = store.get_for_user(documento_id, identity["id"])
    if doc is None:
        raise DocumentNotFound()
    tipo, specialized = store.specialized_for(doc)
    itens = [_row(it, "documento_id") for it in doc.itens.order_by(DocumentItem.id_original)]
    data = _row(doc, "html_content")
    data.update(
        tipo_documento=tipo,
        dados_especificos=_row(specialized, "id") if specialized is not None else None,
        itens=itens,
    )
    return success_response(data)
