# faturacao_app/blueprints/destinatarios.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request

from ..decorators import api_guard
from ..errors import PartyInUse, RecipientNotFound, success_response
from ..schemas import RecipientPayload, RecipientUpdate
from ..services.stores import RecipientStore

bp = Blueprint("destinatarios", __name__, url_prefix="/destinatarios")


def _owned(store: RecipientStore, destinatario_id: int, identity):
    dest = store.get_for_user(destinatario_id, identity["id"])
    if dest is None:
        raise RecipientNotFound()
    return dest


@bp.route("", methods=["GET"])
@api_guard(auth=True)
def listar(identity):
    destinatarios = RecipientStore().list_for_user(identity["id"])
    return success_response({
        "destinatarios": [d.to_dict() for d in destinatarios],
        "total": len(destinatarios),
    })

@bp.route("", methods=["POST"])
@api_guard(auth=True, rate={"limit": 20}, csrf=True, audit_label="destinatario_create")
def criar(identity):
    """Reaproveita o destinatário com o mesmo documento (ou nome) em vez de duplicar."""
    data = RecipientPayload.from_dict(request.get_json(silent=True))
    store = RecipientStore()
    existing = store.find_existing(identity["id"], data.documento, data.nome_completo)
    if existing is not None:
        return success_response(existing.to_dict(), "Destinatário já existente")

    dest = store.create(identity["id"], **data.model_dump())
    return success_response(dest.to_dict(), "Destinatário criado com sucesso", status=201)

@bp.route("/<int:destinatario_id>", methods=["GET"])
@api_guard(auth=True)
def detalhe(destinatario_id: int, identity):
    return success_response(_owned(RecipientStore(), destinatario_id, identity).to_dict())

@bp.route("/<int:destinatario_id>", methods=["PUT"])
@api_guard(auth=True, rate={"limit": 20}, csrf=True, audit_label="destinatario_update")
def atualizar(destinatario_id: int, identity):
    store = RecipientStore()
    dest = _owned(store, destinatario_id, identity)
    changes = RecipientUpdate.from_dict(request.get_json(silent=True)).model_dump(exclude_unset=True)
    return success_response(store.update(dest, **changes).to_dict(), "Destinatário atualizado com sucesso")

@bp.route("/<int:destinatario_id>", methods=["DELETE"])
@api_guard(auth=True, rate={"limit": 20}, csrf=True, audit_label="destinatario_delete")
def remover(destinatario_id: int, identity):
    store = RecipientStore()
    dest = _owned(store, destinatario_id, identity)
    if store.in_use(dest):
        raise PartyInUse("Não é possível excluir este destinatário pois existem documentos vinculados a ele")
    store.delete(dest)
    return success_response({"id": destinatario_id}, "Destinatário excluído com sucesso")
