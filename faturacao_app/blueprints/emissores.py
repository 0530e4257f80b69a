# faturacao_app/blueprints/emissores.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request

from ..decorators import api_guard
from ..errors import IssuerDuplicate, IssuerNotFound, PartyInUse, success_response
from ..schemas import IssuerPayload, IssuerUpdate
from ..services.audit import get_audit
from ..services.stores import IssuerStore

bp = Blueprint("emissores", __name__, url_prefix="/emissores")


def _owned(store: IssuerStore, emissor_id: int, identity):
    emissor = store.get_for_user(emissor_id, identity["id"])
    if emissor is None:
        raise IssuerNotFound()
    return emissor


@bp.route("", methods=["GET"])
@api_guard(auth=True)
def listar(identity):
    emissores = IssuerStore().list_for_user(identity["id"])
    return success_response({
        "emissores": [e.to_dict() for e in emissores],
        "total": len(emissores),
    })

@bp.route("", methods=["POST"])
@api_guard(auth=True, rate={"limit": 20}, csrf=True, audit_label="emissor_create")
def criar(identity):
    data = IssuerPayload.from_dict(request.get_json(silent=True))
    store = IssuerStore()
    if store.documento_taken(identity["id"], data.documento):
        raise IssuerDuplicate(details={"documento": data.documento})

    emissor = store.create(identity["id"], **data.model_dump())
    get_audit().log(
        "emissor_create", f"Emissor {emissor.nome_empresa} criado",
        resource_type="emissor", resource_id=emissor.id, details={"padrao": emissor.padrao},
    )
    return success_response(emissor.to_dict(), "Empresa criada com sucesso", status=201)

@bp.route("/padrao", methods=["GET"])
@api_guard(auth=True)
def padrao(identity):
    emissor = IssuerStore().default_for(identity["id"])
    return success_response(emissor.to_dict() if emissor else None)

@bp.route("/<int:emissor_id>", methods=["GET"])
@api_guard(auth=True)
def detalhe(emissor_id: int, identity):
    return success_response(_owned(IssuerStore(), emissor_id, identity).to_dict())

@bp.route("/<int:emissor_id>", methods=["PUT"])
@api_guard(auth=True, rate={"limit": 20}, csrf=True, audit_label="emissor_update")
def atualizar(emissor_id: int, identity):
    store = IssuerStore()
    emissor = _owned(store, emissor_id, identity)
    changes = IssuerUpdate.from_dict(request.get_json(silent=True)).model_dump(exclude_unset=True)
    documento = changes.get("documento")
    if documento and store.documento_taken(identity["id"], documento, exclude_id=emissor.id):
        raise IssuerDuplicate(details={"documento": documento})

    emissor = store.update(emissor, **changes)
    return success_response(emissor.to_dict(), "Empresa atualizada com sucesso")

@bp.route("/<int:emissor_id>", methods=["DELETE"])
@api_guard(auth=True, rate={"limit": 20}, csrf=True, audit_label="emissor_delete")
def remover(emissor_id: int, identity):
    store = IssuerStore()
    emissor = _owned(store, emissor_id, identity)
    if store.in_use(emissor):
        raise PartyInUse("Não é possível excluir esta empresa pois existem documentos vinculados a ela")

    store.delete(emissor)
    get_audit().log("emissor_delete", f"Emissor {emissor_id} removido", resource_type="emissor", resource_id=emissor_id)
    return success_response({"id": emissor_id}, "Empresa excluída com sucesso")

@bp.route("/<int:emissor_id>/padrao", methods=["PATCH"])
@api_guard(auth=True, rate={"limit": 20}, csrf=True, audit_label="emissor_padrao")
def definir_padrao(emissor_id: int, identity):
    store = IssuerStore()
    emissor = store.set_default(_owned(store, emissor_id, identity))
    return success_response(emissor.to_dict(), "Empresa padrão definida com sucesso")
