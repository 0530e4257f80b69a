# tests/test_documents.py
from faturacao_app.errors import ValidationError
from faturacao_app.services.numbering import gerar_numero_documento

import pytest


def test_numbering_is_sequential_per_user_and_type(db_session, user, other_user):
    assert gerar_numero_documento(user.id, "fatura") == "FAT-0001"
    assert gerar_numero_documento(user.id, "fatura") == "FAT-0002"
    assert gerar_numero_documento(user.id, "recibo") == "REC-0001"
    assert gerar_numero_documento(other_user.id, "fatura") == "FAT-0001"

def test_numbering_rejects_unknown_type(db_session, user):
    with pytest.raises(ValidationError):
        gerar_numero_documento(user.id, "nota")


def test_next_number_endpoint(logged_client):
    r = logged_client.get("/documentos/proximo-numero?tipo=cotacao")
    assert r.status_code == 200
    assert r.get_json()["data"] == {"numero": "COT-0001", "tipo": "cotacao"}
    assert logged_client.get("/documentos/proximo-numero?tipo=cotacao").get_json()["data"]["numero"] == "COT-0002"

def test_next_number_invalid_type(logged_client):
    r = logged_client.get("/documentos/proximo-numero?tipo=xpto")
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"

def test_next_number_requires_login(client):
    assert client.get("/documentos/proximo-numero?tipo=fatura").status_code == 401


def test_document_detail(api_client, make_payment, document_payload):
    client, headers = api_client
    p = make_payment(tipo_documento="recibo", valor="200.00")
    doc_id = client.post(
        "/payments/finalize",
        json={"payment_id": p.id, "document_payload": document_payload(numero="REC-0007", html_content="<p>x</p>")},
        headers=headers,
    ).get_json()["data"]["documento_id"]

    r = client.get(f"/documentos/{doc_id}")
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["id"] == doc_id
    assert data["numero"] == "REC-0007"
    assert data["tipo_documento"] == "recibo"
    assert "html_content" not in data
    assert data["html_generated_at"] is not None
    assert data["dados_especificos"]["valor_recebido"] == 200.0
    assert [i["id_original"] for i in data["itens"]] == [1, 2]

def test_document_detail_of_other_user(api_client, db_session, other_user):
    from faturacao_app.models.document import DocumentBase
    from faturacao_app.models.party import Issuer, Recipient
    e = Issuer(user_id=other_user.id, nome_empresa="Outra")
    d = Recipient(user_id=other_user.id, nome_completo="Alguém")
    db_session.add_all([e, d]); db_session.commit()
    doc = DocumentBase(user_id=other_user.id, emitente_id=e.id, destinatario_id=d.id, numero="FAT-1")
    db_session.add(doc); db_session.commit()

    client, _ = api_client
    r = client.get(f"/documentos/{doc.id}")
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "DOCUMENT_NOT_FOUND"
