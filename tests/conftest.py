# tests/conftest.py
# -*- coding: utf-8 -*-
import os
import sys
import uuid
import pathlib
import importlib
import tempfile
from decimal import Decimal

import pytest


# --------------------------------------------------------------------------------------
# Limpeza de arquivos de DB residuais (ex.: test.sqlite)
# --------------------------------------------------------------------------------------
@pytest.fixture(scope="session", autouse=True)
def _cleanup_test_sqlite_files():
    for fname in ("test.sqlite", "test.db"):
        if os.path.exists(fname):
            try: os.remove(fname)
            except OSError: pass
    yield
    for fname in ("test.sqlite", "test.db"):
        if os.path.exists(fname):
            try: os.remove(fname)
            except OSError: pass

# =====================================================================================
# Localização do projeto (garante que "faturacao_app" esteja no sys.path)
# =====================================================================================
def _add_project_root():
    here = pathlib.Path(__file__).resolve()
    for base in [here.parent, here.parent.parent, pathlib.Path.cwd()]:
        for candidate in [base, *base.parents]:
            if (candidate / "faturacao_app").is_dir():
                if str(candidate) not in sys.path:
                    sys.path.insert(0, str(candidate))
                return candidate
    return None


PROJECT_ROOT = _add_project_root()


# =====================================================================================
# Ambiente de testes unitários (sem serviços externos)
# =====================================================================================
@pytest.fixture(autouse=True, scope="session")
def _testing_env():
    os.environ["APP_ENV"] = "testing"
    os.environ["FLASK_ENV"] = "testing"
    os.environ["TESTING"] = "1"
    os.environ["DISABLE_SCHEDULER"] = "1"
    os.environ.setdefault("SECRET_KEY", "testing-secret")
    yield


def _import(modpath, name=None):
    mod = importlib.import_module(modpath)
    return getattr(mod, name) if name else mod


# =====================================================================================
# App Flask com SQLite temporário e schema criado uma vez por sessão
# =====================================================================================
@pytest.fixture(scope="session")
def app(_testing_env):
    fd, db_path = tempfile.mkstemp(prefix="faturacao_test_", suffix=".sqlite")
    os.close(fd)

    # URI com flags para reduzir locks
    os.environ["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{db_path}?check_same_thread=0&timeout=30"

    try:
        create_app = _import("faturacao_app", "create_app")
        app = create_app()
    except Exception as e:
        raise RuntimeError(f"Falha ao importar a app Flask: {e} (sys.path={sys.path})")

    from faturacao_app.extensions import db
    from sqlalchemy import event

    # PRAGMAs sempre que o engine abrir uma conexão
    def _set_sqlite_pragmas(dbapi_conn, _conn_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    with app.app_context():
        event.listen(db.engine, "connect", _set_sqlite_pragmas)
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
    try:
        os.remove(db_path)
    except OSError:
        pass


# =====================================================================================
# Estado em memória (rate limit) zerado a cada teste
# =====================================================================================
@pytest.fixture(autouse=True)
def _reset_rate_limits(app):
    app.extensions["rate_limiters"].reset()
    yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    from faturacao_app.extensions import db
    with app.app_context():
        try:
            yield db.session
        finally:
            db.session.rollback()
            db.session.close()


# =====================================================================================
# Mocks de serviços externos: requests.post/get (sem rede)
# =====================================================================================
class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text="OK"):
        self.status_code = status_code
        self._json = json_data if json_data is not None else {}
        self.text = text

    def json(self):
        return self._json


@pytest.fixture(autouse=True)
def _mock_externals(monkeypatch):
    import requests
    monkeypatch.setattr(requests, "get", lambda *a, **k: FakeResponse(), raising=False)
    monkeypatch.setattr(requests, "post", lambda *a, **k: FakeResponse(), raising=False)
    yield


# =====================================================================================
# Factories
# =====================================================================================
def _mk_user(db_session, name="User"):
    from faturacao_app.models.user import User
    u = User(name=name, email=f"{name.lower()}+{uuid.uuid4().hex[:6]}@test.com", company="ACME")
    u.set_password("secret123")
    db_session.add(u); db_session.commit()
    return u


@pytest.fixture
def user(db_session):
    return _mk_user(db_session, "User")


@pytest.fixture
def other_user(db_session):
    return _mk_user(db_session, "Other")


@pytest.fixture
def parties(db_session, user):
    """(emissor, destinatario) do utilizador."""
    from faturacao_app.models.party import Issuer, Recipient
    emissor = Issuer(user_id=user.id, nome_empresa="Loja Central Lda", documento="400123456",
                     pais="Moçambique", cidade="Maputo", bairro="Polana")
    dest = Recipient(user_id=user.id, nome_completo="Maria Cossa", email="maria@test.com")
    db_session.add_all([emissor, dest]); db_session.commit()
    return emissor, dest


@pytest.fixture
def make_payment(db_session, user):
    from faturacao_app.models.payment import Payment

    def _make(status="aguardando_documento", tipo_documento="fatura", valor="1500.00",
              retry_count=None, meta=None, owner=None, **extra):
        p = Payment(
            user_id=(owner or user).id,
            tipo_documento=tipo_documento,
            status=status,
            valor=Decimal(valor),
            moeda="MZN",
            external_id=f"ORDER{uuid.uuid4().hex[:8]}",
            retry_count=retry_count,
            meta=meta or {},
            **extra,
        )
        db_session.add(p); db_session.commit()
        return p
    return _make


@pytest.fixture
def document_payload(parties):
    emissor, dest = parties

    def _payload(**overrides):
        data = {
            "emitente_id": emissor.id,
            "destinatario_id": dest.id,
            "numero": f"FAT-{uuid.uuid4().hex[:6]}",
            "itens": [
                {"quantidade": 2, "descricao": "Consultoria", "preco_unitario": 500},
                {"descricao": "Deslocação", "preco_unitario": 500},
            ],
        }
        data.update(overrides)
        return data
    return _payload


# =====================================================================================
# Clientes logados (+ token CSRF)
# =====================================================================================
@pytest.fixture
def logged_client(client, user):
    with client.session_transaction() as sess:
        sess["user"] = {"id": user.id, "email": user.email}
    return client


def fetch_csrf(client) -> str:
    r = client.get("/auth/csrf")
    assert r.status_code == 200
    return r.get_json()["csrfToken"]


@pytest.fixture
def api_client(logged_client):
    """Cliente logado que já tem cookie CSRF; devolve (client, headers)."""
    token = fetch_csrf(logged_client)
    return logged_client, {"X-CSRF-Token": token}


@pytest.fixture
def reload(db_session):
    """Relê a linha depois de um pedido (descarta o estado em cache da sessão)."""
    def _reload(model, pk):
        db_session.expire_all()
        return db_session.get(model, pk)
    return _reload
