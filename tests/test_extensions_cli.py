# tests/test_extensions_cli.py
from faturacao_app.extensions import schedule_retry_job, scheduler


def test_init_db_cli_runs(app):
    runner = app.test_cli_runner()
    res = runner.invoke(args=["init-db"])
    assert res.exit_code == 0
    assert "Tabelas criadas" in res.output

def test_retry_payments_cli_runs(app):
    runner = app.test_cli_runner()
    res = runner.invoke(args=["retry-payments", "--max-users", "5"])
    assert res.exit_code == 0
    assert "Processados:" in res.output

def test_retry_job_disabled_by_default(app):
    assert schedule_retry_job(app) is None

def test_retry_job_is_scheduled(app, monkeypatch):
    monkeypatch.setitem(app.config, "RETRY_SCHEDULER_MINUTES", 15)
    job = schedule_retry_job(app)
    try:
        assert job.id == "retry_payments"
    finally:
        scheduler.remove_job("retry_payments")

def test_cors_preflight(client):
    r = client.open("/payments/finalize", method="OPTIONS")
    assert r.status_code == 204
    assert r.headers["Access-Control-Allow-Credentials"] == "true"
    assert "X-CSRF-Token" in r.headers["Access-Control-Allow-Headers"]
    assert r.headers["Access-Control-Allow-Methods"] == "OPTIONS, POST"

def test_cors_methods_follow_the_route(client):
    r = client.open("/emissores/1", method="OPTIONS")
    assert r.headers["Access-Control-Allow-Methods"] == "DELETE, GET, OPTIONS, PUT"
    r = client.open("/emissores/1/padrao", method="OPTIONS")
    assert r.headers["Access-Control-Allow-Methods"] == "OPTIONS, PATCH"
    r = client.get("/auth/csrf")
    assert r.headers["Access-Control-Allow-Methods"] == "GET, OPTIONS"
