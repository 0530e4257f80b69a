# tests/test_rate_limit.py
from faturacao_app.services.rate_limit import RateLimiter, RateLimiterRegistry


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_allows_up_to_limit_then_rejects():
    clock = FakeClock(1000)
    rl = RateLimiter(60_000, clock=clock)
    assert [rl.check(3, "1.2.3.4") for _ in range(3)] == [False, False, False]
    assert rl.check(3, "1.2.3.4") is True

def test_rejected_requests_do_not_extend_window():
    clock = FakeClock(0)
    rl = RateLimiter(1000, clock=clock)
    rl.check(1, "a")
    clock.now = 900
    assert rl.check(1, "a") is True
    # só o primeiro pedido (t=0) conta; ao passar do intervalo libera
    clock.now = 1001
    assert rl.check(1, "a") is False

def test_window_slides_after_interval():
    clock = FakeClock(0)
    rl = RateLimiter(60_000, clock=clock)
    for _ in range(5):
        rl.check(5, "x")
    assert rl.check(5, "x") is True
    clock.now = 60_001
    assert rl.check(5, "x") is False

def test_identifiers_are_independent():
    rl = RateLimiter(60_000, clock=FakeClock(0))
    assert rl.check(1, "a") is False
    assert rl.check(1, "a") is True
    assert rl.check(1, "b") is False

def test_reset_single_identifier():
    rl = RateLimiter(60_000, clock=FakeClock(0))
    rl.check(1, "a"); rl.check(1, "b")
    rl.reset("a")
    assert rl.check(1, "a") is False
    assert rl.check(1, "b") is True

def test_registry_shares_limiter_per_interval():
    reg = RateLimiterRegistry(clock=FakeClock(0))
    assert reg.for_interval(60_000) is reg.for_interval(60_000)
    assert reg.for_interval(60_000) is not reg.for_interval(1_000)


def test_endpoint_returns_429_after_limit(client):
    # /auth/register aceita 5 por minuto
    for _ in range(5):
        r = client.post("/auth/register", json={})
        assert r.status_code == 400
    r = client.post("/auth/register", json={})
    assert r.status_code == 429
    body = r.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "RATE_LIMITED"

def test_rate_limit_uses_forwarded_for(client):
    for _ in range(5):
        client.post("/auth/register", json={}, headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"})
    assert client.post("/auth/register", json={}, headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
    assert client.post("/auth/register", json={}, headers={"X-Forwarded-For": "10.0.0.2"}).status_code == 400

def test_rate_limit_runs_before_auth(client):
    # anónimo: 3 x 401, depois 429 sem passar pela autenticação
    codes = [client.post("/payments/retry").status_code for _ in range(4)]
    assert codes == [401, 401, 401, 429]
