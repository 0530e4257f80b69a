# faturacao_app/services/rate_limit.py
# -*- coding: utf-8 -*-
"""Rate limit em janela deslizante, em memória do processo.

O estado é local a cada processo: instâncias diferentes têm limites
independentes. Para vários workers, troque o dicionário por um cache
partilhado com TTL mantendo a mesma interface ``check``.
"""
from __future__ import annotations
import threading
import time
from typing import Callable

from flask import current_app


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class RateLimiter:
    def __init__(self, interval_ms: int = 60_000, clock: Callable[[], float] = _now_ms):
        self.interval_ms = interval_ms
        self._clock = clock
        self._hits: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def check(self, limit: int, identifier: str) -> bool:
        """True quando a requisição deve ser rejeitada."""
        now = self._clock()
        window_start = now - self.interval_ms
        with self._lock:
            hits = [ts for ts in self._hits.get(identifier, ()) if ts > window_start]
            if len(hits) >= limit:
                self._hits[identifier] = hits
                return True
            hits.append(now)
            self._hits[identifier] = hits
            return False

    def reset(self, identifier: str | None = None) -> None:
        with self._lock:
            if identifier is None:
                self._hits.clear()
            else:
                self._hits.pop(identifier, None)


class RateLimiterRegistry:
    """Um limitador por intervalo, partilhado pelas rotas da aplicação."""

    def __init__(self, clock: Callable[[], float] = _now_ms):
        self._clock = clock
        self._limiters: dict[int, RateLimiter] = {}
        self._lock = threading.Lock()

    def for_interval(self, interval_ms: int) -> RateLimiter:
        with self._lock:
            limiter = self._limiters.get(interval_ms)
            if limiter is None:
                limiter = RateLimiter(interval_ms, clock=self._clock)
                self._limiters[interval_ms] = limiter
            return limiter

    def reset(self) -> None:
        with self._lock:
            for limiter in self._limiters.values():
                limiter.reset()


def init_rate_limiters(app, clock: Callable[[], float] = _now_ms):
    app.extensions["rate_limiters"] = RateLimiterRegistry(clock=clock)

def get_rate_limiters() -> RateLimiterRegistry:
    registry = current_app.extensions.get("rate_limiters")
    if registry is None:
        registry = RateLimiterRegistry()
        current_app.extensions["rate_limiters"] = registry
    return registry
