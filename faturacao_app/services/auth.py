# faturacao_app/services/auth.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout

from flask import current_app, session, copy_current_request_context, has_request_context

from ..extensions import db
from ..models.user import User

log = logging.getLogger(__name__)


class SessionAuthProvider:
    """Lê a identidade da sessão Flask e confirma o utilizador na base."""

    def get_user(self) -> dict | None:
        data = session.get("user") or {}
        user_id = data.get("id")
        if not user_id:
            return None
        u = db.session.get(User, int(user_id))
        if not u or not u.active:
            return None
        return u.identity()


class AuthResolver:
    def __init__(self, provider=None, timeout: float = 5.0, pool_size: int = 8):
        self.provider = provider or SessionAuthProvider()
        self.timeout = timeout
        self.pool_size = max(1, int(pool_size))
        self._executor = ThreadPoolExecutor(max_workers=self.pool_size, thread_name_prefix="auth")

    def resolve(self) -> dict | None:
        """Identidade atual ou None (inclui timeout do provedor)."""
        call = self.provider.get_user
        if has_request_context():
            call = copy_current_request_context(call)
        future = self._executor.submit(call)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            log.warning("Provedor de autenticação excedeu %.1fs; pedido tratado como anónimo", self.timeout)
            return None
        except Exception:
            log.exception("Falha ao resolver identidade")
            return None


def _from_config(config, provider=None) -> AuthResolver:
    return AuthResolver(
        provider,
        timeout=float(config.get("AUTH_TIMEOUT_SECONDS", 5)),
        pool_size=int(config.get("AUTH_POOL_SIZE", 8)),
    )

def init_auth(app, provider=None):
    app.extensions["auth"] = _from_config(app.config, provider)

def get_auth_resolver() -> AuthResolver:
    resolver = current_app.extensions.get("auth")
    if resolver is None:
        resolver = _from_config(current_app.config)
        current_app.extensions["auth"] = resolver
    return resolver

def login_user(u: User) -> None:
    session["user"] = {"id": u.id, "email": u.email, "name": u.name}

def logout_user() -> None:
    session.clear()
