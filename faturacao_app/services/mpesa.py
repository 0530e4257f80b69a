# faturacao_app/services/mpesa.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import logging
import re

import requests
from flask import current_app

from ..errors import GatewayError

log = logging.getLogger(__name__)

MPESA_URLS = {
    "sandbox": "https://api.sandbox.vm.co.mz",
    "production": "https://api.mpesa.vm.co.mz",
}

_MPESA_FORMATS = (
    re.compile(r"^2588[2-7][0-9]{7}$"),   # 25884XXXXXXX
    re.compile(r"^0?8[2-7][0-9]{7}$"),    # 84XXXXXXX / 084XXXXXXX
)


def validate_msisdn(msisdn: str) -> bool:
    digits = re.sub(r"\D", "", msisdn or "")
    return any(rx.match(digits) for rx in _MPESA_FORMATS)

def format_msisdn(msisdn: str) -> str:
    """Converte para o formato internacional (ex.: 842010505 -> 258842010505)."""
    digits = re.sub(r"\D", "", msisdn or "")
    if digits.startswith("258") and len(digits) == 12:
        return digits
    if len(digits) == 9 and re.match(r"^8[2-7]", digits):
        return f"258{digits}"
    if len(digits) == 10 and digits.startswith("08"):
        return f"258{digits[1:]}"
    return digits


class MpesaClient:
    def __init__(self, base_url: str, api_key: str, service_provider_code: str = "171717", timeout: float = 30):
        if not base_url or not api_key:
            raise GatewayError("MPESA_API_KEY ou MPESA_BASE_URL não configurados")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.service_provider_code = service_provider_code
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "MpesaClient":
        env = (config.get("MPESA_ENVIRONMENT") or "sandbox").lower()
        base_url = config.get("MPESA_BASE_URL") or MPESA_URLS.get(env, MPESA_URLS["sandbox"])
        return cls(
            base_url,
            config.get("MPESA_API_KEY") or "",
            config.get("MPESA_SERVICE_PROVIDER_CODE") or "171717",
            float(config.get("MPESA_TIMEOUT_SECONDS") or 30),
        )

    def c2b_payment(self, *, transaction_reference: str, customer_msisdn: str, amount,
                    third_party_reference: str | None = None) -> tuple[dict, dict]:
        """Cobra o cliente. Devolve (payload enviado, ``data`` da resposta)."""
        payload = {
            "transaction_reference": transaction_reference,
            "customer_msisdn": customer_msisdn,
            "amount": float(amount),
            "third_party_reference": third_party_reference,
            "service_provider_code": self.service_provider_code,
        }
        try:
            r = requests.post(
                f"{self.base_url}/c2b/payments",
                json=payload,
                headers={"X-API-Key": self.api_key, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.error("M-Pesa indisponível: %s", e)
            raise GatewayError(details=str(e)) from e

        if r.status_code >= 400:
            log.error("Erro na API M-Pesa: %s - %s", r.status_code, r.text[:500])
            raise GatewayError(details={"status": r.status_code})

        try:
            body = r.json() or {}
        except ValueError as e:
            raise GatewayError("Resposta M-Pesa inválida") from e
        if body.get("success") is False:
            raise GatewayError(body.get("message") or "Pagamento recusado pelo M-Pesa", details=body.get("data"))
        return payload, body.get("data") or {}


def get_mpesa_client() -> MpesaClient:
    return MpesaClient.from_config(current_app.config)
