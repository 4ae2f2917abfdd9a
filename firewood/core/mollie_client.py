# firewood/core/mollie_client.py
"""
Minimal Mollie Payments API (v2) client.

Only the two calls the shop needs:
  - create a payment (checkout session) for an order
  - fetch a payment by id (webhook reconciliation)

Every call is a single attempt with a bounded timeout; failures surface
as PaymentGatewayError so services can map them to a 502.
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import httpx

from firewood.core.config import get_settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(RuntimeError):
    """Mollie unreachable, misconfigured or rejected the request."""


@dataclass(frozen=True)
class GatewayPayment:
    id: str
    status: str
    checkout_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def pence_to_amount(pence: int) -> str:
    """
    Mollie wants a string with exactly two decimals: 1234 -> '12.34'.
    """
    return f"{pence // 100}.{pence % 100:02d}"


def _parse_payment(data: dict[str, Any]) -> GatewayPayment:
    links = data.get("_links") or {}
    checkout = links.get("checkout") or {}
    metadata = data.get("metadata")
    return GatewayPayment(
        id=str(data.get("id") or ""),
        status=str(data.get("status") or ""),
        checkout_url=checkout.get("href"),
        metadata=metadata if isinstance(metadata, dict) else {},
    )


class MollieClient:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.mollie.com/v2",
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self.api_key:
            raise PaymentGatewayError("MOLLIE_API_KEY is not configured")

        try:
            with httpx.Client(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            ) as client:
                resp = client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Mollie request failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.is_error:
            msg = (
                (body.get("detail") or body.get("title"))
                if isinstance(body, dict)
                else None
            ) or resp.reason_phrase
            logger.warning("Mollie %s %s -> %s", method, path, resp.status_code)
            raise PaymentGatewayError(f"Mollie HTTP {resp.status_code}: {msg}")

        if not isinstance(body, dict):
            raise PaymentGatewayError("Mollie returned a non-object response")

        return body

    def create_payment(
        self,
        amount_pence: int,
        currency: str,
        description: str,
        redirect_url: str,
        metadata: dict[str, Any],
        webhook_url: str | None = None,
    ) -> GatewayPayment:
        payload: dict[str, Any] = {
            "amount": {"currency": currency, "value": pence_to_amount(amount_pence)},
            "description": description,
            "redirectUrl": redirect_url,
            "metadata": metadata,
        }
        # Mollie rejects unreachable webhook hosts (localhost), so omit instead
        if webhook_url:
            payload["webhookUrl"] = webhook_url

        data = self._request("POST", "/payments", json=payload)
        return _parse_payment(data)

    def get_payment(self, payment_id: str) -> GatewayPayment:
        data = self._request("GET", f"/payments/{payment_id}")
        return _parse_payment(data)


@lru_cache
def get_payment_gateway() -> MollieClient:
    """
    FastAPI dependency for the shared Mollie client.

    Missing MOLLIE_API_KEY is reported on first use, not at startup, so
    bank-transfer and cash orders keep working without it.
    """
    settings = get_settings()
    return MollieClient(
        api_key=settings.MOLLIE_API_KEY,
        base_url=settings.MOLLIE_API_BASE,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
