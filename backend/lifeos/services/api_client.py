"""
Async client for the LifeOS backend REST API.

Every response is a ``{success, message, data}`` envelope. Failed calls raise
``ApiError`` with the full error envelope attached as ``response`` so the
error classifier can inspect the structured ``errors`` array.

Usage:
    client = LifeOSClient(Session(token="..."))
    subscription = await client.get_subscription()
    await client.close()
"""

from typing import Any

import httpx
import structlog

from lifeos.auth import Session
from lifeos.config import Settings, get_settings
from lifeos.constants import (
    API_ERROR_FALLBACK,
    PAYMENT_ORDER_ENDPOINT,
    PAYMENT_VERIFY_ENDPOINT,
    USER_SUBSCRIPTION_CANCEL_ENDPOINT,
    USER_SUBSCRIPTION_ENDPOINT,
)
from lifeos.errors import ApiError
from lifeos.models.billing import (
    BillingCycle,
    PaymentOrder,
    PaymentVerificationResponse,
    PaymentVerificationResult,
    PlanTier,
    UserSubscription,
)

logger = structlog.get_logger(__name__)


class LifeOSClient:
    """Thin authenticated wrapper around the LifeOS REST API."""

    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            session:   Session providing the bearer token.
            settings:  Application settings (base URL, timeout).
            transport: Optional httpx transport, e.g. an ASGI app in tests.
        """
        self.session = session
        self.settings = settings or get_settings()
        self._client = httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.session.require_token()}"}

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict:
        """
        Send an authenticated request and return the decoded envelope.

        Raises:
            ApiError: Missing token, non-JSON body, or a non-2xx response.
            httpx.TransportError: Network failures are not wrapped.
        """
        response = await self._client.request(
            method, path, params=params, json=json, headers=self._headers()
        )

        try:
            data = response.json()
        except ValueError:
            text = response.text
            raise ApiError(
                text or f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        if not response.is_success:
            envelope = data if isinstance(data, dict) else {"message": str(data)}
            logger.debug(
                "api_request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise ApiError(
                envelope.get("message") or API_ERROR_FALLBACK,
                status_code=response.status_code,
                response=envelope,
            )

        if not isinstance(data, dict):
            raise ApiError(f"Unexpected response body from {path}", status_code=response.status_code)
        return data

    async def list_resource(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a resource collection and return the envelope's ``data`` field."""
        payload = await self.request("GET", path, params=params)
        return payload.get("data")

    async def get_subscription(self) -> UserSubscription:
        payload = await self.request("GET", USER_SUBSCRIPTION_ENDPOINT)
        return UserSubscription.model_validate(payload.get("data") or {})

    async def cancel_subscription(self) -> UserSubscription:
        payload = await self.request("POST", USER_SUBSCRIPTION_CANCEL_ENDPOINT)
        return UserSubscription.model_validate(payload.get("data") or {})

    async def create_payment_order(
        self, plan: PlanTier, billing_cycle: BillingCycle
    ) -> PaymentOrder:
        payload = await self.request(
            "POST",
            PAYMENT_ORDER_ENDPOINT,
            json={"plan": plan.value, "billingCycle": billing_cycle.value},
        )
        return PaymentOrder.model_validate(payload.get("data"))

    async def verify_payment(
        self, result: PaymentVerificationResult
    ) -> PaymentVerificationResponse:
        payload = await self.request(
            "POST",
            PAYMENT_VERIFY_ENDPOINT,
            json=result.model_dump(mode="json", by_alias=True),
        )
        return PaymentVerificationResponse.model_validate(payload.get("data"))
