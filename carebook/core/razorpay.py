"""Razorpay REST client."""

from typing import Any

import httpx
import structlog

from carebook.core.exceptions import (
    BadRequestException,
    ConfigurationException,
    SignatureInvalidException,
    UpstreamFailureException,
)
from carebook.core.webhook_security import compute_hmac_sha256, constant_time_compare

logger = structlog.get_logger(__name__)


class RazorpayClient:
    """
    Minimal async client for the Razorpay orders and payments API.

    Transport errors and timeouts surface as retryable
    ``UpstreamFailureException``; gateway 4xx responses surface as
    ``BadRequestException`` and must not be retried.
    """

    PAYMENT_METHOD = "razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Raises:
            ConfigurationException: If the key id or secret is not set
        """
        if not key_id:
            raise ConfigurationException("RAZORPAY_KEY_ID is not configured")
        if not key_secret:
            raise ConfigurationException("RAZORPAY_KEY_SECRET is not configured")

        self.key_id = key_id
        self._key_secret = key_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send one authenticated request and return the decoded JSON body."""
        try:
            async with httpx.AsyncClient(
                base_url=self.api_url,
                auth=(self.key_id, self._key_secret),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("razorpay_timeout", method=method, path=path, error=str(e))
            raise UpstreamFailureException("Payment gateway timed out", retryable=True) from e
        except httpx.HTTPError as e:
            logger.error("razorpay_transport_error", method=method, path=path, error=str(e))
            raise UpstreamFailureException("Payment gateway unreachable", retryable=True) from e

        if 400 <= response.status_code < 500:
            description = _error_description(response)
            logger.warning(
                "razorpay_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                description=description,
            )
            raise BadRequestException(f"Payment gateway rejected the request: {description}")

        if response.status_code >= 500:
            logger.error(
                "razorpay_server_error",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise UpstreamFailureException("Payment gateway failed", retryable=True)

        return response.json()

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> dict[str, Any]:
        """
        Create a pending order.

        Args:
            amount: Amount in minor currency units
            currency: ISO currency code
            receipt: Merchant receipt id (max 40 chars)
            notes: String key/value metadata echoed back on payment events

        Returns:
            Order entity (``id``, ``amount``, ``currency``, ``notes``, ...)
        """
        return await self._request(
            "POST",
            "/orders",
            json={"amount": amount, "currency": currency, "receipt": receipt, "notes": notes},
        )

    async def fetch_order(self, order_id: str) -> dict[str, Any]:
        """Fetch an order entity by id."""
        return await self._request("GET", f"/orders/{order_id}")

    async def fetch_payment(self, payment_id: str) -> dict[str, Any]:
        """Fetch a payment entity by id."""
        return await self._request("GET", f"/payments/{payment_id}")

    def checkout_signature(self, order_id: str, payment_id: str) -> str:
        """Signature checkout returns for a successful payment."""
        return compute_hmac_sha256(self._key_secret, f"{order_id}|{payment_id}".encode())

    def verify_checkout_signature(self, order_id: str, payment_id: str, signature: str) -> None:
        """
        Verify the signature the client received from checkout.

        Raises:
            SignatureInvalidException: If the signature does not match
        """
        if not constant_time_compare(self.checkout_signature(order_id, payment_id), signature):
            raise SignatureInvalidException("Payment signature verification failed")


def _error_description(response: httpx.Response) -> str:
    """Pull the gateway's error description out of an error response."""
    try:
        return str(response.json()["error"]["description"])
    except (ValueError, KeyError, TypeError):
        return response.reason_phrase or "unknown error"
