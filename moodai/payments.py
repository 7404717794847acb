"""
Razorpay payment gateway client.

Creates orders for consultation bookings and verifies the signature Razorpay
attaches to a successful checkout.
"""

import hashlib
import hmac
import logging
import time
from typing import Any

import httpx

from .errors import PaymentError

logger = logging.getLogger(__name__)

ORDER_DESCRIPTION = "MoodAI 1-on-1 Wellness Consultation"


def to_minor_units(amount: float) -> int:
    """Convert an amount in rupees to paise."""
    return int(round(amount * 100))


def from_minor_units(amount: int) -> float:
    return amount / 100


def sign(order_id: str, payment_id: str, key_secret: str) -> str:
    """Checkout signature: hex HMAC-SHA256 of ``order_id|payment_id``."""
    body = f"{order_id}|{payment_id}".encode()
    return hmac.new(key_secret.encode(), body, hashlib.sha256).hexdigest()


class PaymentGateway:
    """Thin async client over the Razorpay Orders API."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = "https://api.razorpay.com/v1",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.key_id = key_id
        self._key_secret = key_secret
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    async def create_order(self, amount: float, currency: str = "INR") -> dict[str, Any]:
        """
        Create a payment order.

        Args:
            amount: Amount in major units (rupees)
            currency: ISO currency code

        Returns:
            The order object returned by the gateway

        Raises:
            PaymentError: if the gateway is unreachable or rejects the order
        """
        payload = {
            "amount": to_minor_units(amount),
            "currency": currency,
            "receipt": f"receipt_{int(time.time() * 1000)}",
            "notes": {"description": ORDER_DESCRIPTION},
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self._base_url}/orders",
                    auth=(self.key_id, self._key_secret),
                    json=payload,
                )
                response.raise_for_status()
                order = response.json()
        except httpx.HTTPStatusError as e:
            raise PaymentError(
                f"Order creation rejected: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise PaymentError(f"Order creation failed: {e}") from e

        logger.info("Created payment order %s for %s %s", order.get("id"), amount, currency)
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Check a checkout callback signature in constant time."""
        expected = sign(order_id, payment_id, self._key_secret)
        return hmac.compare_digest(expected, signature)
