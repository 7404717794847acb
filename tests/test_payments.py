"""Tests for the Razorpay gateway client."""

import hashlib
import hmac
import json

import httpx
import pytest

from moodai.errors import PaymentError
from moodai.payments import ORDER_DESCRIPTION, PaymentGateway, sign, to_minor_units


def gateway(handler) -> PaymentGateway:
    return PaymentGateway(
        "rzp_key",
        "rzp_secret",
        base_url="https://pay.test/v1",
        transport=httpx.MockTransport(handler),
    )


class TestSignature:
    def test_signs_order_and_payment_ids(self):
        expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
        assert sign("order_1", "pay_1", "secret") == expected

    def test_verify(self):
        gw = PaymentGateway("rzp_key", "rzp_secret")
        good = sign("order_1", "pay_1", "rzp_secret")
        assert gw.verify_signature("order_1", "pay_1", good)
        assert not gw.verify_signature("order_1", "pay_2", good)
        assert not gw.verify_signature("order_1", "pay_1", sign("order_1", "pay_1", "other"))
        assert not gw.verify_signature("order_1", "pay_1", "")

    def test_minor_units(self):
        assert to_minor_units(999) == 99900
        assert to_minor_units(19.99) == 1999


class TestCreateOrder:
    async def test_posts_order(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"id": "order_1", "amount": 99900, "currency": "INR"}
            )

        order = await gateway(handler).create_order(999)

        assert order["id"] == "order_1"
        assert seen["url"] == "https://pay.test/v1/orders"
        assert seen["auth"].startswith("Basic ")
        assert seen["body"]["amount"] == 99900
        assert seen["body"]["currency"] == "INR"
        assert seen["body"]["receipt"].startswith("receipt_")
        assert seen["body"]["notes"] == {"description": ORDER_DESCRIPTION}

    async def test_rejected_order(self):
        gw = gateway(lambda r: httpx.Response(401, json={"error": "bad key"}))
        with pytest.raises(PaymentError, match="401"):
            await gw.create_order(999)

    async def test_unreachable_gateway(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PaymentError):
            await gateway(handler).create_order(999)
