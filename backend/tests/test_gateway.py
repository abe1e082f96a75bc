"""
Tests for the Razorpay client: signatures, order creation and error mapping.
"""
import json

import httpx
import pytest

from temple_donations.errors import ConfigurationError, GatewayError
from temple_donations.services.gateway_service import RazorpayGateway

from conftest import sign


def _install_transport(monkeypatch, settings, handler):
    def fake_client():
        return httpx.Client(
            base_url=settings.RAZORPAY_API_BASE,
            auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET),
            transport=httpx.MockTransport(handler),
        )
    monkeypatch.setattr(RazorpayGateway, "_client", staticmethod(fake_client))


class TestSignature:

    def test_valid_signature(self, settings):
        assert RazorpayGateway.verify_signature("order_1", "pay_1", sign("order_1", "pay_1"))

    def test_tampered_signature(self, settings):
        assert not RazorpayGateway.verify_signature("order_1", "pay_2", sign("order_1", "pay_1"))
        assert not RazorpayGateway.verify_signature("order_1", "pay_1", sign("order_1", "pay_1", secret="other"))
        assert not RazorpayGateway.verify_signature("order_1", "pay_1", "")

    def test_missing_secret(self, settings, monkeypatch):
        monkeypatch.setattr(settings, "RAZORPAY_KEY_SECRET", "")
        with pytest.raises(ConfigurationError):
            RazorpayGateway.verify_signature("order_1", "pay_1", "abc")


class TestOrders:

    def test_create_order_sends_paise(self, settings, monkeypatch):
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "order_XYZ", "amount": captured["body"]["amount"]})

        _install_transport(monkeypatch, settings, handler)
        order = RazorpayGateway.create_order(500.5, "receipt_" + "x" * 60, {"purpose": "Seva"})

        assert order["id"] == "order_XYZ"
        assert captured["path"].endswith("/orders")
        assert captured["body"]["amount"] == 50050
        assert captured["body"]["currency"] == "INR"
        assert len(captured["body"]["receipt"]) == 40
        assert captured["body"]["notes"] == {"purpose": "Seva"}

    def test_gateway_error_description(self, settings, monkeypatch):
        _install_transport(
            monkeypatch, settings,
            lambda request: httpx.Response(400, json={"error": {"description": "Amount exceeds maximum"}}),
        )
        with pytest.raises(GatewayError) as exc:
            RazorpayGateway.create_order(10_000_000, "r1")
        assert exc.value.message == "Amount exceeds maximum"
        assert exc.value.status_code == 502

    def test_fetch_payment(self, settings, monkeypatch):
        _install_transport(
            monkeypatch, settings,
            lambda request: httpx.Response(200, json={"id": request.url.path.rsplit("/", 1)[-1], "method": "card"}),
        )
        payment = RazorpayGateway.fetch_payment("pay_77")
        assert payment == {"id": "pay_77", "method": "card"}


class TestInstrument:

    def test_upi(self):
        assert RazorpayGateway.describe_instrument({"method": "upi", "vpa": "a@ybl"}) == ("upi", "a@ybl")
        assert RazorpayGateway.describe_instrument({"method": "upi"}) == ("upi", "N/A")

    def test_other_methods_carry_their_label(self):
        assert RazorpayGateway.describe_instrument({"method": "card"}) == ("card", "card")
        assert RazorpayGateway.describe_instrument({}) == ("online", "online")
