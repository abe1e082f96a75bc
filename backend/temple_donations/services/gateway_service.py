"""
Gateway Service — Razorpay orders, payment lookups and callback signatures.

Talks to the Razorpay REST API directly over httpx with basic auth
(key id / key secret). Every call is attempted exactly once; callers
decide whether a failure is fatal.
"""
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from temple_donations.config import get_settings
from temple_donations.errors import ConfigurationError, GatewayError
from temple_donations.utils.hashing import hmac_sha256_hex, signatures_match

logger = logging.getLogger(__name__)

# Razorpay caps the order receipt field at 40 characters.
MAX_RECEIPT_LENGTH = 40


class RazorpayGateway:
    """Thin client over the Razorpay orders and payments endpoints."""

    @staticmethod
    def _credentials() -> Tuple[str, str]:
        settings = get_settings()
        if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
            raise ConfigurationError("Server configuration error: Razorpay credentials missing")
        return settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET

    @staticmethod
    def _client() -> httpx.Client:
        settings = get_settings()
        return httpx.Client(
            base_url=settings.RAZORPAY_API_BASE,
            auth=RazorpayGateway._credentials(),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    @staticmethod
    def _request(method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            with RazorpayGateway._client() as client:
                response = client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("[Razorpay] %s %s transport error: %s", method, path, exc)
            raise GatewayError(f"Payment gateway unreachable: {exc}") from exc

        if response.status_code >= 400:
            logger.error("[Razorpay] %s %s -> %s | %s", method, path, response.status_code, response.text)
            try:
                description = response.json().get("error", {}).get("description")
            except ValueError:
                description = None
            raise GatewayError(description or f"Payment gateway error ({response.status_code})")

        return response.json()

    @staticmethod
    def create_order(amount: float, receipt: str, notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Create an order for `amount` rupees. Razorpay expects paise."""
        settings = get_settings()
        payload = {
            "amount": int(round(amount * 100)),
            "currency": settings.PAYMENT_CURRENCY,
            "receipt": receipt[:MAX_RECEIPT_LENGTH],
            "notes": notes or {},
        }
        order = RazorpayGateway._request("POST", "/orders", json=payload)
        logger.info("[Razorpay] Order created | order_id=%s | amount=%s", order.get("id"), payload["amount"])
        return order

    @staticmethod
    def fetch_payment(payment_id: str) -> Dict[str, Any]:
        """Fetch a captured/authorized payment to learn its instrument."""
        return RazorpayGateway._request("GET", f"/payments/{payment_id}")

    @staticmethod
    def verify_signature(order_id: str, payment_id: str, signature: str | None) -> bool:
        """Check the checkout callback signature: HMAC_SHA256(order_id|payment_id, key_secret)."""
        _, secret = RazorpayGateway._credentials()
        expected = hmac_sha256_hex(secret, f"{order_id}|{payment_id}")
        return signatures_match(expected, signature)

    @staticmethod
    def describe_instrument(payment: Dict[str, Any]) -> Tuple[str, str]:
        """Return (method, upi_id) for a fetched payment. Non-UPI payments carry the method label."""
        method = payment.get("method") or "online"
        if method == "upi":
            return method, payment.get("vpa") or "N/A"
        return method, method
