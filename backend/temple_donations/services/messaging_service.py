"""
Messaging Service — WhatsApp delivery through the Twilio Messages API.
"""
import logging
from typing import List, Optional

import httpx

from temple_donations.config import get_settings
from temple_donations.errors import ConfigurationError, MessagingError
from temple_donations.utils.validators import validate_e164

logger = logging.getLogger(__name__)

WHATSAPP_PREFIX = "whatsapp:"


def normalize_address(handle: str) -> str:
    """Add the 'whatsapp:' prefix if absent. Never doubles it."""
    handle = (handle or "").strip()
    if handle.lower().startswith(WHATSAPP_PREFIX):
        return WHATSAPP_PREFIX + handle[len(WHATSAPP_PREFIX):].strip()
    return WHATSAPP_PREFIX + handle


def strip_address(handle: str) -> str:
    """Bare phone number of a WhatsApp handle."""
    return normalize_address(handle)[len(WHATSAPP_PREFIX):]


class WhatsAppRelay:
    """Sends text (and optional media) to a WhatsApp handle. One attempt per call."""

    @staticmethod
    def _client() -> httpx.Client:
        settings = get_settings()
        if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
            raise ConfigurationError("Twilio credentials not configured")
        return httpx.Client(
            base_url=settings.TWILIO_API_BASE,
            auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    @staticmethod
    def send(to: str, body: str, media_urls: Optional[List[str]] = None) -> str:
        """
        Send a WhatsApp message and return the provider message SID.
        Raises ConfigurationError without credentials, MessagingError on any
        provider or recipient failure.
        """
        settings = get_settings()
        recipient = normalize_address(to)
        if not validate_e164(strip_address(recipient)):
            raise MessagingError(f"Invalid WhatsApp recipient: {to!r}")

        data = [
            ("From", normalize_address(settings.TWILIO_WHATSAPP_NUMBER)),
            ("To", recipient),
            ("Body", body),
        ]
        for url in media_urls or []:
            data.append(("MediaUrl", url))

        logger.info("[WhatsApp] Sending | to=%s | chars=%d | media=%d", recipient, len(body), len(media_urls or []))

        path = f"/Accounts/{settings.TWILIO_ACCOUNT_SID}/Messages.json"
        try:
            with WhatsAppRelay._client() as client:
                response = client.post(path, data=data)
        except httpx.HTTPError as exc:
            logger.error("[WhatsApp] Transport error | to=%s | %s", recipient, exc)
            raise MessagingError(f"WhatsApp send failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error("[WhatsApp] API error %s | %s", response.status_code, response.text)
            try:
                detail = response.json().get("message")
            except ValueError:
                detail = None
            raise MessagingError(detail or f"WhatsApp send failed ({response.status_code})")

        sid = response.json().get("sid", "")
        logger.info("[WhatsApp] Sent | to=%s | sid=%s", recipient, sid)
        return sid

    @staticmethod
    def send_quietly(to: str, body: str, media_urls: Optional[List[str]] = None) -> bool:
        """Best-effort send for canned replies. Logs failures instead of raising."""
        if not to:
            return False
        try:
            WhatsAppRelay.send(to, body, media_urls)
            return True
        except Exception as exc:
            logger.warning("[WhatsApp] Canned reply to %s not delivered: %s", to, exc)
            return False
