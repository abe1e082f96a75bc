"""
Inbound Message Decoding — turns webhook traffic into one of three shapes.

    TwilioStyleWebhook  form-encoded From/Body from the messaging provider
    DirectLookup        JSON {from, message}, free text carrying a transaction id
    DirectVerification  JSON {from, paymentData: {transactionId, paymentMethod}}
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from temple_donations.services.messaging_service import normalize_address


@dataclass(frozen=True)
class TwilioStyleWebhook:
    sender: str
    text: str


@dataclass(frozen=True)
class DirectLookup:
    sender: str
    text: str


@dataclass(frozen=True)
class DirectVerification:
    sender: str
    transaction_id: str
    payment_method: Optional[str] = None


InboundMessage = Union[TwilioStyleWebhook, DirectLookup, DirectVerification]


class InvalidInboundMessage(ValueError):
    """Payload matched no known shape. `sender` is kept for a best-effort reply."""

    def __init__(self, message: str, sender: Optional[str] = None):
        super().__init__(message)
        self.sender = sender


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def is_form_encoded(content_type: str) -> bool:
    content_type = (content_type or "").lower()
    return "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type


def decode_inbound(content_type: str, payload: Mapping[str, Any]) -> InboundMessage:
    """Decode a parsed request body. Raises InvalidInboundMessage when nothing fits."""
    if is_form_encoded(content_type):
        sender, text = _text(payload.get("From")), _text(payload.get("Body"))
        if not sender or not text:
            raise InvalidInboundMessage("Missing from or message", sender=sender or None)
        return TwilioStyleWebhook(sender=normalize_address(sender), text=text)

    if not isinstance(payload, Mapping):
        raise InvalidInboundMessage("Request body must be a JSON object")

    sender = _text(payload.get("from") or payload.get("From"))
    payment_data = payload.get("paymentData")

    if isinstance(payment_data, Mapping):
        transaction_id = _text(payment_data.get("transactionId"))
        if not sender or not transaction_id:
            raise InvalidInboundMessage("Missing from or transactionId", sender=sender or None)
        return DirectVerification(
            sender=normalize_address(sender),
            transaction_id=transaction_id,
            payment_method=_text(payment_data.get("paymentMethod")) or None,
        )

    text = _text(payload.get("message") or payload.get("Body"))
    if not sender or not text:
        raise InvalidInboundMessage("Missing from or message", sender=sender or None)
    return DirectLookup(sender=normalize_address(sender), text=text)
