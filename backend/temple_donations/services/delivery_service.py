"""
Receipt Delivery Service — look up a completed payment, issue its PDF receipt
and send it over WhatsApp.

Shared by the payment verification path, the inbound WhatsApp webhook and the
cash receipt generator.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from temple_donations.config import get_settings
from temple_donations.models.payment import Payment
from temple_donations.services.messaging_service import WhatsAppRelay, normalize_address
from temple_donations.services.receipt_service import ReceiptProjection, ReceiptRenderer, StoredReceipt
from temple_donations.utils.validators import format_inr, format_timestamp

logger = logging.getLogger(__name__)

HELP_MESSAGE = (
    "Invalid message format. Please include your Transaction ID, "
    "e.g. 'Transaction ID: 1234abcd'."
)
INVALID_REQUEST_MESSAGE = "Invalid request. Please provide a valid message."
NOT_FOUND_MESSAGE = "Payment not found or not completed. Please check your Transaction ID."
TECHNICAL_ERROR_MESSAGE = "An error occurred. Please try again later."


@dataclass
class DeliveryResult:
    """Outcome of issuing a receipt. `warning` is set when sending failed non-fatally."""

    receipt: Optional[StoredReceipt]
    message_sid: Optional[str] = None
    warning: Optional[str] = None

    @property
    def pdf_url(self) -> Optional[str]:
        return self.receipt.pdf_url if self.receipt else None


def build_receipt_message(receipt: ReceiptProjection) -> str:
    """WhatsApp text that accompanies the PDF."""
    organization = get_settings().ORGANIZATION_NAME
    lines = [
        f"Thank you for your donation to {organization}! Here is your receipt.",
        "",
        f"Name: {receipt.name}",
        f"Amount: ₹{format_inr(receipt.amount)}",
        f"Contact: {receipt.contact_no}",
        f"Transaction ID: {receipt.transaction_id}",
        f"Payment Method: {receipt.method_label}",
    ]
    if not receipt.is_cash and receipt.upi_id and receipt.upi_id not in ("N/A", "Not available"):
        lines.append(f"UPI ID: {receipt.upi_id}")
    lines.append(f"Date: {format_timestamp(receipt.updated_at)}")
    lines.append(f"Recipient: {receipt.to_user}")
    lines.append("")
    lines.append("Hare Krishna!")
    return "\n".join(lines)


class ReceiptDeliveryService:
    """Render + persist + send, for payments that are already final."""

    @staticmethod
    def find_completed(db: Session, transaction_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(
            Payment.transaction_id == transaction_id,
            Payment.done.is_(True),
        ).first()

    @staticmethod
    def issue(payment: Payment) -> tuple:
        """Render and store the receipt; returns (projection, stored receipt)."""
        if not payment.done:
            raise ValueError(f"Receipts are only issued for completed payments ({payment.transaction_id})")
        projection = ReceiptProjection.from_payment(payment)
        stored = ReceiptRenderer.issue(projection)
        return projection, stored

    @staticmethod
    def deliver(payment: Payment, to: Optional[str] = None) -> DeliveryResult:
        """
        Issue the receipt and send it inline. Rendering and messaging errors
        propagate; callers decide whether they are fatal.
        """
        projection, stored = ReceiptDeliveryService.issue(payment)
        recipient = normalize_address(to or payment.contact_no)
        sid = WhatsAppRelay.send(recipient, build_receipt_message(projection), [stored.pdf_url])
        logger.info("[Delivery] Receipt %s sent to %s | sid=%s", stored.file_name, recipient, sid)
        return DeliveryResult(receipt=stored, message_sid=sid)

    @staticmethod
    def deliver_advisory(payment: Payment, to: Optional[str] = None) -> DeliveryResult:
        """
        Deliver after a committed state change. Failures are logged and returned
        as a warning instead of raised.
        """
        try:
            projection, stored = ReceiptDeliveryService.issue(payment)
        except Exception as exc:
            logger.error("[Delivery] Receipt render failed for %s: %s", payment.transaction_id, exc)
            return DeliveryResult(receipt=None, warning=str(exc))

        recipient = normalize_address(to or payment.contact_no)
        try:
            sid = WhatsAppRelay.send(recipient, build_receipt_message(projection), [stored.pdf_url])
        except Exception as exc:
            logger.error("[Delivery] WhatsApp send failed for %s: %s", payment.transaction_id, exc)
            return DeliveryResult(receipt=stored, warning=str(exc))

        logger.info("[Delivery] Receipt %s sent to %s | sid=%s", stored.file_name, recipient, sid)
        return DeliveryResult(receipt=stored, message_sid=sid)

    @staticmethod
    def send_detached(recipient: str, projection: ReceiptProjection, pdf_url: str):
        """Background-task body: send an already stored receipt and log the outcome."""
        try:
            sid = WhatsAppRelay.send(recipient, build_receipt_message(projection), [pdf_url])
            logger.info("[Delivery] PDF sent to %s | sid=%s", recipient, sid)
        except Exception as exc:
            logger.error("[Delivery] Error sending WhatsApp message to %s: %s", recipient, exc)
