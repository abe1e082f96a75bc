"""
Receipt Service — Renders single-page PDF receipts and stores them on disk.

Layout: organization title, itemized key/value table, thank-you block and a
"generated on" footer. Files land in RECEIPTS_DIR and are never overwritten;
each name carries a millisecond timestamp plus a random token.
"""
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from temple_donations.config import get_settings
from temple_donations.errors import ReceiptError
from temple_donations.models.payment import Payment, utcnow
from temple_donations.utils.validators import format_inr, format_timestamp, safe_file_token

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "Not available"

styles = getSampleStyleSheet()
title_style = ParagraphStyle(
    "ReceiptTitle",
    parent=styles["Heading1"],
    fontSize=24,
    spaceAfter=6,
    textColor=colors.HexColor("#4a1d6b"),
    alignment=1,
)
subtitle_style = ParagraphStyle(
    "ReceiptSubtitle",
    parent=styles["Heading2"],
    fontSize=16,
    textColor=colors.HexColor("#1a1a1a"),
    alignment=1,
)
centered_style = ParagraphStyle("Centered", parent=styles["Normal"], alignment=1, fontSize=11)
footer_style = ParagraphStyle("Footer", parent=styles["Normal"], alignment=1, fontSize=8, textColor=colors.grey)


@dataclass(frozen=True)
class ReceiptProjection:
    """Everything a receipt shows about one completed payment."""

    name: str
    amount: float
    contact_no: str
    transaction_id: str
    method: str
    to_user: str
    updated_at: Optional[datetime] = None
    upi_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None

    @property
    def is_cash(self) -> bool:
        return self.method == "cash"

    @property
    def method_label(self) -> str:
        return "Cash Payment" if self.is_cash else "Online Payment"

    @classmethod
    def from_payment(cls, payment: Payment) -> "ReceiptProjection":
        return cls(
            name=payment.name or "Unknown",
            amount=payment.amount or 0,
            contact_no=payment.contact_no or NOT_AVAILABLE,
            transaction_id=payment.transaction_id,
            method=payment.method or "online",
            to_user=payment.to_user or "N/A",
            updated_at=payment.updated_at,
            upi_id=payment.upi_id,
            razorpay_payment_id=payment.razorpay_payment_id,
        )


@dataclass(frozen=True)
class StoredReceipt:
    file_name: str
    path: Path
    pdf_url: str
    size: int


def _known(value: Optional[str]) -> bool:
    return bool(value) and value not in (NOT_AVAILABLE, "N/A")


def receipt_rows(receipt: ReceiptProjection) -> List[Tuple[str, str]]:
    """Itemized rows of a receipt. Gateway fields are omitted for cash payments."""
    rows = [
        ("Name", receipt.name),
        ("Amount", f"Rs. {format_inr(receipt.amount)}"),
        ("Contact", receipt.contact_no),
        ("Transaction ID", receipt.transaction_id),
        ("Payment Method", receipt.method_label),
    ]
    if not receipt.is_cash:
        if _known(receipt.upi_id):
            rows.append(("UPI ID", receipt.upi_id))
        if _known(receipt.razorpay_payment_id):
            rows.append(("Razorpay Payment ID", receipt.razorpay_payment_id))
    rows.append(("Date & Time", format_timestamp(receipt.updated_at)))
    rows.append(("Recipient", receipt.to_user))
    return rows


class ReceiptRenderer:
    """Builds receipt PDFs and manages the receipts directory."""

    @staticmethod
    def receipts_dir() -> Path:
        path = Path(get_settings().RECEIPTS_DIR)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @staticmethod
    def render(receipt: ReceiptProjection, generated_at: Optional[datetime] = None) -> bytes:
        """Render one receipt to PDF bytes."""
        organization = get_settings().ORGANIZATION_NAME
        generated_at = generated_at or utcnow()

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            topMargin=0.8 * inch,
            bottomMargin=0.8 * inch,
            title=f"Receipt {receipt.transaction_id}",
            author=organization,
        )
        story = [
            Paragraph(organization, title_style),
            Paragraph("Payment Receipt", subtitle_style),
            Spacer(1, 24),
        ]

        table = Table([list(row) for row in receipt_rows(receipt)], colWidths=[2.2 * inch, 4.3 * inch])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTNAME", (1, 0), (1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), 11),
            ("ROWBACKGROUNDS", (0, 0), (-1, -1), [colors.HexColor("#f8f9fa"), colors.white]),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e9ecef")),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
            ("TOPPADDING", (0, 0), (-1, -1), 8),
        ]))
        story.append(table)
        story.append(Spacer(1, 30))

        story.append(Paragraph(f"<b>Thank you for your donation to {organization}!</b>", centered_style))
        story.append(Paragraph("Your contribution helps in spreading Krishna Consciousness", centered_style))
        story.append(Spacer(1, 8))
        story.append(Paragraph("<b>Hare Krishna!</b>", centered_style))
        story.append(Spacer(1, 30))

        story.append(Paragraph(
            f"This is a computer-generated receipt. For queries, contact {organization} support.",
            footer_style,
        ))
        story.append(Paragraph(f"Generated on: {format_timestamp(generated_at)}", footer_style))

        try:
            doc.build(story)
        except Exception as exc:
            logger.error("[Receipt] Render failed | txn=%s | %s", receipt.transaction_id, exc)
            raise ReceiptError(f"Could not render receipt: {exc}") from exc

        return buffer.getvalue()

    @staticmethod
    def file_name_for(receipt: ReceiptProjection) -> str:
        suffix = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
        token = safe_file_token(receipt.transaction_id)
        if receipt.is_cash:
            return f"cash-receipt-{token}-{suffix}.pdf"
        return f"receipt-{token}-{suffix}.pdf"

    @staticmethod
    def url_for(file_name: str) -> str:
        return f"{get_settings().PUBLIC_BASE_URL.rstrip('/')}/api/receipts/{file_name}"

    @staticmethod
    def store(receipt: ReceiptProjection, pdf_bytes: bytes) -> StoredReceipt:
        """Write the PDF under a fresh name. Existing files are never replaced."""
        file_name = ReceiptRenderer.file_name_for(receipt)
        path = ReceiptRenderer.receipts_dir() / file_name
        try:
            with open(path, "xb") as fh:
                fh.write(pdf_bytes)
        except OSError as exc:
            logger.error("[Receipt] Could not save %s: %s", path, exc)
            raise ReceiptError(f"Could not save receipt: {exc}") from exc

        logger.info("[Receipt] Saved %s (%d bytes)", path, len(pdf_bytes))
        return StoredReceipt(file_name=file_name, path=path, pdf_url=ReceiptRenderer.url_for(file_name), size=len(pdf_bytes))

    @staticmethod
    def issue(receipt: ReceiptProjection) -> StoredReceipt:
        """Render and persist a receipt."""
        return ReceiptRenderer.store(receipt, ReceiptRenderer.render(receipt))

    @staticmethod
    def latest_for(transaction_id: str) -> Optional[Path]:
        """Newest stored receipt for a transaction, if any."""
        pattern = re.compile(rf"^(?:cash-)?receipt-{re.escape(safe_file_token(transaction_id))}-\d+-[0-9a-f]{{8}}\.pdf$")
        candidates = [p for p in ReceiptRenderer.receipts_dir().glob("*.pdf") if pattern.match(p.name)]
        if not candidates:
            return None
        return max(candidates, key=lambda p: (p.stat().st_mtime, p.name))

    @staticmethod
    def sweep(max_age_seconds: float, now: Optional[float] = None) -> List[str]:
        """Delete receipts older than max_age_seconds. Returns the removed file names."""
        now = now if now is not None else time.time()
        removed = []
        for path in ReceiptRenderer.receipts_dir().glob("*.pdf"):
            try:
                if now - path.stat().st_mtime > max_age_seconds:
                    os.remove(path)
                    removed.append(path.name)
                    logger.info("[Receipt] Cleaned up old PDF: %s", path.name)
            except FileNotFoundError:
                continue
        return removed
