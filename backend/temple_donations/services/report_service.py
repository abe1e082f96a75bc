"""
Report Service — Filtering, pagination, statistics and exports over payments.
"""
import csv
import math
from dataclasses import dataclass
from datetime import datetime, time as dt_time, timezone
from io import BytesIO, StringIO
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer
from sqlalchemy import case, extract, func, or_
from sqlalchemy.orm import Session, Query

from temple_donations.config import get_settings
from temple_donations.models.payment import Payment, utcnow
from temple_donations.utils.validators import format_inr, format_timestamp

CSV_HEADERS = [
    "Name", "Contact No", "Amount", "Purpose", "Transaction ID",
    "Razorpay Payment ID", "UPI ID", "Method", "Recipient", "Status", "Date",
]

MONTHS_IN_ROLLUP = 12


@dataclass
class PaymentFilters:
    search: str = ""
    status: str = ""            # completed | pending | "" (all)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


def parse_date_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """Parse an ISO date or datetime. A bare date used as an upper bound covers the whole day."""
    if not value:
        return None
    value = value.strip()
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), dt_time.max)
    return parsed


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class PaymentReportService:
    """Read-only queries backing the admin dashboard."""

    @staticmethod
    def filtered_query(db: Session, filters: PaymentFilters) -> Query:
        query = db.query(Payment)

        if filters.search:
            pattern = _like_pattern(filters.search.strip())
            query = query.filter(or_(
                Payment.name.ilike(pattern, escape="\\"),
                Payment.contact_no.ilike(pattern, escape="\\"),
                Payment.transaction_id.ilike(pattern, escape="\\"),
                Payment.to_user.ilike(pattern, escape="\\"),
            ))

        if filters.status:
            query = query.filter(Payment.done.is_(filters.status == "completed"))

        if filters.date_from:
            query = query.filter(Payment.updated_at >= filters.date_from)
        if filters.date_to:
            query = query.filter(Payment.updated_at <= filters.date_to)

        return query.order_by(Payment.updated_at.desc(), Payment.id.desc())

    @staticmethod
    def page(db: Session, filters: PaymentFilters, page: int, limit: int) -> Dict:
        query = PaymentReportService.filtered_query(db, filters)
        total = query.order_by(None).count()
        payments = query.offset((page - 1) * limit).limit(limit).all()
        return {
            "payments": [p.to_dict() for p in payments],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if limit else 0,
            },
        }

    @staticmethod
    def stats(db: Session) -> Dict:
        """Collection-wide totals for the dashboard summary cards."""
        total_revenue, total, completed, pending = db.query(
            func.coalesce(func.sum(case((Payment.done.is_(True), Payment.amount), else_=0)), 0),
            func.count(Payment.id),
            func.coalesce(func.sum(case((Payment.done.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(case((Payment.done.is_(False), 1), else_=0)), 0),
        ).one()
        return {
            "totalRevenue": float(total_revenue or 0),
            "totalPayments": int(total or 0),
            "completedPayments": int(completed or 0),
            "pendingPayments": int(pending or 0),
        }

    @staticmethod
    def monthly_revenue(db: Session) -> List[Dict]:
        """Completed revenue per calendar month, newest first, last 12 months with activity."""
        year = extract("year", Payment.updated_at)
        month = extract("month", Payment.updated_at)
        rows = db.query(
            year.label("year"),
            month.label("month"),
            func.sum(Payment.amount).label("revenue"),
            func.count(Payment.id).label("count"),
        ).filter(
            Payment.done.is_(True),
            Payment.updated_at.isnot(None),
        ).group_by(year, month).order_by(year.desc(), month.desc()).limit(MONTHS_IN_ROLLUP).all()

        return [
            {"year": int(r.year), "month": int(r.month), "revenue": float(r.revenue or 0), "count": int(r.count)}
            for r in rows
        ]

    # ─── Exports ─────────────────────────────────────────────────────

    @staticmethod
    def export_csv(payments: List[Payment]) -> str:
        buffer = StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for p in payments:
            writer.writerow([
                p.name or "",
                p.contact_no or "",
                p.amount or 0,
                p.purpose or "",
                p.transaction_id or "",
                p.razorpay_payment_id or "",
                p.upi_id or "",
                p.method or "",
                p.to_user or "",
                "Completed" if p.done else "Pending",
                format_timestamp(p.updated_at) if p.updated_at else "",
            ])
        return buffer.getvalue()

    @staticmethod
    def export_pdf(payments: List[Payment]) -> bytes:
        organization = get_settings().ORGANIZATION_NAME
        styles = getSampleStyleSheet()
        completed = [p for p in payments if p.done]
        revenue = sum(p.amount or 0 for p in completed)

        buffer = BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.7 * inch, bottomMargin=0.7 * inch,
                                title=f"{organization} Payments Report")
        story = [
            Paragraph(escape(f"{organization} Payments Report"), styles["Title"]),
            Paragraph(f"Generated on: {format_timestamp(utcnow())}", styles["Normal"]),
            Spacer(1, 18),
            Paragraph("Summary", styles["Heading2"]),
            Paragraph(f"Total Payments: {len(payments)}", styles["Normal"]),
            Paragraph(f"Completed Payments: {len(completed)}", styles["Normal"]),
            Paragraph(f"Total Revenue: Rs. {format_inr(revenue)}", styles["Normal"]),
            Spacer(1, 18),
            Paragraph("Payment Details", styles["Heading2"]),
        ]

        for index, p in enumerate(payments, start=1):
            lines = [
                f"<b>{index}. {escape(p.name or 'Unknown')} - Rs. {format_inr(p.amount)}</b>",
                f"Contact: {escape(p.contact_no or 'N/A')}",
                f"Transaction ID: {escape(p.transaction_id or 'N/A')}",
                f"Method: {escape(p.method or 'N/A')}",
                f"Status: {'Completed' if p.done else 'Pending'}",
                f"Date: {format_timestamp(p.updated_at)}",
            ]
            story.append(Paragraph("<br/>".join(lines), styles["Normal"]))
            story.append(Spacer(1, 8))

        doc.build(story)
        return buffer.getvalue()
