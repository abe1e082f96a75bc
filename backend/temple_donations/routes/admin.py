"""
Admin Routes — Dashboard queries, exports and manual cash receipts.
"""
import logging
import secrets
import string
import time
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from temple_donations.database import get_db
from temple_donations.models.payment import Payment, utcnow
from temple_donations.schemas.schemas import (
    ERROR_RESPONSES,
    AdminPaymentsResponse, CashReceiptRequest, CashReceiptResponse,
)
from temple_donations.services.delivery_service import ReceiptDeliveryService
from temple_donations.services.report_service import PaymentFilters, PaymentReportService, parse_date_bound

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["Admin"], responses=ERROR_RESPONSES)

STATUSES = ("", "completed", "pending")
EXPORT_FORMATS = ("csv", "pdf")


def _filters(search: str, status: str, date_from: str | None, date_to: str | None) -> PaymentFilters:
    if status not in STATUSES:
        raise HTTPException(status_code=400, detail="status must be 'completed' or 'pending'")
    try:
        return PaymentFilters(
            search=search or "",
            status=status,
            date_from=parse_date_bound(date_from),
            date_to=parse_date_bound(date_to, end_of_day=True),
        )
    except ValueError:
        raise HTTPException(status_code=400, detail="dateFrom/dateTo must be ISO dates (YYYY-MM-DD)")


def new_cash_transaction_id() -> str:
    alphabet = string.ascii_uppercase + string.digits
    token = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"CASH-{int(time.time() * 1000)}-{token}"


@router.get("/payments", response_model=AdminPaymentsResponse)
def list_payments(
    search: str = "",
    status: str = "",
    date_from: str | None = Query(None, alias="dateFrom"),
    date_to: str | None = Query(None, alias="dateTo"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Paginated payments plus summary statistics and monthly revenue."""
    filters = _filters(search, status, date_from, date_to)
    data = PaymentReportService.page(db, filters, page, limit)
    data["stats"] = PaymentReportService.stats(db)
    data["monthlyRevenue"] = PaymentReportService.monthly_revenue(db)
    return {"success": True, "data": data}


@router.get("/export")
def export_payments(
    format: str = "csv",
    search: str = "",
    status: str = "",
    date_from: str | None = Query(None, alias="dateFrom"),
    date_to: str | None = Query(None, alias="dateTo"),
    db: Session = Depends(get_db),
):
    """Download every payment matching the filters as CSV or PDF."""
    if format not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail="Invalid format")

    filters = _filters(search, status, date_from, date_to)
    payments = PaymentReportService.filtered_query(db, filters).all()
    file_name = f"payments-export-{date.today().isoformat()}.{format}"
    headers = {"Content-Disposition": f'attachment; filename="{file_name}"'}

    logger.info("Exporting %d payments as %s", len(payments), format)
    if format == "csv":
        return Response(
            content=PaymentReportService.export_csv(payments),
            media_type="text/csv",
            headers=headers,
        )
    return Response(
        content=PaymentReportService.export_pdf(payments),
        media_type="application/pdf",
        headers=headers,
    )


@router.post("/generate-receipt", response_model=CashReceiptResponse)
def generate_cash_receipt(payload: CashReceiptRequest, db: Session = Depends(get_db)):
    """Record a cash donation as completed and send its receipt on WhatsApp."""
    payment = Payment(
        name=payload.name,
        contact_no=payload.contactNo,
        purpose=payload.purpose,
        amount=payload.amount,
        to_user=payload.to_user,
        transaction_id=new_cash_transaction_id(),
        done=True,
        method="cash",
        updated_at=utcnow(),
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info("Cash payment created: %s", payment.transaction_id)

    delivery = ReceiptDeliveryService.deliver_advisory(payment)
    if delivery.warning:
        return CashReceiptResponse(
            success=True,
            message="Cash payment recorded, but the WhatsApp receipt could not be sent",
            transactionId=payment.transaction_id,
            pdfUrl=delivery.pdf_url,
            warning=delivery.warning,
        )

    return CashReceiptResponse(
        success=True,
        message="Cash receipt generated and PDF sent via WhatsApp successfully!",
        transactionId=payment.transaction_id,
        pdfUrl=delivery.pdf_url,
    )
