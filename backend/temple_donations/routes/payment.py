"""
Payment Routes — Razorpay order creation and checkout verification.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from temple_donations.config import get_settings
from temple_donations.database import get_db
from temple_donations.models.payment import Payment, utcnow
from temple_donations.schemas.schemas import (
    ERROR_RESPONSES,
    CreateOrderRequest, CreateOrderResponse,
    VerifyPaymentRequest, VerifyPaymentResponse, PaymentData,
)
from temple_donations.services.delivery_service import ReceiptDeliveryService
from temple_donations.services.gateway_service import RazorpayGateway
from temple_donations.utils.rate_limiter import rate_limit
from temple_donations.utils.validators import format_timestamp

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Payment"], responses=ERROR_RESPONSES)

DELIVERY_FAILED_NOTE = "Payment was successful, but WhatsApp notification failed. User can request receipt manually."


def _payment_data(payment: Payment, order_id: str) -> PaymentData:
    return PaymentData(
        name=payment.name or "Unknown",
        amount=payment.amount or 0,
        contactNo=payment.contact_no,
        transactionId=payment.transaction_id or "Not available",
        razorpayPaymentId=payment.razorpay_payment_id or "Not available",
        upiId=payment.upi_id or "Not available",
        paymentMethod=payment.method or "N/A",
        orderId=order_id,
        updatedAt=format_timestamp(payment.updated_at),
        recipient=payment.to_user or "N/A",
    )


@router.post("/create-order", response_model=CreateOrderResponse)
def create_order(
    payload: CreateOrderRequest,
    request: Request,
    db: Session = Depends(get_db),
    _throttle: bool = Depends(rate_limit(requests=10, window=60, scope="create-order")),
):
    """Create a Razorpay order and a pending payment record for it."""
    settings = get_settings()

    if db.query(Payment.id).filter(Payment.transaction_id == payload.transactionId).first():
        raise HTTPException(status_code=409, detail="Transaction ID already used")

    order = RazorpayGateway.create_order(
        payload.amount,
        receipt=payload.transactionId,
        notes={"name": payload.name, "purpose": payload.purpose, "to_user": payload.to_user},
    )

    payment = Payment(
        name=payload.name,
        contact_no=payload.contactNo,
        purpose=payload.purpose,
        amount=payload.amount,
        transaction_id=payload.transactionId,
        oid=order["id"],
        to_user=payload.to_user,
        done=False,
        method="online",
    )
    db.add(payment)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.error("Duplicate transaction %s, Razorpay order %s left unused", payload.transactionId, order["id"])
        raise HTTPException(status_code=409, detail="Transaction ID already used")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not persist payment for Razorpay order %s (order left unused)", order["id"])
        raise

    logger.info(
        "Order created | txn=%s | order_id=%s | amount=%s | ip=%s",
        payment.transaction_id, payment.oid, payment.amount,
        request.client.host if request.client else None,
    )

    return CreateOrderResponse(
        orderId=order["id"],
        amount=int(order.get("amount") or round(payload.amount * 100)),
        currency=order.get("currency") or settings.PAYMENT_CURRENCY,
        keyId=settings.RAZORPAY_KEY_ID,
    )


@router.post("/verify-payment", response_model=VerifyPaymentResponse)
def verify_payment(payload: VerifyPaymentRequest, db: Session = Depends(get_db)):
    """
    Verify the checkout callback signature, complete the payment and deliver
    the receipt. Delivery problems never fail a verified payment; they are
    reported in `note` / `webhookError`.
    """
    order_id = payload.razorpay_order_id
    payment = db.query(Payment).filter(Payment.oid == order_id).first()
    if not payment:
        logger.error("Order ID not found: %s", order_id)
        raise HTTPException(status_code=404, detail="Order Id not found")

    if not RazorpayGateway.verify_signature(order_id, payload.razorpay_payment_id, payload.razorpay_signature):
        logger.warning("Payment verification failed for order %s", order_id)
        raise HTTPException(status_code=400, detail="Payment Verification Failed")

    if payment.done:
        logger.info("Order %s already verified, skipping receipt delivery", order_id)
        return VerifyPaymentResponse(
            success=True,
            message="Payment already verified",
            paymentData=_payment_data(payment, order_id),
            alreadyVerified=True,
        )

    details = RazorpayGateway.fetch_payment(payload.razorpay_payment_id)
    method, upi_id = RazorpayGateway.describe_instrument(details)

    # Only the request that flips done false -> true goes on to deliver.
    transitioned = db.query(Payment).filter(
        Payment.oid == order_id,
        Payment.done.is_(False),
    ).update({
        Payment.done: True,
        Payment.upi_id: upi_id,
        Payment.razorpay_payment_id: payload.razorpay_payment_id,
        Payment.method: method,
        Payment.updated_at: utcnow(),
    }, synchronize_session=False)
    db.commit()
    db.refresh(payment)

    if not transitioned:
        logger.info("Order %s completed by a concurrent request", order_id)
        return VerifyPaymentResponse(
            success=True,
            message="Payment already verified",
            paymentData=_payment_data(payment, order_id),
            alreadyVerified=True,
        )

    logger.info("Payment completed | txn=%s | order_id=%s | method=%s", payment.transaction_id, order_id, method)

    delivery = ReceiptDeliveryService.deliver_advisory(payment)
    if delivery.warning:
        return VerifyPaymentResponse(
            success=True,
            message="Payment verified successfully, but receipt delivery failed",
            paymentData=_payment_data(payment, order_id),
            pdfUrl=delivery.pdf_url,
            webhookError=delivery.warning,
            note=DELIVERY_FAILED_NOTE,
        )

    return VerifyPaymentResponse(
        success=True,
        message="Payment verified and receipt sent successfully",
        paymentData=_payment_data(payment, order_id),
        pdfUrl=delivery.pdf_url,
    )
