"""
WhatsApp Routes — Inbound webhook: receipt lookups by transaction id.

Accepts Twilio's form-encoded webhook as well as JSON posted by our own
services (verification shape or free text).
"""
import json
import logging
import time

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from temple_donations.config import get_settings
from temple_donations.database import get_db
from temple_donations.schemas.schemas import ERROR_RESPONSES, InboundMessageResponse
from temple_donations.services.delivery_service import (
    ReceiptDeliveryService,
    HELP_MESSAGE, INVALID_REQUEST_MESSAGE, NOT_FOUND_MESSAGE, TECHNICAL_ERROR_MESSAGE,
)
from temple_donations.services.inbound_service import (
    DirectVerification, InboundMessage, InvalidInboundMessage, TwilioStyleWebhook,
    decode_inbound, is_form_encoded,
)
from temple_donations.services.messaging_service import WhatsAppRelay
from temple_donations.utils.validators import extract_transaction_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/whatsapp", tags=["WhatsApp"], responses=ERROR_RESPONSES)


def _reply(status_code: int, **fields) -> JSONResponse:
    body = InboundMessageResponse(**fields).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def handle_inbound(db: Session, message: InboundMessage, background_tasks: BackgroundTasks) -> JSONResponse:
    """Dispatch a decoded inbound message. Runs in the threadpool."""
    started = time.monotonic()

    if isinstance(message, DirectVerification):
        transaction_id = message.transaction_id
        logger.info("Verification callback for %s (method hint: %s)", transaction_id, message.payment_method or "none")
    else:
        transaction_id = extract_transaction_id(message.text)
        if not transaction_id:
            logger.error("No Transaction ID found in message: %r", message.text)
            WhatsAppRelay.send_quietly(message.sender, HELP_MESSAGE)
            return _reply(400, success=False, message="Invalid message format")

    logger.info("Extracted Transaction ID: %s", transaction_id)

    payment = ReceiptDeliveryService.find_completed(db, transaction_id)
    if not payment:
        logger.error("Payment not found or not completed: %s", transaction_id)
        WhatsAppRelay.send_quietly(message.sender, NOT_FOUND_MESSAGE)
        return _reply(404, success=False, message="Payment not found", transactionId=transaction_id)

    if isinstance(message, TwilioStyleWebhook):
        # Twilio waits on this response; the media send continues after it.
        projection, stored = ReceiptDeliveryService.issue(payment)
        background_tasks.add_task(ReceiptDeliveryService.send_detached, message.sender, projection, stored.pdf_url)
        pdf_url = stored.pdf_url
    else:
        pdf_url = ReceiptDeliveryService.deliver(payment, to=message.sender).pdf_url

    elapsed_ms = int((time.monotonic() - started) * 1000)
    logger.info("Receipt for %s handled in %dms", transaction_id, elapsed_ms)
    return _reply(
        200,
        success=True,
        message="Receipt sent",
        transactionId=transaction_id,
        pdfUrl=pdf_url,
        processingTime=elapsed_ms,
    )


@router.post("/verify", response_model=InboundMessageResponse)
async def inbound_message(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Receipt lookup / delivery for WhatsApp messages and internal callers."""
    settings = get_settings()
    started = time.monotonic()
    content_type = request.headers.get("content-type", "")

    try:
        if is_form_encoded(content_type):
            payload = dict(await request.form())
        else:
            payload = await request.json()
        message = decode_inbound(content_type, payload)
    except (InvalidInboundMessage, json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.error("Rejected inbound message: %s", exc)
        sender = getattr(exc, "sender", None)
        if sender:
            await run_in_threadpool(WhatsAppRelay.send_quietly, sender, INVALID_REQUEST_MESSAGE)
        return _reply(400, success=False, message=str(exc) if isinstance(exc, InvalidInboundMessage) else "Invalid request body")

    logger.info("Inbound %s from %s", type(message).__name__, message.sender)

    try:
        response = await run_in_threadpool(handle_inbound, db, message, background_tasks)
    except Exception as exc:
        logger.exception("Error in WhatsApp webhook: %s", exc)
        await run_in_threadpool(WhatsAppRelay.send_quietly, message.sender, TECHNICAL_ERROR_MESSAGE)
        response = _reply(500, success=False, message="Server error", error=str(exc))

    elapsed = time.monotonic() - started
    if elapsed > settings.INBOUND_SOFT_DEADLINE_SECONDS:
        logger.warning(
            "Inbound message from %s took %.1fs (soft deadline %.0fs)",
            message.sender, elapsed, settings.INBOUND_SOFT_DEADLINE_SECONDS,
        )
    return response
