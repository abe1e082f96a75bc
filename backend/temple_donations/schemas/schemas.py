"""
Pydantic Schemas — Request & Response models for API validation.
Field names follow the public camelCase payloads used by the donation form
and the admin dashboard.
"""
from typing import Optional, Dict, List, Any
from pydantic import BaseModel, Field, field_validator

from temple_donations.utils.validators import parse_amount, validate_e164, validate_indian_mobile


def _strip_required(value: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError("must not be empty")
    return str(value).strip()


def _positive_amount(value):
    amount = parse_amount(value)
    if amount is None:
        raise ValueError("Amount must be a positive number")
    return amount


# ──────────────── Order Creation ────────────────

class CreateOrderRequest(BaseModel):
    name: str
    contactNo: str
    purpose: str
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Amount in INR (major units)")
    transactionId: str = Field(..., description="Client-generated unique id (UUID)")
    to_user: str = Field(..., description="Recipient fund")

    @field_validator("amount", mode="before")
    @classmethod
    def finite_amount(cls, value):
        return _positive_amount(value)

    @field_validator("name", "purpose", "transactionId", "to_user")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("contactNo")
    @classmethod
    def e164_contact(cls, value: str) -> str:
        value = _strip_required(value)
        if not validate_e164(value):
            raise ValueError("Invalid contact number (e.g. +919876543210)")
        return value


class CreateOrderResponse(BaseModel):
    success: bool = True
    orderId: str
    amount: int                 # paise, as handed to checkout
    currency: str
    keyId: str


# ──────────────── Payment Verification ────────────────

class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    transactionId: Optional[str] = None   # Sent by the checkout page, informational only


class PaymentData(BaseModel):
    name: str
    amount: float
    contactNo: str
    transactionId: str
    razorpayPaymentId: str
    upiId: str
    paymentMethod: str
    orderId: str
    paymentStatus: str = "Success"
    updatedAt: str
    recipient: str


class VerifyPaymentResponse(BaseModel):
    success: bool
    message: str
    paymentData: Optional[PaymentData] = None
    alreadyVerified: bool = False
    pdfUrl: Optional[str] = None
    note: Optional[str] = None
    webhookError: Optional[str] = None


# ──────────────── Inbound WhatsApp ────────────────

class InboundMessageResponse(BaseModel):
    success: bool
    message: str
    transactionId: Optional[str] = None
    pdfUrl: Optional[str] = None
    processingTime: Optional[int] = None   # milliseconds
    warning: Optional[str] = None
    error: Optional[str] = None


# ──────────────── Admin ────────────────

class CashReceiptRequest(BaseModel):
    name: str
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Amount in INR, must be positive")
    contactNo: str
    to_user: str
    purpose: str = "Cash Donation"
    method: str = "cash"

    @field_validator("amount", mode="before")
    @classmethod
    def finite_amount(cls, value):
        return _positive_amount(value)

    @field_validator("name", "to_user")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("contactNo")
    @classmethod
    def indian_contact(cls, value: str) -> str:
        value = (value or "").strip()
        if not validate_indian_mobile(value):
            raise ValueError("Contact number must be in format +91xxxxxxxxxx")
        return value

    @field_validator("method")
    @classmethod
    def cash_only(cls, value: str) -> str:
        if value != "cash":
            raise ValueError("Only cash receipts can be generated manually")
        return value


class CashReceiptResponse(BaseModel):
    success: bool
    message: str
    transactionId: str
    pdfUrl: Optional[str] = None
    warning: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PaymentStats(BaseModel):
    totalRevenue: float
    totalPayments: int
    completedPayments: int
    pendingPayments: int


class MonthlyRevenue(BaseModel):
    year: int
    month: int
    revenue: float
    count: int


class AdminPaymentsData(BaseModel):
    payments: List[Dict[str, Any]]
    pagination: Pagination
    stats: PaymentStats
    monthlyRevenue: List[MonthlyRevenue]


class AdminPaymentsResponse(BaseModel):
    success: bool = True
    data: AdminPaymentsData


# ──────────────── Generic ────────────────

class HealthResponse(BaseModel):
    status: str
    database: str
    gateway: str
    messaging: str
    uptime_seconds: float
    version: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Optional[str] = None


# OpenAPI docs for the {success: false, message} envelope set in main.py
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation failed"},
    404: {"model": ErrorResponse, "description": "Not found"},
    500: {"model": ErrorResponse, "description": "Server or configuration error"},
}
