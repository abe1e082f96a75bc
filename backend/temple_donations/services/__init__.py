from temple_donations.services.gateway_service import RazorpayGateway
from temple_donations.services.messaging_service import WhatsAppRelay
from temple_donations.services.receipt_service import ReceiptRenderer, ReceiptProjection
from temple_donations.services.delivery_service import ReceiptDeliveryService
from temple_donations.services.report_service import PaymentReportService

__all__ = [
    "RazorpayGateway", "WhatsAppRelay", "ReceiptRenderer", "ReceiptProjection",
    "ReceiptDeliveryService", "PaymentReportService",
]
