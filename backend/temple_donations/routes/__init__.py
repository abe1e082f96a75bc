from temple_donations.routes.payment import router as payment_router
from temple_donations.routes.whatsapp import router as whatsapp_router
from temple_donations.routes.admin import router as admin_router
from temple_donations.routes.receipts import router as receipts_router

__all__ = ["payment_router", "whatsapp_router", "admin_router", "receipts_router"]
