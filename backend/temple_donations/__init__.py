"""Temple donation portal backend: payments, receipts, WhatsApp delivery, admin reports."""
