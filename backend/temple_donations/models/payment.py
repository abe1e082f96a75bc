"""
Payment Record Model — One donation attempt, online (Razorpay) or cash.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime

from temple_donations.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how SQLite stores DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)

    name = Column(String(128), nullable=False)
    contact_no = Column(String(20), nullable=False)   # +<countrycode><digits>
    purpose = Column(String(128), nullable=False)
    amount = Column(Float, nullable=False)            # Major units (rupees)
    to_user = Column(String(128), nullable=False)     # Recipient fund

    transaction_id = Column(String(64), nullable=False, unique=True, index=True)
    oid = Column(String(64), index=True)              # Razorpay order id, empty for cash

    done = Column(Boolean, nullable=False, default=False)
    method = Column(String(32), nullable=False, default="online")  # online | cash | upi | card | ...
    upi_id = Column(String(128))
    razorpay_payment_id = Column(String(64))

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, index=True)

    def to_dict(self) -> dict:
        """API projection using the public camelCase field names."""
        return {
            "id": self.id,
            "name": self.name,
            "contactNo": self.contact_no,
            "purpose": self.purpose,
            "amount": self.amount,
            "transactionId": self.transaction_id,
            "oid": self.oid,
            "to_user": self.to_user,
            "done": bool(self.done),
            "upiId": self.upi_id,
            "razorpayPaymentId": self.razorpay_payment_id,
            "method": self.method,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
