"""
Shared pytest fixtures for the donation backend tests.

Each test gets its own SQLite file, receipts directory and fake Razorpay /
Twilio doubles; no network calls leave the process.
"""
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="temple-donations-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP}/app.db")
os.environ.setdefault("LOG_DIR", os.path.join(_TMP, "logs"))
os.environ.setdefault("RECEIPTS_DIR", os.path.join(_TMP, "receipts"))

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from temple_donations.config import get_settings  # noqa: E402
from temple_donations.database import get_db, init_db  # noqa: E402
from temple_donations.errors import MessagingError  # noqa: E402
from temple_donations.main import app  # noqa: E402
from temple_donations.models.payment import Payment  # noqa: E402
from temple_donations.services.gateway_service import RazorpayGateway  # noqa: E402
from temple_donations.services.messaging_service import WhatsAppRelay  # noqa: E402
from temple_donations.utils.hashing import hmac_sha256_hex  # noqa: E402
from temple_donations.utils.rate_limiter import reset_rate_limits  # noqa: E402

KEY_ID = "rzp_test_key"
KEY_SECRET = "rzp_test_secret"


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings with credentials and a per-test receipts directory."""
    s = get_settings()
    monkeypatch.setattr(s, "RAZORPAY_KEY_ID", KEY_ID)
    monkeypatch.setattr(s, "RAZORPAY_KEY_SECRET", KEY_SECRET)
    monkeypatch.setattr(s, "TWILIO_ACCOUNT_SID", "AC_test")
    monkeypatch.setattr(s, "TWILIO_AUTH_TOKEN", "twilio_token")
    monkeypatch.setattr(s, "RECEIPTS_DIR", str(tmp_path / "receipts"))
    monkeypatch.setattr(s, "PUBLIC_BASE_URL", "https://donate.example.org")
    return s


@pytest.fixture
def db_session(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    init_db(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db_session, settings):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    reset_rate_limits()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class FakeGateway:
    """Stands in for Razorpay: numbered orders, canned payment details."""

    def __init__(self):
        self.orders = []
        self.payment_details = {"method": "upi", "vpa": "donor@okaxis"}
        self.fetch_calls = 0

    def create_order(self, amount, receipt, notes=None):
        order = {
            "id": f"order_{len(self.orders) + 1:04d}",
            "amount": int(round(amount * 100)),
            "currency": "INR",
            "receipt": receipt,
        }
        self.orders.append(order)
        return order

    def fetch_payment(self, payment_id):
        self.fetch_calls += 1
        return dict(self.payment_details, id=payment_id)


class FakeRelay:
    """Stands in for Twilio: records every send, optionally fails."""

    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, to, body, media_urls=None):
        if self.fail_with:
            raise MessagingError(self.fail_with)
        self.sent.append({"to": to, "body": body, "media_urls": list(media_urls or [])})
        return f"SM{len(self.sent):04d}"


@pytest.fixture
def gateway(monkeypatch):
    fake = FakeGateway()
    monkeypatch.setattr(RazorpayGateway, "create_order", staticmethod(fake.create_order))
    monkeypatch.setattr(RazorpayGateway, "fetch_payment", staticmethod(fake.fetch_payment))
    return fake


@pytest.fixture
def relay(monkeypatch):
    fake = FakeRelay()
    monkeypatch.setattr(WhatsAppRelay, "send", staticmethod(fake.send))
    return fake


def sign(order_id: str, payment_id: str, secret: str = KEY_SECRET) -> str:
    return hmac_sha256_hex(secret, f"{order_id}|{payment_id}")


@pytest.fixture
def make_payment(db_session):
    """Insert a payment record directly."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "name": f"Donor {n}",
            "contact_no": "+919876543210",
            "purpose": "General Donation",
            "amount": 100.0 * n,
            "transaction_id": f"txn-{n:04d}",
            "oid": f"order_seed_{n:04d}",
            "to_user": "Temple Construction Fund",
            "done": False,
            "method": "online",
            "updated_at": datetime(2026, 1, 1, 10, 0, 0),
        }
        fields.update(overrides)
        payment = Payment(**fields)
        db_session.add(payment)
        db_session.commit()
        db_session.refresh(payment)
        return payment

    return _make
