"""
Admin dashboard: filtered listing, statistics, exports and cash receipts.
"""
import csv
import io
import json
import re
from datetime import datetime

from temple_donations.models.payment import Payment


def _seed_mixed(make_payment):
    """3 completed, 2 pending, spread over two months."""
    make_payment(name="Radha", done=True, amount=1000, updated_at=datetime(2026, 1, 5, 9, 0))
    make_payment(name="Govinda", done=True, amount=500, updated_at=datetime(2026, 2, 10, 9, 0))
    make_payment(name="Madhava", done=True, amount=250, updated_at=datetime(2026, 2, 11, 9, 0),
                 to_user="Gaushala Seva")
    make_payment(name="Keshava", done=False, amount=700, updated_at=datetime(2026, 2, 12, 9, 0))
    make_payment(name="Damodara", done=False, amount=300, updated_at=datetime(2026, 2, 13, 9, 0))


class TestPaymentListing:

    def test_pagination(self, client, make_payment):
        for _ in range(11):
            make_payment()

        response = client.get("/api/admin/payments", params={"limit": 10, "page": 2})

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["payments"]) == 1
        assert data["pagination"] == {"page": 2, "limit": 10, "total": 11, "pages": 2}

    def test_status_filter_and_stats(self, client, make_payment):
        _seed_mixed(make_payment)

        data = client.get("/api/admin/payments", params={"status": "completed"}).json()["data"]

        assert len(data["payments"]) == 3
        assert all(p["done"] for p in data["payments"])
        assert data["stats"] == {
            "totalRevenue": 1750.0,
            "totalPayments": 5,
            "completedPayments": 3,
            "pendingPayments": 2,
        }

    def test_newest_first(self, client, make_payment):
        _seed_mixed(make_payment)
        names = [p["name"] for p in client.get("/api/admin/payments").json()["data"]["payments"]]
        assert names == ["Damodara", "Keshava", "Madhava", "Govinda", "Radha"]

    def test_search_matches_name_and_recipient(self, client, make_payment):
        _seed_mixed(make_payment)

        by_name = client.get("/api/admin/payments", params={"search": "govin"}).json()["data"]["payments"]
        by_recipient = client.get("/api/admin/payments", params={"search": "gaushala"}).json()["data"]["payments"]

        assert [p["name"] for p in by_name] == ["Govinda"]
        assert [p["name"] for p in by_recipient] == ["Madhava"]

    def test_search_treats_wildcards_literally(self, client, make_payment):
        _seed_mixed(make_payment)
        payments = client.get("/api/admin/payments", params={"search": "%"}).json()["data"]["payments"]
        assert payments == []

    def test_date_range_includes_whole_end_day(self, client, make_payment):
        _seed_mixed(make_payment)

        data = client.get("/api/admin/payments", params={"dateFrom": "2026-02-10", "dateTo": "2026-02-11"}).json()

        assert [p["name"] for p in data["data"]["payments"]] == ["Madhava", "Govinda"]

    def test_monthly_revenue(self, client, make_payment):
        _seed_mixed(make_payment)

        monthly = client.get("/api/admin/payments").json()["data"]["monthlyRevenue"]

        assert monthly == [
            {"year": 2026, "month": 2, "revenue": 750.0, "count": 2},
            {"year": 2026, "month": 1, "revenue": 1000.0, "count": 1},
        ]

    def test_invalid_filters(self, client):
        assert client.get("/api/admin/payments", params={"status": "refunded"}).status_code == 400
        assert client.get("/api/admin/payments", params={"dateFrom": "yesterday"}).status_code == 400
        assert client.get("/api/admin/payments", params={"page": 0}).status_code == 400


class TestExports:

    def test_csv_export(self, client, make_payment):
        make_payment(name='Radha "Rani"', done=True, amount=1000, transaction_id="txn-csv",
                     razorpay_payment_id="pay_1", upi_id="radha@ybl", method="upi")

        response = client.get("/api/admin/export", params={"format": "csv"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert re.match(r'attachment; filename="payments-export-\d{4}-\d{2}-\d{2}\.csv"',
                        response.headers["content-disposition"])

        lines = response.text.splitlines()
        assert lines[0] == ('"Name","Contact No","Amount","Purpose","Transaction ID","Razorpay Payment ID",'
                            '"UPI ID","Method","Recipient","Status","Date"')
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[1][0] == 'Radha "Rani"'
        assert rows[1][4] == "txn-csv"
        assert rows[1][9] == "Completed"
        assert rows[1][10] == "01/01/2026, 10:00:00 am"

    def test_csv_export_honours_filters(self, client, make_payment):
        _seed_mixed(make_payment)
        response = client.get("/api/admin/export", params={"format": "csv", "status": "pending"})
        rows = list(csv.reader(io.StringIO(response.text)))
        assert sorted(r[0] for r in rows[1:]) == ["Damodara", "Keshava"]

    def test_pdf_export(self, client, make_payment):
        _seed_mixed(make_payment)

        response = client.get("/api/admin/export", params={"format": "pdf"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")
        assert response.headers["content-disposition"].endswith('.pdf"')

    def test_unknown_format(self, client):
        response = client.get("/api/admin/export", params={"format": "xlsx"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid format"}


class TestCashReceipt:

    def _payload(self, **overrides):
        payload = {
            "name": "Gopal Das",
            "amount": 2100,
            "contactNo": "+919876543210",
            "to_user": "Temple Construction Fund",
        }
        payload.update(overrides)
        return payload

    def test_generates_completed_cash_record(self, client, relay, db_session):
        response = client.post("/api/admin/generate-receipt", json=self._payload())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert re.fullmatch(r"CASH-\d+-[A-Z0-9]{9}", body["transactionId"])
        assert "/api/receipts/cash-receipt-CASH-" in body["pdfUrl"]
        assert "warning" not in body or body["warning"] is None

        payment = db_session.query(Payment).filter_by(transaction_id=body["transactionId"]).one()
        assert payment.done is True
        assert payment.method == "cash"
        assert payment.purpose == "Cash Donation"
        assert payment.updated_at is not None

        assert len(relay.sent) == 1
        assert "Payment Method: Cash Payment" in relay.sent[0]["body"]
        assert "UPI ID" not in relay.sent[0]["body"]

    def test_send_failure_is_reported_as_warning(self, client, relay, db_session):
        relay.fail_with = "Twilio unavailable"

        response = client.post("/api/admin/generate-receipt", json=self._payload())

        assert response.status_code == 200
        assert response.json()["warning"] == "Twilio unavailable"
        assert db_session.query(Payment).count() == 1

    def test_rejects_non_positive_amounts(self, client, relay, db_session):
        for amount in ("0", "-5", 0, -5):
            response = client.post("/api/admin/generate-receipt", json=self._payload(amount=amount))
            assert response.status_code == 400
        assert db_session.query(Payment).count() == 0
        assert relay.sent == []

    def test_rejects_infinite_amounts(self, client, relay, db_session):
        for amount in ("inf", "Infinity"):
            response = client.post("/api/admin/generate-receipt", json=self._payload(amount=amount))
            assert response.status_code == 400

        body = json.dumps(self._payload(amount=float("inf")))
        response = client.post("/api/admin/generate-receipt", content=body,
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["message"] == "amount: Amount must be a positive number"

        assert db_session.query(Payment).count() == 0
        assert relay.sent == []

    def test_requires_indian_mobile(self, client, relay, db_session):
        response = client.post("/api/admin/generate-receipt", json=self._payload(contactNo="9876543210"))

        assert response.status_code == 400
        assert response.json()["message"] == "contactNo: Contact number must be in format +91xxxxxxxxxx"
        assert db_session.query(Payment).count() == 0

    def test_missing_fields(self, client, relay):
        response = client.post("/api/admin/generate-receipt", json={"name": "Gopal Das"})

        assert response.status_code == 400
        assert response.json()["message"].startswith("Missing required fields:")


def test_health_reports_dependencies(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["gateway"] == "configured"
    assert body["messaging"] == "configured"


def test_error_envelope_is_documented(client):
    spec = client.get("/openapi.json").json()

    assert "ErrorResponse" in spec["components"]["schemas"]
    responses = spec["paths"]["/api/admin/generate-receipt"]["post"]["responses"]
    assert responses["400"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
