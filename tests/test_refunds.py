from datetime import datetime, timezone

import pytest

from mindgood.services.stripe_service import StripeServiceError
from tests.conftest import auth_headers


@pytest.fixture
def paid_session(db, therapist, patient):
    db.seed(
        "appointments",
        "apt-1",
        {
            "therapistId": therapist,
            "clientId": patient,
            "status": "confirmed",
            "paymentStatus": "paid",
            "scheduledFor": datetime(2024, 7, 1, 15, 0, tzinfo=timezone.utc),
        },
    )
    db.seed(
        "payments",
        "pay-1",
        {
            "appointmentId": "apt-1",
            "clientId": patient,
            "therapistId": therapist,
            "amount": 80.0,
            "currency": "usd",
            "status": "succeeded",
            "stripePaymentIntentId": "pi_paid_1",
            "createdAt": datetime(2024, 6, 20, tzinfo=timezone.utc),
        },
    )
    return "pay-1"


def test_refund_payment(client, db, admin, paid_session, stripe_mock, sent_emails):
    response = client.post(
        "/api/admin/payments/pay-1/refund", json={"reason": "Therapist unavailable"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["stripeRefundId"] == "re_test_123"

    kwargs = stripe_mock.create_refund.call_args.kwargs
    assert kwargs["payment_intent_id"] == "pi_paid_1"
    assert kwargs["metadata"]["reason"] == "Therapist unavailable"

    refund = db.doc("refunds", body["refundId"])
    assert refund["status"] == "completed"
    assert refund["amount"] == 80.0
    assert refund["requestedBy"] == "admin-1"
    assert refund["stripeRefundId"] == "re_test_123"

    payment = db.doc("payments", "pay-1")
    assert payment["status"] == "refunded"
    assert payment["refundId"] == body["refundId"]

    appointment = db.doc("appointments", "apt-1")
    assert appointment["status"] == "cancelled"
    assert appointment["paymentStatus"] == "refunded"

    assert sent_emails.await_args.kwargs["to"] == "cleo.client@example.com"


def test_refund_uses_default_reason(client, db, admin, paid_session, stripe_mock):
    response = client.post("/api/admin/payments/pay-1/refund", json={}, headers=auth_headers(admin))

    assert response.status_code == 200
    refund = db.doc("refunds", response.json()["refundId"])
    assert refund["reason"] == "Admin initiated refund"


def test_refund_requires_succeeded_payment(client, db, admin, paid_session, stripe_mock):
    db.collection("payments").document("pay-1").update({"status": "pending"})

    response = client.post("/api/admin/payments/pay-1/refund", json={}, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json() == {"error": "Payment is not in succeeded status"}
    stripe_mock.create_refund.assert_not_called()
    assert db.all("refunds") == {}


def test_refund_missing_payment(client, admin):
    response = client.post("/api/admin/payments/nope/refund", json={}, headers=auth_headers(admin))

    assert response.status_code == 404
    assert response.json() == {"error": "Payment not found"}


def test_refund_stripe_failure_marks_refund_failed(client, db, admin, paid_session, stripe_mock):
    stripe_mock.create_refund.side_effect = StripeServiceError("Charge already refunded")

    response = client.post("/api/admin/payments/pay-1/refund", json={}, headers=auth_headers(admin))

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process refund via Stripe"}
    [refund] = db.all("refunds").values()
    assert refund["status"] == "failed"
    assert refund["failureReason"] == "Charge already refunded"
    assert db.doc("payments", "pay-1")["status"] == "succeeded"


def test_process_pending_refund(client, db, admin, paid_session, stripe_mock):
    db.seed(
        "refunds",
        "ref-1",
        {
            "paymentId": "pay-1",
            "appointmentId": "apt-1",
            "amount": 80.0,
            "status": "pending",
            "requestedAt": datetime(2024, 6, 21, tzinfo=timezone.utc),
        },
    )

    response = client.post("/api/admin/refunds/ref-1/process", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["stripeRefundId"] == "re_test_123"
    assert db.doc("refunds", "ref-1")["status"] == "completed"
    assert db.doc("appointments", "apt-1")["status"] == "cancelled"


def test_process_refund_requires_pending(client, db, admin, paid_session):
    db.seed("refunds", "ref-1", {"paymentId": "pay-1", "status": "completed"})

    response = client.post("/api/admin/refunds/ref-1/process", headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json() == {"error": "Refund is not in pending status"}


def test_payment_listing_and_stats(client, db, admin, paid_session):
    db.seed(
        "payments",
        "pay-2",
        {"amount": 50.0, "status": "failed", "createdAt": datetime(2024, 6, 22, tzinfo=timezone.utc)},
    )

    listed = client.get("/api/admin/payments", headers=auth_headers(admin)).json()["payments"]
    stats = client.get("/api/admin/payments/stats", headers=auth_headers(admin)).json()

    assert [p["id"] for p in listed] == ["pay-2", "pay-1"]
    assert listed[1]["clientName"] == "Cleo Client"
    assert listed[1]["therapistName"] == "Theo Therapist"
    assert listed[0]["clientName"] == "Unknown"
    assert stats == {
        "totalRevenue": 80.0,
        "totalTransactions": 2,
        "successfulPayments": 1,
        "failedPayments": 1,
        "refundedAmount": 0.0,
    }


def test_refund_listing_and_stats(client, db, admin, paid_session):
    client.post("/api/admin/payments/pay-1/refund", json={}, headers=auth_headers(admin))

    listed = client.get("/api/admin/refunds", headers=auth_headers(admin)).json()["refunds"]
    stats = client.get("/api/admin/refunds/stats", headers=auth_headers(admin)).json()

    assert len(listed) == 1
    assert listed[0]["status"] == "completed"
    assert listed[0]["clientName"] == "Cleo Client"
    assert stats == {"totalRefunds": 1, "pendingRefunds": 0, "completedRefunds": 1, "totalRefunded": 80.0}
