from datetime import datetime, timezone

import pytest

from mindgood.services.stripe_service import StripeServiceError
from tests.conftest import auth_headers, make_user


@pytest.fixture
def pending_payout(db, therapist):
    db.seed(
        "payouts",
        "payout_apt-1",
        {
            "id": "payout_apt-1",
            "therapistId": therapist,
            "appointmentId": "apt-1",
            "paymentId": "pay-1",
            "amount": 80.0,
            "platformFee": 8.0,
            "netAmount": 72.0,
            "currency": "usd",
            "status": "pending",
            "scheduledDate": datetime(2024, 6, 1, tzinfo=timezone.utc),
            "createdAt": datetime(2024, 6, 1, tzinfo=timezone.utc),
        },
    )
    return "payout_apt-1"


def test_process_payout_transfers_net_amount(client, db, admin, pending_payout, stripe_mock, sent_emails):
    response = client.post(f"/api/admin/payouts/{pending_payout}/process", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Payout processed successfully",
        "transferId": "tr_test_123",
    }
    kwargs = stripe_mock.create_transfer.call_args.kwargs
    assert kwargs["amount_cents"] == 7200
    assert kwargs["destination"] == "acct_theo"
    assert kwargs["metadata"]["payoutId"] == pending_payout

    payout = db.doc("payouts", pending_payout)
    assert payout["status"] == "completed"
    assert payout["stripePayoutId"] == "tr_test_123"
    assert payout["completedDate"] is not None
    assert sent_emails.await_args.kwargs["to"] == "theo.therapist@example.com"


def test_process_payout_not_found(client, admin):
    response = client.post("/api/admin/payouts/missing/process", headers=auth_headers(admin))

    assert response.status_code == 404
    assert response.json() == {"error": "Payout not found"}


def test_process_payout_requires_pending(client, db, admin, pending_payout, stripe_mock):
    db.collection("payouts").document(pending_payout).update({"status": "completed"})

    response = client.post(f"/api/admin/payouts/{pending_payout}/process", headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json() == {"error": "Payout is not in pending status"}
    stripe_mock.create_transfer.assert_not_called()


def test_process_payout_without_connect_account(client, db, admin, pending_payout, stripe_mock):
    db.seed("users", "therapist-1", make_user("therapist", "Theo Therapist"))

    response = client.post(f"/api/admin/payouts/{pending_payout}/process", headers=auth_headers(admin))

    assert response.status_code == 400
    payout = db.doc("payouts", pending_payout)
    assert payout["status"] == "failed"
    assert payout["failureReason"] == "Therapist has not connected Stripe account"
    stripe_mock.create_transfer.assert_not_called()


def test_process_payout_stripe_failure(client, db, admin, pending_payout, stripe_mock, sent_emails):
    stripe_mock.create_transfer.side_effect = StripeServiceError("Insufficient funds")

    response = client.post(f"/api/admin/payouts/{pending_payout}/process", headers=auth_headers(admin))

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process payout via Stripe"}
    payout = db.doc("payouts", pending_payout)
    assert payout["status"] == "failed"
    assert payout["failureReason"] == "Insufficient funds"
    sent_emails.assert_not_awaited()


def test_list_payouts(client, admin, pending_payout):
    response = client.get("/api/admin/payouts", headers=auth_headers(admin))

    payouts = response.json()["payouts"]
    assert len(payouts) == 1
    assert payouts[0]["therapistName"] == "Theo Therapist"
    assert payouts[0]["netAmount"] == 72.0
    assert payouts[0]["scheduledDate"].startswith("2024-06-01")


def test_payout_stats(client, db, admin, pending_payout):
    db.seed(
        "payouts",
        "payout_apt-2",
        {"status": "completed", "netAmount": 45.5, "platformFee": 4.5, "scheduledDate": datetime.now(timezone.utc)},
    )

    response = client.get("/api/admin/payouts/stats", headers=auth_headers(admin))

    assert response.json() == {
        "totalPayouts": 2,
        "pendingPayouts": 1,
        "completedPayouts": 1,
        "totalPaid": 45.5,
        "platformRevenue": 12.5,
    }
