import os

# Configuration is read at import time
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_mindgood")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_mindgood")
os.environ.setdefault("FRONTEND_URL", "https://app.mindgood.test")

from datetime import datetime, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from mindgood import auth, email_service, webhook_security  # noqa: E402
from mindgood.firebase import get_db  # noqa: E402
from mindgood.main import app  # noqa: E402
from mindgood.services.stripe_service import StripeService, get_stripe_service  # noqa: E402
from tests.fakes import FakeFirestore  # noqa: E402

CRON_SECRET = "test-cron-secret"
WEBHOOK_SECRET = "whsec_test_mindgood"


def token_for(uid: str) -> str:
    # Long enough to pass the page gate's malformed-token check
    return f"test-id-token-for-{uid}-0123456789"


def auth_headers(uid: str) -> dict:
    return {"Authorization": f"Bearer {token_for(uid)}"}


def fake_verify_id_token(token: str) -> dict:
    prefix, suffix = "test-id-token-for-", "-0123456789"
    if not token.startswith(prefix) or not token.endswith(suffix):
        raise ValueError("Invalid ID token")
    return {"uid": token[len(prefix) : -len(suffix)]}


def make_user(role: str, name: str = "Test User", email: str = None, **extra) -> dict:
    data = {
        "email": email or f"{name.lower().replace(' ', '.')}@example.com",
        "role": role,
        "status": "active",
        "profile": {"displayName": name, "firstName": name.split()[0], "lastName": name.split()[-1]},
        "metadata": {"createdAt": datetime(2024, 1, 10, tzinfo=timezone.utc)},
    }
    data.update(extra)
    return data


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def stripe_mock():
    mock = MagicMock(spec=StripeService)
    mock.create_payment_intent.return_value = SimpleNamespace(id="pi_test_123", client_secret="pi_test_123_secret")
    mock.create_transfer.return_value = SimpleNamespace(id="tr_test_123")
    mock.create_refund.return_value = SimpleNamespace(id="re_test_123")
    mock.create_checkout_session.return_value = SimpleNamespace(
        id="cs_test_123", url="https://checkout.stripe.com/c/pay/cs_test_123"
    )
    mock.retrieve_payment_intent.return_value = {"id": "pi_test_123", "amount": 8000}
    return mock


@pytest.fixture
def sent_emails(monkeypatch):
    """Captures outgoing emails instead of calling Resend"""
    send = AsyncMock(return_value={"id": "email_test"})
    monkeypatch.setattr(email_service, "send_email", send)
    return send


@pytest.fixture
def client(db, stripe_mock, sent_emails, monkeypatch):
    monkeypatch.setattr(auth, "verify_id_token", fake_verify_id_token)
    monkeypatch.setattr(webhook_security, "CRON_SECRET", CRON_SECRET)
    monkeypatch.setattr(webhook_security, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_stripe_service] = lambda: stripe_mock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    db.seed("users", "admin-1", make_user("admin", "Ada Admin"))
    return "admin-1"


@pytest.fixture
def therapist(db):
    db.seed(
        "users",
        "therapist-1",
        make_user("therapist", "Theo Therapist", stripeConnectAccountId="acct_theo"),
    )
    db.seed(
        "therapistProfiles",
        "therapist-1",
        {
            "verification": {"isVerified": True},
            "practice": {"hourlyRate": 120, "currency": "USD", "bio": "CBT"},
            "isFeatured": False,
        },
    )
    return "therapist-1"


@pytest.fixture
def patient(db):
    db.seed("users", "client-1", make_user("client", "Cleo Client"))
    return "client-1"
