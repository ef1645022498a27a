import pytest

from mindgood.routes.admin_therapists import PROFILE_NOT_FOUND, therapist_profile_detail
from tests.conftest import auth_headers, make_user


@pytest.fixture
def applicant(db):
    db.seed("users", "applicant-1", make_user("therapist", "Aria Applicant", email="aria@example.com"))
    db.seed(
        "therapistProfiles",
        "applicant-1",
        {
            "credentials": {"licenseNumber": "LPC-123", "licenseState": "CA"},
            "verification": {"isVerified": False},
        },
    )
    return "applicant-1"


def test_profile_detail_fills_defaults():
    detail = therapist_profile_detail({})

    assert detail["isFeatured"] is False
    assert detail["practice"]["currency"] == "USD"
    assert detail["availability"] == {
        "timezone": "UTC",
        "bufferMinutes": 15,
        "maxDailyHours": 8,
        "advanceBookingDays": 30,
    }
    assert detail["verification"]["isVerified"] is False


def test_list_therapists(client, admin, therapist, applicant):
    response = client.get("/api/admin/therapists", headers=auth_headers(admin))

    assert response.status_code == 200
    by_id = {t["id"]: t for t in response.json()["therapists"]}
    assert set(by_id) == {"therapist-1", "applicant-1"}
    assert by_id["therapist-1"]["therapistProfile"]["verification"]["isVerified"] is True
    assert by_id["therapist-1"]["therapistProfile"]["practice"]["hourlyRate"] == 120
    assert by_id["applicant-1"]["therapistProfile"]["credentials"]["licenseNumber"] == "LPC-123"


def test_get_therapist(client, admin, therapist):
    response = client.get("/api/admin/therapists/therapist-1", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["therapist"]["email"] == "theo.therapist@example.com"


def test_get_therapist_without_profile(client, db, admin):
    db.seed("users", "fresh-1", make_user("therapist", "Fresh Face"))

    response = client.get("/api/admin/therapists/fresh-1", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["therapist"]["therapistProfile"] is None


def test_get_missing_therapist(client, admin):
    response = client.get("/api/admin/therapists/nobody", headers=auth_headers(admin))

    assert response.status_code == 404
    assert response.json() == {"error": "Therapist not found"}


def test_verify_therapist(client, db, admin, applicant, sent_emails):
    response = client.post("/api/admin/therapists/applicant-1/verify", headers=auth_headers(admin))

    assert response.status_code == 200
    verification = db.doc("therapistProfiles", "applicant-1")["verification"]
    assert verification["isVerified"] is True
    assert verification["verifiedBy"] == "admin-1"
    assert verification["verifiedAt"] is not None
    assert sent_emails.await_args.kwargs["to"] == "aria@example.com"


def test_verify_requires_profile(client, db, admin):
    db.seed("users", "fresh-1", make_user("therapist", "Fresh Face"))

    response = client.post("/api/admin/therapists/fresh-1/verify", headers=auth_headers(admin))

    assert response.status_code == 404
    assert response.json() == {"error": PROFILE_NOT_FOUND}


def test_reject_therapist_suspends_account(client, db, admin, applicant, sent_emails):
    response = client.post("/api/admin/therapists/applicant-1/reject", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["message"] == "Therapist application rejected"
    profile = db.doc("therapistProfiles", "applicant-1")
    assert profile["verification"]["isVerified"] is False
    assert profile["verification"]["rejectedBy"] == "admin-1"
    assert db.doc("users", "applicant-1")["status"] == "suspended"
    assert sent_emails.await_count == 1


def test_feature_verified_therapist(client, db, admin, therapist):
    response = client.patch(
        "/api/admin/therapists/therapist-1/feature", json={"isFeatured": True}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Therapist featured successfully"
    assert db.doc("therapistProfiles", "therapist-1")["isFeatured"] is True


def test_feature_unverified_therapist_is_rejected(client, db, admin, applicant):
    response = client.patch(
        "/api/admin/therapists/applicant-1/feature", json={"isFeatured": True}, headers=auth_headers(admin)
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Only verified therapists can be featured"}
    assert "isFeatured" not in db.doc("therapistProfiles", "applicant-1")


def test_unfeature_does_not_require_verification(client, db, admin, applicant):
    response = client.patch(
        "/api/admin/therapists/applicant-1/feature", json={"isFeatured": False}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert db.doc("therapistProfiles", "applicant-1")["isFeatured"] is False


def test_feature_requires_boolean(client, admin, therapist):
    response = client.patch(
        "/api/admin/therapists/therapist-1/feature", json={"isFeatured": "yes"}, headers=auth_headers(admin)
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request data"
