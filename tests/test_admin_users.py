from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from mindgood.routes import admin_users
from tests.conftest import auth_headers, make_user


@pytest.fixture
def role_claims(monkeypatch):
    setter = MagicMock()
    monkeypatch.setattr(admin_users, "set_role_claim", setter)
    return setter


@pytest.fixture
def population(db, admin):
    db.seed(
        "users",
        "u-old",
        make_user("client", "Olive Old", metadata={"createdAt": datetime(2023, 5, 1, tzinfo=timezone.utc)}),
    )
    db.seed(
        "users",
        "u-new",
        make_user(
            "therapist",
            "Nina New",
            status="suspended",
            metadata={"createdAt": datetime(2024, 6, 1, tzinfo=timezone.utc)},
        ),
    )


def test_list_users_newest_first(client, admin, population):
    response = client.get("/api/admin/users", headers=auth_headers(admin))

    assert response.status_code == 200
    users = response.json()["users"]
    assert [u["id"] for u in users] == ["u-new", "admin-1", "u-old"]
    assert users[0]["profile"]["displayName"] == "Nina New"
    assert users[0]["status"] == "suspended"
    assert users[0]["metadata"]["createdAt"].startswith("2024-06-01")


def test_user_stats(client, admin, population):
    response = client.get("/api/admin/users/stats", headers=auth_headers(admin))

    assert response.json() == {
        "totalUsers": 3,
        "activeUsers": 2,
        "clients": 1,
        "therapists": 1,
        "admins": 1,
    }


def test_update_role_sets_document_and_claims(client, db, admin, population, role_claims):
    response = client.patch(
        "/api/admin/users/u-old/role", json={"role": "therapist"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "User role updated successfully"}
    assert db.doc("users", "u-old")["role"] == "therapist"
    role_claims.assert_called_once_with("u-old", "therapist")


def test_update_role_rejects_unknown_role(client, admin, population, role_claims):
    response = client.patch(
        "/api/admin/users/u-old/role", json={"role": "superuser"}, headers=auth_headers(admin)
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid role value"}
    role_claims.assert_not_called()


def test_update_role_missing_user(client, admin, role_claims):
    response = client.patch(
        "/api/admin/users/nobody/role", json={"role": "client"}, headers=auth_headers(admin)
    )

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_update_role_claim_failure(client, admin, population, role_claims):
    role_claims.side_effect = RuntimeError("auth backend down")

    response = client.patch(
        "/api/admin/users/u-old/role", json={"role": "admin"}, headers=auth_headers(admin)
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to update user role"}


def test_update_role_requires_body(client, admin, population):
    response = client.patch("/api/admin/users/u-old/role", json={}, headers=auth_headers(admin))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request data"
    assert body["details"][0]["field"] == "role"


def test_update_status(client, db, admin, population):
    response = client.patch(
        "/api/admin/users/u-new/status", json={"status": "active"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert db.doc("users", "u-new")["status"] == "active"
    assert "updatedAt" in db.doc("users", "u-new")["metadata"]


def test_update_status_rejects_unknown_status(client, admin, population):
    response = client.patch(
        "/api/admin/users/u-new/status", json={"status": "deleted"}, headers=auth_headers(admin)
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid status value"}
