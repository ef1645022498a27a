from tests.conftest import auth_headers, make_user, token_for


def test_missing_token_is_unauthorized(client):
    response = client.get("/api/admin/users")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_invalid_token_is_unauthorized(client):
    response = client.get("/api/admin/users", headers={"Authorization": "Bearer not-a-real-token"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_wrong_role_is_forbidden(client, patient):
    response = client.get("/api/admin/users", headers=auth_headers(patient))

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}


def test_user_without_profile_is_forbidden(client):
    response = client.get("/api/admin/users", headers=auth_headers("ghost"))

    assert response.status_code == 403


def test_cookie_token_is_accepted(client, admin):
    response = client.get("/api/admin/users", headers={"Cookie": f"auth-token={token_for(admin)}"})

    assert response.status_code == 200


def test_role_dependencies_are_distinct(client, db):
    db.seed("users", "t-1", make_user("therapist", "Tia Therapist"))

    assert client.get("/api/therapist/appointments", headers=auth_headers("t-1")).status_code == 200
    assert client.get("/api/client/appointments", headers=auth_headers("t-1")).status_code == 403
    assert client.get("/api/admin/stats", headers=auth_headers("t-1")).status_code == 403
