import pytest

from mindgood.auth_gate import is_protected_route, is_public_route
from tests.conftest import auth_headers


@pytest.mark.parametrize("path", ["/", "/login", "/login/reset", "/register", "/forgot-password"])
def test_public_routes(path):
    assert is_public_route(path)


@pytest.mark.parametrize("path", ["/dashboard", "/client", "/about"])
def test_non_public_routes(path):
    assert not is_public_route(path)


@pytest.mark.parametrize("path", ["/client/appointments", "/therapist", "/admin/users", "/session/apt-1"])
def test_protected_routes(path):
    assert is_protected_route(path)


def test_protected_page_without_token_redirects_to_login(client):
    response = client.get("/client/appointments", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login?redirect=/client/appointments"


def test_malformed_token_redirects_and_clears_cookie(client):
    response = client.get(
        "/admin/users", headers={"Authorization": "Bearer short"}, follow_redirects=False
    )

    assert response.status_code == 307
    assert response.headers["location"] == "/login?redirect=/admin/users"
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("auth-token=")
    assert "Max-Age=0" in set_cookie


def test_protected_page_with_token_passes_through(client, admin):
    response = client.get("/admin/users", headers=auth_headers(admin), follow_redirects=False)

    # No page routes are served by the API, so a passing request reaches the 404 handler
    assert response.status_code == 404


def test_unknown_page_redirects_to_login(client):
    response = client.get("/pricing", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login"


def test_public_page_passes_through(client):
    response = client.get("/login", follow_redirects=False)

    assert response.status_code == 404


def test_api_and_health_bypass_the_gate(client):
    assert client.get("/health", follow_redirects=False).status_code == 200
    assert client.get("/api/does-not-exist", follow_redirects=False).status_code == 404
    assert client.get("/_next/static/chunk.js", follow_redirects=False).status_code == 404


def test_root_is_public(client):
    response = client.get("/", follow_redirects=False)

    assert response.status_code == 200
    assert response.json() == {"message": "MindGood API is running"}
