import pytest

from mindgood.services import agora_service
from mindgood.services.agora_service import AgoraNotConfiguredError, build_rtc_token, channel_name_for
from tests.conftest import auth_headers

APP_ID = "0123456789abcdef0123456789abcdef"
APP_CERTIFICATE = "fedcba9876543210fedcba9876543210"


@pytest.fixture
def agora_credentials(monkeypatch):
    monkeypatch.setattr(agora_service, "AGORA_APP_ID", APP_ID)
    monkeypatch.setattr(agora_service, "AGORA_APP_CERTIFICATE", APP_CERTIFICATE)


@pytest.fixture
def no_agora_credentials(monkeypatch):
    monkeypatch.setattr(agora_service, "AGORA_APP_ID", None)
    monkeypatch.setattr(agora_service, "AGORA_APP_CERTIFICATE", None)


def test_channel_name_for():
    assert channel_name_for("apt-1") == "session_apt-1"


def test_build_rtc_token_expiry(agora_credentials):
    result = build_rtc_token("session_apt-1", ttl_seconds=3600, now=1_700_000_000)

    assert result["appId"] == APP_ID
    assert result["channelName"] == "session_apt-1"
    assert result["uid"] == 0
    assert result["expiresAt"] == 1_700_003_600
    assert isinstance(result["token"], str) and result["token"]


def test_build_rtc_token_requires_credentials(no_agora_credentials):
    with pytest.raises(AgoraNotConfiguredError):
        build_rtc_token("session_apt-1")


def test_token_endpoint(client, patient, agora_credentials):
    response = client.post(
        "/api/agora/token",
        json={"channelName": "session_apt-1", "userId": patient},
        headers=auth_headers(patient),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["channelName"] == "session_apt-1"
    assert body["appId"] == APP_ID
    assert body["token"]


def test_token_endpoint_requires_auth(client, agora_credentials):
    response = client.post("/api/agora/token", json={"channelName": "session_apt-1", "userId": "u"})

    assert response.status_code == 401


def test_token_endpoint_missing_fields(client, patient, agora_credentials):
    response = client.post("/api/agora/token", json={"channelName": "session_apt-1"}, headers=auth_headers(patient))

    assert response.status_code == 400
    assert response.json() == {"error": "Missing channelName or userId"}


def test_token_endpoint_without_credentials(client, patient, no_agora_credentials):
    response = client.post(
        "/api/agora/token",
        json={"channelName": "session_apt-1", "userId": patient},
        headers=auth_headers(patient),
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Agora credentials not configured"}
