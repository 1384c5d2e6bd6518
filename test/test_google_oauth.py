import pytest

from integration import google_oauth
from schedule_ai.errors import ExternalServiceError


class FakeRefreshCredentials:
    """Stands in for google.oauth2 Credentials; refresh() issues ``new_token``."""

    new_token = "access-2"
    created = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.token = kwargs["token"]
        self.refreshed_with = None
        FakeRefreshCredentials.created.append(self)

    def refresh(self, request):
        self.refreshed_with = request
        self.token = self.new_token


@pytest.fixture
def fake_credentials(monkeypatch):
    FakeRefreshCredentials.created = []
    FakeRefreshCredentials.new_token = "access-2"
    monkeypatch.setattr(google_oauth, "Credentials", FakeRefreshCredentials)
    monkeypatch.setattr(google_oauth, "Request", lambda: "transport")
    monkeypatch.setattr(google_oauth, "GOOGLE_CLIENT_ID", "client-1")
    monkeypatch.setattr(google_oauth, "GOOGLE_CLIENT_SECRET", "secret-1")
    return FakeRefreshCredentials


def test_refresh_returns_new_access_token(fake_credentials):
    assert google_oauth.refresh_access_token("refresh-1") == "access-2"

    [creds] = fake_credentials.created
    assert creds.refreshed_with == "transport"
    assert creds.kwargs["refresh_token"] == "refresh-1"
    assert creds.kwargs["client_id"] == "client-1"
    assert creds.kwargs["client_secret"] == "secret-1"
    assert creds.kwargs["token_uri"] == google_oauth.TOKEN_URI


def test_refresh_without_token_raises(fake_credentials):
    fake_credentials.new_token = None

    with pytest.raises(ExternalServiceError):
        google_oauth.refresh_access_token("refresh-1")


def test_flow_requires_client_config(monkeypatch):
    monkeypatch.setattr(google_oauth, "GOOGLE_CLIENT_ID", None)

    with pytest.raises(ExternalServiceError):
        google_oauth.get_auth_url(state="1")
