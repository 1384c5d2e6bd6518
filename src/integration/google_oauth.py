import logging
import os

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from schedule_ai.errors import ExternalServiceError
from storage.google_auth import CALENDAR_SCOPES, TOKEN_URI

logger = logging.getLogger(__name__)

# Google Auth Configuration
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv(
    "GOOGLE_REDIRECT_URI", "http://localhost:8000/auth/google/callback"
)


def build_flow() -> Flow:
    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        raise ExternalServiceError("Google credentials not configured")

    return Flow.from_client_config(
        {
            "web": {
                "client_id": GOOGLE_CLIENT_ID,
                "client_secret": GOOGLE_CLIENT_SECRET,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": TOKEN_URI,
            }
        },
        scopes=CALENDAR_SCOPES,
        redirect_uri=GOOGLE_REDIRECT_URI,
        # the callback builds a fresh Flow, so no PKCE verifier survives
        autogenerate_code_verifier=False,
    )


def get_auth_url(state: str) -> str:
    """Consent URL; ``state`` comes back unchanged on the callback."""
    flow = build_flow()
    authorization_url, _ = flow.authorization_url(
        access_type="offline", prompt="consent", state=state
    )
    return authorization_url


def exchange_code(code: str) -> Credentials:
    flow = build_flow()
    flow.fetch_token(code=code)
    credentials = flow.credentials
    if not credentials.token:
        raise ExternalServiceError("No access token received")
    return credentials


def refresh_access_token(refresh_token: str) -> str:
    """Trade a refresh token for a new access token.

    Not called from the publish path; stored access tokens are used as-is.
    """
    credentials = Credentials(
        token=None,
        refresh_token=refresh_token,
        token_uri=TOKEN_URI,
        client_id=GOOGLE_CLIENT_ID,
        client_secret=GOOGLE_CLIENT_SECRET,
    )
    credentials.refresh(Request())
    if not credentials.token:
        raise ExternalServiceError("Failed to refresh access token")
    return credentials.token
