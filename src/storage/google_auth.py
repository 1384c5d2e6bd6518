import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from google.oauth2.credentials import Credentials

from schedule_ai.errors import AuthRequiredError, NotFoundError
from storage.records import RecordStore

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/userinfo.email",
]


class GoogleAuthStore:
    """Keeps each account's Google OAuth tokens, encrypted, on its user record."""

    def __init__(self, records: RecordStore, key: Optional[str] = None):
        self.records = records

        # In production the key MUST come from the environment, otherwise
        # tokens stored by a previous process can no longer be decrypted.
        key = key or os.getenv("GOOGLE_TOKEN_ENCRYPTION_KEY")
        if not key:
            logger.warning(
                "GOOGLE_TOKEN_ENCRYPTION_KEY not set. Generating a temporary key."
            )
            key = Fernet.generate_key().decode()

        self.fernet = Fernet(key.encode() if isinstance(key, str) else key)

    def _encrypt(self, data: Optional[str]) -> Optional[str]:
        if not data:
            return None
        return self.fernet.encrypt(data.encode()).decode()

    def _decrypt(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        try:
            return self.fernet.decrypt(token.encode()).decode()
        except InvalidToken:
            logger.error("Failed to decrypt stored Google token")
            return None

    async def save_credentials(self, user_id: int, credentials: Credentials) -> None:
        """Store OAuth tokens for the account (encrypted)."""
        user = await self.records.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")

        access_token_enc = self._encrypt(credentials.token)
        # Google only returns a refresh token on first consent; keep the old one otherwise
        refresh_token_enc = (
            self._encrypt(credentials.refresh_token)
            if credentials.refresh_token
            else user.google_refresh_token
        )

        await self.records.update_user_tokens(user_id, access_token_enc, refresh_token_enc)
        logger.info(f"Saved Google credentials for user {user_id}")

    async def get_credentials(self, user_id: int) -> Optional[Credentials]:
        user = await self.records.get_user(user_id)
        if user is None:
            return None

        access_token = self._decrypt(user.google_access_token)
        if not access_token:
            return None

        return Credentials(
            token=access_token,
            refresh_token=self._decrypt(user.google_refresh_token),
            token_uri=TOKEN_URI,
            client_id=os.getenv("GOOGLE_CLIENT_ID"),
            client_secret=os.getenv("GOOGLE_CLIENT_SECRET"),
            scopes=CALENDAR_SCOPES,
        )

    async def require_credentials(self, user_id: int) -> Credentials:
        credentials = await self.get_credentials(user_id)
        if credentials is None:
            raise AuthRequiredError("Google Calendar not connected")
        return credentials

    async def is_connected(self, user_id: int) -> bool:
        return await self.get_credentials(user_id) is not None

    async def delete_credentials(self, user_id: int) -> None:
        """Remove stored credentials."""
        await self.records.update_user_tokens(user_id, None, None)
        logger.info(f"Deleted Google credentials for user {user_id}")
