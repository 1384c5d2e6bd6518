import asyncio
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from api.dependencies import (
    DEFAULT_USER_ID,
    AccountContext,
    get_current_account,
    get_google_auth_store,
)
from integration import google_oauth
from storage.google_auth import GoogleAuthStore

router = APIRouter()
logger = logging.getLogger(__name__)

FRONTEND_URL = os.getenv("FRONTEND_URL", "").rstrip("/")


def _redirect(query: str) -> Response:
    return Response(status_code=307, headers={"Location": f"{FRONTEND_URL}/?{query}"})


@router.get("/api/auth/google")
async def google_login(account: AccountContext = Depends(get_current_account)) -> dict:
    """Returns the Google consent URL; the account id travels in ``state``."""
    try:
        auth_url = google_oauth.get_auth_url(state=str(account.user_id))
    except Exception as e:
        logger.error(f"Error generating auth URL: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate authentication URL")
    return {"authUrl": auth_url}


@router.get("/auth/google/callback")
async def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    google_auth_store: GoogleAuthStore = Depends(get_google_auth_store),
):
    """Handles the OAuth2 callback."""
    if error:
        logger.error(f"OAuth error: {error}")
        return _redirect("error=auth_failed")

    if not code:
        raise HTTPException(status_code=400, detail="Authorization code is required")

    try:
        user_id = int(state) if state else DEFAULT_USER_ID
        credentials = await asyncio.to_thread(google_oauth.exchange_code, code)
        await google_auth_store.save_credentials(user_id, credentials)
    except Exception as e:
        logger.error(f"Error handling OAuth callback: {e}")
        return _redirect("error=auth_failed")

    return _redirect("connected=true")


@router.get("/api/auth/status")
async def google_status(
    account: AccountContext = Depends(get_current_account),
    google_auth_store: GoogleAuthStore = Depends(get_google_auth_store),
) -> dict:
    """Check if the account has a connected calendar."""
    try:
        return {"isConnected": await google_auth_store.is_connected(account.user_id)}
    except Exception as e:
        logger.error(f"Error checking status: {e}")
        raise HTTPException(status_code=500, detail="Failed to check auth status")


@router.post("/api/auth/google/disconnect")
async def google_disconnect(
    account: AccountContext = Depends(get_current_account),
    google_auth_store: GoogleAuthStore = Depends(get_google_auth_store),
) -> dict:
    """Delete stored credentials."""
    try:
        await google_auth_store.delete_credentials(account.user_id)
        return {"status": "disconnected"}
    except Exception as e:
        logger.error(f"Error disconnecting: {e}")
        raise HTTPException(status_code=500, detail=str(e))
