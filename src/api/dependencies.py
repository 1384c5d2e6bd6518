import os
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException

from api import state
from api.workers import ProcessingJobs
from storage.google_auth import GoogleAuthStore
from storage.records import RecordStore
from storage.uploads import UploadStore

DEFAULT_USER_ID = int(os.getenv("DEFAULT_USER_ID", "1"))


@dataclass(frozen=True)
class AccountContext:
    """The account a request acts for."""

    user_id: int


def _require(instance, name: str):
    if instance is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return instance


def get_record_store() -> RecordStore:
    return _require(state.record_store, "Record store")


def get_google_auth_store() -> GoogleAuthStore:
    return _require(state.google_auth_store, "Auth store")


def get_upload_store() -> UploadStore:
    return _require(state.upload_store, "Upload store")


def get_jobs() -> ProcessingJobs:
    return _require(state.jobs, "Job runner")


async def get_current_account(
    x_user_id: Optional[int] = Header(default=None),
    records: RecordStore = Depends(get_record_store),
) -> AccountContext:
    user_id = x_user_id if x_user_id is not None else DEFAULT_USER_ID
    if await records.get_user(user_id) is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return AccountContext(user_id=user_id)
