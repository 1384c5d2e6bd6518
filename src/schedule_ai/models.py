from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProcessingStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class User(CamelModel):
    id: int
    username: str
    password: str = ""
    # Fernet ciphertext, see storage.google_auth
    google_access_token: Optional[str] = None
    google_refresh_token: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class ScheduleImage(CamelModel):
    id: int
    user_id: Optional[int] = None
    filename: str
    original_text: Optional[str] = None
    processing_status: ProcessingStatus = ProcessingStatus.UPLOADING
    created_at: datetime = Field(default_factory=_utcnow)


class ParsedEvent(CamelModel):
    """One event draft as returned by the schedule parser."""

    title: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    start_time: str = Field(..., min_length=1)
    end_time: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None


class ParseResult(CamelModel):
    events: List[ParsedEvent] = Field(default_factory=list)
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    original_text: str = ""


class ExtractedEvent(CamelModel):
    id: int
    schedule_image_id: int
    title: str
    date: str
    start_time: str
    end_time: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    google_event_id: Optional[str] = None
    is_confirmed: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class ExtractedEventUpdate(CamelModel):
    """Partial update; only fields present in the request are applied."""

    title: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    is_confirmed: Optional[bool] = None

    @field_validator("title", "date", "start_time")
    @classmethod
    def required_not_blank(cls, v: Optional[str]) -> str:
        if v is None or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("is_confirmed")
    @classmethod
    def confirmed_not_null(cls, v: Optional[bool]) -> bool:
        if v is None:
            raise ValueError("must be true or false")
        return v

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class PublishedEvent(CamelModel):
    extracted_event_id: int
    external_event_id: str
    title: str
