from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from schedule_ai.models import (
    ExtractedEvent,
    ExtractedEventUpdate,
    ParsedEvent,
    ProcessingStatus,
    ScheduleImage,
    User,
)


class RecordStore(ABC):
    """Keyed storage for users, schedule images and their extracted events.

    Lookups that miss return None; mutations of unknown ids raise
    ``schedule_ai.errors.NotFoundError``.
    """

    # Users

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    async def ensure_user(self, user_id: int, username: str) -> User:
        """Return the user with this id, creating it when missing."""
        raise NotImplementedError

    @abstractmethod
    async def update_user_tokens(
        self, user_id: int, access_token: Optional[str], refresh_token: Optional[str]
    ) -> User:
        raise NotImplementedError

    # Schedule images

    @abstractmethod
    async def create_schedule_image(
        self,
        user_id: Optional[int],
        filename: str,
        status: ProcessingStatus = ProcessingStatus.PROCESSING,
    ) -> ScheduleImage:
        raise NotImplementedError

    @abstractmethod
    async def get_schedule_image(self, schedule_id: int) -> Optional[ScheduleImage]:
        raise NotImplementedError

    @abstractmethod
    async def update_schedule_status(
        self,
        schedule_id: int,
        status: ProcessingStatus,
        original_text: Optional[str] = None,
    ) -> ScheduleImage:
        """Set the status; ``original_text`` is only written when given."""
        raise NotImplementedError

    # Extracted events

    @abstractmethod
    async def create_extracted_events(
        self, schedule_id: int, drafts: Sequence[ParsedEvent]
    ) -> List[ExtractedEvent]:
        raise NotImplementedError

    @abstractmethod
    async def get_extracted_event(self, event_id: int) -> Optional[ExtractedEvent]:
        raise NotImplementedError

    @abstractmethod
    async def list_extracted_events(self, schedule_id: int) -> List[ExtractedEvent]:
        raise NotImplementedError

    @abstractmethod
    async def update_extracted_event(
        self, event_id: int, update: ExtractedEventUpdate
    ) -> ExtractedEvent:
        raise NotImplementedError

    @abstractmethod
    async def delete_extracted_event(self, event_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    async def set_google_event_id(self, event_id: int, google_event_id: str) -> ExtractedEvent:
        raise NotImplementedError
