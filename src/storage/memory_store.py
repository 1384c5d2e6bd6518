from __future__ import annotations

import itertools
import logging
from typing import Dict, List, Optional, Sequence

from schedule_ai.errors import NotFoundError
from schedule_ai.models import (
    ExtractedEvent,
    ExtractedEventUpdate,
    ParsedEvent,
    ProcessingStatus,
    ScheduleImage,
    User,
)
from storage.records import RecordStore

logger = logging.getLogger(__name__)


class MemoryRecordStore(RecordStore):
    """Process-local reference store with auto-incrementing ids.

    Nothing here awaits, so each method runs to completion before another
    coroutine on the loop can observe the maps. Records are replaced, never
    mutated in place, so callers holding an old copy see a stable snapshot.
    """

    def __init__(self):
        self._users: Dict[int, User] = {}
        self._schedules: Dict[int, ScheduleImage] = {}
        self._events: Dict[int, ExtractedEvent] = {}
        self._schedule_ids = itertools.count(1)
        self._event_ids = itertools.count(1)

    # Users

    async def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def ensure_user(self, user_id: int, username: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            user = User(id=user_id, username=username)
            self._users[user_id] = user
            logger.info(f"Created user {user_id} ({username})")
        return user

    async def update_user_tokens(
        self, user_id: int, access_token: Optional[str], refresh_token: Optional[str]
    ) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        updated = user.model_copy(
            update={
                "google_access_token": access_token,
                "google_refresh_token": refresh_token,
            }
        )
        self._users[user_id] = updated
        return updated

    # Schedule images

    async def create_schedule_image(
        self,
        user_id: Optional[int],
        filename: str,
        status: ProcessingStatus = ProcessingStatus.PROCESSING,
    ) -> ScheduleImage:
        schedule = ScheduleImage(
            id=next(self._schedule_ids),
            user_id=user_id,
            filename=filename,
            processing_status=status,
        )
        self._schedules[schedule.id] = schedule
        return schedule

    async def get_schedule_image(self, schedule_id: int) -> Optional[ScheduleImage]:
        return self._schedules.get(schedule_id)

    async def update_schedule_status(
        self,
        schedule_id: int,
        status: ProcessingStatus,
        original_text: Optional[str] = None,
    ) -> ScheduleImage:
        schedule = self._schedules.get(schedule_id)
        if schedule is None:
            raise NotFoundError(f"Schedule image {schedule_id} not found")
        changes = {"processing_status": status}
        if original_text is not None:
            changes["original_text"] = original_text
        updated = schedule.model_copy(update=changes)
        self._schedules[schedule_id] = updated
        return updated

    # Extracted events

    async def create_extracted_events(
        self, schedule_id: int, drafts: Sequence[ParsedEvent]
    ) -> List[ExtractedEvent]:
        if schedule_id not in self._schedules:
            raise NotFoundError(f"Schedule image {schedule_id} not found")
        created = []
        for draft in drafts:
            event = ExtractedEvent(
                id=next(self._event_ids),
                schedule_image_id=schedule_id,
                **draft.model_dump(),
            )
            self._events[event.id] = event
            created.append(event)
        return created

    async def get_extracted_event(self, event_id: int) -> Optional[ExtractedEvent]:
        return self._events.get(event_id)

    async def list_extracted_events(self, schedule_id: int) -> List[ExtractedEvent]:
        return [e for e in self._events.values() if e.schedule_image_id == schedule_id]

    async def update_extracted_event(
        self, event_id: int, update: ExtractedEventUpdate
    ) -> ExtractedEvent:
        event = self._events.get(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        updated = event.model_copy(update=update.changes())
        self._events[event_id] = updated
        return updated

    async def delete_extracted_event(self, event_id: int) -> None:
        if self._events.pop(event_id, None) is None:
            raise NotFoundError(f"Event {event_id} not found")

    async def set_google_event_id(self, event_id: int, google_event_id: str) -> ExtractedEvent:
        event = self._events.get(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        updated = event.model_copy(update={"google_event_id": google_event_id})
        self._events[event_id] = updated
        return updated
