"""
PostgreSQL-backed record store.

Uses the shared asyncpg pool from ``storage.db``. Every mutation is a single
statement, except the bulk event insert which runs in one transaction so a
schedule never ends up with half of its events.
"""

import logging
from typing import List, Optional, Sequence

from schedule_ai.errors import NotFoundError
from schedule_ai.models import (
    ExtractedEvent,
    ExtractedEventUpdate,
    ParsedEvent,
    ProcessingStatus,
    ScheduleImage,
    User,
)
from storage import db
from storage.records import RecordStore

logger = logging.getLogger(__name__)

# Editable event columns, keyed by model attribute name
_EVENT_COLUMNS = {
    "title": "title",
    "date": "date",
    "start_time": "start_time",
    "end_time": "end_time",
    "location": "location",
    "description": "description",
    "is_confirmed": "is_confirmed",
}


def _user_from_record(record) -> User:
    return User(**dict(record))


def _schedule_from_record(record) -> ScheduleImage:
    data = dict(record)
    data["processing_status"] = ProcessingStatus(data["processing_status"])
    return ScheduleImage(**data)


def _event_from_record(record) -> ExtractedEvent:
    return ExtractedEvent(**dict(record))


class PostgresRecordStore(RecordStore):

    # Users

    async def get_user(self, user_id: int) -> Optional[User]:
        record = await db.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
        return _user_from_record(record) if record else None

    async def ensure_user(self, user_id: int, username: str) -> User:
        async with db.transaction() as conn:
            await conn.execute(
                "INSERT INTO users (id, username) VALUES ($1, $2) ON CONFLICT DO NOTHING",
                user_id,
                username,
            )
            # explicit ids bypass the sequence; move it past them
            await conn.execute(
                """
                SELECT setval(
                    pg_get_serial_sequence('users', 'id'),
                    GREATEST((SELECT MAX(id) FROM users), 1)
                )
                """
            )
            record = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)

        if record is None:
            raise NotFoundError(f"User {user_id} could not be created ({username} taken?)")
        return _user_from_record(record)

    async def update_user_tokens(
        self, user_id: int, access_token: Optional[str], refresh_token: Optional[str]
    ) -> User:
        record = await db.fetchrow(
            """
            UPDATE users
            SET google_access_token = $2, google_refresh_token = $3
            WHERE id = $1
            RETURNING *
            """,
            user_id,
            access_token,
            refresh_token,
        )
        if record is None:
            raise NotFoundError(f"User {user_id} not found")
        return _user_from_record(record)

    # Schedule images

    async def create_schedule_image(
        self,
        user_id: Optional[int],
        filename: str,
        status: ProcessingStatus = ProcessingStatus.PROCESSING,
    ) -> ScheduleImage:
        record = await db.fetchrow(
            """
            INSERT INTO schedule_images (user_id, filename, processing_status)
            VALUES ($1, $2, $3)
            RETURNING *
            """,
            user_id,
            filename,
            status.value,
        )
        return _schedule_from_record(record)

    async def get_schedule_image(self, schedule_id: int) -> Optional[ScheduleImage]:
        record = await db.fetchrow("SELECT * FROM schedule_images WHERE id = $1", schedule_id)
        return _schedule_from_record(record) if record else None

    async def update_schedule_status(
        self,
        schedule_id: int,
        status: ProcessingStatus,
        original_text: Optional[str] = None,
    ) -> ScheduleImage:
        record = await db.fetchrow(
            """
            UPDATE schedule_images
            SET processing_status = $2,
                original_text = COALESCE($3, original_text)
            WHERE id = $1
            RETURNING *
            """,
            schedule_id,
            status.value,
            original_text,
        )
        if record is None:
            raise NotFoundError(f"Schedule image {schedule_id} not found")
        return _schedule_from_record(record)

    # Extracted events

    async def create_extracted_events(
        self, schedule_id: int, drafts: Sequence[ParsedEvent]
    ) -> List[ExtractedEvent]:
        created = []
        async with db.transaction() as conn:
            exists = await conn.fetchval(
                "SELECT 1 FROM schedule_images WHERE id = $1", schedule_id
            )
            if not exists:
                raise NotFoundError(f"Schedule image {schedule_id} not found")

            for draft in drafts:
                record = await conn.fetchrow(
                    """
                    INSERT INTO extracted_events (
                        schedule_image_id, title, date, start_time,
                        end_time, location, description
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                    RETURNING *
                    """,
                    schedule_id,
                    draft.title,
                    draft.date,
                    draft.start_time,
                    draft.end_time,
                    draft.location,
                    draft.description,
                )
                created.append(_event_from_record(record))

        logger.info(f"Inserted {len(created)} events for schedule {schedule_id}")
        return created

    async def get_extracted_event(self, event_id: int) -> Optional[ExtractedEvent]:
        record = await db.fetchrow("SELECT * FROM extracted_events WHERE id = $1", event_id)
        return _event_from_record(record) if record else None

    async def list_extracted_events(self, schedule_id: int) -> List[ExtractedEvent]:
        records = await db.fetch(
            "SELECT * FROM extracted_events WHERE schedule_image_id = $1 ORDER BY id",
            schedule_id,
        )
        return [_event_from_record(r) for r in records]

    async def update_extracted_event(
        self, event_id: int, update: ExtractedEventUpdate
    ) -> ExtractedEvent:
        changes = update.changes()
        if not changes:
            event = await self.get_extracted_event(event_id)
            if event is None:
                raise NotFoundError(f"Event {event_id} not found")
            return event

        assignments = []
        args = [event_id]
        for name, value in changes.items():
            args.append(value)
            assignments.append(f"{_EVENT_COLUMNS[name]} = ${len(args)}")

        record = await db.fetchrow(
            f"UPDATE extracted_events SET {', '.join(assignments)} WHERE id = $1 RETURNING *",
            *args,
        )
        if record is None:
            raise NotFoundError(f"Event {event_id} not found")
        return _event_from_record(record)

    async def delete_extracted_event(self, event_id: int) -> None:
        result = await db.execute("DELETE FROM extracted_events WHERE id = $1", event_id)
        # execute returns e.g. "DELETE 1"
        if result.split()[-1] == "0":
            raise NotFoundError(f"Event {event_id} not found")

    async def set_google_event_id(self, event_id: int, google_event_id: str) -> ExtractedEvent:
        record = await db.fetchrow(
            "UPDATE extracted_events SET google_event_id = $2 WHERE id = $1 RETURNING *",
            event_id,
            google_event_id,
        )
        if record is None:
            raise NotFoundError(f"Event {event_id} not found")
        return _event_from_record(record)
