import logging
import os
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from googleapiclient.discovery import build

from schedule_ai.models import ExtractedEvent, PublishedEvent

logger = logging.getLogger(__name__)

CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
CALENDAR_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", "UTC")
DEFAULT_EVENT_DURATION = timedelta(hours=1)


def event_window(event: ExtractedEvent) -> tuple[datetime, datetime]:
    """Start and end of an event; one hour long when no end time is known."""
    start = datetime.fromisoformat(f"{event.date}T{event.start_time}")
    if event.end_time:
        end = datetime.fromisoformat(f"{event.date}T{event.end_time}")
    else:
        end = start + DEFAULT_EVENT_DURATION
    return start, end


class CalendarIntegration:

    def __init__(self, credentials=None, service=None, time_zone: Optional[str] = None):
        self.credentials = credentials
        self._service = service
        self.time_zone = time_zone or CALENDAR_TIMEZONE

    @property
    def service(self):
        if self._service is None:
            self._service = build(
                "calendar", "v3", credentials=self.credentials, cache_discovery=False
            )
        return self._service

    def build_event_body(self, event: ExtractedEvent) -> dict:
        start, end = event_window(event)
        return {
            "summary": event.title,
            "description": event.description or "",
            "location": event.location or "",
            "start": {"dateTime": start.isoformat(), "timeZone": self.time_zone},
            "end": {"dateTime": end.isoformat(), "timeZone": self.time_zone},
        }

    def publish(self, events: Iterable[ExtractedEvent]) -> List[PublishedEvent]:
        """
        Insert each event into the calendar independently.

        A failing event is logged and skipped; the return value lists only the
        events that were created, in input order.
        """
        published = []
        for event in events:
            if event.google_event_id:
                logger.warning(
                    f"Event {event.id} was already published as {event.google_event_id}; "
                    "creating another calendar entry"
                )
            try:
                body = self.build_event_body(event)
                created = (
                    self.service.events()
                    .insert(calendarId=CALENDAR_ID, body=body)
                    .execute()
                )
            except Exception as e:
                logger.error(f'Failed to create event "{event.title}": {e}')
                continue

            external_id = created.get("id")
            if not external_id:
                logger.error(f'Calendar returned no id for "{event.title}"')
                continue

            published.append(
                PublishedEvent(
                    extracted_event_id=event.id,
                    external_event_id=external_id,
                    title=event.title,
                )
            )

        logger.info(f"Published {len(published)} of the selected events")
        return published
