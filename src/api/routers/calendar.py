import asyncio
import logging
import time
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.dependencies import (
    AccountContext,
    get_current_account,
    get_google_auth_store,
    get_record_store,
)
from api.metrics import (
    EVENTS_PUBLISHED_TOTAL,
    PUBLISH_FAILURES_TOTAL,
    REQUESTS_TOTAL,
    REQUEST_LATENCY_SECONDS,
)
from integration.calendar_integration import CalendarIntegration
from schedule_ai.errors import AuthRequiredError, NotFoundError
from storage.google_auth import GoogleAuthStore
from storage.records import RecordStore

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateCalendarEventsIn(BaseModel):
    eventIds: List[int] = Field(...)


@router.post("/create-calendar-events")
async def create_calendar_events(
    payload: CreateCalendarEventsIn,
    account: AccountContext = Depends(get_current_account),
    records: RecordStore = Depends(get_record_store),
    google_auth_store: GoogleAuthStore = Depends(get_google_auth_store),
) -> dict:
    """Create Google Calendar entries for the selected extracted events."""
    start = time.time()

    try:
        credentials = await google_auth_store.require_credentials(account.user_id)
    except AuthRequiredError as e:
        REQUESTS_TOTAL.labels(endpoint="/api/create-calendar-events", status="unauthorized").inc()
        raise HTTPException(status_code=401, detail=str(e))

    events = []
    for event_id in payload.eventIds:
        event = await records.get_extracted_event(event_id)
        if event is None:
            logger.warning(f"Skipping unknown event id {event_id}")
            continue
        events.append(event)

    if not events:
        raise HTTPException(status_code=400, detail="No valid events found")

    integration = CalendarIntegration(credentials=credentials)
    try:
        # googleapiclient is blocking
        published = await asyncio.to_thread(integration.publish, events)
    except Exception as e:
        logger.error(f"Error creating calendar events: {e}")
        REQUESTS_TOTAL.labels(endpoint="/api/create-calendar-events", status="error").inc()
        raise HTTPException(status_code=500, detail="Failed to create calendar events")

    for item in published:
        try:
            await records.set_google_event_id(item.extracted_event_id, item.external_event_id)
        except NotFoundError:
            logger.warning(
                f"Event {item.extracted_event_id} was deleted while publishing; "
                f"calendar entry {item.external_event_id} is orphaned"
            )

    EVENTS_PUBLISHED_TOTAL.inc(len(published))
    PUBLISH_FAILURES_TOTAL.inc(len(events) - len(published))
    REQUESTS_TOTAL.labels(endpoint="/api/create-calendar-events", status="processed").inc()
    REQUEST_LATENCY_SECONDS.labels(endpoint="/api/create-calendar-events").observe(
        time.time() - start
    )

    return {
        "message": "Events created successfully",
        "createdEvents": [
            {
                "eventId": item.external_event_id,
                "extractedEventId": item.extracted_event_id,
                "title": item.title,
            }
            for item in published
        ],
    }
