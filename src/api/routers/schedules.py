import asyncio
import logging
import os
import time
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile

from api.dependencies import (
    AccountContext,
    get_current_account,
    get_jobs,
    get_record_store,
    get_upload_store,
)
from api.metrics import REQUESTS_TOTAL, REQUEST_LATENCY_SECONDS
from api.workers import ProcessingJobs
from schedule_ai.errors import NotFoundError
from schedule_ai.models import ExtractedEventUpdate, ProcessingStatus
from storage.records import RecordStore
from storage.uploads import UploadStore

router = APIRouter()
logger = logging.getLogger(__name__)

# Config
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
ALLOWED_CONTENT_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp"}


@router.post("/upload-schedule")
async def upload_schedule(
    background_tasks: BackgroundTasks,
    image: Optional[UploadFile] = File(default=None),
    account: AccountContext = Depends(get_current_account),
    records: RecordStore = Depends(get_record_store),
    uploads: UploadStore = Depends(get_upload_store),
    jobs: ProcessingJobs = Depends(get_jobs),
) -> dict:
    """Store the image and start processing it once the response is sent."""
    start = time.time()

    if image is None:
        REQUESTS_TOTAL.labels(endpoint="/api/upload-schedule", status="rejected").inc()
        raise HTTPException(status_code=400, detail="No image file provided")

    if image.content_type not in ALLOWED_CONTENT_TYPES:
        REQUESTS_TOTAL.labels(endpoint="/api/upload-schedule", status="rejected").inc()
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PNG, JPG, JPEG, and WebP are allowed.",
        )

    data = await image.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        REQUESTS_TOTAL.labels(endpoint="/api/upload-schedule", status="rejected").inc()
        raise HTTPException(status_code=413, detail="File too large (max 10MB)")

    stored = None
    try:
        stored = await asyncio.to_thread(uploads.save, data)
        schedule = await records.create_schedule_image(
            user_id=account.user_id,
            filename=stored.filename,
            status=ProcessingStatus.PROCESSING,
        )
    except Exception as e:
        logger.error(f"Error uploading image: {e}")
        # no job will run for this file
        if stored is not None:
            await asyncio.to_thread(uploads.delete, stored.path)
        REQUESTS_TOTAL.labels(endpoint="/api/upload-schedule", status="error").inc()
        raise HTTPException(status_code=500, detail="Failed to upload image")

    job = jobs.submit(schedule.id, stored.path)
    background_tasks.add_task(jobs.run, job)

    logger.info(f"Schedule image {schedule.id} uploaded by user {account.user_id}")
    REQUESTS_TOTAL.labels(endpoint="/api/upload-schedule", status="accepted").inc()
    REQUEST_LATENCY_SECONDS.labels(endpoint="/api/upload-schedule").observe(time.time() - start)

    return {
        "scheduleImageId": schedule.id,
        "message": "Image uploaded successfully, processing started",
    }


@router.get("/schedule/{schedule_id}")
async def get_schedule(
    schedule_id: int,
    records: RecordStore = Depends(get_record_store),
) -> dict:
    """Processing status plus whatever events have been extracted so far."""
    schedule = await records.get_schedule_image(schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Schedule not found")

    events = await records.list_extracted_events(schedule_id)
    return {
        "schedule": schedule.to_json(),
        "events": [event.to_json() for event in events],
    }


@router.patch("/events/{event_id}")
async def update_event(
    event_id: int,
    update: ExtractedEventUpdate,
    records: RecordStore = Depends(get_record_store),
) -> dict:
    try:
        event = await records.update_extracted_event(event_id, update)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Event not found")
    return event.to_json()


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: int,
    records: RecordStore = Depends(get_record_store),
) -> dict:
    try:
        await records.delete_extracted_event(event_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"message": "Event deleted successfully"}
