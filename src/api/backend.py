import asyncio
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from api.metrics import (
    EVENTS_EXTRACTED_TOTAL,
    PIPELINE_STAGE_SECONDS,
    SCHEDULES_PROCESSED_TOTAL,
)
from extraction.ocr import VisionTextExtractor
from extraction.schedule_parser import ScheduleParser
from schedule_ai.errors import EmptyTextError
from schedule_ai.models import ProcessingStatus
from storage.records import RecordStore
from storage.uploads import UploadStore

logger = logging.getLogger(__name__)


@contextmanager
def _timed(stage: str):
    start = time.time()
    try:
        yield
    finally:
        PIPELINE_STAGE_SECONDS.labels(stage=stage).observe(time.time() - start)


class ScheduleProcessor:
    """Central orchestration component: schedule image -> extracted events.

    ``process`` never raises. Whatever happens, the schedule image ends in
    ``completed`` or ``failed`` and the uploaded file is removed.
    """

    def __init__(
        self,
        records: RecordStore,
        uploads: UploadStore,
        ocr: Optional[VisionTextExtractor] = None,
        parser: Optional[ScheduleParser] = None,
    ):
        self.records = records
        self.uploads = uploads
        self.ocr = ocr or VisionTextExtractor()
        self.parser = parser or ScheduleParser()

    async def process(self, schedule_id: int, file_path: Path) -> ProcessingStatus:
        try:
            await self._run_stages(schedule_id, file_path)
            status = ProcessingStatus.COMPLETED
        except Exception:
            logger.exception(f"Error processing schedule image {schedule_id}")
            status = ProcessingStatus.FAILED
            try:
                await self.records.update_schedule_status(schedule_id, status)
            except Exception as e:
                logger.error(f"Could not mark schedule image {schedule_id} failed: {e}")
        finally:
            await asyncio.to_thread(self.uploads.delete, file_path)

        SCHEDULES_PROCESSED_TOTAL.labels(status=status.value).inc()
        return status

    async def _run_stages(self, schedule_id: int, file_path: Path) -> None:
        # 1. Mark as processing
        await self.records.update_schedule_status(schedule_id, ProcessingStatus.PROCESSING)

        # 2. Read the uploaded bytes (OSError propagates)
        image_bytes = await asyncio.to_thread(self.uploads.read, file_path)

        # 3. OCR
        with _timed("ocr"):
            text = await asyncio.to_thread(self.ocr.extract_text, image_bytes)
        if not text or not text.strip():
            raise EmptyTextError("No readable text found in the image")

        # 4. Keep the raw text on the schedule record
        await self.records.update_schedule_status(
            schedule_id, ProcessingStatus.PROCESSING, original_text=text
        )

        # 5. Structure with the AI parser, image attached for context
        with _timed("parse"):
            result = await asyncio.to_thread(self.parser.parse, text, image_bytes)

        # 6. Persist the drafts
        with _timed("persist"):
            events = await self.records.create_extracted_events(schedule_id, result.events)
        EVENTS_EXTRACTED_TOTAL.inc(len(events))

        # 7. Done
        await self.records.update_schedule_status(schedule_id, ProcessingStatus.COMPLETED)
        logger.info(
            f"Schedule image {schedule_id} completed: {len(events)} events "
            f"(confidence {result.confidence:.2f})"
        )
