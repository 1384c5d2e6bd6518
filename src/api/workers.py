import asyncio
import logging
import os
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from api.backend import ScheduleProcessor
from api.metrics import JOBS_IN_FLIGHT
from schedule_ai.models import ProcessingStatus

logger = logging.getLogger(__name__)

# Finished jobs kept for lookup after completion
JOB_HISTORY_SIZE = int(os.getenv("JOB_HISTORY_SIZE", "100"))


@dataclass
class ProcessingJob:
    """One background run of the pipeline for one uploaded schedule image."""

    schedule_id: int
    file_path: Path
    status: str = "queued"  # queued -> running -> succeeded | failed
    outcome: Optional[ProcessingStatus] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    _done: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    async def wait(self, timeout: Optional[float] = None) -> Optional[ProcessingStatus]:
        """Block until the job has finished and return the schedule's final status."""
        await asyncio.wait_for(self._done.wait(), timeout)
        return self.outcome


class ProcessingJobs:
    """
    Tracks pipeline runs started by uploads.

    Jobs are best effort: no retries and no persistence. Callers schedule
    ``run(job)`` on whatever executes background work (FastAPI BackgroundTasks
    in the HTTP layer), and anyone holding the job can await its completion.
    """

    def __init__(self, processor: ScheduleProcessor, history_size: int = JOB_HISTORY_SIZE):
        self.processor = processor
        self.history_size = history_size
        self.active: Dict[int, ProcessingJob] = {}
        # most recently finished last
        self.finished: "OrderedDict[int, ProcessingJob]" = OrderedDict()

    def submit(self, schedule_id: int, file_path: Path) -> ProcessingJob:
        job = ProcessingJob(schedule_id=schedule_id, file_path=Path(file_path))
        self.active[schedule_id] = job
        JOBS_IN_FLIGHT.inc()
        logger.info(f"Queued processing job for schedule image {schedule_id}")
        return job

    async def run(self, job: ProcessingJob) -> Optional[ProcessingStatus]:
        job.status = "running"
        job.started_at = datetime.now(timezone.utc)
        try:
            job.outcome = await self.processor.process(job.schedule_id, job.file_path)
            job.status = "succeeded" if job.outcome == ProcessingStatus.COMPLETED else "failed"
        except Exception as e:
            # process() handles its own errors; this only guards the bookkeeping
            logger.exception(f"Processing job for schedule image {job.schedule_id} crashed")
            job.status = "failed"
            job.error = str(e)
        finally:
            job.finished_at = datetime.now(timezone.utc)
            JOBS_IN_FLIGHT.dec()
            self._retire(job)
            job._done.set()
        return job.outcome

    def _retire(self, job: ProcessingJob) -> None:
        if self.active.get(job.schedule_id) is job:
            del self.active[job.schedule_id]
        self.finished[job.schedule_id] = job
        self.finished.move_to_end(job.schedule_id)
        while len(self.finished) > self.history_size:
            self.finished.popitem(last=False)

    def get(self, schedule_id: int) -> Optional[ProcessingJob]:
        return self.active.get(schedule_id) or self.finished.get(schedule_id)

    def pending(self) -> list:
        return list(self.active.values())

    async def drain(self, timeout: float = 30.0) -> int:
        """Wait for unfinished jobs (used at shutdown). Returns how many were still open."""
        open_jobs = self.pending()
        if not open_jobs:
            return 0
        logger.info(f"Waiting for {len(open_jobs)} processing jobs to finish")
        done, not_done = await asyncio.wait(
            [asyncio.ensure_future(job.wait()) for job in open_jobs], timeout=timeout
        )
        for waiter in not_done:
            waiter.cancel()
        if not_done:
            logger.warning(f"{len(not_done)} processing jobs still running at shutdown")
        return len(open_jobs)
