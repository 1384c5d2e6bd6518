from typing import Optional

from api.backend import ScheduleProcessor
from api.workers import ProcessingJobs
from storage.google_auth import GoogleAuthStore
from storage.records import RecordStore
from storage.uploads import UploadStore

# Global instances initialized at startup (tests may pre-populate them)
record_store: Optional[RecordStore] = None
google_auth_store: Optional[GoogleAuthStore] = None
upload_store: Optional[UploadStore] = None
processor: Optional[ScheduleProcessor] = None
jobs: Optional[ProcessingJobs] = None


def reset() -> None:
    global record_store, google_auth_store, upload_store, processor, jobs
    record_store = None
    google_auth_store = None
    upload_store = None
    processor = None
    jobs = None
