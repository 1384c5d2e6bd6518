import logging
import os

from fastapi import FastAPI

from api import state
from api.backend import ScheduleProcessor
from api.dependencies import DEFAULT_USER_ID
from api.routers import auth, calendar, ops, schedules
from api.workers import ProcessingJobs
from storage import db
from storage.google_auth import GoogleAuthStore
from storage.memory_store import MemoryRecordStore
from storage.pg_store import PostgresRecordStore
from storage.uploads import UploadStore

# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

# Config
RECORD_STORE = os.getenv("RECORD_STORE", "memory").strip().lower()
DEFAULT_USERNAME = os.getenv("DEFAULT_USERNAME", "default")
JOB_DRAIN_TIMEOUT_S = float(os.getenv("JOB_DRAIN_TIMEOUT_S", "30"))

app = FastAPI(title="Schedule to Calendar")

app.include_router(schedules.router, prefix="/api", tags=["schedules"])
app.include_router(calendar.router, prefix="/api", tags=["calendar"])
app.include_router(auth.router, tags=["auth"])
app.include_router(ops.router, tags=["ops"])


async def _init_record_store():
    if RECORD_STORE == "postgres":
        await db.init_db_pool()
        await db.init_schema()
        return PostgresRecordStore()
    if RECORD_STORE != "memory":
        raise RuntimeError(f"Unknown RECORD_STORE: {RECORD_STORE}")
    logger.warning("Using in-memory record store; data is lost on restart")
    return MemoryRecordStore()


@app.on_event("startup")
async def startup() -> None:
    # Anything already set (tests) is kept as-is
    if state.record_store is None:
        state.record_store = await _init_record_store()
    await state.record_store.ensure_user(DEFAULT_USER_ID, DEFAULT_USERNAME)

    if state.google_auth_store is None:
        state.google_auth_store = GoogleAuthStore(state.record_store)
    if state.upload_store is None:
        state.upload_store = UploadStore()
    if state.processor is None:
        state.processor = ScheduleProcessor(state.record_store, state.upload_store)
    if state.jobs is None:
        state.jobs = ProcessingJobs(state.processor)

    logger.info(f"Startup complete (record store: {type(state.record_store).__name__})")


@app.on_event("shutdown")
async def shutdown() -> None:
    if state.jobs is not None:
        await state.jobs.drain(timeout=JOB_DRAIN_TIMEOUT_S)
    if isinstance(state.record_store, PostgresRecordStore):
        await db.close_db_pool()
