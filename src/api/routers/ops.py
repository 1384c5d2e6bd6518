import logging
from fastapi import APIRouter, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api import state
from api.metrics import JOBS_IN_FLIGHT
from storage import db
from storage.pg_store import PostgresRecordStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint for container orchestration."""
    store = state.record_store
    health = {
        "status": "healthy" if store is not None else "starting",
        "record_store": type(store).__name__ if store is not None else None,
        "jobs_in_flight": len(state.jobs.pending()) if state.jobs else 0,
    }

    if isinstance(store, PostgresRecordStore):
        db_health = await db.health_check()
        health["database"] = db_health
        if db_health["status"] != "healthy":
            health["status"] = "degraded"

    return health


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus scrape endpoint.
    """
    if state.jobs is not None:
        JOBS_IN_FLIGHT.set(len(state.jobs.pending()))

    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
