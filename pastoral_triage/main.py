"""
FastAPI application for the pastoral care triage service.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from pastoral_triage import __version__
from pastoral_triage.config import settings
from pastoral_triage.core.database import TriageStore
from pastoral_triage.core.errors import PersistenceError
from pastoral_triage.core.logging import configure_logging, get_logger
from pastoral_triage.processors.triage import get_processor
from pastoral_triage.routers.triage import get_store, router as triage_router
from pastoral_triage.scheduler import start_scheduler, stop_scheduler

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    configure_logging(log_level=settings.log_level, json_output=settings.json_logs)
    log.info("application_starting", version=__version__)

    processor = get_processor()
    processor.store.init_schema()

    if processor.classifier is None:
        log.warning("classifier_not_configured", reason="triage cycles will fail until GEMINI_API_KEY is set")

    if settings.enable_scheduler:
        start_scheduler(processor=processor)
    else:
        log.info("scheduler_disabled", reason="ENABLE_SCHEDULER=false, use POST /api/triage/run")

    yield

    # Shutdown
    if settings.enable_scheduler:
        stop_scheduler()
    processor.close()
    log.info("application_stopped")


app = FastAPI(
    title="Pastoral Care Triage",
    description="Email triage pipeline for the student support inbox",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(triage_router)


class StatsResponse(BaseModel):
    total: int = 0
    new: int = 0
    reviewed: int = 0
    promoted: int = 0
    rejected: int = 0
    snoozed: int = 0


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/stats", response_model=StatsResponse)
def get_stats(store: TriageStore = Depends(get_store)):
    """Get triage item counts per status."""
    try:
        stats = store.get_stats()
    except PersistenceError as e:
        log.error("stats_fetch_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch stats")
    return StatsResponse(**stats)


# Run with: uvicorn pastoral_triage.main:app --host 0.0.0.0 --port 8000
