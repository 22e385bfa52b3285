"""
Triage review endpoints.

GET  /api/triage/items              list items (status / minConfidence / limit)
GET  /api/triage/items/{id}         fetch one item
POST /api/triage/items/{id}/promote|reject|review|snooze  review transitions
POST /api/triage/run                run one triage cycle now
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from pastoral_triage.core.database import TriageStore
from pastoral_triage.core.errors import (
    ConfigurationError,
    ConnectorError,
    CycleInProgressError,
    PersistenceError,
)
from pastoral_triage.core.logging import get_logger
from pastoral_triage.core.models import TriageStatus
from pastoral_triage.processors.triage import TriageProcessor, get_processor

log = get_logger(__name__)
router = APIRouter(prefix="/api/triage")


class PromoteRequest(BaseModel):
    create_new_case: bool = Field(default=True, alias="createNewCase")
    case_id: str | None = Field(default=None, alias="caseId")


class SnoozeRequest(BaseModel):
    snooze_until: datetime | None = Field(default=None, alias="snoozeUntil")


def get_store() -> TriageStore:
    return get_processor().store


def _transition(
    store: TriageStore,
    item_id: int,
    status: TriageStatus,
    snooze_until: datetime | None = None,
) -> dict:
    try:
        item = store.update_status(item_id, status, snooze_until=snooze_until)
    except PersistenceError as e:
        log.error("triage_item_update_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to update triage item")

    if item is None:
        raise HTTPException(status_code=404, detail="Triage item not found")
    return item.to_dict()


@router.get("/items")
def list_items(
    status: TriageStatus | None = None,
    min_confidence: float | None = Query(default=None, alias="minConfidence", ge=0, le=1),
    limit: int = Query(default=100, ge=1, le=1000),
    store: TriageStore = Depends(get_store),
):
    """List triage items, newest received first."""
    try:
        items = store.list_items(status=status, min_confidence=min_confidence, limit=limit)
    except PersistenceError as e:
        log.error("triage_items_fetch_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch triage items")
    return [item.to_dict() for item in items]


@router.get("/items/{item_id}")
def get_item(item_id: int, store: TriageStore = Depends(get_store)):
    """Fetch a single triage item."""
    try:
        item = store.get(item_id)
    except PersistenceError as e:
        log.error("triage_item_fetch_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch triage item")

    if item is None:
        raise HTTPException(status_code=404, detail="Triage item not found")
    return item.to_dict()


@router.post("/items/{item_id}/promote")
def promote_item(
    item_id: int,
    request: PromoteRequest | None = None,
    store: TriageStore = Depends(get_store),
):
    """Mark an item as promoted to a support case."""
    item = _transition(store, item_id, TriageStatus.PROMOTED)
    request = request or PromoteRequest()
    log.info("triage_item_promoted", item_id=item_id, case_id=request.case_id)
    return {
        "success": True,
        "message": "Triage item promoted",
        "createNewCase": request.create_new_case,
        "caseId": request.case_id,
        "item": item,
    }


@router.post("/items/{item_id}/reject")
def reject_item(item_id: int, store: TriageStore = Depends(get_store)):
    """Reject an item as not a support case."""
    item = _transition(store, item_id, TriageStatus.REJECTED)
    return {"success": True, "message": "Triage item rejected", "item": item}


@router.post("/items/{item_id}/snooze")
def snooze_item(
    item_id: int,
    request: SnoozeRequest | None = None,
    store: TriageStore = Depends(get_store),
):
    """Snooze an item, optionally until a given time."""
    request = request or SnoozeRequest()
    item = _transition(store, item_id, TriageStatus.SNOOZED, snooze_until=request.snooze_until)
    return {"success": True, "message": "Triage item snoozed", "item": item}


@router.post("/items/{item_id}/review")
def review_item(item_id: int, store: TriageStore = Depends(get_store)):
    """Mark an item as reviewed."""
    item = _transition(store, item_id, TriageStatus.REVIEWED)
    return {"success": True, "message": "Triage item marked as reviewed", "item": item}


@router.post("/run")
def run_triage(processor: TriageProcessor = Depends(get_processor)):
    """
    Run one triage cycle now and report its counters.

    Failures come back as {"error": ..., "message": ...} with a non-2xx status.
    """
    log.info("manual_triage_triggered")
    try:
        result = processor.run_cycle()
    except CycleInProgressError as e:
        return _run_error(409, "Triage cycle already running", e)
    except ConfigurationError as e:
        return _run_error(503, "Triage is not configured", e)
    except ConnectorError as e:
        return _run_error(502, "Failed to fetch mail", e)
    except Exception as e:
        log.error("manual_triage_failed", error=str(e))
        return _run_error(500, "Failed to run triage cycle", e)

    return {
        "success": True,
        "message": "Triage cycle completed",
        "processed": result.processed,
        "skipped": result.skipped,
    }


def _run_error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": str(exc) or "Unknown error"},
    )
