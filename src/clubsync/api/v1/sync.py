"""Operator trigger endpoints for reconciliation runs.

Run now, run now for a single record kind, and a read-only status view.
All logic lives in SyncScheduler; these routes only translate HTTP.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.clubsync.api.deps import get_scheduler
from src.clubsync.sync.scheduler import SyncScheduler
from src.clubsync.sync.schemas import RecordKind, RunSummary, SyncStatus, SyncTotals

router = APIRouter(prefix="/sync", tags=["sync"])


# ── Response Schemas ─────────────────────────────────────────────────────────


class TriggerResponse(BaseModel):
    """Result of a manual trigger."""

    status: str
    totals: SyncTotals
    summary: RunSummary
    synced_count: int


# ── Endpoints ────────────────────────────────────────────────────────────────


async def _trigger(
    scheduler: SyncScheduler,
    kinds: list[RecordKind] | None,
    locations: list[str] | None,
):
    summary = await scheduler.run(kinds=kinds, location_ids=locations or None)
    if summary is None:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"status": "already_running", "synced_count": scheduler.ledger.total},
        )
    return TriggerResponse(
        status="completed",
        totals=summary.totals,
        summary=summary,
        synced_count=scheduler.ledger.total,
    )


@router.get("/status", response_model=SyncStatus)
async def sync_status(scheduler: SyncScheduler = Depends(get_scheduler)) -> SyncStatus:
    """Ledger sizes, last run timestamp and cumulative counts."""
    return scheduler.status()


@router.api_route("/trigger", methods=["GET", "POST"], response_model=TriggerResponse)
async def trigger_run(
    location: list[str] | None = Query(default=None),
    scheduler: SyncScheduler = Depends(get_scheduler),
):
    """Run reconciliation now for every configured record kind.

    Optional repeated ``location`` query parameters restrict the run to those
    ABC club numbers. Returns 409 if a run is already in flight.
    """
    return await _trigger(scheduler, None, location)


@router.api_route("/trigger/{kind}", methods=["GET", "POST"], response_model=TriggerResponse)
async def trigger_kind(
    kind: RecordKind,
    location: list[str] | None = Query(default=None),
    scheduler: SyncScheduler = Depends(get_scheduler),
):
    """Run reconciliation now for a single record kind."""
    return await _trigger(scheduler, [kind], location)
