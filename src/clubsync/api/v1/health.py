"""Health check endpoints.

``/`` is the service summary that operators poll by hand; ``/health`` is a
plain liveness probe.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.clubsync.api.deps import get_scheduler
from src.clubsync.config import get_settings
from src.clubsync.sync.scheduler import SyncScheduler

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No external dependencies are checked."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


@router.get("/")
async def service_status(scheduler: SyncScheduler = Depends(get_scheduler)):
    """Service summary: ledger size, poll interval, last poll and locations."""
    current = scheduler.status()
    return {
        "status": "running",
        "synced_count": scheduler.ledger.total,
        "ledger_sizes": current.ledger_sizes,
        "poll_interval": f"{current.poll_interval_seconds} seconds",
        "last_poll": current.last_run_at.isoformat() if current.last_run_at else None,
        "run_in_flight": current.running,
        "locations": current.locations,
    }
