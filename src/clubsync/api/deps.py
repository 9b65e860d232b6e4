"""FastAPI dependency injection for the sync components built at startup.

The lifespan in src.clubsync.main stores the scheduler, the Source gateway
and the frozen SyncConfig on app.state; endpoints receive them through these
dependencies so tests can override them.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.clubsync.gateways.source import SourceGateway
from src.clubsync.sync.scheduler import SyncScheduler
from src.clubsync.sync.schemas import SyncConfig


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{name} not initialized",
        )
    return value


async def get_scheduler(request: Request) -> SyncScheduler:
    """Get the process-wide SyncScheduler."""
    return _state(request, "sync_scheduler")


async def get_source(request: Request) -> SourceGateway:
    """Get the Source gateway (used by the debug endpoints)."""
    return _state(request, "source_gateway")


async def get_sync_config(request: Request) -> SyncConfig:
    """Get the immutable sync configuration."""
    return _state(request, "sync_config")
