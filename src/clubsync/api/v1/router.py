"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.clubsync.api.v1 import debug, sync

router = APIRouter()

router.include_router(sync.router)
router.include_router(debug.router)
