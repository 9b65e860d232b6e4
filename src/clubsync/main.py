"""ClubSync FastAPI application.

The lifespan configures logging and Sentry, builds the sync stack onto
app.state and runs the poll and midnight-reset jobs for the life of the
process.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.responses import Response

from src.clubsync.api.middleware.logging import LoggingMiddleware
from src.clubsync.api.v1 import health
from src.clubsync.api.v1.router import router as v1_router
from src.clubsync.bootstrap import build_sync_stack
from src.clubsync.config import get_settings
from src.clubsync.core.logging import configure_structlog
from src.clubsync.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the sync stack, start the poll/reset jobs, stop them on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    stack = build_sync_stack(settings)
    app.state.sync_config = stack.config
    app.state.source_gateway = stack.source
    app.state.sync_scheduler = stack.scheduler

    started = stack.scheduler.start(run_immediately=settings.RUN_ON_STARTUP)
    log.info(
        "app.started",
        scheduler_started=started,
        poll_interval_seconds=settings.POLL_INTERVAL_SECONDS,
        locations=[loc.source_id for loc in stack.config.locations],
        kinds=[k.value for k in stack.config.kinds],
    )

    yield

    stack.scheduler.stop()
    log.info("app.stopped", tracked=stack.ledger.total)


def create_app() -> FastAPI:
    """Build the app: request logging, route metrics, health, v1 routers, /metrics."""
    app = FastAPI(
        title="ClubSync",
        description="ABC Financial to LeadConnector prospect and POS reconciliation",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Last added runs first: metrics wrap logging so both see the final status
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.include_router(health.router)
    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return get_metrics_response()

    return app


app = create_app()
