"""Wiring of gateways, engine, ledger and scheduler from Settings.

Shared by the FastAPI lifespan and scripts/sync_once.py so both entry points
build exactly the same object graph.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from src.clubsync.config import Settings
from src.clubsync.gateways.abc_financial import AbcFinancialGateway
from src.clubsync.gateways.leadconnector import LeadConnectorGateway
from src.clubsync.sync.engine import ReconciliationEngine
from src.clubsync.sync.ledger import DedupLedger
from src.clubsync.sync.scheduler import SyncScheduler
from src.clubsync.sync.schemas import SyncConfig

logger = structlog.get_logger(__name__)


@dataclass
class SyncStack:
    """Everything a process needs to run reconciliation."""

    config: SyncConfig
    source: AbcFinancialGateway
    sink: LeadConnectorGateway
    engine: ReconciliationEngine
    ledger: DedupLedger
    scheduler: SyncScheduler


def build_sync_stack(settings: Settings) -> SyncStack:
    """Construct the sync object graph. The ledger starts empty."""
    config = settings.sync_config()

    if not config.locations:
        logger.warning("bootstrap.no_locations_configured", hint="set LOCATIONS as a JSON list")
    for location in config.locations:
        if not location.sink_token:
            logger.warning("bootstrap.missing_sink_token", club=location.source_id)
    if not settings.ABC_APP_ID or not settings.ABC_APP_KEY:
        logger.warning("bootstrap.missing_source_credentials")

    source = AbcFinancialGateway(
        base_url=settings.ABC_API_BASE,
        app_id=settings.ABC_APP_ID,
        app_key=settings.ABC_APP_KEY,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    sink = LeadConnectorGateway(
        base_url=settings.GHL_API_BASE,
        api_version=settings.GHL_API_VERSION,
        source_id_field_key=settings.SOURCE_ID_FIELD_KEY,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    engine = ReconciliationEngine(source=source, sink=sink, config=config)
    ledger = DedupLedger()
    scheduler = SyncScheduler(engine=engine, config=config, ledger=ledger)

    return SyncStack(
        config=config,
        source=source,
        sink=sink,
        engine=engine,
        ledger=ledger,
        scheduler=scheduler,
    )
