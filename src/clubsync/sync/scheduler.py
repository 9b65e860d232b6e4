"""Background scheduler driving reconciliation runs and the daily ledger reset.

Provides a lightweight APScheduler wrapper with 2 jobs:
- Poll every POLL_INTERVAL_SECONDS: reconcile every configured location
- Daily ledger reset at local midnight (configured TIMEZONE)

Timer-driven and manually triggered runs share one in-flight guard, so two
runs never overlap on the ledger or on CRM duplicate detection.

Exports:
    SyncScheduler: owns the DedupLedger and serialises reconciliation runs.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from src.clubsync.core.monitoring import record_run, set_ledger_sizes
from src.clubsync.sync.engine import ReconciliationEngine, business_day
from src.clubsync.sync.errors import ConfigurationMissing
from src.clubsync.sync.ledger import DedupLedger
from src.clubsync.sync.schemas import (
    Location,
    RecordKind,
    RunSummary,
    SyncConfig,
    SyncStatus,
    SyncTotals,
)

logger = structlog.get_logger(__name__)


class SyncScheduler:
    """Serialises reconciliation runs across all configured locations.

    Locations are processed in configuration order with a fixed delay
    between them. A failure in one location is logged and recorded; the
    remaining locations still run.

    Args:
        engine: ReconciliationEngine performing the per-location work.
        config: Immutable sync configuration.
        ledger: Dedup ledger owned by this scheduler. Created if omitted.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        config: SyncConfig,
        ledger: DedupLedger | None = None,
    ) -> None:
        self._engine = engine
        self._config = config
        self._ledger = ledger if ledger is not None else DedupLedger()
        self._lock = asyncio.Lock()
        self._tz = ZoneInfo(config.timezone)
        self._ledger_day = business_day(config.timezone)
        self._last_run_at: datetime | None = None
        self._runs = 0
        self._totals = SyncTotals()
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    @property
    def ledger(self) -> DedupLedger:
        return self._ledger

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    # ── Runs ────────────────────────────────────────────────────────────────

    async def run(
        self,
        kinds: Iterable[RecordKind] | None = None,
        location_ids: Iterable[str] | None = None,
    ) -> RunSummary | None:
        """Run reconciliation unless a run is already in flight.

        Returns the RunSummary, or None when another run held the guard.
        """
        if self._lock.locked():
            logger.info("sync_scheduler.run_skipped", reason="run_in_flight")
            record_run("skipped_busy")
            return None

        async with self._lock:
            return await self._run_locked(
                tuple(kinds) if kinds is not None else self._config.kinds,
                tuple(location_ids) if location_ids is not None else None,
            )

    async def _run_locked(
        self, kinds: tuple[RecordKind, ...], location_ids: tuple[str, ...] | None
    ) -> RunSummary:
        started = time.monotonic()
        summary = RunSummary(started_at=datetime.now(timezone.utc))
        logger.info(
            "sync_scheduler.run_started",
            kinds=[k.value for k in kinds],
            locations=list(location_ids) if location_ids is not None else "all",
        )

        # Covers a missed midnight job (e.g. process suspended)
        day = self._roll_day()

        locations = self._select_locations(location_ids, summary)
        for index, location in enumerate(locations):
            if index > 0 and self._config.inter_location_delay_seconds > 0:
                await asyncio.sleep(self._config.inter_location_delay_seconds)
            for kind in kinds:
                try:
                    report = await self._engine.reconcile(location, kind, self._ledger, day=day)
                except Exception as exc:
                    logger.error(
                        "sync_scheduler.location_failed",
                        club=location.source_id,
                        kind=kind.value,
                        error=str(exc),
                        exc_info=True,
                    )
                    if location.source_id not in summary.failed_locations:
                        summary.failed_locations.append(location.source_id)
                    continue
                summary.reports.append(report)
                self._totals.add(report)

        summary.finished_at = datetime.now(timezone.utc)
        self._last_run_at = summary.finished_at
        self._runs += 1
        set_ledger_sizes(self._ledger.sizes())
        record_run("completed", time.monotonic() - started)

        totals = summary.totals
        logger.info(
            "sync_scheduler.run_complete",
            locations=len(locations),
            created=totals.created,
            tagged=totals.tagged,
            skipped=totals.skipped,
            errored=totals.errored,
            failed_locations=summary.failed_locations,
            tracked=self._ledger.total,
        )
        return summary

    def _select_locations(
        self, location_ids: tuple[str, ...] | None, summary: RunSummary
    ) -> list[Location]:
        if location_ids is None:
            return list(self._config.locations)

        for source_id in location_ids:
            try:
                self._config.require_location(source_id)
            except ConfigurationMissing as exc:
                logger.error(
                    "sync_scheduler.location_not_configured",
                    club=exc.source_id,
                    configured=[loc.source_id for loc in self._config.locations],
                )
                summary.unknown_locations.append(exc.source_id)

        wanted = set(location_ids)
        return [loc for loc in self._config.locations if loc.source_id in wanted]

    async def reset_ledger(self) -> dict[str, int]:
        """Clear every ledger namespace. Waits for an in-flight run to finish."""
        async with self._lock:
            cleared = self._ledger.reset_all()
            self._ledger_day = business_day(self._config.timezone)
        set_ledger_sizes(self._ledger.sizes())
        logger.info("sync_scheduler.ledger_reset", cleared=cleared)
        return cleared

    def _roll_day(self) -> date:
        """Clear the ledger if the business day has moved on. Caller holds the lock."""
        day = business_day(self._config.timezone)
        if day != self._ledger_day:
            cleared = self._ledger.reset_all()
            self._ledger_day = day
            logger.info("sync_scheduler.day_rolled", business_day=day.isoformat(), cleared=cleared)
        return day

    async def midnight_reset(self) -> bool:
        """Cron job body. Returns False when a run already rolled the ledger to today."""
        async with self._lock:
            previous = self._ledger_day
            self._roll_day()
        rolled = self._ledger_day != previous
        if not rolled:
            logger.info("sync_scheduler.midnight_reset_skipped", business_day=previous.isoformat())
        set_ledger_sizes(self._ledger.sizes())
        return rolled

    async def _scheduled_run(self) -> None:
        """Interval job body. Never raises into APScheduler."""
        try:
            await self.run()
        except Exception:
            logger.error("sync_scheduler.scheduled_run_failed", exc_info=True)

    # ── Status ──────────────────────────────────────────────────────────────

    def status(self) -> SyncStatus:
        return SyncStatus(
            running=self.is_running,
            business_day=business_day(self._config.timezone).isoformat(),
            last_run_at=self._last_run_at,
            ledger_sizes=self._ledger.sizes(),
            totals=self._totals.model_copy(),
            runs=self._runs,
            locations=[loc.source_id for loc in self._config.locations],
            poll_interval_seconds=self._config.poll_interval_seconds,
        )

    # ── Lifecycle ───────────────────────────────────────────────────────────

    def start(self, run_immediately: bool = True) -> bool:
        """Register the poll and reset jobs and start the scheduler."""
        try:
            self._scheduler = AsyncIOScheduler(timezone=self._tz)

            # Job 1: poll all locations on a fixed interval
            poll_kwargs = {"next_run_time": datetime.now(self._tz)} if run_immediately else {}
            self._scheduler.add_job(
                self._scheduled_run,
                trigger=IntervalTrigger(seconds=self._config.poll_interval_seconds),
                id="sync_poll",
                name="Reconcile all configured locations",
                max_instances=1,
                coalesce=True,
                **poll_kwargs,
            )

            # Job 2: clear the ledger at local midnight
            self._scheduler.add_job(
                self.midnight_reset,
                trigger=CronTrigger(hour=0, minute=0, timezone=self._tz),
                id="ledger_reset",
                name="Daily dedup ledger reset",
                misfire_grace_time=3600,
            )

            self._scheduler.start()
            self._started = True
            logger.info(
                "sync_scheduler.started",
                jobs=["sync_poll", "ledger_reset"],
                poll_interval_seconds=self._config.poll_interval_seconds,
                timezone=self._config.timezone,
                locations=[loc.source_id for loc in self._config.locations],
            )
            return True

        except Exception as exc:
            logger.warning("sync_scheduler.start_failed", error=str(exc))
            return False

    def stop(self) -> None:
        """Shut down the scheduler."""
        if self._scheduler is not None and self._started:
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("sync_scheduler.stopped")
