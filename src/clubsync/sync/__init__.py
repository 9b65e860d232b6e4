"""Reconciliation core -- filter, dedup ledger, engine and scheduler.

Data flows one direction: Source -> Filter -> Sink, with the DedupLedger
consulted before and updated after each definitive outcome.

Exports:
    DedupLedger: Day-scoped set of processed identifiers per record kind.
    ReconciliationEngine: One location, one record kind, one pass.
    SyncScheduler: Run guard, location loop, poll and midnight reset jobs.
    business_day: Current date in the configured timezone.
    explain / matched_category / matches / record_id: Filter predicate helpers.
"""

from __future__ import annotations

from src.clubsync.sync.filter import explain, matched_category, matches, record_id
from src.clubsync.sync.ledger import DedupLedger

__all__ = [
    "DedupLedger",
    "ReconciliationEngine",
    "SyncScheduler",
    "business_day",
    "explain",
    "matched_category",
    "matches",
    "record_id",
]


def __getattr__(name: str):  # noqa: N807
    """Lazy-load engine and scheduler; they import the gateways package."""
    if name in ("ReconciliationEngine", "business_day"):
        from src.clubsync.sync import engine

        return getattr(engine, name)
    if name == "SyncScheduler":
        from src.clubsync.sync.scheduler import SyncScheduler

        return SyncScheduler
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
