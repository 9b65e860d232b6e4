"""Day-scoped, process-lifetime record of already-processed identifiers.

One set per RecordKind; prospects and transactions never share identifiers.
The scheduler owns the single instance and clears it at local midnight.
Nothing is persisted: a restart starts from an empty ledger.
"""

from __future__ import annotations

import structlog

from src.clubsync.sync.schemas import RecordKind

logger = structlog.get_logger(__name__)


class DedupLedger:
    """In-memory set of processed record identifiers, namespaced by kind.

    The engine calls seen() before any Sink work and mark() only after a
    definitive outcome (duplicate found, contact created or tagged).
    """

    def __init__(self) -> None:
        self._entries: dict[RecordKind, set[str]] = {kind: set() for kind in RecordKind}

    def seen(self, kind: RecordKind, record_id: str | int) -> bool:
        return str(record_id) in self._entries[kind]

    def mark(self, kind: RecordKind, record_id: str | int) -> None:
        self._entries[kind].add(str(record_id))

    def reset_all(self) -> dict[str, int]:
        """Clear every namespace at once. Returns the sizes before clearing."""
        cleared = self.sizes()
        for entries in self._entries.values():
            entries.clear()
        logger.info("ledger.reset", cleared=cleared)
        return cleared

    def sizes(self) -> dict[str, int]:
        return {kind.value: len(entries) for kind, entries in self._entries.items()}

    @property
    def total(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    def __len__(self) -> int:
        return self.total
