"""Tests for the day-scoped dedup ledger."""

from __future__ import annotations

from src.clubsync.sync.ledger import DedupLedger
from src.clubsync.sync.schemas import RecordKind


class TestDedupLedger:
    """Tests for namespacing, normalisation and reset."""

    def test_mark_then_seen(self):
        ledger = DedupLedger()
        assert ledger.seen(RecordKind.PROSPECT, "P-1") is False
        ledger.mark(RecordKind.PROSPECT, "P-1")
        assert ledger.seen(RecordKind.PROSPECT, "P-1") is True

    def test_kinds_are_separate_namespaces(self):
        ledger = DedupLedger()
        ledger.mark(RecordKind.PROSPECT, "42")
        assert ledger.seen(RecordKind.TRANSACTION, "42") is False

    def test_ids_are_normalised_to_strings(self):
        ledger = DedupLedger()
        ledger.mark(RecordKind.TRANSACTION, 1001)
        assert ledger.seen(RecordKind.TRANSACTION, "1001") is True

    def test_mark_is_idempotent(self):
        ledger = DedupLedger()
        ledger.mark(RecordKind.PROSPECT, "P-1")
        ledger.mark(RecordKind.PROSPECT, "P-1")
        assert len(ledger) == 1

    def test_sizes_per_kind(self):
        ledger = DedupLedger()
        ledger.mark(RecordKind.PROSPECT, "P-1")
        ledger.mark(RecordKind.PROSPECT, "P-2")
        ledger.mark(RecordKind.TRANSACTION, "T-1")
        assert ledger.sizes() == {"prospect": 2, "transaction": 1}
        assert ledger.total == 3

    def test_reset_clears_every_namespace(self):
        ledger = DedupLedger()
        ledger.mark(RecordKind.PROSPECT, "P-1")
        ledger.mark(RecordKind.TRANSACTION, "T-1")

        cleared = ledger.reset_all()

        assert cleared == {"prospect": 1, "transaction": 1}
        assert ledger.total == 0
        assert ledger.seen(RecordKind.PROSPECT, "P-1") is False
        assert ledger.seen(RecordKind.TRANSACTION, "T-1") is False
