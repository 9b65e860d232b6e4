"""Tests for the record qualification predicate and its debug breakdown."""

from __future__ import annotations

import pytest

from src.clubsync.sync.filter import explain, matched_category, matches, record_id
from src.clubsync.sync.schemas import CandidateRecord, MatchRule, RecordKind
from tests.factories import make_prospect, make_transaction


@pytest.fixture
def rule() -> MatchRule:
    return MatchRule(target_categories=frozenset({"Non-Member Program", "PHYSICAL THERAPY"}))


def prospect(**kwargs) -> CandidateRecord:
    return CandidateRecord(kind=RecordKind.PROSPECT, payload=make_prospect(**kwargs))


def transaction(**kwargs) -> CandidateRecord:
    return CandidateRecord(kind=RecordKind.TRANSACTION, payload=make_transaction(**kwargs))


# ── Prospects ────────────────────────────────────────────────────────────────


class TestProspectFilter:
    """Entry source AND target campaign."""

    def test_fast_add_with_target_campaign_matches(self, rule):
        record = prospect(campaign="PHYSICAL THERAPY")
        assert matches(record, rule) is True
        assert matched_category(record, rule) == "PHYSICAL THERAPY"

    def test_missing_entry_source_fails_closed(self, rule):
        assert matches(prospect(entry_source=None), rule) is False

    def test_other_entry_source_rejected(self, rule):
        assert matches(prospect(entry_source="Front Desk"), rule) is False

    def test_report_name_alternative_matches(self, rule):
        record = prospect(entry_source=None, agreementEntrySourceReportName="Fast Add")
        assert matches(record, rule) is True

    def test_nested_agreement_entry_source(self, rule):
        record = prospect(
            entry_source=None,
            agreement={"agreementEntrySource": "DataTrak Fast Add"},
        )
        assert matches(record, rule) is True

    def test_non_target_campaign_rejected(self, rule):
        assert matches(prospect(campaign="Yoga"), rule) is False
        assert matched_category(prospect(campaign="Yoga"), rule) is None

    def test_missing_campaign_rejected(self, rule):
        assert matches(prospect(campaign=None), rule) is False

    def test_campaign_name_alternative(self, rule):
        record = prospect(campaign=None, campaignName="Non-Member Program")
        assert matched_category(record, rule) == "Non-Member Program"

    def test_category_match_is_case_sensitive(self, rule):
        assert matches(prospect(campaign="physical therapy"), rule) is False


# ── Transactions ─────────────────────────────────────────────────────────────


class TestTransactionFilter:
    """Target line item, returns excluded, no entry-source requirement."""

    def test_target_line_item_matches(self, rule):
        record = transaction(category="PHYSICAL THERAPY")
        assert matches(record, rule) is True
        assert matched_category(record, rule) == "PHYSICAL THERAPY"

    def test_return_never_matches(self, rule):
        record = transaction(is_return=True)
        assert matches(record, rule) is False
        assert matched_category(record, rule) is None

    def test_non_target_line_items_rejected(self, rule):
        assert matches(transaction(category="PRO SHOP"), rule) is False

    def test_first_target_item_wins(self, rule):
        payload = make_transaction()
        payload["items"] = [
            {"profitCenter": "PRO SHOP"},
            {"profitCenter": "Non-Member Program"},
            {"profitCenter": "PHYSICAL THERAPY"},
        ]
        record = CandidateRecord(kind=RecordKind.TRANSACTION, payload=payload)
        assert matched_category(record, rule) == "Non-Member Program"


# ── Identifiers and explain ──────────────────────────────────────────────────


class TestRecordId:
    def test_prospect_id(self):
        assert record_id(prospect(member_id="P-77")) == "P-77"

    def test_transaction_id(self):
        assert record_id(transaction(transaction_id="T-9")) == "T-9"

    def test_missing_id(self):
        assert record_id(CandidateRecord(kind=RecordKind.PROSPECT, payload={})) is None


class TestExplain:
    """Tests for the per-check filter breakdown used by the debug endpoints."""

    def test_passing_prospect(self, rule):
        decision = explain(prospect(member_id="P-1"), rule)
        assert decision.record_id == "P-1"
        assert decision.name == "Jane Doe"
        assert decision.entry_source == "DataTrak Fast Add"
        assert decision.category == "PHYSICAL THERAPY"
        assert decision.passes_entry_source is True
        assert decision.passes_category is True
        assert decision.would_sync is True

    def test_failing_entry_source_keeps_category_check(self, rule):
        decision = explain(prospect(entry_source="Walk In"), rule)
        assert decision.passes_entry_source is False
        assert decision.passes_category is True
        assert decision.would_sync is False

    def test_return_transaction(self, rule):
        decision = explain(transaction(is_return=True), rule)
        assert decision.is_return is True
        assert decision.category == "PHYSICAL THERAPY"
        assert decision.passes_category is False
        assert decision.would_sync is False
