"""Record qualification predicate.

Pure functions over CandidateRecord and MatchRule. No I/O, no side effects.
"""

from __future__ import annotations

from src.clubsync.sync import fields
from src.clubsync.sync.schemas import CandidateRecord, FilterDecision, MatchRule, RecordKind


def record_id(record: CandidateRecord) -> str | None:
    """Source identifier used as the ledger key for this record."""
    paths = fields.PROSPECT_ID if record.kind is RecordKind.PROSPECT else fields.TRANSACTION_ID
    return fields.resolve_str(record.payload, paths)


def _passes_entry_source(record: CandidateRecord, rule: MatchRule) -> bool:
    entry_source = fields.resolve_str(record.payload, fields.ENTRY_SOURCE)
    report_name = fields.resolve_str(record.payload, fields.ENTRY_SOURCE_REPORT)
    # Fails closed: no entry source anywhere means no match
    return entry_source in rule.entry_sources or report_name in rule.entry_source_reports


def matched_category(record: CandidateRecord, rule: MatchRule) -> str | None:
    """Return the target category that qualifies this record, if any.

    Prospects qualify on their campaign; transactions on the first line item
    whose category is a target. Returns never qualify.
    """
    if record.kind is RecordKind.PROSPECT:
        campaign = fields.resolve_str(record.payload, fields.CAMPAIGN)
        return campaign if campaign in rule.target_categories else None

    if fields.resolve_flag(record.payload, fields.RETURN_FLAG):
        return None
    for category in fields.line_item_categories(record.payload):
        if category in rule.target_categories:
            return category
    return None


def matches(record: CandidateRecord, rule: MatchRule) -> bool:
    """Decide whether a fetched record qualifies for sync."""
    if record.kind is RecordKind.PROSPECT and not _passes_entry_source(record, rule):
        return False
    return matched_category(record, rule) is not None


def explain(record: CandidateRecord, rule: MatchRule) -> FilterDecision:
    """Break a filter decision down into its individual checks."""
    payload = record.payload
    contact = fields.contact_fields(payload)
    decision = FilterDecision(
        record_id=record_id(record),
        name=contact.display_name,
        is_return=fields.resolve_flag(payload, fields.RETURN_FLAG),
    )

    if record.kind is RecordKind.PROSPECT:
        decision.entry_source = fields.resolve_str(payload, fields.ENTRY_SOURCE)
        decision.entry_source_report = fields.resolve_str(payload, fields.ENTRY_SOURCE_REPORT)
        decision.category = fields.resolve_str(payload, fields.CAMPAIGN)
        decision.passes_entry_source = _passes_entry_source(record, rule)
    else:
        categories = fields.line_item_categories(payload)
        decision.category = next(
            (c for c in categories if c in rule.target_categories),
            categories[0] if categories else None,
        )
        decision.passes_entry_source = True

    decision.passes_category = matched_category(record, rule) is not None
    decision.would_sync = matches(record, rule)
    return decision
