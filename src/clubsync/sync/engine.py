"""Reconciliation engine: Source -> Filter -> Ledger -> Sink for one location.

Per candidate record (terminal states in brackets):

    Fetched -> Filtered-out [filtered_out]
    Filtered-in -> already in ledger [already_synced]
    Filtered-in -> no id, or no email and no phone [unusable, not marked]
    -> existing contact by email [duplicate_email, marked]
    -> existing contact by source id [duplicate_source_id, marked]
    -> create -> created [created, marked]
    -> create -> SinkUnavailable [failed, not marked, retried next poll]

POS transactions additionally resolve the owning member before any Sink
call (not found -> marked, no Sink call) and tag an existing contact
instead of skipping it [tagged, marked].

Records are processed strictly one at a time. The ledger is passed in by
the caller; the engine holds no state between calls.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from zoneinfo import ZoneInfo

import structlog

from src.clubsync.core.monitoring import record_outcome
from src.clubsync.gateways.sink import SinkGateway
from src.clubsync.gateways.source import SourceGateway
from src.clubsync.sync import fields
from src.clubsync.sync.errors import RecordUnusable, SinkUnavailable
from src.clubsync.sync.filter import matched_category, matches, record_id
from src.clubsync.sync.ledger import DedupLedger
from src.clubsync.sync.schemas import (
    CandidateRecord,
    ContactFields,
    Location,
    MatchSource,
    RecordKind,
    RecordOutcome,
    SinkIdentity,
    SyncConfig,
    SyncReport,
)

logger = structlog.get_logger(__name__)

# Outcomes after which the CRM was contacted; pacing applies only to these
_SINK_OUTCOMES = frozenset({
    RecordOutcome.DUPLICATE_EMAIL,
    RecordOutcome.DUPLICATE_SOURCE_ID,
    RecordOutcome.CREATED,
    RecordOutcome.TAGGED,
    RecordOutcome.FAILED,
})


def business_day(timezone: str, now: datetime | None = None) -> date:
    """Current calendar date in the configured local timezone."""
    tz = ZoneInfo(timezone)
    moment = now.astimezone(tz) if now is not None else datetime.now(tz)
    return moment.date()


class ReconciliationEngine:
    """Runs one reconciliation pass for a location and record kind.

    Args:
        source: Source gateway (never raises transport errors).
        sink: Sink gateway (raises SinkUnavailable).
        config: Immutable sync configuration (rule, tags, pacing).
    """

    def __init__(self, source: SourceGateway, sink: SinkGateway, config: SyncConfig) -> None:
        self._source = source
        self._sink = sink
        self._config = config

    async def reconcile(
        self,
        location: Location,
        kind: RecordKind,
        ledger: DedupLedger,
        day: date | None = None,
    ) -> SyncReport:
        """Fetch, filter and sync every candidate record of ``kind`` for ``location``."""
        day = day or business_day(self._config.timezone)
        report = SyncReport(location_id=location.source_id, kind=kind)

        logger.info("sync.location_polling", club=location.source_id, kind=kind.value, day=day.isoformat())

        if kind is RecordKind.PROSPECT:
            records = await self._source.fetch_prospects(location.source_id, day)
        else:
            records = await self._source.fetch_transactions(location.source_id, day)
        report.fetched = len(records)

        for record in records:
            outcome = await self._process(record, location, ledger)
            report.record(outcome)
            record_outcome(kind.value, outcome.value)
            if outcome in _SINK_OUTCOMES and self._config.inter_record_delay_seconds > 0:
                await asyncio.sleep(self._config.inter_record_delay_seconds)

        logger.info(
            "sync.location_complete",
            club=location.source_id,
            kind=kind.value,
            fetched=report.fetched,
            matched=report.matched,
            created=report.created,
            tagged=report.tagged,
            skipped=report.skipped,
            errored=report.errored,
        )
        return report

    async def _process(
        self, record: CandidateRecord, location: Location, ledger: DedupLedger
    ) -> RecordOutcome:
        """Drive one record to a terminal outcome. Failures stay record-scoped."""
        try:
            if record.kind is RecordKind.PROSPECT:
                return await self._process_prospect(record, location, ledger)
            return await self._process_transaction(record, location, ledger)
        except RecordUnusable as exc:
            logger.info(
                "sync.record_unusable",
                club=location.source_id,
                kind=record.kind.value,
                record_id=exc.record_id,
                reason=exc.reason,
            )
            return RecordOutcome.UNUSABLE
        except SinkUnavailable as exc:
            logger.warning(
                "sync.sink_unavailable",
                club=location.source_id,
                kind=record.kind.value,
                record_id=record_id(record),
                operation=exc.operation,
                error=exc.detail,
            )
            return RecordOutcome.FAILED
        except Exception as exc:
            logger.error(
                "sync.record_failed",
                club=location.source_id,
                kind=record.kind.value,
                record_id=record_id(record),
                error=str(exc),
                exc_info=True,
            )
            return RecordOutcome.FAILED

    async def _process_prospect(
        self, record: CandidateRecord, location: Location, ledger: DedupLedger
    ) -> RecordOutcome:
        rule = self._config.rule
        if not matches(record, rule):
            return RecordOutcome.FILTERED_OUT

        rid = record_id(record)
        if rid is None:
            raise RecordUnusable(None, reason="missing_id")
        if ledger.seen(RecordKind.PROSPECT, rid):
            logger.debug("sync.already_synced", club=location.source_id, record_id=rid)
            return RecordOutcome.ALREADY_SYNCED

        contact = fields.contact_fields(record.payload, source_id=rid)
        if not contact.has_channel:
            raise RecordUnusable(rid)

        existing = await self._find_existing(contact, location)
        if existing is not None:
            ledger.mark(RecordKind.PROSPECT, rid)
            logger.info(
                "sync.duplicate_skipped",
                club=location.source_id,
                record_id=rid,
                matched_by=existing.matched_by.value,
            )
            return _duplicate_outcome(existing)

        tag = self._config.tag_for(matched_category(record, rule))
        await self._sink.create_contact(contact, tag, location)
        ledger.mark(RecordKind.PROSPECT, rid)
        return RecordOutcome.CREATED

    async def _process_transaction(
        self, record: CandidateRecord, location: Location, ledger: DedupLedger
    ) -> RecordOutcome:
        rule = self._config.rule
        category = matched_category(record, rule)
        if category is None:
            return RecordOutcome.FILTERED_OUT

        rid = record_id(record)
        if rid is None:
            raise RecordUnusable(None, reason="missing_id")
        if ledger.seen(RecordKind.TRANSACTION, rid):
            logger.debug("sync.already_synced", club=location.source_id, record_id=rid)
            return RecordOutcome.ALREADY_SYNCED

        member_id = fields.resolve_str(record.payload, fields.TRANSACTION_MEMBER_ID)
        member = (
            await self._source.fetch_member(location.source_id, member_id) if member_id else None
        )
        if member is None:
            # Marked so a missing member is not looked up again every poll
            ledger.mark(RecordKind.TRANSACTION, rid)
            logger.warning(
                "sync.member_not_found",
                club=location.source_id,
                record_id=rid,
                member_id=member_id,
            )
            return RecordOutcome.MEMBER_NOT_FOUND

        contact = fields.contact_fields(member, source_id=member_id)
        if not contact.has_channel:
            raise RecordUnusable(rid)

        tag = self._config.tag_for(category)
        existing = await self._find_existing(contact, location)
        if existing is not None:
            if tag is None:
                ledger.mark(RecordKind.TRANSACTION, rid)
                return _duplicate_outcome(existing)
            await self._sink.add_tag(existing.contact_id, tag, location)
            ledger.mark(RecordKind.TRANSACTION, rid)
            return RecordOutcome.TAGGED

        await self._sink.create_contact(contact, tag, location)
        ledger.mark(RecordKind.TRANSACTION, rid)
        return RecordOutcome.CREATED

    async def _find_existing(self, contact: ContactFields, location: Location) -> SinkIdentity | None:
        """Email first (the CRM's natural key), then the source-id custom field."""
        if contact.email:
            existing = await self._sink.find_by_email(contact.email, location)
            if existing is not None:
                return existing.model_copy(update={"matched_by": MatchSource.EMAIL})
        existing = await self._sink.find_by_source_id(contact.source_id, location)
        if existing is not None:
            return existing.model_copy(update={"matched_by": MatchSource.SOURCE_ID})
        return None


def _duplicate_outcome(existing: SinkIdentity) -> RecordOutcome:
    if existing.matched_by is MatchSource.EMAIL:
        return RecordOutcome.DUPLICATE_EMAIL
    return RecordOutcome.DUPLICATE_SOURCE_ID
