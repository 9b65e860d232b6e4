"""Pydantic schemas for the reconciliation core.

Defines all structured types flowing between Source, Filter, Ledger and Sink:
- Enums: RecordKind, RecordOutcome, MatchSource
- Configuration: Location, MatchRule, SyncConfig
- Records: CandidateRecord, ContactFields, SinkIdentity, FilterDecision
- Results: SyncReport, RunSummary, SyncStatus
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.clubsync.sync.errors import ConfigurationMissing


# ── Enums ───────────────────────────────────────────────────────────────────


class RecordKind(str, Enum):
    """Kinds of Source records. Each kind is its own ledger namespace."""

    PROSPECT = "prospect"
    TRANSACTION = "transaction"


class RecordOutcome(str, Enum):
    """Terminal state of one candidate record within one reconciliation pass."""

    FILTERED_OUT = "filtered_out"
    ALREADY_SYNCED = "already_synced"
    UNUSABLE = "unusable"
    MEMBER_NOT_FOUND = "member_not_found"
    DUPLICATE_EMAIL = "duplicate_email"
    DUPLICATE_SOURCE_ID = "duplicate_source_id"
    CREATED = "created"
    TAGGED = "tagged"
    FAILED = "failed"


SKIPPED_OUTCOMES = frozenset({
    RecordOutcome.ALREADY_SYNCED,
    RecordOutcome.UNUSABLE,
    RecordOutcome.MEMBER_NOT_FOUND,
    RecordOutcome.DUPLICATE_EMAIL,
    RecordOutcome.DUPLICATE_SOURCE_ID,
})


class MatchSource(str, Enum):
    """How an existing CRM contact was identified."""

    EMAIL = "email"
    SOURCE_ID = "source_id"
    CREATED = "created"


# ── Configuration ───────────────────────────────────────────────────────────


class Location(BaseModel):
    """A club known to both systems: ABC club number -> CRM location + token."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    sink_id: str
    sink_token: str = Field(default="", repr=False)
    name: str | None = None

    @property
    def label(self) -> str:
        return self.name or self.source_id


class MatchRule(BaseModel):
    """Declarative qualification rule.

    A prospect qualifies when its entry source (or entry source report name)
    is one of the fast-add markers AND its campaign is a target category.
    """

    model_config = ConfigDict(frozen=True)

    target_categories: frozenset[str]
    entry_sources: frozenset[str] = frozenset({"DataTrak Fast Add"})
    entry_source_reports: frozenset[str] = frozenset({"Fast Add"})


class SyncConfig(BaseModel):
    """Immutable view of configuration consumed by the engine and scheduler."""

    model_config = ConfigDict(frozen=True)

    locations: tuple[Location, ...] = ()
    rule: MatchRule
    category_tags: dict[str, str] = Field(default_factory=dict)
    kinds: tuple[RecordKind, ...] = (RecordKind.PROSPECT,)
    timezone: str = "UTC"
    poll_interval_seconds: int = 60
    inter_record_delay_seconds: float = 0.2
    inter_location_delay_seconds: float = 2.0

    def location(self, source_id: str) -> Location | None:
        for location in self.locations:
            if location.source_id == source_id:
                return location
        return None

    def require_location(self, source_id: str) -> Location:
        """Like location() but raises ConfigurationMissing for unknown ids."""
        location = self.location(source_id)
        if location is None:
            raise ConfigurationMissing(source_id)
        return location

    def tag_for(self, category: str | None) -> str | None:
        if category is None:
            return None
        return self.category_tags.get(category)


# ── Records ─────────────────────────────────────────────────────────────────


class CandidateRecord(BaseModel):
    """A record fetched from the Source, kept as its raw payload.

    Logical fields are read through src.clubsync.sync.fields because the
    Source schema varies between endpoint versions.
    """

    kind: RecordKind
    payload: dict[str, Any] = Field(default_factory=dict)


class ContactFields(BaseModel):
    """Contact data extracted from a prospect or member record."""

    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    source_id: str = ""

    @property
    def has_channel(self) -> bool:
        """True when the CRM could reach this contact by email or phone."""
        return bool(self.email or self.phone)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class SinkIdentity(BaseModel):
    """An existing (or freshly created) CRM contact."""

    contact_id: str
    email: str | None = None
    matched_by: MatchSource


class FilterDecision(BaseModel):
    """Per-check breakdown of a filter evaluation (debug surface)."""

    record_id: str | None = None
    name: str = ""
    entry_source: str | None = None
    entry_source_report: str | None = None
    category: str | None = None
    is_return: bool = False
    passes_entry_source: bool = False
    passes_category: bool = False
    would_sync: bool = False


# ── Results ─────────────────────────────────────────────────────────────────


class SyncReport(BaseModel):
    """Counts produced by one reconcile() call for one location and kind."""

    location_id: str
    kind: RecordKind
    fetched: int = 0
    matched: int = 0
    created: int = 0
    tagged: int = 0
    skipped: int = 0
    errored: int = 0
    outcomes: dict[str, int] = Field(default_factory=dict)

    def record(self, outcome: RecordOutcome) -> None:
        """Count a terminal record outcome in its bucket."""
        self.outcomes[outcome.value] = self.outcomes.get(outcome.value, 0) + 1
        if outcome is RecordOutcome.FILTERED_OUT:
            return
        self.matched += 1
        if outcome is RecordOutcome.CREATED:
            self.created += 1
        elif outcome is RecordOutcome.TAGGED:
            self.tagged += 1
        elif outcome is RecordOutcome.FAILED:
            self.errored += 1
        elif outcome in SKIPPED_OUTCOMES:
            self.skipped += 1

    def count(self, outcome: RecordOutcome) -> int:
        return self.outcomes.get(outcome.value, 0)


class SyncTotals(BaseModel):
    """Cumulative counters across reports."""

    fetched: int = 0
    matched: int = 0
    created: int = 0
    tagged: int = 0
    skipped: int = 0
    errored: int = 0

    def add(self, report: SyncReport) -> None:
        self.fetched += report.fetched
        self.matched += report.matched
        self.created += report.created
        self.tagged += report.tagged
        self.skipped += report.skipped
        self.errored += report.errored


class RunSummary(BaseModel):
    """Aggregate result of one scheduler run across all locations."""

    started_at: datetime
    finished_at: datetime | None = None
    reports: list[SyncReport] = Field(default_factory=list)
    unknown_locations: list[str] = Field(default_factory=list)
    failed_locations: list[str] = Field(default_factory=list)

    @property
    def totals(self) -> SyncTotals:
        totals = SyncTotals()
        for report in self.reports:
            totals.add(report)
        return totals


class SyncStatus(BaseModel):
    """Read-only status view for the trigger surface."""

    running: bool
    business_day: str
    last_run_at: datetime | None = None
    ledger_sizes: dict[str, int] = Field(default_factory=dict)
    totals: SyncTotals = Field(default_factory=SyncTotals)
    runs: int = 0
    locations: list[str] = Field(default_factory=list)
    poll_interval_seconds: int = 60
