"""Shared fixtures for the reconciliation tests.

Provides:
- InMemorySource / InMemorySink test doubles that record every call
- A two-club SyncConfig with pacing disabled
- Engine, ledger and scheduler wired to the doubles
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from src.clubsync.gateways.sink import SinkGateway
from src.clubsync.gateways.source import SourceGateway
from src.clubsync.sync.engine import ReconciliationEngine
from src.clubsync.sync.errors import SinkUnavailable
from src.clubsync.sync.ledger import DedupLedger
from src.clubsync.sync.scheduler import SyncScheduler
from src.clubsync.sync.schemas import (
    CandidateRecord,
    ContactFields,
    Location,
    MatchRule,
    MatchSource,
    RecordKind,
    SinkIdentity,
    SyncConfig,
)


# ── In-Memory Test Doubles ───────────────────────────────────────────────────


class InMemorySource(SourceGateway):
    """Source double keyed by club number."""

    def __init__(self) -> None:
        self.prospects: dict[str, list[dict[str, Any]]] = {}
        self.transactions: dict[str, list[dict[str, Any]]] = {}
        self.members: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_for: set[str] = set()

    def _check(self, operation: str, source_id: str) -> None:
        self.calls.append((operation, source_id))
        if source_id in self.fail_for:
            raise RuntimeError(f"boom in {source_id}")

    async def fetch_prospects(self, source_id: str, day: date) -> list[CandidateRecord]:
        self._check("fetch_prospects", source_id)
        return [
            CandidateRecord(kind=RecordKind.PROSPECT, payload=p)
            for p in self.prospects.get(source_id, [])
        ]

    async def fetch_transactions(self, source_id: str, day: date) -> list[CandidateRecord]:
        self._check("fetch_transactions", source_id)
        return [
            CandidateRecord(kind=RecordKind.TRANSACTION, payload=t)
            for t in self.transactions.get(source_id, [])
        ]

    async def fetch_member(self, source_id: str, member_id: str) -> dict[str, Any] | None:
        self._check("fetch_member", source_id)
        return self.members.get((source_id, member_id))


class InMemorySink(SinkGateway):
    """CRM double holding contacts per location id."""

    def __init__(self) -> None:
        self.contacts: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[str] = []
        self.fail_on: set[str] = set()
        self._next_id = 1

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise SinkUnavailable(operation, "HTTP 503: unavailable")

    def add_contact(
        self, location: Location, email: str | None = None, source_id: str = "", tags=()
    ) -> str:
        contact_id = f"c-{self._next_id}"
        self._next_id += 1
        self.contacts.setdefault(location.sink_id, []).append(
            {"id": contact_id, "email": email, "source_id": source_id, "tags": list(tags)}
        )
        return contact_id

    def contacts_for(self, location: Location) -> list[dict[str, Any]]:
        return self.contacts.get(location.sink_id, [])

    @property
    def mutations(self) -> list[str]:
        return [c for c in self.calls if c in ("create_contact", "add_tag")]

    async def find_by_email(self, email: str, location: Location) -> SinkIdentity | None:
        self._check("find_by_email")
        for contact in self.contacts_for(location):
            if contact["email"] and contact["email"].lower() == email.lower():
                return SinkIdentity(
                    contact_id=contact["id"], email=contact["email"], matched_by=MatchSource.EMAIL
                )
        return None

    async def find_by_source_id(self, source_id: str, location: Location) -> SinkIdentity | None:
        self._check("find_by_source_id")
        for contact in self.contacts_for(location):
            if contact["source_id"] == source_id:
                return SinkIdentity(
                    contact_id=contact["id"],
                    email=contact["email"],
                    matched_by=MatchSource.SOURCE_ID,
                )
        return None

    async def create_contact(
        self, fields: ContactFields, tag: str | None, location: Location
    ) -> SinkIdentity:
        self._check("create_contact")
        contact_id = self.add_contact(
            location, email=fields.email, source_id=fields.source_id, tags=[tag] if tag else []
        )
        return SinkIdentity(contact_id=contact_id, email=fields.email, matched_by=MatchSource.CREATED)

    async def add_tag(self, contact_id: str, tag: str, location: Location) -> None:
        self._check("add_tag")
        for contact in self.contacts_for(location):
            if contact["id"] == contact_id:
                contact["tags"].append(tag)


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def club_a() -> Location:
    return Location(source_id="31601", sink_id="loc-a", sink_token="token-a", name="Club A")


@pytest.fixture
def club_b() -> Location:
    return Location(source_id="31602", sink_id="loc-b", sink_token="token-b", name="Club B")


@pytest.fixture
def sync_config(club_a, club_b) -> SyncConfig:
    """Both record kinds, both clubs, no pacing delays."""
    return SyncConfig(
        locations=(club_a, club_b),
        rule=MatchRule(target_categories=frozenset({"Non-Member Program", "PHYSICAL THERAPY"})),
        category_tags={"PHYSICAL THERAPY": "NLPT", "Non-Member Program": "Non Member Program"},
        kinds=(RecordKind.PROSPECT, RecordKind.TRANSACTION),
        timezone="UTC",
        poll_interval_seconds=60,
        inter_record_delay_seconds=0,
        inter_location_delay_seconds=0,
    )


@pytest.fixture
def source() -> InMemorySource:
    return InMemorySource()


@pytest.fixture
def sink() -> InMemorySink:
    return InMemorySink()


@pytest.fixture
def ledger() -> DedupLedger:
    return DedupLedger()


@pytest.fixture
def engine(source, sink, sync_config) -> ReconciliationEngine:
    return ReconciliationEngine(source=source, sink=sink, config=sync_config)


@pytest.fixture
def scheduler(engine, sync_config, ledger) -> SyncScheduler:
    return SyncScheduler(engine=engine, config=sync_config, ledger=ledger)
