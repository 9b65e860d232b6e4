"""Sink gateway abstract base class -- the CRM contract.

Every call that cannot reach the CRM raises SinkUnavailable. The engine
treats that as "abandon this record, leave it unmarked, retry next poll".
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.clubsync.sync.schemas import ContactFields, Location, SinkIdentity


class SinkGateway(ABC):
    """Abstract interface for CRM lookups and mutations.

    Methods:
        find_by_email: Existing contact whose email matches (case-insensitive).
        find_by_source_id: Existing contact whose source-id custom field matches.
        create_contact: Create a contact carrying ``tag``.
        add_tag: Append ``tag`` to an existing contact without touching its fields.
    """

    @abstractmethod
    async def find_by_email(self, email: str, location: Location) -> SinkIdentity | None:
        ...

    @abstractmethod
    async def find_by_source_id(self, source_id: str, location: Location) -> SinkIdentity | None:
        ...

    @abstractmethod
    async def create_contact(
        self, fields: ContactFields, tag: str | None, location: Location
    ) -> SinkIdentity:
        ...

    @abstractmethod
    async def add_tag(self, contact_id: str, tag: str, location: Location) -> None:
        ...
