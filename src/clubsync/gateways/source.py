"""Source gateway abstract base class -- the system-of-record contract.

Implementations never propagate transport or auth errors to the engine: a
SourceUnavailable condition is logged and degraded to an empty result, so
the engine only ever sees "empty" versus "value".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from src.clubsync.sync.schemas import CandidateRecord


class SourceGateway(ABC):
    """Abstract interface for reading candidate records from the Source.

    Methods:
        fetch_prospects: Prospects created on ``day`` at a club.
        fetch_transactions: POS transactions recorded on ``day`` at a club.
        fetch_member: Single member lookup; None when not found or unavailable.
    """

    @abstractmethod
    async def fetch_prospects(self, source_id: str, day: date) -> list[CandidateRecord]:
        """Return prospects created on ``day``; [] on SourceUnavailable."""
        ...

    @abstractmethod
    async def fetch_transactions(self, source_id: str, day: date) -> list[CandidateRecord]:
        """Return POS transactions for ``day``; [] on SourceUnavailable."""
        ...

    @abstractmethod
    async def fetch_member(self, source_id: str, member_id: str) -> dict[str, Any] | None:
        """Return the member payload, or None if not found or unavailable."""
        ...
