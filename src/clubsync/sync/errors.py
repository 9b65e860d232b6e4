"""Error taxonomy for the reconciliation core.

None of these conditions is fatal to the process. Each one is caught at the
narrowest scope that can act on it:
- SourceUnavailable: caught inside the Source gateway, degraded to an empty result.
- SinkUnavailable: caught per record by the engine; the record stays unmarked.
- RecordUnusable: record has no id or no contact channel; skipped without error.
- ConfigurationMissing: a location id not present in configuration; skipped
  loudly by the scheduler.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for reconciliation errors."""


class SourceUnavailable(SyncError):
    """Network or auth failure reaching the system of record."""

    def __init__(self, operation: str, source_id: str, detail: str) -> None:
        self.operation = operation
        self.source_id = source_id
        self.detail = detail
        super().__init__(f"Source {operation} failed for club {source_id}: {detail}")


class SinkUnavailable(SyncError):
    """Network or auth failure reaching the CRM."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Sink {operation} failed: {detail}")


class RecordUnusable(SyncError):
    """Record cannot be synced: it has no identifier, or no email and no phone.

    ``reason`` is ``missing_id`` or ``no_contact_channel``.
    """

    def __init__(self, record_id: str | None, reason: str = "no_contact_channel") -> None:
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Record {record_id} unusable: {reason}")


class ConfigurationMissing(SyncError):
    """A location id was requested that is not configured."""

    def __init__(self, source_id: str) -> None:
        self.source_id = source_id
        super().__init__(f"No configuration found for location {source_id}")
