"""ABC Financial REST client -- the Source gateway implementation.

Reads prospects, POS transactions and single members for a club. Requests
are retried by the shared tenacity policy; anything still failing after
retries becomes SourceUnavailable, which is logged and degraded to an empty
result so a reconciliation pass can carry on.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import httpx
import structlog

from src.clubsync.gateways.retry import transient_retry
from src.clubsync.gateways.source import SourceGateway
from src.clubsync.sync.errors import SourceUnavailable
from src.clubsync.sync.schemas import CandidateRecord, RecordKind

logger = structlog.get_logger(__name__)


def _error_detail(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}: {exc.response.text[:200]}"
    return str(exc) or exc.__class__.__name__


class AbcFinancialGateway(SourceGateway):
    """Async client for the ABC Financial REST API.

    Args:
        base_url: API root, e.g. https://api.abcfinancial.com/rest
        app_id: ABC application id (``app_id`` header).
        app_key: ABC application key (``app_key`` header).
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, base_url: str, app_id: str, app_key: str, timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "accept": "application/json",
            "app_id": app_id,
            "app_key": app_key,
        }
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(headers=self._headers, timeout=self._timeout)

    @transient_retry
    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        async with self._client() as client:
            response = await client.get(f"{self._base_url}{path}", params=params)
            response.raise_for_status()
            return response.json()

    async def _get_or_raise(
        self, operation: str, source_id: str, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            return await self._get(path, params)
        except httpx.HTTPError as exc:
            raise SourceUnavailable(operation, source_id, _error_detail(exc)) from exc
        except ValueError as exc:
            raise SourceUnavailable(operation, source_id, f"invalid JSON: {exc}") from exc

    async def fetch_prospects(self, source_id: str, day: date) -> list[CandidateRecord]:
        """GET /{club}/members filtered to prospects created on ``day``."""
        try:
            data = await self._get_or_raise(
                "fetch_prospects",
                source_id,
                f"/{source_id}/members",
                params={"joinStatus": "Prospect", "createdTimestampRange": day.isoformat()},
            )
        except SourceUnavailable as exc:
            logger.error("abc.fetch_failed", operation=exc.operation, club=source_id, error=exc.detail)
            return []

        members = data.get("members") or []
        logger.debug("abc.prospects_fetched", club=source_id, day=day.isoformat(), count=len(members))
        return [CandidateRecord(kind=RecordKind.PROSPECT, payload=m) for m in members if isinstance(m, dict)]

    async def fetch_transactions(self, source_id: str, day: date) -> list[CandidateRecord]:
        """GET /{club}/clubs/transactions/pos for ``day``.

        The POS endpoint nests transactions under ``clubs[]``; older
        versions return a flat ``transactions`` list. Both are accepted.
        """
        try:
            data = await self._get_or_raise(
                "fetch_transactions",
                source_id,
                f"/{source_id}/clubs/transactions/pos",
                params={"transactionTimestampRange": day.isoformat()},
            )
        except SourceUnavailable as exc:
            logger.error("abc.fetch_failed", operation=exc.operation, club=source_id, error=exc.detail)
            return []

        transactions: list[dict[str, Any]] = list(data.get("transactions") or [])
        for club in data.get("clubs") or []:
            if isinstance(club, dict):
                transactions.extend(club.get("transactions") or [])

        logger.debug(
            "abc.transactions_fetched", club=source_id, day=day.isoformat(), count=len(transactions)
        )
        return [
            CandidateRecord(kind=RecordKind.TRANSACTION, payload=t)
            for t in transactions
            if isinstance(t, dict)
        ]

    async def fetch_member(self, source_id: str, member_id: str) -> dict[str, Any] | None:
        """GET /{club}/members/{memberId}. None when missing or unreachable."""
        try:
            data = await self._get_or_raise(
                "fetch_member", source_id, f"/{source_id}/members/{member_id}"
            )
        except SourceUnavailable as exc:
            logger.error(
                "abc.fetch_failed",
                operation=exc.operation,
                club=source_id,
                member_id=member_id,
                error=exc.detail,
            )
            return None

        members = data.get("members") or []
        if members and isinstance(members[0], dict):
            return members[0]
        logger.info("abc.member_not_found", club=source_id, member_id=member_id)
        return None
