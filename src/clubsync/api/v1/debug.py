"""Debug endpoints for inspecting raw Source data and filter decisions.

Read-only: nothing here touches the ledger or the CRM.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.clubsync.api.deps import get_source, get_sync_config
from src.clubsync.gateways.source import SourceGateway
from src.clubsync.sync import fields
from src.clubsync.sync.engine import business_day
from src.clubsync.sync.errors import ConfigurationMissing
from src.clubsync.sync.filter import explain, matches
from src.clubsync.sync.schemas import CandidateRecord, RecordKind, SyncConfig

router = APIRouter(prefix="/debug", tags=["debug"])

SAMPLE_LIMIT = 3
ANALYSIS_LIMIT = 20


def _require_location(config: SyncConfig, source_id: str) -> None:
    try:
        config.require_location(source_id)
    except ConfigurationMissing as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


async def _fetch(source: SourceGateway, config: SyncConfig, source_id: str, kind: RecordKind):
    day = business_day(config.timezone)
    if kind is RecordKind.PROSPECT:
        return await source.fetch_prospects(source_id, day)
    return await source.fetch_transactions(source_id, day)


def _sample(record: CandidateRecord) -> dict[str, Any]:
    payload = record.payload
    return {
        "record_id": fields.resolve_str(
            payload,
            fields.PROSPECT_ID if record.kind is RecordKind.PROSPECT else fields.TRANSACTION_ID,
        ),
        "first_name": payload.get("firstName"),
        "last_name": payload.get("lastName"),
        "email": payload.get("email"),
        "campaign": payload.get("campaign"),
        "campaign_name": payload.get("campaignName"),
        "agreement_entry_source": payload.get("agreementEntrySource"),
        "agreement_entry_source_report_name": payload.get("agreementEntrySourceReportName"),
        "personal": payload.get("personal"),
        "agreement": payload.get("agreement"),
        "all_top_level_keys": sorted(payload.keys()),
    }


@router.get("/{source_id}")
async def sample_records(
    source_id: str,
    kind: RecordKind = Query(default=RecordKind.PROSPECT),
    source: SourceGateway = Depends(get_source),
    config: SyncConfig = Depends(get_sync_config),
) -> dict[str, Any]:
    """Return the raw structure of the first few records fetched today."""
    _require_location(config, source_id)
    records = await _fetch(source, config, source_id, kind)
    samples = [_sample(r) for r in records[:SAMPLE_LIMIT]]
    return {
        "total": len(records),
        "sample_count": len(samples),
        "samples": samples,
    }


@router.get("/{source_id}/filter")
async def filter_analysis(
    source_id: str,
    kind: RecordKind = Query(default=RecordKind.PROSPECT),
    source: SourceGateway = Depends(get_source),
    config: SyncConfig = Depends(get_sync_config),
) -> dict[str, Any]:
    """Show why each of today's records passes or fails the filter."""
    _require_location(config, source_id)
    records = await _fetch(source, config, source_id, kind)
    rule = config.rule
    analysis = [explain(r, rule).model_dump() for r in records[:ANALYSIS_LIMIT]]
    return {
        "total": len(records),
        "matching_filter": sum(1 for r in records if matches(r, rule)),
        "target_categories": sorted(rule.target_categories),
        "required_entry_source": sorted(rule.entry_sources | rule.entry_source_reports),
        "analysis": analysis,
    }
