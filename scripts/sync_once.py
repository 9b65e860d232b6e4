#!/usr/bin/env python3
"""Run a single reconciliation pass without starting the HTTP service.

Usage:
    python scripts/sync_once.py
    python scripts/sync_once.py --kind prospect --location 31601

Configuration comes from the environment / .env exactly as for the service.
The ledger starts empty, so CRM duplicate detection is the only guard
against re-creating contacts already synced today.

Exit code 0 if no record errored and no location failed, 1 otherwise.
"""

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.clubsync
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.clubsync.bootstrap import build_sync_stack
from src.clubsync.config import get_settings
from src.clubsync.core.logging import configure_structlog
from src.clubsync.sync.schemas import RecordKind


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one ABC -> CRM reconciliation pass")
    parser.add_argument(
        "--kind",
        action="append",
        choices=[k.value for k in RecordKind],
        help="Record kind to reconcile (repeatable; default: configured RECORD_KINDS)",
    )
    parser.add_argument(
        "--location",
        action="append",
        help="ABC club number to reconcile (repeatable; default: all configured)",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    stack = build_sync_stack(get_settings())
    kinds = [RecordKind(k) for k in args.kind] if args.kind else None
    summary = await stack.scheduler.run(kinds=kinds, location_ids=args.location)
    if summary is None:
        print("A run is already in flight", file=sys.stderr)
        return 1

    for report in summary.reports:
        print(
            f"[{report.location_id}] {report.kind.value}: fetched={report.fetched} "
            f"matched={report.matched} created={report.created} tagged={report.tagged} "
            f"skipped={report.skipped} errored={report.errored}"
        )
    for source_id in summary.unknown_locations:
        print(f"[{source_id}] not configured", file=sys.stderr)
    for source_id in summary.failed_locations:
        print(f"[{source_id}] failed, see logs", file=sys.stderr)

    failed = summary.totals.errored or summary.failed_locations or summary.unknown_locations
    return 1 if failed else 0


def main() -> None:
    args = parse_args(sys.argv[1:])
    configure_structlog()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
