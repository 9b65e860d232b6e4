"""Prometheus metrics and Sentry integration.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- record_outcome() / record_run() / set_ledger_sizes(): sync counters
- init_sentry(): Sentry for the FastAPI app, with ABC/CRM credentials scrubbed
- get_metrics_response(): FastAPI route handler body for /metrics
"""

from __future__ import annotations

import time

import sentry_sdk
from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Sync Metrics ─────────────────────────────────────────────────────────────

sync_records_total = Counter(
    "sync_records_total",
    "Candidate records processed, by terminal outcome",
    ["kind", "outcome"],
)

sync_runs_total = Counter(
    "sync_runs_total",
    "Reconciliation runs, by status",
    ["status"],
)

sync_run_duration_seconds = Histogram(
    "sync_run_duration_seconds",
    "Duration of a full reconciliation run across all locations",
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

sync_ledger_size = Gauge(
    "sync_ledger_size",
    "Identifiers currently held in the dedup ledger",
    ["kind"],
)


def record_outcome(kind: str, outcome: str) -> None:
    sync_records_total.labels(kind=kind, outcome=outcome).inc()


def record_run(status: str, duration: float | None = None) -> None:
    """Count a run; status is completed or skipped_busy."""
    sync_runs_total.labels(status=status).inc()
    if duration is not None:
        sync_run_duration_seconds.observe(duration)


def set_ledger_sizes(sizes: dict[str, int]) -> None:
    for kind, size in sizes.items():
        sync_ledger_size.labels(kind=kind).set(size)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request count and latency per route template.

    Labels use the matched route path (``/api/v1/debug/{source_id}``), not
    the raw URL, so club numbers do not create new series. Requests that
    match no route are labelled ``unmatched``. /metrics itself is skipped.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        app_root = request.scope.get("root_path", "")
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        endpoint = _route_template(request, app_root)
        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()
        http_request_duration_seconds.labels(method=request.method, endpoint=endpoint).observe(elapsed)
        return response


def _route_template(request: Request, app_root: str) -> str:
    # Routing writes the matched route, and the root_path of any mount or
    # included router it passed through, back onto the shared scope
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if not path:
        return "unmatched"
    root = request.scope.get("root_path", "")
    prefix = root[len(app_root):] if root.startswith(app_root) else ""
    return prefix + path


# ── Sentry Integration ───────────────────────────────────────────────────────

# Outbound headers that carry ABC or CRM credentials
_SECRET_HEADERS = frozenset({"authorization", "app_id", "app_key"})


def _scrub_credentials(event: dict, hint: dict) -> dict:
    """Blank credential headers in the request and in httpx breadcrumbs."""
    headers = (event.get("request") or {}).get("headers") or {}
    for name in list(headers):
        if name.lower() in _SECRET_HEADERS:
            headers[name] = "[redacted]"
    for crumb in (event.get("breadcrumbs") or {}).get("values") or []:
        data = crumb.get("data") or {}
        for name in list(data):
            if name.lower() in _SECRET_HEADERS:
                data[name] = "[redacted]"
    return event


def init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry with credential scrubbing.

    Args:
        dsn: Sentry DSN string.
        environment: Deployment environment (development, staging, production).
    """
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1 if environment == "production" else 1.0,
        send_default_pii=False,
        before_send=_scrub_credentials,
        integrations=[StarletteIntegration(), FastApiIntegration()],
    )


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
