"""Tests for sync metrics helpers and Sentry credential scrubbing."""

from __future__ import annotations

from types import SimpleNamespace

from prometheus_client import REGISTRY
from starlette.requests import Request

from src.clubsync.core.monitoring import (
    _route_template,
    _scrub_credentials,
    record_outcome,
    record_run,
    set_ledger_sizes,
)


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestSyncMetrics:
    def test_record_outcome_increments_counter(self):
        labels = {"kind": "prospect", "outcome": "created"}
        before = _sample("sync_records_total", labels)

        record_outcome("prospect", "created")

        assert _sample("sync_records_total", labels) == before + 1

    def test_record_run_counts_status(self):
        before = _sample("sync_runs_total", {"status": "skipped_busy"})

        record_run("skipped_busy")

        assert _sample("sync_runs_total", {"status": "skipped_busy"}) == before + 1

    def test_ledger_size_gauge(self):
        set_ledger_sizes({"prospect": 7, "transaction": 2})

        assert _sample("sync_ledger_size", {"kind": "prospect"}) == 7
        assert _sample("sync_ledger_size", {"kind": "transaction"}) == 2


class TestCredentialScrubbing:
    """Sentry events must not carry ABC keys or CRM bearer tokens."""

    def test_request_headers_redacted(self):
        event = {
            "request": {
                "headers": {"Authorization": "Bearer pit-123", "Accept": "application/json"}
            }
        }

        scrubbed = _scrub_credentials(event, {})

        assert scrubbed["request"]["headers"]["Authorization"] == "[redacted]"
        assert scrubbed["request"]["headers"]["Accept"] == "application/json"

    def test_breadcrumb_data_redacted(self):
        event = {
            "breadcrumbs": {
                "values": [
                    {"category": "httplib", "data": {"url": "https://abc/x", "app_key": "k"}},
                    {"category": "log"},
                ]
            }
        }

        scrubbed = _scrub_credentials(event, {})

        data = scrubbed["breadcrumbs"]["values"][0]["data"]
        assert data["app_key"] == "[redacted]"
        assert data["url"] == "https://abc/x"

    def test_event_without_request_passes_through(self):
        event = {"message": "boom"}
        assert _scrub_credentials(event, {}) == {"message": "boom"}


class TestRouteTemplate:
    """Endpoint labels are full route templates whatever router nesting produced them."""

    @staticmethod
    def _request(route_path: str | None, root_path: str = "") -> Request:
        scope = {"type": "http", "method": "GET", "path": "/", "headers": [], "root_path": root_path}
        if route_path is not None:
            scope["route"] = SimpleNamespace(path=route_path)
        return Request(scope)

    def test_flattened_route_path_used_as_is(self):
        request = self._request("/api/v1/debug/{source_id}")
        assert _route_template(request, "") == "/api/v1/debug/{source_id}"

    def test_included_router_prefix_restored(self):
        request = self._request("/debug/{source_id}", root_path="/api/v1")
        assert _route_template(request, "") == "/api/v1/debug/{source_id}"

    def test_app_root_path_not_in_label(self):
        request = self._request("/debug/{source_id}", root_path="/clubsync/api/v1")
        assert _route_template(request, "/clubsync") == "/api/v1/debug/{source_id}"

    def test_unmatched_request(self):
        assert _route_template(self._request(None), "") == "unmatched"
