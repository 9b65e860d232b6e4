"""LeadConnector (HighLevel) CRM client -- the Sink gateway implementation.

Each location carries its own bearer token. Duplicate detection uses the
contacts search endpoint: exact (case-insensitive) email equality, or a
custom field holding the ABC member id. The custom-field lookup relies on
the search query also indexing custom field values.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.clubsync.gateways.retry import transient_retry
from src.clubsync.gateways.sink import SinkGateway
from src.clubsync.sync.errors import SinkUnavailable
from src.clubsync.sync.schemas import ContactFields, Location, MatchSource, SinkIdentity

logger = structlog.get_logger(__name__)


class LeadConnectorGateway(SinkGateway):
    """Async client for the LeadConnector contacts API.

    Args:
        base_url: API root, e.g. https://services.leadconnectorhq.com
        api_version: Value of the ``Version`` header.
        source_id_field_key: Custom field key holding the ABC member id.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str = "https://services.leadconnectorhq.com",
        api_version: str = "2021-07-28",
        source_id_field_key: str = "abc_member_id",
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version
        self._field_key = source_id_field_key
        self._timeout = timeout

    def _client(self, location: Location) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {location.sink_token}",
                "Version": self._api_version,
                "Content-Type": "application/json",
            },
            timeout=self._timeout,
        )

    @transient_retry
    async def _request(
        self,
        method: str,
        path: str,
        location: Location,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        async with self._client(location) as client:
            if method == "GET":
                response = await client.get(f"{self._base_url}{path}", params=params)
            else:
                response = await client.post(f"{self._base_url}{path}", json=json)
            response.raise_for_status()
            return response.json() if response.content else {}

    async def _call(
        self,
        operation: str,
        method: str,
        path: str,
        location: Location,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            return await self._request(method, path, location, params=params, json=json)
        except httpx.HTTPStatusError as exc:
            detail = f"HTTP {exc.response.status_code}: {exc.response.text[:200]}"
            raise SinkUnavailable(operation, detail) from exc
        except httpx.HTTPError as exc:
            raise SinkUnavailable(operation, str(exc) or exc.__class__.__name__) from exc
        except ValueError as exc:
            raise SinkUnavailable(operation, f"invalid JSON: {exc}") from exc

    async def _search(self, operation: str, query: str, location: Location) -> list[dict[str, Any]]:
        data = await self._call(
            operation,
            "GET",
            "/contacts/",
            location,
            params={"locationId": location.sink_id, "query": query},
        )
        return [c for c in data.get("contacts") or [] if isinstance(c, dict)]

    def _has_source_id(self, contact: dict[str, Any], source_id: str) -> bool:
        for custom_field in contact.get("customFields") or []:
            key = custom_field.get("key") or custom_field.get("fieldKey")
            if key in (self._field_key, f"contact.{self._field_key}") and str(
                custom_field.get("value")
            ) == source_id:
                return True
        return False

    async def find_by_email(self, email: str, location: Location) -> SinkIdentity | None:
        wanted = email.strip().lower()
        for contact in await self._search("find_by_email", email, location):
            contact_email = contact.get("email")
            if contact_email and contact_email.strip().lower() == wanted:
                return SinkIdentity(
                    contact_id=str(contact.get("id")),
                    email=contact_email,
                    matched_by=MatchSource.EMAIL,
                )
        return None

    async def find_by_source_id(self, source_id: str, location: Location) -> SinkIdentity | None:
        source_id = str(source_id)
        for contact in await self._search("find_by_source_id", source_id, location):
            if self._has_source_id(contact, source_id):
                return SinkIdentity(
                    contact_id=str(contact.get("id")),
                    email=contact.get("email"),
                    matched_by=MatchSource.SOURCE_ID,
                )
        return None

    async def create_contact(
        self, fields: ContactFields, tag: str | None, location: Location
    ) -> SinkIdentity:
        body: dict[str, Any] = {
            "locationId": location.sink_id,
            "firstName": fields.first_name,
            "lastName": fields.last_name,
            "phone": fields.phone or "",
            "tags": [tag] if tag else [],
            "customFields": [{"key": self._field_key, "value": fields.source_id}],
        }
        if fields.email:
            body["email"] = fields.email

        data = await self._call("create_contact", "POST", "/contacts/", location, json=body)
        contact = data.get("contact") or data
        contact_id = contact.get("id")
        if not contact_id:
            raise SinkUnavailable("create_contact", "response carried no contact id")

        logger.info(
            "ghl.contact_created",
            contact_id=contact_id,
            location=location.sink_id,
            name=fields.display_name,
            email=fields.email or "no email",
            phone=fields.phone or "no phone",
            tag=tag,
        )
        return SinkIdentity(contact_id=str(contact_id), email=fields.email, matched_by=MatchSource.CREATED)

    async def add_tag(self, contact_id: str, tag: str, location: Location) -> None:
        await self._call(
            "add_tag", "POST", f"/contacts/{contact_id}/tags", location, json={"tags": [tag]}
        )
        logger.info("ghl.contact_tagged", contact_id=contact_id, location=location.sink_id, tag=tag)
