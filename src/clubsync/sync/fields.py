"""Ordered accessor paths for Source record fields.

ABC payloads place the same logical field in different spots depending on
the endpoint version (top level, under ``agreement``, under ``personal``).
Each logical field is a tuple of dotted paths tried in priority order; the
first non-empty value wins.
"""

from __future__ import annotations

from typing import Any

from src.clubsync.sync.schemas import ContactFields

FieldPaths = tuple[str, ...]

# ── Prospect fields ─────────────────────────────────────────────────────────

PROSPECT_ID: FieldPaths = ("memberId", "id")

ENTRY_SOURCE: FieldPaths = (
    "agreementEntrySource",
    "agreement.agreementEntrySource",
    "agreement.entrySource",
)

ENTRY_SOURCE_REPORT: FieldPaths = (
    "agreementEntrySourceReportName",
    "agreement.agreementEntrySourceReportName",
    "agreement.entrySourceReportName",
)

CAMPAIGN: FieldPaths = (
    "campaign",
    "campaignName",
    "agreement.campaign",
    "agreement.campaignName",
)

# ── Contact fields (prospects and members) ──────────────────────────────────

MEMBER_ID: FieldPaths = ("memberId", "id", "member.memberId")
FIRST_NAME: FieldPaths = ("firstName", "personal.firstName")
LAST_NAME: FieldPaths = ("lastName", "personal.lastName")
EMAIL: FieldPaths = ("email", "personal.email")
PHONE: FieldPaths = (
    "homePhone",
    "cellPhone",
    "workPhone",
    "mobilePhone",
    "primaryPhone",
    "personal.homePhone",
    "personal.cellPhone",
    "personal.workPhone",
    "personal.mobilePhone",
    "personal.primaryPhone",
)

# ── POS transaction fields ──────────────────────────────────────────────────

TRANSACTION_ID: FieldPaths = ("transactionId", "id")
TRANSACTION_MEMBER_ID: FieldPaths = ("memberId", "member.memberId", "member.id")
RETURN_FLAG: FieldPaths = ("return", "isReturn", "returnFlag")
LINE_ITEMS: FieldPaths = ("items", "lineItems", "purchasedItems")
LINE_ITEM_CATEGORY: FieldPaths = (
    "profitCenter",
    "category",
    "inventoryType",
    "item.profitCenter",
)

_TRUTHY = {"true", "yes", "1", "y"}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def lookup(payload: dict[str, Any], path: str) -> Any:
    """Follow a dotted path through nested dicts. Missing segments yield None."""
    current: Any = payload
    for segment in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(segment)
    return current


def resolve(payload: dict[str, Any], paths: FieldPaths) -> Any:
    """Return the first non-empty value among ``paths``, or None."""
    for path in paths:
        value = lookup(payload, path)
        if not _is_empty(value):
            return value
    return None


def resolve_str(payload: dict[str, Any], paths: FieldPaths) -> str | None:
    """Like resolve() but stringified and stripped."""
    value = resolve(payload, paths)
    if value is None:
        return None
    return str(value).strip()


def resolve_flag(payload: dict[str, Any], paths: FieldPaths) -> bool:
    """Interpret the first non-empty value as a boolean flag."""
    value = resolve(payload, paths)
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


def contact_fields(payload: dict[str, Any], source_id: str | None = None) -> ContactFields:
    """Extract CRM contact fields from a prospect or member payload.

    An email without ``@`` is dropped; the CRM rejects it and it cannot be
    used for duplicate lookups.
    """
    email = resolve_str(payload, EMAIL)
    if email is not None and "@" not in email:
        email = None
    return ContactFields(
        first_name=resolve_str(payload, FIRST_NAME) or "",
        last_name=resolve_str(payload, LAST_NAME) or "",
        email=email,
        phone=resolve_str(payload, PHONE),
        source_id=source_id or resolve_str(payload, MEMBER_ID) or "",
    )


def line_item_categories(payload: dict[str, Any]) -> list[str]:
    """Categories of every line item of a POS transaction, in order."""
    items = resolve(payload, LINE_ITEMS)
    if not isinstance(items, list):
        return []
    categories: list[str] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        category = resolve_str(item, LINE_ITEM_CATEGORY)
        if category:
            categories.append(category)
    return categories
