"""Payload builders shaped like ABC Financial API responses."""

from __future__ import annotations

from typing import Any


def make_prospect(
    member_id: str = "P-1",
    campaign: str | None = "PHYSICAL THERAPY",
    entry_source: str | None = "DataTrak Fast Add",
    email: str | None = "jane@example.com",
    phone: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "memberId": member_id,
        "firstName": "Jane",
        "lastName": "Doe",
        "campaign": campaign,
        "agreementEntrySource": entry_source,
        "email": email,
    }
    if phone is not None:
        payload["cellPhone"] = phone
    payload.update(extra)
    return payload


def make_transaction(
    transaction_id: str = "T-1",
    member_id: str | None = "M-1",
    category: str = "PHYSICAL THERAPY",
    is_return: bool = False,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "transactionId": transaction_id,
        "return": is_return,
        "items": [{"name": "Session", "profitCenter": category}],
    }
    if member_id is not None:
        payload["memberId"] = member_id
    return payload


def make_member(
    member_id: str = "M-1",
    email: str | None = "sam@example.com",
    phone: str | None = None,
) -> dict[str, Any]:
    personal: dict[str, Any] = {"firstName": "Sam", "lastName": "Lee", "email": email}
    if phone is not None:
        personal["primaryPhone"] = phone
    return {"memberId": member_id, "personal": personal}
