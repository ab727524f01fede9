"""Tests for the property request board and agent responses."""

from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, cast

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import propertyxchange.services.request_service as request_module
from propertyxchange.auth import Identity
from propertyxchange.errors import BadRequestError, NotFoundError, PermissionDeniedError
from propertyxchange.models import PropertyRequest
from propertyxchange.services.request_service import RequestService
from tests.factories import (
    AGENT_ID,
    LISTING_ID,
    REQUEST_ID,
    USER_ID,
    make_agent,
    make_property_request,
    make_request_response,
    mock_session,
)


def _patch_request(
    monkeypatch: pytest.MonkeyPatch, request: PropertyRequest | None
) -> list[tuple[str, bool]]:
    lookups: list[tuple[str, bool]] = []

    async def fake_fetch(_session: object, key: str, *, by_slug: bool = False) -> PropertyRequest | None:
        lookups.append((key, by_slug))
        return request

    monkeypatch.setattr(request_module, "fetch_property_request", fake_fetch)
    return lookups


def _patch_notify(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    async def fake_notify(_self: object, user_ids: list[str], **kwargs: Any) -> int:
        calls.append({"user_ids": list(user_ids), **kwargs})
        return len(user_ids)

    monkeypatch.setattr(request_module.NotificationService, "notify", fake_notify)
    return calls


def _patch_existing_response(monkeypatch: pytest.MonkeyPatch, existing: object) -> None:
    async def fake_existing(_session: object, _request_id: str, _agent_id: str) -> object:
        return existing

    monkeypatch.setattr(request_module, "fetch_request_response", fake_existing)


@pytest.mark.anyio
async def test_create_request_allows_anonymous_callers(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: dict[str, Any] = {}

    async def fake_insert(
        _session: object,
        build: Callable[[str], PropertyRequest],
        base_name: str,
        _column: object,
        **_kwargs: Any,
    ) -> PropertyRequest:
        captured["base_name"] = base_name
        request = build("ngozi-rent-lekki")
        request.id = REQUEST_ID
        return request

    monkeypatch.setattr(request_module, "insert_with_unique_slug", fake_insert)
    session = mock_session()

    result = await RequestService(cast(AsyncSession, session)).create_request(
        {
            "purpose": "rent",
            "property_type": "House",
            "state": "Lagos",
            "lga": "Lekki",
            "budget": Decimal("5000000"),
            "name": "Ngozi",
            "email": "ngozi@example.com",
            "phone_number": "08031111111",
            "account_type": "individual",
        }
    )

    data = cast(dict[str, Any], result["data"])
    assert result["success"] is True
    assert result["message"] == "Property request created successfully"
    assert data["user_id"] is None
    assert data["purpose"] == "RENT"
    assert data["type"] == "HOUSE"
    assert data["account_type"] == "INDIVIDUAL"
    assert captured["base_name"] == "Ngozi RENT Lekki"
    session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_notify_agents_alerts_state_accounts_except_requester(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_request(monkeypatch, make_property_request())
    calls = _patch_notify(monkeypatch)

    async def fake_recipients(_session: object, state: str) -> list[str]:
        assert state == "Lagos"
        return [AGENT_ID, USER_ID, "agent-2"]

    monkeypatch.setattr(request_module, "fetch_request_alert_recipients", fake_recipients)

    notified = await RequestService(cast(AsyncSession, mock_session())).notify_agents(REQUEST_ID)

    assert notified == 2
    assert calls[0]["user_ids"] == [AGENT_ID, "agent-2"]
    assert calls[0]["type"] == "NEW_LISTING"
    assert calls[0]["message"] == (
        "A new property request for HOUSE in Lekki, Lagos with budget ₦5,000,000"
    )


@pytest.mark.anyio
async def test_notify_agents_for_missing_request_is_a_no_op(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_request(monkeypatch, None)
    calls = _patch_notify(monkeypatch)

    assert await RequestService(cast(AsyncSession, mock_session())).notify_agents("gone") == 0
    assert calls == []


@pytest.mark.anyio
async def test_list_requests_status_all_disables_status_filter(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    seen: dict[str, Any] = {}
    now = datetime(2026, 10, 19, tzinfo=UTC)

    async def fake_fetch(_session: object, **kwargs: Any) -> tuple[list[Any], int]:
        seen.update(kwargs)
        return [(make_property_request(), 2)], 1

    monkeypatch.setattr(request_module, "fetch_property_requests", fake_fetch)

    result = await RequestService(cast(AsyncSession, mock_session())).list_requests(
        status="all", page=1, limit=10, now=now
    )

    assert seen["status"] is None
    assert seen["public_only"] is True
    assert seen["active_at"] == now
    rows = cast(list[dict[str, Any]], result["data"])
    assert rows[0]["response_count"] == 2
    assert cast(dict[str, Any], result["pagination"])["total"] == 1


@pytest.mark.anyio
async def test_get_request_missing_returns_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    lookups = _patch_request(monkeypatch, None)

    with pytest.raises(NotFoundError) as exc_info:
        await RequestService(cast(AsyncSession, mock_session())).get_request("lost-request")

    assert lookups == [("lost-request", True)]
    assert exc_info.value.to_payload() == {
        "message": "Property request not found",
        "success": False,
    }


@pytest.mark.anyio
async def test_get_request_counts_view_and_lists_responses(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_request(monkeypatch, make_property_request(view_count=4))
    viewed: list[str] = []

    async def fake_responses(_session: object, request_id: str) -> list[Any]:
        return [(make_request_response(), make_agent(), None)]

    async def fake_increment(_session: object, request_id: str) -> None:
        viewed.append(request_id)

    monkeypatch.setattr(request_module, "fetch_request_responses", fake_responses)
    monkeypatch.setattr(request_module, "increment_request_views", fake_increment)

    result = await RequestService(cast(AsyncSession, mock_session())).get_request(REQUEST_ID)

    data = cast(dict[str, Any], result["data"])
    assert viewed == [REQUEST_ID]
    assert data["view_count"] == 5
    assert data["response_count"] == 1
    responses = cast(list[dict[str, Any]], data["responses"])
    assert responses[0]["agent"]["username"] == "primehomes"
    assert "listing" not in responses[0]


@pytest.mark.anyio
async def test_update_request_by_non_owner_is_forbidden(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_request(monkeypatch, make_property_request(user_id="other-user"))

    with pytest.raises(PermissionDeniedError, match="Not authorized to update this request"):
        await RequestService(cast(AsyncSession, mock_session())).update_request(
            Identity(id=USER_ID), REQUEST_ID, {"status": "CLOSED"}
        )


@pytest.mark.anyio
async def test_staff_may_close_any_request(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_request(monkeypatch, make_property_request(user_id="other-user"))

    result = await RequestService(cast(AsyncSession, mock_session())).update_request(
        Identity(id=AGENT_ID, role="STAFF"), REQUEST_ID, {"status": "CLOSED"}
    )

    assert cast(dict[str, Any], result["data"])["status"] == "CLOSED"


@pytest.mark.anyio
async def test_respond_twice_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_existing_response(monkeypatch, make_request_response())

    with pytest.raises(BadRequestError, match="You have already responded to this request"):
        await RequestService(cast(AsyncSession, mock_session())).respond(
            Identity(id=AGENT_ID, role="STAFF"), REQUEST_ID, {"message": "Again"}
        )


@pytest.mark.anyio
@pytest.mark.parametrize("status", ["CLOSED", "EXPIRED"])
async def test_respond_to_finished_request_is_rejected(
    monkeypatch: pytest.MonkeyPatch, status: str
) -> None:
    _patch_existing_response(monkeypatch, None)
    _patch_request(monkeypatch, make_property_request(status=status))

    with pytest.raises(BadRequestError, match="no longer accepting responses"):
        await RequestService(cast(AsyncSession, mock_session())).respond(
            Identity(id=AGENT_ID, role="STAFF"), REQUEST_ID, {"message": "Hi"}
        )


@pytest.mark.anyio
async def test_respond_stores_response_and_notifies_requester(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_existing_response(monkeypatch, None)
    _patch_request(monkeypatch, make_property_request())
    calls = _patch_notify(monkeypatch)
    session = mock_session()

    result = await RequestService(cast(AsyncSession, session)).respond(
        Identity(id=AGENT_ID, role="STAFF"),
        REQUEST_ID,
        {"message": "I have a duplex", "proposed_price": Decimal("4800000")},
    )

    stored = session.add.call_args.args[0]
    assert (stored.request_id, stored.agent_id) == (REQUEST_ID, AGENT_ID)
    assert result["message"] == "Response submitted successfully"
    assert calls[0]["user_ids"] == [USER_ID]
    assert calls[0]["title"] == "New Response to Your Request"


@pytest.mark.anyio
async def test_respond_race_on_unique_pair_is_reported_as_duplicate(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_existing_response(monkeypatch, None)
    _patch_request(monkeypatch, make_property_request())
    session = mock_session()
    session.commit.side_effect = IntegrityError(
        "INSERT", {}, Exception("uq_request_responses_request_agent")
    )

    with pytest.raises(BadRequestError, match="already responded"):
        await RequestService(cast(AsyncSession, session)).respond(
            Identity(id=AGENT_ID, role="STAFF"), REQUEST_ID, {"message": "Hi"}
        )

    session.rollback.assert_awaited_once()


@pytest.mark.anyio
async def test_respond_with_unknown_listing_is_not_found(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_existing_response(monkeypatch, None)
    _patch_request(monkeypatch, make_property_request())

    async def fake_listing(_session: object, _listing_id: str) -> None:
        return None

    monkeypatch.setattr(request_module, "fetch_listing_by_id", fake_listing)
    session = mock_session()

    with pytest.raises(NotFoundError, match="Listing not found"):
        await RequestService(cast(AsyncSession, session)).respond(
            Identity(id=AGENT_ID, role="STAFF"),
            REQUEST_ID,
            {"message": "Hi", "listing_id": LISTING_ID},
        )

    session.add.assert_not_called()
    session.commit.assert_not_awaited()


@pytest.mark.anyio
async def test_respond_reraises_integrity_errors_other_than_the_duplicate_pair(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_existing_response(monkeypatch, None)
    _patch_request(monkeypatch, make_property_request())
    session = mock_session()
    session.commit.side_effect = IntegrityError(
        "INSERT",
        {},
        Exception(
            'insert or update on table "request_responses" violates foreign key '
            'constraint "request_responses_listing_id_fkey"'
        ),
    )

    with pytest.raises(IntegrityError):
        await RequestService(cast(AsyncSession, session)).respond(
            Identity(id=AGENT_ID, role="STAFF"), REQUEST_ID, {"message": "Hi"}
        )

    session.rollback.assert_awaited_once()


@pytest.mark.anyio
async def test_request_stats(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_counts(_session: object) -> dict[str, int]:
        return {"OPEN": 4, "MATCHED": 1, "EXPIRED": 3}

    async def fake_responses(_session: object) -> int:
        return 9

    monkeypatch.setattr(request_module, "count_requests_by_status", fake_counts)
    monkeypatch.setattr(request_module, "count_request_responses", fake_responses)

    result = await RequestService(cast(AsyncSession, mock_session())).request_stats()

    assert result["data"] == {
        "totalRequests": 8,
        "openRequests": 4,
        "matchedRequests": 1,
        "closedRequests": 0,
        "totalResponses": 9,
    }
