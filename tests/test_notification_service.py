"""Tests for notification delivery and the inbox."""

from typing import Any, cast

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

import propertyxchange.services.notification_service as notification_module
from propertyxchange.db.repositories import NotificationInsert
from propertyxchange.errors import NotFoundError
from propertyxchange.services.notification_service import NotificationService
from tests.factories import STAFF_ID, USER_ID, make_notification, mock_session


@pytest.mark.anyio
async def test_notify_dedupes_recipients_and_skips_blank_ids(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    inserted: list[NotificationInsert] = []

    async def fake_insert(_session: object, rows: list[NotificationInsert]) -> int:
        inserted.extend(rows)
        return len(rows)

    monkeypatch.setattr(notification_module, "insert_notifications", fake_insert)

    delivered = await NotificationService(cast(AsyncSession, mock_session())).notify(
        [USER_ID, "", USER_ID, STAFF_ID],
        title="Listing Approved",
        message="Live now",
        type="LISTING_APPROVED",
        entity_type="listing",
        entity_id="l1",
    )

    assert delivered == 2
    assert [row.user_id for row in inserted] == [USER_ID, STAFF_ID]
    assert {row.type for row in inserted} == {"LISTING_APPROVED"}


@pytest.mark.anyio
async def test_notify_with_no_recipients_does_not_touch_database(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fail_insert(*_args: Any) -> int:
        raise AssertionError("no insert expected")

    monkeypatch.setattr(notification_module, "insert_notifications", fail_insert)

    assert await NotificationService(cast(AsyncSession, mock_session())).notify(
        [], title="t", message="m"
    ) == 0


@pytest.mark.anyio
async def test_notify_failure_is_logged_not_raised(monkeypatch: pytest.MonkeyPatch) -> None:
    async def broken_insert(_session: object, _rows: list[NotificationInsert]) -> int:
        raise OperationalError("INSERT", {}, Exception("database is down"))

    monkeypatch.setattr(notification_module, "insert_notifications", broken_insert)
    session = mock_session()

    delivered = await NotificationService(cast(AsyncSession, session)).notify(
        [USER_ID], title="t", message="m"
    )

    assert delivered == 0
    session.rollback.assert_not_awaited()


@pytest.mark.anyio
async def test_notify_staff_excludes_the_actor(monkeypatch: pytest.MonkeyPatch) -> None:
    inserted: list[NotificationInsert] = []

    async def fake_staff(_session: object, roles: list[str]) -> list[str]:
        assert roles == ["ADMIN", "STAFF"]
        return [STAFF_ID, "admin-1"]

    async def fake_insert(_session: object, rows: list[NotificationInsert]) -> int:
        inserted.extend(rows)
        return len(rows)

    monkeypatch.setattr(notification_module, "fetch_user_ids_by_roles", fake_staff)
    monkeypatch.setattr(notification_module, "insert_notifications", fake_insert)

    delivered = await NotificationService(cast(AsyncSession, mock_session())).notify_staff(
        title="New Listing Submitted", message="review", exclude=STAFF_ID
    )

    assert delivered == 1
    assert inserted[0].user_id == "admin-1"


@pytest.mark.anyio
async def test_notify_staff_lookup_failure_keeps_callers_rows(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def broken_staff(_session: object, _roles: list[str]) -> list[str]:
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    monkeypatch.setattr(notification_module, "fetch_user_ids_by_roles", broken_staff)
    session = mock_session()

    delivered = await NotificationService(cast(AsyncSession, session)).notify_staff(
        title="New Listing Submitted", message="review"
    )

    assert delivered == 0
    session.begin_nested.assert_called_once()
    session.rollback.assert_not_awaited()


@pytest.mark.anyio
async def test_notify_unknown_recipient_unwinds_only_the_savepoint() -> None:
    session = mock_session()
    session.savepoint_failures.append(
        IntegrityError(
            "INSERT INTO notifications ...",
            {},
            Exception("violates foreign key constraint \"notifications_user_id_fkey\""),
        )
    )

    delivered = await NotificationService(cast(AsyncSession, session)).notify(
        ["deleted-user"], title="New message from ada", message="hello"
    )

    assert delivered == 0
    session.add_all.assert_called_once()
    session.commit.assert_not_awaited()
    session.rollback.assert_not_awaited()

@pytest.mark.anyio
async def test_list_notifications_reports_unread_count(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_fetch(_session: object, **kwargs: Any) -> tuple[list[Any], int, int]:
        assert kwargs == {"user_id": USER_ID, "unread_only": True, "skip": 20, "limit": 20}
        return [make_notification()], 21, 21

    monkeypatch.setattr(notification_module, "fetch_notifications", fake_fetch)

    result = await NotificationService(cast(AsyncSession, mock_session())).list_notifications(
        USER_ID, page=2, unread_only=True
    )

    assert result["unreadCount"] == 21
    assert cast(list[dict[str, Any]], result["notifications"])[0]["type"] == "LISTING_APPROVED"
    assert cast(dict[str, Any], result["pagination"])["pages"] == 2


@pytest.mark.anyio
async def test_mark_read_unknown_notification_is_not_found(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_mark(_session: object, _user_id: str, *, notification_id: str | None = None) -> int:
        return 0 if notification_id == "missing" else 1

    monkeypatch.setattr(notification_module, "mark_notifications_read", fake_mark)
    service = NotificationService(cast(AsyncSession, mock_session()))

    assert await service.mark_read(USER_ID, "n1") == {"message": "Notification marked as read"}
    with pytest.raises(NotFoundError, match="Notification not found"):
        await service.mark_read(USER_ID, "missing")
    assert (await service.mark_all_read(USER_ID))["updated"] == 1
