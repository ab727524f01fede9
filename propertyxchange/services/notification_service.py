"""In-app notifications for listing, request and chat activity."""

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.constants import NOTIFY_GENERAL, STAFF_ROLES
from propertyxchange.db.repositories import (
    NotificationInsert,
    fetch_notifications,
    fetch_user_ids_by_roles,
    insert_notifications,
    mark_notifications_read,
)
from propertyxchange.errors import NotFoundError
from propertyxchange.services.pagination import build_pagination, page_offset
from propertyxchange.services.serializers import serialize_notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Service layer for notification delivery and inbox reads."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def notify(
        self,
        user_ids: Sequence[str],
        *,
        title: str,
        message: str,
        type: str = NOTIFY_GENERAL,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ) -> int:
        """Create notifications for the given users.

        Persistence failures are logged and reported as zero deliveries so the
        operation that triggered the notification still succeeds.
        """

        recipients = list(dict.fromkeys(uid for uid in user_ids if uid))
        if not recipients:
            return 0

        rows = [
            NotificationInsert(
                user_id=user_id,
                title=title,
                message=message,
                type=type,
                entity_type=entity_type,
                entity_id=entity_id,
            )
            for user_id in recipients
        ]
        try:
            return await insert_notifications(self._session, rows)
        except SQLAlchemyError:
            logger.exception("Failed to store %d notifications: %s", len(rows), title)
            return 0

    async def notify_staff(
        self,
        *,
        title: str,
        message: str,
        type: str = NOTIFY_GENERAL,
        entity_type: str | None = None,
        entity_id: str | None = None,
        exclude: str | None = None,
    ) -> int:
        try:
            async with self._session.begin_nested():
                staff_ids = await fetch_user_ids_by_roles(
                    self._session, sorted(STAFF_ROLES)
                )
        except SQLAlchemyError:
            logger.exception("Failed to look up staff for notification: %s", title)
            return 0

        return await self.notify(
            [uid for uid in staff_ids if uid != exclude],
            title=title,
            message=message,
            type=type,
            entity_type=entity_type,
            entity_id=entity_id,
        )

    async def list_notifications(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> dict[str, object]:
        notifications, total, unread = await fetch_notifications(
            self._session,
            user_id=user_id,
            unread_only=unread_only,
            skip=page_offset(page, limit),
            limit=limit,
        )
        return {
            "notifications": [serialize_notification(n) for n in notifications],
            "unreadCount": unread,
            "pagination": build_pagination(page, limit, total),
        }

    async def mark_read(self, user_id: str, notification_id: str) -> dict[str, object]:
        updated = await mark_notifications_read(
            self._session, user_id, notification_id=notification_id
        )
        if updated == 0:
            raise NotFoundError("Notification not found")
        return {"message": "Notification marked as read"}

    async def mark_all_read(self, user_id: str) -> dict[str, object]:
        updated = await mark_notifications_read(self._session, user_id)
        return {"message": "All notifications marked as read", "updated": updated}
