"""In-app notification inbox routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.auth import Identity, get_current_identity
from propertyxchange.db.session import get_db_session
from propertyxchange.services.notification_service import NotificationService

router = APIRouter(prefix="/api/notification", tags=["notifications"])


@router.get("")
async def list_notifications(
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = False,
) -> dict[str, object]:
    return await NotificationService(session).list_notifications(
        identity.id, page=page, limit=limit, unread_only=unread_only
    )


@router.put("/read-all")
async def mark_all_read(
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    return await NotificationService(session).mark_all_read(identity.id)


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    return await NotificationService(session).mark_read(identity.id, notification_id)
