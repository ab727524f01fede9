"""User profile, saved listing and account moderation routes."""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.api.schemas import SaveListing, UserBan, UserRoleUpdate, UserUpdate
from propertyxchange.auth import Identity, get_current_identity, require_admin
from propertyxchange.cache import AGENT_CACHE_PREFIX, cache_delete_prefix
from propertyxchange.db.session import get_db_session
from propertyxchange.services.user_service import UserService

router = APIRouter(prefix="/api/user", tags=["users"])


@router.get("")
async def list_users(
    session: AsyncSession = Depends(get_db_session),
) -> list[dict[str, object]]:
    return await UserService(session).list_users()


@router.get("/profileListings")
async def profile_listings(
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    return await UserService(session).profile_listings(identity)


@router.post("/save")
async def save_listing(
    body: SaveListing,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    return await UserService(session).toggle_saved(identity, body.listing_id)


# Admin routes are declared before /{user_id} so "admin" is never read as an id.


@router.get("/admin")
async def admin_users(
    session: AsyncSession = Depends(get_db_session),
    _: Identity = Depends(require_admin),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = None,
    role: str | None = None,
    status: str | None = None,
    verified: bool | None = None,
    profile_completed: bool | None = Query(default=None, alias="profileCompleted"),
    sort_by: str = "created_at",
    order: Literal["asc", "desc"] = "desc",
) -> dict[str, object]:
    return await UserService(session).admin_users(
        page=page,
        limit=limit,
        search=search,
        role=role,
        status=status,
        verified=verified,
        profile_completed=profile_completed,
        sort_by=sort_by,
        order=order,
    )


@router.get("/admin/stats")
async def user_stats(
    session: AsyncSession = Depends(get_db_session),
    _: Identity = Depends(require_admin),
) -> dict[str, int]:
    return await UserService(session).user_stats()


@router.put("/admin/{user_id}/role")
async def update_role(
    user_id: str,
    body: UserRoleUpdate,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_admin),
) -> dict[str, object]:
    """Change an account's role; the agent directory depends on it."""

    result = await UserService(session).update_role(identity, user_id, body.role)
    await cache_delete_prefix(AGENT_CACHE_PREFIX)
    return result


@router.put("/admin/{user_id}/ban")
async def toggle_ban(
    user_id: str,
    body: UserBan | None = None,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_admin),
) -> dict[str, object]:
    reason = body.reason if body else None
    return await UserService(session).toggle_ban(identity, user_id, reason)


@router.put("/{user_id}/deactivate")
async def deactivate_user(
    user_id: str,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    return await UserService(session).deactivate_user(identity, user_id)


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    return await UserService(session).get_user(user_id)


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdate,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    """Update the caller's profile; a name change re-derives the slug."""

    result = await UserService(session).update_user(
        identity, user_id, body.model_dump(exclude_unset=True)
    )
    await cache_delete_prefix(AGENT_CACHE_PREFIX)
    return result


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    result = await UserService(session).delete_user(identity, user_id)
    await cache_delete_prefix(AGENT_CACHE_PREFIX)
    return result
