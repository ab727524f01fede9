"""Business logic for user profiles and saved listings."""

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.auth import Identity
from propertyxchange.config import get_settings
from propertyxchange.constants import (
    ROLE_ADMIN,
    ROLE_STAFF,
    ROLE_USER,
    USER_STATUS_ACTIVE,
    USER_STATUS_BANNED,
    USER_STATUS_INACTIVE,
    normalize_account_type,
)
from propertyxchange.db.repositories import (
    count_users_by_role,
    count_users_by_status,
    delete_user,
    fetch_listing_by_id,
    fetch_saved_listings,
    fetch_user_by_id,
    fetch_user_listings,
    fetch_users,
    fetch_users_admin,
    fetch_users_without_slug,
    set_user_slug,
    toggle_saved_listing,
)
from propertyxchange.errors import (
    BadRequestError,
    NotFoundError,
    PermissionDeniedError,
    SlugConflictError,
)
from propertyxchange.models import User
from propertyxchange.services.pagination import build_pagination, page_offset
from propertyxchange.services.serializers import serialize_listing, serialize_user
from propertyxchange.services.slug import (
    agent_base_name,
    generate_unique_slug,
    is_slug_violation,
)

logger = logging.getLogger(__name__)

SLUG_SOURCE_FIELDS = frozenset({"first_name", "last_name", "company_name", "username"})


class UserService:
    """Service layer for user routes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_users(self) -> list[dict[str, object]]:
        return [serialize_user(user) for user in await fetch_users(self._session)]

    async def get_user(self, user_id: str) -> dict[str, object]:
        user = await fetch_user_by_id(self._session, user_id)
        if user is None:
            raise NotFoundError("User not found!")
        return serialize_user(user)

    async def update_user(
        self, identity: Identity, user_id: str, changes: dict[str, Any]
    ) -> dict[str, object]:
        """Update the caller's own profile.

        Changing any name field re-derives the slug from the merged profile. A
        slug claimed by a concurrent update is re-derived and the update retried.
        """

        if identity.id != user_id:
            raise PermissionDeniedError("Not Authorized!")

        user = await fetch_user_by_id(self._session, user_id)
        if user is None:
            raise NotFoundError("User not found!")

        values = dict(changes)
        if values.get("account_type"):
            values["account_type"] = normalize_account_type(values["account_type"])

        reslug = bool(SLUG_SOURCE_FIELDS & values.keys())
        max_attempts = get_settings().slug_insert_max_attempts
        base_name = ""

        for attempt in range(1, max_attempts + 1):
            if reslug:
                base_name = agent_base_name(
                    **{
                        field: values.get(field, getattr(user, field))
                        for field in SLUG_SOURCE_FIELDS
                    }
                )
                values["slug"] = await generate_unique_slug(
                    self._session, base_name, User.slug, exclude_id=user_id
                )

            for field, value in values.items():
                setattr(user, field, value)

            try:
                await self._session.commit()
            except IntegrityError as exc:
                await self._session.rollback()
                if not (reslug and is_slug_violation(exc, User.slug)):
                    logger.warning(
                        "Profile update for %s hit a unique constraint: %s", user_id, exc.orig
                    )
                    raise BadRequestError("Username or email is already in use") from exc

                logger.warning(
                    "Slug %s was claimed concurrently (attempt %d/%d)",
                    values["slug"],
                    attempt,
                    max_attempts,
                )
                user = await fetch_user_by_id(self._session, user_id)
                if user is None:
                    raise NotFoundError("User not found!") from exc
                continue

            await self._session.refresh(user)
            return serialize_user(user)

        raise SlugConflictError("Could not allocate a unique slug", baseName=base_name)

    async def delete_user(self, identity: Identity, user_id: str) -> dict[str, object]:
        if identity.id != user_id:
            raise PermissionDeniedError("Not Authorized!")

        if not await delete_user(self._session, user_id):
            raise NotFoundError("User not found!")

        logger.info("User %s deleted their account", user_id)
        return {"message": "User deleted successfully"}

    async def deactivate_user(
        self, identity: Identity, user_id: str
    ) -> dict[str, object]:
        """Mark an account inactive; the owner or an admin may do this."""

        if identity.id != user_id and identity.role != ROLE_ADMIN:
            raise PermissionDeniedError("Not Authorized!")

        user = await fetch_user_by_id(self._session, user_id)
        if user is None:
            raise NotFoundError("User not found!")

        user.status = USER_STATUS_INACTIVE
        await self._session.commit()
        logger.info("User %s deactivated by %s", user_id, identity.id)
        return {"message": "Account deactivated successfully"}

    async def admin_users(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        role: str | None = None,
        status: str | None = None,
        verified: bool | None = None,
        profile_completed: bool | None = None,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> dict[str, object]:
        users, total = await fetch_users_admin(
            self._session,
            search=search,
            role=role.upper() if role else None,
            status=status.upper() if status else None,
            verified=verified,
            profile_completed=profile_completed,
            sort_by=sort_by,
            order=order,
            skip=page_offset(page, limit),
            limit=limit,
        )
        return {
            "users": [serialize_user(user) for user in users],
            "pagination": build_pagination(page, limit, total),
        }

    async def user_stats(self) -> dict[str, int]:
        by_role = await count_users_by_role(self._session)
        by_status = await count_users_by_status(self._session)
        return {
            "totalUsers": sum(by_status.values()),
            "activeUsers": by_status.get(USER_STATUS_ACTIVE, 0),
            "inactiveUsers": by_status.get(USER_STATUS_INACTIVE, 0),
            "bannedUsers": by_status.get(USER_STATUS_BANNED, 0),
            "regularUsers": by_role.get(ROLE_USER, 0),
            "staffUsers": by_role.get(ROLE_STAFF, 0),
            "adminUsers": by_role.get(ROLE_ADMIN, 0),
        }

    async def update_role(
        self, identity: Identity, user_id: str, role: str
    ) -> dict[str, object]:
        if identity.id == user_id:
            raise BadRequestError("You cannot change your own role")

        user = await fetch_user_by_id(self._session, user_id)
        if user is None:
            raise NotFoundError("User not found!")

        previous = user.role
        user.role = role
        await self._session.commit()
        await self._session.refresh(user)
        logger.info(
            "User %s role changed from %s to %s by %s",
            user_id,
            previous,
            role,
            identity.id,
        )
        return {"message": "User role updated successfully", "user": serialize_user(user)}

    async def toggle_ban(
        self, identity: Identity, user_id: str, reason: str | None = None
    ) -> dict[str, object]:
        """Ban an account, or lift the ban on a banned one."""

        if identity.id == user_id:
            raise BadRequestError("You cannot ban yourself")

        user = await fetch_user_by_id(self._session, user_id)
        if user is None:
            raise NotFoundError("User not found!")

        banned = user.status != USER_STATUS_BANNED
        user.status = USER_STATUS_BANNED if banned else USER_STATUS_ACTIVE
        await self._session.commit()
        await self._session.refresh(user)

        if banned:
            logger.info(
                "User %s banned by %s: %s", user_id, identity.id, reason or "no reason given"
            )
        else:
            logger.info("User %s unbanned by %s", user_id, identity.id)

        return {
            "message": "User banned successfully" if banned else "User unbanned successfully",
            "user": serialize_user(user),
        }

    async def toggle_saved(self, identity: Identity, listing_id: str) -> dict[str, object]:
        """Save a listing for the caller, or unsave it if already saved."""

        if await fetch_listing_by_id(self._session, listing_id) is None:
            raise NotFoundError("Listing not found")

        saved = await toggle_saved_listing(self._session, identity.id, listing_id)
        return {
            "saved": saved,
            "message": "Listing saved" if saved else "Listing removed from saved list",
        }

    async def profile_listings(self, identity: Identity) -> dict[str, object]:
        own = await fetch_user_listings(self._session, identity.id)
        saved = await fetch_saved_listings(self._session, identity.id)
        return {
            "userListings": [serialize_listing(listing) for listing in own],
            "savedListings": [serialize_listing(listing) for listing in saved],
        }

    async def backfill_slugs(self) -> dict[str, int]:
        """Give every user without a slug one; failures are counted and skipped."""

        users = await fetch_users_without_slug(self._session)
        pending = [
            (
                user.id,
                agent_base_name(
                    company_name=user.company_name,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    username=user.username,
                    fallback=f"agent-{(user.account_type or 'individual').lower()}",
                ),
            )
            for user in users
        ]

        updated = 0
        errors = 0
        for user_id, base_name in pending:
            try:
                slug = await generate_unique_slug(
                    self._session, base_name, User.slug, exclude_id=user_id
                )
                await set_user_slug(self._session, user_id, slug)
            except SQLAlchemyError:
                logger.exception("Failed to backfill slug for user %s", user_id)
                await self._session.rollback()
                errors += 1
                continue
            updated += 1

        logger.info("Slug backfill finished: %d updated, %d errors", updated, errors)
        return {"updated": updated, "errors": errors, "total": len(pending)}
