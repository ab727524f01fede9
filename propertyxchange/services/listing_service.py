"""Business logic for property listings and their moderation."""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.auth import Identity
from propertyxchange.config import get_settings
from propertyxchange.constants import (
    ACCOUNT_TYPE_INDIVIDUAL,
    LISTING_APPROVED,
    LISTING_PENDING,
    LISTING_REJECTED,
    NOTIFY_GENERAL,
    NOTIFY_LISTING_APPROVED,
    NOTIFY_LISTING_REJECTED,
    NOTIFY_NEW_LISTING,
    ROLE_USER,
    normalize_property_type,
    normalize_purpose,
    normalize_sub_type,
)
from propertyxchange.db.repositories import (
    count_listings_by_status,
    delete_listing_cascade,
    fetch_featured_listings,
    fetch_listing_by_id,
    fetch_listing_with_owner,
    fetch_listings,
    fetch_listings_admin,
    fetch_related_listings,
    fetch_saved_listing,
    fetch_user_by_id,
)
from propertyxchange.errors import BadRequestError, NotFoundError, PermissionDeniedError
from propertyxchange.models import Listing, User
from propertyxchange.services.notification_service import NotificationService
from propertyxchange.services.pagination import build_pagination, page_offset
from propertyxchange.services.serializers import (
    is_record_id,
    serialize_listing,
    serialize_user_summary,
)
from propertyxchange.services.slug import generate_unique_slug, insert_with_unique_slug

logger = logging.getLogger(__name__)

PROFILE_REQUIRED_FIELDS = (
    "phone_number",
    "whats_app_num",
    "account_type",
    "address",
    "lga",
    "state",
)


def missing_profile_fields(user: User) -> list[str]:
    """Profile fields a USER must fill in before listing a property."""

    missing = [field for field in PROFILE_REQUIRED_FIELDS if not getattr(user, field)]
    if user.account_type != ACCOUNT_TYPE_INDIVIDUAL and not user.company_reg_document:
        missing.append("company_reg_document")
    return missing


def listing_slug_base(name: str, property_type: str, lga: str | None) -> str:
    return " ".join(part for part in (name, property_type, lga) if part)


def _normalize_labels(values: dict[str, Any]) -> dict[str, Any]:
    if values.get("purpose"):
        values["purpose"] = normalize_purpose(values["purpose"])
    if values.get("property_type"):
        values["property_type"] = normalize_property_type(values["property_type"])
    if "sub_type" in values:
        values["sub_type"] = normalize_sub_type(values["sub_type"])
    return values


def _owner_details(owner: User) -> dict[str, object]:
    return {
        **serialize_user_summary(owner),
        "address": owner.address,
        "state": owner.state,
        "lga": owner.lga,
        "about_company": owner.about_company,
    }


class ListingService:
    """Service layer for listing routes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._notifications = NotificationService(session)

    async def search_listings(
        self,
        *,
        include_all: bool = False,
        purpose: str | None = None,
        street: str | None = None,
        property_type: str | None = None,
        sub_type: str | None = None,
        state: str | None = None,
        lga: str | None = None,
        furnished: bool = False,
        parking: bool = False,
        newly_built: bool = False,
        serviced: bool = False,
        features: list[str] | None = None,
        toilets: int | None = None,
        number_of_bathrooms: int | None = None,
        number_of_beds: int | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        min_discount_price: Decimal | None = None,
        max_discount_price: Decimal | None = None,
        created_after: datetime | None = None,
        sort_by: str | None = None,
        order: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, object]]:
        """Search listings; only approved ones unless ``include_all`` is set."""

        rows = await fetch_listings(
            self._session,
            status=None if include_all else LISTING_APPROVED,
            purpose=normalize_purpose(purpose) if purpose else None,
            street=street,
            property_type=normalize_property_type(property_type)
            if property_type
            else None,
            sub_type=normalize_sub_type(sub_type),
            state=state,
            lga=lga,
            furnished=furnished,
            parking=parking,
            newly_built=newly_built,
            serviced=serviced,
            features=features,
            toilets=toilets,
            number_of_bathrooms=number_of_bathrooms,
            number_of_beds=number_of_beds,
            min_price=min_price,
            max_price=max_price,
            min_discount_price=min_discount_price,
            max_discount_price=max_discount_price,
            created_after=created_after,
            sort_by=sort_by,
            order=order,
            limit=limit,
        )
        return [serialize_listing(listing, owner) for listing, owner in rows]

    async def featured_listings(self, limit: int | None = None) -> list[dict[str, object]]:
        rows = await fetch_featured_listings(
            self._session, limit=limit or get_settings().featured_listings_limit
        )
        return [serialize_listing(listing, owner) for listing, owner in rows]

    async def get_listing(
        self, id_or_slug: str, viewer: Identity | None = None
    ) -> dict[str, object]:
        """Fetch listing detail with owner, related listings and saved state."""

        by_slug = not is_record_id(id_or_slug)
        row = await fetch_listing_with_owner(self._session, id_or_slug, by_slug=by_slug)
        if row is None:
            raise NotFoundError(
                "Listing not found",
                searchedBy="slug" if by_slug else "id",
                searchValue=id_or_slug,
            )

        listing, owner = row
        related = await fetch_related_listings(
            self._session, listing, limit=get_settings().related_listings_limit
        )

        is_saved = False
        if viewer is not None:
            is_saved = (
                await fetch_saved_listing(self._session, viewer.id, listing.id)
            ) is not None

        return {
            **serialize_listing(listing),
            "user": _owner_details(owner),
            "related_listings": [serialize_listing(rel, rel_owner) for rel, rel_owner in related],
            "is_saved": is_saved,
        }

    async def create_listing(
        self, identity: Identity, data: dict[str, Any]
    ) -> dict[str, object]:
        """Create a listing owned by the caller.

        Submissions by USER accounts wait for moderation and alert staff.
        """

        user = await fetch_user_by_id(self._session, identity.id)
        if user is None:
            raise NotFoundError("User not found")

        if user.role == ROLE_USER and not user.profile_completed:
            missing = missing_profile_fields(user)
            if missing:
                raise BadRequestError(
                    "Please complete your profile before creating listings",
                    missingFields=missing,
                    redirectTo="/profile",
                )

        values = _normalize_labels(dict(data))
        values["features"] = list(values.get("features") or [])
        values["images"] = list(values.get("images") or [])
        values["user_id"] = user.id
        values["status"] = LISTING_PENDING if user.role == ROLE_USER else LISTING_APPROVED

        listing = await insert_with_unique_slug(
            self._session,
            lambda slug: Listing(slug=slug, **values),
            listing_slug_base(values["name"], values["property_type"], values.get("lga")),
            Listing.slug,
            max_attempts=get_settings().slug_insert_max_attempts,
        )
        await self._session.commit()
        await self._session.refresh(listing)
        logger.info("Listing %s created by %s as %s", listing.id, user.id, listing.status)
        result = serialize_listing(listing)

        if user.role == ROLE_USER:
            await self._notifications.notify_staff(
                title="New Listing Submitted",
                message=f'A new property listing "{listing.name}" has been submitted for review',
                type=NOTIFY_NEW_LISTING,
                entity_type="listing",
                entity_id=listing.id,
            )

        return result

    async def _owned_listing(self, identity: Identity, listing_id: str) -> Listing:
        listing = await fetch_listing_by_id(self._session, listing_id)
        if listing is None:
            raise NotFoundError("Listing not found")

        if identity.role == ROLE_USER and listing.user_id != identity.id:
            raise PermissionDeniedError("Not Authorized!")

        return listing

    async def update_listing(
        self, identity: Identity, listing_id: str, changes: dict[str, Any]
    ) -> dict[str, object]:
        """Apply changes from the owner or staff; a new name yields a new slug."""

        listing = await self._owned_listing(identity, listing_id)
        values = _normalize_labels(dict(changes))

        new_name = values.get("name")
        if new_name and new_name != listing.name:
            values["slug"] = await generate_unique_slug(
                self._session,
                listing_slug_base(
                    new_name,
                    values.get("property_type") or listing.property_type,
                    values.get("lga") or listing.lga,
                ),
                Listing.slug,
                exclude_id=listing.id,
            )

        for field, value in values.items():
            setattr(listing, field, value)

        await self._session.commit()
        await self._session.refresh(listing)
        return serialize_listing(listing)

    async def delete_listing(
        self, identity: Identity, listing_id: str
    ) -> dict[str, object]:
        """Delete a listing with its saved entries and request responses."""

        listing = await self._owned_listing(identity, listing_id)
        summary = {"id": listing.id, "name": listing.name, "slug": listing.slug}
        owner_id = listing.user_id
        was_featured = listing.is_featured

        removed = await delete_listing_cascade(self._session, listing_id)
        logger.info(
            "Listing %s deleted by %s (%d saved, %d responses)",
            listing_id,
            identity.id,
            removed.saved_listings,
            removed.request_responses,
        )

        if identity.role != ROLE_USER and owner_id != identity.id:
            await self._notifications.notify(
                [owner_id],
                title="Listing Deleted",
                message=f'Your property listing "{summary["name"]}" has been deleted by an administrator',
                type=NOTIFY_GENERAL,
                entity_type="listing",
                entity_id=listing_id,
            )

        return {
            "message": "Listing and all related data deleted successfully",
            "deletedListing": summary,
            "relatedRecordsDeleted": {
                "savedListings": removed.saved_listings,
                "requestResponses": removed.request_responses,
            },
            "wasFeatured": was_featured,
        }

    async def admin_listings(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        status: str | None = None,
        purpose: str | None = None,
        property_type: str | None = None,
        user_id: str | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> dict[str, object]:
        rows, total = await fetch_listings_admin(
            self._session,
            status=status.upper() if status else None,
            purpose=normalize_purpose(purpose) if purpose else None,
            property_type=normalize_property_type(property_type)
            if property_type
            else None,
            user_id=user_id,
            search=search,
            sort_by=sort_by,
            order=order,
            skip=page_offset(page, limit),
            limit=limit,
        )
        return {
            "listings": [serialize_listing(listing, owner) for listing, owner in rows],
            "pagination": build_pagination(page, limit, total),
        }

    async def listing_stats(self) -> dict[str, int]:
        counts = await count_listings_by_status(self._session)
        return {
            "totalListings": sum(counts.values()),
            "approvedListings": counts.get(LISTING_APPROVED, 0),
            "pendingListings": counts.get(LISTING_PENDING, 0),
            "rejectedListings": counts.get(LISTING_REJECTED, 0),
        }

    async def approve_listing(
        self, identity: Identity, listing_id: str
    ) -> dict[str, object]:
        listing = await fetch_listing_by_id(self._session, listing_id)
        if listing is None:
            raise NotFoundError("Listing not found")

        listing.status = LISTING_APPROVED
        listing.approved_by = identity.id
        listing.approved_at = datetime.now(UTC)
        await self._session.commit()
        await self._session.refresh(listing)
        result = serialize_listing(listing)

        await self._notifications.notify(
            [listing.user_id],
            title="Listing Approved",
            message=f'Your property listing "{listing.name}" has been approved and is now live',
            type=NOTIFY_LISTING_APPROVED,
            entity_type="listing",
            entity_id=listing.id,
        )
        return result

    async def reject_listing(
        self, listing_id: str, reason: str | None = None
    ) -> dict[str, object]:
        listing = await fetch_listing_by_id(self._session, listing_id)
        if listing is None:
            raise NotFoundError("Listing not found")

        listing.status = LISTING_REJECTED
        listing.rejected_at = datetime.now(UTC)
        listing.rejection_reason = reason
        await self._session.commit()
        await self._session.refresh(listing)
        result = serialize_listing(listing)

        await self._notifications.notify(
            [listing.user_id],
            title="Listing Rejected",
            message=f'Your property listing "{listing.name}" has been rejected. Reason: {reason or "not given"}',
            type=NOTIFY_LISTING_REJECTED,
            entity_type="listing",
            entity_id=listing.id,
        )
        return result

    async def set_featured(
        self, listing_id: str, is_featured: bool
    ) -> dict[str, object]:
        listing = await fetch_listing_by_id(self._session, listing_id)
        if listing is None:
            raise NotFoundError("Listing not found")

        listing.is_featured = is_featured
        await self._session.commit()
        await self._session.refresh(listing)
        return {
            "message": f"Listing {'featured' if is_featured else 'unfeatured'} successfully",
            "listing": serialize_listing(listing),
        }
