"""Listing search, detail, CRUD and moderation routes."""

import json
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.api.schemas import (
    FeaturedToggle,
    ListingCreate,
    ListingRejection,
    ListingUpdate,
)
from propertyxchange.auth import (
    Identity,
    get_current_identity,
    get_optional_identity,
    require_staff_or_admin,
)
from propertyxchange.cache import (
    FEATURED_LISTINGS_CACHE_KEY,
    cache_delete,
    cache_get,
    cache_set,
)
from propertyxchange.config import get_settings
from propertyxchange.db.session import get_db_session
from propertyxchange.services.listing_service import ListingService

router = APIRouter(prefix="/api/listing", tags=["listings"])


def _split_features(features: str | None) -> list[str] | None:
    if not features:
        return None
    items = [item.strip() for item in features.split(",") if item.strip()]
    return items or None


@router.get("")
async def search_listings(
    session: AsyncSession = Depends(get_db_session),
    include_all: bool = False,
    purpose: str | None = None,
    street: str | None = None,
    type: str | None = None,
    sub_type: str | None = None,
    state: str | None = None,
    lga: str | None = None,
    furnished: bool = False,
    parking: bool = False,
    newly_built: bool = False,
    serviced: bool = False,
    features: str | None = None,
    toilets: int | None = Query(default=None, ge=0),
    number_of_bathrooms: int | None = Query(default=None, ge=0),
    number_of_beds: int | None = Query(default=None, ge=0),
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    min_discount_price: Decimal | None = None,
    max_discount_price: Decimal | None = None,
    timestamp: int | None = Query(default=None, ge=0),
    sort_by: Literal["price", "date"] | None = None,
    order: Literal["asc", "desc"] | None = None,
) -> list[dict[str, object]]:
    """Search listings. ``timestamp`` keeps only those created in the last N ms."""

    created_after = (
        datetime.now(UTC) - timedelta(milliseconds=timestamp)
        if timestamp is not None
        else None
    )
    return await ListingService(session).search_listings(
        include_all=include_all,
        purpose=purpose,
        street=street,
        property_type=type,
        sub_type=sub_type,
        state=state,
        lga=lga,
        furnished=furnished,
        parking=parking,
        newly_built=newly_built,
        serviced=serviced,
        features=_split_features(features),
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
    )


@router.get("/featured")
async def featured_listings(
    session: AsyncSession = Depends(get_db_session),
) -> list[dict[str, object]]:
    cached = await cache_get(FEATURED_LISTINGS_CACHE_KEY)
    if cached:
        return json.loads(cached)

    result = await ListingService(session).featured_listings()
    await cache_set(
        FEATURED_LISTINGS_CACHE_KEY, result, get_settings().featured_cache_ttl_seconds
    )
    return result


@router.get("/admin/all")
async def admin_listings(
    session: AsyncSession = Depends(get_db_session),
    _: Identity = Depends(require_staff_or_admin),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: str | None = None,
    purpose: str | None = None,
    type: str | None = None,
    user_id: str | None = None,
    search: str | None = None,
    sort_by: str = "created_at",
    order: Literal["asc", "desc"] = "desc",
) -> dict[str, object]:
    return await ListingService(session).admin_listings(
        page=page,
        limit=limit,
        status=status,
        purpose=purpose,
        property_type=type,
        user_id=user_id,
        search=search,
        sort_by=sort_by,
        order=order,
    )


@router.get("/admin/stats")
async def listing_stats(
    session: AsyncSession = Depends(get_db_session),
    _: Identity = Depends(require_staff_or_admin),
) -> dict[str, int]:
    return await ListingService(session).listing_stats()


@router.put("/admin/{listing_id}/approve")
async def approve_listing(
    listing_id: str,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_staff_or_admin),
) -> dict[str, object]:
    result = await ListingService(session).approve_listing(identity, listing_id)
    await cache_delete(FEATURED_LISTINGS_CACHE_KEY)
    return result


@router.put("/admin/{listing_id}/reject")
async def reject_listing(
    listing_id: str,
    body: ListingRejection,
    session: AsyncSession = Depends(get_db_session),
    _: Identity = Depends(require_staff_or_admin),
) -> dict[str, object]:
    result = await ListingService(session).reject_listing(listing_id, body.reason)
    await cache_delete(FEATURED_LISTINGS_CACHE_KEY)
    return result


@router.put("/admin/{listing_id}/featured")
async def toggle_featured(
    listing_id: str,
    body: FeaturedToggle,
    session: AsyncSession = Depends(get_db_session),
    _: Identity = Depends(require_staff_or_admin),
) -> dict[str, object]:
    result = await ListingService(session).set_featured(listing_id, body.is_featured)
    await cache_delete(FEATURED_LISTINGS_CACHE_KEY)
    return result


@router.get("/{id_or_slug}")
async def get_listing(
    id_or_slug: str,
    session: AsyncSession = Depends(get_db_session),
    viewer: Identity | None = Depends(get_optional_identity),
) -> dict[str, object]:
    return await ListingService(session).get_listing(id_or_slug, viewer)


@router.post("")
async def create_listing(
    body: ListingCreate,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    return await ListingService(session).create_listing(identity, body.model_dump())


@router.put("/{listing_id}")
async def update_listing(
    listing_id: str,
    body: ListingUpdate,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    result = await ListingService(session).update_listing(
        identity, listing_id, body.model_dump(exclude_unset=True)
    )
    if result.get("is_featured"):
        await cache_delete(FEATURED_LISTINGS_CACHE_KEY)
    return result


@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    result = await ListingService(session).delete_listing(identity, listing_id)
    if result.pop("wasFeatured", False):
        await cache_delete(FEATURED_LISTINGS_CACHE_KEY)
    return result
