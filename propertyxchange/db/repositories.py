"""Repository helpers for marketplace queries and persistence."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, cast

from sqlalchemy import Select, and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from propertyxchange.constants import (
    LISTING_APPROVED,
    REQUEST_ALERT_ACCOUNT_TYPES,
    REQUEST_ALERT_ROLES,
    REQUEST_EXPIRED,
    REQUEST_OPEN,
    ROLE_USER,
)
from propertyxchange.models.conversation import Conversation, Message
from propertyxchange.models.listing import Listing
from propertyxchange.models.notification import Notification
from propertyxchange.models.property_request import PropertyRequest, RequestResponse
from propertyxchange.models.saved_listing import SavedListing
from propertyxchange.models.user import User


@dataclass(slots=True)
class NotificationInsert:
    """Payload used to insert notification records."""

    user_id: str
    title: str
    message: str
    type: str = "GENERAL"
    entity_type: str | None = None
    entity_id: str | None = None


@dataclass(slots=True)
class ListingCascadeResult:
    """Counts of rows removed together with a listing."""

    saved_listings: int
    request_responses: int


def _order(column: Any, order: str) -> Any:
    return column.asc() if order.lower() == "asc" else column.desc()


def _sort_column(
    columns: dict[str, InstrumentedAttribute[Any]], sort_by: str | None
) -> InstrumentedAttribute[Any]:
    return columns.get(sort_by or "", columns["created_at"])


def _contains(column: Any, term: str) -> Any:
    return column.ilike(f"%{term}%")


async def _count(session: AsyncSession, stmt: Select[Any]) -> int:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    return int((await session.execute(count_stmt)).scalar_one() or 0)


# Users and agents

_AGENT_SORT_COLUMNS: dict[str, InstrumentedAttribute[Any]] = {
    "created_at": User.created_at,
    "first_name": User.first_name,
    "last_name": User.last_name,
    "company_name": User.company_name,
    "username": User.username,
}


def approved_listing_count():
    """Correlated count of a user's approved listings."""

    return (
        select(func.count(Listing.id))
        .where(Listing.user_id == User.id)
        .where(Listing.status == LISTING_APPROVED)
        .correlate(User)
        .scalar_subquery()
        .label("listing_count")
    )


def build_agent_query(
    *,
    verified: bool | None = None,
    account_type: str | None = None,
    state: str | None = None,
    lga: str | None = None,
    search: str | None = None,
) -> Select[Any]:
    """Build the agent directory query; plain USER accounts are never agents."""

    stmt = select(User, approved_listing_count()).where(User.role != ROLE_USER)

    if verified is not None:
        stmt = stmt.where(User.verified == verified)

    if account_type:
        stmt = stmt.where(User.account_type == account_type)

    if state:
        stmt = stmt.where(User.state == state)

    if lga:
        stmt = stmt.where(User.lga == lga)

    if search:
        stmt = stmt.where(
            or_(
                _contains(User.first_name, search),
                _contains(User.last_name, search),
                _contains(User.username, search),
                _contains(User.company_name, search),
            )
        )

    return stmt


async def fetch_agents(
    session: AsyncSession,
    *,
    verified: bool | None = None,
    account_type: str | None = None,
    state: str | None = None,
    lga: str | None = None,
    search: str | None = None,
    sort_by: str = "created_at",
    order: str = "desc",
    skip: int = 0,
    limit: int = 12,
) -> tuple[list[tuple[User, int]], int]:
    """Fetch a page of agents with their approved listing counts."""

    stmt = build_agent_query(
        verified=verified,
        account_type=account_type,
        state=state,
        lga=lga,
        search=search,
    )
    total = await _count(session, stmt)

    page_stmt = (
        stmt.order_by(_order(_sort_column(_AGENT_SORT_COLUMNS, sort_by), order))
        .offset(skip)
        .limit(limit)
    )
    rows = (await session.execute(page_stmt)).all()
    return [(row[0], int(row[1] or 0)) for row in rows], total


async def fetch_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    return await session.get(User, user_id)


async def fetch_user_by_slug_or_id(
    session: AsyncSession, key: str, *, by_slug: bool
) -> User | None:
    column = User.slug if by_slug else User.id
    stmt = select(User).where(column == key).limit(1)
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_users(session: AsyncSession, *, limit: int = 500) -> list[User]:
    stmt = select(User).order_by(User.created_at.desc()).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def fetch_users_by_ids(
    session: AsyncSession, user_ids: Sequence[str]
) -> dict[str, User]:
    """Fetch users keyed by id."""

    if not user_ids:
        return {}

    stmt = select(User).where(User.id.in_(list(set(user_ids))))
    result = await session.execute(stmt)
    return {user.id: user for user in result.scalars().all()}


async def fetch_users_without_slug(session: AsyncSession) -> list[User]:
    stmt = (
        select(User)
        .where(or_(User.slug.is_(None), User.slug == ""))
        .order_by(User.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def fetch_user_ids_by_roles(
    session: AsyncSession, roles: Sequence[str]
) -> list[str]:
    stmt = select(User.id).where(User.role.in_(list(roles)))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def fetch_request_alert_recipients(
    session: AsyncSession, state: str
) -> list[str]:
    """Fetch ids of accounts that should hear about requests in a state."""

    stmt = (
        select(User.id)
        .where(User.state == state)
        .where(User.role.in_(REQUEST_ALERT_ROLES))
        .where(User.account_type.in_(REQUEST_ALERT_ACCOUNT_TYPES))
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_user(session: AsyncSession, user_id: str) -> bool:
    stmt = delete(User).where(User.id == user_id).returning(User.id)
    deleted = (await session.execute(stmt)).scalar_one_or_none()
    await session.commit()
    return deleted is not None


async def set_user_slug(session: AsyncSession, user_id: str, slug: str) -> None:
    await session.execute(update(User).where(User.id == user_id).values(slug=slug))
    await session.commit()


_USER_SORT_COLUMNS: dict[str, InstrumentedAttribute[Any]] = {
    "created_at": User.created_at,
    "username": User.username,
    "email": User.email,
    "first_name": User.first_name,
    "last_name": User.last_name,
}


async def fetch_users_admin(
    session: AsyncSession,
    *,
    search: str | None = None,
    role: str | None = None,
    status: str | None = None,
    verified: bool | None = None,
    profile_completed: bool | None = None,
    sort_by: str = "created_at",
    order: str = "desc",
    skip: int = 0,
    limit: int = 10,
) -> tuple[list[User], int]:
    """Fetch a moderation page of accounts of any role and status."""

    stmt = select(User)

    if role:
        stmt = stmt.where(User.role == role)

    if status:
        stmt = stmt.where(User.status == status)

    if verified is not None:
        stmt = stmt.where(User.verified == verified)

    if profile_completed is not None:
        stmt = stmt.where(User.profile_completed == profile_completed)

    if search:
        stmt = stmt.where(
            or_(
                _contains(User.username, search),
                _contains(User.email, search),
                _contains(User.first_name, search),
                _contains(User.last_name, search),
                _contains(User.company_name, search),
            )
        )

    total = await _count(session, stmt)
    page_stmt = (
        stmt.order_by(_order(_sort_column(_USER_SORT_COLUMNS, sort_by), order))
        .offset(skip)
        .limit(limit)
    )
    result = await session.execute(page_stmt)
    return list(result.scalars().all()), total


async def count_users_by_role(session: AsyncSession) -> dict[str, int]:
    stmt = select(User.role, func.count(User.id)).group_by(User.role)
    rows = (await session.execute(stmt)).all()
    return {cast(str, row[0]): int(row[1]) for row in rows}


async def count_users_by_status(session: AsyncSession) -> dict[str, int]:
    stmt = select(User.status, func.count(User.id)).group_by(User.status)
    rows = (await session.execute(stmt)).all()
    return {cast(str, row[0]): int(row[1]) for row in rows}


# Listings

_LISTING_SORT_COLUMNS: dict[str, InstrumentedAttribute[Any]] = {
    "created_at": Listing.created_at,
    "date": Listing.created_at,
    "price": Listing.price,
    "name": Listing.name,
    "updated_at": Listing.updated_at,
}


async def fetch_listings(
    session: AsyncSession,
    *,
    status: str | None = LISTING_APPROVED,
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
    features: Sequence[str] | None = None,
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
) -> list[tuple[Listing, User]]:
    """Search listings; flag filters only narrow when set to True."""

    stmt = select(Listing, User).join(User, Listing.user_id == User.id)

    if status:
        stmt = stmt.where(Listing.status == status)

    if purpose:
        stmt = stmt.where(Listing.purpose == purpose)

    if street:
        stmt = stmt.where(Listing.street == street)

    if property_type:
        stmt = stmt.where(Listing.property_type == property_type)

    if sub_type:
        stmt = stmt.where(Listing.sub_type == sub_type)

    if state:
        stmt = stmt.where(Listing.state == state)

    if lga:
        stmt = stmt.where(Listing.lga == lga)

    if furnished:
        stmt = stmt.where(Listing.furnished.is_(True))

    if parking:
        stmt = stmt.where(Listing.parking.is_(True))

    if newly_built:
        stmt = stmt.where(Listing.newly_built.is_(True))

    if serviced:
        stmt = stmt.where(Listing.serviced.is_(True))

    if features:
        stmt = stmt.where(Listing.features.contains(list(features)))

    if toilets:
        stmt = stmt.where(Listing.toilets == toilets)

    if number_of_bathrooms:
        stmt = stmt.where(Listing.number_of_bathrooms == number_of_bathrooms)

    if number_of_beds:
        stmt = stmt.where(Listing.number_of_beds == number_of_beds)

    if min_price is not None:
        stmt = stmt.where(Listing.price >= min_price)

    if max_price is not None:
        stmt = stmt.where(Listing.price <= max_price)

    if min_discount_price is not None:
        stmt = stmt.where(Listing.discount_price >= min_discount_price)

    if max_discount_price is not None:
        stmt = stmt.where(Listing.discount_price <= max_discount_price)

    if created_after is not None:
        stmt = stmt.where(Listing.created_at >= created_after)

    if sort_by == "price":
        stmt = stmt.order_by(_order(Listing.price, order or "asc"))
    elif sort_by == "date":
        stmt = stmt.order_by(_order(Listing.created_at, order or "desc"))
    else:
        stmt = stmt.order_by(Listing.created_at.desc())

    stmt = stmt.limit(limit)

    rows = (await session.execute(stmt)).all()
    return [(row[0], row[1]) for row in rows]


async def fetch_listing_with_owner(
    session: AsyncSession, key: str, *, by_slug: bool
) -> tuple[Listing, User] | None:
    column = Listing.slug if by_slug else Listing.id
    stmt = (
        select(Listing, User)
        .join(User, Listing.user_id == User.id)
        .where(column == key)
        .limit(1)
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        return None
    return row[0], row[1]


async def fetch_listing_by_id(
    session: AsyncSession, listing_id: str
) -> Listing | None:
    return await session.get(Listing, listing_id)


async def fetch_related_listings(
    session: AsyncSession, listing: Listing, *, limit: int = 6
) -> list[tuple[Listing, User]]:
    """Approved listings by the same owner, purpose, or type."""

    stmt = (
        select(Listing, User)
        .join(User, Listing.user_id == User.id)
        .where(Listing.id != listing.id)
        .where(Listing.status == LISTING_APPROVED)
        .where(
            or_(
                Listing.user_id == listing.user_id,
                Listing.purpose == listing.purpose,
                Listing.property_type == listing.property_type,
            )
        )
        .order_by(Listing.created_at.desc())
        .limit(limit)
    )
    rows = (await session.execute(stmt)).all()
    return [(row[0], row[1]) for row in rows]


async def fetch_featured_listings(
    session: AsyncSession, *, limit: int = 10
) -> list[tuple[Listing, User]]:
    stmt = (
        select(Listing, User)
        .join(User, Listing.user_id == User.id)
        .where(Listing.status == LISTING_APPROVED)
        .where(Listing.is_featured.is_(True))
        .order_by(Listing.created_at.desc())
        .limit(limit)
    )
    rows = (await session.execute(stmt)).all()
    return [(row[0], row[1]) for row in rows]


async def fetch_listings_admin(
    session: AsyncSession,
    *,
    status: str | None = None,
    purpose: str | None = None,
    property_type: str | None = None,
    user_id: str | None = None,
    search: str | None = None,
    sort_by: str = "created_at",
    order: str = "desc",
    skip: int = 0,
    limit: int = 10,
) -> tuple[list[tuple[Listing, User]], int]:
    """Fetch a moderation page of listings in any status."""

    stmt = select(Listing, User).join(User, Listing.user_id == User.id)

    if status:
        stmt = stmt.where(Listing.status == status)

    if purpose:
        stmt = stmt.where(Listing.purpose == purpose)

    if property_type:
        stmt = stmt.where(Listing.property_type == property_type)

    if user_id:
        stmt = stmt.where(Listing.user_id == user_id)

    if search:
        stmt = stmt.where(
            or_(
                _contains(Listing.name, search),
                _contains(Listing.street, search),
                _contains(Listing.description, search),
            )
        )

    total = await _count(session, stmt)
    page_stmt = (
        stmt.order_by(_order(_sort_column(_LISTING_SORT_COLUMNS, sort_by), order))
        .offset(skip)
        .limit(limit)
    )
    rows = (await session.execute(page_stmt)).all()
    return [(row[0], row[1]) for row in rows], total


async def count_listings_by_status(session: AsyncSession) -> dict[str, int]:
    stmt = select(Listing.status, func.count(Listing.id)).group_by(Listing.status)
    rows = (await session.execute(stmt)).all()
    return {cast(str, row[0]): int(row[1]) for row in rows}


async def fetch_user_listings(session: AsyncSession, user_id: str) -> list[Listing]:
    stmt = (
        select(Listing)
        .where(Listing.user_id == user_id)
        .order_by(Listing.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def fetch_approved_user_listings(
    session: AsyncSession, user_id: str
) -> list[Listing]:
    stmt = (
        select(Listing)
        .where(Listing.user_id == user_id)
        .where(Listing.status == LISTING_APPROVED)
        .order_by(Listing.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_listing_cascade(
    session: AsyncSession, listing_id: str
) -> ListingCascadeResult:
    """Delete a listing and the rows pointing at it in one transaction."""

    saved = await session.execute(
        delete(SavedListing)
        .where(SavedListing.listing_id == listing_id)
        .returning(SavedListing.id)
    )
    responses = await session.execute(
        delete(RequestResponse)
        .where(RequestResponse.listing_id == listing_id)
        .returning(RequestResponse.id)
    )
    result = ListingCascadeResult(
        saved_listings=len(saved.scalars().all()),
        request_responses=len(responses.scalars().all()),
    )
    await session.execute(delete(Listing).where(Listing.id == listing_id))
    await session.commit()
    return result


# Saved listings


async def fetch_saved_listing(
    session: AsyncSession, user_id: str, listing_id: str
) -> SavedListing | None:
    stmt = (
        select(SavedListing)
        .where(SavedListing.user_id == user_id)
        .where(SavedListing.listing_id == listing_id)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_saved_listings(session: AsyncSession, user_id: str) -> list[Listing]:
    stmt = (
        select(Listing)
        .join(SavedListing, SavedListing.listing_id == Listing.id)
        .where(SavedListing.user_id == user_id)
        .order_by(SavedListing.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def toggle_saved_listing(
    session: AsyncSession, user_id: str, listing_id: str
) -> bool:
    """Save or unsave a listing. Returns True when it is saved afterwards."""

    existing = await fetch_saved_listing(session, user_id, listing_id)
    if existing is not None:
        await session.execute(delete(SavedListing).where(SavedListing.id == existing.id))
        await session.commit()
        return False

    session.add(SavedListing(user_id=user_id, listing_id=listing_id))
    await session.commit()
    return True


# Property requests

_REQUEST_SORT_COLUMNS: dict[str, InstrumentedAttribute[Any]] = {
    "created_at": PropertyRequest.created_at,
    "budget": PropertyRequest.budget,
    "expires_at": PropertyRequest.expires_at,
    "view_count": PropertyRequest.view_count,
}


def response_count():
    """Correlated count of responses to a property request."""

    return (
        select(func.count(RequestResponse.id))
        .where(RequestResponse.request_id == PropertyRequest.id)
        .correlate(PropertyRequest)
        .scalar_subquery()
        .label("response_count")
    )


async def fetch_property_requests(
    session: AsyncSession,
    *,
    status: str | None = REQUEST_OPEN,
    purpose: str | None = None,
    property_type: str | None = None,
    state: str | None = None,
    lga: str | None = None,
    min_budget: Decimal | None = None,
    max_budget: Decimal | None = None,
    search: str | None = None,
    user_id: str | None = None,
    public_only: bool = True,
    active_at: datetime | None = None,
    sort_by: str = "created_at",
    order: str = "desc",
    skip: int = 0,
    limit: int = 10,
) -> tuple[list[tuple[PropertyRequest, int]], int]:
    """Fetch a page of property requests with response counts.

    ``active_at`` drops requests whose expiry is at or before that instant.
    """

    stmt = select(PropertyRequest, response_count())

    if status:
        stmt = stmt.where(PropertyRequest.status == status)

    if public_only:
        stmt = stmt.where(PropertyRequest.is_public.is_(True))

    if user_id:
        stmt = stmt.where(PropertyRequest.user_id == user_id)

    if purpose:
        stmt = stmt.where(PropertyRequest.purpose == purpose)

    if property_type:
        stmt = stmt.where(PropertyRequest.property_type == property_type)

    if state:
        stmt = stmt.where(PropertyRequest.state == state)

    if lga:
        stmt = stmt.where(PropertyRequest.lga == lga)

    if min_budget is not None:
        stmt = stmt.where(PropertyRequest.budget >= min_budget)

    if max_budget is not None:
        stmt = stmt.where(PropertyRequest.budget <= max_budget)

    if search:
        stmt = stmt.where(
            or_(
                _contains(PropertyRequest.name, search),
                _contains(PropertyRequest.comments, search),
                _contains(PropertyRequest.lga, search),
                _contains(PropertyRequest.state, search),
            )
        )

    if active_at is not None:
        stmt = stmt.where(
            or_(
                PropertyRequest.expires_at.is_(None),
                PropertyRequest.expires_at > active_at,
            )
        )

    total = await _count(session, stmt)
    page_stmt = (
        stmt.order_by(_order(_sort_column(_REQUEST_SORT_COLUMNS, sort_by), order))
        .offset(skip)
        .limit(limit)
    )
    rows = (await session.execute(page_stmt)).all()
    return [(row[0], int(row[1] or 0)) for row in rows], total


async def fetch_property_request(
    session: AsyncSession, key: str, *, by_slug: bool = False
) -> PropertyRequest | None:
    column = PropertyRequest.slug if by_slug else PropertyRequest.id
    stmt = select(PropertyRequest).where(column == key).limit(1)
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_request_responses(
    session: AsyncSession, request_id: str
) -> list[tuple[RequestResponse, User, Listing | None]]:
    stmt = (
        select(RequestResponse, User, Listing)
        .join(User, RequestResponse.agent_id == User.id)
        .outerjoin(Listing, RequestResponse.listing_id == Listing.id)
        .where(RequestResponse.request_id == request_id)
        .order_by(RequestResponse.created_at.desc())
    )
    rows = (await session.execute(stmt)).all()
    return [(row[0], row[1], row[2]) for row in rows]


async def fetch_request_response(
    session: AsyncSession, request_id: str, agent_id: str
) -> RequestResponse | None:
    stmt = (
        select(RequestResponse)
        .where(RequestResponse.request_id == request_id)
        .where(RequestResponse.agent_id == agent_id)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def increment_request_views(session: AsyncSession, request_id: str) -> None:
    stmt = (
        update(PropertyRequest)
        .where(PropertyRequest.id == request_id)
        .values(view_count=PropertyRequest.view_count + 1)
    )
    await session.execute(stmt)
    await session.commit()


async def expire_property_requests(
    session: AsyncSession, *, now: datetime | None = None
) -> int:
    """Mark open requests past their expiry as expired."""

    threshold = now or datetime.now(UTC)
    stmt = (
        update(PropertyRequest)
        .where(PropertyRequest.status == REQUEST_OPEN)
        .where(PropertyRequest.expires_at.is_not(None))
        .where(PropertyRequest.expires_at <= threshold)
        .values(status=REQUEST_EXPIRED)
        .returning(PropertyRequest.id)
    )
    ids = (await session.execute(stmt)).scalars().all()
    await session.commit()
    return len(ids)


async def count_requests_by_status(session: AsyncSession) -> dict[str, int]:
    stmt = select(PropertyRequest.status, func.count(PropertyRequest.id)).group_by(
        PropertyRequest.status
    )
    rows = (await session.execute(stmt)).all()
    return {cast(str, row[0]): int(row[1]) for row in rows}


async def count_request_responses(session: AsyncSession) -> int:
    stmt = select(func.count(RequestResponse.id))
    return int((await session.execute(stmt)).scalar_one() or 0)


# Notifications


async def insert_notifications(
    session: AsyncSession, rows: list[NotificationInsert]
) -> int:
    """Insert notification records in a savepoint.

    A failed insert only unwinds the savepoint, so rows the caller committed
    earlier in the session stay loaded.
    """

    if not rows:
        return 0

    async with session.begin_nested():
        session.add_all([Notification(**asdict(row)) for row in rows])
    await session.commit()
    return len(rows)


async def fetch_notifications(
    session: AsyncSession,
    *,
    user_id: str,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Notification], int, int]:
    """Fetch a page of notifications, the filtered total, and the unread count."""

    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))

    total = await _count(session, stmt)
    unread_stmt = (
        select(func.count(Notification.id))
        .where(Notification.user_id == user_id)
        .where(Notification.is_read.is_(False))
    )
    unread = int((await session.execute(unread_stmt)).scalar_one() or 0)

    page_stmt = stmt.order_by(Notification.created_at.desc()).offset(skip).limit(limit)
    result = await session.execute(page_stmt)
    return list(result.scalars().all()), total, unread


async def mark_notifications_read(
    session: AsyncSession, user_id: str, *, notification_id: str | None = None
) -> int:
    """Mark one or all of a user's notifications read."""

    stmt = (
        update(Notification)
        .where(Notification.user_id == user_id)
        .values(is_read=True)
        .returning(Notification.id)
    )
    if notification_id is not None:
        stmt = stmt.where(Notification.id == notification_id)
    else:
        stmt = stmt.where(Notification.is_read.is_(False))

    ids = (await session.execute(stmt)).scalars().all()
    await session.commit()
    return len(ids)


# Conversations and messages


async def fetch_conversation_for_participant(
    session: AsyncSession, conversation_id: str, user_id: str
) -> Conversation | None:
    """Fetch a conversation only if the user is one of its participants."""

    stmt = (
        select(Conversation)
        .where(Conversation.id == conversation_id)
        .where(Conversation.participants.contains([user_id]))
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_conversation_between(
    session: AsyncSession, user_id: str, other_id: str
) -> Conversation | None:
    stmt = (
        select(Conversation)
        .where(Conversation.participants.contains([user_id, other_id]))
        .order_by(Conversation.created_at.asc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def insert_conversation(
    session: AsyncSession, participants: list[str]
) -> Conversation:
    conversation = Conversation(participants=participants)
    session.add(conversation)
    await session.commit()
    await session.refresh(conversation)
    return conversation


async def insert_message(
    session: AsyncSession,
    *,
    conversation_id: str,
    sender_id: str,
    content: str,
    message_type: str = "TEXT",
    now: datetime | None = None,
) -> Message:
    """Insert a message and refresh the conversation preview atomically."""

    sent_at = now or datetime.now(UTC)
    message = Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        message_type=message_type,
        created_at=sent_at,
    )
    session.add(message)
    await session.execute(
        update(Conversation)
        .where(Conversation.id == conversation_id)
        .values(last_message=content, last_message_at=sent_at)
    )
    await session.commit()
    await session.refresh(message)
    return message


async def mark_conversation_read(
    session: AsyncSession,
    conversation_id: str,
    reader_id: str,
    *,
    now: datetime | None = None,
) -> int:
    """Mark messages sent by other participants as read."""

    stmt = (
        update(Message)
        .where(Message.conversation_id == conversation_id)
        .where(Message.sender_id != reader_id)
        .where(Message.is_read.is_(False))
        .values(is_read=True, read_at=now or datetime.now(UTC))
        .returning(Message.id)
    )
    ids = (await session.execute(stmt)).scalars().all()
    await session.commit()
    return len(ids)


async def fetch_user_conversations(
    session: AsyncSession, user_id: str, *, limit: int = 50
) -> list[Conversation]:
    stmt = (
        select(Conversation)
        .where(Conversation.participants.contains([user_id]))
        .order_by(
            Conversation.last_message_at.desc().nulls_last(),
            Conversation.created_at.desc(),
        )
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_unread_messages(
    session: AsyncSession, user_id: str, conversation_ids: Sequence[str]
) -> dict[str, int]:
    """Count unread messages from others per conversation."""

    if not conversation_ids:
        return {}

    stmt = (
        select(Message.conversation_id, func.count(Message.id))
        .where(
            and_(
                Message.conversation_id.in_(list(conversation_ids)),
                Message.sender_id != user_id,
                Message.is_read.is_(False),
            )
        )
        .group_by(Message.conversation_id)
    )
    rows = (await session.execute(stmt)).all()
    return {cast(str, row[0]): int(row[1]) for row in rows}


async def fetch_messages(
    session: AsyncSession,
    conversation_id: str,
    *,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Message], int]:
    """Fetch a page of messages in send order."""

    stmt = select(Message).where(Message.conversation_id == conversation_id)
    total = await _count(session, stmt)
    page_stmt = (
        stmt.order_by(Message.created_at.asc(), Message.id.asc())
        .offset(skip)
        .limit(limit)
    )
    result = await session.execute(page_stmt)
    return list(result.scalars().all()), total
