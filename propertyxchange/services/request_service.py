"""Business logic for property requests and agent responses."""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.auth import Identity
from propertyxchange.config import get_settings
from propertyxchange.constants import (
    NOTIFY_GENERAL,
    NOTIFY_NEW_LISTING,
    REQUEST_CLOSED,
    REQUEST_FINAL_STATUSES,
    REQUEST_MATCHED,
    REQUEST_OPEN,
    ROLE_USER,
    normalize_account_type,
    normalize_property_type,
    normalize_purpose,
    normalize_sub_type,
)
from propertyxchange.db.repositories import (
    count_request_responses,
    count_requests_by_status,
    expire_property_requests,
    fetch_listing_by_id,
    fetch_property_request,
    fetch_property_requests,
    fetch_request_alert_recipients,
    fetch_request_response,
    fetch_request_responses,
    increment_request_views,
)
from propertyxchange.errors import BadRequestError, NotFoundError, PermissionDeniedError
from propertyxchange.models import PropertyRequest, RequestResponse
from propertyxchange.services.notification_service import NotificationService
from propertyxchange.services.pagination import build_pagination, page_offset
from propertyxchange.services.serializers import (
    is_record_id,
    serialize_property_request,
    serialize_request_response,
)
from propertyxchange.services.slug import insert_with_unique_slug

logger = logging.getLogger(__name__)

STATUS_ALL = "all"
RESPONSE_UNIQUE_CONSTRAINT = "uq_request_responses_request_agent"


def request_slug_base(name: str, purpose: str, lga: str) -> str:
    return " ".join(part for part in (name, purpose, lga) if part)


def _normalize_labels(values: dict[str, Any]) -> dict[str, Any]:
    if values.get("purpose"):
        values["purpose"] = normalize_purpose(values["purpose"])
    if values.get("property_type"):
        values["property_type"] = normalize_property_type(values["property_type"])
    if "sub_type" in values:
        values["sub_type"] = normalize_sub_type(values["sub_type"])
    if values.get("account_type"):
        values["account_type"] = normalize_account_type(values["account_type"])
    return values


class RequestService:
    """Service layer for property request routes and jobs."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._notifications = NotificationService(session)

    async def create_request(
        self, data: dict[str, Any], identity: Identity | None = None
    ) -> dict[str, object]:
        """Store a request; anonymous callers are allowed."""

        values = _normalize_labels(dict(data))
        values["user_id"] = identity.id if identity else None

        request = await insert_with_unique_slug(
            self._session,
            lambda slug: PropertyRequest(slug=slug, **values),
            request_slug_base(values["name"], values["purpose"], values["lga"]),
            PropertyRequest.slug,
            max_attempts=get_settings().slug_insert_max_attempts,
        )
        await self._session.commit()
        await self._session.refresh(request)
        logger.info("Property request %s created in %s", request.id, request.state)

        return {
            "success": True,
            "message": "Property request created successfully",
            "data": serialize_property_request(request),
        }

    async def notify_agents(self, request_id: str) -> int:
        """Alert accounts in the request's state about a new request."""

        request = await fetch_property_request(self._session, request_id)
        if request is None:
            logger.warning("Property request %s vanished before agent alerts", request_id)
            return 0

        recipients = await fetch_request_alert_recipients(self._session, request.state)
        recipients = [uid for uid in recipients if uid != request.user_id]
        return await self._notifications.notify(
            recipients,
            title="New Property Request",
            message=(
                f"A new property request for {request.property_type} in "
                f"{request.lga}, {request.state} with budget ₦{request.budget:,.0f}"
            ),
            type=NOTIFY_NEW_LISTING,
            entity_type="propertyRequest",
            entity_id=request.id,
        )

    async def list_requests(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        status: str = REQUEST_OPEN,
        purpose: str | None = None,
        property_type: str | None = None,
        state: str | None = None,
        lga: str | None = None,
        min_budget: Decimal | None = None,
        max_budget: Decimal | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        order: str = "desc",
        now: datetime | None = None,
    ) -> dict[str, object]:
        """Public request board; expired requests never show up."""

        rows, total = await fetch_property_requests(
            self._session,
            status=None if status.lower() == STATUS_ALL else status.upper(),
            purpose=normalize_purpose(purpose) if purpose else None,
            property_type=normalize_property_type(property_type)
            if property_type
            else None,
            state=state,
            lga=lga,
            min_budget=min_budget,
            max_budget=max_budget,
            search=search,
            public_only=True,
            active_at=now or datetime.now(UTC),
            sort_by=sort_by,
            order=order,
            skip=page_offset(page, limit),
            limit=limit,
        )
        return {
            "success": True,
            "data": [serialize_property_request(req, count) for req, count in rows],
            "pagination": build_pagination(page, limit, total),
        }

    async def user_requests(
        self,
        identity: Identity,
        *,
        page: int = 1,
        limit: int = 10,
        status: str | None = None,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> dict[str, object]:
        rows, total = await fetch_property_requests(
            self._session,
            status=status.upper() if status else None,
            user_id=identity.id,
            public_only=False,
            sort_by=sort_by,
            order=order,
            skip=page_offset(page, limit),
            limit=limit,
        )
        return {
            "success": True,
            "data": [serialize_property_request(req, count) for req, count in rows],
            "pagination": build_pagination(page, limit, total),
        }

    async def get_request(self, id_or_slug: str) -> dict[str, object]:
        """Fetch request detail with responses and count the view."""

        request = await fetch_property_request(
            self._session, id_or_slug, by_slug=not is_record_id(id_or_slug)
        )
        if request is None:
            raise NotFoundError("Property request not found", success=False)

        responses = await fetch_request_responses(self._session, request.id)
        await increment_request_views(self._session, request.id)

        data = serialize_property_request(request, len(responses))
        data["view_count"] = (request.view_count or 0) + 1
        data["responses"] = [
            serialize_request_response(response, agent, listing)
            for response, agent, listing in responses
        ]
        return {"success": True, "data": data}

    async def _owned_request(
        self, identity: Identity, request_id: str, action: str
    ) -> PropertyRequest:
        request = await fetch_property_request(self._session, request_id)
        if request is None:
            raise NotFoundError("Property request not found", success=False)

        if identity.role == ROLE_USER and request.user_id != identity.id:
            raise PermissionDeniedError(
                f"Not authorized to {action} this request", success=False
            )

        return request

    async def update_request(
        self, identity: Identity, request_id: str, changes: dict[str, Any]
    ) -> dict[str, object]:
        request = await self._owned_request(identity, request_id, "update")

        for field, value in _normalize_labels(dict(changes)).items():
            setattr(request, field, value)

        await self._session.commit()
        await self._session.refresh(request)
        return {
            "success": True,
            "message": "Property request updated successfully",
            "data": serialize_property_request(request),
        }

    async def delete_request(
        self, identity: Identity, request_id: str
    ) -> dict[str, object]:
        request = await self._owned_request(identity, request_id, "delete")

        await self._session.delete(request)
        await self._session.commit()
        return {"success": True, "message": "Property request deleted successfully"}

    async def respond(
        self, identity: Identity, request_id: str, data: dict[str, Any]
    ) -> dict[str, object]:
        """Record an agent's response; each agent may respond once."""

        if await fetch_request_response(self._session, request_id, identity.id):
            raise BadRequestError(
                "You have already responded to this request", success=False
            )

        request = await fetch_property_request(self._session, request_id)
        if request is None:
            raise NotFoundError("Property request not found", success=False)

        if request.status in REQUEST_FINAL_STATUSES:
            raise BadRequestError(
                "This request is no longer accepting responses", success=False
            )

        listing_id = data.get("listing_id")
        if listing_id and await fetch_listing_by_id(self._session, listing_id) is None:
            raise NotFoundError("Listing not found", success=False)

        response = RequestResponse(request_id=request_id, agent_id=identity.id, **data)
        self._session.add(response)
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            if RESPONSE_UNIQUE_CONSTRAINT not in str(exc.orig):
                raise
            raise BadRequestError(
                "You have already responded to this request", success=False
            ) from exc
        await self._session.refresh(response)
        result = serialize_request_response(response)

        if request.user_id:
            await self._notifications.notify(
                [request.user_id],
                title="New Response to Your Request",
                message=(
                    "An agent has responded to your property request for "
                    f"{request.property_type} in {request.lga}"
                ),
                type=NOTIFY_GENERAL,
                entity_type="requestResponse",
                entity_id=response.id,
            )

        return {
            "success": True,
            "message": "Response submitted successfully",
            "data": result,
        }

    async def request_stats(self) -> dict[str, object]:
        counts = await count_requests_by_status(self._session)
        return {
            "success": True,
            "data": {
                "totalRequests": sum(counts.values()),
                "openRequests": counts.get(REQUEST_OPEN, 0),
                "matchedRequests": counts.get(REQUEST_MATCHED, 0),
                "closedRequests": counts.get(REQUEST_CLOSED, 0),
                "totalResponses": await count_request_responses(self._session),
            },
        }

    async def expire_requests(self, now: datetime | None = None) -> int:
        expired = await expire_property_requests(self._session, now=now)
        if expired:
            logger.info("Expired %d property requests", expired)
        return expired
