"""Property request board and agent response routes."""

import logging
from decimal import Decimal
from typing import Any, Literal, cast

from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.api.schemas import (
    PropertyRequestCreate,
    PropertyRequestUpdate,
    RequestResponseCreate,
)
from propertyxchange.auth import (
    Identity,
    get_current_identity,
    get_optional_identity,
    require_staff_or_admin,
)
from propertyxchange.db.session import get_db_session
from propertyxchange.services.request_service import RequestService
from propertyxchange.taskiq_app.tasks import enqueue_notify_agents

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/request", tags=["requests"])


@router.post("", status_code=http_status.HTTP_201_CREATED)
async def create_request(
    body: PropertyRequestCreate,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity | None = Depends(get_optional_identity),
) -> dict[str, object]:
    """Create a request; agents in the same state are alerted in the background."""

    result = await RequestService(session).create_request(body.model_dump(), identity)
    request_id = str(cast(dict[str, Any], result["data"])["id"])
    enqueued = await enqueue_notify_agents(request_id)
    logger.info("Agent alerts for request %s queued as %s", request_id, enqueued["task_id"])
    return result


@router.get("")
async def list_requests(
    session: AsyncSession = Depends(get_db_session),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: str = "OPEN",
    purpose: str | None = None,
    type: str | None = None,
    state: str | None = None,
    lga: str | None = None,
    min_budget: Decimal | None = None,
    max_budget: Decimal | None = None,
    search: str | None = None,
    sort_by: str = "created_at",
    order: Literal["asc", "desc"] = "desc",
) -> dict[str, object]:
    return await RequestService(session).list_requests(
        page=page,
        limit=limit,
        status=status,
        purpose=purpose,
        property_type=type,
        state=state,
        lga=lga,
        min_budget=min_budget,
        max_budget=max_budget,
        search=search,
        sort_by=sort_by,
        order=order,
    )


@router.get("/user/my-requests")
async def my_requests(
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: str | None = None,
    sort_by: str = "created_at",
    order: Literal["asc", "desc"] = "desc",
) -> dict[str, object]:
    return await RequestService(session).user_requests(
        identity, page=page, limit=limit, status=status, sort_by=sort_by, order=order
    )


@router.get("/admin/stats")
async def request_stats(
    session: AsyncSession = Depends(get_db_session),
    _: Identity = Depends(require_staff_or_admin),
) -> dict[str, object]:
    return await RequestService(session).request_stats()


@router.get("/{id_or_slug}")
async def get_request(
    id_or_slug: str,
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    return await RequestService(session).get_request(id_or_slug)


@router.put("/{request_id}")
async def update_request(
    request_id: str,
    body: PropertyRequestUpdate,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    return await RequestService(session).update_request(
        identity, request_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{request_id}")
async def delete_request(
    request_id: str,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    return await RequestService(session).delete_request(identity, request_id)


@router.post("/{request_id}/respond", status_code=http_status.HTTP_201_CREATED)
async def respond_to_request(
    request_id: str,
    body: RequestResponseCreate,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> dict[str, object]:
    return await RequestService(session).respond(identity, request_id, body.model_dump())
