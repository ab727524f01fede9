"""Public agent directory routes."""

import json
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.api.guards import anti_crawl_guard
from propertyxchange.cache import build_agent_cache_key, cache_get, cache_set
from propertyxchange.config import get_settings
from propertyxchange.constants import normalize_account_type
from propertyxchange.db.session import get_db_session
from propertyxchange.services.agent_service import AgentService

router = APIRouter(
    prefix="/api/agent",
    tags=["agents"],
    dependencies=[Depends(anti_crawl_guard)],
)


async def _cached_agent_page(
    session: AsyncSession,
    *,
    page: int,
    limit: int,
    verified: bool | None,
    account_type: str | None,
    state: str | None,
    lga: str | None,
    search: str | None,
    sort_by: str,
    order: str,
) -> dict[str, object]:
    cache_key = build_agent_cache_key(
        page=page,
        limit=limit,
        verified=verified,
        account_type=account_type,
        state=state,
        lga=lga,
        search=search,
        sort_by=sort_by,
        order=order,
    )
    cached = await cache_get(cache_key)
    if cached:
        return json.loads(cached)

    result = await AgentService(session).list_agents(
        page=page,
        limit=limit,
        verified=verified,
        account_type=account_type,
        state=state,
        lga=lga,
        search=search,
        sort_by=sort_by,
        order=order,
    )
    await cache_set(cache_key, result, get_settings().agent_cache_ttl_seconds)
    return result


@router.get("")
async def list_agents(
    session: AsyncSession = Depends(get_db_session),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=100),
    verified: bool | None = None,
    account_type: str | None = None,
    state: str | None = None,
    lga: str | None = None,
    search: str | None = None,
    sort_by: str = "created_at",
    order: Literal["asc", "desc"] = "desc",
) -> dict[str, object]:
    """List agents; plain USER accounts never appear."""

    return await _cached_agent_page(
        session,
        page=page,
        limit=limit,
        verified=verified,
        account_type=normalize_account_type(account_type) if account_type else None,
        state=state,
        lga=lga,
        search=search,
        sort_by=sort_by,
        order=order,
    )


@router.get("/type/{account_type}")
async def list_agents_by_type(
    account_type: str,
    session: AsyncSession = Depends(get_db_session),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=100),
) -> dict[str, object]:
    return await _cached_agent_page(
        session,
        page=page,
        limit=limit,
        verified=None,
        account_type=normalize_account_type(account_type),
        state=None,
        lga=None,
        search=None,
        sort_by="created_at",
        order="desc",
    )


@router.get("/{slug_or_id}")
async def get_agent(
    slug_or_id: str,
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    return await AgentService(session).get_agent(slug_or_id)
