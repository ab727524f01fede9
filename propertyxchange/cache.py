"""Redis cache helpers for the agent directory and featured listings."""

import hashlib
import json
from typing import Any, cast

from redis.asyncio import Redis

from propertyxchange.config import get_settings

settings = get_settings()

AGENT_CACHE_PREFIX = "agents:"
FEATURED_LISTINGS_CACHE_KEY = "listings:featured"


def build_agent_cache_key(
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
) -> str:
    filters = {
        "page": page,
        "limit": limit,
        "verified": verified,
        "account_type": account_type or "",
        "state": state or "",
        "lga": lga or "",
        "search": (search or "").strip().lower(),
        "sort_by": sort_by,
        "order": order,
    }
    data = json.dumps(filters, sort_keys=True)
    hash_val = hashlib.md5(data.encode()).hexdigest()[:16]
    return f"{AGENT_CACHE_PREFIX}{hash_val}"


async def cache_get(key: str) -> str | None:
    client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    try:
        value = await client.get(key)
        return cast(str, value) if value else None
    finally:
        await client.aclose()


async def cache_set(key: str, value: Any, ttl_seconds: int) -> None:
    json_value = json.dumps(value, default=str)
    client = Redis.from_url(settings.redis_url, encoding="utf-8")
    try:
        await client.set(key, json_value, ex=ttl_seconds)
    finally:
        await client.aclose()


async def cache_delete(key: str) -> None:
    client = Redis.from_url(settings.redis_url, encoding="utf-8")
    try:
        await client.delete(key)
    finally:
        await client.aclose()


async def cache_delete_prefix(prefix: str) -> int:
    """Delete every key starting with ``prefix``."""

    client = Redis.from_url(settings.redis_url, encoding="utf-8")
    deleted = 0
    try:
        async for key in client.scan_iter(match=f"{prefix}*"):
            deleted += await client.delete(key)
    finally:
        await client.aclose()
    return deleted
