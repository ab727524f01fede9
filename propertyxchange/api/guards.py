"""Request guards that keep scrapers away from the agent directory."""

import logging
from collections import defaultdict, deque
from time import monotonic

from fastapi import Request
from redis.asyncio import Redis

from propertyxchange.config import get_settings
from propertyxchange.errors import PermissionDeniedError, RateLimitedError

logger = logging.getLogger(__name__)

BLOCKED_AGENT_MARKERS = (
    "bot",
    "crawler",
    "spider",
    "scraper",
    "scrape",
    "curl",
    "wget",
    "python",
    "requests",
    "scrapy",
)

WINDOW_SECONDS = 60

_MEMORY_HITS: dict[str, deque[float]] = defaultdict(deque)


def is_suspicious_agent(user_agent: str | None) -> bool:
    lowered = (user_agent or "").lower()
    return any(marker in lowered for marker in BLOCKED_AGENT_MARKERS)


def _record_memory_hit(client: str) -> int:
    now = monotonic()
    hits = _MEMORY_HITS[client]
    while hits and now - hits[0] >= WINDOW_SECONDS:
        hits.popleft()
    hits.append(now)
    return len(hits)


async def record_hit(client: str) -> int:
    """Count a request from ``client`` in the current window, including this one."""

    settings = get_settings()
    if settings.taskiq_testing:
        return _record_memory_hit(client)

    key = f"ratelimit:agent:{client}"
    redis = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    try:
        hits = await redis.incr(key)
        if hits == 1:
            await redis.expire(key, WINDOW_SECONDS)
        return int(hits)
    finally:
        await redis.aclose()


async def anti_crawl_guard(request: Request) -> None:
    """Reject scraper user agents and clients over the per-minute limit."""

    if is_suspicious_agent(request.headers.get("user-agent")):
        raise PermissionDeniedError("Access denied. This content is protected.")

    client = request.client.host if request.client else "unknown"
    hits = await record_hit(client)
    if hits > get_settings().crawler_rate_limit_per_minute:
        logger.warning("Rate limit hit on agent routes by %s (%d/min)", client, hits)
        raise RateLimitedError("Too many requests. Please slow down.")
