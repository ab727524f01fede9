"""Redis locks that keep scheduled jobs from overlapping."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from time import monotonic

from redis.asyncio import Redis

from propertyxchange.config import get_settings

_MEMORY_LOCKS: dict[str, float] = {}


def build_job_lock_key(task_name: str, fingerprint: str = "default") -> str:
    return f"lock:job:{task_name}:{fingerprint}"


def _acquire_memory_lock(key: str, ttl_seconds: int) -> bool:
    now = monotonic()
    for lock_key, expiry in list(_MEMORY_LOCKS.items()):
        if expiry <= now:
            del _MEMORY_LOCKS[lock_key]

    if key in _MEMORY_LOCKS:
        return False

    _MEMORY_LOCKS[key] = now + ttl_seconds
    return True


async def acquire_job_lock(key: str, ttl_seconds: int) -> bool:
    """Take the lock with SET NX EX; False when another run holds it."""

    settings = get_settings()
    if settings.taskiq_testing:
        return _acquire_memory_lock(key, ttl_seconds)

    client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    try:
        return bool(await client.set(key, "1", nx=True, ex=ttl_seconds))
    finally:
        await client.aclose()


async def release_job_lock(key: str) -> None:
    settings = get_settings()
    if settings.taskiq_testing:
        _MEMORY_LOCKS.pop(key, None)
        return

    client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    try:
        await client.delete(key)
    finally:
        await client.aclose()


@asynccontextmanager
async def job_lock(task_name: str, ttl_seconds: int | None = None) -> AsyncIterator[bool]:
    """Yield whether the lock was taken; a taken lock is released on exit."""

    key = build_job_lock_key(task_name)
    acquired = await acquire_job_lock(
        key, ttl_seconds or get_settings().job_dedup_ttl_seconds
    )
    try:
        yield acquired
    finally:
        if acquired:
            await release_job_lock(key)
