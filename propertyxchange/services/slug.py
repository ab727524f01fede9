"""URL slug generation and collision handling."""

import logging
import re
import time
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from propertyxchange.errors import SlugConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DISALLOWED = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATORS = re.compile(r"[\s_-]+", re.ASCII)


def generate_slug(text: str | None) -> str:
    """Turn free text into a lower-case, hyphen separated slug.

    Text that normalizes to nothing falls back to ``agent-<epoch millis>``.
    """

    if text:
        slug = _DISALLOWED.sub("", text.lower().strip())
        slug = _SEPARATORS.sub("-", slug).strip("-")
        if slug:
            return slug

    return f"agent-{int(time.time() * 1000)}"


def agent_base_name(
    *,
    company_name: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    username: str | None = None,
    fallback: str = "agent",
) -> str:
    """Pick the display name a user's slug is derived from."""

    if company_name and company_name.strip():
        return company_name

    full_name = " ".join(part for part in (first_name, last_name) if part).strip()
    if full_name:
        return full_name

    if username and username.strip():
        return username

    return fallback


async def slug_taken(
    session: AsyncSession,
    column: InstrumentedAttribute[Any],
    slug: str,
    *,
    exclude_id: str | None = None,
) -> bool:
    model = column.class_
    stmt = select(model.id).where(column == slug).limit(1)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)

    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def generate_unique_slug(
    session: AsyncSession,
    base_name: str | None,
    column: InstrumentedAttribute[Any],
    *,
    exclude_id: str | None = None,
) -> str:
    """Return the first of ``base``, ``base-1``, ``base-2``... not held by another row."""

    base = generate_slug(base_name)
    slug = base
    counter = 1

    while await slug_taken(session, column, slug, exclude_id=exclude_id):
        slug = f"{base}-{counter}"
        counter += 1

    return slug


def is_slug_violation(exc: IntegrityError, column: InstrumentedAttribute[Any]) -> bool:
    """True when ``exc`` is the unique violation on ``column`` itself.

    Postgres names the unnamed unique constraint ``<table>_<column>_key`` and
    echoes the offending key as ``Key (<column>)=``; any other violation whose
    text merely mentions the column name does not count.
    """

    detail = str(exc.orig)
    constraint = f"{column.class_.__tablename__}_{column.key}_key"
    return constraint in detail or f"Key ({column.key})=" in detail


async def insert_with_unique_slug(
    session: AsyncSession,
    build: Callable[[str], T],
    base_name: str | None,
    column: InstrumentedAttribute[Any],
    *,
    max_attempts: int = 5,
) -> T:
    """Add a record built around a free slug, retrying when a concurrent insert wins.

    The caller owns the outer transaction and commits it.
    """

    for attempt in range(1, max_attempts + 1):
        slug = await generate_unique_slug(session, base_name, column)
        record = build(slug)

        try:
            async with session.begin_nested():
                session.add(record)
        except IntegrityError as exc:
            if not is_slug_violation(exc, column):
                raise
            logger.warning(
                "Slug %s was claimed concurrently (attempt %d/%d)",
                slug,
                attempt,
                max_attempts,
            )
            continue

        return record

    raise SlugConflictError(
        "Could not allocate a unique slug", baseName=base_name or ""
    )
