"""Tests for slug generation and collision handling."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, cast
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import propertyxchange.services.slug as slug_module
from propertyxchange.errors import SlugConflictError
from propertyxchange.models import Listing, User
from propertyxchange.services.slug import (
    agent_base_name,
    generate_slug,
    generate_unique_slug,
    insert_with_unique_slug,
    is_slug_violation,
    slug_taken,
)
from tests.factories import mock_session


def _integrity_error(detail: str) -> IntegrityError:
    return IntegrityError("INSERT INTO listings ...", {}, Exception(detail))


class _SavepointSession:
    """Session double whose savepoints fail with queued errors."""

    def __init__(self, failures: list[Exception]) -> None:
        self.failures = failures
        self.added: list[object] = []

    def add(self, record: object) -> None:
        self.added.append(record)

    @asynccontextmanager
    async def begin_nested(self) -> AsyncIterator[None]:
        yield
        if self.failures:
            raise self.failures.pop(0)


def test_generate_slug_strips_punctuation_and_collapses_separators() -> None:
    assert generate_slug("Prime Homes & Co.") == "prime-homes-co"
    assert generate_slug("  __Lekki   Phase--1__ ") == "lekki-phase-1"


def test_generate_slug_drops_non_ascii_letters() -> None:
    assert generate_slug("Café Lagos") == "caf-lagos"


def test_generate_slug_falls_back_to_timestamp(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(slug_module.time, "time", lambda: 1760000000.123)

    assert generate_slug("!!!") == "agent-1760000000123"
    assert generate_slug(None) == "agent-1760000000123"


def test_agent_base_name_prefers_company_then_full_name_then_username() -> None:
    assert (
        agent_base_name(company_name="Prime Homes", first_name="Ada", username="ada")
        == "Prime Homes"
    )
    assert agent_base_name(company_name="  ", first_name="Ada", last_name="Obi") == "Ada Obi"
    assert agent_base_name(last_name="Obi", username="ada") == "Obi"
    assert agent_base_name(username="ada") == "ada"
    assert agent_base_name(fallback="agent-developer") == "agent-developer"


@pytest.mark.anyio
async def test_slug_taken_excludes_the_record_being_renamed() -> None:
    session = mock_session()
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    session.execute.return_value = result

    taken = await slug_taken(
        cast(AsyncSession, session), User.slug, "ada-obi", exclude_id="user-1"
    )

    assert taken is False
    stmt = session.execute.call_args.args[0]
    criteria = [str(item) for item in stmt._where_criteria]
    assert any("users.slug = " in item for item in criteria)
    assert any("users.id != " in item for item in criteria)


@pytest.mark.anyio
async def test_generate_unique_slug_appends_first_free_counter(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    held = {"prime-homes", "prime-homes-1"}

    async def fake_taken(
        _session: object, _column: object, slug: str, *, exclude_id: str | None = None
    ) -> bool:
        _ = exclude_id
        return slug in held

    monkeypatch.setattr(slug_module, "slug_taken", fake_taken)

    slug = await generate_unique_slug(
        cast(AsyncSession, object()), "Prime Homes", User.slug
    )

    assert slug == "prime-homes-2"


@pytest.mark.anyio
async def test_insert_with_unique_slug_retries_when_slug_is_claimed_concurrently(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    candidates = iter(["duplex-rent-lekki", "duplex-rent-lekki-1"])

    async def fake_unique(*_args: Any, **_kwargs: Any) -> str:
        return next(candidates)

    monkeypatch.setattr(slug_module, "generate_unique_slug", fake_unique)
    session = _SavepointSession(
        [_integrity_error('duplicate key value violates unique constraint "listings_slug_key"')]
    )

    listing = await insert_with_unique_slug(
        cast(AsyncSession, session),
        lambda slug: Listing(slug=slug, name="Duplex"),
        "Duplex RENT Lekki",
        Listing.slug,
    )

    assert listing.slug == "duplex-rent-lekki-1"
    assert len(session.added) == 2


@pytest.mark.anyio
async def test_insert_with_unique_slug_reraises_other_integrity_errors(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_unique(*_args: Any, **_kwargs: Any) -> str:
        return "duplex"

    monkeypatch.setattr(slug_module, "generate_unique_slug", fake_unique)
    session = _SavepointSession(
        [_integrity_error('insert or update violates foreign key constraint "listings_user_id_fkey"')]
    )

    with pytest.raises(IntegrityError):
        await insert_with_unique_slug(
            cast(AsyncSession, session),
            lambda slug: Listing(slug=slug),
            "Duplex",
            Listing.slug,
        )


@pytest.mark.anyio
async def test_insert_with_unique_slug_gives_up_after_max_attempts(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_unique(*_args: Any, **_kwargs: Any) -> str:
        return "duplex"

    monkeypatch.setattr(slug_module, "generate_unique_slug", fake_unique)
    session = _SavepointSession(
        [_integrity_error("listings_slug_key") for _ in range(3)]
    )

    with pytest.raises(SlugConflictError) as exc_info:
        await insert_with_unique_slug(
            cast(AsyncSession, session),
            lambda slug: Listing(slug=slug),
            "Duplex",
            Listing.slug,
            max_attempts=3,
        )

    assert exc_info.value.status_code == 409
    assert exc_info.value.to_payload()["baseName"] == "Duplex"


@pytest.mark.anyio
async def test_insert_with_unique_slug_reraises_unique_violation_on_another_column(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_unique(*_args: Any, **_kwargs: Any) -> str:
        return "slug-lover"

    monkeypatch.setattr(slug_module, "generate_unique_slug", fake_unique)
    session = _SavepointSession(
        [
            _integrity_error(
                'duplicate key value violates unique constraint "users_username_key"\n'
                "DETAIL:  Key (username)=(slug-lover) already exists."
            )
        ]
    )

    with pytest.raises(IntegrityError):
        await insert_with_unique_slug(
            cast(AsyncSession, session),
            lambda slug: User(slug=slug, username="slug-lover"),
            "slug-lover",
            User.slug,
        )

    assert len(session.added) == 1


def test_is_slug_violation_matches_constraint_name_or_key_detail() -> None:
    assert is_slug_violation(_integrity_error('constraint "users_slug_key"'), User.slug)
    assert is_slug_violation(
        _integrity_error("DETAIL:  Key (slug)=(ada-obi) already exists."), User.slug
    )
    assert not is_slug_violation(_integrity_error('constraint "users_slug_key"'), Listing.slug)
    assert not is_slug_violation(
        _integrity_error('constraint "users_email_key" Key (email)=(slug@example.com)'),
        User.slug,
    )


@pytest.mark.anyio
async def test_generate_unique_slug_keeps_free_base_without_suffix(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_taken(
        _session: object, _column: object, slug: str, *, exclude_id: str | None = None
    ) -> bool:
        _ = (slug, exclude_id)
        return False

    monkeypatch.setattr(slug_module, "slug_taken", fake_taken)

    slug = await generate_unique_slug(cast(AsyncSession, object()), "John Doe", User.slug)

    assert slug == "john-doe"


@pytest.mark.anyio
async def test_generate_unique_slug_second_holder_gets_first_counter(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_taken(
        _session: object, _column: object, slug: str, *, exclude_id: str | None = None
    ) -> bool:
        _ = exclude_id
        return slug == "john-doe"

    monkeypatch.setattr(slug_module, "slug_taken", fake_taken)

    slug = await generate_unique_slug(cast(AsyncSession, object()), "John Doe", User.slug)

    assert slug == "john-doe-1"


@pytest.mark.anyio
async def test_generate_unique_slug_lets_owner_keep_its_slug(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    owners = {"john-doe": "owner-id"}

    async def fake_taken(
        _session: object, _column: object, slug: str, *, exclude_id: str | None = None
    ) -> bool:
        owner = owners.get(slug)
        return owner is not None and owner != exclude_id

    monkeypatch.setattr(slug_module, "slug_taken", fake_taken)
    session = cast(AsyncSession, object())

    assert (
        await generate_unique_slug(session, "John Doe", User.slug, exclude_id="owner-id")
        == "john-doe"
    )
    assert (
        await generate_unique_slug(session, "John Doe", User.slug, exclude_id="other-id")
        == "john-doe-1"
    )
