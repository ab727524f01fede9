"""Tests for the agent directory service."""

from typing import Any, cast

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

import propertyxchange.services.agent_service as agent_module
from propertyxchange.errors import NotFoundError
from propertyxchange.services.agent_service import AgentService
from tests.factories import AGENT_ID, make_agent, make_listing, mock_session


@pytest.mark.anyio
async def test_list_agents_pages_and_counts(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, Any] = {}

    async def fake_fetch(_session: object, **kwargs: Any) -> tuple[list[Any], int]:
        seen.update(kwargs)
        return [(make_agent(), 4)], 25

    monkeypatch.setattr(agent_module, "fetch_agents", fake_fetch)

    result = await AgentService(cast(AsyncSession, mock_session())).list_agents(
        page=2, limit=12, search="  prime  "
    )

    assert seen["skip"] == 12
    assert seen["search"] == "prime"
    agents = cast(list[dict[str, Any]], result["agents"])
    assert agents[0]["listing_count"] == 4
    assert agents[0]["company_name"] == "Prime Homes"
    assert "email" not in agents[0]
    assert result["pagination"] == {
        "current": 2,
        "pages": 3,
        "total": 25,
        "hasNext": True,
        "hasPrev": True,
    }


@pytest.mark.anyio
async def test_get_agent_by_slug_includes_contact_and_approved_listings(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    lookups: list[tuple[str, bool]] = []

    async def fake_lookup(_session: object, key: str, *, by_slug: bool) -> object:
        lookups.append((key, by_slug))
        return make_agent()

    async def fake_listings(_session: object, user_id: str) -> list[object]:
        assert user_id == AGENT_ID
        return [make_listing(user_id=AGENT_ID)]

    monkeypatch.setattr(agent_module, "fetch_user_by_slug_or_id", fake_lookup)
    monkeypatch.setattr(agent_module, "fetch_approved_user_listings", fake_listings)

    profile = await AgentService(cast(AsyncSession, mock_session())).get_agent("prime-homes")

    assert lookups == [("prime-homes", True)]
    assert profile["email"] == "homes@example.com"
    assert profile["listing_count"] == 1
    assert len(cast(list[Any], profile["listings"])) == 1


@pytest.mark.anyio
async def test_get_agent_falls_back_to_slug_when_id_lookup_misses(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    lookups: list[tuple[str, bool]] = []

    async def fake_lookup(_session: object, key: str, *, by_slug: bool) -> None:
        lookups.append((key, by_slug))
        return None

    monkeypatch.setattr(agent_module, "fetch_user_by_slug_or_id", fake_lookup)

    with pytest.raises(NotFoundError, match="Agent not found!"):
        await AgentService(cast(AsyncSession, mock_session())).get_agent(AGENT_ID)

    assert lookups == [(AGENT_ID, False), (AGENT_ID, True)]
