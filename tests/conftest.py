"""Test fixtures for Taskiq, in-memory guards and the async runtime."""

import os
import sys
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import cast

os.environ["TASKIQ_TESTING"] = "1"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from taskiq import AsyncBroker

from propertyxchange.api.guards import _MEMORY_HITS
from propertyxchange.db.session import get_db_session
from propertyxchange.main import app
from propertyxchange.taskiq_app.broker import broker
from propertyxchange.taskiq_app.dedup import _MEMORY_LOCKS
from tests.factories import BROWSER_AGENT


@pytest.fixture(autouse=True)
def reset_memory_stores() -> Iterator[None]:
    """Start every test with no held job locks and no rate limit history."""

    _MEMORY_LOCKS.clear()
    _MEMORY_HITS.clear()
    yield
    _MEMORY_LOCKS.clear()
    _MEMORY_HITS.clear()


@pytest.fixture
async def taskiq_broker() -> AsyncIterator[AsyncBroker]:
    """Initialize the InMemoryBroker for tests that kick tasks."""

    await broker.startup()
    yield broker
    await broker.shutdown()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


async def _override_db_session() -> AsyncIterator[AsyncSession]:
    yield cast(AsyncSession, object())


@pytest.fixture
def override_db_dependency() -> Iterator[None]:
    app.dependency_overrides[get_db_session] = _override_db_session
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def api_client(override_db_dependency: None) -> AsyncIterator[AsyncClient]:
    _ = override_db_dependency
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(
        transport=transport,
        base_url="http://testserver",
        headers={"User-Agent": BROWSER_AGENT},
    ) as client:
        yield client
