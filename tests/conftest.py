from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import fakeredis
import httpx
import pytest
import pytest_asyncio

from app.config import Settings
from app.services import ScoreKeeper, build_scorekeeper


T0 = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def at(seconds: int) -> datetime:
    """A fixed, readable clock for tests: T0 + `seconds`."""

    return T0 + timedelta(seconds=seconds)


@pytest_asyncio.fixture()
async def redis_client() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    # A private server per test keeps tests hermetic.
    r = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield r
    await r.aclose()


@pytest_asyncio.fixture()
async def keeper(redis_client: fakeredis.FakeAsyncRedis) -> ScoreKeeper:
    k = build_scorekeeper(r=redis_client, settings=Settings(lock_timeout_ms=2_000))
    await k.start()
    return k


@pytest_asyncio.fixture()
async def players(keeper: ScoreKeeper) -> list[int]:
    """Six players with ids 0..5."""

    out = []
    for name in ["Ana", "Ben", "Cy", "Dee", "Eli", "Fay"]:
        out.append((await keeper.registry.create_player(name)).id)
    return out


@pytest_asyncio.fixture()
async def client(keeper: ScoreKeeper) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client against the app with the container swapped for the test one.

    ASGITransport does not run the lifespan, so no real Redis is touched.
    """

    from app.api.deps import get_scorekeeper
    from app.main import app

    app.dependency_overrides[get_scorekeeper] = lambda: keeper
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def clock():
    return at
