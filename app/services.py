from __future__ import annotations

from dataclasses import dataclass

import redis.asyncio as redis

from app.config import Settings
from app.fsm import GameLifecycle
from app.game_store import GameRegistry
from app.ledger import PointLedger
from app.lock import GameLocks
from app.row_store import RowStore
from app.scoring import ScoreCalculator
from app.stats import StatsAggregator


@dataclass(frozen=True, slots=True)
class ScoreKeeper:
    store: RowStore
    locks: GameLocks
    registry: GameRegistry
    lifecycle: GameLifecycle
    ledger: PointLedger
    scores: ScoreCalculator
    stats: StatsAggregator

    async def start(self) -> None:
        await self.store.init_schema()

    async def close(self) -> None:
        await self.store.close()


def build_scorekeeper(*, r: redis.Redis, settings: Settings | None = None) -> ScoreKeeper:
    settings = settings or Settings()

    store = RowStore(r=r, prefix=settings.key_prefix)
    locks = GameLocks(
        r=r,
        prefix=settings.key_prefix,
        ttl_ms=settings.lock_ttl_ms,
        acquire_timeout_ms=settings.lock_timeout_ms,
    )
    registry = GameRegistry(store=store, locks=locks)
    ledger = PointLedger(store=store, registry=registry, locks=locks)

    return ScoreKeeper(
        store=store,
        locks=locks,
        registry=registry,
        lifecycle=GameLifecycle(store=store, registry=registry, locks=locks),
        ledger=ledger,
        scores=ScoreCalculator(registry=registry, ledger=ledger),
        stats=StatsAggregator(ledger=ledger),
    )
