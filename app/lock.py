from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import redis.asyncio as redis
from redis.exceptions import WatchError

from app.errors import GameBusyError


logger = logging.getLogger(__name__)


def game_key(game_id: int) -> str:
    return f"game:{game_id}"


def collection_key(name: str) -> str:
    return f"collection:{name}"


class GameLocks:
    """Per-key exclusive ownership for mutations.

    Two layers:
    - an in-process asyncio.Lock per key, so writers in this process queue up
      in arrival order instead of polling Redis;
    - a Redis lease (SET NX PX with a unique token) so writers in other
      processes sharing the store are excluded too.

    Both are released on every exit path. The lease TTL bounds how long a
    crashed holder can block a key.
    """

    def __init__(
        self,
        *,
        r: redis.Redis,
        prefix: str = "scorekeeper",
        ttl_ms: int = 5_000,
        acquire_timeout_ms: int = 10_000,
        retry_delay_s: float = 0.01,
    ) -> None:
        self._r = r
        self._prefix = prefix
        self._ttl_ms = ttl_ms
        self._acquire_timeout_ms = acquire_timeout_ms
        self._retry_delay_s = retry_delay_s
        self._local: dict[str, asyncio.Lock] = {}
        # Holders plus waiters per key; an entry is dropped when it reaches zero.
        self._users: dict[str, int] = {}

    def _lease_key(self, key: str) -> str:
        return f"{self._prefix}:lock:{key}"

    async def _acquire_lease(self, lease_key: str, token: str, deadline: float) -> None:
        delay = self._retry_delay_s
        while not await self._r.set(lease_key, token, nx=True, px=self._ttl_ms):
            if time.monotonic() >= deadline:
                raise GameBusyError("Game is busy")
            logger.debug("Waiting for lease %s", lease_key)
            await asyncio.sleep(delay)
            delay = min(delay * 2, 0.25)

    async def _release_lease(self, lease_key: str, token: str) -> None:
        async with self._r.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(lease_key)
                current = await pipe.get(lease_key)
                if current != token:
                    logger.warning("Lease %s expired before release", lease_key)
                    await pipe.unwatch()
                    return
                pipe.multi()
                pipe.delete(lease_key)
                await pipe.execute()
            except WatchError:
                logger.warning("Lease %s changed hands before release", lease_key)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        deadline = time.monotonic() + self._acquire_timeout_ms / 1000
        local = self._local.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1

        try:
            try:
                await asyncio.wait_for(local.acquire(), timeout=self._acquire_timeout_ms / 1000)
            except TimeoutError as e:
                raise GameBusyError("Game is busy") from e

            try:
                lease_key = self._lease_key(key)
                token = uuid4().hex
                await self._acquire_lease(lease_key, token, deadline)
                try:
                    yield
                finally:
                    await self._release_lease(lease_key, token)
            finally:
                local.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                self._local.pop(key, None)
