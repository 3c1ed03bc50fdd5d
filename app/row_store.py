"""Sheet-like tabular storage on top of Redis.

Each collection behaves like one worksheet: a fixed header, rows kept in
insertion order, and every call is an independent round trip. Nothing here
knows about games or points; the domain layer owns row <-> model conversion.

Redis layout for a collection ``c`` under prefix ``p``::

    p:c:header       JSON list of header names
    p:c:seq          counter issuing internal row ids
    p:c:rows         list of row ids, insertion order
    p:c:row:<id>     hash of field values (strings)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import redis.asyncio as redis


logger = logging.getLogger(__name__)


PLAYERS_HEADER: tuple[str, ...] = ("id", "name")
GAMES_HEADER: tuple[str, ...] = (
    "id",
    "creator",
    "created_at",
    "ended_at",
    "name",
    "player1",
    "player2",
    "player3",
    "player4",
)
POINTS_HEADER: tuple[str, ...] = ("game_id", "player_id", "point_class", "timestamp")


class RowStoreError(Exception):
    pass


class SchemaError(RowStoreError):
    """Stored header disagrees with the declared one, or an unknown field was written."""


class RowNotFoundError(RowStoreError):
    pass


@dataclass(frozen=True, slots=True)
class Row:
    row_id: str
    fields: dict[str, str]

    def get(self, name: str) -> str | None:
        # Sheets make no distinction between an empty cell and a missing one.
        value = self.fields.get(name)
        if value is None or value == "":
            return None
        return value


def _encode(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class Collection:
    def __init__(self, *, r: redis.Redis, prefix: str, name: str, header: Sequence[str]) -> None:
        self._r = r
        self.name = name
        self.header: tuple[str, ...] = tuple(header)
        self._base = f"{prefix}:{name}"

    @property
    def _header_key(self) -> str:
        return f"{self._base}:header"

    @property
    def _seq_key(self) -> str:
        return f"{self._base}:seq"

    @property
    def _rows_key(self) -> str:
        return f"{self._base}:rows"

    def _row_key(self, row_id: str) -> str:
        return f"{self._base}:row:{row_id}"

    def _check_fields(self, fields: Mapping[str, Any]) -> None:
        unknown = sorted(set(fields) - set(self.header))
        if unknown:
            raise SchemaError(f"Unknown field(s) for {self.name}: {', '.join(unknown)}")

    async def init_schema(self) -> None:
        wanted = json.dumps(list(self.header))
        await self._r.set(self._header_key, wanted, nx=True)
        stored = await self._r.get(self._header_key)
        if stored != wanted:
            raise SchemaError(f"Collection {self.name!r} has header {stored}, expected {wanted}")

    async def read_all(self) -> list[Row]:
        row_ids: list[str] = await self._r.lrange(self._rows_key, 0, -1)
        if not row_ids:
            return []

        async with self._r.pipeline(transaction=False) as pipe:
            for row_id in row_ids:
                pipe.hgetall(self._row_key(row_id))
            raw_rows = await pipe.execute()

        rows: list[Row] = []
        for row_id, fields in zip(row_ids, raw_rows, strict=True):
            # A row deleted between LRANGE and HGETALL comes back empty.
            if fields:
                rows.append(Row(row_id=row_id, fields=dict(fields)))
        return rows

    async def find(self, **equals: Any) -> list[Row]:
        self._check_fields(equals)
        wanted = {k: _encode(v) for k, v in equals.items()}
        return [row for row in await self.read_all() if all(row.fields.get(k, "") == v for k, v in wanted.items())]

    async def append(self, fields: Mapping[str, Any]) -> Row:
        self._check_fields(fields)
        values = {name: _encode(fields.get(name)) for name in self.header}

        row_id = str(await self._r.incr(self._seq_key))
        async with self._r.pipeline(transaction=True) as pipe:
            pipe.hset(self._row_key(row_id), mapping=values)
            pipe.rpush(self._rows_key, row_id)
            await pipe.execute()

        return Row(row_id=row_id, fields=values)

    async def update(self, row: Row, fields: Mapping[str, Any]) -> Row:
        self._check_fields(fields)
        if not fields:
            return row

        key = self._row_key(row.row_id)
        if not await self._r.exists(key):
            raise RowNotFoundError(f"Row {row.row_id} no longer exists in {self.name}")

        values = {k: _encode(v) for k, v in fields.items()}
        await self._r.hset(key, mapping=values)
        return Row(row_id=row.row_id, fields={**row.fields, **values})

    async def delete(self, row: Row) -> bool:
        """Delete ``row``; False means it was already gone."""

        async with self._r.pipeline(transaction=True) as pipe:
            pipe.lrem(self._rows_key, 1, row.row_id)
            pipe.delete(self._row_key(row.row_id))
            removed, _ = await pipe.execute()
        return bool(removed)


class RowStore:
    """Owns the Redis client and one Collection per entity."""

    def __init__(self, *, r: redis.Redis, prefix: str = "scorekeeper") -> None:
        self.r = r
        self.prefix = prefix
        self.players = Collection(r=r, prefix=prefix, name="players", header=PLAYERS_HEADER)
        self.games = Collection(r=r, prefix=prefix, name="games", header=GAMES_HEADER)
        self.points = Collection(r=r, prefix=prefix, name="points", header=POINTS_HEADER)

    @property
    def collections(self) -> tuple[Collection, ...]:
        return (self.players, self.games, self.points)

    async def init_schema(self) -> None:
        for collection in self.collections:
            await collection.init_schema()
        logger.info("Row store schema verified (prefix=%s)", self.prefix)

    async def close(self) -> None:
        await self.r.aclose()
