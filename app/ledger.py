from __future__ import annotations

import logging
from datetime import datetime

from app.api.models import Point
from app.errors import ValidationError
from app.fsm import ensure_active
from app.game_store import GameRegistry, parse_int, parse_timestamp, to_utc
from app.lock import GameLocks, game_key
from app.row_store import Row, RowStore


logger = logging.getLogger(__name__)


def validate_point_class(raw: object) -> int:
    # bool is an int subclass; True is not a point class.
    if isinstance(raw, bool):
        raise ValidationError(f"point class must be a nonnegative integer, got {raw!r}")
    if isinstance(raw, str):
        raw = raw.strip()
        if not (raw.isascii() and raw.isdigit()):
            raise ValidationError(f"point class must be a nonnegative integer, got {raw!r}")
        return int(raw)
    if not isinstance(raw, int) or raw < 0:
        raise ValidationError(f"point class must be a nonnegative integer, got {raw!r}")
    return raw


def point_from_row(row: Row) -> Point:
    raw_class = row.get("point_class")
    if raw_class is None:
        raise ValidationError(f"Point row {row.row_id} has no point class")
    timestamp = parse_timestamp(row.get("timestamp"), field="timestamp")
    if timestamp is None:
        raise ValidationError(f"Point row {row.row_id} has no timestamp")

    raw_player = row.get("player_id")
    return Point(
        game_id=parse_int(row.get("game_id"), field="game_id"),
        player_id=None if raw_player is None else parse_int(raw_player, field="player_id"),
        point_class=validate_point_class(raw_class),
        timestamp=timestamp,
    )


class PointLedger:
    """Append/remove scoring events for a game.

    Mutations hold the game's lock so they never interleave with each other
    or with end_game on the same game.
    """

    def __init__(self, *, store: RowStore, registry: GameRegistry, locks: GameLocks) -> None:
        self._store = store
        self._registry = registry
        self._locks = locks

    async def add_point(self, game_id: int, player_id: int, point_class: int = 0, at: datetime | None = None) -> Point:
        if player_id is None:
            raise ValidationError("player id is undefined")
        point_class = validate_point_class(point_class)
        at = to_utc(at)

        async with self._locks.hold(game_key(game_id)):
            game = await self._registry.get_game(game_id)
            ensure_active(game)
            # Membership of player_id in the game is checked when scoring, not here.
            await self._store.points.append(
                {
                    "game_id": game_id,
                    "player_id": player_id,
                    "point_class": point_class,
                    "timestamp": at.isoformat(),
                }
            )

        logger.info("Point added: game=%s player=%s class=%s", game_id, player_id, point_class)
        return Point(game_id=game_id, player_id=player_id, point_class=point_class, timestamp=at)

    async def remove_point(self, game_id: int, player_id: int) -> Point | None:
        """Remove the most recent point (by timestamp) for this player in this game.

        Returns the removed point, or None when there was nothing to remove.
        """

        if player_id is None:
            raise ValidationError("player id is undefined")

        async with self._locks.hold(game_key(game_id)):
            game = await self._registry.get_game(game_id)
            ensure_active(game)

            candidates: list[tuple[datetime, int, Row, Point]] = []
            rows = await self._store.points.find(game_id=game_id, player_id=player_id)
            for idx, row in enumerate(rows):
                point = point_from_row(row)
                candidates.append((point.timestamp, idx, row, point))

            if not candidates:
                logger.debug("No point to remove: game=%s player=%s", game_id, player_id)
                return None

            # Latest timestamp wins; among equal timestamps, the later append.
            _ts, _idx, row, point = max(candidates, key=lambda c: (c[0], c[1]))
            if not await self._store.points.delete(row):
                logger.debug("Point row %s was already gone", row.row_id)
                return None

        logger.info("Point removed: game=%s player=%s class=%s", game_id, player_id, point.point_class)
        return point

    async def points_for_game(self, game_id: int) -> list[Point]:
        return [point_from_row(row) for row in await self._store.points.find(game_id=game_id)]

    async def all_points(self) -> list[Point]:
        return [point_from_row(row) for row in await self._store.points.read_all()]
