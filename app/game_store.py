from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from app.api.models import Game, Player
from app.errors import NotFoundError, ValidationError
from app.lock import GameLocks, collection_key, game_key
from app.row_store import Row, RowStore


logger = logging.getLogger(__name__)


def now_utc() -> datetime:
    return datetime.now(tz=UTC)


def to_utc(at: datetime | None) -> datetime:
    if at is None:
        return now_utc()
    # Naive datetimes are taken to already be UTC.
    if at.tzinfo is None:
        return at.replace(tzinfo=UTC)
    return at.astimezone(UTC)


def parse_timestamp(raw: str | None, *, field: str) -> datetime | None:
    if raw is None:
        return None
    try:
        return to_utc(datetime.fromisoformat(raw))
    except ValueError as e:
        raise ValidationError(f"{field} is not an ISO timestamp: {raw!r}") from e


def parse_int(raw: str | None, *, field: str) -> int:
    if raw is None:
        raise ValidationError(f"{field} is missing")
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError(f"{field} is not an integer: {raw!r}") from e


def game_from_row(row: Row) -> Game:
    created_at = parse_timestamp(row.get("created_at"), field="created_at")
    if created_at is None:
        raise ValidationError(f"Game row {row.row_id} has no created_at")
    return Game(
        id=parse_int(row.get("id"), field="id"),
        player1_id=parse_int(row.get("player1"), field="player1"),
        player2_id=parse_int(row.get("player2"), field="player2"),
        player3_id=parse_int(row.get("player3"), field="player3"),
        player4_id=parse_int(row.get("player4"), field="player4"),
        created_at=created_at,
        ended_at=parse_timestamp(row.get("ended_at"), field="ended_at"),
        name=row.get("name"),
        creator=row.get("creator"),
    )


def player_from_row(row: Row) -> Player:
    return Player(id=parse_int(row.get("id"), field="id"), name=row.get("name") or "")


class GameRegistry:
    """Creates, looks up and lists games and players.

    Every read goes to the store; nothing is cached between calls.
    """

    def __init__(self, *, store: RowStore, locks: GameLocks) -> None:
        self._store = store
        self._locks = locks

    async def new_game(
        self,
        player1_id: int,
        player2_id: int,
        player3_id: int,
        player4_id: int,
        *,
        name: str | None = None,
        creator: str | None = None,
        at: datetime | None = None,
    ) -> int:
        ids = (player1_id, player2_id, player3_id, player4_id)
        if any(pid is None for pid in ids):
            raise ValidationError("All four player ids are required")
        if len(set(ids)) != 4:
            raise ValidationError("Players must be unique")

        async with self._locks.hold(collection_key("games")):
            games = await self.get_all_games_map()
            # max()+1 rather than a row count, so ids stay monotonic if rows vanish.
            game_id = max(games) + 1 if games else 0
            await self._store.games.append(
                {
                    "id": game_id,
                    "creator": creator,
                    "created_at": to_utc(at).isoformat(),
                    "ended_at": None,
                    "name": name,
                    "player1": player1_id,
                    "player2": player2_id,
                    "player3": player3_id,
                    "player4": player4_id,
                }
            )

        logger.info("Created game %s with players %s", game_id, ids)
        return game_id

    async def find_game_row(self, game_id: int | None) -> tuple[Row, Game]:
        if game_id is None:
            raise ValidationError("requested game id is undefined")
        # Match on the raw id cell so a malformed row elsewhere cannot break the lookup.
        for row in await self._store.games.find(id=game_id):
            game = game_from_row(row)
            if game.id == game_id:
                return row, game
        raise NotFoundError(f"Game {game_id} not found")

    async def get_game(self, game_id: int | None) -> Game:
        _row, game = await self.find_game_row(game_id)
        return game

    async def get_all_games_map(self) -> dict[int, Game]:
        out: dict[int, Game] = {}
        for row in await self._store.games.read_all():
            game = game_from_row(row)
            out[game.id] = game
        return out

    async def active_and_concluded_games(self) -> tuple[list[Game], list[Game]]:
        active: list[Game] = []
        concluded: list[Game] = []
        for row in await self._store.games.read_all():
            game = game_from_row(row)
            (active if game.is_active else concluded).append(game)
        return active, concluded

    async def rename_game(self, game_id: int, name: str | None) -> Game:
        cleaned = (name or "").strip() or None
        async with self._locks.hold(game_key(game_id)):
            row, _game = await self.find_game_row(game_id)
            row = await self._store.games.update(row, {"name": cleaned})
        logger.info("Renamed game %s to %r", game_id, cleaned)
        return game_from_row(row)

    async def get_all_players(self) -> list[Player]:
        return [player_from_row(row) for row in await self._store.players.read_all()]

    async def get_players(self, ids: Sequence[int | None]) -> list[Player]:
        if any(pid is None for pid in ids):
            raise ValidationError("one of the requested player ids is undefined")

        by_id = {p.id: p for p in await self.get_all_players()}
        missing = [pid for pid in ids if pid not in by_id]
        if missing:
            raise NotFoundError(f"Player(s) not found: {', '.join(str(pid) for pid in missing)}")
        return [by_id[pid] for pid in ids]

    async def create_player(self, name: str) -> Player:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Player name is required")

        async with self._locks.hold(collection_key("players")):
            players = await self.get_all_players()
            player_id = max(p.id for p in players) + 1 if players else 0
            await self._store.players.append({"id": player_id, "name": cleaned})

        logger.info("Created player %s (%s)", player_id, cleaned)
        return Player(id=player_id, name=cleaned)
