from __future__ import annotations

import logging
from datetime import datetime

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from app.api.models import Game
from app.errors import AlreadyEndedError, InactiveGameError
from app.game_store import GameRegistry, to_utc
from app.lock import GameLocks, game_key
from app.row_store import RowStore


logger = logging.getLogger(__name__)


class GameLifecycleMachine(StateMachine):
    """Active -> Ended, one way.

    The machine is rebuilt from the stored game on every call; `ended_at`
    is the persisted form of the current state.
    """

    active = State("Active", value="active", initial=True)
    ended = State("Ended", value="ended", final=True)

    end = active.to(ended)

    def __init__(self, game: Game):
        self.game = game
        super().__init__(start_value="active" if game.ended_at is None else "ended")

    def on_end(self, at: datetime) -> None:
        self.game.ended_at = at

    @property
    def is_active(self) -> bool:
        return self.current_state == self.active


def ensure_active(game: Game) -> None:
    if not GameLifecycleMachine(game).is_active:
        raise InactiveGameError(f"Game {game.id} has ended")


class GameLifecycle:
    def __init__(self, *, store: RowStore, registry: GameRegistry, locks: GameLocks) -> None:
        self._store = store
        self._registry = registry
        self._locks = locks

    async def is_active(self, game_id: int) -> bool:
        game = await self._registry.get_game(game_id)
        return GameLifecycleMachine(game).is_active

    async def end_game(self, game_id: int, at: datetime | None = None) -> Game:
        at = to_utc(at)
        async with self._locks.hold(game_key(game_id)):
            row, game = await self._registry.find_game_row(game_id)
            machine = GameLifecycleMachine(game)
            try:
                machine.end(at=at)
            except TransitionNotAllowed as e:
                raise AlreadyEndedError(f"Game {game_id} has already ended") from e
            await self._store.games.update(row, {"ended_at": at.isoformat()})

        logger.info("Ended game %s at %s", game_id, at.isoformat())
        return game
