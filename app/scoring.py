from __future__ import annotations

from app.api.models import Score
from app.errors import ConsistencyError, ValidationError
from app.game_store import GameRegistry
from app.ledger import PointLedger


# Slot index (0-based) -> team. Slots 1 & 3 are team A, 2 & 4 are team B.
_TEAM_A_SLOTS = frozenset({0, 2})


class ScoreCalculator:
    """Per-game score, derived from the point ledger on every call.

    Every point is worth exactly 1. The point class (single, double, ...)
    only classifies the event for stats; it never weights the score.
    """

    def __init__(self, *, registry: GameRegistry, ledger: PointLedger) -> None:
        self._registry = registry
        self._ledger = ledger

    async def get_score(self, game_id: int) -> Score:
        game = await self._registry.get_game(game_id)
        slots = game.player_ids

        team_a = 0
        team_b = 0
        per_player = [0, 0, 0, 0]

        for point in await self._ledger.points_for_game(game.id):
            if point.player_id is None:
                raise ValidationError(f"A point in game {game.id} has no player id")
            try:
                slot = slots.index(point.player_id)
            except ValueError as e:
                raise ConsistencyError(
                    f"Point player {point.player_id} is not one of game {game.id}'s players {slots}"
                ) from e

            per_player[slot] += 1
            if slot in _TEAM_A_SLOTS:
                team_a += 1
            else:
                team_b += 1

        return Score(team_a=team_a, team_b=team_b, player_scores=tuple(per_player))
