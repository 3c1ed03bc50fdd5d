from __future__ import annotations

from collections import Counter, defaultdict

from app.api.models import PlayerCount
from app.ledger import PointLedger


class StatsAggregator:
    def __init__(self, *, ledger: PointLedger) -> None:
        self._ledger = ledger

    async def get_interesting_stats(self) -> dict[int, list[PlayerCount]]:
        """Rank players by how often they scored each point class.

        Covers every point in the store, across active and ended games.
        Result keys are point classes in ascending order; each ranking is
        sorted by count, descending, and never contains a zero count. Ties
        keep the order in which players were first seen, which callers
        should not rely on.
        """

        by_player: defaultdict[int, Counter[int]] = defaultdict(Counter)
        for point in await self._ledger.all_points():
            if point.player_id is None:
                continue
            by_player[point.player_id][point.point_class] += 1

        observed = sorted({pc for counts in by_player.values() for pc in counts})

        out: dict[int, list[PlayerCount]] = {}
        for point_class in observed:
            ranking = [
                PlayerCount(player_id=player_id, count=counts[point_class])
                for player_id, counts in by_player.items()
                if counts[point_class] > 0
            ]
            # sorted() is stable, so equal counts keep first-seen player order.
            out[point_class] = sorted(ranking, key=lambda e: e.count, reverse=True)
        return out
