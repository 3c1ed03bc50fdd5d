from __future__ import annotations

import pytest

from app.errors import NotFoundError, ValidationError
from app.services import ScoreKeeper


@pytest.mark.asyncio
async def test_new_game_ids_start_at_zero_and_increase(keeper: ScoreKeeper, players: list[int]) -> None:
    ids = [await keeper.registry.new_game(1, 2, 3, 4) for _ in range(4)]
    assert ids == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_new_game_persists_slots_and_active_state(keeper: ScoreKeeper, players: list[int], clock) -> None:
    gid = await keeper.registry.new_game(1, 2, 3, 4, name="Friday", creator="ana", at=clock(0))
    game = await keeper.registry.get_game(gid)

    assert game.player_ids == (1, 2, 3, 4)
    assert game.team_a == (1, 3)
    assert game.team_b == (2, 4)
    assert game.created_at == clock(0)
    assert game.ended_at is None
    assert game.is_active
    assert game.name == "Friday"
    assert game.creator == "ana"


@pytest.mark.parametrize("ids", [(1, 1, 2, 3), (1, 2, 3, 1), (4, 4, 4, 4), (1, 2, 2, 3)])
@pytest.mark.asyncio
async def test_new_game_with_repeated_player_fails_and_persists_nothing(keeper: ScoreKeeper, ids) -> None:
    with pytest.raises(ValidationError):
        await keeper.registry.new_game(*ids)
    assert await keeper.registry.get_all_games_map() == {}


@pytest.mark.asyncio
async def test_new_game_requires_all_players(keeper: ScoreKeeper) -> None:
    with pytest.raises(ValidationError):
        await keeper.registry.new_game(1, 2, 3, None)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_new_game_id_is_max_plus_one_not_row_count(keeper: ScoreKeeper) -> None:
    for _ in range(3):
        await keeper.registry.new_game(1, 2, 3, 4)

    # Drop game 0 behind the registry's back; the next id must still be 3.
    [first, *_rest] = await keeper.store.games.read_all()
    await keeper.store.games.delete(first)

    assert await keeper.registry.new_game(1, 2, 3, 4) == 3


@pytest.mark.asyncio
async def test_concurrent_new_games_never_share_an_id(keeper: ScoreKeeper) -> None:
    import asyncio

    ids = await asyncio.gather(*(keeper.registry.new_game(1, 2, 3, 4) for _ in range(8)))
    assert sorted(ids) == list(range(8))


@pytest.mark.asyncio
async def test_get_game_errors(keeper: ScoreKeeper) -> None:
    with pytest.raises(ValidationError):
        await keeper.registry.get_game(None)
    with pytest.raises(NotFoundError):
        await keeper.registry.get_game(42)


@pytest.mark.asyncio
async def test_get_all_games_map(keeper: ScoreKeeper) -> None:
    a = await keeper.registry.new_game(1, 2, 3, 4)
    b = await keeper.registry.new_game(4, 3, 2, 1)

    games = await keeper.registry.get_all_games_map()
    assert set(games) == {a, b}
    assert games[b].player_ids == (4, 3, 2, 1)


@pytest.mark.asyncio
async def test_get_players_preserves_requested_order(keeper: ScoreKeeper, players: list[int]) -> None:
    result = await keeper.registry.get_players([3, 1, 4, 0])
    assert [p.id for p in result] == [3, 1, 4, 0]
    assert [p.name for p in result] == ["Dee", "Ben", "Eli", "Ana"]


@pytest.mark.asyncio
async def test_get_players_errors(keeper: ScoreKeeper, players: list[int]) -> None:
    with pytest.raises(NotFoundError):
        await keeper.registry.get_players([1, 2, 99])
    with pytest.raises(ValidationError):
        await keeper.registry.get_players([1, None])


@pytest.mark.asyncio
async def test_active_and_concluded_games_partition_on_ended_at(keeper: ScoreKeeper, clock) -> None:
    g0 = await keeper.registry.new_game(1, 2, 3, 4)
    g1 = await keeper.registry.new_game(1, 2, 3, 4)
    g2 = await keeper.registry.new_game(1, 2, 3, 4)
    await keeper.lifecycle.end_game(g1, clock(5))

    active, concluded = await keeper.registry.active_and_concluded_games()
    assert [g.id for g in active] == [g0, g2]
    assert [g.id for g in concluded] == [g1]


@pytest.mark.asyncio
async def test_rename_game(keeper: ScoreKeeper, clock) -> None:
    gid = await keeper.registry.new_game(1, 2, 3, 4)
    renamed = await keeper.registry.rename_game(gid, "  Finals  ")
    assert renamed.name == "Finals"

    # Renaming is metadata; allowed after the game ends.
    await keeper.lifecycle.end_game(gid, clock(1))
    cleared = await keeper.registry.rename_game(gid, "")
    assert cleared.name is None
    assert cleared.ended_at == clock(1)

    with pytest.raises(NotFoundError):
        await keeper.registry.rename_game(99, "x")


@pytest.mark.asyncio
async def test_create_player_assigns_sequential_ids(keeper: ScoreKeeper) -> None:
    a = await keeper.registry.create_player("Ana")
    b = await keeper.registry.create_player(" Ben ")
    assert (a.id, b.id) == (0, 1)
    assert b.name == "Ben"
    assert [p.name for p in await keeper.registry.get_all_players()] == ["Ana", "Ben"]

    with pytest.raises(ValidationError):
        await keeper.registry.create_player("   ")


@pytest.mark.asyncio
async def test_malformed_row_does_not_break_lookup_of_other_games(keeper: ScoreKeeper, clock) -> None:
    gid = await keeper.registry.new_game(1, 2, 3, 4)
    # A hand-edited row with no timestamp or players.
    await keeper.store.games.append({"id": "oops", "name": "broken"})

    assert (await keeper.registry.get_game(gid)).id == gid
    await keeper.ledger.add_point(gid, 1, 0, clock(1))
    ended = await keeper.lifecycle.end_game(gid, clock(2))
    assert ended.ended_at == clock(2)

    with pytest.raises(NotFoundError):
        await keeper.registry.get_game(gid + 1)
