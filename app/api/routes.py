from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.deps import get_scorekeeper
from app.api.models import (
    AddPointRequest,
    DashboardResponse,
    Game,
    GameCreateRequest,
    GameDetailResponse,
    GameIdResponse,
    GameRenameRequest,
    Player,
    PointClassStats,
    RankedPlayer,
    RemovePointRequest,
    RemovePointResponse,
    StatsResponse,
    point_class_label,
)
from app.errors import (
    AlreadyEndedError,
    ConsistencyError,
    GameBusyError,
    InactiveGameError,
    NotFoundError,
    ScoreKeeperError,
)
from app.services import ScoreKeeper

router = APIRouter()


def _http_error(e: ScoreKeeperError) -> HTTPException:
    if isinstance(e, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, (InactiveGameError, AlreadyEndedError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(e, ConsistencyError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    elif isinstance(e, GameBusyError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = 422  # Unprocessable Content
    return HTTPException(status_code=code, detail=str(e))


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/", response_model=DashboardResponse)
async def dashboard_route(keeper: ScoreKeeper = Depends(get_scorekeeper)) -> DashboardResponse:
    active, concluded = await keeper.registry.active_and_concluded_games()
    players = await keeper.registry.get_all_players()
    return DashboardResponse(active_games=active, concluded_games=concluded, players=players)


@router.get("/players", response_model=list[Player])
async def list_players_route(keeper: ScoreKeeper = Depends(get_scorekeeper)) -> list[Player]:
    return await keeper.registry.get_all_players()


@router.post("/game", response_model=GameIdResponse, status_code=status.HTTP_201_CREATED)
async def create_game_route(payload: GameCreateRequest, keeper: ScoreKeeper = Depends(get_scorekeeper)) -> GameIdResponse:
    try:
        game_id = await keeper.registry.new_game(
            payload.player1,
            payload.player2,
            payload.player3,
            payload.player4,
            name=payload.name,
            creator=payload.creator,
        )
    except ScoreKeeperError as e:
        raise _http_error(e) from e
    return GameIdResponse(game_id=game_id)


@router.get("/game/{game_id}", response_model=GameDetailResponse)
async def get_game_route(game_id: int, keeper: ScoreKeeper = Depends(get_scorekeeper)) -> GameDetailResponse:
    try:
        game = await keeper.registry.get_game(game_id)
        players = await keeper.registry.get_players(list(game.player_ids))
        score = await keeper.scores.get_score(game_id)
    except ScoreKeeperError as e:
        raise _http_error(e) from e
    return GameDetailResponse(game=game, players=players, score=score, score_list=score.as_list())


@router.patch("/game/{game_id}", response_model=Game)
async def rename_game_route(
    game_id: int,
    payload: GameRenameRequest,
    keeper: ScoreKeeper = Depends(get_scorekeeper),
) -> Game:
    try:
        return await keeper.registry.rename_game(game_id, payload.name)
    except ScoreKeeperError as e:
        raise _http_error(e) from e


@router.post("/game/{game_id}/point", status_code=status.HTTP_204_NO_CONTENT)
async def add_point_route(
    game_id: int,
    payload: AddPointRequest,
    keeper: ScoreKeeper = Depends(get_scorekeeper),
) -> Response:
    try:
        await keeper.ledger.add_point(game_id, payload.player_id, payload.point_class)
    except ScoreKeeperError as e:
        raise _http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/game/{game_id}/point/remove", response_model=RemovePointResponse)
async def remove_point_route(
    game_id: int,
    payload: RemovePointRequest,
    keeper: ScoreKeeper = Depends(get_scorekeeper),
) -> RemovePointResponse:
    try:
        removed = await keeper.ledger.remove_point(game_id, payload.player_id)
    except ScoreKeeperError as e:
        raise _http_error(e) from e
    return RemovePointResponse(removed=removed)


@router.post("/game/{game_id}/end", response_model=Game)
async def end_game_route(game_id: int, keeper: ScoreKeeper = Depends(get_scorekeeper)) -> Game:
    try:
        return await keeper.lifecycle.end_game(game_id)
    except ScoreKeeperError as e:
        raise _http_error(e) from e


@router.get("/stats", response_model=StatsResponse)
async def stats_route(keeper: ScoreKeeper = Depends(get_scorekeeper)) -> StatsResponse:
    try:
        stats = await keeper.stats.get_interesting_stats()
    except ScoreKeeperError as e:
        raise _http_error(e) from e

    names = {p.id: p.name for p in await keeper.registry.get_all_players()}
    classes = [
        PointClassStats(
            point_class=point_class,
            label=point_class_label(point_class),
            ranking=[RankedPlayer(player_id=e.player_id, name=names.get(e.player_id), count=e.count) for e in ranking],
        )
        for point_class, ranking in stats.items()
    ]
    return StatsResponse(classes=classes)
