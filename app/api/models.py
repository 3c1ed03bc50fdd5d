from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field


POINT_CLASS_NAMES: dict[int, str] = {
    0: "single",
    1: "double",
    2: "triple",
    3: "quadruple",
}


def point_class_label(point_class: int) -> str:
    return POINT_CLASS_NAMES.get(point_class, f"x{point_class + 1}")


class Player(BaseModel):
    id: int
    name: str


class Game(BaseModel):
    id: int
    player1_id: int
    player2_id: int
    player3_id: int
    player4_id: int
    created_at: datetime
    ended_at: datetime | None = None
    name: str | None = None
    creator: str | None = None

    @property
    def player_ids(self) -> tuple[int, int, int, int]:
        return (self.player1_id, self.player2_id, self.player3_id, self.player4_id)

    # Teams are fixed by slot: A = slots 1 & 3, B = slots 2 & 4.
    @property
    def team_a(self) -> tuple[int, int]:
        return (self.player1_id, self.player3_id)

    @property
    def team_b(self) -> tuple[int, int]:
        return (self.player2_id, self.player4_id)

    @property
    def is_active(self) -> bool:
        return self.ended_at is None


class Point(BaseModel):
    game_id: int
    # Absent only in malformed stored rows; scoring rejects those.
    player_id: int | None = None
    point_class: int = Field(0, ge=0)
    timestamp: datetime


class Score(BaseModel):
    team_a: int = 0
    team_b: int = 0
    player_scores: tuple[int, int, int, int] = (0, 0, 0, 0)

    def as_list(self) -> list[int]:
        return [self.team_a, self.team_b, *self.player_scores]


@dataclass(frozen=True, slots=True)
class PlayerCount:
    player_id: int
    count: int


# --- request / response bodies ---


class GameCreateRequest(BaseModel):
    player1: int
    player2: int
    player3: int
    player4: int
    name: str | None = Field(None, max_length=200)
    creator: str | None = Field(None, max_length=200)


class GameIdResponse(BaseModel):
    game_id: int


class GameRenameRequest(BaseModel):
    name: str | None = Field(None, max_length=200)


class AddPointRequest(BaseModel):
    player_id: int
    point_class: int = Field(0, ge=0)


class RemovePointRequest(BaseModel):
    player_id: int


class RemovePointResponse(BaseModel):
    removed: Point | None = None


class GameDetailResponse(BaseModel):
    game: Game
    players: list[Player]
    score: Score
    score_list: list[int]


class DashboardResponse(BaseModel):
    active_games: list[Game]
    concluded_games: list[Game]
    players: list[Player]


class RankedPlayer(BaseModel):
    player_id: int
    name: str | None = None
    count: int


class PointClassStats(BaseModel):
    point_class: int
    label: str
    ranking: list[RankedPlayer]


class StatsResponse(BaseModel):
    classes: list[PointClassStats]
