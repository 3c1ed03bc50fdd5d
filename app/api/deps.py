from __future__ import annotations

from fastapi import Request

from app.services import ScoreKeeper


def get_scorekeeper(request: Request) -> ScoreKeeper:
    keeper = getattr(request.app.state, "scorekeeper", None)
    if keeper is None:
        raise RuntimeError("ScoreKeeper not initialized. Is the app lifespan running?")
    return keeper
