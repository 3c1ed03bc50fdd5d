from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes import router
from app.config import load_settings
from app.infra.redis_client import create_redis
from app.services import build_scorekeeper

settings = load_settings()

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    keeper = build_scorekeeper(r=create_redis(settings), settings=settings)
    # A schema mismatch raises here and aborts startup.
    await keeper.start()
    app.state.scorekeeper = keeper
    logger.info("scorekeeper started (prefix=%s)", settings.key_prefix)
    try:
        yield
    finally:
        app.state.scorekeeper = None
        await keeper.close()
        logger.info("scorekeeper stopped")


app = FastAPI(title="scorekeeper", version="0.1.0", lifespan=lifespan)
app.include_router(router)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "scorekeeper", "version": "0.1.0"}
