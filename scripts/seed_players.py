"""Load players from a CSV into the row store.

Contract
- Input: a CSV with a `name` column (other columns are ignored).
- Creates one player per distinct, non-blank name, in file order.
- Names that already exist in the store are skipped, so re-running is safe.

Usage:
    uv run python scripts/seed_players.py players.csv
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import pandas as pd

from app.config import load_settings
from app.infra.redis_client import create_redis
from app.services import build_scorekeeper


logger = logging.getLogger("seed_players")


def read_names(path: Path) -> list[str]:
    df = pd.read_csv(path, dtype=str)
    if "name" not in df.columns:
        raise ValueError(f"{path} has no 'name' column")

    names = df["name"].dropna().astype(str).str.strip()
    names = names[names != ""]
    return list(dict.fromkeys(names.tolist()))


async def seed(path: Path) -> int:
    settings = load_settings()
    keeper = build_scorekeeper(r=create_redis(settings), settings=settings)
    await keeper.start()
    try:
        existing = {p.name for p in await keeper.registry.get_all_players()}
        created = 0
        for name in read_names(path):
            if name in existing:
                logger.info("Skipping existing player %s", name)
                continue
            await keeper.registry.create_player(name)
            created += 1
        return created
    finally:
        await keeper.close()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("csv", type=Path)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    created = asyncio.run(seed(args.csv))
    logger.info("Created %d player(s)", created)


if __name__ == "__main__":
    main()
