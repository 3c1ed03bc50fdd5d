from __future__ import annotations

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True, slots=True)
class Settings:
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "scorekeeper"
    lock_ttl_ms: int = 5_000
    lock_timeout_ms: int = 10_000
    log_level: str = "INFO"


def load_settings() -> Settings:
    return Settings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        key_prefix=os.environ.get("SCOREKEEPER_KEY_PREFIX", "scorekeeper"),
        lock_ttl_ms=_int_env("SCOREKEEPER_LOCK_TTL_MS", 5_000),
        lock_timeout_ms=_int_env("SCOREKEEPER_LOCK_TIMEOUT_MS", 10_000),
        log_level=os.environ.get("SCOREKEEPER_LOG_LEVEL", "INFO").upper(),
    )
