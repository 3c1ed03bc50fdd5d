from __future__ import annotations


class ScoreKeeperError(ValueError):
    """Base for every failure a core operation can raise.

    Subclasses ValueError so callers that already treat ValueError as
    "bad request" keep working.
    """


class ValidationError(ScoreKeeperError):
    """Malformed or missing input (undefined id, duplicate players, bad point class)."""


class NotFoundError(ScoreKeeperError):
    """A referenced game or player does not exist."""


class InactiveGameError(ScoreKeeperError):
    """A point was added or removed on a game that has ended."""


class AlreadyEndedError(ScoreKeeperError):
    """end_game was called on a game that has already ended."""


class ConsistencyError(ScoreKeeperError):
    """A stored point references a player who is not in its game."""


class GameBusyError(ScoreKeeperError):
    """Timed out waiting for another writer to release a game."""
