from typing import Optional


class UpstreamError(Exception):
    """The odds provider could not be reached or answered with a failing status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CacheError(Exception):
    """Internal cache failure. Never leaves the cache; callers see a miss."""


class PersistenceError(Exception):
    """A snapshot or metadata write failed for a single game."""

    def __init__(self, game_id: str, message: str):
        super().__init__(f"{game_id}: {message}")
        self.game_id = game_id
        self.message = message
