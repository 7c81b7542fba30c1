"""Exception types for questrank.

Missing leaderboard data is not an error: reads return None instead.
"""
from __future__ import annotations


class QuestRankError(Exception):
    """Base class for all questrank errors."""


class InvalidInput(QuestRankError, ValueError):
    """Raised when a caller passes a value outside a function's domain.

    Examples: a negative XP gain, a negative XP total, a curve with
    base_xp <= 0, or an exponential curve with growth_factor <= 1.
    Inputs are never silently clamped.
    """


class SnapshotError(QuestRankError):
    """A snapshot source holds data it cannot read (unreadable or malformed)."""


class SubscriptionError(QuestRankError):
    """A live leaderboard channel failed.

    Delivered to a subscriber's error callback rather than raised.
    """

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        message = f"Leaderboard subscription failed for '{path}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
