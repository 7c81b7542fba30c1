"""Level-up evaluation for XP gains.

Compares the progression state before and after a gain and reports which
level boundaries were crossed. Rewards are decided by the caller; this
module only carries the payload it is given.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from questrank.levels import (
    DEFAULT_CURVE,
    LevelProgress,
    XPCurveConfig,
    level_from_xp,
    progress_in_level,
    validate_xp,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LevelUpResult:
    """Before/after view of a single XP gain."""

    start_level: int
    end_level: int
    start_progress: LevelProgress
    end_progress: LevelProgress

    @property
    def leveled_up(self) -> bool:
        return self.end_level > self.start_level

    @property
    def levels_gained(self) -> int:
        return self.end_level - self.start_level

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_level": self.start_level,
            "end_level": self.end_level,
            "leveled_up": self.leveled_up,
            "levels_gained": self.levels_gained,
            "start_progress": asdict(self.start_progress),
            "end_progress": asdict(self.end_progress),
        }


@dataclass(frozen=True)
class LevelTransition:
    """A crossed level boundary, with whatever reward the caller attached."""

    old_level: int
    new_level: int
    reward: Any = None


def evaluate(
    total_xp_before: int, xp_gained: int, config: XPCurveConfig = DEFAULT_CURVE
) -> LevelUpResult:
    """Compute levels and in-level progress before and after an XP gain.

    Raises InvalidInput for a negative gain or a negative starting total;
    XP loss is not a supported transition.
    """
    validate_xp(total_xp_before, "total_xp_before")
    validate_xp(xp_gained, "xp_gained")

    total_xp_after = total_xp_before + xp_gained
    start_level = level_from_xp(total_xp_before, config)
    end_level = level_from_xp(total_xp_after, config)

    if end_level > start_level:
        logger.debug(
            "XP %s -> %s crosses level %d -> %d",
            total_xp_before, total_xp_after, start_level, end_level,
        )

    return LevelUpResult(
        start_level=start_level,
        end_level=end_level,
        start_progress=progress_in_level(total_xp_before, start_level, config),
        end_progress=progress_in_level(total_xp_after, end_level, config),
    )


def to_transition(result: LevelUpResult, reward: Any = None) -> LevelTransition | None:
    """Return a LevelTransition if the gain crossed a level, else None."""
    if not result.leveled_up:
        return None
    return LevelTransition(old_level=result.start_level, new_level=result.end_level, reward=reward)


def crossed_levels(result: LevelUpResult) -> list[int]:
    """Levels newly reached by the gain, lowest first. Empty if none."""
    return list(range(result.start_level + 1, result.end_level + 1))
