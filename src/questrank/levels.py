"""Level progression calculation. Pure functions, no side effects.

A curve maps a level to the XP needed to complete it. Total XP is the only
durable quantity; level and in-level progress are always derived from it.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Mapping

from questrank.errors import InvalidInput

CURVE_TYPES = ("exponential", "linear")


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def validate_xp(total_xp: int, name: str = "total_xp") -> None:
    if not _is_number(total_xp) or not math.isfinite(total_xp):
        raise InvalidInput(f"{name} must be a finite number, got {total_xp!r}")
    if total_xp < 0:
        raise InvalidInput(f"{name} must be non-negative, got {total_xp}")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class XPCurveConfig:
    """XP curve parameters. Validated on construction."""

    base_xp: float = 100
    growth_factor: float = 1.18
    type: str = "exponential"

    def __post_init__(self) -> None:
        if self.type not in CURVE_TYPES:
            raise InvalidInput(
                f"Unknown curve type {self.type!r}; expected one of {', '.join(CURVE_TYPES)}"
            )
        if not _is_number(self.base_xp) or not math.isfinite(self.base_xp) or self.base_xp <= 0:
            raise InvalidInput(f"base_xp must be a positive number, got {self.base_xp!r}")
        if not _is_number(self.growth_factor) or not math.isfinite(self.growth_factor):
            raise InvalidInput(f"growth_factor must be a finite number, got {self.growth_factor!r}")
        if self.type == "exponential" and self.growth_factor <= 1:
            raise InvalidInput(
                f"growth_factor must be > 1 for exponential curves, got {self.growth_factor!r}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> XPCurveConfig:
        """Build a curve from camelCase (baseXP) or snake_case (base_xp) keys.

        Missing keys take the default curve's values.
        """
        return cls(
            base_xp=data.get("baseXP", data.get("base_xp", DEFAULT_CURVE.base_xp)),
            growth_factor=data.get(
                "growthFactor", data.get("growth_factor", DEFAULT_CURVE.growth_factor)
            ),
            type=data.get("type", DEFAULT_CURVE.type),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"baseXP": self.base_xp, "growthFactor": self.growth_factor, "type": self.type}


DEFAULT_CURVE = XPCurveConfig()


@dataclass(frozen=True)
class LevelProgress:
    """XP earned inside a level against what the level requires."""

    current: int
    required: int
    percentage: int


@dataclass(frozen=True)
class ProgressionState:
    """Level and in-level progress derived from a total XP value."""

    total_xp: int
    level: int
    xp_into_level: int
    xp_required_for_level: int
    percentage: int

    @property
    def xp_to_next_level(self) -> int:
        return max(0, self.xp_required_for_level - self.xp_into_level)

    def to_dict(self) -> dict[str, int]:
        return {
            "total_xp": self.total_xp,
            "level": self.level,
            "xp_into_level": self.xp_into_level,
            "xp_required_for_level": self.xp_required_for_level,
            "xp_to_next_level": self.xp_to_next_level,
            "percentage": self.percentage,
        }


def xp_for_level(level: int, config: XPCurveConfig = DEFAULT_CURVE) -> int:
    """XP needed to complete a specific level.

    Exponential: floor(base_xp * growth_factor^(level - 1)).
    Linear: base_xp * level.
    """
    if level <= 0:
        return 0
    if config.type == "exponential":
        return math.floor(config.base_xp * config.growth_factor ** (level - 1))
    return math.floor(config.base_xp * level)


def cumulative_xp_before_level(level: int, config: XPCurveConfig = DEFAULT_CURVE) -> int:
    """Total XP needed from 0 to start this level (sum of all previous levels).

    Each level's requirement is floored before summing.
    """
    if level <= 1:
        return 0
    return sum(xp_for_level(lv, config) for lv in range(1, level))


def level_from_xp(total_xp: int, config: XPCurveConfig = DEFAULT_CURVE) -> int:
    """Given total XP, return the current level (uncapped, >= 1)."""
    validate_xp(total_xp)
    level = 1
    cumulative = 0
    while True:
        cumulative += xp_for_level(level, config)
        if total_xp < cumulative:
            return level
        level += 1


def progress_in_level(
    total_xp: int, level: int, config: XPCurveConfig = DEFAULT_CURVE
) -> LevelProgress:
    """Return XP progress inside `level`.

    `current` is clamped to [0, required] so a level that does not match
    total_xp still yields a sane bar. A zero requirement reads as 0%.
    """
    validate_xp(total_xp)
    required = xp_for_level(level, config)
    current = max(0, min(total_xp - cumulative_xp_before_level(level, config), required))
    if required <= 0:
        return LevelProgress(current=0, required=required, percentage=0)
    percentage = max(0, min(100, _round_half_up(current / required * 100)))
    return LevelProgress(current=int(current), required=required, percentage=percentage)


def xp_to_next_level(total_xp: int, level: int, config: XPCurveConfig = DEFAULT_CURVE) -> int:
    """XP still missing to finish `level`."""
    progress = progress_in_level(total_xp, level, config)
    return max(0, progress.required - progress.current)


def progression_state(total_xp: int, config: XPCurveConfig = DEFAULT_CURVE) -> ProgressionState:
    """Derive level and in-level progress from total XP."""
    level = level_from_xp(total_xp, config)
    progress = progress_in_level(total_xp, level, config)
    return ProgressionState(
        total_xp=total_xp,
        level=level,
        xp_into_level=progress.current,
        xp_required_for_level=progress.required,
        percentage=progress.percentage,
    )


def curve_table(levels: int, config: XPCurveConfig = DEFAULT_CURVE) -> list[dict[str, int]]:
    """Rows of {level, xp_required, cumulative_xp} for levels 1..levels."""
    if levels < 1:
        raise InvalidInput(f"levels must be >= 1, got {levels}")
    rows: list[dict[str, int]] = []
    cumulative = 0
    for lv in range(1, levels + 1):
        required = xp_for_level(lv, config)
        rows.append({"level": lv, "xp_required": required, "cumulative_xp": cumulative})
        cumulative += required
    return rows
