"""Leaderboard ranking for questrank.

One ranking function serves every scope (global, course, module, world);
a scope only decides which snapshot path is read and which metric ranks.
Ranks are always recomputed here and never trusted from stored data.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from questrank.errors import InvalidInput
from questrank.sources import Snapshot, SnapshotSource

logger = logging.getLogger(__name__)

LEADERBOARD_ROOT = "leaderboards"
DEFAULT_METRIC = "xp"
SCOPE_KINDS = ("global", "course", "module", "world")

# Keys owned by the entry itself rather than carried as metrics.
_IDENTITY_KEYS = ("uid", "displayName", "rank")


@dataclass(frozen=True)
class LeaderboardScope:
    """Which snapshot a leaderboard is read from and what it ranks by."""

    kind: str
    path: str
    metric: str = DEFAULT_METRIC


@dataclass(frozen=True)
class LeaderboardEntry:
    """One ranked user. `metrics` is carried through unmodified."""

    uid: str
    display_name: str
    rank: int
    metrics: dict[str, Any] = field(default_factory=dict)

    def metric(self, name: str, default: Any = 0) -> Any:
        return self.metrics.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        return {"uid": self.uid, "displayName": self.display_name, "rank": self.rank, **self.metrics}


def _require_id(value: str, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{name} must be a non-empty string, got {value!r}")
    if "/" in value:
        raise InvalidInput(f"{name} must not contain '/', got {value!r}")
    return value


def global_scope(metric: str = DEFAULT_METRIC) -> LeaderboardScope:
    return LeaderboardScope("global", f"{LEADERBOARD_ROOT}/globalXP", metric)


def course_scope(course_id: str, metric: str = DEFAULT_METRIC) -> LeaderboardScope:
    _require_id(course_id, "course_id")
    return LeaderboardScope("course", f"{LEADERBOARD_ROOT}/courses/{course_id}", metric)


def module_scope(course_id: str, module_id: str, metric: str = DEFAULT_METRIC) -> LeaderboardScope:
    _require_id(course_id, "course_id")
    _require_id(module_id, "module_id")
    return LeaderboardScope("module", f"{LEADERBOARD_ROOT}/modules/{course_id}_{module_id}", metric)


def world_scope(world_id: str, metric: str = DEFAULT_METRIC) -> LeaderboardScope:
    _require_id(world_id, "world_id")
    return LeaderboardScope("world", f"{LEADERBOARD_ROOT}/worlds/{world_id}", metric)


def make_scope(
    kind: str,
    *,
    course_id: str | None = None,
    module_id: str | None = None,
    world_id: str | None = None,
    metric: str = DEFAULT_METRIC,
) -> LeaderboardScope:
    """Build a scope by kind name. Used by the CLI and MCP server."""
    if kind == "global":
        return global_scope(metric)
    if kind == "course":
        return course_scope(course_id, metric)
    if kind == "module":
        return module_scope(course_id, module_id, metric)
    if kind == "world":
        return world_scope(world_id, metric)
    raise InvalidInput(f"Unknown leaderboard scope {kind!r}; expected one of {', '.join(SCOPE_KINDS)}")


def snapshot_to_records(snapshot: Snapshot) -> list[dict[str, Any]]:
    """Convert a stored ``{uid: {...}}`` snapshot into records carrying their uid."""
    records = []
    for uid, data in snapshot.items():
        if not isinstance(data, Mapping):
            raise InvalidInput(f"Leaderboard record for {uid!r} is not a mapping")
        records.append({**data, "uid": str(uid)})
    return records


def _metric_value(record: Mapping[str, Any], metric: str) -> float:
    value = record.get(metric)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInput(
            f"Metric {metric!r} for {record.get('uid')!r} must be a finite number, got {value!r}"
        )
    return value


def rank_entries(
    records: Iterable[Mapping[str, Any]], metric: str = DEFAULT_METRIC
) -> list[LeaderboardEntry]:
    """Sort records by `metric` descending and assign ranks 1..N.

    Tie-break: uid ascending, so equal scores still get distinct, stable
    ranks. Any stored `rank` on the input is ignored. Inputs are not mutated.
    """
    keyed = []
    for record in records:
        uid = record.get("uid")
        if uid is None or uid == "":
            raise InvalidInput(f"Leaderboard record has no uid: {dict(record)!r}")
        keyed.append((-_metric_value(record, metric), str(uid), record))

    keyed.sort(key=lambda item: (item[0], item[1]))

    entries = []
    for i, (_, uid, record) in enumerate(keyed):
        metrics = {k: v for k, v in record.items() if k not in _IDENTITY_KEYS}
        entries.append(
            LeaderboardEntry(
                uid=uid,
                display_name=str(record.get("displayName") or uid),
                rank=i + 1,
                metrics=metrics,
            )
        )
    logger.debug("Ranked %d entries by %s", len(entries), metric)
    return entries


def rank_snapshot(
    snapshot: Snapshot | None, scope: LeaderboardScope
) -> list[LeaderboardEntry] | None:
    """Rank a stored snapshot. None in, None out: no data is not an error."""
    if snapshot is None:
        return None
    return rank_entries(snapshot_to_records(snapshot), scope.metric)


def load_leaderboard(
    source: SnapshotSource, scope: LeaderboardScope
) -> list[LeaderboardEntry] | None:
    """Single-shot read of a scope's snapshot, ranked."""
    snapshot = source.read(scope.path)
    if snapshot is None:
        logger.debug("No leaderboard data at %s", scope.path)
    return rank_snapshot(snapshot, scope)


def find_entry(entries: Iterable[LeaderboardEntry] | None, uid: str) -> LeaderboardEntry | None:
    """Return the entry for uid, or None if the user is not on the board."""
    for entry in entries or ():
        if entry.uid == uid:
            return entry
    return None
