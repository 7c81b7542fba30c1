"""MCP server for questrank.

Exposes level math and leaderboards as MCP tools so an assistant can query
them mid-conversation.
Run via: python3 -m questrank.mcp_server
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from questrank.config import get_data_dir, get_xp_curve
from questrank.errors import QuestRankError
from questrank.leaderboard import find_entry, load_leaderboard, make_scope
from questrank.levels import curve_table, progression_state
from questrank.levelup import crossed_levels, evaluate
from questrank.sources import JsonDirectorySource

mcp = FastMCP(name="questrank")


@mcp.tool()
def get_progress(total_xp: int) -> dict[str, Any]:
    """Get level and in-level progress for a total XP value."""
    try:
        return progression_state(total_xp, get_xp_curve()).to_dict()
    except QuestRankError as exc:
        return {"error": str(exc)}


@mcp.tool()
def evaluate_gain(total_xp_before: int, xp_gained: int) -> dict[str, Any]:
    """Check whether an XP gain crosses one or more level boundaries."""
    try:
        outcome = evaluate(total_xp_before, xp_gained, get_xp_curve())
    except QuestRankError as exc:
        return {"error": str(exc)}
    return {**outcome.to_dict(), "crossed_levels": crossed_levels(outcome)}


@mcp.tool()
def get_curve(levels: int = 10) -> dict[str, Any]:
    """Get XP required per level, plus the cumulative XP to start each level."""
    try:
        curve = get_xp_curve()
        return {"curve": curve.to_dict(), "rows": curve_table(levels, curve)}
    except QuestRankError as exc:
        return {"error": str(exc)}


@mcp.tool()
def get_leaderboard(
    scope: str = "global",
    course_id: str = "",
    module_id: str = "",
    world_id: str = "",
    metric: str = "xp",
    directory: str = "",
    uid: str = "",
) -> dict[str, Any]:
    """Read a ranked leaderboard.

    scope: global, course, module or world.
    directory: snapshot directory; if empty, uses the configured one.
    uid: optional user whose rank is returned as your_rank.
    """
    lb_dir = Path(directory) if directory else get_data_dir()
    if lb_dir is None or not lb_dir.is_dir():
        return {
            "error": "No snapshot directory found. "
            "Run: questrank config set-dir /path/to/snapshots"
        }

    try:
        lb_scope = make_scope(
            scope, course_id=course_id or None, module_id=module_id or None,
            world_id=world_id or None, metric=metric,
        )
        entries = load_leaderboard(JsonDirectorySource(lb_dir), lb_scope)
    except QuestRankError as exc:
        return {"error": str(exc)}

    if entries is None:
        return {"entries": None, "count": 0, "path": lb_scope.path, "your_rank": None}

    mine = find_entry(entries, uid) if uid else None
    return {
        "entries": [e.to_dict() for e in entries],
        "count": len(entries),
        "path": lb_scope.path,
        "your_rank": mine.rank if mine else None,
    }


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
