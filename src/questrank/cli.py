"""CLI commands for questrank."""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path

from questrank.config import (
    get_data_dir,
    get_xp_curve,
    load_config,
    resolve_config_path,
    set_data_dir,
    set_xp_curve,
)
from questrank.display import (
    console,
    print_config,
    print_curve,
    print_error,
    print_leaderboard,
    print_level_up,
    print_no_data_message,
    print_progress,
)
from questrank.errors import QuestRankError, SubscriptionError
from questrank.leaderboard import (
    SCOPE_KINDS,
    LeaderboardEntry,
    LeaderboardScope,
    find_entry,
    load_leaderboard,
    make_scope,
)
from questrank.levels import CURVE_TYPES, XPCurveConfig, curve_table, progression_state
from questrank.levelup import crossed_levels, evaluate
from questrank.live import subscribe_leaderboard
from questrank.sources import JsonDirectorySource

logger = logging.getLogger(__name__)


def _add_scope_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--scope", choices=SCOPE_KINDS, default="global", help="Leaderboard scope")
    parser.add_argument("--course", default=None, help="Course id (course and module scopes)")
    parser.add_argument("--module", default=None, help="Module id (module scope)")
    parser.add_argument("--world", default=None, help="World id (world scope)")
    parser.add_argument("--metric", default="xp", help="Metric to rank by")
    parser.add_argument("--dir", "-d", default=None, help="Override snapshot directory")
    parser.add_argument("--highlight", default=None, help="uid to highlight")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="questrank",
        description="XP levels and leaderboards for gamified task tracking",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    level_p = subparsers.add_parser("level", help="Show level and progress for a total XP")
    level_p.add_argument("--xp", type=int, required=True, help="Total accumulated XP")

    gain_p = subparsers.add_parser("gain", help="Evaluate an XP gain for level-ups")
    gain_p.add_argument("--xp", type=int, required=True, help="Total XP before the gain")
    gain_p.add_argument("--gain", type=int, required=True, help="XP gained")

    curve_p = subparsers.add_parser("curve", help="Print the XP curve")
    curve_p.add_argument("--levels", type=int, default=10, help="Number of levels to show")

    config_p = subparsers.add_parser("config", help="Show or change configuration")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Show effective configuration")
    set_curve_p = config_sub.add_parser("set-curve", help="Set the XP curve")
    set_curve_p.add_argument("--base-xp", type=float, default=None)
    set_curve_p.add_argument("--growth-factor", type=float, default=None)
    set_curve_p.add_argument("--type", choices=CURVE_TYPES, default=None)
    set_dir_p = config_sub.add_parser("set-dir", help="Set the snapshot directory")
    set_dir_p.add_argument("directory")

    lb_parser = subparsers.add_parser("leaderboard", help="Ranked leaderboards")
    lb_sub = lb_parser.add_subparsers(dest="lb_command")
    lb_show_p = lb_sub.add_parser("show", help="Show a leaderboard once")
    _add_scope_args(lb_show_p)
    lb_watch_p = lb_sub.add_parser("watch", help="Re-render a leaderboard on every change")
    _add_scope_args(lb_watch_p)
    lb_watch_p.add_argument("--interval", type=float, default=2.0, help="Poll interval in seconds")
    lb_watch_p.add_argument("--count", type=int, default=None, help="Stop after N renders")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    command = args.command or "curve"

    try:
        if command == "level":
            do_level(args.xp)
        elif command == "gain":
            do_gain(args.xp, args.gain)
        elif command == "curve":
            do_curve(getattr(args, "levels", 10))
        elif command == "config":
            cfg_cmd = getattr(args, "config_command", None)
            if cfg_cmd == "set-curve":
                do_config_set_curve(
                    base_xp=args.base_xp, growth_factor=args.growth_factor, curve_type=args.type
                )
            elif cfg_cmd == "set-dir":
                do_config_set_dir(args.directory)
            else:
                do_config_show()
        elif command == "leaderboard":
            lb_cmd = getattr(args, "lb_command", None) or "show"
            if lb_cmd == "watch":
                do_leaderboard_watch(
                    _scope_from_args(args), directory=args.dir, highlight=args.highlight,
                    interval=args.interval, count=args.count,
                )
            elif hasattr(args, "scope"):
                do_leaderboard_show(_scope_from_args(args), directory=args.dir, highlight=args.highlight)
            else:
                do_leaderboard_show(make_scope("global"))
    except QuestRankError as exc:
        logger.debug("Command %s failed", command, exc_info=True)
        print_error(str(exc))
        raise SystemExit(1) from exc


def _scope_from_args(args: argparse.Namespace) -> LeaderboardScope:
    return make_scope(
        args.scope, course_id=args.course, module_id=args.module, world_id=args.world,
        metric=args.metric,
    )


def do_level(total_xp: int, config_path: Path | None = None) -> dict:
    """Show level and in-level progress for a total XP value."""
    curve = get_xp_curve(config_path)
    state = progression_state(total_xp, curve)
    result = state.to_dict()
    print_progress(result)
    return result


def do_gain(total_xp: int, gain: int, config_path: Path | None = None) -> dict:
    """Evaluate an XP gain and show whether it crossed a level boundary."""
    curve = get_xp_curve(config_path)
    outcome = evaluate(total_xp, gain, curve)
    result = {
        **outcome.to_dict(),
        "total_xp_before": total_xp,
        "xp_gained": gain,
        "total_xp_after": total_xp + gain,
        "crossed_levels": crossed_levels(outcome),
    }
    print_level_up(result)
    return result


def do_curve(levels: int = 10, config_path: Path | None = None) -> dict:
    """Print the XP required per level."""
    curve = get_xp_curve(config_path)
    rows = curve_table(levels, curve)
    print_curve(rows, curve.to_dict())
    return {"curve": curve.to_dict(), "rows": rows}


def do_config_show(config_path: Path | None = None) -> dict:
    """Show the effective configuration."""
    path = resolve_config_path(config_path)
    data_dir = get_data_dir(path)
    result = {
        "config_path": str(path),
        "xp_curve": get_xp_curve(path).to_dict(),
        "data_dir": str(data_dir) if data_dir else None,
    }
    print_config(result)
    return result


def do_config_set_curve(
    base_xp: float | None = None,
    growth_factor: float | None = None,
    curve_type: str | None = None,
    config_path: Path | None = None,
) -> dict:
    """Update the XP curve. Unspecified fields keep their current value."""
    current = get_xp_curve(config_path)
    curve = XPCurveConfig(
        base_xp=current.base_xp if base_xp is None else base_xp,
        growth_factor=current.growth_factor if growth_factor is None else growth_factor,
        type=current.type if curve_type is None else curve_type,
    )
    set_xp_curve(curve, config_path)
    console.print(f"[green]XP curve saved:[/] {curve.to_dict()}")
    return {"ok": True, "xp_curve": curve.to_dict()}


def do_config_set_dir(directory: str, config_path: Path | None = None) -> dict:
    """Set the snapshot directory used by leaderboard commands."""
    expanded = Path(directory).expanduser().resolve()
    set_data_dir(expanded, config_path)
    console.print(f"[green]Snapshot directory set:[/] {expanded}")
    return {"ok": True, "data_dir": str(expanded)}


def _resolve_source(directory: str | None, config_path: Path | None) -> JsonDirectorySource | None:
    if directory:
        lb_dir = Path(directory).expanduser().resolve()
    else:
        lb_dir = get_data_dir(config_path)
    if lb_dir is None:
        print_error("No snapshot directory configured. Run: questrank config set-dir <path>")
        return None
    if not lb_dir.is_dir():
        print_error(f"Directory not found: {lb_dir}")
        return None
    return JsonDirectorySource(lb_dir)


def _render(scope: LeaderboardScope, entries: list[LeaderboardEntry] | None, highlight: str | None) -> None:
    if entries is None:
        print_no_data_message(scope.path)
        return
    print_leaderboard(
        [e.to_dict() for e in entries],
        title=f"Leaderboard: {scope.path}",
        metric=scope.metric,
        highlight_uid=highlight,
    )


def do_leaderboard_show(
    scope: LeaderboardScope,
    directory: str | None = None,
    highlight: str | None = None,
    config_path: Path | None = None,
) -> dict:
    """Show a ranked leaderboard read once from the snapshot directory."""
    source = _resolve_source(directory, config_path)
    if source is None:
        return {"ok": False, "reason": "no_dir"}

    entries = load_leaderboard(source, scope)
    _render(scope, entries, highlight)
    if entries is None:
        return {"ok": True, "entries": None, "count": 0}

    result: dict = {"ok": True, "entries": [e.to_dict() for e in entries], "count": len(entries)}
    if highlight:
        mine = find_entry(entries, highlight)
        result["your_rank"] = mine.rank if mine else None
    return result


def do_leaderboard_watch(
    scope: LeaderboardScope,
    directory: str | None = None,
    highlight: str | None = None,
    interval: float = 2.0,
    count: int | None = None,
    config_path: Path | None = None,
) -> dict:
    """Re-render a leaderboard whenever its snapshot file changes.

    Stops after `count` renders, or on Ctrl-C.
    """
    source = _resolve_source(directory, config_path)
    if source is None:
        return {"ok": False, "reason": "no_dir"}

    renders: list[list[LeaderboardEntry] | None] = []
    errors: list[SubscriptionError] = []

    def on_update(entries: list[LeaderboardEntry] | None) -> None:
        renders.append(entries)
        _render(scope, entries, highlight)

    def on_error(error: SubscriptionError) -> None:
        errors.append(error)
        print_error(str(error))

    subscription = subscribe_leaderboard(source, scope, on_update, on_error)
    try:
        while count is None or len(renders) < count:
            time.sleep(interval)
            source.poll()
    except KeyboardInterrupt:
        console.print("[grey50]Stopped watching.[/]")
    finally:
        subscription.unsubscribe()
    return {"ok": True, "renders": len(renders), "errors": len(errors)}
