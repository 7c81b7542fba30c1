"""Rich terminal display for questrank."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()

# Medal colors for the top three ranks
_RANK_COLORS: dict[int, str] = {
    1: "gold1",
    2: "grey70",
    3: "dark_orange3",
}


def format_number(n: int) -> str:
    """Format large numbers: 421543 -> '421.5K', 1200 -> '1,200', 1234567 -> '1.2M'."""
    if n >= 1_000_000:
        value = n / 1_000_000
        if value >= 100:
            return f"{value:.0f}M"
        return f"{value:.1f}M"
    if n >= 10_000:
        value = n / 1_000
        if value >= 1000:
            return f"{value:.0f}K"
        return f"{value:.1f}K"
    return f"{n:,}"


def _xp_bar(current: int, total: int, width: int = 20) -> str:
    """Render an XP progress bar as text: [████████░░░░░░░░░░░░]."""
    if total <= 0:
        return "[" + "░" * width + "]"
    ratio = max(0.0, min(current / total, 1.0))
    filled = int(ratio * width)
    empty = width - filled
    return "[" + "█" * filled + "░" * empty + "]"


def print_progress(data: dict) -> None:
    """Print a player's level and in-level progress.

    data has: total_xp, level, xp_into_level, xp_required_for_level,
    xp_to_next_level, percentage.
    """
    level = data.get("level", 1)
    current = data.get("xp_into_level", 0)
    required = data.get("xp_required_for_level", 0)

    lines: list[str] = []
    lines.append("")
    lines.append(f"  [bold cyan]Level {level}[/]")
    lines.append(
        f"  {_xp_bar(current, required)} "
        f"{format_number(current)}/{format_number(required)} XP ({data.get('percentage', 0)}%)"
    )
    lines.append(f"  Next level in: [bold]{format_number(data.get('xp_to_next_level', 0))}[/] XP")
    lines.append(f"  Total: [bold]{format_number(data.get('total_xp', 0))}[/] XP")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]PROGRESS[/]",
        box=box.ROUNDED,
        border_style="cyan",
        width=50,
    )
    console.print(panel)


def print_level_up(result: dict) -> None:
    """Print the outcome of an XP gain (result of LevelUpResult.to_dict plus totals)."""
    start = result.get("start_level", 1)
    end = result.get("end_level", 1)
    end_progress = result.get("end_progress", {})

    lines: list[str] = []
    lines.append("")
    lines.append(
        f"  +{format_number(result.get('xp_gained', 0))} XP  "
        f"({format_number(result.get('total_xp_before', 0))} → "
        f"{format_number(result.get('total_xp_after', 0))})"
    )
    if result.get("leveled_up"):
        gained = result.get("levels_gained", 0)
        suffix = "s" if gained != 1 else ""
        lines.append(f"  [bold green]LEVEL UP![/] {start} → {end} (+{gained} level{suffix})")
        border = "green"
    else:
        lines.append(f"  Level {end}")
        border = "cyan"
    current = end_progress.get("current", 0)
    required = end_progress.get("required", 0)
    lines.append(
        f"  {_xp_bar(current, required)} "
        f"{format_number(current)}/{format_number(required)} XP ({end_progress.get('percentage', 0)}%)"
    )
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]XP GAINED[/]",
        box=box.ROUNDED,
        border_style=border,
        width=50,
    )
    console.print(panel)


def print_curve(rows: list[dict], curve: dict) -> None:
    """Print the XP curve table."""
    table = Table(
        title=f"XP Curve ({curve.get('type')}, base {curve.get('baseXP')}, x{curve.get('growthFactor')})",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("Level", justify="right")
    table.add_column("XP Required", justify="right")
    table.add_column("Cumulative XP", justify="right")
    for row in rows:
        table.add_row(
            str(row["level"]),
            format_number(row["xp_required"]),
            format_number(row["cumulative_xp"]),
        )
    console.print(table)


def print_leaderboard(
    entries: list[dict], title: str = "Leaderboard", metric: str = "xp",
    highlight_uid: str | None = None,
) -> None:
    """Print a ranked leaderboard. Each dict is a LeaderboardEntry.to_dict()."""
    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("#", justify="right", width=4)
    table.add_column("Player", min_width=16)
    table.add_column(metric.upper() if metric == "xp" else metric, justify="right")
    table.add_column("Level", justify="right")

    for entry in entries:
        rank = entry.get("rank", 0)
        color = _RANK_COLORS.get(rank, "white")
        name = escape(str(entry.get("displayName") or entry.get("uid", "?")))
        if highlight_uid and entry.get("uid") == highlight_uid:
            name = f"[bold reverse]{name}[/]"
        value = entry.get(metric, 0)
        value_text = format_number(value) if isinstance(value, int) else str(value)
        level = entry.get("level")
        table.add_row(
            f"[{color}]{rank}[/{color}]",
            name,
            value_text,
            str(level) if level is not None else "-",
        )

    console.print(table)


def print_no_data_message(path: str) -> None:
    """Print message when a leaderboard has no data yet."""
    panel = Panel(
        f"\n  No leaderboard data at [bold]{path}[/] yet.\n",
        title="[bold]QUESTRANK[/]",
        box=box.ROUNDED,
        border_style="grey50",
        width=50,
    )
    console.print(panel)


def print_config(config: dict) -> None:
    """Print the effective configuration."""
    curve = config.get("xp_curve", {})
    lines: list[str] = []
    lines.append("")
    lines.append(f"  Config file:   {config.get('config_path', '-')}")
    lines.append(f"  Curve type:    {curve.get('type')}")
    lines.append(f"  Base XP:       {curve.get('baseXP')}")
    lines.append(f"  Growth factor: {curve.get('growthFactor')}")
    lines.append(f"  Data dir:      {config.get('data_dir') or 'not set'}")
    lines.append("")
    panel = Panel(
        "\n".join(lines),
        title="[bold]Config[/]",
        box=box.ROUNDED,
        border_style="blue",
        width=60,
    )
    console.print(panel)


def print_error(message: str) -> None:
    console.print(f"[red]{message}[/]")
