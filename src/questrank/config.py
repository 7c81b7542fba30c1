"""Configuration file management for questrank.

Reads and writes ~/.questrank/config.json: the XP curve and the data
directory that holds leaderboard snapshots. QUESTRANK_CONFIG overrides the
default location.
"""
from __future__ import annotations

import json
import os
from pathlib import Path

from questrank.errors import InvalidInput
from questrank.levels import DEFAULT_CURVE, XPCurveConfig

DEFAULT_CONFIG_PATH: Path = Path.home() / ".questrank" / "config.json"
CONFIG_ENV_VAR = "QUESTRANK_CONFIG"


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Explicit path, then $QUESTRANK_CONFIG, then the default."""
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | None = None) -> dict:
    """Load config from JSON file. Returns {} if file missing or invalid."""
    path = resolve_config_path(config_path)
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict, config_path: Path | None = None) -> None:
    """Write config dict to JSON file. Creates parent dirs if needed."""
    path = resolve_config_path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def get_xp_curve(config_path: Path | None = None) -> XPCurveConfig:
    """Return the configured XP curve, or the default curve if none is set.

    Raises InvalidInput if the stored curve is invalid.
    """
    raw = load_config(config_path).get("xp_curve")
    if not raw:
        return DEFAULT_CURVE
    if not isinstance(raw, dict):
        raise InvalidInput(f"xp_curve must be a JSON object, got {raw!r}")
    return XPCurveConfig.from_dict(raw)


def set_xp_curve(curve: XPCurveConfig, config_path: Path | None = None) -> None:
    """Persist the XP curve to config."""
    config = load_config(config_path)
    config["xp_curve"] = curve.to_dict()
    save_config(config, config_path)


def get_data_dir(config_path: Path | None = None) -> Path | None:
    """Return the configured snapshot directory, or None if not set."""
    raw = load_config(config_path).get("data_dir")
    if raw:
        return Path(raw)
    return None


def set_data_dir(directory: Path, config_path: Path | None = None) -> None:
    """Persist the snapshot directory path to config."""
    config = load_config(config_path)
    config["data_dir"] = str(directory)
    save_config(config, config_path)
