"""Tests for the config module."""
import json
from pathlib import Path

import pytest

from questrank.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    get_data_dir,
    get_xp_curve,
    load_config,
    resolve_config_path,
    save_config,
    set_data_dir,
    set_xp_curve,
)
from questrank.errors import InvalidInput
from questrank.levels import DEFAULT_CURVE, XPCurveConfig


class TestResolveConfigPath:
    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "env.json"))
        assert resolve_config_path(tmp_path / "explicit.json") == tmp_path / "explicit.json"

    def test_env_var(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "env.json"))
        assert resolve_config_path() == tmp_path / "env.json"

    def test_default(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert resolve_config_path() == DEFAULT_CONFIG_PATH


class TestLoadConfig:
    def test_missing_file_returns_empty(self, tmp_path):
        assert load_config(tmp_path / "nonexistent.json") == {}

    def test_invalid_json_returns_empty(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json", encoding="utf-8")
        assert load_config(path) == {}

    def test_non_object_returns_empty(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_config(path) == {}

    def test_loads_valid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"key": "value"}', encoding="utf-8")
        assert load_config(path) == {"key": "value"}


class TestSaveConfig:
    def test_creates_file(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"hello": "world"}, path)
        assert json.loads(path.read_text()) == {"hello": "world"}

    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "sub" / "dir" / "config.json"
        save_config({}, path)
        assert path.exists()


class TestXpCurve:
    def test_default_when_unset(self, tmp_path):
        assert get_xp_curve(tmp_path / "config.json") == DEFAULT_CURVE

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        curve = XPCurveConfig(base_xp=40, growth_factor=1.0, type="linear")
        set_xp_curve(curve, path)
        assert get_xp_curve(path) == curve
        assert load_config(path)["xp_curve"] == {"baseXP": 40, "growthFactor": 1.0, "type": "linear"}

    def test_invalid_stored_curve_raises(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"xp_curve": {"baseXP": -1}}, path)
        with pytest.raises(InvalidInput):
            get_xp_curve(path)

    def test_partial_curve_uses_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"xp_curve": {"growthFactor": 1.5}}, path)
        curve = get_xp_curve(path)
        assert curve.base_xp == 100
        assert curve.growth_factor == 1.5


class TestDataDir:
    def test_not_set(self, tmp_path):
        assert get_data_dir(tmp_path / "config.json") is None

    def test_set_and_get(self, tmp_path):
        path = tmp_path / "config.json"
        set_data_dir(Path("/shared/snapshots"), path)
        assert get_data_dir(path) == Path("/shared/snapshots")

    def test_preserves_other_config_keys(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"other_key": "keep_me"}, path)
        set_data_dir(Path("/some/path"), path)
        set_xp_curve(DEFAULT_CURVE, path)
        config = load_config(path)
        assert config["other_key"] == "keep_me"
        assert config["data_dir"] == "/some/path"
        assert "xp_curve" in config
