"""Tests for engine settings loaded from YAML."""

import logging
import tempfile
from pathlib import Path

import pytest

from meso_scheduler.core.config import HISTORY_WINDOW_DAYS, MAX_RIR, ROLLING_WINDOW, TOP_EXERCISE_COUNT
from meso_scheduler.core.engine.config_loader import (
    EngineSettings,
    get_bundled_yaml_path,
    load_engine_config,
    load_engine_settings,
    settings_from_config,
)


@pytest.fixture
def temp_config_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestEngineSettings:

    def test_bundled_yaml_ships_with_package(self):
        assert get_bundled_yaml_path() is not None

    def test_bundled_values_match_defaults(self, temp_config_dir):
        settings = load_engine_settings(temp_config_dir / "absent.yaml")
        assert settings == EngineSettings(
            history_window_days=HISTORY_WINDOW_DAYS,
            max_rir=MAX_RIR,
            rolling_window=ROLLING_WINDOW,
            top_exercise_count=TOP_EXERCISE_COUNT,
        )

    def test_user_override_merges_per_key(self, temp_config_dir):
        user = temp_config_dir / "engine.yaml"
        user.write_text("projection:\n  history_window_days: 90\nprogress:\n  rolling_window: 2\n")

        settings = load_engine_settings(user)

        assert settings.history_window_days == 90
        assert settings.rolling_window == 2
        assert settings.max_rir == MAX_RIR
        assert settings.top_exercise_count == TOP_EXERCISE_COUNT

    def test_broken_user_file_is_ignored(self, temp_config_dir, caplog):
        user = temp_config_dir / "engine.yaml"
        user.write_text("projection: [unclosed\n")

        with caplog.at_level(logging.WARNING):
            config = load_engine_config(user)

        assert config["projection"]["history_window_days"] == HISTORY_WINDOW_DAYS
        assert "Ignoring settings file" in caplog.text

    def test_empty_config_uses_defaults(self):
        assert settings_from_config({}) == EngineSettings()

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            settings_from_config({"progress": {"rolling_window": 0}})
        with pytest.raises(ValueError):
            EngineSettings(max_rir=-1)
