"""
YAML -> typed engine settings.

Loads engine settings from engine.yaml (bundled with the package) and
optionally merges user overrides from ~/.meso-scheduler/engine.yaml.

Usage:
    from meso_scheduler.core.engine.config_loader import load_engine_settings
    settings = load_engine_settings()
    settings.history_window_days

If the bundled YAML cannot be read, the Python defaults from config.py are
used.  If the user override file exists but has parse errors, a warning is
logged and the file is ignored.
"""

from __future__ import annotations

import importlib.resources
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..config import HISTORY_WINDOW_DAYS, MAX_RIR, ROLLING_WINDOW, TOP_EXERCISE_COUNT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    history_window_days: int = HISTORY_WINDOW_DAYS
    max_rir: int = MAX_RIR
    rolling_window: int = ROLLING_WINDOW
    top_exercise_count: int = TOP_EXERCISE_COUNT

    def __post_init__(self) -> None:
        """Validate settings."""
        if self.history_window_days < 1:
            raise ValueError("history_window_days must be >= 1")
        if self.max_rir < 0:
            raise ValueError("max_rir must be non-negative")
        if self.rolling_window < 1:
            raise ValueError("rolling_window must be >= 1")
        if self.top_exercise_count < 1:
            raise ValueError("top_exercise_count must be >= 1")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; return {} if it is unreadable or not a mapping."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring settings file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path() -> Path | None:
    """Return the path to the bundled engine.yaml, or None if not found."""
    ref = importlib.resources.files("meso_scheduler").joinpath("engine.yaml")
    candidate = Path(str(ref))
    return candidate if candidate.exists() else None


def get_user_yaml_path() -> Path | None:
    """Return ~/.meso-scheduler/engine.yaml if it exists, else None."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    p = home / ".meso-scheduler" / "engine.yaml"
    return p if p.exists() else None


def load_engine_config(user_path: Path | None = None) -> dict[str, Any]:
    """
    Load and merge engine configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/meso_scheduler/engine.yaml
    2. User override (``user_path`` or ~/.meso-scheduler/engine.yaml)

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        config = _deep_merge(config, _load_yaml_file(bundled))

    user = user_path if user_path is not None else get_user_yaml_path()
    if user is not None and user.exists():
        user_cfg = _load_yaml_file(user)
        if user_cfg:
            config = _deep_merge(config, user_cfg)

    return config


def settings_from_config(config: dict[str, Any]) -> EngineSettings:
    """Map merged config sections onto EngineSettings, keeping defaults for gaps."""
    projection = config.get("projection") or {}
    iterations = config.get("iterations") or {}
    progress = config.get("progress") or {}
    return EngineSettings(
        history_window_days=int(projection.get("history_window_days", HISTORY_WINDOW_DAYS)),
        max_rir=int(iterations.get("max_rir", MAX_RIR)),
        rolling_window=int(progress.get("rolling_window", ROLLING_WINDOW)),
        top_exercise_count=int(progress.get("top_exercise_count", TOP_EXERCISE_COUNT)),
    )


def load_engine_settings(user_path: Path | None = None) -> EngineSettings:
    """Load engine.yaml sources and return typed settings."""
    return settings_from_config(load_engine_config(user_path))
