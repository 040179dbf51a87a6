"""
YAML → typed engine settings.

Defaults come from config.py; a user file at
``~/.muscle-engine/config.yaml`` may override a subset of them:

    reference_bodyweight_kg: 82
    recovery_rate_per_day: 0.4
    secondary_volume_share: 0.4
    volume_thresholds:
      small: {light: 1800, moderate: 3600, heavy: 5400}

Usage:
    from muscle_engine.core.engine.config_loader import load_engine_settings
    settings = load_engine_settings()

If the user file has parse errors or invalid values, a warning is issued
and the affected values fall back to the defaults (no crash).
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..config import (
    DEFAULT_BODYWEIGHT_KG,
    RECOVERY_RATE_PER_DAY,
    SECONDARY_VOLUME_SHARE,
    VOLUME_THRESHOLDS,
    VolumeThresholds,
)

CONFIG_FILENAME = "config.yaml"
HOME_ENV_VAR = "MUSCLE_ENGINE_HOME"


@dataclass(frozen=True)
class EngineSettings:
    """Tunable parameters passed explicitly to the fatigue engine."""

    reference_bodyweight_kg: float = DEFAULT_BODYWEIGHT_KG
    recovery_rate_per_day: float = RECOVERY_RATE_PER_DAY
    secondary_volume_share: float = SECONDARY_VOLUME_SHARE
    volume_thresholds: dict[str, VolumeThresholds] = field(
        default_factory=lambda: dict(VOLUME_THRESHOLDS)
    )

    def __post_init__(self) -> None:
        if self.reference_bodyweight_kg <= 0:
            raise ValueError("reference_bodyweight_kg must be positive")
        if not 0 < self.recovery_rate_per_day <= 1:
            raise ValueError("recovery_rate_per_day must be within (0, 1]")
        if not 0 <= self.secondary_volume_share <= 1:
            raise ValueError("secondary_volume_share must be within [0, 1]")
        missing = {"small", "medium", "large"} - set(self.volume_thresholds)
        if missing:
            raise ValueError(f"volume_thresholds missing sizes: {sorted(missing)}")
        for tier in ("light", "moderate", "heavy"):
            small = getattr(self.volume_thresholds["small"], tier)
            medium = getattr(self.volume_thresholds["medium"], tier)
            large = getattr(self.volume_thresholds["large"], tier)
            if not small < medium < large:
                raise ValueError(f"{tier} thresholds must grow with muscle size")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; warn and return {} on parse errors."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        warnings.warn(f"muscle-engine: ignoring {path} ({exc})", stacklevel=2)
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


def _defaults_as_dict() -> dict[str, Any]:
    return {
        "reference_bodyweight_kg": DEFAULT_BODYWEIGHT_KG,
        "recovery_rate_per_day": RECOVERY_RATE_PER_DAY,
        "secondary_volume_share": SECONDARY_VOLUME_SHARE,
        "volume_thresholds": {
            size: {"light": t.light, "moderate": t.moderate, "heavy": t.heavy}
            for size, t in VOLUME_THRESHOLDS.items()
        },
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_app_home() -> Path:
    """Return the data directory: $MUSCLE_ENGINE_HOME or ~/.muscle-engine."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".muscle-engine"


def get_user_config_path() -> Path | None:
    """Return the user config.yaml if it exists, else None."""
    p = get_app_home() / CONFIG_FILENAME
    return p if p.exists() else None


def settings_from_dict(d: dict[str, Any]) -> EngineSettings:
    """
    Convert a raw dict (from YAML) to EngineSettings.

    Raises:
        ValueError: If a value has the wrong type or breaks an invariant
    """
    try:
        thresholds = {
            size: VolumeThresholds(
                light=float(t["light"]),
                moderate=float(t["moderate"]),
                heavy=float(t["heavy"]),
            )
            for size, t in d["volume_thresholds"].items()
        }
        return EngineSettings(
            reference_bodyweight_kg=float(d["reference_bodyweight_kg"]),
            recovery_rate_per_day=float(d["recovery_rate_per_day"]),
            secondary_volume_share=float(d["secondary_volume_share"]),
            volume_thresholds=thresholds,
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"malformed settings: {exc}") from exc


def load_engine_settings(path: Path | None = None) -> EngineSettings:
    """
    Load settings, merging a user YAML file over the defaults.

    Args:
        path: Explicit config file; defaults to the user config path

    Returns:
        EngineSettings (defaults if no file or the file is invalid)
    """
    config = _defaults_as_dict()

    if path is None:
        path = get_user_config_path()
    if path is None or not path.exists():
        return EngineSettings()

    config = _deep_merge(config, _load_yaml_file(path))
    try:
        return settings_from_dict(config)
    except ValueError as exc:
        warnings.warn(f"muscle-engine: invalid settings in {path} ({exc}); using defaults", stacklevel=2)
        return EngineSettings()
