"""
YAML → Exercise loader.

Loads exercise records from individual YAML files in the bundled
``src/muscle_engine/exercises/`` directory.  Each file (e.g.
bench_press.yaml) holds one flat exercise record.

User overrides: place matching files in ``~/.muscle-engine/exercises/``.
A user file is deep-merged over the bundled record, so only changed keys
need to be listed.  A user file whose stem does not match any bundled file
is treated as a new exercise and added to the catalog.

Usage (internal, called by io/stores.py):
    from .loader import load_exercises_from_yaml
    exercises = load_exercises_from_yaml()   # dict, possibly empty
"""

from __future__ import annotations

import warnings
from pathlib import Path

import yaml

from ..engine.config_loader import get_app_home
from ..models import ActivationProfile, Exercise

_REQUIRED_EXERCISE_FIELDS: frozenset[str] = frozenset(
    {
        "exercise_id",
        "name",
        "category",
        "primary_muscles",
        "difficulty",
    }
)


def _str_tuple(value: object, name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"{name} must be a list, got {type(value).__name__}")
    return tuple(str(v) for v in value)


def exercise_from_dict(d: dict) -> Exercise:
    """Convert a raw dict (from YAML or JSON) to an Exercise.

    The activation representation is chosen here, once: a non-empty
    ``muscle_activation`` map wins over ``activation_levels``.

    Raises ValueError if any required field is absent or malformed.
    """
    missing = _REQUIRED_EXERCISE_FIELDS - set(d)
    if missing:
        raise ValueError(f"Exercise missing fields: {sorted(missing)}")

    activation_raw = d.get("muscle_activation") or {}
    levels_raw = d.get("activation_levels") or {}
    if not isinstance(activation_raw, dict) or not isinstance(levels_raw, dict):
        raise ValueError("muscle_activation and activation_levels must be mappings")

    multiplier = d.get("bodyweight_multiplier")

    return Exercise(
        exercise_id=str(d["exercise_id"]),
        name=str(d["name"]),
        category=str(d["category"]),
        equipment=frozenset(_str_tuple(d.get("equipment"), "equipment")),
        primary_muscles=_str_tuple(d["primary_muscles"], "primary_muscles"),
        secondary_muscles=_str_tuple(d.get("secondary_muscles"), "secondary_muscles"),
        difficulty=d["difficulty"],
        activation=ActivationProfile.from_raw(activation_raw, levels_raw),
        tags=frozenset(_str_tuple(d.get("tags"), "tags")),
        movement_pattern=d.get("movement_pattern"),
        mechanics=d.get("mechanics"),
        force=d.get("force"),
        bodyweight_multiplier=float(multiplier) if multiplier is not None else None,
    )


def _load_yaml_file(path: Path) -> dict:
    """Load a YAML file; return {} on read or parse errors."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        warnings.warn(f"muscle-engine: cannot read {path} ({exc})", stacklevel=2)
        return {}
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def get_bundled_exercises_dir() -> Path | None:
    """Return path to the bundled exercises/ data directory, or None if not found."""
    # loader.py lives at src/muscle_engine/core/exercises/loader.py
    # three levels up → src/muscle_engine/
    candidate = Path(__file__).parent.parent.parent / "exercises"
    return candidate if candidate.is_dir() else None


def get_user_exercises_dir() -> Path | None:
    """Return ~/.muscle-engine/exercises/ if it exists, else None."""
    p = get_app_home() / "exercises"
    return p if p.is_dir() else None


def load_exercises_from_yaml(
    bundled_dir: Path | None = None,
    user_dir: Path | None = None,
) -> dict[str, Exercise]:
    """Return {exercise_id: Exercise} loaded from per-exercise YAML files.

    Loads each ``<exercise_id>.yaml`` from the bundled directory.  If a
    matching file exists in the user directory it is deep-merged over the
    bundled record.  User-only files are loaded as new exercises.  Records
    that fail validation are skipped with a warning.

    Args:
        bundled_dir: Defaults to the package's exercises/ directory
        user_dir: Defaults to ~/.muscle-engine/exercises/
    """
    if bundled_dir is None:
        bundled_dir = get_bundled_exercises_dir()
    if user_dir is None:
        user_dir = get_user_exercises_dir()

    result: dict[str, Exercise] = {}

    stems: dict[str, Path] = {}
    if bundled_dir is not None:
        for p in sorted(bundled_dir.glob("*.yaml")):
            stems[p.stem] = p

    user_only: list[Path] = []
    if user_dir is not None:
        for p in sorted(user_dir.glob("*.yaml")):
            if p.stem not in stems:
                user_only.append(p)

    for stem, bundled_path in stems.items():
        raw = _load_yaml_file(bundled_path)
        if not raw:
            continue
        if user_dir is not None:
            user_path = user_dir / f"{stem}.yaml"
            if user_path.exists():
                user_raw = _load_yaml_file(user_path)
                if user_raw:
                    raw = _deep_merge(raw, user_raw)
        try:
            ex = exercise_from_dict(raw)
            result[ex.exercise_id] = ex
        except (ValueError, TypeError) as exc:
            warnings.warn(f"muscle-engine: skipping exercise '{stem}': {exc}", stacklevel=2)

    for p in user_only:
        raw = _load_yaml_file(p)
        if not raw:
            continue
        try:
            ex = exercise_from_dict(raw)
            result[ex.exercise_id] = ex
        except (ValueError, TypeError) as exc:
            warnings.warn(f"muscle-engine: skipping user exercise '{p.stem}': {exc}", stacklevel=2)

    return result
