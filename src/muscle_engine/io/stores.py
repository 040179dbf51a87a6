"""
Storage for the exercise catalog and per-muscle fatigue state.

Two boundaries are defined as Protocols so the tracker can work against
any backend:

- CatalogStore: exercises (read) and derived relationships (read/write)
- StateStore:   MuscleState records (read/write, plus an atomic
                read-modify-write per muscle)

In-memory implementations are used by tests and previews; the JSON
implementations persist under the app home directory:

    ~/.muscle-engine/relationships.json
    ~/.muscle-engine/muscle_state.json
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Iterable, Mapping, Protocol

from ..core.engine.config_loader import get_app_home
from ..core.exercises.loader import load_exercises_from_yaml
from ..core.models import Exercise, ExerciseRelationships, MuscleState
from .serializers import (
    ValidationError,
    dict_to_muscle_state,
    dict_to_relationships,
    muscle_state_to_dict,
    relationships_to_dict,
)

logger = logging.getLogger(__name__)

RELATIONSHIPS_FILENAME = "relationships.json"
MUSCLE_STATE_FILENAME = "muscle_state.json"


class CatalogStore(Protocol):
    """Read access to exercises plus storage for derived relationships."""

    def get_exercise(self, exercise_id: str) -> Exercise | None: ...

    def get_all_exercises(self) -> list[Exercise]: ...

    def put_relationships(self, exercise_id: str, record: ExerciseRelationships) -> None: ...

    def replace_relationships(self, records: Mapping[str, ExerciseRelationships]) -> None: ...

    def get_relationships(self, exercise_id: str) -> ExerciseRelationships | None: ...


StateUpdate = Callable[[MuscleState | None], MuscleState]


class StateStore(Protocol):
    """Per-muscle fatigue state storage."""

    def get_muscle_state(self, muscle_id: str) -> MuscleState | None: ...

    def get_all_muscle_states(self) -> list[MuscleState]: ...

    def put_muscle_state(self, state: MuscleState) -> None: ...

    def update_muscle_state(self, muscle_id: str, update: StateUpdate) -> MuscleState: ...


# ---------------------------------------------------------------------------
# In-memory stores
# ---------------------------------------------------------------------------


class InMemoryCatalogStore:
    """Catalog held in a dict; relationships are kept alongside it."""

    def __init__(self, exercises: Mapping[str, Exercise] | Iterable[Exercise]):
        if isinstance(exercises, Mapping):
            self._exercises = dict(exercises)
        else:
            self._exercises = {e.exercise_id: e for e in exercises}
        self._relationships: dict[str, ExerciseRelationships] = {}

    def get_exercise(self, exercise_id: str) -> Exercise | None:
        return self._exercises.get(exercise_id)

    def get_all_exercises(self) -> list[Exercise]:
        return list(self._exercises.values())

    def put_relationships(self, exercise_id: str, record: ExerciseRelationships) -> None:
        self._relationships[exercise_id] = record

    def replace_relationships(self, records: Mapping[str, ExerciseRelationships]) -> None:
        self._relationships = {k: v for k, v in records.items() if k in self._exercises}

    def get_relationships(self, exercise_id: str) -> ExerciseRelationships | None:
        if exercise_id not in self._exercises:
            return None
        return self._relationships.get(exercise_id)


class InMemoryStateStore:
    """MuscleState records held in a dict."""

    def __init__(self, states: Iterable[MuscleState] = ()):
        self._states = {s.muscle_id: s for s in states}
        self._lock = threading.Lock()

    def get_muscle_state(self, muscle_id: str) -> MuscleState | None:
        return self._states.get(muscle_id)

    def get_all_muscle_states(self) -> list[MuscleState]:
        return list(self._states.values())

    def put_muscle_state(self, state: MuscleState) -> None:
        with self._lock:
            self._states[state.muscle_id] = state

    def update_muscle_state(self, muscle_id: str, update: StateUpdate) -> MuscleState:
        with self._lock:
            state = update(self.get_muscle_state(muscle_id))
            self._states[muscle_id] = state
        return state


# ---------------------------------------------------------------------------
# JSON file stores
# ---------------------------------------------------------------------------


def _read_json(path: Path) -> dict:
    """Load a JSON object from path; a missing file reads as {}."""
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Expected a JSON object in {path}")
    return data


def _write_json_atomic(path: Path, data: dict) -> None:
    """Write data to path via a temp file in the same directory + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class JsonCatalogStore:
    """
    Catalog backed by the bundled YAML exercise files.

    Exercises are loaded once from the bundled (and user) YAML files.
    Relationship records are persisted to relationships.json as
    ``{exercise_id: record}``.  Records whose exercise is no longer in the
    catalog are never served and are dropped by the next rebuild.
    """

    def __init__(
        self,
        data_dir: str | Path,
        exercises: Mapping[str, Exercise] | None = None,
    ):
        """
        Args:
            data_dir: Directory holding relationships.json
            exercises: Catalog to serve (default: loaded from YAML)
        """
        self.data_dir = Path(data_dir)
        self.relationships_path = self.data_dir / RELATIONSHIPS_FILENAME
        self._exercises = dict(exercises) if exercises is not None else load_exercises_from_yaml()
        self._lock = threading.Lock()

    def get_exercise(self, exercise_id: str) -> Exercise | None:
        return self._exercises.get(exercise_id)

    def get_all_exercises(self) -> list[Exercise]:
        return list(self._exercises.values())

    def load_relationships(self) -> dict[str, ExerciseRelationships]:
        """
        Load every stored relationship record.

        Raises:
            ValidationError: If the file or a record is malformed
        """
        raw = _read_json(self.relationships_path)
        records = {}
        for exercise_id, data in raw.items():
            if exercise_id not in self._exercises:
                continue
            try:
                records[exercise_id] = dict_to_relationships(data)
            except (ValidationError, AttributeError) as e:
                raise ValidationError(
                    f"Error parsing relationships for '{exercise_id}' in {self.relationships_path}: {e}"
                ) from e
        return records

    def get_relationships(self, exercise_id: str) -> ExerciseRelationships | None:
        return self.load_relationships().get(exercise_id)

    def put_relationships(self, exercise_id: str, record: ExerciseRelationships) -> None:
        with self._lock:
            raw = _read_json(self.relationships_path)
            raw[exercise_id] = relationships_to_dict(record)
            _write_json_atomic(self.relationships_path, raw)
        logger.debug("Stored relationships for %r in %s", exercise_id, self.relationships_path)

    def replace_relationships(self, records: Mapping[str, ExerciseRelationships]) -> None:
        """Write the complete relationship mapping in one atomic write."""
        raw = {
            exercise_id: relationships_to_dict(record)
            for exercise_id, record in records.items()
            if exercise_id in self._exercises
        }
        with self._lock:
            _write_json_atomic(self.relationships_path, raw)
        logger.debug("Stored %d relationship records in %s", len(raw), self.relationships_path)


class JsonStateStore:
    """
    Muscle state persisted as one JSON object ``{muscle_id: state}``.

    Every write replaces the whole file atomically under the store's lock.
    update_muscle_state holds that lock across read, update and write, so
    threads sharing one store instance cannot interleave a read-merge-write
    of the same file.  Separate processes are not coordinated.
    """

    def __init__(self, state_path: str | Path):
        """
        Args:
            state_path: Path to muscle_state.json
        """
        self.state_path = Path(state_path)
        self._lock = threading.Lock()

    def exists(self) -> bool:
        """Check if the state file exists."""
        return self.state_path.exists()

    def _load(self) -> dict[str, MuscleState]:
        raw = _read_json(self.state_path)
        states = {}
        for muscle_id, data in raw.items():
            try:
                states[muscle_id] = dict_to_muscle_state(data)
            except (ValidationError, AttributeError, TypeError) as e:
                raise ValidationError(
                    f"Error parsing state for '{muscle_id}' in {self.state_path}: {e}"
                ) from e
        return states

    def get_muscle_state(self, muscle_id: str) -> MuscleState | None:
        return self._load().get(muscle_id)

    def get_all_muscle_states(self) -> list[MuscleState]:
        return sorted(self._load().values(), key=lambda s: s.muscle_id)

    def put_muscle_state(self, state: MuscleState) -> None:
        with self._lock:
            raw = _read_json(self.state_path)
            raw[state.muscle_id] = muscle_state_to_dict(state)
            _write_json_atomic(self.state_path, raw)

    def update_muscle_state(self, muscle_id: str, update: StateUpdate) -> MuscleState:
        """
        Read one muscle's state, apply update and write the result back.

        Args:
            muscle_id: Muscle to update
            update: Receives the stored state (None if absent), returns the new one

        Returns:
            The state written
        """
        with self._lock:
            state = update(self.get_muscle_state(muscle_id))
            raw = _read_json(self.state_path)
            raw[muscle_id] = muscle_state_to_dict(state)
            _write_json_atomic(self.state_path, raw)
        return state

    def clear(self) -> None:
        """Remove every stored state."""
        with self._lock:
            if self.state_path.exists():
                self.state_path.unlink()


def get_default_data_dir() -> Path:
    """Return the directory the JSON stores live in ($MUSCLE_ENGINE_HOME or ~/.muscle-engine)."""
    return get_app_home()


def get_default_state_store(data_dir: Path | None = None) -> JsonStateStore:
    """Get a JsonStateStore at the default path."""
    return JsonStateStore((data_dir or get_default_data_dir()) / MUSCLE_STATE_FILENAME)


def get_default_catalog_store(data_dir: Path | None = None) -> JsonCatalogStore:
    """Get a JsonCatalogStore at the default path."""
    return JsonCatalogStore(data_dir or get_default_data_dir())
