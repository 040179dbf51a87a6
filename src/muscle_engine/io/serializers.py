"""
JSON serialization for muscle-engine data models.

Handles conversion between dataclasses and JSON-compatible dicts, and
parsing of the compact workout syntax accepted on the command line.
"""

import json
import math
import re
from datetime import datetime, timezone
from typing import Any

from ..core.exercises.loader import exercise_from_dict
from ..core.models import (
    Exercise,
    ExerciseRelationships,
    LoggedSet,
    MuscleState,
    RelationshipLink,
    WorkoutEntry,
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Naive timestamps are taken as UTC.

    Args:
        value: Timestamp string, e.g. "2026-03-01T18:30:00+00:00"

    Returns:
        Timezone-aware datetime

    Raises:
        ValidationError: If the string is not a valid timestamp
    """
    if not isinstance(value, str):
        raise ValidationError(f"Invalid timestamp: {value!r}. Expected an ISO-8601 string")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {value}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is a non-negative number.

    Raises:
        ValidationError: If value is negative, NaN or not a number
    """
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if math.isnan(value) or value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def validate_muscle_id(value: Any, name: str = "muscle_id") -> str:
    """Validate a non-empty id string."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {name}: {value!r}. Must be a non-empty string.")
    return value


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------


def exercise_to_dict(exercise: Exercise) -> dict[str, Any]:
    """
    Convert an Exercise to a JSON-compatible dict.

    Only the activation representation chosen at load time is written.
    Optional movement attributes are omitted when unset.
    """
    d: dict[str, Any] = {
        "exercise_id": exercise.exercise_id,
        "name": exercise.name,
        "category": exercise.category,
        "equipment": sorted(exercise.equipment),
        "primary_muscles": list(exercise.primary_muscles),
        "secondary_muscles": list(exercise.secondary_muscles),
        "difficulty": exercise.difficulty,
        "tags": sorted(exercise.tags),
    }
    if exercise.activation.kind == "fractional":
        d["muscle_activation"] = dict(exercise.activation.fractions)
    elif exercise.activation.kind == "categorical":
        d["activation_levels"] = dict(exercise.activation.levels)
    for key in ("movement_pattern", "mechanics", "force", "bodyweight_multiplier"):
        value = getattr(exercise, key)
        if value is not None:
            d[key] = value
    return d


def dict_to_exercise(data: dict[str, Any]) -> Exercise:
    """
    Convert dict to Exercise.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        return exercise_from_dict(data)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Invalid exercise record: {e}") from e


# ---------------------------------------------------------------------------
# Muscle state
# ---------------------------------------------------------------------------


def muscle_state_to_dict(state: MuscleState) -> dict[str, Any]:
    """Convert MuscleState to a JSON-compatible dict."""
    return {
        "muscle_id": state.muscle_id,
        "current_fatigue": round(state.current_fatigue, 4),
        "last_updated": state.last_updated.isoformat(),
        "last_workout_role": state.last_workout_role,
    }


def dict_to_muscle_state(data: dict[str, Any]) -> MuscleState:
    """
    Convert dict to MuscleState.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        muscle_id = validate_muscle_id(data["muscle_id"])
        fatigue = validate_non_negative(data["current_fatigue"], "current_fatigue")
        last_updated = validate_timestamp(data["last_updated"])
    except KeyError as e:
        raise ValidationError(f"Muscle state missing field: {e}") from e

    role = data.get("last_workout_role", "none")
    if role not in ("primary", "secondary", "none"):
        raise ValidationError(
            f"Invalid last_workout_role: {role!r}. Must be primary, secondary or none"
        )

    return MuscleState(
        muscle_id=muscle_id,
        current_fatigue=float(fatigue),
        last_updated=last_updated,
        last_workout_role=role,
    )


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------


def _links_to_list(links: tuple[RelationshipLink, ...]) -> list[dict[str, Any]]:
    return [
        {
            "exercise_id": link.exercise_id,
            "similarity": round(link.similarity, 4),
            "difficulty_delta": link.difficulty_delta,
        }
        for link in links
    ]


def _list_to_links(raw: Any, name: str) -> tuple[RelationshipLink, ...]:
    if not isinstance(raw, list):
        raise ValidationError(f"{name} must be a list")
    links = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError(f"{name} entries must be objects, got {item!r}")
        try:
            links.append(
                RelationshipLink(
                    exercise_id=validate_muscle_id(item["exercise_id"], "exercise_id"),
                    similarity=float(item["similarity"]),
                    difficulty_delta=int(item.get("difficulty_delta", 0)),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid {name} entry {item!r}: {e}") from e
    return tuple(links)


def relationships_to_dict(record: ExerciseRelationships) -> dict[str, Any]:
    """Convert ExerciseRelationships to a JSON-compatible dict."""
    return {
        "exercise_id": record.exercise_id,
        "alternatives": _links_to_list(record.alternative_links),
        "progressions": _links_to_list(record.progression_links),
        "regressions": _links_to_list(record.regression_links),
    }


def dict_to_relationships(data: dict[str, Any]) -> ExerciseRelationships:
    """
    Convert dict to ExerciseRelationships.

    Raises:
        ValidationError: If data is invalid or breaks the list caps
    """
    exercise_id = validate_muscle_id(data.get("exercise_id"), "exercise_id")
    try:
        return ExerciseRelationships(
            exercise_id=exercise_id,
            alternative_links=_list_to_links(data.get("alternatives", []), "alternatives"),
            progression_links=_list_to_links(data.get("progressions", []), "progressions"),
            regression_links=_list_to_links(data.get("regressions", []), "regressions"),
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


# ---------------------------------------------------------------------------
# Sets and workouts
# ---------------------------------------------------------------------------


def logged_set_to_dict(logged: LoggedSet) -> dict[str, Any]:
    """Convert LoggedSet to a compact dict (unset fields omitted)."""
    d: dict[str, Any] = {}
    if logged.reps is not None:
        d["reps"] = logged.reps
    if logged.weight is not None:
        d["weight"] = logged.weight
    if logged.time is not None:
        d["time"] = logged.time
    return d


def dict_to_logged_set(data: dict[str, Any]) -> LoggedSet:
    """
    Convert dict to LoggedSet.

    Only types are checked here; whether the set can contribute volume is
    decided later by volume.validate_set.

    Raises:
        ValidationError: If a field has the wrong type
    """
    reps = data.get("reps")
    weight = data.get("weight")
    time = data.get("time")
    if reps is not None and (not isinstance(reps, int) or isinstance(reps, bool)):
        raise ValidationError(f"reps must be an integer, got {reps!r}")
    for name, value in (("weight", weight), ("time", time)):
        if value is not None:
            validate_non_negative(value, name)
    return LoggedSet(
        reps=reps,
        weight=float(weight) if weight is not None else None,
        time=float(time) if time is not None else None,
    )


def workout_to_json(entries: list[WorkoutEntry]) -> str:
    """Serialize a workout to a single JSON line."""
    data = [
        {"exercise_id": e.exercise_id, "sets": [logged_set_to_dict(s) for s in e.sets]}
        for e in entries
    ]
    return json.dumps(data, separators=(",", ":"))


def json_to_workout(text: str) -> list[WorkoutEntry]:
    """
    Deserialize a workout written by workout_to_json.

    Raises:
        ValidationError: If JSON is invalid or data validation fails
    """
    try:
        data = json.loads(text.strip())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise ValidationError("Workout JSON must be a list of exercise entries")

    entries = []
    for item in data:
        if not isinstance(item, dict):
            raise ValidationError(f"Workout entries must be objects, got {item!r}")
        exercise_id = validate_muscle_id(item.get("exercise_id"), "exercise_id")
        sets = [dict_to_logged_set(s) for s in item.get("sets", [])]
        entries.append(WorkoutEntry(exercise_id=exercise_id, sets=sets))
    return entries


_SET_WEIGHTED = re.compile(r"(\d+)\s*[xX×@]\s*(\d+(?:\.\d+)?)(?:\s*kg)?")
_SET_TIMED = re.compile(r"[tT]\s*(\d+(?:\.\d+)?)\s*s?")
_SET_BARE = re.compile(r"(\d+)")
_REPEAT = re.compile(r"^(.*?)\s*\*\s*(\d+)$")


def parse_sets_string(sets_str: str) -> list[LoggedSet]:
    """
    Parse the sets of one exercise.

    Comma-separated groups, each one of:
        RxW     R reps at W kg        e.g. "10x60", "8@22.5kg"
        R       R bodyweight reps     e.g. "20"
        tS      a hold of S seconds   e.g. "t45", "t30s"

    Any group may end in "*N" to repeat it N times ("10x60*3").

    Reps of 0 are accepted here; the volume calculation rejects such sets
    individually.

    Args:
        sets_str: Sets string to parse

    Returns:
        List of LoggedSet

    Raises:
        ValidationError: If format is invalid
    """
    if not sets_str or not sets_str.strip():
        raise ValidationError("Sets string cannot be empty")

    sets: list[LoggedSet] = []
    for group in (g.strip() for g in sets_str.split(",")):
        if not group:
            continue

        repeat = 1
        m = _REPEAT.match(group)
        if m:
            group, repeat = m.group(1).strip(), int(m.group(2))
            if repeat < 1:
                raise ValidationError(f"Repeat count must be at least 1: '{group}*{repeat}'")

        match_weighted = _SET_WEIGHTED.fullmatch(group)
        match_timed = _SET_TIMED.fullmatch(group)
        match_bare = _SET_BARE.fullmatch(group)

        if match_weighted:
            logged = LoggedSet(reps=int(match_weighted.group(1)), weight=float(match_weighted.group(2)))
        elif match_timed:
            logged = LoggedSet(time=float(match_timed.group(1)))
        elif match_bare:
            logged = LoggedSet(reps=int(match_bare.group(1)))
        else:
            raise ValidationError(
                f"Invalid set format: '{group}'.\n"
                f"Use: reps x kg (e.g. 10x60), bare reps (e.g. 20),\n"
                f"     or a hold in seconds (e.g. t45)."
            )

        sets.extend(LoggedSet(logged.reps, logged.weight, logged.time) for _ in range(repeat))

    if not sets:
        raise ValidationError("No valid sets found in sets string")
    return sets


def parse_workout_string(workout_str: str) -> list[WorkoutEntry]:
    """
    Parse a whole workout in compact form.

    Exercises are separated by ";" and written as ``exercise_id:sets``:

        "bench_press:10x60,10x60;push_up:20,20;plank:t45"

    Raises:
        ValidationError: If format is invalid
    """
    if not workout_str or not workout_str.strip():
        raise ValidationError("Workout string cannot be empty")

    entries: list[WorkoutEntry] = []
    for chunk in (c.strip() for c in workout_str.split(";")):
        if not chunk:
            continue
        exercise_id, sep, sets_str = chunk.partition(":")
        if not sep:
            raise ValidationError(
                f"Invalid exercise entry: '{chunk}'. Expected exercise_id:sets (e.g. push_up:20,20)"
            )
        exercise_id = validate_muscle_id(exercise_id.strip(), "exercise_id")
        entries.append(WorkoutEntry(exercise_id=exercise_id, sets=parse_sets_string(sets_str)))

    if not entries:
        raise ValidationError("No exercises found in workout string")
    return entries
