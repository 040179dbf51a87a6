"""
Training volume aggregation.

Per-set volume (kg):
    weighted set:   weight × reps
    bodyweight set: BW_ref × multiplier × reps
    timed set:      reps are replaced by time / SECONDS_PER_REP_EQUIVALENT

Muscle attribution: primary muscles get 100 % of the exercise volume,
secondary muscles SECONDARY_VOLUME_SHARE of it.  A muscle trained as
primary anywhere in a workout keeps the primary role.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable

from .config import (
    BODYWEIGHT_MULTIPLIERS,
    DEFAULT_BODYWEIGHT_KG,
    DEFAULT_BODYWEIGHT_MULTIPLIER,
    SECONDARY_VOLUME_SHARE,
    SECONDS_PER_REP_EQUIVALENT,
)
from .models import Exercise, LoggedSet, Role


class SetValidationError(ValueError):
    """Raised when a logged set carries neither reps nor a duration."""

    pass


@dataclass(frozen=True)
class RejectedSet:
    """A set dropped from a volume calculation, with the reason."""

    exercise_id: str
    set_index: int  # 0-based position within the exercise's sets
    reason: str


@dataclass
class VolumeResult:
    """Volume of one exercise together with any sets that were rejected."""

    exercise_id: str
    volume: float
    accepted_sets: int
    rejected: list[RejectedSet] = field(default_factory=list)


@dataclass
class MuscleVolume:
    """Accumulated volume of one muscle across a workout."""

    muscle_id: str
    primary_volume: float = 0.0
    secondary_volume: float = 0.0
    role: Role = "secondary"

    @property
    def total(self) -> float:
        return self.primary_volume + self.secondary_volume


def validate_set(logged: LoggedSet) -> None:
    """
    Check that a set can contribute volume.

    A set needs reps > 0, or a positive time when it is duration-based.
    Weight, if given, must be non-negative.

    Raises:
        SetValidationError: If the set is invalid
    """
    has_reps = logged.reps is not None and logged.reps > 0
    has_time = logged.time is not None and logged.time > 0

    if logged.reps is not None and logged.reps < 0:
        raise SetValidationError(f"reps must be non-negative, got {logged.reps}")
    if logged.time is not None and (math.isnan(logged.time) or logged.time < 0):
        raise SetValidationError(f"time must be non-negative, got {logged.time}")
    if not has_reps and not has_time:
        raise SetValidationError("set needs reps > 0 or a duration")
    if logged.weight is not None and (math.isnan(logged.weight) or logged.weight < 0):
        raise SetValidationError(f"weight must be non-negative, got {logged.weight}")


def bodyweight_multiplier(exercise: Exercise) -> float:
    """
    Fraction of bodyweight moved by an unloaded rep of this exercise.

    A multiplier declared on the catalog record wins.  Otherwise the name
    is matched against known bodyweight movements, longest fragment first
    so "pistol squat" is not mistaken for a plain "squat".

    Args:
        exercise: Catalog exercise

    Returns:
        Multiplier (DEFAULT_BODYWEIGHT_MULTIPLIER when nothing matches)
    """
    if exercise.bodyweight_multiplier is not None:
        return exercise.bodyweight_multiplier

    name = exercise.name.lower()
    for fragment in sorted(BODYWEIGHT_MULTIPLIERS, key=len, reverse=True):
        if fragment in name:
            return BODYWEIGHT_MULTIPLIERS[fragment]
    return DEFAULT_BODYWEIGHT_MULTIPLIER


def _effective_reps(logged: LoggedSet) -> float:
    if logged.reps:
        return float(logged.reps)
    # Duration-based set: validate_set guarantees time > 0 here
    return float(logged.time or 0.0) / SECONDS_PER_REP_EQUIVALENT


def set_volume(
    exercise: Exercise,
    logged: LoggedSet,
    reference_bodyweight_kg: float = DEFAULT_BODYWEIGHT_KG,
) -> float:
    """
    Volume of a single validated set.

    Args:
        exercise: Exercise the set belongs to
        logged: The set
        reference_bodyweight_kg: Bodyweight used for unloaded sets

    Returns:
        Weight-equivalent load in kg
    """
    reps = _effective_reps(logged)
    if logged.weight is not None and logged.weight > 0:
        return logged.weight * reps
    return reference_bodyweight_kg * bodyweight_multiplier(exercise) * reps


def compute_volume(
    exercise: Exercise,
    sets: Iterable[LoggedSet],
    reference_bodyweight_kg: float = DEFAULT_BODYWEIGHT_KG,
) -> VolumeResult:
    """
    Sum the volume of every valid set; invalid sets are reported, not fatal.

    Args:
        exercise: Exercise performed
        sets: Sets logged for it in one session
        reference_bodyweight_kg: Bodyweight used for unloaded sets

    Returns:
        VolumeResult with the total and the rejected sets
    """
    total = 0.0
    accepted = 0
    rejected: list[RejectedSet] = []

    for index, logged in enumerate(sets):
        try:
            validate_set(logged)
        except SetValidationError as exc:
            rejected.append(RejectedSet(exercise.exercise_id, index, str(exc)))
            continue
        total += set_volume(exercise, logged, reference_bodyweight_kg)
        accepted += 1

    return VolumeResult(
        exercise_id=exercise.exercise_id,
        volume=total,
        accepted_sets=accepted,
        rejected=rejected,
    )


def exercise_volume(
    exercise: Exercise,
    sets: Iterable[LoggedSet],
    reference_bodyweight_kg: float = DEFAULT_BODYWEIGHT_KG,
) -> float:
    """Total volume of an exercise's valid sets (see compute_volume)."""
    return compute_volume(exercise, sets, reference_bodyweight_kg).volume


def attribute_volume(
    performed: Iterable[tuple[Exercise, float]],
    secondary_share: float = SECONDARY_VOLUME_SHARE,
) -> dict[str, MuscleVolume]:
    """
    Distribute exercise volumes onto muscles.

    Args:
        performed: (exercise, exercise volume) pairs of one workout
        secondary_share: Fraction of volume credited to secondary muscles

    Returns:
        {muscle_id: MuscleVolume}, in first-seen order
    """
    muscles: dict[str, MuscleVolume] = {}

    for exercise, volume in performed:
        primary = exercise.primary_set
        for muscle_id in dict.fromkeys(exercise.primary_muscles):
            entry = muscles.setdefault(muscle_id, MuscleVolume(muscle_id))
            entry.primary_volume += volume
            entry.role = "primary"

        for muscle_id in dict.fromkeys(exercise.secondary_muscles):
            if muscle_id in primary:
                # Listed as both: primary attribution already covers it
                continue
            entry = muscles.setdefault(muscle_id, MuscleVolume(muscle_id))
            entry.secondary_volume += volume * secondary_share

    return muscles
