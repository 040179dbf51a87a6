"""
Muscle fatigue model.

Volume is turned into a 0–100 fatigue percentage with piecewise-linear
ramps whose breakpoints depend on muscle size, and fatigue recovers
linearly with elapsed time (half of the current value per 24 h).
"""

import math
from datetime import datetime, timezone

from .config import (
    FATIGUE_BANDS,
    FRESH_BAND,
    HEAVY_FATIGUE,
    HOURS_PER_DAY,
    LIGHT_FATIGUE,
    MAX_FATIGUE,
    MODERATE_FATIGUE,
    OVERFLOW_FATIGUE,
    PRIMARY_PREVIEW_COLOR,
    PRIMARY_PREVIEW_INTENSITY,
    RECOVERY_RATE_PER_DAY,
    SECONDARY_PREVIEW_COLOR,
    SECONDARY_PREVIEW_INTENSITY,
    VOLUME_THRESHOLDS,
    VolumeThresholds,
)
from .models import Exercise, MuscleDisplayState, MuscleState, Role
from .muscles import MuscleSize, muscle_size


def normalize_volume(
    volume: float,
    size: MuscleSize,
    thresholds: dict[str, VolumeThresholds] | None = None,
) -> float:
    """
    Map accumulated volume to a fatigue percentage.

    0 ≤ v ≤ light:         33 × v / light
    light < v ≤ moderate:  33 → 66 linearly
    moderate < v ≤ heavy:  66 → 90 linearly
    v > heavy:             90 + min(10, 10 × (v − heavy) / heavy)

    Args:
        volume: Weight-equivalent volume in kg (must be ≥ 0)
        size: Muscle size class
        thresholds: Per-size thresholds (defaults to VOLUME_THRESHOLDS)

    Returns:
        Fatigue in [0, 100]

    Raises:
        ValueError: If volume is negative or NaN
    """
    if math.isnan(volume) or volume < 0:
        raise ValueError(f"volume must be a non-negative number, got {volume}")

    t = (thresholds or VOLUME_THRESHOLDS)[size]

    if volume <= t.light:
        return LIGHT_FATIGUE * volume / t.light
    if volume <= t.moderate:
        progress = (volume - t.light) / (t.moderate - t.light)
        return LIGHT_FATIGUE + progress * (MODERATE_FATIGUE - LIGHT_FATIGUE)
    if volume <= t.heavy:
        progress = (volume - t.moderate) / (t.heavy - t.moderate)
        return MODERATE_FATIGUE + progress * (HEAVY_FATIGUE - MODERATE_FATIGUE)

    excess = volume - t.heavy
    return min(MAX_FATIGUE, HEAVY_FATIGUE + min(OVERFLOW_FATIGUE, OVERFLOW_FATIGUE * excess / t.heavy))


def muscle_fatigue_from_volume(
    muscle_id: str,
    volume: float,
    thresholds: dict[str, VolumeThresholds] | None = None,
) -> float:
    """normalize_volume() using the taxonomy size of muscle_id."""
    return normalize_volume(volume, muscle_size(muscle_id), thresholds)


def hours_between(earlier: datetime, later: datetime) -> float:
    """Elapsed hours, never negative (clock skew counts as no time)."""
    if earlier.tzinfo is None:
        earlier = earlier.replace(tzinfo=timezone.utc)
    if later.tzinfo is None:
        later = later.replace(tzinfo=timezone.utc)
    return max(0.0, (later - earlier).total_seconds() / 3600.0)


def recover_fatigue(
    fatigue: float,
    hours_elapsed: float,
    recovery_rate_per_day: float = RECOVERY_RATE_PER_DAY,
) -> float:
    """
    Apply recovery to a fatigue value.

    recovered = F × rate × (hours / 24)
    F'        = max(0, F − recovered)

    Args:
        fatigue: Fatigue as of the start of the interval
        hours_elapsed: Hours since then (negative treated as 0)
        recovery_rate_per_day: Fraction of fatigue recovered per 24 h

    Returns:
        Decayed fatigue
    """
    hours = max(0.0, hours_elapsed)
    recovered = fatigue * recovery_rate_per_day * (hours / HOURS_PER_DAY)
    return max(0.0, fatigue - recovered)


def fatigue_at(
    state: MuscleState,
    now: datetime,
    recovery_rate_per_day: float = RECOVERY_RATE_PER_DAY,
) -> float:
    """Current fatigue of a stored state, decayed up to now."""
    return recover_fatigue(
        state.current_fatigue,
        hours_between(state.last_updated, now),
        recovery_rate_per_day,
    )


def decayed_state(
    state: MuscleState,
    now: datetime,
    recovery_rate_per_day: float = RECOVERY_RATE_PER_DAY,
) -> MuscleState:
    """
    Return a copy of state re-anchored at now.

    Reading a state never mutates it; the stored record only changes when a
    workout is merged.
    """
    return MuscleState(
        muscle_id=state.muscle_id,
        current_fatigue=fatigue_at(state, now, recovery_rate_per_day),
        last_updated=now,
        last_workout_role=state.last_workout_role,
    )


def merge_fatigue(
    previous: MuscleState | None,
    added_fatigue: float,
    role: Role,
    now: datetime,
    muscle_id: str | None = None,
    recovery_rate_per_day: float = RECOVERY_RATE_PER_DAY,
) -> MuscleState:
    """
    Merge one workout's fatigue into a muscle's state.

    F_new = min(100, recover(F_prev, hours since last update) + added)

    A muscle with no previous state starts fresh at 0.

    Args:
        previous: Stored state, or None for a muscle never trained
        added_fatigue: Normalized fatigue from this workout
        role: Role of the muscle in this workout
        now: Submission time
        muscle_id: Required when previous is None
        recovery_rate_per_day: Fraction of fatigue recovered per 24 h

    Returns:
        New MuscleState anchored at now
    """
    if previous is None:
        if muscle_id is None:
            raise ValueError("muscle_id is required for a muscle without previous state")
        decayed = 0.0
    else:
        muscle_id = previous.muscle_id
        decayed = fatigue_at(previous, now, recovery_rate_per_day)

    return MuscleState(
        muscle_id=muscle_id,
        current_fatigue=min(MAX_FATIGUE, decayed + added_fatigue),
        last_updated=now,
        last_workout_role=role,
    )


def fatigue_display(fatigue: float) -> MuscleDisplayState:
    """
    Project a fatigue value onto the body-map colour bands.

    ≥75 very fatigued, ≥50 fatigued, ≥25 recovering, >0 nearly recovered,
    otherwise fresh.
    """
    intensity = max(0.0, min(MAX_FATIGUE, fatigue)) / MAX_FATIGUE
    for lower, inclusive, band in FATIGUE_BANDS:
        in_band = fatigue >= lower if inclusive else fatigue > lower
        if in_band:
            return MuscleDisplayState(band.category, band.label, band.color, intensity)
    return MuscleDisplayState(FRESH_BAND.category, FRESH_BAND.label, FRESH_BAND.color, 0.0)


def activation_display(exercise: Exercise) -> dict[str, MuscleDisplayState]:
    """
    Preview of which muscles an exercise works (primary over secondary).

    Intensity is the muscle's recorded activation when the exercise has
    one (fraction, or the fraction equivalent of a categorical level);
    otherwise the fixed primary / secondary preview intensity.
    """
    states: dict[str, MuscleDisplayState] = {}
    for muscle_id in exercise.secondary_muscles:
        states[muscle_id] = MuscleDisplayState(
            "secondary",
            "Secondary",
            SECONDARY_PREVIEW_COLOR,
            _preview_intensity(exercise, muscle_id, SECONDARY_PREVIEW_INTENSITY),
        )
    for muscle_id in exercise.primary_muscles:
        states[muscle_id] = MuscleDisplayState(
            "primary",
            "Primary",
            PRIMARY_PREVIEW_COLOR,
            _preview_intensity(exercise, muscle_id, PRIMARY_PREVIEW_INTENSITY),
        )
    return states


def _preview_intensity(exercise: Exercise, muscle_id: str, default: float) -> float:
    recorded = exercise.activation.fraction(muscle_id)
    return default if recorded is None else recorded
