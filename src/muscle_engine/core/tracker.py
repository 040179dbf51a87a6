"""
Workout tracking: the fetch → compute → store sequence.

The functions here are the only part of core that touches storage.  They
take the stores as arguments (see muscle_engine.io.stores for the
protocols) and delegate every calculation to the pure modules:

    volume.compute_volume      per-exercise volume, invalid sets rejected
    volume.attribute_volume    primary / secondary credit per muscle
    fatigue.normalize_volume   volume → fatigue percentage
    fatigue.merge_fatigue      recovery of the stored value + new fatigue
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import TYPE_CHECKING, Iterable

from .engine.config_loader import EngineSettings
from .fatigue import decayed_state, fatigue_display, merge_fatigue, muscle_fatigue_from_volume
from .models import ExerciseRelationships, MuscleDisplayState, MuscleState, WorkoutEntry, WorkoutImpact
from .relationships import build_relationships
from .volume import RejectedSet, attribute_volume, compute_volume

if TYPE_CHECKING:
    from ..io.stores import CatalogStore, StateStore

logger = logging.getLogger(__name__)


@dataclass
class ImpactReport:
    """Per-muscle outcome of one workout, before it is merged into state."""

    impacts: dict[str, WorkoutImpact] = field(default_factory=dict)
    skipped_exercises: list[str] = field(default_factory=list)  # Unknown exercise ids
    rejected_sets: list[RejectedSet] = field(default_factory=list)


@dataclass
class SubmissionResult:
    """What submit_workout() wrote, together with the impact it was based on."""

    report: ImpactReport
    states: dict[str, MuscleState] = field(default_factory=dict)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def calculate_workout_impact(
    workout: Iterable[WorkoutEntry],
    catalog: "CatalogStore",
    settings: EngineSettings | None = None,
) -> ImpactReport:
    """
    Compute the fatigue a workout adds to each muscle.

    Unknown exercise ids are skipped with a warning; invalid sets are
    rejected one by one and their siblings still count.  Nothing is stored.

    Args:
        workout: Exercise entries of one session
        catalog: Store the exercises are looked up in
        settings: Engine settings (defaults when None)

    Returns:
        ImpactReport keyed by muscle_id
    """
    settings = settings or EngineSettings()
    report = ImpactReport()
    performed = []

    for entry in workout:
        exercise = catalog.get_exercise(entry.exercise_id)
        if exercise is None:
            logger.warning("Unknown exercise %r in workout; skipping it", entry.exercise_id)
            report.skipped_exercises.append(entry.exercise_id)
            continue

        result = compute_volume(exercise, entry.sets, settings.reference_bodyweight_kg)
        for rejected in result.rejected:
            logger.warning(
                "Rejected set %d of %r: %s",
                rejected.set_index + 1,
                rejected.exercise_id,
                rejected.reason,
            )
        report.rejected_sets.extend(result.rejected)
        if result.accepted_sets:
            performed.append((exercise, result.volume))

    for muscle_id, volume in attribute_volume(performed, settings.secondary_volume_share).items():
        report.impacts[muscle_id] = WorkoutImpact(
            muscle_id=muscle_id,
            volume_lifted=volume.total,
            role=volume.role,
            fatigue_added=muscle_fatigue_from_volume(
                muscle_id, volume.total, settings.volume_thresholds
            ),
        )

    logger.debug(
        "Workout touches %d muscles (%d exercises skipped, %d sets rejected)",
        len(report.impacts),
        len(report.skipped_exercises),
        len(report.rejected_sets),
    )
    return report


def submit_workout(
    workout: Iterable[WorkoutEntry],
    catalog: "CatalogStore",
    state_store: "StateStore",
    now: datetime | None = None,
    settings: EngineSettings | None = None,
) -> SubmissionResult:
    """
    Record a workout: compute its impact and merge it into stored state.

    Each affected muscle is read, recovered up to now, topped up with the
    new fatigue (capped at 100) and written back in one
    update_muscle_state call, so concurrent submissions against the same
    store do not overwrite each other.

    Args:
        workout: Exercise entries of one session
        catalog: Store the exercises are looked up in
        state_store: Store holding MuscleState records
        now: Submission time (default: current UTC time)
        settings: Engine settings (defaults when None)

    Returns:
        SubmissionResult with the report and the states written
    """
    settings = settings or EngineSettings()
    now = now or _now()
    report = calculate_workout_impact(workout, catalog, settings)

    written: dict[str, MuscleState] = {}
    for muscle_id, impact in report.impacts.items():
        merge = partial(
            merge_fatigue,
            added_fatigue=impact.fatigue_added,
            role=impact.role,
            now=now,
            muscle_id=muscle_id,
            recovery_rate_per_day=settings.recovery_rate_per_day,
        )
        written[muscle_id] = state_store.update_muscle_state(muscle_id, merge)

    logger.info("Recorded workout affecting %d muscles", len(written))
    return SubmissionResult(report=report, states=written)


def muscle_states_at(
    state_store: "StateStore",
    now: datetime | None = None,
    settings: EngineSettings | None = None,
) -> dict[str, MuscleState]:
    """All stored states, decayed to now.  The store is not modified."""
    settings = settings or EngineSettings()
    now = now or _now()
    return {
        state.muscle_id: decayed_state(state, now, settings.recovery_rate_per_day)
        for state in state_store.get_all_muscle_states()
    }


def display_states(
    state_store: "StateStore",
    now: datetime | None = None,
    settings: EngineSettings | None = None,
) -> dict[str, MuscleDisplayState]:
    """Body-map projection of every stored muscle at now."""
    return {
        muscle_id: fatigue_display(state.current_fatigue)
        for muscle_id, state in muscle_states_at(state_store, now, settings).items()
    }


def rebuild_relationships(catalog: "CatalogStore") -> dict[str, ExerciseRelationships]:
    """
    Recompute every relationship record and write it back to the catalog.

    The stored mapping is replaced as a whole: records of exercises that
    left the catalog are dropped, and running this twice leaves the same
    result.
    """
    exercises = catalog.get_all_exercises()
    records = build_relationships(exercises)
    catalog.replace_relationships(records)
    logger.info("Rebuilt relationships for %d exercises", len(records))
    return records
