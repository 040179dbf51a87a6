"""
Data models for muscle-engine.

Core dataclasses for catalog exercises, logged workouts, per-muscle fatigue
state and derived exercise relationships.  Catalog records are frozen; the
only mutable record is MuscleState, which the tracker rewrites after every
submitted workout.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from .config import (
    CATEGORICAL_ACTIVATION,
    DIFFICULTY_TIERS,
    MAX_ALTERNATIVES,
    MAX_FATIGUE,
    MAX_PROGRESSIONS,
    MAX_REGRESSIONS,
)

Difficulty = Literal["beginner", "intermediate", "advanced"]
ActivationLevel = Literal["high", "medium", "low"]
Mechanics = Literal["compound", "isolated"]
Role = Literal["primary", "secondary"]
WorkoutRole = Literal["primary", "secondary", "none"]


@dataclass(frozen=True)
class ActivationProfile:
    """
    Normalized muscle activation for one exercise.

    Catalog data comes either with precise activation fractions (0–1) or with
    a legacy categorical map (high/medium/low).  The choice is made once, at
    load time, by from_raw(): fractions win whenever they are present.
    """

    kind: Literal["fractional", "categorical", "none"]
    fractions: dict[str, float] = field(default_factory=dict)
    levels: dict[str, ActivationLevel] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate activation data."""
        for muscle_id, value in self.fractions.items():
            if not 0.0 <= value <= 1.0:
                raise ValueError(
                    f"activation for {muscle_id!r} must be within [0, 1], got {value}"
                )
        for muscle_id, level in self.levels.items():
            if level not in CATEGORICAL_ACTIVATION:
                raise ValueError(f"Invalid activation level for {muscle_id!r}: {level!r}")

    @classmethod
    def from_raw(
        cls,
        muscle_activation: dict[str, float] | None = None,
        activation_levels: dict[str, str] | None = None,
    ) -> "ActivationProfile":
        """Pick the representation to keep: fractional if any, else categorical."""
        if muscle_activation:
            return cls(
                kind="fractional",
                fractions={str(k): float(v) for k, v in muscle_activation.items()},
            )
        if activation_levels:
            return cls(
                kind="categorical",
                levels={str(k): v for k, v in activation_levels.items()},  # type: ignore[misc]
            )
        return cls(kind="none")

    def fraction(self, muscle_id: str) -> float | None:
        """Activation of a muscle as a fraction, or None if not recorded."""
        if self.kind == "fractional":
            return self.fractions.get(muscle_id)
        if self.kind == "categorical":
            level = self.levels.get(muscle_id)
            return CATEGORICAL_ACTIVATION[level] if level is not None else None
        return None


@dataclass(frozen=True)
class Exercise:
    """
    An immutable catalog exercise.

    primary_muscles / secondary_muscles are stored as tuples to keep the
    catalog order for display, but every algorithm treats them as sets.
    movement_pattern, mechanics and force are optional movement attributes;
    similarity bonuses only apply when both exercises carry them.
    """

    exercise_id: str
    name: str
    category: str
    equipment: frozenset[str]
    primary_muscles: tuple[str, ...]
    secondary_muscles: tuple[str, ...]
    difficulty: Difficulty
    activation: ActivationProfile = field(default_factory=lambda: ActivationProfile(kind="none"))
    tags: frozenset[str] = field(default_factory=frozenset)
    movement_pattern: str | None = None
    mechanics: Mechanics | None = None
    force: str | None = None
    bodyweight_multiplier: float | None = None  # Declared BW fraction for BW movements

    def __post_init__(self) -> None:
        """Validate exercise data."""
        if not self.exercise_id:
            raise ValueError("exercise_id must be non-empty")
        if self.difficulty not in DIFFICULTY_TIERS:
            raise ValueError(f"Invalid difficulty: {self.difficulty!r}")
        if self.mechanics is not None and self.mechanics not in ("compound", "isolated"):
            raise ValueError(f"Invalid mechanics: {self.mechanics!r}")
        if self.bodyweight_multiplier is not None and self.bodyweight_multiplier <= 0:
            raise ValueError("bodyweight_multiplier must be positive")

    @property
    def difficulty_tier(self) -> int:
        """Ordinal difficulty: beginner=0, intermediate=1, advanced=2."""
        return DIFFICULTY_TIERS[self.difficulty]

    @property
    def primary_set(self) -> frozenset[str]:
        return frozenset(self.primary_muscles)

    @property
    def secondary_set(self) -> frozenset[str]:
        return frozenset(self.secondary_muscles)

    @property
    def resolved_mechanics(self) -> Mechanics | None:
        """Explicit mechanics, else derived from the "compound"/"isolation" tags."""
        if self.mechanics is not None:
            return self.mechanics
        if "compound" in self.tags:
            return "compound"
        if "isolation" in self.tags or "isolated" in self.tags:
            return "isolated"
        return None


@dataclass
class LoggedSet:
    """
    One set actually performed.

    reps is required unless time (seconds) is given for a duration-based
    set.  Validation happens in volume.validate_set so that one bad set can
    be rejected without discarding the rest of the workout.
    """

    reps: int | None = None
    weight: float | None = None  # External load in kg; None/0 = bodyweight
    time: float | None = None  # Seconds, for holds and timed sets

    @property
    def is_duration_based(self) -> bool:
        return not self.reps and self.time is not None


@dataclass
class WorkoutEntry:
    """All sets performed for one exercise within a workout submission."""

    exercise_id: str
    sets: list[LoggedSet] = field(default_factory=list)


@dataclass
class MuscleState:
    """
    Fatigue state of one muscle.

    current_fatigue is the value as of last_updated.  Reading it at any
    later time requires recovery decay first (fatigue.fatigue_at).
    """

    muscle_id: str
    current_fatigue: float
    last_updated: datetime
    last_workout_role: WorkoutRole = "none"

    def __post_init__(self) -> None:
        """Clamp fatigue and normalise the timestamp to an aware datetime."""
        if math.isnan(self.current_fatigue):
            raise ValueError(f"current_fatigue for {self.muscle_id!r} is NaN")
        self.current_fatigue = max(0.0, min(MAX_FATIGUE, float(self.current_fatigue)))
        if self.last_updated.tzinfo is None:
            self.last_updated = self.last_updated.replace(tzinfo=timezone.utc)
        if self.last_workout_role not in ("primary", "secondary", "none"):
            raise ValueError(f"Invalid last_workout_role: {self.last_workout_role!r}")


@dataclass(frozen=True)
class RelationshipLink:
    """A related exercise together with the score that placed it."""

    exercise_id: str
    similarity: float
    difficulty_delta: int = 0  # tier(other) - tier(source)


@dataclass(frozen=True)
class ExerciseRelationships:
    """
    Derived relationship lists for one exercise.

    Each list is ordered by descending similarity and capped.  Records are
    always recomputed as a whole, never patched.
    """

    exercise_id: str
    alternative_links: tuple[RelationshipLink, ...] = ()
    progression_links: tuple[RelationshipLink, ...] = ()
    regression_links: tuple[RelationshipLink, ...] = ()

    def __post_init__(self) -> None:
        """Validate caps and self-exclusion."""
        caps = (
            ("alternatives", self.alternative_links, MAX_ALTERNATIVES),
            ("progressions", self.progression_links, MAX_PROGRESSIONS),
            ("regressions", self.regression_links, MAX_REGRESSIONS),
        )
        for name, links, cap in caps:
            if len(links) > cap:
                raise ValueError(f"{name} holds {len(links)} entries, cap is {cap}")
            if any(link.exercise_id == self.exercise_id for link in links):
                raise ValueError(f"{self.exercise_id!r} cannot appear in its own {name}")

    @property
    def alternatives(self) -> tuple[str, ...]:
        return tuple(link.exercise_id for link in self.alternative_links)

    @property
    def progressions(self) -> tuple[str, ...]:
        return tuple(link.exercise_id for link in self.progression_links)

    @property
    def regressions(self) -> tuple[str, ...]:
        return tuple(link.exercise_id for link in self.regression_links)

    @property
    def is_empty(self) -> bool:
        return not (self.alternative_links or self.progression_links or self.regression_links)


@dataclass(frozen=True)
class WorkoutImpact:
    """Fatigue contributed to one muscle by a single workout, before merging."""

    muscle_id: str
    volume_lifted: float
    role: Role
    fatigue_added: float


@dataclass(frozen=True)
class MuscleDisplayState:
    """Body-map projection of a fatigue value."""

    category: str  # "very_fatigued" | "fatigued" | "recovering" | "nearly_recovered" | "fresh"
    label: str
    color: str
    intensity: float  # 0–1
