"""
Exercise similarity scoring.

similarity(a, b) = min(1, 0.7 * J(primary) + 0.3 * J(secondary) + bonuses)

J is the Jaccard overlap of two muscle sets.  Because the union is used as
the denominator throughout, the score is symmetric in a and b.
"""

from dataclasses import dataclass
from typing import Iterable

from .config import (
    FORCE_BONUS,
    MAX_SIMILARITY,
    MECHANICS_BONUS,
    MOVEMENT_PATTERN_BONUS,
    SYNERGIST_OVERLAP_WEIGHT,
    TARGET_OVERLAP_WEIGHT,
    VIABILITY_BANDS,
)
from .models import Exercise


def set_overlap(first: Iterable[str], second: Iterable[str]) -> float:
    """
    Jaccard overlap of two muscle collections.

    |A ∩ B| / |A ∪ B|, with two conventions for empty input:
    both empty → 1.0, exactly one empty → 0.0.

    Args:
        first: Muscle ids (duplicates and order ignored)
        second: Muscle ids

    Returns:
        Overlap in [0, 1]
    """
    a = set(first)
    b = set(second)
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def _attribute_bonus(left: str | None, right: str | None, bonus: float) -> float:
    """Bonus if both attributes are present and equal."""
    if left is None or right is None:
        return 0.0
    return bonus if left == right else 0.0


def movement_bonus(a: Exercise, b: Exercise) -> float:
    """Sum of the movement-pattern, mechanics and force bonuses."""
    return (
        _attribute_bonus(a.movement_pattern, b.movement_pattern, MOVEMENT_PATTERN_BONUS)
        + _attribute_bonus(a.resolved_mechanics, b.resolved_mechanics, MECHANICS_BONUS)
        + _attribute_bonus(a.force, b.force, FORCE_BONUS)
    )


def similarity(a: Exercise, b: Exercise) -> float:
    """
    Similarity between two exercises.

    Args:
        a: First exercise
        b: Second exercise

    Returns:
        Score in [0, 1]
    """
    target = set_overlap(a.primary_muscles, b.primary_muscles)
    synergist = set_overlap(a.secondary_muscles, b.secondary_muscles)
    base = TARGET_OVERLAP_WEIGHT * target + SYNERGIST_OVERLAP_WEIGHT * synergist
    return min(MAX_SIMILARITY, base + movement_bonus(a, b))


@dataclass(frozen=True)
class MuscleOverlap:
    """Breakdown of how two exercises compare."""

    exercise_a: str
    exercise_b: str
    target_overlap: float
    synergist_overlap: float
    shared_primary: int
    shared_secondary: int
    equipment_compatibility: float
    difficulty_gap: int  # tier(b) - tier(a)
    score: float

    @property
    def viability(self) -> str:
        return substitute_viability(self.score)


def equipment_compatibility(a: Exercise, b: Exercise) -> float:
    """Jaccard overlap of equipment, 0.0 when neither lists any."""
    union = a.equipment | b.equipment
    if not union:
        return 0.0
    return len(a.equipment & b.equipment) / len(union)


def analyze_overlap(a: Exercise, b: Exercise) -> MuscleOverlap:
    """Full comparison of two exercises, used for explaining a score."""
    return MuscleOverlap(
        exercise_a=a.exercise_id,
        exercise_b=b.exercise_id,
        target_overlap=set_overlap(a.primary_muscles, b.primary_muscles),
        synergist_overlap=set_overlap(a.secondary_muscles, b.secondary_muscles),
        shared_primary=len(a.primary_set & b.primary_set),
        shared_secondary=len(a.secondary_set & b.secondary_set),
        equipment_compatibility=equipment_compatibility(a, b),
        difficulty_gap=b.difficulty_tier - a.difficulty_tier,
        score=similarity(a, b),
    )


def substitute_viability(score: float) -> str:
    """Label a similarity score: excellent / good / fair / poor."""
    for lower, label in VIABILITY_BANDS:
        if score >= lower:
            return label
    return "poor"
