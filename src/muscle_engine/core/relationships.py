"""
Relationship classification.

For a source exercise, every other catalog exercise is scored with
similarity() and sorted into:

- alternatives: similarity >= 0.8, any difficulty
- progressions: 0.7 <= similarity < 0.8, exactly one tier harder
- regressions:  0.7 <= similarity < 0.8, exactly one tier easier

Pairs below 0.3 are never related.  Lists are ordered by descending
similarity (ties broken by exercise id) and capped at 5 / 3 / 3.

An exercise with no muscle data is related to nothing, even though two
such exercises score 1.0 against each other under the empty-set overlap
convention in similarity.py.
"""

import logging
from typing import Iterable, Sequence

from .config import (
    ALTERNATIVE_THRESHOLD,
    MAX_ALTERNATIVES,
    MAX_PROGRESSIONS,
    MAX_REGRESSIONS,
    MIN_RELEVANCE,
    VARIATION_THRESHOLD,
)
from .models import Exercise, ExerciseRelationships, RelationshipLink
from .similarity import similarity

logger = logging.getLogger(__name__)


def _ranked(links: list[RelationshipLink], cap: int) -> tuple[RelationshipLink, ...]:
    ordered = sorted(links, key=lambda link: (-link.similarity, link.exercise_id))
    return tuple(ordered[:cap])


def classify_relationships(
    source: Exercise,
    catalog: Iterable[Exercise],
) -> ExerciseRelationships:
    """
    Build the relationship record of one exercise.

    Args:
        source: Exercise to find relatives for
        catalog: All catalog exercises (may include source itself)

    Returns:
        ExerciseRelationships for source
    """
    if not _has_muscles(source):
        return ExerciseRelationships(exercise_id=source.exercise_id)

    alternatives: list[RelationshipLink] = []
    progressions: list[RelationshipLink] = []
    regressions: list[RelationshipLink] = []

    for other in catalog:
        if other.exercise_id == source.exercise_id or not _has_muscles(other):
            continue

        score = similarity(source, other)
        if score < MIN_RELEVANCE:
            continue

        delta = other.difficulty_tier - source.difficulty_tier
        link = RelationshipLink(exercise_id=other.exercise_id, similarity=score, difficulty_delta=delta)

        if score >= ALTERNATIVE_THRESHOLD:
            alternatives.append(link)
        elif score >= VARIATION_THRESHOLD:
            if delta == 1:
                progressions.append(link)
            elif delta == -1:
                regressions.append(link)

    return ExerciseRelationships(
        exercise_id=source.exercise_id,
        alternative_links=_ranked(alternatives, MAX_ALTERNATIVES),
        progression_links=_ranked(progressions, MAX_PROGRESSIONS),
        regression_links=_ranked(regressions, MAX_REGRESSIONS),
    )


def build_relationships(catalog: Sequence[Exercise]) -> dict[str, ExerciseRelationships]:
    """
    Classify every exercise of the catalog against all the others.

    O(n²) in catalog size.  A record that cannot be scored (for example a
    muscle list holding unhashable values) gets an empty relationship set
    and is left out of everyone else's candidates; the pass continues.

    Args:
        catalog: All catalog exercises

    Returns:
        {exercise_id: ExerciseRelationships} for every exercise in catalog
    """
    result: dict[str, ExerciseRelationships] = {}
    scorable: list[Exercise] = []

    for exercise in catalog:
        try:
            _check_scorable(exercise)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Could not compute relationships for %r (%s); recording none",
                exercise.exercise_id,
                exc,
            )
            result[exercise.exercise_id] = ExerciseRelationships(exercise_id=exercise.exercise_id)
        else:
            scorable.append(exercise)

    for exercise in scorable:
        try:
            result[exercise.exercise_id] = classify_relationships(exercise, scorable)
        except (TypeError, ValueError, AttributeError, KeyError) as exc:
            logger.warning(
                "Could not compute relationships for %r (%s); recording none",
                exercise.exercise_id,
                exc,
            )
            result[exercise.exercise_id] = ExerciseRelationships(exercise_id=exercise.exercise_id)

    logger.debug("Computed relationships for %d exercises", len(result))
    return result


def _check_scorable(exercise: Exercise) -> None:
    """Raise if the muscle lists cannot be treated as sets of ids."""
    for muscle_id in (*exercise.primary_muscles, *exercise.secondary_muscles):
        if not isinstance(muscle_id, str) or not muscle_id:
            raise ValueError(f"malformed muscle id {muscle_id!r}")


def _has_muscles(exercise: Exercise) -> bool:
    return bool(exercise.primary_muscles or exercise.secondary_muscles)
