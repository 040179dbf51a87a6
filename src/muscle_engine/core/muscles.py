"""
Muscle taxonomy.

A fixed catalog of muscle identifiers with a size class and parent/child
grouping.  Size drives the fatigue thresholds in fatigue.py: small muscles
(arms, calves, abs) fatigue with less volume than large ones (chest, back,
quads, glutes).  Muscles not listed as small or large are medium.
"""

from dataclasses import dataclass, field
from typing import Literal

MuscleSize = Literal["small", "medium", "large"]


@dataclass(frozen=True)
class MuscleInfo:
    """One entry of the taxonomy."""

    muscle_id: str
    name: str
    size: MuscleSize
    group: str  # "upper_push", "upper_pull", "core", "lower"
    parent_id: str | None = None
    children: tuple[str, ...] = field(default_factory=tuple)


SMALL_MUSCLES: frozenset[str] = frozenset(
    {
        "biceps",
        "triceps",
        "forearms",
        "calves",
        "abs",
        "obliques",
    }
)

LARGE_MUSCLES: frozenset[str] = frozenset(
    {
        "chest",
        "upper_chest",
        "lower_chest",
        "back",
        "lats",
        "upper_back",
        "quads",
        "glutes",
    }
)

# (muscle_id, display name, group, parent_id)
_TAXONOMY_ROWS: list[tuple[str, str, str, str | None]] = [
    ("chest", "Chest", "upper_push", None),
    ("upper_chest", "Upper Chest", "upper_push", "chest"),
    ("lower_chest", "Lower Chest", "upper_push", "chest"),
    ("shoulders", "Shoulders", "upper_push", None),
    ("front_delts", "Front Deltoids", "upper_push", "shoulders"),
    ("side_delts", "Side Deltoids", "upper_push", "shoulders"),
    ("rear_delts", "Rear Deltoids", "upper_pull", "shoulders"),
    ("triceps", "Triceps", "upper_push", None),
    ("back", "Back", "upper_pull", None),
    ("lats", "Latissimus Dorsi", "upper_pull", "back"),
    ("upper_back", "Upper Back", "upper_pull", "back"),
    ("traps", "Trapezius", "upper_pull", "back"),
    ("rhomboids", "Rhomboids", "upper_pull", "back"),
    ("lower_back", "Lower Back", "core", "back"),
    ("biceps", "Biceps", "upper_pull", None),
    ("forearms", "Forearms", "upper_pull", None),
    ("core", "Core", "core", None),
    ("abs", "Abdominals", "core", "core"),
    ("obliques", "Obliques", "core", "core"),
    ("serratus", "Serratus Anterior", "core", "core"),
    ("quads", "Quadriceps", "lower", None),
    ("hamstrings", "Hamstrings", "lower", None),
    ("glutes", "Glutes", "lower", None),
    ("hip_flexors", "Hip Flexors", "lower", None),
    ("adductors", "Hip Adductors", "lower", None),
    ("abductors", "Hip Abductors", "lower", None),
    ("calves", "Calves", "lower", None),
]


def _size_of(muscle_id: str) -> MuscleSize:
    if muscle_id in SMALL_MUSCLES:
        return "small"
    if muscle_id in LARGE_MUSCLES:
        return "large"
    return "medium"


def _build_taxonomy() -> dict[str, MuscleInfo]:
    children: dict[str, list[str]] = {}
    for muscle_id, _, _, parent_id in _TAXONOMY_ROWS:
        if parent_id is not None:
            children.setdefault(parent_id, []).append(muscle_id)

    return {
        muscle_id: MuscleInfo(
            muscle_id=muscle_id,
            name=name,
            size=_size_of(muscle_id),
            group=group,
            parent_id=parent_id,
            children=tuple(children.get(muscle_id, [])),
        )
        for muscle_id, name, group, parent_id in _TAXONOMY_ROWS
    }


MUSCLE_TAXONOMY: dict[str, MuscleInfo] = _build_taxonomy()


def muscle_size(muscle_id: str) -> MuscleSize:
    """
    Return the size class used for fatigue normalization.

    Unknown muscle ids are classified as medium rather than rejected, so a
    catalog can reference muscles this taxonomy does not list.
    """
    return _size_of(muscle_id)


def get_muscle(muscle_id: str) -> MuscleInfo | None:
    """Return the taxonomy entry for a muscle, or None if it is not listed."""
    return MUSCLE_TAXONOMY.get(muscle_id)


def is_known_muscle(muscle_id: str) -> bool:
    return muscle_id in MUSCLE_TAXONOMY


def child_muscles(muscle_id: str) -> list[MuscleInfo]:
    """Return the direct children of a muscle group (empty for leaf muscles)."""
    info = MUSCLE_TAXONOMY.get(muscle_id)
    if info is None:
        return []
    return [MUSCLE_TAXONOMY[c] for c in info.children]


def expand_muscle_group(muscle_id: str) -> list[str]:
    """
    Return the muscle id followed by all of its descendants.

    Used when a caller asks about a group ("back") and wants every
    sub-muscle tracked under it.
    """
    result = [muscle_id]
    for child in child_muscles(muscle_id):
        result.extend(expand_muscle_group(child.muscle_id))
    return result
