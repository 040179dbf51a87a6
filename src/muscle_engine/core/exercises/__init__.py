"""
Exercise catalog for muscle-engine.

Exercises are authored as YAML records and loaded into immutable
Exercise objects consumed by the relationship and fatigue engines.
"""

from .loader import exercise_from_dict, load_exercises_from_yaml

__all__ = [
    "exercise_from_dict",
    "load_exercises_from_yaml",
]
