"""
CLI entry point using Typer.

Provides commands for fatigue tracking and the exercise catalog:
- log-workout: Record a workout and update muscle fatigue
- impact: Preview the fatigue a workout would add
- status: Show current fatigue per muscle
- reset: Forget all recorded fatigue
- exercises: List the catalog
- similarity: Explain the similarity of two exercises
- related: Show alternatives, progressions and regressions
- preview: Show which muscles an exercise works
- rebuild: Recompute and store all relationships
"""

from .app import app
from .commands import catalog, fatigue  # noqa: F401  (registers commands)

__all__ = ["app"]


if __name__ == "__main__":
    app()
