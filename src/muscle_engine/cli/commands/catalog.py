"""Catalog commands: exercises, similarity, related, preview, rebuild."""

import json
from typing import Annotated, Optional

import typer

from ...core.fatigue import activation_display
from ...core.muscles import expand_muscle_group, is_known_muscle
from ...core.relationships import classify_relationships
from ...core.similarity import analyze_overlap
from ...core.tracker import rebuild_relationships
from ...io.serializers import ValidationError, relationships_to_dict
from .. import views
from ..app import DataDirOption, app, get_catalog_store


def _lookup(store, exercise_id: str):
    exercise = store.get_exercise(exercise_id)
    if exercise is None:
        valid = ", ".join(sorted(e.exercise_id for e in store.get_all_exercises()))
        views.print_error(f"Unknown exercise '{exercise_id}'. Valid IDs: {valid}")
        raise typer.Exit(1)
    return exercise


@app.command()
def exercises(
    muscle: Annotated[
        Optional[str],
        typer.Option("--muscle", "-m", help="Only exercises working this muscle (or group)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    List the exercise catalog.
    """
    store = get_catalog_store(data_dir)
    catalog = store.get_all_exercises()

    if muscle is not None:
        if not is_known_muscle(muscle):
            views.print_warning(f"'{muscle}' is not in the muscle taxonomy.")
        wanted = set(expand_muscle_group(muscle))
        catalog = [
            e for e in catalog
            if wanted & (e.primary_set | e.secondary_set)
        ]

    if not catalog:
        views.print_warning("No exercises match.")
        raise typer.Exit(0)

    views.console.print(views.format_exercise_table(catalog))


@app.command()
def similarity(
    first: Annotated[str, typer.Argument(help="First exercise ID")],
    second: Annotated[str, typer.Argument(help="Second exercise ID")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Show how similar two exercises are, and why.
    """
    store = get_catalog_store(data_dir)
    a = _lookup(store, first)
    b = _lookup(store, second)
    views.print_similarity(a, b, analyze_overlap(a, b))


@app.command()
def related(
    exercise_id: Annotated[str, typer.Argument(help="Exercise ID")],
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Show alternatives, progressions and regressions of an exercise.

    Uses the stored relationships when present (see 'rebuild'), otherwise
    computes them on the fly.
    """
    store = get_catalog_store(data_dir)
    exercise = _lookup(store, exercise_id)

    try:
        record = store.get_relationships(exercise_id)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if record is None:
        record = classify_relationships(exercise, store.get_all_exercises())
        if not json_out:
            views.print_info("No stored relationships; computed now. Run 'rebuild' to store them.")

    if json_out:
        print(json.dumps(relationships_to_dict(record), indent=2))
        return

    names = {e.exercise_id: e.name for e in store.get_all_exercises()}
    views.print_relationships(exercise, record, names)


@app.command()
def preview(
    exercise_id: Annotated[str, typer.Argument(help="Exercise ID")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Show which muscles an exercise works.
    """
    store = get_catalog_store(data_dir)
    exercise = _lookup(store, exercise_id)

    views.console.print(f"[bold]{exercise.name}[/bold]")
    for muscle_id, display in activation_display(exercise).items():
        views.console.print(
            f"  [{display.color}]■[/] {views.muscle_name(muscle_id)} "
            f"[dim]({display.label.lower()}, {display.intensity:.0%})[/dim]"
        )


@app.command()
def rebuild(
    data_dir: DataDirOption = None,
) -> None:
    """
    Recompute and store relationships for the whole catalog.
    """
    store = get_catalog_store(data_dir)
    records = rebuild_relationships(store)

    linked = sum(1 for r in records.values() if not r.is_empty)
    views.print_success(
        f"Stored relationships for {len(records)} exercises "
        f"({linked} with at least one related exercise)."
    )
