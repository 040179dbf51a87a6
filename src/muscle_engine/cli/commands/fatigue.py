"""Fatigue commands: log-workout, impact, status, reset."""

import json
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.fatigue import fatigue_display
from ...core.tracker import calculate_workout_impact, muscle_states_at, submit_workout
from ...io.serializers import ValidationError, parse_workout_string, validate_timestamp
from .. import views
from ..app import DataDirOption, app, get_catalog_store, get_settings, get_state_store

WorkoutArgument = Annotated[
    str,
    typer.Argument(
        help="Workout as exercise_id:sets;... e.g. 'bench_press:10x60,10x60;push_up:20;plank:t45'",
    ),
]

AtOption = Annotated[
    Optional[str],
    typer.Option("--at", help="ISO timestamp to use instead of now (e.g. 2026-03-01T18:00)"),
]


def _parse_at(at: str | None) -> datetime | None:
    if at is None:
        return None
    try:
        return validate_timestamp(at)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def _parse_workout(workout: str):
    try:
        return parse_workout_string(workout)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


@app.command("log-workout")
def log_workout(
    workout: WorkoutArgument,
    at: AtOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Log a workout and update muscle fatigue.
    """
    entries = _parse_workout(workout)
    now = _parse_at(at)

    catalog = get_catalog_store(data_dir)
    state_store = get_state_store(data_dir)

    try:
        result = submit_workout(entries, catalog, state_store, now, get_settings())
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_impact(result.report)
    if not result.states:
        views.print_error("Nothing was recorded: no valid sets for known exercises.")
        raise typer.Exit(1)

    views.print_success(f"Workout logged: {len(result.states)} muscles updated.")


@app.command()
def impact(
    workout: WorkoutArgument,
    data_dir: DataDirOption = None,
) -> None:
    """
    Preview the fatigue a workout would add, without recording it.
    """
    entries = _parse_workout(workout)
    report = calculate_workout_impact(entries, get_catalog_store(data_dir), get_settings())
    views.print_impact(report)


@app.command()
def status(
    at: AtOption = None,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Show current fatigue of every tracked muscle.
    """
    now = _parse_at(at)
    state_store = get_state_store(data_dir)

    try:
        states = muscle_states_at(state_store, now, get_settings())
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    displays = {muscle_id: fatigue_display(s.current_fatigue) for muscle_id, s in states.items()}

    if json_out:
        print(json.dumps({
            muscle_id: {
                "fatigue": round(state.current_fatigue, 2),
                "category": displays[muscle_id].category,
                "color": displays[muscle_id].color,
                "last_workout_role": state.last_workout_role,
            }
            for muscle_id, state in sorted(states.items())
        }, indent=2))
        return

    if not states:
        views.print_info("No workouts recorded yet. All muscles are fresh.")
        return

    views.console.print(views.format_status_table(states, displays))


@app.command()
def reset(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Do not ask for confirmation"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Forget all recorded muscle fatigue.
    """
    state_store = get_state_store(data_dir)
    if not state_store.exists():
        views.print_info("Nothing to reset.")
        return

    if not force and not views.confirm_action("Delete all muscle state?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    state_store.clear()
    views.print_success("Muscle state cleared.")
