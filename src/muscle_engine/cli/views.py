"""
Rich-based display formatting for CLI output.

Provides tables for the exercise catalog, relationships, workout impact
and the current muscle status.
"""

from rich.console import Console
from rich.table import Table

from ..core.models import Exercise, ExerciseRelationships, MuscleDisplayState, MuscleState, RelationshipLink
from ..core.muscles import get_muscle
from ..core.similarity import MuscleOverlap
from ..core.tracker import ImpactReport

console = Console()


def muscle_name(muscle_id: str) -> str:
    info = get_muscle(muscle_id)
    return info.name if info is not None else muscle_id


def _fmt_muscles(muscle_ids: tuple[str, ...]) -> str:
    return ", ".join(muscle_name(m) for m in muscle_ids) or "-"


def format_exercise_table(exercises: list[Exercise]) -> Table:
    """
    Create a Rich table listing catalog exercises.

    Args:
        exercises: Exercises to display

    Returns:
        Rich Table object
    """
    table = Table(title="Exercise Catalog")

    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Level", style="magenta")
    table.add_column("Primary", style="bold")
    table.add_column("Secondary", style="dim")
    table.add_column("Equipment", style="green")

    for ex in sorted(exercises, key=lambda e: e.exercise_id):
        table.add_row(
            ex.exercise_id,
            ex.name,
            ex.difficulty,
            _fmt_muscles(ex.primary_muscles),
            _fmt_muscles(ex.secondary_muscles),
            ", ".join(sorted(ex.equipment)) or "-",
        )

    return table


def _links_table(title: str, links: tuple[RelationshipLink, ...], names: dict[str, str]) -> Table:
    table = Table(title=title, title_justify="left")
    table.add_column("Exercise", style="cyan")
    table.add_column("Name")
    table.add_column("Similarity", justify="right", style="bold")
    table.add_column("Level Δ", justify="right")
    for link in links:
        table.add_row(
            link.exercise_id,
            names.get(link.exercise_id, link.exercise_id),
            f"{link.similarity:.2f}",
            f"{link.difficulty_delta:+d}",
        )
    return table


def print_relationships(
    exercise: Exercise,
    record: ExerciseRelationships,
    names: dict[str, str],
) -> None:
    """
    Print the alternatives, progressions and regressions of an exercise.

    Args:
        exercise: Source exercise
        record: Its relationship record
        names: exercise_id → display name, for the related exercises
    """
    console.print(f"[bold]{exercise.name}[/bold] [dim]({exercise.exercise_id}, {exercise.difficulty})[/dim]")

    if record.is_empty:
        console.print("[yellow]No related exercises found.[/yellow]")
        return

    sections = (
        ("Alternatives", record.alternative_links),
        ("Progressions", record.progression_links),
        ("Regressions", record.regression_links),
    )
    for title, links in sections:
        if links:
            console.print(_links_table(title, links, names))


def print_similarity(a: Exercise, b: Exercise, overlap: MuscleOverlap) -> None:
    """Print the breakdown of a similarity score."""
    table = Table(title=f"{a.name} vs {b.name}")
    table.add_column("Component")
    table.add_column("Value", justify="right")

    table.add_row("Primary overlap", f"{overlap.target_overlap:.2f}  ({overlap.shared_primary} shared)")
    table.add_row("Secondary overlap", f"{overlap.synergist_overlap:.2f}  ({overlap.shared_secondary} shared)")
    table.add_row("Equipment overlap", f"{overlap.equipment_compatibility:.2f}")
    table.add_row("Level difference", f"{overlap.difficulty_gap:+d}")
    table.add_row("[bold]Similarity[/bold]", f"[bold]{overlap.score:.2f}[/bold]")
    table.add_row("Substitute", overlap.viability)

    console.print(table)


def format_impact_table(report: ImpactReport) -> Table:
    """
    Create a Rich table of the fatigue a workout adds per muscle.

    Args:
        report: Impact of one workout

    Returns:
        Rich Table object
    """
    table = Table(title="Workout Impact")

    table.add_column("Muscle", style="cyan")
    table.add_column("Role", style="magenta")
    table.add_column("Volume(kg)", justify="right")
    table.add_column("Fatigue +%", justify="right", style="bold")

    ordered = sorted(report.impacts.values(), key=lambda i: (-i.fatigue_added, i.muscle_id))
    for impact in ordered:
        table.add_row(
            muscle_name(impact.muscle_id),
            impact.role,
            f"{impact.volume_lifted:.0f}",
            f"{impact.fatigue_added:.1f}",
        )

    return table


def print_impact(report: ImpactReport) -> None:
    """Print a workout impact, followed by skipped exercises and rejected sets."""
    if not report.impacts:
        console.print("[yellow]This workout adds no fatigue.[/yellow]")
    else:
        console.print(format_impact_table(report))

    for exercise_id in report.skipped_exercises:
        print_warning(f"Unknown exercise '{exercise_id}' was skipped")
    for rejected in report.rejected_sets:
        print_warning(f"{rejected.exercise_id} set {rejected.set_index + 1} rejected: {rejected.reason}")


def format_status_table(
    states: dict[str, MuscleState],
    displays: dict[str, MuscleDisplayState],
) -> Table:
    """
    Create a Rich table of current fatigue per muscle.

    Args:
        states: Decayed states keyed by muscle_id
        displays: Display projection of the same states

    Returns:
        Rich Table object
    """
    table = Table(title="Muscle Status")

    table.add_column("Muscle", style="cyan")
    table.add_column("Fatigue", justify="right", style="bold")
    table.add_column("Status")
    table.add_column("Last role", style="dim")

    ordered = sorted(states.values(), key=lambda s: (-s.current_fatigue, s.muscle_id))
    for state in ordered:
        display = displays[state.muscle_id]
        table.add_row(
            muscle_name(state.muscle_id),
            f"{state.current_fatigue:.1f}%",
            f"[{display.color}]{display.label}[/]",
            state.last_workout_role,
        )

    return table


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} (y/N): ")
    return response.lower() in ("y", "yes")
