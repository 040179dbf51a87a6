"""Shared Typer app object, shared option types, and store utilities."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler

from ..core.engine.config_loader import EngineSettings, load_engine_settings
from ..io.stores import JsonCatalogStore, JsonStateStore, get_default_catalog_store, get_default_state_store

# Shared --data-dir option type used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option(
        "--data-dir",
        "-d",
        help="Directory for muscle_state.json and relationships.json (default: ~/.muscle-engine)",
    ),
]

app = typer.Typer(
    name="muscle-engine",
    help="Muscle fatigue tracking and exercise relationship engine.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """
    Track muscle fatigue from logged workouts and find related exercises.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def get_state_store(data_dir: Path | None) -> JsonStateStore:
    """Get the state store in data_dir, or at the default location."""
    return get_default_state_store(data_dir)


def get_catalog_store(data_dir: Path | None) -> JsonCatalogStore:
    """Get the catalog store in data_dir, or at the default location."""
    return get_default_catalog_store(data_dir)


def get_settings() -> EngineSettings:
    """Engine settings from the user config file (defaults if absent)."""
    return load_engine_settings()
