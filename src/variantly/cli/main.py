"""
Command-line interface for Variantly.

Inspect and edit the experiment assignments persisted in the local storage file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog
import typer
from rich.console import Console
from rich.table import Table

from variantly import __version__
from variantly.core.config import get_settings
from variantly.core.exceptions import PersistenceError, StorageError
from variantly.experiments.variant import EMPTY_VARIANT
from variantly.storage.base import dump_assignments, load_assignments
from variantly.storage.file import FileStorage
from variantly.utils.logging import setup_logging

app = typer.Typer(
    name="variantly",
    help="Variantly - inspect and pin persisted experiment assignments",
    no_args_is_help=True,
)
console = Console()
logger = structlog.get_logger()

PathOption = typer.Option(None, "--path", "-p", help="Storage file (defaults to settings)")
KeyOption = typer.Option(None, "--key", "-k", help="Storage key (defaults to settings)")


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log storage access at debug level"),
):
    """Inspect and pin persisted experiment assignments."""
    setup_logging(level="DEBUG" if verbose else None)


def get_storage(path: Optional[Path]) -> FileStorage:
    """Get the local storage file."""
    return FileStorage(path or get_settings().storage.path)


def read_assignments(storage: FileStorage, key: str) -> dict[str, str]:
    """Load assignments, exiting with an error if they are unreadable."""
    try:
        raw = storage.get_item(key)
        logger.debug("Assignments read", path=str(storage.path), key=key, found=raw is not None)
        return load_assignments(raw) if raw else {}
    except (StorageError, PersistenceError) as e:
        console.print(f"[red]Cannot read assignments:[/red] {e}")
        raise typer.Exit(1)


def write_assignments(storage: FileStorage, key: str, assignments: dict[str, str]) -> None:
    try:
        if assignments:
            storage.set_item(key, dump_assignments(assignments))
        else:
            storage.remove_item(key)
        logger.debug("Assignments written", path=str(storage.path), key=key, count=len(assignments))
    except StorageError as e:
        console.print(f"[red]Cannot write assignments:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold cyan]Variantly[/bold cyan] v{__version__}")


@app.command()
def assignments(
    path: Optional[Path] = PathOption,
    key: Optional[str] = KeyOption,
):
    """List persisted experiment assignments."""
    storage = get_storage(path)
    current = read_assignments(storage, key or get_settings().storage.persist_key)

    if not current:
        console.print(f"[dim]No assignments in {storage.path}[/dim]")
        return

    table = Table(title="Experiment Assignments", show_header=True, header_style="bold magenta")
    table.add_column("Experiment", style="cyan")
    table.add_column("Variant", style="green")

    for experiment, variant in current.items():
        label = "[dim](empty)[/dim]" if variant == EMPTY_VARIANT.name else variant
        table.add_row(experiment, label)

    console.print(table)
    console.print(f"\n[dim]Total: {len(current)} assignments[/dim]")


@app.command()
def assign(
    experiment: str = typer.Argument(..., help="Experiment name"),
    variant: str = typer.Argument(..., help=f"Variant name ({EMPTY_VARIANT.name} for no treatment)"),
    path: Optional[Path] = PathOption,
    key: Optional[str] = KeyOption,
):
    """Pin the variant an experiment resolves to on its next activation."""
    storage = get_storage(path)
    key = key or get_settings().storage.persist_key
    current = read_assignments(storage, key)
    current[experiment] = variant
    write_assignments(storage, key, current)
    console.print(f"[green]Assigned[/green] {experiment} -> {variant}")


@app.command()
def clear(
    experiment: Optional[str] = typer.Argument(None, help="Experiment to clear (all if omitted)"),
    path: Optional[Path] = PathOption,
    key: Optional[str] = KeyOption,
):
    """Remove one or all persisted assignments."""
    storage = get_storage(path)
    key = key or get_settings().storage.persist_key
    current = read_assignments(storage, key)

    if experiment is None:
        write_assignments(storage, key, {})
        console.print(f"[green]Cleared[/green] {len(current)} assignments")
        return

    if experiment not in current:
        console.print(f"[yellow]No assignment for '{experiment}'[/yellow]")
        raise typer.Exit(1)

    del current[experiment]
    write_assignments(storage, key, current)
    console.print(f"[green]Cleared[/green] {experiment}")


@app.command()
def config():
    """Show the effective settings."""
    settings = get_settings()

    table = Table(title="Settings", show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("environment", settings.environment)
    table.add_row("storage.path", str(settings.storage.path))
    table.add_row("storage.persist_key", settings.storage.persist_key)
    table.add_row("logging.level", settings.logging.level)
    table.add_row("logging.format", settings.logging.format)

    console.print(table)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
