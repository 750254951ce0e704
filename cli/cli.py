"""Phase planner CLI.

Runs the API server and inspects or repairs a project's schedule directly
against the configured database, using the same engine code as the API.
"""

import json
import os
from typing import NoReturn

import typer
import uvicorn
from loguru import logger
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from phaseplan.core.logger import configure_from_settings
from phaseplan.db.errors import PersistenceError
from phaseplan.db.models import Base
from phaseplan.db.repository import PhaseRepository
from phaseplan.db.session import get_engine, get_session
from phaseplan.phases.dates import format_day
from phaseplan.phases.errors import CyclicDependencyError
from phaseplan.phases.evaluate import build_violation_map
from phaseplan.phases.models import Dependency, Phase
from phaseplan.phases.schedule import schedule_fix

console = Console()

app = typer.Typer(
    name="phaseplan",
    help="Phase planner - dependency validation and cascade scheduling",
    add_completion=False,
)

DEFAULT_HOST = os.getenv("SERVER_HOST", "127.0.0.1")


def _fail(title: str, message: str) -> NoReturn:
    console.print(Panel(Text(title, style="bold red"), subtitle=message, border_style="red"))
    raise typer.Exit(code=1)


@app.command()
def server(
    host: str = typer.Option(DEFAULT_HOST, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Run the FastAPI server."""
    logger.info(f"Starting FastAPI server on {host}:{port} (reload={reload})")
    uvicorn.run("phaseplan.main:app", host=host, port=port, reload=reload)


def _load_project(project_id: str) -> tuple[list[Phase], list[Dependency]]:
    configure_from_settings()
    Base.metadata.create_all(bind=get_engine())
    try:
        with get_session() as session:
            repo = PhaseRepository(session)
            return repo.list_phases(project_id), repo.list_dependencies(project_id)
    except PersistenceError as e:
        _fail("Cannot load project", str(e))


@app.command()
def violations(
    project_id: str = typer.Argument(..., help="Project ID"),
    as_json: bool = typer.Option(False, "--json", help="Print the violation map as JSON"),
) -> None:
    """Show every dependency violation in a project."""
    phases, dependencies = _load_project(project_id)
    violation_map = build_violation_map(phases, dependencies)

    if as_json:
        payload = {
            phase_id: [violation.model_dump(mode="json") for violation in items]
            for phase_id, items in violation_map.items()
        }
        console.print(JSON(json.dumps(payload)))
        return

    if not violation_map:
        console.print(Panel(Text("No violations", style="bold green"), border_style="green"))
        return

    names = {phase.id: phase.label for phase in phases}
    table = Table(title=f"Violations in project {project_id}")
    table.add_column("Phase", style="cyan")
    table.add_column("Kind")
    table.add_column("Message")
    for phase_id, items in violation_map.items():
        for violation in items:
            table.add_row(names.get(phase_id, phase_id), violation.kind.value, violation.message)
    console.print(table)


@app.command()
def fix(
    project_id: str = typer.Argument(..., help="Project ID"),
    apply: bool = typer.Option(False, "--apply", help="Write the corrections to the database"),
) -> None:
    """Compute the cascade correction for a project and optionally apply it."""
    phases, dependencies = _load_project(project_id)
    try:
        updates = schedule_fix(phases, dependencies, build_violation_map(phases, dependencies))
    except CyclicDependencyError as e:
        _fail("Circular dependencies", "; ".join(e.details))

    if not updates:
        console.print(Panel(Text("Nothing to fix", style="bold green"), border_style="green"))
        return

    by_id = {phase.id: phase for phase in phases}
    table = Table(title=f"Corrections for project {project_id}")
    table.add_column("Phase", style="cyan")
    table.add_column("Current")
    table.add_column("New", style="green")
    for update in updates:
        phase = by_id[update.id]
        table.add_row(
            phase.label,
            f"{format_day(phase.start_date)} .. {format_day(phase.end_date)}",
            f"{format_day(update.new_start)} .. {format_day(update.new_end)}",
        )
    console.print(table)

    if not apply:
        console.print("[dim]Dry run. Re-run with --apply to write these dates.[/dim]")
        return

    try:
        with get_session() as session:
            repo = PhaseRepository(session)
            repo.apply_bulk_phase_corrections(project_id, updates)
            remaining = build_violation_map(repo.list_phases(project_id), repo.list_dependencies(project_id))
    except PersistenceError as e:
        _fail("Corrections rejected", str(e))

    console.print(f"[green]Applied {len(updates)} corrections.[/green]")
    if remaining:
        console.print(f"[yellow]{len(remaining)} phases still have violations.[/yellow]")


if __name__ == "__main__":
    app()
