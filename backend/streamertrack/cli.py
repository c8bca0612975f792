"""StreamerTrack CLI: streamer cleaning coverage from the command line.

Commands:
  init-db  create database tables
  stats  coverage summary for a vessel or project
  eb-range  equipment boxes covering a section range
  backup  take a database backup now
  backups  list existing backups
  serve  run the HTTP API
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from streamertrack.errors import StreamerTrackError
from streamertrack.utils.scope import CallerScope, Role

app = typer.Typer(
    name="streamertrack",
    help="Cleaning coverage tracking for marine seismic streamers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


def _cli_scope(vessel: Optional[str]) -> CallerScope:
    """Read-only scope for a vessel, or unrestricted when none is given."""
    if vessel:
        return CallerScope(username="cli", role=Role.VIEWER, vessel_tag=vessel)
    return CallerScope.unrestricted("cli")


@app.command("init-db")
def init_db_cmd():
    """Create all tables (safe to re-run)."""
    from streamertrack.database import init_db

    with console.status("[bold]Creating database..."):
        init_db()
    console.print("[green]Database ready.[/green]")


@app.command("stats")
def stats(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project number"),
    vessel: Optional[str] = typer.Option(None, "--vessel", help="Restrict to one vessel tag"),
    start: Optional[str] = typer.Option(None, "--start", help="Earliest cleaning date (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", help="Latest cleaning date (YYYY-MM-DD)"),
):
    """Show cleaning coverage statistics."""
    from streamertrack.database import SessionLocal
    from streamertrack.modules.config_resolver import resolve_config
    from streamertrack.modules.coverage import compute_filtered_stats, compute_stats
    from streamertrack.modules.event_query import fetch_snapshot

    scope = _cli_scope(vessel)
    db = SessionLocal()
    try:
        geometry = resolve_config(db, scope, project)
        events = fetch_snapshot(db, scope, project=project, start=start, end=end)
    except StreamerTrackError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()

    totals = compute_stats(events, geometry)
    filtered = compute_filtered_stats(events, geometry)

    console.print(
        f"[bold]Vessel[/bold] {geometry.vessel_tag}  "
        f"[bold]Project[/bold] {project or geometry.active_project_number or '[dim]none[/dim]'}  "
        f"[bold]Geometry[/bold] {geometry.num_cables} x {geometry.sections_per_cable}"
        f" (+{geometry.tail_sections} tail)"
    )

    table = Table(title="Coverage")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Events", str(totals["totalEvents"]))
    table.add_row("Sections cleaned", str(totals["totalSections"]))
    table.add_row("Distance (m)", f"{totals['totalDistance']:,.0f}")
    table.add_row(
        "Unique active sections",
        f"{totals['activeCleanedSections']} / {totals['totalAvailableSections']}",
    )
    table.add_row(
        "Unique tail sections",
        f"{totals['tailCleanedSections']} / {totals['totalAvailableTail']}",
    )
    table.add_row("Last cleaning", filtered["lastCleaning"] or "-")
    console.print(table)

    if filtered["byMethod"]:
        methods = Table(title="Distance by method")
        methods.add_column("Method")
        methods.add_column("Distance (m)", justify="right")
        for method, distance in sorted(filtered["byMethod"].items()):
            methods.add_row(method, f"{distance:,.0f}")
        console.print(methods)


@app.command("eb-range")
def eb_range(
    start: int = typer.Argument(..., help="First section index"),
    end: int = typer.Argument(..., help="Last section index"),
    section_type: Optional[str] = typer.Option(None, "--type", "-t", help="active or tail"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project number"),
    vessel: Optional[str] = typer.Option(None, "--vessel", help="Vessel tag"),
):
    """Print the equipment boxes covering a section range."""
    from streamertrack.database import SessionLocal
    from streamertrack.modules.config_resolver import resolve_config
    from streamertrack.modules.eb_resolver import calculate_eb_range
    from streamertrack.modules.section_addressing import is_tail_query

    db = SessionLocal()
    try:
        geometry = resolve_config(db, _cli_scope(vessel), project)
    except StreamerTrackError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()

    is_tail = is_tail_query(start, end, section_type, geometry)
    console.print(calculate_eb_range(start, end, geometry, is_tail=is_tail))


@app.command("backup")
def backup_now():
    """Take a database backup now."""
    from streamertrack.config import settings
    from streamertrack.database import engine
    from streamertrack.modules.backup import create_backup

    try:
        path = create_backup(engine, Path(settings.BACKUP_DIR), settings.MAX_BACKUPS)
    except StreamerTrackError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Backup written:[/green] {path}")


@app.command("backups")
def backups():
    """List database backups, newest first."""
    from streamertrack.config import settings
    from streamertrack.modules.backup import list_backups

    entries = list_backups(Path(settings.BACKUP_DIR))
    if not entries:
        console.print("[dim]No backups found.[/dim]")
        return

    table = Table(title=f"Backups in {settings.BACKUP_DIR}")
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Created")
    for entry in entries:
        table.add_row(entry["filename"], f"{entry['size'] / 1024:.1f} KB", entry["createdAt"][:19])
    console.print(table)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(3000, "--port"),
    reload: bool = typer.Option(False, "--reload", hidden=True),
):
    """Run the HTTP API."""
    import uvicorn

    console.print(f"API listening on [cyan]http://{host}:{port}[/cyan] (Ctrl+C to stop)")
    uvicorn.run("streamertrack.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
