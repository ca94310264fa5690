"""``imagemill sweep`` and ``imagemill sweeper`` — artifact retention."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import typer
from rich.console import Console
from rich.table import Table

from imagemill.config import ServiceConfig
from imagemill.core.artifact_store import ArtifactStore
from imagemill.core.retention import RetentionSweeper

console = Console()


def _sweeper(settings: ServiceConfig, max_age: float | None = None) -> RetentionSweeper:
    store = ArtifactStore(settings.upload_dir, settings.output_dir)
    retention = (
        timedelta(seconds=max_age) if max_age is not None else settings.retention_window
    )
    return RetentionSweeper(store, retention=retention, interval=settings.sweep_interval)


def sweep_cmd(
    max_age: float = typer.Option(
        None,
        "--max-age",
        help="Delete artifacts older than this many seconds (default: retention window).",
        min=0,
    ),
) -> None:
    """Run one retention sweep and list what was removed."""
    sweeper = _sweeper(ServiceConfig(), max_age)
    report = sweeper.sweep()

    if not report.removed and not report.failed:
        console.print("[dim]Nothing to clean up.[/dim]")
        return

    table = Table(title=f"Swept artifacts older than {report.cutoff:%Y-%m-%d %H:%M:%S} UTC")
    table.add_column("Artifact", style="cyan")
    table.add_column("Result", justify="center")
    for identifier in report.removed:
        table.add_row(identifier, "[green]removed[/green]")
    for identifier in report.failed:
        table.add_row(identifier, "[red]failed[/red]")
    console.print(table)

    if report.failed:
        raise typer.Exit(code=1)


def sweeper_cmd() -> None:
    """Run the retention sweeper until interrupted."""
    settings = ServiceConfig()
    sweeper = _sweeper(settings)
    console.print(
        f"[bold]Retention sweeper[/bold] every {settings.sweep_interval}, "
        f"retention {settings.retention_window}. Ctrl-C to stop."
    )
    try:
        asyncio.run(sweeper.run_forever())
    except KeyboardInterrupt:
        console.print("[dim]Sweeper stopped.[/dim]")
