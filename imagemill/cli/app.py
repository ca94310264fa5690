"""Main Typer application — imports and registers all CLI commands.

Entry point: ``imagemill`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import typer

from imagemill.cli.commands.fetch import fetch_cmd
from imagemill.cli.commands.ingest import ingest_cmd
from imagemill.cli.commands.status import status_cmd
from imagemill.cli.commands.sweep import sweep_cmd, sweeper_cmd
from imagemill.cli.commands.transform import transform_cmd
from imagemill.config import config
from imagemill.observability import configure_logging

app = typer.Typer(
    name="imagemill",
    help="imagemill: ImageMagick-backed image transformation jobs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="ingest", help="Store a file as an input artifact.")(ingest_cmd)
app.command(name="transform", help="Apply one transformation to an image.")(transform_cmd)
app.command(name="fetch", help="Copy a transformed image out of the store.")(fetch_cmd)
app.command(name="sweep", help="Delete expired artifacts once.")(sweep_cmd)
app.command(name="sweeper", help="Run the retention sweeper continuously.")(sweeper_cmd)
app.command(name="status", help="Check the ImageMagick installation.")(status_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        config.log_level, "--log-level", help="Logging level (DEBUG, INFO, ...)."
    ),
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level)


@app.command(name="operations", help="List supported operations and their parameters.")
def operations_cmd() -> None:
    """List operations, their parameters, and defaults."""
    from rich.console import Console
    from rich.table import Table

    rows = [
        ("resize", "width=800 height=600 maintain=true"),
        ("convert", "format=png"),
        ("filter", "filter=grayscale (sepia, blur, sharpen, edge, negate, charcoal) amount=5"),
        ("crop", "width=300 height=300 x=0 y=0"),
        ("text", "text=Watermark color=white size=24 x=center y=center"),
        ("rotate", "degrees=90"),
    ]

    table = Table(title="Operations")
    table.add_column("Operation", style="cyan")
    table.add_column("Parameters (defaults)")
    for name, params in rows:
        table.add_row(name, params)
    Console().print(table)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
