"""``imagemill fetch`` — copy a produced artifact out of the store."""

from __future__ import annotations

import shutil
from pathlib import Path

import typer
from rich.console import Console

from imagemill.config import ServiceConfig
from imagemill.core.artifact_store import ArtifactStore
from imagemill.core.errors import ImageMillError

console = Console()


def fetch_cmd(
    file_id: str = typer.Argument(..., help="Identifier returned by transform."),
    dest: Path = typer.Option(
        None, "--dest", "-d", help="Destination file or directory (default: cwd)."
    ),
) -> None:
    """Retrieve an output artifact by identifier."""
    settings = ServiceConfig()
    store = ArtifactStore(settings.upload_dir, settings.output_dir)
    try:
        artifact = store.resolve(file_id)
    except ImageMillError as exc:
        console.print(f"[red]File not found:[/red] {exc}")
        raise typer.Exit(code=1)

    target = dest or Path.cwd()
    if target.is_dir():
        target = target / artifact.identifier
    shutil.copyfile(artifact.path, target)
    console.print(f"[green]Saved[/green] {artifact.identifier} -> {target}")
