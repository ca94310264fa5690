"""``imagemill ingest`` — store a file as an input artifact."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from imagemill.config import ServiceConfig
from imagemill.core.artifact_store import ArtifactStore
from imagemill.core.errors import ImageMillError

console = Console()


def ingest_cmd(
    file: Path = typer.Argument(..., help="File to upload."),
    name: str = typer.Option(
        None, "--name", "-n", help="Original file name to record (defaults to the file's)."
    ),
) -> None:
    """Copy a file into the upload directory and print its identifier."""
    settings = ServiceConfig()
    store = ArtifactStore(settings.upload_dir, settings.output_dir)
    try:
        artifact = store.ingest(file, name)
    except ImageMillError as exc:
        console.print(f"[red]Upload failed:[/red] {exc}")
        raise typer.Exit(code=1)

    console.print_json(
        data={
            "message": "File uploaded successfully",
            "fileId": artifact.identifier,
            "originalName": name or file.name,
        }
    )
