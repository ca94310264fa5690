"""``imagemill transform`` — apply one operation to an image file.

A copy of the file is ingested as an input artifact (the original is never
touched), the operation runs through the transformation service, and the
result payload is printed as JSON.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from imagemill.config import ServiceConfig
from imagemill.core.command_builder import parse_operation
from imagemill.core.errors import ImageMillError
from imagemill.core.transform_service import TransformService
from imagemill.models.requests import TransformRequest

console = Console()


def parse_params(pairs: list[str]) -> dict[str, str]:
    """Turn ``key=value`` strings into a parameter mapping."""
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {pair!r}", param_hint="--param")
        params[key] = value
    return params


def transform_cmd(
    operation: str = typer.Argument(
        ..., help="resize, convert, filter, crop, text or rotate."
    ),
    file: Path = typer.Argument(..., help="Image file to transform."),
    param: Optional[List[str]] = typer.Option(
        None,
        "--param",
        "-p",
        help="Operation parameter as key=value (repeatable).",
    ),
) -> None:
    """Apply one transformation and print the result payload."""
    settings = ServiceConfig()
    params = parse_params(param or [])

    try:
        kind = parse_operation(operation)
    except ImageMillError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    service = TransformService.from_config(settings)
    try:
        source = service.store.ingest(file)
    except ImageMillError as exc:
        console.print(f"[red]Upload failed:[/red] {exc}")
        raise typer.Exit(code=1)

    request = TransformRequest(operation=kind, input=source, params=params)
    result = asyncio.run(service.transform(request))

    console.print_json(data=result.to_payload(settings.download_prefix))
    if not result.success:
        raise typer.Exit(code=1)
