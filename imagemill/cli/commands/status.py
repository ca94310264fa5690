"""``imagemill status`` — check the ImageMagick installation and directories."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from imagemill.config import ServiceConfig

console = Console()


def _check_tool(tool_path: str) -> tuple[bool, str]:
    """Check the image tool is on PATH and report its version line."""
    resolved = shutil.which(tool_path)
    if not resolved:
        return False, f"{tool_path} not found on PATH"
    try:
        result = subprocess.run(
            [resolved, "-version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        lines = (result.stdout or result.stderr).strip().splitlines()
        version = lines[0] if lines else "unknown"
        return True, f"{resolved} ({version})"
    except (subprocess.SubprocessError, OSError):
        return True, f"{resolved} (version check failed)"


def _check_dir(path: Path) -> tuple[bool, str]:
    """Directories are created lazily, so a missing one is only reported."""
    if path.is_dir():
        count = sum(1 for p in path.iterdir() if p.is_file())
        return True, f"{path.resolve()} ({count} files)"
    return False, f"{path} (created on first use)"


def status_cmd() -> None:
    """Report ImageMagick availability and artifact directory state."""
    settings = ServiceConfig()

    checks: list[tuple[str, bool, str]] = [
        ("Image tool", *_check_tool(settings.tool_path)),
        ("Upload dir", *_check_dir(settings.upload_dir)),
        ("Output dir", *_check_dir(settings.output_dir)),
    ]

    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Component", min_width=12)
    table.add_column("Status", width=10, justify="center")
    table.add_column("Details")
    for name, ok, detail in checks:
        status = "[green]OK[/green]" if ok else "[yellow]MISSING[/yellow]"
        table.add_row(name, status, detail)

    tool_ok = checks[0][1]
    console.print()
    console.print(
        Panel(
            table,
            title="[bold]imagemill status[/bold]",
            subtitle=(
                "[bold green]ImageMagick API is ready.[/bold green]"
                if tool_ok
                else "[bold yellow]Image tool missing; transforms will fail.[/bold yellow]"
            ),
            border_style="green" if tool_ok else "yellow",
            padding=(1, 2),
        )
    )
    console.print()
