"""Process runner — executes the image tool for one command.

Defines the ``ProcessRunner`` Protocol that transformation backends must
satisfy, and ``MagickRunner``, the default backend that spawns ImageMagick
as a child process.

The argument vector is handed to the operating system as-is; no shell is
involved, so nothing in a user-supplied value (quotes, semicolons,
backticks, ``$(...)``) is ever interpreted.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from imagemill.core.errors import ProcessError, ProcessTimeoutError
from imagemill.models.commands import CommandSpec

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


@runtime_checkable
class ProcessRunner(Protocol):
    """Protocol for image tool execution backends.

    Any object with an ``async run(spec) -> Path`` method satisfies this
    protocol.
    """

    async def run(self, spec: CommandSpec) -> Path:
        """Run the command and return the path of the produced file.

        Raises
        ------
        ProcessError
            If the tool cannot be spawned, exits non-zero, times out, or
            leaves no output file behind.
        """
        ...


class MagickRunner:
    """Runs ImageMagick as a child process with a hard deadline.

    Parameters
    ----------
    timeout:
        Seconds the tool may run before it is killed. ``None`` disables
        the deadline.
    """

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout

    async def run(self, spec: CommandSpec) -> Path:
        argv = spec.argv
        logger.debug("Running %s", argv)

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("Could not start %s: %s", spec.executable, exc)
            raise ProcessError(f"cannot run {spec.executable}: {exc}") from exc

        try:
            _, stderr_bytes = await asyncio.wait_for(proc.communicate(), self.timeout)
        except asyncio.TimeoutError:
            await self._kill(proc)
            logger.error("%s timed out after %ss", spec.executable, self.timeout)
            raise ProcessTimeoutError(self.timeout or 0) from None
        except asyncio.CancelledError:
            await self._kill(proc)
            raise

        stderr = stderr_bytes.decode("utf-8", errors="replace").strip()
        if proc.returncode != 0:
            logger.error(
                "%s exited with status %s: %s", spec.executable, proc.returncode, stderr
            )
            raise ProcessError(stderr, exit_code=proc.returncode)

        if stderr:
            logger.warning("%s warning: %s", spec.executable, stderr)

        if not spec.output_path.is_file():
            raise ProcessError(
                f"{spec.executable} exited successfully but wrote no output "
                f"to {spec.output_path.name}"
            )
        return spec.output_path

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
