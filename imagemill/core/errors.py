"""Error taxonomy for the transformation pipeline.

Every failure a caller can observe is one of these. Each carries a stable
``kind`` and the transport status the routing layer should answer with.
"""

from __future__ import annotations

from typing import ClassVar


class ImageMillError(RuntimeError):
    """Base class for all pipeline errors."""

    kind: ClassVar[str] = "internal"
    status_code: ClassVar[int] = 500

    @property
    def detail(self) -> str:
        return str(self)


class ValidationError(ImageMillError):
    """A request parameter is missing its expected shape or out of range.

    Raised before any process is spawned or any artifact is touched.
    """

    kind = "validation"
    status_code = 400


class MissingInputError(ImageMillError):
    """The request carries no input artifact, or its file is gone."""

    kind = "missing_input"
    status_code = 400


class ProcessError(ImageMillError):
    """The external tool failed to spawn or exited non-zero.

    Parameters
    ----------
    stderr:
        Diagnostic text captured from the tool (or the spawn error).
    exit_code:
        The child's exit status; ``None`` when it never ran or was killed.
    """

    kind = "process"
    status_code = 500

    def __init__(self, stderr: str, exit_code: int | None = None) -> None:
        self.stderr = stderr
        self.exit_code = exit_code
        if exit_code is None:
            message = stderr or "image tool failed"
        elif stderr:
            message = f"image tool exited with status {exit_code}: {stderr}"
        else:
            message = f"image tool exited with status {exit_code}"
        super().__init__(message)


class ProcessTimeoutError(ProcessError):
    """The external tool ran past its deadline and was killed."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"image tool timed out after {timeout:g}s", exit_code=None)


class ArtifactNotFoundError(ImageMillError):
    """A requested artifact does not exist (never created or already expired)."""

    kind = "not_found"
    status_code = 404


class StoreIOError(ImageMillError):
    """A filesystem-level failure creating or deleting artifacts."""

    kind = "store_io"
    status_code = 500
