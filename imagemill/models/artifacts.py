"""Artifact models — files tracked by the artifact store."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ArtifactRole(str, Enum):
    """Whether an artifact was uploaded or produced by the image tool."""

    INPUT = "input"
    OUTPUT = "output"


class Artifact(BaseModel):
    """A stored file: uploaded input or produced output.

    The ``identifier`` is the file name inside the role's directory. It is
    opaque to callers and safe to embed in a single URL path segment.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str
    path: Path
    role: ArtifactRole
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
