"""imagemill data models — all Pydantic v2, all frozen (immutable)."""

from imagemill.models.artifacts import Artifact, ArtifactRole
from imagemill.models.commands import CommandSpec
from imagemill.models.operations import FilterKind, OperationKind
from imagemill.models.requests import (
    TransformFailure,
    TransformRequest,
    TransformResult,
)

__all__ = [
    # operations
    "OperationKind",
    "FilterKind",
    # artifacts
    "Artifact",
    "ArtifactRole",
    # commands
    "CommandSpec",
    # requests
    "TransformRequest",
    "TransformResult",
    "TransformFailure",
]
