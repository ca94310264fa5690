"""Transformation request and result models.

``TransformResult.to_payload()`` produces the response body the routing
layer sends back; ``status_code`` is the transport status to use with it.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict

from imagemill.models.artifacts import Artifact
from imagemill.models.operations import OperationKind

ParamValue = Union[str, int, float, bool]

SUCCESS_MESSAGES: dict[OperationKind, str] = {
    OperationKind.RESIZE: "Image resized successfully",
    OperationKind.CONVERT: "Image converted successfully",
    OperationKind.FILTER: "Filter applied successfully",
    OperationKind.CROP: "Image cropped successfully",
    OperationKind.ANNOTATE_TEXT: "Text added successfully",
    OperationKind.ROTATE: "Image rotated successfully",
}

FAILURE_MESSAGES: dict[OperationKind, str] = {
    OperationKind.RESIZE: "Resize operation failed",
    OperationKind.CONVERT: "Format conversion failed",
    OperationKind.FILTER: "Filter application failed",
    OperationKind.CROP: "Crop operation failed",
    OperationKind.ANNOTATE_TEXT: "Text addition failed",
    OperationKind.ROTATE: "Rotation failed",
}


class TransformRequest(BaseModel):
    """One transformation to apply to one uploaded input artifact."""

    model_config = ConfigDict(frozen=True)

    operation: OperationKind
    input: Artifact | None = None
    params: dict[str, ParamValue] = {}


class TransformFailure(BaseModel):
    """Structured error returned in place of an output artifact."""

    model_config = ConfigDict(frozen=True)

    kind: str
    detail: str
    status_code: int = 500
    exit_code: int | None = None


class TransformResult(BaseModel):
    """Outcome of a transformation: an output artifact or a failure."""

    model_config = ConfigDict(frozen=True)

    success: bool
    operation: OperationKind
    artifact: Artifact | None = None
    error: TransformFailure | None = None

    @property
    def status_code(self) -> int:
        if self.success:
            return 200
        return self.error.status_code if self.error else 500

    def download_url(self, prefix: str = "/download") -> str | None:
        """Retrieval path for the output artifact, if there is one."""
        if self.artifact is None:
            return None
        return f"{prefix.rstrip('/')}/{self.artifact.identifier}"

    def to_payload(self, download_prefix: str = "/download") -> dict[str, Any]:
        """Render the result as the JSON body the routing layer returns."""
        if self.success and self.artifact is not None:
            return {
                "message": SUCCESS_MESSAGES[self.operation],
                "fileId": self.artifact.identifier,
                "downloadUrl": self.download_url(download_prefix),
            }
        payload: dict[str, Any] = {
            "error": FAILURE_MESSAGES[self.operation],
            "details": self.error.detail if self.error else "unknown error",
        }
        if self.error is not None:
            payload["kind"] = self.error.kind
        return payload
