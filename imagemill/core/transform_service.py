"""Transformation service — runs one request through the whole pipeline.

Order of operations for a request:

1. Check the input artifact is present.
2. Build and validate the tool arguments (no side effects on failure).
3. Reserve an output artifact name.
4. Run the image tool. On failure or cancellation any partial output is
   removed and the input artifact is kept for diagnosis; the error
   propagates. A run that reports success without writing the output
   file counts as a tool failure.
5. On success delete the input artifact (best-effort) and return the
   output artifact.

Output artifacts are never deleted here; the retention sweeper expires them.
"""

from __future__ import annotations

import asyncio
import logging

from imagemill.config import ServiceConfig
from imagemill.core import command_builder
from imagemill.core.artifact_store import ArtifactStore
from imagemill.core.errors import (
    ArtifactNotFoundError,
    ImageMillError,
    MissingInputError,
    ProcessError,
    StoreIOError,
)
from imagemill.core.process_runner import MagickRunner, ProcessRunner
from imagemill.models.artifacts import Artifact, ArtifactRole
from imagemill.models.commands import CommandSpec
from imagemill.models.requests import TransformFailure, TransformRequest, TransformResult

logger = logging.getLogger(__name__)


class TransformService:
    """Orchestrates validation, execution and artifact cleanup.

    Holds no per-request state, so any number of ``transform`` calls may
    run concurrently on the same instance.

    Parameters
    ----------
    store:
        Artifact store owning input and output files.
    runner:
        Backend executing the image tool.  Defaults to ``MagickRunner``.
    executable:
        Name or path of the image tool binary.
    """

    def __init__(
        self,
        store: ArtifactStore,
        runner: ProcessRunner | None = None,
        *,
        executable: str = "convert",
    ) -> None:
        self.store = store
        self.runner: ProcessRunner = runner or MagickRunner()
        self.executable = executable

    @classmethod
    def from_config(
        cls, config: ServiceConfig, runner: ProcessRunner | None = None
    ) -> TransformService:
        """Wire a service from settings."""
        store = ArtifactStore(config.upload_dir, config.output_dir)
        return cls(
            store,
            runner or MagickRunner(timeout=config.process_timeout_seconds),
            executable=config.tool_path,
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, request: TransformRequest) -> Artifact:
        """Run *request* and return the output artifact.

        Raises
        ------
        MissingInputError
            If the request has no input artifact or its file is gone.
        ValidationError
            If the operation parameters are invalid.
        ProcessError
            If the image tool fails.
        StoreIOError
            If the output name cannot be reserved.
        """
        source = request.input
        if source is None or source.role is not ArtifactRole.INPUT:
            raise MissingInputError("no input file provided")
        if not self.store.exists(source):
            raise MissingInputError(f"input file {source.identifier} no longer exists")

        operation = request.operation
        arguments = command_builder.build_fragment(operation, request.params)
        output = self.store.reserve_output_name(
            command_builder.output_purpose(operation),
            command_builder.output_extension(operation, request.params),
        )
        spec = CommandSpec(
            executable=self.executable,
            arguments=arguments,
            input_path=source.path,
            output_path=output.path,
        )

        try:
            await self.runner.run(spec)
        except ProcessError:
            self._discard(output)
            logger.warning(
                "%s failed for %s; input kept for diagnosis",
                operation.value,
                source.identifier,
            )
            raise
        except asyncio.CancelledError:
            self._discard(output)
            raise

        try:
            produced = self.store.resolve(output.identifier, ArtifactRole.OUTPUT)
        except ArtifactNotFoundError:
            logger.warning(
                "%s wrote no output for %s; input kept for diagnosis",
                operation.value,
                source.identifier,
            )
            raise ProcessError(
                f"image tool reported success but wrote no output to {output.identifier}"
            ) from None
        self._discard(source)
        logger.info(
            "%s %s -> %s", operation.value, source.identifier, produced.identifier
        )
        return produced

    async def transform(self, request: TransformRequest) -> TransformResult:
        """Run *request* and report the outcome as a ``TransformResult``.

        Pipeline errors become structured failures; anything else is a bug
        and propagates.
        """
        try:
            artifact = await self.execute(request)
        except ImageMillError as exc:
            return TransformResult(
                success=False,
                operation=request.operation,
                error=TransformFailure(
                    kind=exc.kind,
                    detail=exc.detail,
                    status_code=exc.status_code,
                    exit_code=getattr(exc, "exit_code", None),
                ),
            )
        return TransformResult(success=True, operation=request.operation, artifact=artifact)

    def _discard(self, artifact: Artifact) -> None:
        """Best-effort delete; failures are logged, never raised."""
        try:
            self.store.delete(artifact)
        except StoreIOError as exc:
            logger.warning("Cleanup of %s failed: %s", artifact.identifier, exc)
