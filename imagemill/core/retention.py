"""Retention sweeper — expires old input and output artifacts.

A stateless recurring task reading from the same ``ArtifactStore`` the
transformation service uses. It takes no locks; idempotent deletion in the
store absorbs races with in-flight transformations.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from imagemill.core.artifact_store import ArtifactStore
from imagemill.core.errors import ImageMillError
from imagemill.models.artifacts import ArtifactRole

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=1)
DEFAULT_INTERVAL = timedelta(hours=1)


class SweeperState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"


class SweepReport(BaseModel):
    """What a single sweep removed, and what it could not."""

    model_config = ConfigDict(frozen=True)

    cutoff: datetime
    removed: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


class RetentionSweeper:
    """Deletes artifacts older than the retention window on a fixed interval.

    Parameters
    ----------
    store:
        The artifact store to sweep.
    retention:
        Maximum artifact age.
    interval:
        Time between sweeps when running via ``run_forever``/``start``.
    """

    def __init__(
        self,
        store: ArtifactStore,
        retention: timedelta = DEFAULT_RETENTION,
        interval: timedelta = DEFAULT_INTERVAL,
    ) -> None:
        self.store = store
        self.retention = retention
        self.interval = interval
        self.state = SweeperState.IDLE
        self._task: asyncio.Task[None] | None = None

    def sweep(self, cutoff: datetime | None = None) -> SweepReport:
        """Delete every input, then every output, created before *cutoff*.

        *cutoff* defaults to now minus the retention window. A failure on
        one artifact is logged and recorded, and the sweep carries on.
        """
        if cutoff is None:
            cutoff = datetime.now(timezone.utc) - self.retention

        removed: list[str] = []
        failed: list[str] = []
        self.state = SweeperState.SCANNING
        try:
            for role in (ArtifactRole.INPUT, ArtifactRole.OUTPUT):
                for artifact in self.store.list_older_than(cutoff, role):
                    try:
                        if self.store.delete(artifact):
                            removed.append(artifact.identifier)
                            logger.info("Cleaned up: %s", artifact.path)
                    except ImageMillError as exc:
                        failed.append(artifact.identifier)
                        logger.error("Could not clean up %s: %s", artifact.path, exc)
        finally:
            self.state = SweeperState.IDLE

        return SweepReport(cutoff=cutoff, removed=removed, failed=failed)

    async def run_forever(self) -> None:
        """Sweep once per interval until cancelled."""
        seconds = self.interval.total_seconds()
        logger.info(
            "Retention sweeper started (retention=%s, interval=%s)",
            self.retention,
            self.interval,
        )
        while True:
            await asyncio.sleep(seconds)
            try:
                report = await asyncio.to_thread(self.sweep)
            except OSError as exc:
                logger.error("Retention sweep failed: %s", exc)
                continue
            if report.removed or report.failed:
                logger.info(
                    "Sweep removed %d artifacts (%d failed)",
                    len(report.removed),
                    len(report.failed),
                )

    def start(self) -> asyncio.Task[None]:
        """Schedule ``run_forever`` on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
