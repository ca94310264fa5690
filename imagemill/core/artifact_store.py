"""Artifact store — owns the lifetime of uploaded and produced image files.

Storage layout::

    {input_dir}/{timestamp_ms}-{original_name}
    {output_dir}/{timestamp_ms}-{sequence}{token}-{purpose}.{ext}

Identifiers are bare file names: one path segment, no separators. Name
reservation never takes a lock; uniqueness comes from the per-store
sequence combined with a random token. Deletion is idempotent so the
retention sweeper and a transformation cleaning up its own input can race
without either failing.
"""

from __future__ import annotations

import itertools
import logging
import os
import re
import shutil
import time
import uuid
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path

from imagemill.core.errors import ArtifactNotFoundError, StoreIOError, ValidationError
from imagemill.models.artifacts import Artifact, ArtifactRole

logger = logging.getLogger(__name__)

_PURPOSE_RE = re.compile(r"^[a-z0-9_]{1,32}$")
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_DOT_RUNS = re.compile(r"\.{2,}")


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


def sanitize_name(name: str) -> str:
    """Reduce an uploaded file name to a single safe path segment."""
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _DOT_RUNS.sub(".", _UNSAFE_NAME_CHARS.sub("_", base)).lstrip(".")
    return cleaned[:128] or "upload"


def check_identifier(identifier: str) -> str:
    """Reject identifiers that could escape their artifact directory.

    Raises
    ------
    ValidationError
        If *identifier* is empty, contains a path separator, a NUL byte
        or ``..``, or starts with a dot.
    """
    if (
        not identifier
        or "/" in identifier
        or "\\" in identifier
        or "\x00" in identifier
        or identifier.startswith(".")
        or ".." in identifier
    ):
        raise ValidationError(f"illegal artifact identifier: {identifier!r}")
    return identifier


class ArtifactScan:
    """Lazy, restartable listing of artifacts older than a cutoff.

    Nothing is read until iteration starts, and every new iteration
    rescans the directories, so the same scan object can drive repeated
    sweeps. Files that disappear mid-scan are skipped, and unreadable
    directories or entries are logged and skipped.
    """

    def __init__(
        self,
        store: ArtifactStore,
        cutoff: datetime,
        roles: tuple[ArtifactRole, ...],
    ) -> None:
        self._store = store
        self._cutoff = cutoff
        self._roles = roles

    @property
    def cutoff(self) -> datetime:
        return self._cutoff

    def __iter__(self) -> Iterator[Artifact]:
        for role in self._roles:
            directory = self._store.directory(role)
            if not directory.is_dir():
                continue
            try:
                entries = list(os.scandir(directory))
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Cannot scan %s directory %s: %s", role.value, directory, exc)
                continue
            for entry in entries:
                # Symlinks are aged and removed as links; their targets are not ours.
                if not (entry.is_symlink() or entry.is_file(follow_symlinks=False)):
                    continue
                try:
                    mtime = entry.stat(follow_symlinks=False).st_mtime
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    logger.warning("Cannot stat %s: %s", entry.path, exc)
                    continue
                created_at = datetime.fromtimestamp(mtime, tz=timezone.utc)
                if created_at < self._cutoff:
                    yield Artifact(
                        identifier=entry.name,
                        path=Path(entry.path),
                        role=role,
                        created_at=created_at,
                    )


class ArtifactStore:
    """Filesystem-backed store for input and output artifacts.

    Parameters
    ----------
    input_dir:
        Directory holding uploaded files awaiting transformation.
    output_dir:
        Directory holding files produced by the image tool.

    Both directories are created lazily on first use.
    """

    def __init__(self, input_dir: Path | str, output_dir: Path | str) -> None:
        self._dirs = {
            ArtifactRole.INPUT: Path(input_dir).resolve(),
            ArtifactRole.OUTPUT: Path(output_dir).resolve(),
        }
        self._sequence = itertools.count()

    @property
    def input_dir(self) -> Path:
        return self._dirs[ArtifactRole.INPUT]

    @property
    def output_dir(self) -> Path:
        return self._dirs[ArtifactRole.OUTPUT]

    def directory(self, role: ArtifactRole) -> Path:
        return self._dirs[role]

    def _ensure_dir(self, role: ArtifactRole) -> Path:
        directory = self._dirs[role]
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreIOError(f"cannot create {role.value} directory {directory}: {exc}") from exc
        return directory

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def reserve_output_name(self, purpose: str, extension: str = "jpg") -> Artifact:
        """Reserve a unique output path for the image tool to write.

        The file itself is not created. Raises ``StoreIOError`` if the
        output directory cannot be created.
        """
        if not _PURPOSE_RE.match(purpose):
            raise ValidationError(f"illegal artifact purpose: {purpose!r}")
        if not _PURPOSE_RE.match(extension):
            raise ValidationError(f"illegal artifact extension: {extension!r}")

        directory = self._ensure_dir(ArtifactRole.OUTPUT)
        seq = next(self._sequence)
        identifier = f"{_now_ms()}-{seq:x}{uuid.uuid4().hex[:8]}-{purpose}.{extension}"
        return Artifact(
            identifier=identifier,
            path=directory / identifier,
            role=ArtifactRole.OUTPUT,
        )

    def ingest(
        self,
        source: Path | str,
        original_name: str | None = None,
        *,
        move: bool = False,
    ) -> Artifact:
        """Persist an uploaded file as a new input artifact.

        The stored name is ``{timestamp_ms}-{original_name}``; a random
        token is added if that name is already taken. The name is claimed
        with an exclusive create before any bytes are written, so
        concurrent uploads never overwrite each other.
        """
        source = Path(source)
        if not source.is_file():
            raise ArtifactNotFoundError(f"upload not found: {source}")

        directory = self._ensure_dir(ArtifactRole.INPUT)
        name = sanitize_name(original_name or source.name)
        target = self._claim(directory, name)

        try:
            if move:
                shutil.move(str(source), target)
            else:
                shutil.copyfile(source, target)
        except OSError as exc:
            target.unlink(missing_ok=True)
            raise StoreIOError(f"cannot store upload {source}: {exc}") from exc

        logger.debug("Ingested %s as %s", source, target.name)
        return Artifact(
            identifier=target.name,
            path=target,
            role=ArtifactRole.INPUT,
            created_at=_mtime(target),
        )

    @staticmethod
    def _claim(directory: Path, name: str) -> Path:
        identifier = f"{_now_ms()}-{name}"
        while True:
            target = directory / identifier
            try:
                target.open("xb").close()
            except FileExistsError:
                identifier = f"{_now_ms()}-{uuid.uuid4().hex[:8]}-{name}"
                continue
            except OSError as exc:
                raise StoreIOError(f"cannot create {target}: {exc}") from exc
            return target

    # ------------------------------------------------------------------
    # Resolve and check
    # ------------------------------------------------------------------

    def resolve(
        self, identifier: str, role: ArtifactRole = ArtifactRole.OUTPUT
    ) -> Artifact:
        """Map an identifier back to a stored artifact.

        Raises
        ------
        ValidationError
            If the identifier contains path-traversal sequences.
        ArtifactNotFoundError
            If no such artifact exists (never created or already swept).
        """
        check_identifier(identifier)
        directory = self._dirs[role]
        path = directory / identifier
        if path.resolve().parent != directory or not path.is_file():
            raise ArtifactNotFoundError(f"{role.value} artifact not found: {identifier}")
        try:
            created_at = _mtime(path)
        except FileNotFoundError:
            raise ArtifactNotFoundError(
                f"{role.value} artifact not found: {identifier}"
            ) from None
        return Artifact(identifier=identifier, path=path, role=role, created_at=created_at)

    def exists(self, artifact: Artifact) -> bool:
        return artifact.path.is_file()

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(self, artifact: Artifact, *, missing_ok: bool = True) -> bool:
        """Remove an artifact's file.

        Returns ``True`` if a file was removed and ``False`` if it was
        already gone. Deleting twice is not an error unless
        ``missing_ok=False``, in which case ``ArtifactNotFoundError`` is
        raised for a missing file.

        Raises
        ------
        StoreIOError
            For any other filesystem failure.
        """
        try:
            artifact.path.unlink()
        except FileNotFoundError:
            if not missing_ok:
                raise ArtifactNotFoundError(
                    f"{artifact.role.value} artifact not found: {artifact.identifier}"
                ) from None
            return False
        except OSError as exc:
            raise StoreIOError(f"cannot delete {artifact.path}: {exc}") from exc
        logger.debug("Deleted %s artifact %s", artifact.role.value, artifact.identifier)
        return True

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_older_than(
        self, cutoff: datetime, role: ArtifactRole | None = None
    ) -> ArtifactScan:
        """Artifacts whose modification time predates *cutoff*.

        With ``role=None`` inputs are listed before outputs.
        """
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)
        roles = (role,) if role is not None else (ArtifactRole.INPUT, ArtifactRole.OUTPUT)
        return ArtifactScan(self, cutoff, roles)
