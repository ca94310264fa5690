"""Shared test fixtures for imagemill."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path

import pytest

from imagemill.core.artifact_store import ArtifactStore
from imagemill.core.errors import ProcessError
from imagemill.core.transform_service import TransformService
from imagemill.models.artifacts import Artifact
from imagemill.models.commands import CommandSpec


class FakeRunner:
    """In-process stand-in for the image tool.

    Copies the input to the output path, or raises the configured error.
    With ``write_partial`` it leaves a truncated output file behind before
    failing, like a tool that crashes mid-write.
    """

    def __init__(
        self, fail: ProcessError | None = None, *, write_partial: bool = False
    ) -> None:
        self.fail = fail
        self.write_partial = write_partial
        self.calls: list[CommandSpec] = []

    async def run(self, spec: CommandSpec) -> Path:
        self.calls.append(spec)
        if self.write_partial:
            spec.output_path.write_bytes(b"partial")
        if self.fail is not None:
            raise self.fail
        shutil.copyfile(spec.input_path, spec.output_path)
        return spec.output_path


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def store(tmp_dir: Path) -> ArtifactStore:
    """Provide a fresh ArtifactStore whose directories do not exist yet."""
    return ArtifactStore(tmp_dir / "uploads", tmp_dir / "output")


@pytest.fixture
def make_input(tmp_dir: Path, store: ArtifactStore) -> Callable[..., Artifact]:
    """Factory fixture: ingest a small fake image as an input artifact."""
    counter = iter(range(1_000_000))

    def _factory(name: str = "photo.jpg", data: bytes = b"\xff\xd8fake-jpeg") -> Artifact:
        staging = tmp_dir / "staging"
        staging.mkdir(exist_ok=True)
        source = staging / f"{next(counter)}-{name}"
        source.write_bytes(data)
        return store.ingest(source, name, move=True)

    return _factory


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    """Factory fixture: build a FakeRunner, optionally failing."""
    return FakeRunner


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def service(store: ArtifactStore, fake_runner: FakeRunner) -> TransformService:
    """Provide a TransformService wired to the test store and FakeRunner."""
    return TransformService(store, fake_runner, executable="convert")


@pytest.fixture
def make_tool(tmp_dir: Path) -> Callable[[str, str], Path]:
    """Factory fixture: write an executable POSIX shell script.

    The script receives the same argv ImageMagick would: the input path
    first, the operation arguments, and the output path last.
    """
    bin_dir = tmp_dir / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _factory(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(0o755)
        return path

    return _factory


@pytest.fixture
def copy_tool(make_tool: Callable[[str, str], Path]) -> Path:
    """A tool that copies its input to its output, like a no-op convert."""
    return make_tool("copy-tool", 'for last; do :; done\ncp "$1" "$last"')


@pytest.fixture
def echo_args_tool(make_tool: Callable[[str, str], Path]) -> Path:
    """A tool that writes each argument it received on its own line."""
    return make_tool(
        "echo-args-tool", "for last; do :; done\nprintf '%s\\n' \"$@\" > \"$last\""
    )
