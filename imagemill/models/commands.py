"""External tool invocation model."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class CommandSpec(BaseModel):
    """A fully resolved image tool invocation.

    ``arguments`` holds only the operation fragment; ``argv`` places it
    between the input and output paths. Every element is passed to the
    child process as a discrete argument, never through a shell.
    """

    model_config = ConfigDict(frozen=True)

    executable: str
    arguments: list[str]
    input_path: Path
    output_path: Path

    @property
    def argv(self) -> list[str]:
        return [
            self.executable,
            str(self.input_path),
            *self.arguments,
            str(self.output_path),
        ]
