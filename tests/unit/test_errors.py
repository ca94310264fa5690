"""Tests for the error taxonomy — kinds, status codes, messages."""

from __future__ import annotations

import pytest

from imagemill.core.errors import (
    ArtifactNotFoundError,
    ImageMillError,
    MissingInputError,
    ProcessError,
    ProcessTimeoutError,
    StoreIOError,
    ValidationError,
)


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error, kind, status",
        [
            (ValidationError("bad"), "validation", 400),
            (MissingInputError("none"), "missing_input", 400),
            (ProcessError("boom", exit_code=1), "process", 500),
            (ArtifactNotFoundError("gone"), "not_found", 404),
            (StoreIOError("disk"), "store_io", 500),
        ],
    )
    def test_kind_and_status(self, error: ImageMillError, kind: str, status: int):
        assert isinstance(error, ImageMillError)
        assert error.kind == kind
        assert error.status_code == status

    def test_process_error_message(self):
        err = ProcessError("no decode delegate", exit_code=1)
        assert err.exit_code == 1
        assert err.stderr == "no decode delegate"
        assert str(err) == "image tool exited with status 1: no decode delegate"
        assert str(ProcessError("", exit_code=2)) == "image tool exited with status 2"

    def test_timeout_is_a_process_error(self):
        err = ProcessTimeoutError(2.5)
        assert isinstance(err, ProcessError)
        assert err.exit_code is None
        assert err.detail == "image tool timed out after 2.5s"
