"""Service configuration — env-driven.

Reads from a .env file and IMAGEMILL_* environment variables. Directories,
the tool executable, and the retention policy are never hardcoded in the
components; they receive them from here.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceConfig(BaseSettings):
    """Service configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export IMAGEMILL_TOOL_PATH=/usr/local/bin/magick
        export IMAGEMILL_RETENTION_SECONDS=600
        export IMAGEMILL_OUTPUT_DIR=/data/output
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="IMAGEMILL_",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"

    # Storage paths
    upload_dir: Path = Path("uploads")
    output_dir: Path = Path("output")

    # External tool
    tool_path: str = "convert"
    process_timeout_seconds: float = Field(default=60.0, gt=0)

    # Retention
    retention_seconds: float = Field(default=3600.0, gt=0)
    sweep_interval_seconds: float = Field(default=3600.0, gt=0)

    # Retrieval path handed back to callers
    download_prefix: str = "/download"

    @property
    def retention_window(self) -> timedelta:
        return timedelta(seconds=self.retention_seconds)

    @property
    def sweep_interval(self) -> timedelta:
        return timedelta(seconds=self.sweep_interval_seconds)


# Module-level singleton: `from imagemill.config import config`
config = ServiceConfig()
