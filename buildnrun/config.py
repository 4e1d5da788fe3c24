"""Runtime settings: env-driven.

Reads ``BUILDNRUN_*`` environment variables and an optional ``.env`` file.
These knobs tune the watcher itself; what gets built and run comes from
the command line (see ``buildnrun.models.config.WatchConfig``).
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Watcher runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export BUILDNRUN_LOG_LEVEL=DEBUG
        export BUILDNRUN_BUILD_DRIVER=/opt/rust/bin/cargo
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BUILDNRUN_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: LogLevel = "INFO"

    # External build driver, invoked as ``<build_driver> build ...``
    build_driver: str = "cargo"

    # Event source
    debounce_ms: int = Field(default=250, gt=0)
    event_queue_size: int = Field(default=1024, gt=0)
    receive_poll_seconds: float = Field(default=0.5, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @property
    def debounce_seconds(self) -> float:
        """Debounce window in seconds."""
        return self.debounce_ms / 1000.0
