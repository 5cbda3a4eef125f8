"""Process settings — env-driven via pydantic-settings.

Reads ``GANTRY_*`` environment variables and an optional ``.env`` file.
The build configuration itself (repositories and their steps) lives in a
TOML file, see :mod:`gantry.models.config`.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STEP_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"


class GantrySettings(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export GANTRY_LOG_LEVEL=DEBUG
        export GANTRY_CONFIG_PATH=/etc/gantry/gantry.toml
        export GANTRY_POLL_INTERVAL_SECONDS=0.5
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GANTRY_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    debug: bool = False  # print tracebacks for orchestration errors

    config_path: Path = Path("gantry.toml")

    # Step execution
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    shell: str = "/bin/sh"
    step_path: str = DEFAULT_STEP_PATH

    # Source sync
    git_timeout_seconds: int = 600
    clone_transport: Literal["ssh", "https"] = "ssh"

    # 0 means unbounded
    progress_capacity: int = Field(default=0, ge=0)


@lru_cache
def get_settings() -> GantrySettings:
    """Load and cache the :class:`GantrySettings` instance."""
    return GantrySettings()
