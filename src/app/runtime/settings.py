"""Process-level settings read from environment variables and .env files.

Only the primitive values needed before config.yaml can be located live here;
everything else belongs in ConfigData.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentVariables(BaseSettings):
    """Simple primitive values loaded from environment variables and .env files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Environment and deployment
    environment: Literal["development", "production", "test"] = Field(
        default="development", validation_alias="APP_ENVIRONMENT"
    )
    config_file: Path = Field(
        default=Path("config.yaml"), validation_alias="APP_CONFIG_FILE"
    )

    @property
    def env_prefix(self) -> str:
        """Prefix of environment-specific overrides, e.g. ``PRODUCTION_``."""
        return f"{self.environment.upper()}_"
