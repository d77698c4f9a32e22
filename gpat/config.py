"""Runtime configuration, read from ``GPAT_*`` environment variables."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class GpatSettings(BaseSettings):
    """Settings for one gpat invocation.

    Every field can be set through the environment with the ``GPAT_`` prefix,
    e.g. ``GPAT_LOG_LEVEL=DEBUG`` or ``GPAT_BRANCH=main``.
    """

    model_config = SettingsConfigDict(
        env_prefix="GPAT_",
        case_sensitive=False,
    )

    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Render logs as JSON lines")

    author_name: str = Field(
        default="idfc", description="Author/committer name for reconstructed commits"
    )
    author_email: str = Field(
        default="idfc", description="Author/committer email for reconstructed commits"
    )
    branch: str = Field(
        default="master", description="Branch repointed at the newest imported commit"
    )

    repo_suffix: str = Field(default=".git", description="Suffix marking a git location")
    archive_suffix: str = Field(
        default=".gpat", description="Suffix marking a patch archive location"
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("branch")
    @classmethod
    def _bare_branch_name(cls, value: str) -> str:
        if not value or value.startswith("refs/") or " " in value:
            raise ValueError(f"Invalid branch name: {value!r}")
        return value


def load_settings(**overrides: Any) -> GpatSettings:
    """Build settings from the environment, letting explicit values win.

    ``None`` overrides are ignored so CLI options that were not given fall
    back to the environment.
    """
    return GpatSettings(**{k: v for k, v in overrides.items() if v is not None})
