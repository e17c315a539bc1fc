"""Main configuration models for github-team-sync."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .api_models import GitHubConfig
from .base_models import LogFormat, LogLevel
from .team_models import TeamsConfig


class LoggingConfig(BaseModel):
    """Logging configuration."""

    log_level: LogLevel = Field(
        LogLevel.INFO,
        description="Logging level"
    )
    log_format: LogFormat = Field(
        LogFormat.TEXT,
        description="Log output format"
    )


class PolicyConfig(BaseModel):
    """Main team policy configuration."""

    version: Literal[1] = Field(
        1,
        description="Configuration schema version"
    )
    organization: str | None = Field(
        None,
        description="GitHub organization to reconcile (can be overridden on the command line)"
    )
    github: GitHubConfig = Field(
        ...,
        description="GitHub API configuration"
    )
    teams: TeamsConfig | None = Field(
        None,
        description="Team synchronization configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration"
    )

    @field_validator("organization")
    @classmethod
    def validate_organization(cls, v: str | None) -> str | None:
        """Normalize blank organization names to None."""
        if v is None:
            return v
        v = v.strip()
        return v or None
