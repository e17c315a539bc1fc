"""Configuration package for github-team-sync."""

from .loader import ConfigLoader, ConfigurationError, find_config_file
from .models import LoggingConfig, PolicyConfig
from .api_models import GitHubConfig
from .base_models import LogFormat, LogLevel
from .team_models import (
    DynamicRuleType,
    DynamicTeamRule,
    NotificationSetting,
    TeamComposition,
    TeamDefinition,
    TeamMember,
    TeamMemberFilter,
    TeamPrivacy,
    TeamRole,
    TeamsConfig,
    UnmanagedTeamsMode,
)

__all__ = [
    # Core classes
    "PolicyConfig",
    "ConfigLoader",
    "ConfigurationError",
    "find_config_file",

    # API and logging configurations
    "GitHubConfig",
    "LoggingConfig",
    "LogFormat",
    "LogLevel",

    # Team configurations
    "TeamsConfig",
    "TeamDefinition",
    "TeamMember",
    "TeamRole",
    "TeamPrivacy",
    "NotificationSetting",
    "DynamicTeamRule",
    "DynamicRuleType",
    "TeamMemberFilter",
    "TeamComposition",
    "UnmanagedTeamsMode",
]
