"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from teamsync.config.models import PolicyConfig
from teamsync.security.validation import (
    sanitize_log_input,
    validate_environment_variable_name,
)


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""


class SecurityError(ConfigurationError):
    """Raised when security validation fails."""
    pass


class EnvironmentVariableError(ConfigurationError):
    """Raised when environment variable substitution fails."""
    pass


# Only these environment variables may be referenced from configuration files
ALLOWED_ENV_VARS: Set[str] = {
    # API Credentials
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "GITHUB_API_URL",

    # Organization Configuration
    "GITHUB_ORG",
    "GITHUB_OWNER",

    # Logging
    "LOG_LEVEL",
    "LOG_FORMAT",

    # Sync Configuration
    "DRY_RUN",
    "UNMANAGED_TEAMS",
    "GITHUB_RATE_LIMIT_PER_MINUTE",
}

CONFIG_FILENAMES = [
    "team-sync.yaml",
    "team-sync.yml",
    "config.yaml",
    "config.yml",
]


def _validate_env_var_name(var_name: str) -> None:
    """Validate that an environment variable is allowed.

    Raises:
        SecurityError: If the environment variable is malformed or not in the allowlist
    """
    if not validate_environment_variable_name(var_name):
        raise SecurityError(
            f"Invalid environment variable name format: '{sanitize_log_input(var_name)}'"
        )

    if var_name not in ALLOWED_ENV_VARS:
        raise SecurityError(
            f"Unauthorized environment variable '{sanitize_log_input(var_name)}' is not in allowlist. "
            f"Allowed variables: {sorted(ALLOWED_ENV_VARS)}"
        )


def _sanitize_env_value(value: str) -> str:
    """Reject environment values that would change the YAML structure.

    Raises:
        SecurityError: If the value contains YAML control characters
    """
    sanitized = value.strip()

    dangerous_chars = ['${', '#{', '&', '*', '!', '|', '>', "'", '"', '`', '\n']
    for char in dangerous_chars:
        if char in sanitized:
            raise SecurityError(
                f"Environment variable contains potentially dangerous character {char!r}. "
                "Values with special YAML characters are not allowed."
            )

    return sanitized


class ConfigLoader:
    """Configuration loader with environment variable substitution."""

    # ${VAR_NAME} or ${VAR_NAME:default_value}
    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*?)(?::([^}]*))?\}')

    def __init__(self, require_env_vars: bool = True, load_env_file: bool = True) -> None:
        """Initialize the configuration loader.

        Args:
            require_env_vars: Whether to require all environment variables to exist
                            (if False, missing vars without defaults are left as-is)
            load_env_file: Whether to read a local .env file before substitution
        """
        self.require_env_vars = require_env_vars
        self.load_env_file = load_env_file

    def load_config(self, config_path: Path) -> PolicyConfig:
        """Load and validate configuration from YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Validated PolicyConfig instance

        Raises:
            ConfigurationError: If loading or validation fails
        """
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        if self.load_env_file:
            load_dotenv(config_path.parent / ".env", override=False)

        try:
            raw_content = config_path.read_text(encoding='utf-8')
            substituted_content = self._substitute_env_vars(raw_content)
            config_data = yaml.safe_load(substituted_content)

            if not isinstance(config_data, dict):
                raise ConfigurationError("Configuration file must contain a YAML object")

            return PolicyConfig.model_validate(config_data)

        except ConfigurationError:
            raise
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax: {e}") from e
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

    def _substitute_env_vars(self, content: str) -> str:
        """Substitute environment variables in the content.

        Args:
            content: Raw configuration content

        Returns:
            Content with environment variables substituted

        Raises:
            EnvironmentVariableError: If required environment variable is missing
            SecurityError: If a variable is not allowed or has an unsafe value
        """
        missing_vars: List[str] = []
        security_errors: List[str] = []

        def replace_env_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)

            try:
                _validate_env_var_name(var_name)
            except SecurityError as e:
                security_errors.append(str(e))
                return match.group(0)

            env_value = os.getenv(var_name)

            try:
                if env_value is not None:
                    return _sanitize_env_value(env_value)
                if default_value is not None:
                    return _sanitize_env_value(default_value)
            except SecurityError as e:
                security_errors.append(f"{var_name}: {e}")
                return match.group(0)

            if self.require_env_vars:
                missing_vars.append(var_name)
            return match.group(0)

        result = self.ENV_VAR_PATTERN.sub(replace_env_var, content)

        if security_errors:
            raise SecurityError(f"Security validation failed: {'; '.join(security_errors)}")

        if missing_vars:
            if len(missing_vars) == 1:
                raise EnvironmentVariableError(
                    f"Required environment variable '{missing_vars[0]}' is not set"
                )
            raise EnvironmentVariableError(
                f"Required environment variables are not set: {', '.join(sorted(set(missing_vars)))}"
            )

        return result

    def validate_config_file(self, config_path: Path) -> tuple[bool, Optional[str]]:
        """Validate configuration file without keeping the result.

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            self.load_config(config_path)
            return True, None
        except ConfigurationError as e:
            return False, str(e)

    def get_missing_env_vars(self, config_path: Path) -> list[str]:
        """Get list of environment variables referenced without default and not set.

        Args:
            config_path: Path to the configuration file

        Returns:
            Sorted list of missing environment variable names
        """
        if not config_path.exists():
            return []

        content = config_path.read_text(encoding='utf-8')
        missing_vars = {
            match.group(1)
            for match in self.ENV_VAR_PATTERN.finditer(content)
            if match.group(2) is None and os.getenv(match.group(1)) is None
        }
        return sorted(missing_vars)


def load_config_from_path(config_path: Path, require_env_vars: bool = True) -> PolicyConfig:
    """Convenience function to load configuration from path.

    Raises:
        ConfigurationError: If loading fails
    """
    loader = ConfigLoader(require_env_vars=require_env_vars)
    return loader.load_config(config_path)


def load_config_from_dict(config_data: Dict[str, Any]) -> PolicyConfig:
    """Load configuration from dictionary (for testing).

    Raises:
        ConfigurationError: If validation fails
    """
    try:
        return PolicyConfig.model_validate(config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e


def find_config_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """Find configuration file by searching up directory tree.

    Searches for team-sync.yaml, team-sync.yml, config.yaml and config.yml,
    in that order, in each directory from ``start_path`` up to the root.

    Args:
        start_path: Directory to start search from (defaults to current directory)

    Returns:
        Path to configuration file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    current_path = start_path.resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current_path / filename
            if config_path.exists():
                return config_path

        parent = current_path.parent
        if parent == current_path:
            break
        current_path = parent

    return None
