"""Input validation and sanitization utilities."""

import re
from typing import Any


def sanitize_log_input(data: Any) -> Any:
    """Sanitize data before logging to prevent log injection attacks.

    Args:
        data: Data to be logged (string, dict, list, or other types)

    Returns:
        Sanitized data safe for logging
    """
    if isinstance(data, str):
        sanitized = data.replace('\n', '\\n').replace('\r', '\\r')
        sanitized = sanitized.replace('\t', '\\t')

        # Strip ANSI escape sequences that could manipulate terminal output
        ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')
        sanitized = ansi_escape.sub('', sanitized)

        if len(sanitized) > 1000:
            sanitized = sanitized[:997] + "..."

        return sanitized

    elif isinstance(data, dict):
        return {key: sanitize_log_input(value) for key, value in data.items()}

    elif isinstance(data, list):
        return [sanitize_log_input(item) for item in data]

    else:
        return sanitize_log_input(str(data))


def validate_file_path(file_path: str, allow_relative: bool = True) -> bool:
    """Validate file path for security vulnerabilities.

    Args:
        file_path: File path to validate
        allow_relative: Whether to allow relative paths

    Returns:
        True if file path is safe, False otherwise
    """
    if not isinstance(file_path, str) or not file_path.strip():
        return False

    normalized_path = file_path.strip()

    # Directory traversal and shell expansion
    dangerous_patterns = ['../', '..\\', '/./', '/..', '\\..', '~/', '${']
    for pattern in dangerous_patterns:
        if pattern in normalized_path:
            return False

    if '\x00' in normalized_path:
        return False

    if not allow_relative and (normalized_path.startswith('/') or ':\\' in normalized_path):
        return False

    if len(normalized_path) > 4096:
        return False

    dangerous_chars = ['<', '>', '|', '*', '?', '"']
    if any(char in normalized_path for char in dangerous_chars):
        return False

    return True


def validate_environment_variable_name(var_name: str) -> bool:
    """Validate environment variable name format.

    Args:
        var_name: Environment variable name to validate

    Returns:
        True if variable name is valid, False otherwise
    """
    if not isinstance(var_name, str) or not var_name:
        return False

    # Letters, digits, and underscores only, cannot start with digit
    if not re.match(r'^[A-Za-z_][A-Za-z0-9_]*$', var_name):
        return False

    if len(var_name) > 255:
        return False

    return True


def validate_organization_name(org_name: str) -> bool:
    """Validate a GitHub organization login.

    Args:
        org_name: Organization login to validate

    Returns:
        True if the login is well formed, False otherwise
    """
    if not isinstance(org_name, str) or not org_name:
        return False

    # Alphanumerics and single hyphens, no leading or trailing hyphen, max 39 chars
    if len(org_name) > 39:
        return False

    return bool(re.match(r'^[A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9]))*$', org_name))
