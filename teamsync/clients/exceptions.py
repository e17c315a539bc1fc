"""Exception classes for API clients and team synchronization."""

from typing import Optional


class APIError(Exception):
    """Base exception for API-related errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code if available
            response_text: Response body text if available
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_text = response_text

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.response_text:
            # Truncate response text for readability
            response_preview = self.response_text[:200]
            if len(self.response_text) > 200:
                response_preview += "..."
            parts.append(f"Response: {response_preview}")
        return " | ".join(parts)


class AuthenticationError(APIError):
    """Raised when authentication fails (401)."""
    pass


class AuthorizationError(APIError):
    """Raised when authorization fails (403)."""
    pass


class RateLimitError(APIError):
    """Raised when rate limit is exceeded (429, or 403 with an exhausted quota)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
        retry_after: Optional[int] = None,
    ) -> None:
        """Initialize rate limit error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_text: Response body text
            retry_after: Seconds to wait before retrying
        """
        super().__init__(message, status_code, response_text)
        self.retry_after = retry_after


class ClientError(APIError):
    """Raised for 4xx client errors."""
    pass


class ServerError(APIError):
    """Raised for 5xx server errors."""
    pass


class NetworkError(APIError):
    """Raised for network-related errors."""
    pass


class ValidationError(Exception):
    """Raised when response data validation fails."""
    pass


class ResourceNotFoundError(ClientError):
    """Raised when a requested resource is not found (404)."""
    pass


class ConflictError(ClientError):
    """Raised when there's a conflict with the current state (409/422)."""
    pass


class GitHubError(APIError):
    """GitHub-specific error."""

    def __init__(
        self,
        message: str,
        documentation_url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
    ) -> None:
        """Initialize GitHub error.

        Args:
            message: Error message
            documentation_url: Documentation link returned by GitHub
            status_code: HTTP status code
            response_text: Response body text
        """
        super().__init__(message, status_code, response_text)
        self.documentation_url = documentation_url


class TeamSyncError(Exception):
    """Error while reconciling a single team."""

    def __init__(
        self,
        message: str,
        team: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> None:
        """Initialize team sync error.

        Args:
            message: Error message
            team: Declared team name
            slug: Team slug the operation targeted
        """
        super().__init__(message)
        self.message = message
        self.team = team
        self.slug = slug
