"""API clients for github-team-sync."""

from .exceptions import (
    APIError,
    AuthenticationError,
    AuthorizationError,
    ClientError,
    ConflictError,
    GitHubError,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
    ServerError,
    TeamSyncError,
    ValidationError,
)
from .github import GitHubClient, GitHubTeam, GitHubUser

__all__ = [
    "GitHubClient",
    "GitHubTeam",
    "GitHubUser",

    # Exceptions
    "APIError",
    "AuthenticationError",
    "AuthorizationError",
    "ClientError",
    "ConflictError",
    "GitHubError",
    "NetworkError",
    "RateLimitError",
    "ResourceNotFoundError",
    "ServerError",
    "TeamSyncError",
    "ValidationError",
]
