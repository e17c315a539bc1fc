"""Client factory for creating API clients from configuration."""

import structlog

from teamsync.clients.github import GitHubClient
from teamsync.config.models import PolicyConfig
from teamsync.security.validation import sanitize_log_input

logger = structlog.get_logger(__name__)


class ClientFactory:
    """Factory for creating API clients from configuration."""

    @staticmethod
    def create_github_client(config: PolicyConfig) -> GitHubClient:
        """Create GitHub client from configuration.

        The policy's organization becomes the client's default owner.

        Args:
            config: Full policy configuration

        Returns:
            Configured GitHub client

        Raises:
            ValueError: If configuration is invalid
        """
        github = config.github
        api_url = str(github.api_url).rstrip("/")
        try:
            client = GitHubClient(
                token=github.token,
                api_url=api_url,
                owner=config.organization,
                timeout_seconds=github.timeout_seconds,
                rate_limit_per_minute=github.rate_limit_per_minute,
                max_retries=github.max_retries,
                retry_delay_seconds=github.retry_delay_seconds,
            )
        except Exception as e:
            logger.error(
                "Failed to create GitHub client",
                api_url=sanitize_log_input(api_url),
                error=sanitize_log_input(str(e))
            )
            raise ValueError(f"Failed to create GitHub client: {e}") from e

        logger.debug(
            "Created GitHub client",
            api_url=sanitize_log_input(api_url),
            owner=sanitize_log_input(config.organization),
        )
        return client
