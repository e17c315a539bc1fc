"""API client configuration models."""

from pydantic import BaseModel, Field, HttpUrl, SecretStr, field_validator


class GitHubConfig(BaseModel):
    """GitHub API configuration."""

    token: SecretStr = Field(
        ...,
        description="GitHub token with admin:org scope"
    )
    api_url: HttpUrl = Field(
        HttpUrl("https://api.github.com"),
        description="GitHub REST API URL (set for GitHub Enterprise Server)"
    )
    rate_limit_per_minute: int = Field(
        600,
        description="Rate limit for GitHub API calls per minute",
        ge=1
    )
    timeout_seconds: int = Field(
        30,
        description="Timeout for GitHub API calls in seconds",
        ge=1
    )
    max_retries: int = Field(
        3,
        description="Maximum number of retry attempts",
        ge=0
    )
    retry_delay_seconds: float = Field(
        1.0,
        description="Initial delay between retries in seconds",
        ge=0.1
    )

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: SecretStr) -> SecretStr:
        """Validate that the token is not blank."""
        if not v.get_secret_value().strip():
            raise ValueError("GitHub token cannot be empty")
        return SecretStr(v.get_secret_value().strip())
