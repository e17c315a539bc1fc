"""GitHub API client for organization team management."""

import json
from typing import Any, Dict, List, Optional

import structlog
from pydantic import SecretStr

from teamsync.clients.base import BaseAPIClient
from teamsync.clients.exceptions import (
    APIError,
    GitHubError,
    ResourceNotFoundError,
    ValidationError,
)
from teamsync.config.team_models import TeamMember, TeamRole

logger = structlog.get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"

TEAM_MEMBERS_QUERY = """
query($org: String!, $slug: String!, $cursor: String) {
  organization(login: $org) {
    team(slug: $slug) {
      members(first: 100, after: $cursor, membership: IMMEDIATE) {
        edges {
          role
          node { login }
        }
        pageInfo { hasNextPage endCursor }
      }
    }
  }
}
"""


class GitHubTeam:
    """GitHub team summary as returned by the teams endpoints."""

    def __init__(self, data: Dict[str, Any]) -> None:
        """Initialize from GitHub API response data."""
        self.data = data
        self.id = data.get("id")
        self.slug = data.get("slug")
        self.name = data.get("name")
        self.description = data.get("description")
        self.privacy = data.get("privacy")
        self.notification_setting = data.get("notification_setting")
        self._parent = data.get("parent") or None

    @property
    def parent_slug(self) -> Optional[str]:
        """Slug of the parent team, if any."""
        if self._parent:
            return self._parent.get("slug")
        return None

    @property
    def parent_id(self) -> Optional[int]:
        """ID of the parent team, if any."""
        if self._parent:
            return self._parent.get("id")
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return self.data


class GitHubUser:
    """GitHub user as returned by the organization members endpoint."""

    def __init__(self, data: Dict[str, Any]) -> None:
        """Initialize from GitHub API response data."""
        self.data = data
        self.id = data.get("id")
        self.login = data.get("login")
        self.type = data.get("type")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return self.data


class GitHubClient(BaseAPIClient):
    """GitHub REST API client for organization teams and memberships."""

    def __init__(
        self,
        token: SecretStr,
        api_url: str = "https://api.github.com",
        owner: Optional[str] = None,
        timeout_seconds: int = 30,
        rate_limit_per_minute: int = 600,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
    ) -> None:
        """Initialize GitHub client.

        Args:
            token: GitHub token with admin:org scope
            api_url: Base URL of the GitHub REST API
            owner: Default organization used when callers don't pass one
            timeout_seconds: Request timeout in seconds
            rate_limit_per_minute: Maximum requests per minute
            max_retries: Maximum retry attempts
            retry_delay_seconds: Initial retry delay
        """
        self._token = token
        self.owner = owner

        super().__init__(
            base_url=api_url,
            timeout_seconds=timeout_seconds,
            rate_limit_per_minute=rate_limit_per_minute,
            max_retries=max_retries,
            retry_delay_seconds=retry_delay_seconds,
        )

        self._logger = logger.bind(api_url=self.base_url, owner=owner)

        # GitHub Enterprise Server serves REST under /api/v3 and GraphQL under /api/graphql
        if self.base_url.endswith("/v3"):
            self.graphql_url = self.base_url[: -len("/v3")] + "/graphql"
        else:
            self.graphql_url = f"{self.base_url}/graphql"

    def _get_auth_headers(self) -> Dict[str, str]:
        """Get GitHub authentication headers."""
        return {
            "Authorization": f"Bearer {self._token.get_secret_value()}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def get_owner(self) -> Optional[str]:
        """Ambient default organization for this client."""
        return self.owner

    async def health_check(self) -> bool:
        """Check if the GitHub API is reachable with the configured token.

        Returns:
            True if API is healthy, False otherwise
        """
        try:
            await self.get("/user")
            return True
        except APIError as e:
            self._logger.error("GitHub health check failed", error=str(e))
            return False

    async def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Run a read-only GraphQL query.

        Args:
            query: GraphQL query document
            variables: Query variables

        Returns:
            The ``data`` member of the response

        Raises:
            ResourceNotFoundError: If GitHub reports a NOT_FOUND error
            GitHubError: For any other GraphQL or HTTP error
        """
        try:
            response = await self.with_retry(
                "POST graphql",
                lambda: self.post(
                    self.graphql_url, json_data={"query": query, "variables": variables}
                ),
            )
        except APIError as e:
            raise self._convert_to_github_error(e) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise APIError(f"Failed to parse GraphQL response: {e}") from e

        errors = payload.get("errors") or []
        if errors:
            message = "; ".join(error.get("message", "unknown error") for error in errors)
            if any(error.get("type") == "NOT_FOUND" for error in errors):
                raise ResourceNotFoundError(
                    message, status_code=404, response_text=response.text
                )
            raise GitHubError(
                f"GraphQL query failed: {message}",
                status_code=response.status_code,
                response_text=response.text,
            )
        return payload.get("data") or {}

    # Team Methods

    async def list_organization_teams(self, org: str) -> List[GitHubTeam]:
        """List all teams of an organization.

        Args:
            org: Organization login

        Returns:
            List of GitHubTeam objects
        """
        try:
            teams_data = await self.paginate(f"/orgs/{org}/teams")
            return [GitHubTeam(team_data) for team_data in teams_data]
        except APIError as e:
            raise self._convert_to_github_error(e) from e

    async def get_team_by_slug(self, org: str, slug: str) -> Optional[GitHubTeam]:
        """Get a single team by slug.

        Args:
            org: Organization login
            slug: Team slug

        Returns:
            GitHubTeam object, or None if the team does not exist
        """
        try:
            team_data = await self.get_json(f"/orgs/{org}/teams/{slug}")
            return GitHubTeam(team_data)
        except ResourceNotFoundError:
            return None
        except APIError as e:
            raise self._convert_to_github_error(e) from e

    async def list_team_members(self, org: str, slug: str) -> List[TeamMember]:
        """List direct members of a team together with their role.

        The REST members endpoint also reports members of child teams, so
        membership is read through GraphQL restricted to immediate members.

        Args:
            org: Organization login
            slug: Team slug

        Returns:
            List of TeamMember objects

        Raises:
            ResourceNotFoundError: If the team does not exist
        """
        members: List[TeamMember] = []
        cursor: Optional[str] = None

        while True:
            data = await self.graphql(
                TEAM_MEMBERS_QUERY, {"org": org, "slug": slug, "cursor": cursor}
            )
            team = (data.get("organization") or {}).get("team")
            if team is None:
                raise ResourceNotFoundError(f"Team not found: {org}/{slug}", status_code=404)

            connection = team["members"]
            for edge in connection["edges"]:
                role = TeamRole.MAINTAINER if edge["role"] == "MAINTAINER" else TeamRole.MEMBER
                members.append(TeamMember(username=edge["node"]["login"], role=role))

            page_info = connection["pageInfo"]
            if not page_info["hasNextPage"]:
                return members
            cursor = page_info["endCursor"]

    async def list_organization_members(self, org: str) -> List[GitHubUser]:
        """List all members of an organization.

        Args:
            org: Organization login

        Returns:
            List of GitHubUser objects
        """
        try:
            users_data = await self.paginate(f"/orgs/{org}/members")
            return [GitHubUser(user_data) for user_data in users_data]
        except APIError as e:
            raise self._convert_to_github_error(e) from e

    async def create_team(
        self,
        org: str,
        name: str,
        description: Optional[str] = None,
        privacy: Optional[str] = None,
        parent_team_id: Optional[int] = None,
        notification_setting: Optional[str] = None,
    ) -> GitHubTeam:
        """Create a team in an organization.

        Args:
            org: Organization login
            name: Team name
            description: Optional description
            privacy: Optional privacy level (closed or secret)
            parent_team_id: Optional ID of the parent team
            notification_setting: Optional notification setting

        Returns:
            Created GitHubTeam
        """
        team_data: Dict[str, Any] = {"name": name}
        if description is not None:
            team_data["description"] = description
        if privacy is not None:
            team_data["privacy"] = privacy
        if parent_team_id is not None:
            team_data["parent_team_id"] = parent_team_id
        if notification_setting is not None:
            team_data["notification_setting"] = notification_setting

        try:
            response_data = await self.post_json(f"/orgs/{org}/teams", json_data=team_data)
        except APIError as e:
            raise self._convert_to_github_error(e) from e

        self._logger.info("Created team", org=org, name=name, slug=response_data.get("slug"))
        return GitHubTeam(response_data)

    async def update_team(self, org: str, slug: str, **fields: Any) -> None:
        """Update team metadata.

        Args:
            org: Organization login
            slug: Team slug
            **fields: Fields to patch (name, description, privacy,
                parent_team_id, notification_setting)
        """
        try:
            await self.patch(f"/orgs/{org}/teams/{slug}", json_data=fields)
        except APIError as e:
            raise self._convert_to_github_error(e) from e

        self._logger.info("Updated team", org=org, slug=slug, fields=sorted(fields))

    async def add_or_update_team_membership(
        self,
        org: str,
        slug: str,
        username: str,
        role: str = "member",
    ) -> None:
        """Add a user to a team, or change their role if already present.

        Args:
            org: Organization login
            slug: Team slug
            username: User login
            role: member or maintainer
        """
        try:
            await self.put(
                f"/orgs/{org}/teams/{slug}/memberships/{username}",
                json_data={"role": role},
            )
        except APIError as e:
            raise self._convert_to_github_error(e) from e

    async def remove_team_membership(self, org: str, slug: str, username: str) -> None:
        """Remove a user from a team.

        Args:
            org: Organization login
            slug: Team slug
            username: User login
        """
        try:
            await self.delete(f"/orgs/{org}/teams/{slug}/memberships/{username}")
        except APIError as e:
            raise self._convert_to_github_error(e) from e

    # Pagination Implementation

    async def paginate(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Paginate through all results for an endpoint.

        Args:
            path: API endpoint path
            params: Query parameters
            limit: Maximum number of items to retrieve

        Returns:
            List of all items from all pages
        """
        all_items: List[Dict[str, Any]] = []
        current_params: Optional[Dict[str, Any]] = dict(params or {})
        current_params.setdefault("per_page", 100)  # GitHub max page size
        next_url: Optional[str] = path

        while next_url:
            url = next_url
            query = current_params
            response = await self.with_retry(
                f"GET {url}", lambda: self.get(url, params=query)
            )

            try:
                items = response.json()
            except ValueError as e:
                raise APIError(f"Failed to parse paginated response: {e}") from e
            if not isinstance(items, list):
                raise ValidationError(f"Expected list response, got {type(items)}")

            all_items.extend(items)

            if limit and len(all_items) >= limit:
                return all_items[:limit]

            # The next link already carries the query string
            next_url = None
            current_params = None
            link_header = response.headers.get("Link")
            if link_header and items:
                next_url = self._parse_link_header(link_header).get("next")

        return all_items

    def _parse_link_header(self, link_header: str) -> Dict[str, str]:
        """Parse HTTP Link header for pagination.

        Args:
            link_header: Link header value

        Returns:
            Dictionary mapping relation types to URLs
        """
        links = {}
        for link in link_header.split(","):
            parts = link.strip().split(";")
            if len(parts) >= 2:
                url = parts[0].strip().strip("<>")
                for part in parts[1:]:
                    if "rel=" in part:
                        rel = part.split("=")[1].strip().strip('"')
                        links[rel] = url
                        break
        return links

    def _convert_to_github_error(self, api_error: APIError) -> GitHubError:
        """Convert generic API error to GitHub-specific error.

        Args:
            api_error: Generic API error

        Returns:
            GitHub-specific error with additional context
        """
        message = api_error.message
        documentation_url = None

        # GitHub error bodies look like {"message": ..., "documentation_url": ...}
        if api_error.response_text:
            try:
                error_data = json.loads(api_error.response_text)
                if isinstance(error_data, dict):
                    documentation_url = error_data.get("documentation_url")
                    if error_data.get("message"):
                        message = f"{api_error.message}: {error_data['message']}"
            except (json.JSONDecodeError, TypeError):
                pass

        return GitHubError(
            message=message,
            documentation_url=documentation_url,
            status_code=api_error.status_code,
            response_text=api_error.response_text,
        )
