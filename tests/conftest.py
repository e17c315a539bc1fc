"""Shared pytest fixtures for the team sync tests."""

from typing import Any, Dict, List, Optional, Tuple

import pytest
import structlog

from teamsync.clients.exceptions import GitHubError, ResourceNotFoundError
from teamsync.clients.github import GitHubTeam, GitHubUser
from teamsync.config.team_models import TeamMember, TeamRole
from teamsync.teams.slug import slugify


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient.

    Teams and memberships live in dictionaries, every mutating call is
    recorded in ``calls`` and ``failures`` maps a call key to the exception
    it should raise, e.g. ``("add_or_update_team_membership", "ops", "bob")``.
    """

    def __init__(self, owner: Optional[str] = "acme") -> None:
        self.owner = owner
        self.teams: Dict[str, Dict[str, Any]] = {}
        self.members: Dict[str, Dict[str, str]] = {}
        self.org_members: List[str] = []
        self.calls: List[Tuple[Any, ...]] = []
        self.failures: Dict[Tuple[Any, ...], Exception] = {}
        self._next_id = 1

    # Test helpers

    def add_team(
        self,
        name: str,
        description: Optional[str] = None,
        privacy: str = "closed",
        notification_setting: str = "notifications_enabled",
        parent: Optional[str] = None,
        members: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        slug = slugify(name)
        parent_data = None
        if parent is not None:
            parent_team = self.teams[slugify(parent)]
            parent_data = {"id": parent_team["id"], "slug": parent_team["slug"]}
        team = {
            "id": self._next_id,
            "name": name,
            "slug": slug,
            "description": description,
            "privacy": privacy,
            "notification_setting": notification_setting,
            "parent": parent_data,
        }
        self._next_id += 1
        self.teams[slug] = team
        self.members[slug] = dict(members or {})
        return team

    def _check(self, *key: Any) -> None:
        if key in self.failures:
            raise self.failures[key]

    def _team_by_id(self, team_id: int) -> Dict[str, Any]:
        for team in self.teams.values():
            if team["id"] == team_id:
                return team
        raise ResourceNotFoundError(f"No team with id {team_id}", status_code=404)

    # GitHubClient surface

    def get_owner(self) -> Optional[str]:
        return self.owner

    async def list_organization_teams(self, org: str) -> List[GitHubTeam]:
        self._check("list_organization_teams", org)
        return [GitHubTeam(dict(team)) for team in self.teams.values()]

    async def get_team_by_slug(self, org: str, slug: str) -> Optional[GitHubTeam]:
        team = self.teams.get(slug)
        return GitHubTeam(dict(team)) if team is not None else None

    async def list_team_members(self, org: str, slug: str) -> List[TeamMember]:
        self._check("list_team_members", slug)
        if slug not in self.teams:
            raise ResourceNotFoundError(f"Team not found: {org}/{slug}", status_code=404)
        return [
            TeamMember(username=username, role=TeamRole(role))
            for username, role in self.members[slug].items()
        ]

    async def list_organization_members(self, org: str) -> List[GitHubUser]:
        self._check("list_organization_members", org)
        return [
            GitHubUser({"id": index, "login": login, "type": "User"})
            for index, login in enumerate(self.org_members, start=1)
        ]

    async def create_team(
        self,
        org: str,
        name: str,
        description: Optional[str] = None,
        privacy: Optional[str] = None,
        parent_team_id: Optional[int] = None,
        notification_setting: Optional[str] = None,
    ) -> GitHubTeam:
        self.calls.append(("create_team", name, parent_team_id))
        self._check("create_team", name)
        slug = slugify(name)
        if slug in self.teams:
            raise GitHubError("Validation Failed", status_code=422)
        parent = None
        if parent_team_id is not None:
            parent = self._team_by_id(parent_team_id)["name"]
        team = self.add_team(
            name,
            description=description,
            privacy=privacy or "secret",
            notification_setting=notification_setting or "notifications_enabled",
            parent=parent,
        )
        return GitHubTeam(dict(team))

    async def update_team(self, org: str, slug: str, **fields: Any) -> None:
        self.calls.append(("update_team", slug, fields))
        self._check("update_team", slug)
        team = self.teams[slug]
        for key, value in fields.items():
            if key == "parent_team_id":
                if value is None:
                    team["parent"] = None
                else:
                    parent = self._team_by_id(value)
                    team["parent"] = {"id": parent["id"], "slug": parent["slug"]}
            else:
                team[key] = value

    async def add_or_update_team_membership(
        self, org: str, slug: str, username: str, role: str = "member"
    ) -> None:
        self.calls.append(("add_or_update_team_membership", slug, username, role))
        self._check("add_or_update_team_membership", slug, username)
        self.members[slug][username] = role

    async def remove_team_membership(self, org: str, slug: str, username: str) -> None:
        self.calls.append(("remove_team_membership", slug, username))
        self._check("remove_team_membership", slug, username)
        self.members[slug].pop(username, None)


@pytest.fixture
def fake_github():
    """Create an empty in-memory GitHub organization."""
    return FakeGitHubClient()


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test applied."""
    yield
    structlog.reset_defaults()
