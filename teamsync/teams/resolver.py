"""Resolve configuration into desired teams with concrete membership."""

from typing import List, Optional

import structlog

from teamsync.clients.github import GitHubClient
from teamsync.config.team_models import (
    DynamicRuleType,
    DynamicTeamRule,
    TeamMember,
    TeamRole,
    TeamsConfig,
)
from teamsync.teams.types import (
    FindingLevel,
    ResolvedTeam,
    ResolvedTeams,
    SyncFinding,
    TeamSource,
)

logger = structlog.get_logger(__name__)

# Rule types that are accepted by the configuration but not resolved yet
UNSUPPORTED_RULE_TYPES = {
    DynamicRuleType.BY_FILTER.value,
    DynamicRuleType.COMPOSITE.value,
}


class TeamResolver:
    """Expands static definitions and dynamic rules into ResolvedTeam records.

    Warnings produced while resolving (unsupported or unknown rule types) are
    collected in ``findings`` so the caller can report them.
    """

    def __init__(self, client: GitHubClient) -> None:
        """Initialize team resolver.

        Args:
            client: GitHub client, only used to evaluate dynamic rules
        """
        self.client = client
        self.findings: List[SyncFinding] = []
        self._logger = logger.bind(resolver="TeamResolver")

    async def resolve(self, config: TeamsConfig, org: str) -> ResolvedTeams:
        """Resolve all desired teams for an organization.

        Args:
            config: Team configuration
            org: Organization login

        Returns:
            Static and dynamic resolved teams, each in declaration order
        """
        self.findings = []

        static_teams = [
            ResolvedTeam(
                definition=definition,
                members=list(definition.members or []),
                manage_members=definition.manages_members,
                source=TeamSource.DEFINITION,
            )
            for definition in config.definitions
        ]

        dynamic_teams: List[ResolvedTeam] = []
        for rule in config.dynamic_rules:
            resolved = await self._resolve_rule(rule, org)
            if resolved is not None:
                dynamic_teams.append(resolved)

        self._logger.debug(
            "Resolved desired teams",
            org=org,
            static_teams=len(static_teams),
            dynamic_teams=len(dynamic_teams),
            dynamic_rules=len(config.dynamic_rules),
        )

        return ResolvedTeams(static_teams=static_teams, dynamic_teams=dynamic_teams)

    async def _resolve_rule(self, rule: DynamicTeamRule, org: str) -> Optional[ResolvedTeam]:
        if rule.type == DynamicRuleType.ALL_ORG_MEMBERS.value:
            return await self._resolve_all_org_members(rule, org)

        if rule.type in UNSUPPORTED_RULE_TYPES:
            self._warn(
                f"Dynamic team rule '{rule.name}' of type {rule.type} is not supported yet; skipping",
                rule=rule,
            )
        else:
            self._warn(
                f"Dynamic team rule '{rule.name}' has unknown type {rule.type}; skipping",
                rule=rule,
            )
        return None

    async def _resolve_all_org_members(
        self, rule: DynamicTeamRule, org: str
    ) -> Optional[ResolvedTeam]:
        try:
            org_members = await self.client.list_organization_members(org)
        except Exception as e:
            self._logger.error(
                "Failed to resolve dynamic team rule",
                rule=rule.name,
                rule_type=rule.type,
                org=org,
                error=str(e),
            )
            self.findings.append(
                SyncFinding(
                    level=FindingLevel.ERROR,
                    message=f"Failed to resolve dynamic team rule '{rule.name}': {e}",
                    team=rule.name,
                    details={"rule": rule.name, "type": rule.type},
                )
            )
            return None

        members = [
            TeamMember(username=user.login, role=TeamRole.MEMBER)
            for user in org_members
            if user.login
        ]

        self._logger.debug(
            "Resolved all_org_members rule",
            rule=rule.name,
            members=len(members),
        )

        return ResolvedTeam(
            definition=rule.to_definition(),
            members=members,
            manage_members=True,
            source=TeamSource.DYNAMIC,
            rule=rule,
        )

    def _warn(self, message: str, rule: DynamicTeamRule) -> None:
        self._logger.warning(message, rule=rule.name, rule_type=rule.type)
        self.findings.append(
            SyncFinding(
                level=FindingLevel.WARNING,
                message=message,
                team=rule.name,
                details={"rule": rule.name, "type": rule.type},
            )
        )
