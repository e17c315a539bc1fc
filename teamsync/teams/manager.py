"""Team reconciliation: desired teams from configuration against live GitHub state."""

from typing import Any, Dict, List, Optional, Set

import structlog

from teamsync.clients.github import GitHubClient, GitHubTeam
from teamsync.config.team_models import TeamsConfig, UnmanagedTeamsMode
from teamsync.teams.applier import apply_team_diff, describe_changes
from teamsync.teams.diff import calculate_team_diff
from teamsync.teams.resolver import TeamResolver
from teamsync.teams.slug import slugify
from teamsync.teams.types import (
    FindingLevel,
    ObservedTeamState,
    ResolvedTeam,
    SyncOutcome,
    SyncResult,
    TeamDiff,
    TeamSyncOptions,
)

logger = structlog.get_logger(__name__)

NO_CONFIG_SUMMARY = "No team configuration defined; skipping synchronization."


class TeamManager:
    """Reconciles the configured team topology with an organization.

    Teams are processed one at a time in resolution order (static
    definitions, then dynamic rules). A parent reference resolves against
    the teams seen so far, including the ones created earlier in the same
    run, so parents must be declared before their children.
    """

    def __init__(
        self,
        client: GitHubClient,
        config: Optional[TeamsConfig],
        options: Optional[TeamSyncOptions] = None,
        organization: Optional[str] = None,
    ) -> None:
        """Initialize team manager.

        Args:
            client: GitHub client
            config: Team configuration, or None when no teams section exists
            options: Per-run overrides for dry run, unmanaged policy and owner
            organization: Organization from the policy file, used when
                options carry no owner
        """
        self.client = client
        self.config = config
        self.options = options or TeamSyncOptions()
        self.organization = organization
        self.resolver = TeamResolver(client)

        self._logger = logger.bind(manager="TeamManager", dry_run=self.dry_run)

    @property
    def dry_run(self) -> bool:
        if self.options.dry_run is not None:
            return self.options.dry_run
        return self.config.dry_run if self.config is not None else False

    @property
    def unmanaged_teams(self) -> UnmanagedTeamsMode:
        if self.options.unmanaged_teams is not None:
            return self.options.unmanaged_teams
        if self.config is not None:
            return self.config.unmanaged_teams
        return UnmanagedTeamsMode.IGNORE

    @property
    def _prefix(self) -> str:
        return "[dry-run] " if self.dry_run else ""

    def _resolve_owner(self) -> Optional[str]:
        if self.options.owner:
            return self.options.owner
        if self.organization:
            return self.organization
        return self.client.get_owner()

    async def sync(self) -> SyncResult:
        """Run one reconciliation pass.

        Never raises for remote or per-team failures; they are reported as
        findings on the returned result.

        Returns:
            Aggregated SyncResult
        """
        if self.config is None:
            return SyncResult(summary=NO_CONFIG_SUMMARY)

        result = SyncResult()

        owner = self._resolve_owner()
        if not owner:
            return self._fail(result, "missing organization owner")

        log = self._logger.bind(owner=owner)

        try:
            resolved = await self.resolver.resolve(self.config, owner)
        except Exception as e:
            log.error("Failed to resolve desired teams", error=str(e))
            return self._fail(result, f"could not resolve desired teams: {e}")

        for finding in self.resolver.findings:
            result.add_finding(finding.level, finding.message, finding.team, **finding.details)

        try:
            inventory = await self._load_inventory(owner)
        except Exception as e:
            log.error("Failed to list organization teams", error=str(e))
            return self._fail(result, f"could not list teams for {owner}: {e}")

        observed_slugs = set(inventory)
        processed: Dict[str, str] = {}

        log.info(
            "Starting team synchronization",
            desired_teams=resolved.total,
            observed_teams=len(observed_slugs),
        )

        for team in resolved.all_teams():
            result.stats.processed += 1
            await self._sync_team(team, owner, inventory, processed, result)

        self._detect_unmanaged(observed_slugs - set(processed), result)

        result.summary = self._build_summary(result)
        log.info(
            "Team synchronization finished",
            has_changes=result.has_changes,
            has_errors=result.has_errors,
            **result.stats.model_dump(),
        )
        return result

    async def _load_inventory(self, owner: str) -> Dict[str, GitHubTeam]:
        teams = await self.client.list_organization_teams(owner)
        return {team.slug: team for team in teams if team.slug}

    async def _load_state(self, owner: str, summary: GitHubTeam) -> ObservedTeamState:
        members = await self.client.list_team_members(owner, summary.slug)
        return ObservedTeamState(
            id=summary.id,
            name=summary.name or summary.slug,
            slug=summary.slug,
            description=summary.description,
            parent=summary.parent_slug,
            privacy=summary.privacy,
            notification_setting=summary.notification_setting,
            members=members,
        )

    async def _sync_team(
        self,
        team: ResolvedTeam,
        owner: str,
        inventory: Dict[str, GitHubTeam],
        processed: Dict[str, str],
        result: SyncResult,
    ) -> None:
        definition = team.definition
        name = definition.name
        slug = slugify(name)

        if not slug:
            result.add_finding(
                FindingLevel.ERROR,
                f"Team name '{name}' does not produce a valid slug",
                team=name,
            )
            return

        if slug in processed:
            result.add_finding(
                FindingLevel.ERROR,
                f"Team '{name}' resolves to slug '{slug}' which is already used by "
                f"'{processed[slug]}'; skipping",
                team=name,
                slug=slug,
                conflicts_with=processed[slug],
            )
            return
        processed[slug] = name

        existing_state: Optional[ObservedTeamState] = None
        summary = inventory.get(slug)
        if summary is not None:
            try:
                existing_state = await self._load_state(owner, summary)
            except Exception as e:
                self._logger.error("Failed to load team state", team=name, slug=slug, error=str(e))
                result.add_finding(
                    FindingLevel.ERROR,
                    f"Failed to load current state for team '{name}': {e}",
                    team=name,
                    slug=slug,
                )
                return

        parent_id, parent_slug = self._resolve_parent(team, slug, inventory, result)

        diff = calculate_team_diff(
            definition=definition,
            slug=slug,
            target_members=team.members,
            manage_members=team.manage_members,
            existing_team=existing_state,
            parent_team_id=parent_id,
            target_parent_slug=parent_slug,
        )

        if not diff.has_changes():
            result.stats.skipped += 1
            result.add_finding(
                FindingLevel.INFO,
                f"Team '{name}' is up to date",
                team=name,
                slug=slug,
                up_to_date=True,
            )
            return

        result.has_changes = True

        try:
            outcome = await apply_team_diff(self.client, diff, dry_run=self.dry_run, owner=owner)
        except Exception as e:
            self._logger.error("Failed to synchronize team", team=name, slug=slug, error=str(e))
            result.add_finding(
                FindingLevel.ERROR,
                f"Failed to synchronize team '{name}': {e}",
                team=name,
                slug=slug,
            )
            return

        if outcome.slug != slug:
            processed[outcome.slug] = name
        await self._refresh_inventory(owner, inventory, diff, outcome)

        if not outcome.succeeded:
            result.add_finding(
                FindingLevel.ERROR,
                f"Team '{name}' was only partially synchronized",
                team=name,
                slug=outcome.slug,
                errors=outcome.errors,
            )
            return

        if outcome.created:
            result.stats.created += 1
        elif outcome.updated_metadata or outcome.updated_members:
            result.stats.updated += 1

        result.add_finding(
            FindingLevel.INFO,
            f"{self._prefix}Team '{name}': {describe_changes(diff)}",
            team=name,
            **self._change_details(diff, outcome),
        )

    def _resolve_parent(
        self,
        team: ResolvedTeam,
        slug: str,
        inventory: Dict[str, GitHubTeam],
        result: SyncResult,
    ) -> tuple[Optional[int], Optional[str]]:
        parent_name = team.definition.parent
        if parent_name is None:
            return None, None

        parent_slug = slugify(parent_name)
        parent = inventory.get(parent_slug) if parent_slug != slug else None
        if parent is None:
            result.add_finding(
                FindingLevel.WARNING,
                f"Parent team '{parent_name}' for team '{team.definition.name}' was not found; "
                "continuing without parent",
                team=team.definition.name,
                parent=parent_name,
            )
            return None, None

        return parent.id, parent.slug

    async def _refresh_inventory(
        self,
        owner: str,
        inventory: Dict[str, GitHubTeam],
        diff: TeamDiff,
        outcome: SyncOutcome,
    ) -> None:
        """Make the team just applied visible to later parent lookups."""
        if not self.dry_run:
            try:
                refreshed = await self.client.get_team_by_slug(owner, outcome.slug)
            except Exception as e:
                self._logger.warning(
                    "Could not refresh team after sync", slug=outcome.slug, error=str(e)
                )
                refreshed = None
            if refreshed is not None:
                inventory[outcome.slug] = refreshed
                return

        current = inventory.get(outcome.slug)
        data: Dict[str, Any] = dict(current.data) if current is not None else {}
        data.update({
            "id": outcome.team_id if outcome.team_id is not None else data.get("id"),
            "slug": outcome.slug,
            "name": diff.team,
        })
        for field_name, change in diff.changes.metadata_changes().items():
            if field_name == "parent":
                data["parent"] = (
                    {"id": diff.target_parent_id, "slug": change.new} if change.new else None
                )
            else:
                data[field_name] = change.new
        inventory[outcome.slug] = GitHubTeam(data)

    def _change_details(self, diff: TeamDiff, outcome: SyncOutcome) -> Dict[str, Any]:
        details: Dict[str, Any] = {
            "slug": outcome.slug,
            "created": outcome.created,
            "updated_metadata": outcome.updated_metadata,
            "updated_members": outcome.updated_members,
        }
        metadata = diff.changes.metadata_changes()
        if metadata:
            details["metadata"] = {name: change.model_dump() for name, change in metadata.items()}
        if diff.manage_members:
            if diff.changes.members_to_add:
                details["members_added"] = [m.username for m in diff.changes.members_to_add]
            if diff.changes.members_to_remove:
                details["members_removed"] = list(diff.changes.members_to_remove)
            if diff.changes.members_to_update_role:
                details["roles_updated"] = {
                    c.username: c.new_role.value for c in diff.changes.members_to_update_role
                }
        return details

    def _detect_unmanaged(self, unmanaged_slugs: Set[str], result: SyncResult) -> None:
        if not unmanaged_slugs:
            return

        unmanaged: List[str] = sorted(unmanaged_slugs)
        mode = self.unmanaged_teams

        if mode == UnmanagedTeamsMode.WARN:
            result.add_finding(
                FindingLevel.WARNING,
                f"Found {len(unmanaged)} team(s) not defined in configuration",
                teams=unmanaged,
            )
        elif mode == UnmanagedTeamsMode.REMOVE:
            result.add_finding(
                FindingLevel.WARNING,
                "Removing unmanaged teams is not implemented; "
                f"{len(unmanaged)} team(s) left in place",
                teams=unmanaged,
            )

    def _build_summary(self, result: SyncResult) -> str:
        stats = result.stats
        summary = (
            f"{self._prefix}Processed {stats.processed} team(s): "
            f"{stats.created} created, {stats.updated} updated, {stats.skipped} skipped"
        )
        errors = len(result.findings_by_level(FindingLevel.ERROR))
        if errors:
            summary += f", {errors} error(s)"
        return summary + "."

    def _fail(self, result: SyncResult, reason: str) -> SyncResult:
        result.add_finding(FindingLevel.ERROR, f"Team synchronization failed: {reason}")
        result.summary = f"{self._prefix}Team synchronization failed: {reason}."
        return result


async def sync_teams(
    client: GitHubClient,
    config: Optional[TeamsConfig],
    dry_run: Optional[bool] = None,
    unmanaged_teams: Optional[UnmanagedTeamsMode] = None,
    owner: Optional[str] = None,
) -> SyncResult:
    """Reconcile teams once with the given overrides.

    Args:
        client: GitHub client
        config: Team configuration
        dry_run: Preview without mutating (defaults to config.dry_run)
        unmanaged_teams: Unmanaged team policy (defaults to config value)
        owner: Organization login (defaults to the client's organization)

    Returns:
        Aggregated SyncResult
    """
    options = TeamSyncOptions(dry_run=dry_run, unmanaged_teams=unmanaged_teams, owner=owner)
    return await TeamManager(client, config, options).sync()
