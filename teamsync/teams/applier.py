"""Apply a team diff to GitHub, or describe it in dry-run mode."""

from typing import Any, Awaitable, Callable, Dict, List

import structlog

from teamsync.clients.exceptions import TeamSyncError
from teamsync.clients.github import GitHubClient
from teamsync.teams.types import SyncOutcome, TeamDiff

logger = structlog.get_logger(__name__)

NO_CHANGES = "no changes required"


def describe_changes(diff: TeamDiff) -> str:
    """Human readable summary of what a diff will do."""
    changes: List[str] = []

    if not diff.exists:
        changes.append("create team")
    for field_name in diff.changes.metadata_changes():
        if field_name == "notification_setting":
            changes.append("update notifications")
        else:
            changes.append(f"update {field_name}")
    if diff.manage_members:
        if diff.changes.members_to_add:
            changes.append(f"add {len(diff.changes.members_to_add)} member(s)")
        if diff.changes.members_to_remove:
            changes.append(f"remove {len(diff.changes.members_to_remove)} member(s)")
        if diff.changes.members_to_update_role:
            changes.append(f"update {len(diff.changes.members_to_update_role)} role(s)")

    if not changes:
        return NO_CHANGES
    return ", ".join(changes)


def _create_params(diff: TeamDiff) -> Dict[str, Any]:
    definition = diff.definition
    params: Dict[str, Any] = {"name": definition.name}
    if definition.description is not None:
        params["description"] = definition.description
    if definition.privacy is not None:
        params["privacy"] = definition.privacy.value
    if definition.notification_setting is not None:
        params["notification_setting"] = definition.notification_setting.value
    if diff.target_parent_id is not None:
        params["parent_team_id"] = diff.target_parent_id
    return params


def _update_params(diff: TeamDiff) -> Dict[str, Any]:
    params: Dict[str, Any] = {"name": diff.definition.name}
    for field_name, change in diff.changes.metadata_changes().items():
        if field_name == "parent":
            params["parent_team_id"] = diff.target_parent_id if change.new else None
        else:
            params[field_name] = change.new
    return params


def _log_dry_run(diff: TeamDiff, owner: str) -> None:
    log = logger.bind(owner=owner, team=diff.team, slug=diff.slug, dry_run=True)

    if not diff.exists:
        log.info("[dry-run] Would create team", params=_create_params(diff))
    elif diff.changes.has_metadata_changes:
        log.info(
            "[dry-run] Would update team metadata",
            changes={
                name: change.model_dump()
                for name, change in diff.changes.metadata_changes().items()
            },
        )

    if not diff.manage_members:
        return
    for member in diff.changes.members_to_add:
        log.info("[dry-run] Would add member", username=member.username, role=member.role.value)
    for change in diff.changes.members_to_update_role:
        log.info(
            "[dry-run] Would update member role",
            username=change.username,
            role=change.new_role.value,
        )
    for username in diff.changes.members_to_remove:
        log.info("[dry-run] Would remove member", username=username)


async def apply_team_diff(
    client: GitHubClient,
    diff: TeamDiff,
    dry_run: bool,
    owner: str,
) -> SyncOutcome:
    """Issue the mutating calls a diff requires.

    Membership calls are independent: a failing call is recorded in
    ``outcome.errors`` and the remaining calls are still attempted. A failed
    metadata update is recorded the same way. Only a failed team creation
    raises, since nothing else can be applied to a team that doesn't exist.

    In dry-run mode no mutating call is made; every intended action is
    logged and the returned outcome has the same shape as a live one.

    Args:
        client: GitHub client
        diff: Diff to apply
        dry_run: Whether to only log intended actions
        owner: Organization login

    Returns:
        SyncOutcome describing what was (or would be) done

    Raises:
        TeamSyncError: If the team could not be created
    """
    summary = describe_changes(diff)
    member_changes = diff.manage_members and diff.changes.has_member_changes

    if dry_run:
        _log_dry_run(diff, owner)
        return SyncOutcome(
            team=diff.team,
            slug=diff.slug,
            created=not diff.exists,
            updated_metadata=diff.exists and diff.changes.has_metadata_changes,
            updated_members=member_changes,
        )

    log = logger.bind(owner=owner, team=diff.team, slug=diff.slug)
    log.info("Synchronizing team", changes=summary)

    outcome = SyncOutcome(team=diff.team, slug=diff.slug)

    if not diff.exists:
        try:
            created_team = await client.create_team(owner, **_create_params(diff))
        except Exception as e:
            log.error("Failed to create team", error=str(e))
            raise TeamSyncError(
                f"Failed to create team {diff.team}: {e}", team=diff.team, slug=diff.slug
            ) from e
        outcome.created = True
        outcome.slug = created_team.slug or diff.slug
        outcome.team_id = created_team.id
    elif diff.changes.has_metadata_changes:
        try:
            await client.update_team(owner, diff.slug, **_update_params(diff))
            outcome.updated_metadata = True
        except Exception as e:
            log.error("Failed to update team metadata", error=str(e))
            outcome.errors.append(f"update metadata: {e}")

    if not diff.manage_members:
        return outcome

    operations: List[tuple[str, Callable[[], Awaitable[None]]]] = []
    slug = outcome.slug
    for member in diff.changes.members_to_add:
        operations.append((
            f"add {member.username}",
            lambda m=member: client.add_or_update_team_membership(
                owner, slug, m.username, m.role.value
            ),
        ))
    for change in diff.changes.members_to_update_role:
        operations.append((
            f"set role of {change.username} to {change.new_role.value}",
            lambda c=change: client.add_or_update_team_membership(
                owner, slug, c.username, c.new_role.value
            ),
        ))
    for username in diff.changes.members_to_remove:
        operations.append((
            f"remove {username}",
            lambda u=username: client.remove_team_membership(owner, slug, u),
        ))

    for description, operation in operations:
        try:
            await operation()
            outcome.updated_members = True
        except Exception as e:
            log.error("Team membership change failed", operation=description, error=str(e))
            outcome.errors.append(f"{description}: {e}")

    return outcome
