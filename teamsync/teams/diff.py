"""Pure comparison of a desired team against its observed GitHub state."""

from enum import Enum
from typing import Any, Dict, List, Optional

from teamsync.config.team_models import TeamDefinition, TeamMember
from teamsync.teams.types import (
    FieldChange,
    MemberRoleChange,
    ObservedTeamState,
    TeamDiff,
    TeamDiffChangeSet,
)

# Metadata fields compared by value; the parent is compared by slug separately
_VALUE_FIELDS = ("description", "privacy", "notification_setting")


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, Enum):
        return value.value
    return value


def _dedupe_members(members: List[TeamMember]) -> List[TeamMember]:
    """Keep one entry per username; the last declaration wins."""
    by_username: Dict[str, TeamMember] = {}
    for member in members:
        by_username.pop(member.username, None)
        by_username[member.username] = member
    return list(by_username.values())


def _diff_members(
    target_members: List[TeamMember],
    observed_members: List[TeamMember],
    changes: TeamDiffChangeSet,
) -> None:
    observed_by_username = {member.username: member for member in observed_members}
    target_usernames = {member.username for member in target_members}

    for member in target_members:
        current = observed_by_username.get(member.username)
        if current is None:
            changes.members_to_add.append(member)
        elif current.role != member.role:
            changes.members_to_update_role.append(
                MemberRoleChange(username=member.username, new_role=member.role)
            )

    for member in observed_members:
        if member.username not in target_usernames:
            changes.members_to_remove.append(member.username)


def _parent_change(
    definition: TeamDefinition,
    existing_team: Optional[ObservedTeamState],
    target_parent_slug: Optional[str],
) -> Optional[FieldChange]:
    if not definition.declares("parent"):
        return None

    # A declared but unresolved parent leaves the current linkage alone
    if definition.parent is not None and target_parent_slug is None:
        return None

    if existing_team is None:
        if target_parent_slug is None:
            return None
        return FieldChange(new=target_parent_slug)

    if existing_team.parent != target_parent_slug:
        return FieldChange(old=existing_team.parent, new=target_parent_slug)
    return None


def calculate_team_diff(
    definition: TeamDefinition,
    slug: str,
    target_members: List[TeamMember],
    manage_members: bool,
    existing_team: Optional[ObservedTeamState],
    parent_team_id: Optional[int] = None,
    target_parent_slug: Optional[str] = None,
) -> TeamDiff:
    """Compute the change set that moves ``existing_team`` to ``definition``.

    Only fields the definition declares are compared; undeclared fields are
    never forced back to a default. Membership is only compared when
    ``manage_members`` is true, and usernames are matched case-sensitively.

    Args:
        definition: Desired team definition
        slug: Slug derived from the definition name
        target_members: Desired membership
        manage_members: Whether membership is enforced for this team
        existing_team: Observed state, or None if the team doesn't exist
        parent_team_id: ID of the resolved parent team, if any
        target_parent_slug: Slug of the resolved parent team, if any

    Returns:
        TeamDiff describing every required change
    """
    changes = TeamDiffChangeSet()
    members = _dedupe_members(target_members)

    for field_name in _VALUE_FIELDS:
        desired = _as_text(getattr(definition, field_name))
        if desired is None:
            continue
        if existing_team is None:
            setattr(changes, field_name, FieldChange(new=desired))
            continue
        current = getattr(existing_team, field_name)
        # GitHub reports an unset description as null
        if (current or "") != desired:
            setattr(changes, field_name, FieldChange(old=current, new=desired))

    changes.parent = _parent_change(definition, existing_team, target_parent_slug)

    if manage_members:
        observed_members = existing_team.members if existing_team is not None else []
        _diff_members(members, observed_members, changes)

    return TeamDiff(
        team=definition.name,
        slug=slug,
        definition=definition,
        exists=existing_team is not None,
        target_members=members,
        manage_members=manage_members,
        target_parent_id=parent_team_id,
        target_parent_slug=target_parent_slug,
        changes=changes,
    )
