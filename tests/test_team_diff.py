"""Tests for the team diff engine."""

from teamsync.config.team_models import (
    NotificationSetting,
    TeamDefinition,
    TeamMember,
    TeamPrivacy,
    TeamRole,
)
from teamsync.teams.diff import calculate_team_diff
from teamsync.teams.types import ObservedTeamState


def member(username, role=TeamRole.MEMBER):
    return TeamMember(username=username, role=role)


def observed(**overrides):
    data = {
        "id": 7,
        "name": "Platform",
        "slug": "platform",
        "description": "Platform team",
        "privacy": "closed",
        "notification_setting": "notifications_enabled",
        "parent": None,
        "members": [],
    }
    data.update(overrides)
    return ObservedTeamState(**data)


class TestNewTeam:
    """Test diffs against a team that does not exist yet."""

    def test_creation_diff(self):
        """Test that a new team diff sets every declared field and adds members."""
        definition = TeamDefinition(
            name="Platform",
            description="Platform team",
            privacy=TeamPrivacy.CLOSED,
            members=[member("alice", TeamRole.MAINTAINER), member("bob")],
        )

        diff = calculate_team_diff(
            definition, "platform", definition.members, True, existing_team=None
        )

        assert diff.exists is False
        assert diff.has_changes()
        assert diff.changes.description.new == "Platform team"
        assert diff.changes.privacy.new == "closed"
        assert diff.changes.notification_setting is None
        assert [m.username for m in diff.changes.members_to_add] == ["alice", "bob"]
        assert diff.changes.members_to_remove == []

    def test_parent_only_when_resolved(self):
        """Test that a new team only links a parent that was resolved."""
        definition = TeamDefinition(name="Child", parent="Engineering")

        unresolved = calculate_team_diff(definition, "child", [], False, None)
        resolved = calculate_team_diff(
            definition, "child", [], False, None,
            parent_team_id=3, target_parent_slug="engineering",
        )

        assert unresolved.changes.parent is None
        assert resolved.changes.parent.new == "engineering"
        assert resolved.target_parent_id == 3


class TestMetadata:
    """Test metadata comparison."""

    def test_matching_state_has_no_changes(self):
        """Test that an identical team yields an empty diff."""
        definition = TeamDefinition(
            name="Platform",
            description="Platform team",
            privacy=TeamPrivacy.CLOSED,
            notification_setting=NotificationSetting.ENABLED,
        )

        diff = calculate_team_diff(definition, "platform", [], False, observed())

        assert not diff.has_changes()
        assert diff.changes.metadata_changes() == {}

    def test_undeclared_fields_are_ignored(self):
        """Test that fields left out of the definition are never enforced."""
        definition = TeamDefinition(name="Platform")

        diff = calculate_team_diff(
            definition, "platform", [], False,
            observed(description="anything", privacy="secret", parent="engineering"),
        )

        assert not diff.has_changes()

    def test_changed_fields(self):
        """Test that differing declared fields are reported with old and new values."""
        definition = TeamDefinition(
            name="Platform",
            description="New text",
            privacy=TeamPrivacy.SECRET,
            notification_setting=NotificationSetting.DISABLED,
        )

        diff = calculate_team_diff(definition, "platform", [], False, observed())

        changes = diff.changes.metadata_changes()
        assert set(changes) == {"description", "privacy", "notification_setting"}
        assert changes["description"].old == "Platform team"
        assert changes["description"].new == "New text"
        assert changes["privacy"].new == "secret"
        assert changes["notification_setting"].new == "notifications_disabled"

    def test_null_description_matches_empty(self):
        """Test that GitHub's null description equals a declared empty one."""
        definition = TeamDefinition(name="Platform", description="")

        diff = calculate_team_diff(definition, "platform", [], False, observed(description=None))

        assert diff.changes.description is None

    def test_parent_change(self):
        """Test moving a team under a different parent."""
        definition = TeamDefinition(name="Platform", parent="Infra")

        diff = calculate_team_diff(
            definition, "platform", [], False, observed(parent="engineering"),
            parent_team_id=9, target_parent_slug="infra",
        )

        assert diff.changes.parent.old == "engineering"
        assert diff.changes.parent.new == "infra"

    def test_unresolved_parent_keeps_linkage(self):
        """Test that an unresolved parent does not detach the team."""
        definition = TeamDefinition(name="Platform", parent="Missing")

        diff = calculate_team_diff(
            definition, "platform", [], False, observed(parent="engineering")
        )

        assert diff.changes.parent is None

    def test_explicit_null_parent_detaches(self):
        """Test that parent: null removes the current parent."""
        definition = TeamDefinition.model_validate({"name": "Platform", "parent": None})

        diff = calculate_team_diff(
            definition, "platform", [], False, observed(parent="engineering")
        )

        assert diff.changes.parent.old == "engineering"
        assert diff.changes.parent.new is None


class TestMembership:
    """Test membership comparison."""

    def test_membership_precision(self):
        """Test add, role update and removal are computed exactly."""
        existing = observed(members=[member("alice"), member("carol")])
        target = [member("alice", TeamRole.MAINTAINER), member("bob")]
        definition = TeamDefinition(name="Platform", members=target)

        diff = calculate_team_diff(definition, "platform", target, True, existing)

        assert [m.username for m in diff.changes.members_to_add] == ["bob"]
        assert diff.changes.members_to_remove == ["carol"]
        assert len(diff.changes.members_to_update_role) == 1
        assert diff.changes.members_to_update_role[0].username == "alice"
        assert diff.changes.members_to_update_role[0].new_role == TeamRole.MAINTAINER

    def test_role_only_change(self):
        """Test that a pure role change is detected and nothing else."""
        existing = observed(members=[member("alice")])
        target = [member("alice", TeamRole.MAINTAINER)]

        diff = calculate_team_diff(
            TeamDefinition(name="Platform", members=target), "platform", target, True, existing
        )

        assert diff.has_changes()
        assert diff.changes.members_to_add == []
        assert diff.changes.members_to_remove == []
        assert len(diff.changes.members_to_update_role) == 1

    def test_unmanaged_membership_is_ignored(self):
        """Test that membership is not compared when it is not managed."""
        existing = observed(members=[member("alice"), member("mallory")])

        diff = calculate_team_diff(
            TeamDefinition(name="Platform"), "platform", [], False, existing
        )

        assert not diff.has_changes()
        assert not diff.changes.has_member_changes

    def test_empty_list_removes_everyone(self):
        """Test that an empty managed member list removes all members."""
        existing = observed(members=[member("alice"), member("bob")])

        diff = calculate_team_diff(
            TeamDefinition(name="Platform", members=[]), "platform", [], True, existing
        )

        assert sorted(diff.changes.members_to_remove) == ["alice", "bob"]

    def test_usernames_are_case_sensitive(self):
        """Test that usernames differing in case are different members."""
        existing = observed(members=[member("Alice")])
        target = [member("alice")]

        diff = calculate_team_diff(
            TeamDefinition(name="Platform", members=target), "platform", target, True, existing
        )

        assert [m.username for m in diff.changes.members_to_add] == ["alice"]
        assert diff.changes.members_to_remove == ["Alice"]

    def test_duplicate_targets_last_wins(self):
        """Test that a repeated target username keeps its last role."""
        target = [member("alice"), member("alice", TeamRole.MAINTAINER)]

        diff = calculate_team_diff(
            TeamDefinition(name="Platform"), "platform", target, True, None
        )

        assert len(diff.target_members) == 1
        assert diff.changes.members_to_add[0].role == TeamRole.MAINTAINER
