"""Team definition and dynamic team rule configuration models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TeamRole(str, Enum):
    """Role of a user inside a team."""
    MEMBER = "member"
    MAINTAINER = "maintainer"


class TeamPrivacy(str, Enum):
    """Team visibility inside the organization."""
    CLOSED = "closed"
    SECRET = "secret"


class NotificationSetting(str, Enum):
    """Whether team mentions notify members."""
    ENABLED = "notifications_enabled"
    DISABLED = "notifications_disabled"


class UnmanagedTeamsMode(str, Enum):
    """What to do with teams that exist in the organization but not in config."""
    IGNORE = "ignore"
    WARN = "warn"
    REMOVE = "remove"


class DynamicRuleType(str, Enum):
    """Known dynamic team rule types."""
    ALL_ORG_MEMBERS = "all_org_members"
    BY_FILTER = "by_filter"
    COMPOSITE = "composite"


class TeamMember(BaseModel):
    """A user and their role in a team."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(
        ...,
        description="GitHub login",
        min_length=1
    )
    role: TeamRole = Field(
        TeamRole.MEMBER,
        description="Role inside the team"
    )


class TeamDefinition(BaseModel):
    """Statically declared team.

    Optional fields are only enforced when they are declared. ``members``
    left out means membership is not managed, while ``members: []`` means
    the team must have no members at all.
    """

    name: str = Field(
        ...,
        description="Human team name; the slug is derived from it",
        min_length=1
    )
    description: Optional[str] = Field(
        None,
        description="Team description"
    )
    parent: Optional[str] = Field(
        None,
        description="Name of the parent team; null detaches the team from its parent"
    )
    privacy: Optional[TeamPrivacy] = Field(
        None,
        description="Team privacy level"
    )
    notification_setting: Optional[NotificationSetting] = Field(
        None,
        description="Team notification setting"
    )
    members: Optional[List[TeamMember]] = Field(
        None,
        description="Exact team membership; omit to leave membership unmanaged"
    )

    @field_validator("members")
    @classmethod
    def validate_unique_members(
        cls, v: Optional[List[TeamMember]]
    ) -> Optional[List[TeamMember]]:
        """Reject member lists that mention the same user twice."""
        if v is None:
            return v
        seen = set()
        for member in v:
            if member.username in seen:
                raise ValueError(f"Duplicate team member: {member.username}")
            seen.add(member.username)
        return v

    def declares(self, field_name: str) -> bool:
        """Whether a field was explicitly present in the configuration."""
        return field_name in self.model_fields_set

    @property
    def manages_members(self) -> bool:
        """Whether this definition declares a member list (possibly empty)."""
        return self.members is not None


class TeamMemberFilter(BaseModel):
    """Criteria for by_filter rules."""

    usernames: Optional[List[str]] = None
    emails: Optional[List[str]] = None
    teams: Optional[List[str]] = None
    with_repo_access: Optional[List[str]] = None

    @model_validator(mode='after')
    def validate_has_criterion(self) -> 'TeamMemberFilter':
        """Require at least one non-empty criterion."""
        if not any([self.usernames, self.emails, self.teams, self.with_repo_access]):
            raise ValueError("Team member filter must specify at least one criterion")
        return self


class TeamDifference(BaseModel):
    """Members of one team minus members of others."""

    model_config = ConfigDict(populate_by_name=True)

    from_team: str = Field(..., alias="from", min_length=1)
    subtract: List[str] = Field(..., min_length=1)


class TeamComposition(BaseModel):
    """Set operations over other teams for composite rules."""

    union: Optional[List[str]] = None
    intersection: Optional[List[str]] = None
    difference: Optional[TeamDifference] = None

    @model_validator(mode='after')
    def validate_has_operation(self) -> 'TeamComposition':
        """Require at least one set operation."""
        if not self.union and not self.intersection and self.difference is None:
            raise ValueError("Team composition must define at least one operation")
        return self


class DynamicTeamRule(BaseModel):
    """Team whose membership is computed at sync time.

    ``type`` is kept as a plain string so that rule types this version does
    not know about reach the resolver, which reports and skips them.
    """

    name: str = Field(
        ...,
        description="Name of the generated team",
        min_length=1
    )
    type: str = Field(
        ...,
        description="Rule type: all_org_members, by_filter or composite",
        min_length=1
    )
    description: Optional[str] = None
    parent: Optional[str] = None
    privacy: Optional[TeamPrivacy] = None
    notification_setting: Optional[NotificationSetting] = None
    filter: Optional[TeamMemberFilter] = None
    compose: Optional[TeamComposition] = None

    @model_validator(mode='after')
    def validate_payload(self) -> 'DynamicTeamRule':
        """Check the payload matches the rule type."""
        if self.type == DynamicRuleType.BY_FILTER.value and self.filter is None:
            raise ValueError("by_filter rules require a filter block")
        if self.type == DynamicRuleType.COMPOSITE.value and self.compose is None:
            raise ValueError("composite rules require a compose block")
        if self.filter is not None and self.type != DynamicRuleType.BY_FILTER.value:
            raise ValueError("Only by_filter rules may specify filter")
        if self.compose is not None and self.type != DynamicRuleType.COMPOSITE.value:
            raise ValueError("Only composite rules may specify compose")
        return self

    def to_definition(self) -> TeamDefinition:
        """Build the team definition carried by teams generated from this rule."""
        declared = {
            field_name: getattr(self, field_name)
            for field_name in ("description", "parent", "privacy", "notification_setting")
            if field_name in self.model_fields_set
        }
        return TeamDefinition(name=self.name, **declared)


class TeamsConfig(BaseModel):
    """Team synchronization configuration."""

    definitions: List[TeamDefinition] = Field(
        default_factory=list,
        description="Statically declared teams, processed in declaration order"
    )
    dynamic_rules: List[DynamicTeamRule] = Field(
        default_factory=list,
        description="Teams with computed membership, processed after definitions"
    )
    unmanaged_teams: UnmanagedTeamsMode = Field(
        UnmanagedTeamsMode.IGNORE,
        description="Policy for teams that exist in the organization but not in config"
    )
    dry_run: bool = Field(
        False,
        description="Preview changes without applying them"
    )
