"""Data types shared by the team resolver, diff engine, applier and manager."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from teamsync.config.team_models import (
    DynamicTeamRule,
    TeamDefinition,
    TeamMember,
    TeamRole,
    UnmanagedTeamsMode,
)


class TeamSource(str, Enum):
    """Where a desired team came from."""
    DEFINITION = "definition"
    DYNAMIC = "dynamic"


class FindingLevel(str, Enum):
    """Severity of a sync finding."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ResolvedTeam(BaseModel):
    """A desired team with its concrete target membership."""

    definition: TeamDefinition
    members: List[TeamMember] = Field(default_factory=list)
    manage_members: bool = False
    source: TeamSource
    rule: Optional[DynamicTeamRule] = None


class ResolvedTeams(BaseModel):
    """Resolver output, static definitions first."""

    static_teams: List[ResolvedTeam] = Field(default_factory=list)
    dynamic_teams: List[ResolvedTeam] = Field(default_factory=list)

    def all_teams(self) -> List[ResolvedTeam]:
        """All teams in processing order."""
        return self.static_teams + self.dynamic_teams

    @property
    def total(self) -> int:
        return len(self.static_teams) + len(self.dynamic_teams)


class ObservedTeamState(BaseModel):
    """A team as currently reported by GitHub."""

    id: Optional[int] = None
    name: str
    slug: str
    description: Optional[str] = None
    parent: Optional[str] = None
    privacy: Optional[str] = None
    notification_setting: Optional[str] = None
    members: List[TeamMember] = Field(default_factory=list)


class FieldChange(BaseModel):
    """Old and new value of one metadata field."""

    old: Optional[str] = None
    new: Optional[str] = None


class MemberRoleChange(BaseModel):
    """A member whose role must change."""

    username: str
    new_role: TeamRole


class TeamDiffChangeSet(BaseModel):
    """Metadata and membership deltas for one team."""

    description: Optional[FieldChange] = None
    privacy: Optional[FieldChange] = None
    parent: Optional[FieldChange] = None
    notification_setting: Optional[FieldChange] = None
    members_to_add: List[TeamMember] = Field(default_factory=list)
    members_to_remove: List[str] = Field(default_factory=list)
    members_to_update_role: List[MemberRoleChange] = Field(default_factory=list)

    def metadata_changes(self) -> Dict[str, FieldChange]:
        """Metadata fields that differ, keyed by field name."""
        changes = {
            "description": self.description,
            "privacy": self.privacy,
            "parent": self.parent,
            "notification_setting": self.notification_setting,
        }
        return {name: change for name, change in changes.items() if change is not None}

    @property
    def has_metadata_changes(self) -> bool:
        return bool(self.metadata_changes())

    @property
    def has_member_changes(self) -> bool:
        return bool(
            self.members_to_add or self.members_to_remove or self.members_to_update_role
        )


class TeamDiff(BaseModel):
    """Everything needed to bring one team to its desired state."""

    team: str
    slug: str
    definition: TeamDefinition
    exists: bool
    target_members: List[TeamMember] = Field(default_factory=list)
    manage_members: bool = False
    target_parent_id: Optional[int] = None
    target_parent_slug: Optional[str] = None
    changes: TeamDiffChangeSet = Field(default_factory=TeamDiffChangeSet)

    def has_changes(self) -> bool:
        """Whether applying this diff would change anything."""
        if not self.exists:
            return True
        if self.changes.has_metadata_changes:
            return True
        return self.manage_members and self.changes.has_member_changes


class SyncOutcome(BaseModel):
    """What applying a diff actually did."""

    team: str
    slug: str
    created: bool = False
    updated_metadata: bool = False
    updated_members: bool = False
    team_id: Optional[int] = None
    errors: List[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


class SyncFinding(BaseModel):
    """A single reportable event from a sync run."""

    level: FindingLevel
    message: str
    team: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class SyncStats(BaseModel):
    """Counters for a sync run."""

    processed: int = 0
    created: int = 0
    updated: int = 0
    removed: int = 0
    skipped: int = 0


class SyncResult(BaseModel):
    """Aggregated result of a sync run."""

    has_changes: bool = False
    has_errors: bool = False
    findings: List[SyncFinding] = Field(default_factory=list)
    summary: str = ""
    stats: SyncStats = Field(default_factory=SyncStats)

    def add_finding(
        self,
        level: FindingLevel,
        message: str,
        team: Optional[str] = None,
        **details: Any,
    ) -> SyncFinding:
        """Record a finding, flagging the run as failed for error findings."""
        finding = SyncFinding(level=level, message=message, team=team, details=details)
        self.findings.append(finding)
        if level == FindingLevel.ERROR:
            self.has_errors = True
        return finding

    def findings_by_level(self, level: FindingLevel) -> List[SyncFinding]:
        return [finding for finding in self.findings if finding.level == level]


class TeamSyncOptions(BaseModel):
    """Per-call overrides for a sync run; unset values fall back to configuration."""

    dry_run: Optional[bool] = None
    unmanaged_teams: Optional[UnmanagedTeamsMode] = None
    owner: Optional[str] = None
