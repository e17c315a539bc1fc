"""Team reconciliation: resolution, diffing, application and orchestration."""

from .applier import apply_team_diff, describe_changes
from .diff import calculate_team_diff
from .manager import TeamManager, sync_teams
from .resolver import TeamResolver
from .slug import slugify
from .types import (
    FindingLevel,
    ObservedTeamState,
    ResolvedTeam,
    ResolvedTeams,
    SyncFinding,
    SyncOutcome,
    SyncResult,
    SyncStats,
    TeamDiff,
    TeamDiffChangeSet,
    TeamSource,
    TeamSyncOptions,
)

__all__ = [
    "TeamManager",
    "TeamResolver",
    "sync_teams",
    "calculate_team_diff",
    "apply_team_diff",
    "describe_changes",
    "slugify",

    # Types
    "FindingLevel",
    "ObservedTeamState",
    "ResolvedTeam",
    "ResolvedTeams",
    "SyncFinding",
    "SyncOutcome",
    "SyncResult",
    "SyncStats",
    "TeamDiff",
    "TeamDiffChangeSet",
    "TeamSource",
    "TeamSyncOptions",
]
