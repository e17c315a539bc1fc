"""Output formatters for CLI commands."""

from typing import Any, Dict, List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from teamsync.config.models import PolicyConfig
from teamsync.security.validation import sanitize_log_input
from teamsync.teams.types import FindingLevel, SyncFinding, SyncResult

LEVEL_STYLES = {
    FindingLevel.INFO: "blue",
    FindingLevel.WARNING: "yellow",
    FindingLevel.ERROR: "red",
}


def _format_details(details: Dict[str, Any]) -> str:
    parts: List[str] = []
    for key, value in details.items():
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(item) for item in value)
        elif isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items())
        parts.append(f"{key}: {value}")
    return escape(sanitize_log_input("; ".join(parts)))


class SyncResultFormatter:
    """Formats team sync results for display."""

    def __init__(self, console: Console, verbose: bool = False):
        self.console = console
        self.verbose = verbose

    def format_findings(self, result: SyncResult) -> None:
        """Display findings, hiding up-to-date teams unless verbose."""
        findings: List[SyncFinding] = [
            finding for finding in result.findings
            if self.verbose or not finding.details.get("up_to_date")
        ]
        if not findings:
            return

        table = Table(title="Team Findings")
        table.add_column("Level", style="bold")
        table.add_column("Team", style="cyan")
        table.add_column("Message")
        if self.verbose:
            table.add_column("Details", style="dim")

        for finding in findings:
            style = LEVEL_STYLES[finding.level]
            row = [
                f"[{style}]{finding.level.value.upper()}[/{style}]",
                escape(sanitize_log_input(finding.team or "-")),
                escape(sanitize_log_input(finding.message)),
            ]
            if self.verbose:
                row.append(_format_details(finding.details))
            table.add_row(*row)

        self.console.print(table)

    def format_stats(self, result: SyncResult) -> None:
        """Display sync counters."""
        table = Table(title="Team Sync Summary")
        table.add_column("Processed", style="cyan")
        table.add_column("Created", style="green")
        table.add_column("Updated", style="yellow")
        table.add_column("Skipped", style="blue")
        table.add_column("Errors", style="red")

        stats = result.stats
        table.add_row(
            str(stats.processed),
            str(stats.created),
            str(stats.updated),
            str(stats.skipped),
            str(len(result.findings_by_level(FindingLevel.ERROR))),
        )
        self.console.print(table)

    def format_result(self, result: SyncResult) -> None:
        """Display findings, counters and the summary line."""
        self.format_findings(result)
        self.format_stats(result)

        if result.has_errors:
            color = "red"
        elif result.has_changes:
            color = "yellow"
        else:
            color = "green"
        self.console.print(f"[{color}]{escape(sanitize_log_input(result.summary))}[/{color}]")


class ConfigFormatter:
    """Formats configuration information for display."""

    def __init__(self, console: Console):
        self.console = console

    def format_config_summary(self, config: PolicyConfig) -> None:
        """Display configuration summary."""
        table = Table(title="Configuration Summary")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Organization", escape(sanitize_log_input(config.organization or "(from --org)")))
        table.add_row("GitHub API", escape(sanitize_log_input(str(config.github.api_url))))
        table.add_row("GitHub Rate Limit", str(config.github.rate_limit_per_minute))

        teams = config.teams
        if teams is None:
            table.add_row("Teams", "Not configured")
        else:
            table.add_row("Team Definitions", str(len(teams.definitions)))
            table.add_row("Dynamic Rules", str(len(teams.dynamic_rules)))
            table.add_row("Unmanaged Teams", teams.unmanaged_teams.value)
            if teams.dry_run:
                table.add_row("Dry Run", "Enabled")

        self.console.print(table)
