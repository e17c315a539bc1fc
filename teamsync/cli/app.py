"""Main CLI application."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer
from rich.console import Console
from rich.markup import escape

from teamsync.cli.factory import ClientFactory
from teamsync.cli.formatters import ConfigFormatter, SyncResultFormatter
from teamsync.config.base_models import LogFormat, LogLevel
from teamsync.config.loader import ConfigLoader, find_config_file
from teamsync.config.models import PolicyConfig
from teamsync.security.validation import (
    sanitize_log_input,
    validate_file_path,
    validate_organization_name,
)
from teamsync.teams.manager import TeamManager
from teamsync.teams.types import SyncResult, TeamSyncOptions

# Exit code of `plan` when the organization differs from the configuration
EXIT_CHANGES_PENDING = 2

console = Console()
logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="github-team-sync",
    help="Reconcile GitHub organization teams with a declarative configuration.",
    rich_markup_mode="rich",
    add_completion=False,
)


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """Setup structured logging.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Log format (json or text).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_configuration(config_file: Optional[Path] = None) -> PolicyConfig:
    """Load and validate configuration.

    Args:
        config_file: Optional path to config file

    Returns:
        Validated configuration

    Raises:
        typer.Exit: If configuration loading fails
    """
    if config_file is None:
        config_file = find_config_file()
        if config_file is None:
            console.print("[red]Error: No configuration file found[/red]")
            console.print("Please create a team-sync.yaml file or specify --config")
            raise typer.Exit(1)

    config_path_str = str(config_file)
    if not validate_file_path(config_path_str):
        console.print(
            f"[red]Error: Invalid or unsafe configuration file path: "
            f"{escape(sanitize_log_input(config_path_str))}[/red]"
        )
        raise typer.Exit(1)

    try:
        config = ConfigLoader().load_config(config_file)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {escape(sanitize_log_input(str(e)))}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Loaded configuration from {escape(sanitize_log_input(config_path_str))}")
    return config


def configure_logging(
    config: PolicyConfig,
    log_level: Optional[LogLevel],
    log_format: Optional[LogFormat],
) -> None:
    """Apply logging settings, command line options taking precedence."""
    level = log_level or config.logging.log_level
    fmt = log_format or config.logging.log_format
    setup_logging(level.value, fmt.value)


def check_organization(org: Optional[str]) -> None:
    """Reject malformed --org values before any API call."""
    if org is not None and not validate_organization_name(org):
        console.print(f"[red]Error: Invalid organization name: {escape(sanitize_log_input(org))}[/red]")
        raise typer.Exit(1)


async def run_sync(config: PolicyConfig, org: Optional[str], dry_run: bool) -> SyncResult:
    """Run one reconciliation pass against GitHub.

    Args:
        config: Loaded policy configuration
        org: Organization from the command line, if any
        dry_run: Whether to only preview changes

    Returns:
        SyncResult of the pass
    """
    client = ClientFactory.create_github_client(config)
    logger.debug("Starting team sync run", org=org or config.organization, dry_run=dry_run)
    async with client:
        manager = TeamManager(
            client,
            config.teams,
            TeamSyncOptions(dry_run=dry_run, owner=org),
            organization=config.organization,
        )
        result = await manager.sync()
        logger.debug("GitHub client stats", **client.get_stats())
        return result


@app.command()
def validate(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration file"
    ),
) -> None:
    """Validate configuration file."""
    console.print("[blue]Validating configuration...[/blue]")

    config = load_configuration(config_file)
    ConfigFormatter(console).format_config_summary(config)
    console.print("[green]✓ Configuration is valid[/green]")


@app.command()
def plan(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration file"
    ),
    org: Optional[str] = typer.Option(
        None, "--org", "-o", help="GitHub organization (overrides the configuration)"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Also list teams that are already up to date"
    ),
    log_level: Optional[LogLevel] = typer.Option(
        None, "--log-level", help="Log level", case_sensitive=False
    ),
    log_format: Optional[LogFormat] = typer.Option(
        None, "--log-format", help="Log format", case_sensitive=False
    ),
) -> None:
    """Show which team changes a sync would make.

    Exits with 0 when the organization is compliant, 2 when changes are
    pending and 1 when errors occurred.
    """
    config = load_configuration(config_file)
    configure_logging(config, log_level, log_format)
    check_organization(org)

    try:
        result = asyncio.run(run_sync(config, org, dry_run=True))
    except Exception as e:
        console.print(f"[red]Plan generation failed: {escape(sanitize_log_input(str(e)))}[/red]")
        raise typer.Exit(1)

    SyncResultFormatter(console, verbose=verbose).format_result(result)

    if result.has_errors:
        raise typer.Exit(1)
    if result.has_changes:
        raise typer.Exit(EXIT_CHANGES_PENDING)


@app.command()
def apply(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration file"
    ),
    org: Optional[str] = typer.Option(
        None, "--org", "-o", help="GitHub organization (overrides the configuration)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would be done without making changes"
    ),
    auto_approve: bool = typer.Option(
        False, "--auto-approve", help="Skip interactive approval"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Also list teams that are already up to date"
    ),
    log_level: Optional[LogLevel] = typer.Option(
        None, "--log-level", help="Log level", case_sensitive=False
    ),
    log_format: Optional[LogFormat] = typer.Option(
        None, "--log-format", help="Log format", case_sensitive=False
    ),
) -> None:
    """Apply team changes to the organization."""
    config = load_configuration(config_file)
    configure_logging(config, log_level, log_format)
    check_organization(org)
    formatter = SyncResultFormatter(console, verbose=verbose)

    try:
        preview = asyncio.run(run_sync(config, org, dry_run=True))
    except Exception as e:
        console.print(f"[red]Plan generation failed: {escape(sanitize_log_input(str(e)))}[/red]")
        raise typer.Exit(1)

    formatter.format_result(preview)

    if preview.has_errors:
        console.print("[red]Resolve the errors above before applying changes[/red]")
        raise typer.Exit(1)
    if dry_run or (config.teams is not None and config.teams.dry_run):
        console.print("[blue]Dry run enabled; no changes applied[/blue]")
        return
    if not preview.has_changes:
        console.print("[green]No changes needed[/green]")
        return

    if not auto_approve:
        if not typer.confirm("Do you want to apply these changes?"):
            console.print("Operation cancelled")
            return

    console.print("\n[blue]Applying team changes...[/blue]")
    try:
        result = asyncio.run(run_sync(config, org, dry_run=False))
    except Exception as e:
        console.print(f"[red]Apply failed: {escape(sanitize_log_input(str(e)))}[/red]")
        raise typer.Exit(1)

    formatter.format_result(result)

    if result.has_errors:
        console.print("[yellow]Completed with errors[/yellow]")
        raise typer.Exit(1)
    console.print("[green]✓ Team sync completed successfully[/green]")


if __name__ == "__main__":
    app()
