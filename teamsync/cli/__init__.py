"""Command-line interface for github-team-sync."""

from teamsync.cli.app import app

__all__ = ["app"]
