"""GitHub Team Sync - declarative team reconciliation for GitHub organizations.

This package resolves a desired team topology from configuration, compares it
with the live state reported by the GitHub API and applies the minimal set of
changes needed to bring the organization in line.
"""

from teamsync.version import __version__

__all__ = ["__version__"]
