"""Command modules for the supanotes CLI."""

from supanotes.cli.commands import auth, notes

__all__ = ["auth", "notes"]
