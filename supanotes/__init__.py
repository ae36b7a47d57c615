"""Notes synced with a hosted auth + table backend."""

from supanotes.app import NotesApp
from supanotes.config import Settings

__all__ = ["NotesApp", "Settings"]
