"""Public API for the notes service."""

from .cache import NoteCache, Operation, OperationState
from .context import SessionContext
from .events import EventHub, NotesListener
from .models import Note, Principal
from .queue import OperationQueue
from .repository import NotesRepository
from .session import SessionTracker, SignUpOutcome

__all__ = [
    "NoteCache",
    "Operation",
    "OperationState",
    "SessionContext",
    "EventHub",
    "NotesListener",
    "Note",
    "Principal",
    "OperationQueue",
    "NotesRepository",
    "SessionTracker",
    "SignUpOutcome",
]
