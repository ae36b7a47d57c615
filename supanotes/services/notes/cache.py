"""
Note cache reconciliation.

Public API (every call takes the session's :class:`SessionContext`):
  - NoteCache.reload(ctx) -> List[Note]
  - NoteCache.create(ctx, title, content) -> Note
  - NoteCache.update(ctx, note_id, title, content) -> Note
  - NoteCache.delete(ctx, note_id) -> bool
  - NoteCache.filter(ctx, query) -> List[Note]
  - NoteCache.begin_edit / cancel_edit / save  (editing marker helpers)

The local sequence only changes after the store has confirmed a write. It is
ordered newest-first when loaded; afterwards creates are prepended and updates
stay where they are. No call is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from supanotes.exceptions import (
    NoteNotFound,
    NotesError,
    NoteValidationError,
    NotSignedIn,
    StoreApiError,
    describe_error,
)

from .context import SessionContext
from .models import Note, Principal
from .queue import OperationQueue
from .repository import NotesRepository

LOGGER = logging.getLogger(__name__)


class OperationState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    APPLIED = "applied"
    FAILED = "failed"
    # confirmed remotely, but the session changed before it could be applied
    DISCARDED = "discarded"


@dataclass
class Operation:
    name: str
    principal_id: str
    state: OperationState = OperationState.IDLE
    error: Optional[NotesError] = field(default=None, repr=False)

    def advance(self, state: OperationState) -> None:
        LOGGER.debug("%s for %s: %s -> %s", self.name, self.principal_id, self.state.value, state.value)
        self.state = state


class NoteCache:
    def __init__(self, repository: NotesRepository, *, queue: Optional[OperationQueue] = None):
        self._repo = repository
        self._queue = queue or OperationQueue()

    # -------------------------- Operation plumbing ---------------------------

    @staticmethod
    def _require_principal(ctx: SessionContext, name: str):
        principal, epoch = ctx.snapshot()
        if principal is None:
            LOGGER.debug("%s rejected: nobody is signed in", name)
            raise NotSignedIn("Please login to manage notes")
        return principal, epoch

    @staticmethod
    def _validate(ctx: SessionContext, title: str, content: str):
        title = (title or "").strip()
        content = (content or "").strip()
        if not title or not content:
            message = "Please fill in both title and content"
            ctx.events.error("save", message)
            raise NoteValidationError(message)
        return title, content

    @staticmethod
    def _begin(ctx: SessionContext, name: str, principal: Principal) -> Operation:
        op = Operation(name=name, principal_id=principal.id)
        ctx.last_operation = op
        op.advance(OperationState.IN_FLIGHT)
        return op

    @staticmethod
    def _fail(ctx: SessionContext, op: Operation, scope: str, action: str, exc: NotesError) -> None:
        op.error = exc
        op.advance(OperationState.FAILED)
        LOGGER.error("%s failed (%s): %s", op.name, exc.kind.value, exc)
        ctx.events.error(scope, describe_error(action, exc))

    @staticmethod
    def _applied(ctx: SessionContext, op: Operation, notes: Optional[List[Note]]) -> bool:
        if notes is None:
            op.advance(OperationState.DISCARDED)
            LOGGER.warning("Discarding %s result: session changed while it was in flight", op.name)
            return False
        op.advance(OperationState.APPLIED)
        ctx.events.notes_changed(notes)
        return True

    # ------------------------------ Operations -------------------------------

    def reload(self, ctx: SessionContext) -> List[Note]:
        """Replace the sequence with the principal's notes, newest first."""
        principal, epoch = ctx.snapshot()
        if principal is None:
            LOGGER.debug("reload skipped: nobody is signed in")
            return ctx.notes
        with self._queue.slot(principal.id):
            op = self._begin(ctx, "reload", principal)
            try:
                fetched = self._repo.list_for(principal.id)
            except NotesError as exc:
                self._fail(ctx, op, "load", "load notes", exc)
                raise
            scoped = [n for n in fetched if n.owner_id == principal.id]
            if len(scoped) != len(fetched):
                LOGGER.warning("Dropped %d rows not owned by %s", len(fetched) - len(scoped), principal.id)
            applied = ctx.apply(epoch, lambda _current: scoped)
        self._applied(ctx, op, applied)
        LOGGER.info("Loaded %d notes", len(scoped))
        return ctx.notes

    def create(self, ctx: SessionContext, title: str, content: str) -> Note:
        principal, epoch = self._require_principal(ctx, "create")
        title, content = self._validate(ctx, title, content)
        with self._queue.slot(principal.id):
            op = self._begin(ctx, "create", principal)
            try:
                note = self._repo.insert(principal.id, title, content)
                if note is None:
                    raise StoreApiError("Failed to create note. Please try again.")
            except NotesError as exc:
                self._fail(ctx, op, "save", "save note", exc)
                raise
            applied = ctx.apply(epoch, lambda current: [note] + current)
        self._applied(ctx, op, applied)
        return note

    def update(self, ctx: SessionContext, note_id: str, title: str, content: str) -> Note:
        principal, epoch = self._require_principal(ctx, "update")
        title, content = self._validate(ctx, title, content)
        with self._queue.slot(principal.id):
            op = self._begin(ctx, "update", principal)
            try:
                note = self._repo.update(note_id, principal.id, title, content)
                if note is None:
                    raise NoteNotFound("Note not found or you do not have permission to update it.")
            except NotesError as exc:
                self._fail(ctx, op, "save", "save note", exc)
                raise

            def _replace(current: List[Note]) -> List[Note]:
                for index, existing in enumerate(current):
                    if existing.id == note.id:
                        current[index] = note
                        break
                return current

            applied = ctx.apply(epoch, _replace)
        self._applied(ctx, op, applied)
        return note

    def delete(self, ctx: SessionContext, note_id: str) -> bool:
        """
        Delete a confirmed note. Returns True if a local entry was removed;
        an id that is already gone locally or remotely is not an error.
        """
        principal, epoch = self._require_principal(ctx, "delete")
        removed = False
        with self._queue.slot(principal.id):
            op = self._begin(ctx, "delete", principal)
            try:
                affected = self._repo.delete(note_id, principal.id)
            except NotesError as exc:
                self._fail(ctx, op, "delete", "delete note", exc)
                raise
            if affected == 0:
                LOGGER.info("Store removed no rows for note %s", note_id)

            def _drop(current: List[Note]) -> List[Note]:
                nonlocal removed
                kept = [n for n in current if n.id != note_id]
                removed = len(kept) != len(current)
                return kept

            applied = ctx.apply(epoch, _drop)
        self._applied(ctx, op, applied)
        return removed

    @staticmethod
    def filter(ctx: SessionContext, query: Optional[str]) -> List[Note]:
        notes = ctx.notes
        needle = (query or "").strip().casefold()
        if not needle:
            return notes
        return [n for n in notes if n.matches(needle)]

    # ---------------------------- Editing marker -----------------------------

    @staticmethod
    def begin_edit(ctx: SessionContext, note_id: str) -> Optional[Note]:
        for note in ctx.notes:
            if note.id == note_id:
                ctx.set_editing(note_id)
                return note
        return None

    @staticmethod
    def cancel_edit(ctx: SessionContext) -> None:
        ctx.set_editing(None)

    def save(self, ctx: SessionContext, title: str, content: str) -> Note:
        """Update the note being edited, or create a new one if none is."""
        editing = ctx.editing_note_id
        if editing:
            note = self.update(ctx, editing, title, content)
        else:
            note = self.create(ctx, title, content)
        if ctx.editing_note_id == editing:
            ctx.set_editing(None)
        return note
