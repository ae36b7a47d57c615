"""Session-scoped state: who is signed in and what their notes look like."""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Tuple

from .events import EventHub
from .models import Note, Principal

LOGGER = logging.getLogger(__name__)


class SessionContext:
    """
    Holds the principal, the ordered note sequence and the editing marker for
    one logical session.

    ``epoch`` changes whenever the identity is reset (sign-out or a different
    principal). Operations capture it when they start and may only apply
    their result while it is unchanged, so a late response never lands in a
    cache that now belongs to someone else.
    """

    def __init__(self, listener: Optional[object] = None):
        self._lock = threading.RLock()
        self._principal: Optional[Principal] = None
        self._notes: List[Note] = []
        self._editing_note_id: Optional[str] = None
        self._epoch = 0
        self.events = EventHub()
        if listener is not None:
            self.events.subscribe(listener)
        self.last_operation = None

    @property
    def principal(self) -> Optional[Principal]:
        with self._lock:
            return self._principal

    @property
    def notes(self) -> List[Note]:
        with self._lock:
            return list(self._notes)

    @property
    def epoch(self) -> int:
        with self._lock:
            return self._epoch

    @property
    def editing_note_id(self) -> Optional[str]:
        with self._lock:
            return self._editing_note_id

    def snapshot(self) -> Tuple[Optional[Principal], int]:
        """Read principal and epoch together."""
        with self._lock:
            return self._principal, self._epoch

    def set_principal(self, principal: Principal) -> bool:
        """Install ``principal``; returns True when the identity changed."""
        with self._lock:
            changed = self._principal is None or self._principal.id != principal.id
            if changed:
                self._reset()
            self._principal = principal
        if changed:
            LOGGER.info("Principal set to %s", principal.email or principal.id)
        return changed

    def clear(self) -> None:
        with self._lock:
            self._reset()
            self._principal = None
        LOGGER.info("Session context cleared")

    def _reset(self) -> None:
        self._notes = []
        self._editing_note_id = None
        self._epoch += 1

    def apply(self, epoch: int, mutate: Callable[[List[Note]], List[Note]]) -> Optional[List[Note]]:
        """
        Replace the sequence with ``mutate(current)`` if ``epoch`` is still
        current. Returns the new sequence, or None when the result is stale.
        """
        with self._lock:
            if epoch != self._epoch:
                return None
            self._notes = mutate(list(self._notes))
            return list(self._notes)

    def set_editing(self, note_id: Optional[str], *, epoch: Optional[int] = None) -> bool:
        with self._lock:
            if epoch is not None and epoch != self._epoch:
                return False
            self._editing_note_id = note_id
            return True
