"""
Notifications for whatever renders the notes (CLI table, HTML page, tests).

A listener implements any subset of :class:`NotesListener`; the hub calls
every subscriber in subscription order and keeps going when one fails.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Protocol, Sequence, Tuple

from .models import Note, Principal

LOGGER = logging.getLogger(__name__)


class NotesListener(Protocol):
    def logged_in(self, principal: Principal) -> None: ...

    def logged_out(self) -> None: ...

    def notes_changed(self, notes: Sequence[Note]) -> None: ...

    def error(self, scope: str, message: str) -> None: ...


class EventHub:
    def __init__(self) -> None:
        self._listeners: List[object] = []
        self._lock = threading.Lock()

    @property
    def listeners(self) -> Tuple[object, ...]:
        with self._lock:
            return tuple(self._listeners)

    def subscribe(self, listener: object) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: object) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _dispatch(self, method: str, *args) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            handler = getattr(listener, method, None)
            if handler is None:
                continue
            try:
                handler(*args)
            except Exception:
                LOGGER.exception("Listener %r failed in %s", listener, method)

    def logged_in(self, principal: Principal) -> None:
        self._dispatch("logged_in", principal)

    def logged_out(self) -> None:
        self._dispatch("logged_out")

    def notes_changed(self, notes: Sequence[Note]) -> None:
        self._dispatch("notes_changed", list(notes))

    def error(self, scope: str, message: str) -> None:
        LOGGER.debug("Reporting %s error: %s", scope, message)
        self._dispatch("error", scope, message)
