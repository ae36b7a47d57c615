"""Wiring of the store client, session tracker and note cache."""

from __future__ import annotations

import logging
from typing import List, Optional

import requests

from supanotes.config import Settings
from supanotes.services.notes import (
    Note,
    NoteCache,
    NotesRepository,
    Principal,
    SessionContext,
    SessionTracker,
)
from supanotes.services.store import (
    ClientGate,
    FileSessionStorage,
    MemorySessionStorage,
    SessionStorage,
    StoreClient,
)

LOGGER = logging.getLogger(__name__)


class NotesApp:
    """
    One signed-in (or signed-out) notes session.

        app = NotesApp(Settings.from_env())
        app.start()
        app.auth.sign_in("me@example.com", "secret")
        app.notes.create(app.context, "Title", "Body")

    With ``lazy=True`` the store client is built on a background thread and
    every call waits for it through the readiness gate.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[StoreClient] = None,
        listener: Optional[object] = None,
        storage: Optional[SessionStorage] = None,
        http_session: Optional[requests.Session] = None,
        lazy: bool = False,
    ):
        self.settings = settings
        if storage is None:
            storage = (
                FileSessionStorage(settings.session_path)
                if settings.session_path
                else MemorySessionStorage()
            )

        def _build() -> StoreClient:
            return StoreClient.from_settings(settings, session=http_session, storage=storage)

        if client is not None:
            self.gate: ClientGate[StoreClient] = ClientGate.ready(client, timeout=settings.ready_timeout)
        elif lazy:
            self.gate = ClientGate.start(_build, timeout=settings.ready_timeout)
        else:
            self.gate = ClientGate.ready(_build(), timeout=settings.ready_timeout)

        self.context = SessionContext(listener)
        self.repository = NotesRepository(
            self.gate, table=settings.table, owner_column=settings.owner_column
        )
        self.notes = NoteCache(self.repository)
        self.auth = SessionTracker(self.gate, self.context, self.notes)

    def start(self) -> Optional[Principal]:
        """Subscribe to auth changes and restore any persisted session."""
        self.auth.start()
        return self.auth.restore_session()

    def close(self) -> None:
        self.auth.stop()

    def __enter__(self) -> "NotesApp":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def principal(self) -> Optional[Principal]:
        return self.context.principal

    def search(self, query: Optional[str] = None) -> List[Note]:
        return self.notes.filter(self.context, query)
