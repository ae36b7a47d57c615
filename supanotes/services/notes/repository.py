"""
Notes table access scoped by owner.

Every write filters on both the note id and the owner column, even though
row-level security enforces ownership on the server as well.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from supanotes.exceptions import StoreApiError
from supanotes.services.store import ClientGate, NoteRow, StoreClient

from .models import Note

LOGGER = logging.getLogger(__name__)


class NotesRepository:
    def __init__(
        self,
        gate: "ClientGate[StoreClient]",
        *,
        table: str = "notes",
        owner_column: str = "user_id",
    ):
        self._gate = gate
        self.table = table
        self.owner_column = owner_column

    def _client(self) -> StoreClient:
        return self._gate.wait()

    def _to_note(self, row: Dict[str, Any]) -> Note:
        data = dict(row)
        if self.owner_column != "owner_id":
            data["owner_id"] = data.pop(self.owner_column, data.get("owner_id"))
        try:
            return Note.from_row(NoteRow.model_validate(data))
        except ValidationError as exc:
            LOGGER.error("Row validation failed for table %s", self.table)
            raise StoreApiError("Note row validation failed", payload=row) from exc

    def list_for(self, owner_id: str) -> List[Note]:
        LOGGER.info("Fetching notes for owner %s", owner_id)
        result = (
            self._client()
            .table(self.table)
            .select("*")
            .eq(self.owner_column, owner_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [self._to_note(row) for row in result.rows]

    def insert(self, owner_id: str, title: str, content: str) -> Optional[Note]:
        """Insert a note; returns the stored row, or None if none came back."""
        result = (
            self._client()
            .table(self.table)
            .insert({self.owner_column: owner_id, "title": title, "content": content})
            .select()
            .execute()
        )
        return self._to_note(result.rows[0]) if result.rows else None

    def update(self, note_id: str, owner_id: str, title: str, content: str) -> Optional[Note]:
        """Update a note; returns None when no row matched id and owner."""
        # updated_at is maintained by a trigger on the table
        result = (
            self._client()
            .table(self.table)
            .update({"title": title, "content": content})
            .eq("id", note_id)
            .eq(self.owner_column, owner_id)
            .select()
            .execute()
        )
        return self._to_note(result.rows[0]) if result.rows else None

    def delete(self, note_id: str, owner_id: str) -> int:
        """Delete a note; returns the number of rows the store removed."""
        result = (
            self._client()
            .table(self.table)
            .delete()
            .eq("id", note_id)
            .eq(self.owner_column, owner_id)
            .select("id")
            .execute()
        )
        return result.count
