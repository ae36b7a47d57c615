"""High-level notes data transfer objects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from supanotes.services.store.models import AuthUser, NoteRow


@dataclass(frozen=True)
class Principal:
    """The signed-in user a session belongs to."""

    id: str
    email: Optional[str]

    @classmethod
    def from_user(cls, user: AuthUser) -> "Principal":
        return cls(id=user.id, email=str(user.email) if user.email else None)


@dataclass(frozen=True)
class Note:
    """One cached note, exactly as the store last confirmed it."""

    id: str
    owner_id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: NoteRow) -> "Note":
        return cls(
            id=row.id,
            owner_id=row.owner_id,
            title=row.title,
            content=row.content,
            created_at=row.created_at,
            updated_at=row.updated_at or row.created_at,
        )

    @property
    def was_edited(self) -> bool:
        return self.updated_at != self.created_at

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on title or content.

        ``needle`` must already be case-folded.
        """
        return needle in self.title.casefold() or needle in self.content.casefold()
