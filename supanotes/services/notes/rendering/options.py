"""
Rendering configuration for note cards.

None means "use the module default" (local time zone for timestamps).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional


@dataclass(frozen=True)
class RenderOptions:
    # Convert timestamps to this zone before formatting; None is local time
    timezone: Optional[tzinfo] = None

    # Shown instead of the grid when there is nothing to render
    empty_text: str = "No notes yet. Create your first note!"

    page_title: str = "My Notes"
    show_updated: bool = True

    def format_date(self, value: datetime) -> str:
        """en-US style, e.g. ``Nov 8, 2025, 02:30 PM``."""
        local = value.astimezone(self.timezone)
        return f"{local:%b} {local.day}, {local:%Y, %I:%M %p}"
