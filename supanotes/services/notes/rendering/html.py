"""
HTML projection of the note cache.

Pure functions: notes in, markup out. tinyhtml escapes every text node, so
titles and contents are safe to embed as-is; line breaks in the content
become ``<br>``.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from tinyhtml import h, html, raw

from ..models import Note
from .options import RenderOptions

LOGGER = logging.getLogger(__name__)

_BASE_CSS = """
body { font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif; margin: 2rem; }
.notes-grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(260px, 1fr)); gap: 1rem; }
.note-card { border: 1px solid #ddd; border-radius: 8px; padding: 1rem; }
.note-title { margin: 0 0 .5rem; }
.note-footer { color: #777; display: flex; flex-direction: column; margin-top: .75rem; }
.empty-state { color: #777; }
"""


def _content_children(text: str) -> List[object]:
    children: List[object] = []
    for index, line in enumerate(text.split("\n")):
        if index:
            children.append(raw("<br>"))
        children.append(line)
    return children


def render_card(note: Note, options: Optional[RenderOptions] = None):
    opts = options or RenderOptions()
    footer = [h("small", **{"class": "note-date"})(opts.format_date(note.created_at))]
    if opts.show_updated and note.was_edited:
        footer.append(
            h("small", **{"class": "note-updated"})(
                f"Updated: {opts.format_date(note.updated_at)}"
            )
        )
    return h("div", **{"class": "note-card", "data-note-id": note.id})(
        h("div", **{"class": "note-header"})(
            h("h3", **{"class": "note-title"})(note.title),
        ),
        h("div", **{"class": "note-content"})(*_content_children(note.content)),
        h("div", **{"class": "note-footer"})(*footer),
    )


def render_notes(notes: Sequence[Note], options: Optional[RenderOptions] = None) -> str:
    """Render the grid of note cards, or the empty state."""
    opts = options or RenderOptions()
    if not notes:
        return h("div", **{"class": "empty-state"})(opts.empty_text).render()
    LOGGER.debug("Rendering %d note cards", len(notes))
    return h("div", **{"class": "notes-grid", "id": "notes-container"})(
        *(render_card(n, opts) for n in notes)
    ).render()


def render_page(notes: Sequence[Note], options: Optional[RenderOptions] = None) -> str:
    """Standalone HTML document wrapping :func:`render_notes`."""
    opts = options or RenderOptions()
    return html(lang="en")(
        h("head")(
            h("meta", charset="utf-8"),
            h("title")(opts.page_title),
            h("style")(raw(_BASE_CSS)),
        ),
        h("body")(
            h("h1")(opts.page_title),
            raw(render_notes(notes, opts)),
        ),
    ).render()
