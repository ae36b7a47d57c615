"""Tests for the HTML projection of notes."""

import unittest
from datetime import datetime, timedelta, timezone

from supanotes.services.notes import Note
from supanotes.services.notes.rendering import (
    RenderOptions,
    render_card,
    render_notes,
    render_page,
)

CREATED = datetime(2025, 11, 8, 14, 30, tzinfo=timezone.utc)
UTC = RenderOptions(timezone=timezone.utc)


def note(note_id="n1", title="Title", content="Body", edited=False):
    updated = CREATED + timedelta(days=1) if edited else CREATED
    return Note(note_id, "user-1", title, content, CREATED, updated)


class RenderingTest(unittest.TestCase):
    def test_format_date(self):
        self.assertEqual(UTC.format_date(CREATED), "Nov 8, 2025, 02:30 PM")

    def test_card_structure(self):
        out = render_card(note(), UTC).render()
        self.assertIn('class="note-card"', out)
        self.assertIn('data-note-id="n1"', out)
        self.assertIn('<h3 class="note-title">Title</h3>', out)
        self.assertIn("Nov 8, 2025, 02:30 PM", out)
        self.assertNotIn("Updated:", out)

    def test_card_escapes_and_breaks_lines(self):
        out = render_card(note(title="<b>x</b>", content="line 1\nline <2>"), UTC).render()
        self.assertIn("&lt;b&gt;x&lt;/b&gt;", out)
        self.assertIn("line 1<br>line &lt;2&gt;", out)
        self.assertNotIn("<b>x</b>", out)

    def test_edited_card_shows_updated(self):
        out = render_card(note(edited=True), UTC).render()
        self.assertIn("Updated: Nov 9, 2025, 02:30 PM", out)
        hidden = render_card(note(edited=True), RenderOptions(timezone=timezone.utc, show_updated=False))
        self.assertNotIn("Updated:", hidden.render())

    def test_empty_state(self):
        out = render_notes([], UTC)
        self.assertIn('class="empty-state"', out)
        self.assertIn("No notes yet. Create your first note!", out)

    def test_grid_keeps_order(self):
        out = render_notes([note("a"), note("b")], UTC)
        self.assertIn('id="notes-container"', out)
        self.assertLess(out.index('data-note-id="a"'), out.index('data-note-id="b"'))

    def test_page(self):
        out = render_page([note()], RenderOptions(timezone=timezone.utc, page_title="Ada notes"))
        self.assertIn("<!doctype html>", out.lower())
        self.assertIn("<title>Ada notes</title>", out)
        self.assertIn('class="notes-grid"', out)


if __name__ == "__main__":
    unittest.main()
