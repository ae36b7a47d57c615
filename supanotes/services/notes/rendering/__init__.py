"""HTML rendering for notes."""

from .html import render_card, render_notes, render_page
from .options import RenderOptions

__all__ = ["RenderOptions", "render_card", "render_notes", "render_page"]
