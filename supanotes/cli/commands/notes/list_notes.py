"""List command for the supanotes CLI."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from supanotes.cli.utils import auth
from supanotes.services.notes.rendering import RenderOptions

app = typer.Typer(help="List your notes")
console = Console()


def _preview(text: str, width: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 1] + "…"


@app.callback(invoke_without_command=True)
def main(
    search: Optional[str] = typer.Option(
        None, "--search", "-s", help="Only notes whose title or content contains this text"
    ),
):
    """List notes, newest first."""
    api = auth.get_app()
    auth.require_login(api)
    notes = api.search(search)

    if not notes:
        console.print("No notes found." if search else RenderOptions().empty_text)
        return

    options = RenderOptions()
    table = Table(title="Notes")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Content")
    table.add_column("Created")
    table.add_column("Updated")

    for note in notes:
        table.add_row(
            note.id,
            note.title,
            _preview(note.content),
            options.format_date(note.created_at),
            options.format_date(note.updated_at) if note.was_edited else "",
        )

    console.print(table)
