"""Edit command for the supanotes CLI."""

from typing import Optional

import typer
from rich.console import Console

from supanotes.cli.utils import auth
from supanotes.exceptions import NotesError

app = typer.Typer(help="Edit a note", context_settings={"allow_interspersed_args": True})
console = Console()


@app.callback(invoke_without_command=True)
def main(
    note_id: str = typer.Argument(..., help="ID of the note to edit"),
    title: Optional[str] = typer.Option(None, help="New title"),
    content: Optional[str] = typer.Option(None, help="New content"),
):
    """Change the title and/or content of a note."""
    api = auth.get_app()
    auth.require_login(api)

    existing = api.notes.begin_edit(api.context, note_id)
    if existing is None:
        console.print(f"[bold red]Error:[/bold red] Note {note_id} not found")
        raise typer.Exit(1)

    try:
        note = api.notes.save(
            api.context,
            existing.title if title is None else title,
            existing.content if content is None else content,
        )
    except NotesError as exc:
        api.notes.cancel_edit(api.context)
        auth.fail(api, exc, "save note")

    console.print(f"[green]Updated note[/green] [bold]{note.title}[/bold] ({note.id})")
