"""Add command for the supanotes CLI."""

import typer
from rich.console import Console

from supanotes.cli.utils import auth
from supanotes.exceptions import NotesError

app = typer.Typer(help="Create a note")
console = Console()


@app.callback(invoke_without_command=True)
def main(
    title: str = typer.Argument(..., help="Note title"),
    content: str = typer.Argument(..., help="Note content"),
):
    """Create a note."""
    api = auth.get_app()
    auth.require_login(api)
    try:
        note = api.notes.create(api.context, title, content)
    except NotesError as exc:
        auth.fail(api, exc, "save note")

    console.print(f"[green]Created note[/green] [bold]{note.title}[/bold] ({note.id})")
