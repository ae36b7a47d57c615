"""Delete command for the supanotes CLI."""

import typer
from rich.console import Console

from supanotes.cli.utils import auth
from supanotes.exceptions import NotesError

app = typer.Typer(help="Delete a note", context_settings={"allow_interspersed_args": True})
console = Console()


@app.callback(invoke_without_command=True)
def main(
    note_id: str = typer.Argument(..., help="ID of the note to delete"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Delete a note."""
    api = auth.get_app()
    auth.require_login(api)

    if not force and not typer.confirm("Are you sure you want to delete this note?"):
        console.print("Deletion cancelled.")
        return

    try:
        removed = api.notes.delete(api.context, note_id)
    except NotesError as exc:
        auth.fail(api, exc, "delete note")

    if removed:
        console.print(f"[green]Deleted note[/green] {note_id}")
    else:
        console.print(f"[yellow]Note {note_id} was already gone[/yellow]")
