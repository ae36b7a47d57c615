"""Notes commands for the supanotes CLI."""

import typer

from . import add, delete, edit, export, list_notes

app = typer.Typer(help="Notes commands")
app.add_typer(list_notes.app, name="list")
app.add_typer(add.app, name="add")
app.add_typer(edit.app, name="edit")
app.add_typer(delete.app, name="delete")
app.add_typer(export.app, name="export")
