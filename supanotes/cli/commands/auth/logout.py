"""Logout command for the supanotes CLI."""

import os

import typer
from rich.console import Console

from supanotes.cli.utils import auth
from supanotes.exceptions import NotesError

app = typer.Typer(help="Log out")
console = Console()


@app.callback(invoke_without_command=True)
def main(
    remove_all: bool = typer.Option(
        False, help="Also remove the saved password and configuration file"
    ),
):
    """End the session and remove saved credentials."""
    api = auth.get_app()
    email = api.principal.email if api.principal else auth.load_config().get("email")
    try:
        if api.principal is not None:
            api.auth.sign_out()
    except NotesError:
        console.print("[yellow]Warning:[/yellow] Could not revoke the session remotely")

    try:
        if remove_all:
            auth.remove_saved_credentials(email)
            if os.path.exists(auth.config_path):
                os.remove(auth.config_path)
            console.print("Removed all configuration files")
        else:
            auth.remove_saved_credentials(None)
    except OSError as exc:
        console.print(
            f"[bold red]Error:[/bold red] Could not completely remove session data: {exc}"
        )
        raise typer.Exit(1) from exc

    console.print("[green]Logged out successfully[/green]")
