"""E-mail verification command for the supanotes CLI."""

import typer
from rich.console import Console

from supanotes.cli.utils import auth
from supanotes.exceptions import NotesError

app = typer.Typer(help="Finish e-mail verification from the link you received")
console = Console()


@app.callback(invoke_without_command=True)
def main(
    link: str = typer.Argument(..., help="The full verification link (or redirect URL)"),
):
    """Verify an e-mail address and log in."""
    api = auth.get_app()
    try:
        principal = api.auth.handle_redirect(link)
    except NotesError as exc:
        auth.fail(api, exc, "verify email")

    if principal is None:
        console.print("[yellow]Warning:[/yellow] The link carries no verification token")
        raise typer.Exit(1)
    console.print(
        f"[green]Email verified successfully![/green] You are now logged in as "
        f"[bold]{principal.email or principal.id}[/bold]"
    )
