"""Signup command for the supanotes CLI."""

from typing import Optional

import typer
from rich.console import Console

from supanotes.cli.utils import auth
from supanotes.exceptions import NotesError
from supanotes.services.notes import SignUpOutcome

app = typer.Typer(help="Create an account")
console = Console()


@app.callback(invoke_without_command=True)
def main(
    email: str = typer.Option(..., prompt="E-mail", help="Account e-mail"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Account password"
    ),
    redirect_to: Optional[str] = typer.Option(
        None, help="Where the verification link should send the browser"
    ),
):
    """Create an account."""
    api = auth.get_app()
    try:
        outcome = api.auth.sign_up(email, password, redirect_to=redirect_to)
    except NotesError as exc:
        auth.fail(api, exc, "create account")

    if outcome == SignUpOutcome.VERIFICATION_PENDING:
        console.print(
            "[yellow]Account created![/yellow] Please check your email to verify your "
            "account, then run [bold]supanotes auth verify <link>[/bold] or log in."
        )
        return
    console.print("[green]Account created and logged in successfully![/green]")
