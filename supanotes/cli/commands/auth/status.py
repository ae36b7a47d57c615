"""Status command for the supanotes CLI."""

import typer
from rich.console import Console

from supanotes.cli.utils import auth

app = typer.Typer(help="Check authentication status")
console = Console()


@app.callback(invoke_without_command=True)
def main():
    """Check authentication status."""
    api = auth.get_app()
    principal = api.principal
    if principal is None:
        console.print("[yellow]Not logged in[/yellow]")
        return
    console.print(f"[green]Logged in as:[/green] [bold]{principal.email or principal.id}[/bold]")
    console.print(f"{len(api.context.notes)} notes")
