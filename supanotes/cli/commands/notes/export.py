"""Export command for the supanotes CLI."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from supanotes.cli.utils import auth
from supanotes.services.notes.rendering import RenderOptions, render_page

app = typer.Typer(
    help="Export notes as an HTML page", context_settings={"allow_interspersed_args": True}
)
console = Console()


@app.callback(invoke_without_command=True)
def main(
    path: Path = typer.Argument(..., help="Where to write the HTML file"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Only matching notes"),
    title: str = typer.Option("My Notes", help="Page title"),
):
    """Write the notes grid to a standalone HTML file."""
    api = auth.get_app()
    auth.require_login(api)
    notes = api.search(search)

    document = render_page(notes, RenderOptions(page_title=title))
    try:
        path.write_text(document, encoding="utf-8")
    except OSError as exc:
        console.print(f"[bold red]Error:[/bold red] Could not write {path}: {exc}")
        raise typer.Exit(1) from exc

    console.print(f"Exported {len(notes)} notes to [bold]{path}[/bold]")
