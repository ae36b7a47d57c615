"""Login command for the supanotes CLI."""

from typing import Optional

import typer
from rich.console import Console

from supanotes.cli.utils import auth

app = typer.Typer(help="Log in with e-mail and password")
console = Console()


@app.callback(invoke_without_command=True)
def main(
    email: Optional[str] = typer.Option(None, help="Account e-mail"),
    password: Optional[str] = typer.Option(None, help="Account password"),
    url: Optional[str] = typer.Option(None, help="Project URL"),
    anon_key: Optional[str] = typer.Option(None, help="Project anon (public) key"),
    save_config: bool = typer.Option(
        False, help="Save e-mail and project settings to the config file"
    ),
):
    """Log in."""
    api = auth.get_app(url, anon_key)
    principal = auth.login(api, email, password)

    if save_config:
        config = auth.load_config()
        config["email"] = principal.email or email
        if url:
            config["url"] = url
        if anon_key:
            config["anon_key"] = anon_key
        auth.save_config(config)

    console.print(
        f"Successfully logged in as [bold]{principal.email or principal.id}[/bold] "
        f"({len(api.context.notes)} notes)"
    )
