"""Utility functions shared by the supanotes CLI commands."""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import typer
from rich.console import Console
from rich.panel import Panel

from supanotes import NotesApp, Settings
from supanotes.exceptions import AuthenticationFailed, NotesError, describe_error
from supanotes.services.notes import Principal
from supanotes.utils import (
    delete_password_in_keyring,
    get_password_from_keyring,
    password_exists_in_keyring,
    store_password_in_keyring,
)

console = Console()

# State storage
config_dir = os.path.expanduser(os.getenv("SUPANOTES_CONFIG_DIR", "~/.config/supanotes"))
session_path = os.path.join(config_dir, "session.json")
config_path = os.path.join(config_dir, "config.json")


class ConsoleProjector:
    """Prints errors reported by the notes session and remembers them."""

    def __init__(self) -> None:
        self.errors: List[Tuple[str, str]] = []

    def logged_in(self, principal: Principal) -> None:
        pass

    def logged_out(self) -> None:
        pass

    def notes_changed(self, notes) -> None:
        pass

    def error(self, scope: str, message: str) -> None:
        self.errors.append((scope, message))
        console.print(f"[bold red]Error:[/bold red] {message}")

    def reported(self, message: str) -> bool:
        return any(seen == message for _, seen in self.errors)


def load_config() -> Dict[str, Any]:
    """Load configuration from file."""
    try:
        if os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as f:
                return json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        console.print(f"[yellow]Warning:[/yellow] Could not load config file: {exc}")
    return {}


def save_config(config: Dict[str, Any]) -> None:
    """Save configuration to file."""
    try:
        Path(config_dir).mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        # Ensure file has restrictive permissions
        os.chmod(config_path, 0o600)
    except OSError as exc:
        console.print(f"[yellow]Warning:[/yellow] Could not save config file: {exc}")


def resolve_settings(url: Optional[str] = None, anon_key: Optional[str] = None) -> Settings:
    """Command line > config file > environment."""
    config = load_config()
    return (
        Settings.from_env()
        .merged(config)
        .merged({"url": url, "anon_key": anon_key, "session_path": session_path})
    )


def get_app(url: Optional[str] = None, anon_key: Optional[str] = None) -> NotesApp:
    """Build the notes session and restore any saved login."""
    settings = resolve_settings(url, anon_key)
    if not settings.is_configured:
        console.print("[bold red]Error:[/bold red] No project configured")
        console.print(
            Panel(
                "Set SUPANOTES_URL and SUPANOTES_ANON_KEY, or run\n"
                "  supanotes auth login --url <project url> --anon-key <key> --save-config",
                title="Configuration Required",
                border_style="red",
            )
        )
        raise typer.Exit(1)
    Path(config_dir).mkdir(parents=True, exist_ok=True)
    app = NotesApp(settings, listener=ConsoleProjector())
    app.start()
    return app


def projector(app: NotesApp) -> Optional[ConsoleProjector]:
    for listener in app.context.events.listeners:
        if isinstance(listener, ConsoleProjector):
            return listener
    return None


def fail(app: NotesApp, exc: NotesError, action: str) -> None:
    """Print ``exc`` unless the session already reported it, then exit 1."""
    message = describe_error(action, exc)
    seen = projector(app)
    if seen is None or not seen.reported(message):
        console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1) from exc


def require_login(app: NotesApp) -> Principal:
    principal = app.principal
    if principal is None:
        console.print("[yellow]Not logged in.[/yellow] Run [bold]supanotes auth login[/bold] first.")
        raise typer.Exit(1)
    return principal


def _get_email(provided_email: Optional[str] = None) -> str:
    """Determine the e-mail to log in with: argument > config file > prompt."""
    email = provided_email or load_config().get("email")
    if not email:
        email = typer.prompt("E-mail")
    return email


def _get_password(email: str, provided_password: Optional[str] = None) -> str:
    """Get password from provided value, keyring, or prompt."""
    if provided_password:
        return provided_password
    try:
        return get_password_from_keyring(email)
    except KeyError:
        return typer.prompt("Password", hide_input=True)


def _handle_failed_login(email: str, failure_count: int, max_retries: int, exc: Exception) -> None:
    """Handle failed login attempt."""
    # If stored password didn't work, delete it
    if password_exists_in_keyring(email):
        delete_password_in_keyring(email)

    if failure_count >= max_retries:
        console.print(
            Panel(
                "Please check your e-mail and password are correct.\n"
                "New accounts must confirm their e-mail address before logging in.",
                title="Authentication Help",
                border_style="red",
            )
        )
        raise typer.Exit(1) from exc
    console.print(
        f"[bold yellow]Warning:[/bold yellow] Login failed. Attempts remaining: {max_retries - failure_count}"
    )


def login(
    app: NotesApp,
    email: Optional[str] = None,
    password: Optional[str] = None,
    max_retries: int = 3,
) -> Principal:
    """Log in, re-prompting for the password on bad credentials."""
    resolved_email = _get_email(email)
    failure_count = 0
    while True:
        current_password = _get_password(resolved_email, password)
        try:
            principal = app.auth.sign_in(resolved_email, current_password)
        except AuthenticationFailed as exc:
            failure_count += 1
            password = None
            _handle_failed_login(resolved_email, failure_count, max_retries, exc)
            continue
        except NotesError as exc:
            fail(app, exc, "login")

        if current_password and not password_exists_in_keyring(resolved_email):
            if typer.confirm("Save password in keyring?", default=False):
                store_password_in_keyring(resolved_email, current_password)
        return principal


def remove_saved_credentials(email: Optional[str]) -> None:
    """Remove the saved session file and keyring password for ``email``."""
    if email and password_exists_in_keyring(email):
        delete_password_in_keyring(email)
    if os.path.exists(session_path):
        os.remove(session_path)
