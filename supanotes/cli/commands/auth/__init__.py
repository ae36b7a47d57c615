"""Authentication commands for the supanotes CLI."""

import typer

from . import login, logout, signup, status, verify

app = typer.Typer(help="Authentication commands")
app.add_typer(login.app, name="login")
app.add_typer(signup.app, name="signup")
app.add_typer(logout.app, name="logout")
app.add_typer(status.app, name="status")
app.add_typer(verify.app, name="verify")
