"""CLI commands: one module per mode (login, troubleshoot)."""

from typer import Typer

from ms365_auth.cli import login_mode, troubleshoot_mode

app = Typer(help="Microsoft 365 credential broker")


def register_commands() -> None:
    """Register all CLI commands on the global app."""
    app.command()(login_mode.login)
    app.command(name="verify-login")(login_mode.verify_login)
    app.command()(login_mode.logout)
    app.command()(troubleshoot_mode.troubleshoot)


register_commands()
