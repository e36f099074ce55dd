"""Login commands: device-code sign-in, login verification, logout."""

import typer

from ms365_auth.auth import AuthError, DeviceCodePrompt
from ms365_auth.config import ConfigurationError

from . import shared
from .shared import console, logger, safe_error, safe_log


def _show_device_code(prompt: DeviceCodePrompt) -> None:
    console.print("[bold]Microsoft login required[/bold]\n")
    console.print(prompt.message)
    console.print(
        f"\n[dim]Code expires in {prompt.expires_in_seconds // 60} minutes. "
        "After completing authentication in your browser, run the \"verify-login\" command.[/dim]\n"
    )


def _manager_or_exit(log):
    try:
        return shared.build_auth_manager()
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        log.error("config.invalid", error=str(e))
        safe_error("Startup error", e)
        raise typer.Exit(1) from e


def login() -> None:
    """Sign in with the device-code flow, then verify access to Microsoft Graph."""
    log = logger.bind(command="login")
    log.info("login.start")
    manager = _manager_or_exit(log)

    try:
        manager.acquire_token_by_device_code(_show_device_code)
    except AuthError as e:
        log.error("login.failed", error=str(e))
        safe_error("Login failed", e)
        raise typer.Exit(1) from e

    log.info("login.completed")
    result = manager.test_login()
    safe_log("Login result", result.model_dump())
    if not result.success:
        raise typer.Exit(1)


def verify_login() -> None:
    """Check that a cached token works against Microsoft Graph (/me)."""
    log = logger.bind(command="verify-login")
    log.info("verify_login.start")
    manager = _manager_or_exit(log)

    result = manager.test_login()
    safe_log("Verification result", result.model_dump())
    if result.success and result.user_data:
        console.print(
            f"[green]Signed in as {result.user_data.display_name} "
            f"({result.user_data.user_principal_name})[/green]"
        )
    else:
        console.print(f"[red]{result.message}[/red]")
        raise typer.Exit(1)


def logout() -> None:
    """Remove cached accounts and tokens from the keychain and fallback file."""
    log = logger.bind(command="logout")
    log.info("logout.start")
    manager = _manager_or_exit(log)

    try:
        manager.logout()
    except AuthError as e:
        log.error("logout.failed", error=str(e))
        safe_error("Logout failed", e)
        raise typer.Exit(1) from e

    safe_log("Logout result", {"message": "Logged out successfully"})
