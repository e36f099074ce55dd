"""Troubleshoot: print diagnostics and clear all cached tokens."""

import os

from ms365_auth.auth import troubleshoot_login
from ms365_auth.config import DEFAULT_AUTHORITY

from .shared import console, logger, safe_log


def troubleshoot() -> None:
    """Report auth configuration and storage state, deleting cached tokens (irreversible)."""
    log = logger.bind(command="troubleshoot")
    report = troubleshoot_login(
        client_id=os.getenv("MS365_CLIENT_ID"),
        authority=os.getenv("MS365_AUTHORITY") or DEFAULT_AUTHORITY,
    )

    for line in report.lines:
        style = "yellow" if "interfere" in line or "failed" in line.lower() else "dim"
        console.print(f"[{style}]{line}[/{style}]")

    safe_log("Troubleshooting completed", {"message": report.message})
    log.info("troubleshoot.reported", interfering=len(report.interfering_entries))
