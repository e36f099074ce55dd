"""Troubleshooting: report and reset all persisted auth state.

Invoking troubleshoot_login() is destructive. The fallback file and this
tool's keychain entry are deleted as part of the inspection. Entries owned
by other tools are only reported.
"""

from pathlib import Path

from pydantic import BaseModel, Field

from ms365_auth.auth.credential_store import FallbackFileStore, KeyringStore
from ms365_auth.auth.errors import StoreUnavailable
from ms365_auth.config import (
    DEFAULT_AUTHORITY,
    ENV_PATH,
    FOREIGN_KEYRING_ENTRIES,
    KEYRING_ACCOUNT_NAME,
    KEYRING_SERVICE_NAME,
    TOKEN_CACHE_PATH,
)
from ms365_auth.utils.logger import get_logger

logger = get_logger("ms365_auth.auth.diagnostics")


class DiagnosticReport(BaseModel):
    """Outcome of a troubleshooting run; `lines` is the human-readable transcript."""

    env_file_path: str
    env_file_found: bool
    client_id: str
    authority: str
    fallback_file_found: bool = False
    fallback_file_removed: bool = False
    store_entry_found: bool = False
    store_entry_removed: bool = False
    store_available: bool = True
    interfering_entries: list[str] = Field(default_factory=list)
    lines: list[str] = Field(default_factory=list)
    message: str = "Troubleshooting completed and tokens cleared"


def troubleshoot_login(
    client_id: str | None,
    env_path: str | Path = ENV_PATH,
    authority: str = DEFAULT_AUTHORITY,
    secure_store: KeyringStore | None = None,
    fallback_store: FallbackFileStore | None = None,
    foreign_stores: list[KeyringStore] | None = None,
) -> DiagnosticReport:
    """Inspect configuration and storage, deleting this tool's cached tokens."""
    env_path = Path(env_path)
    secure_store = secure_store or KeyringStore(KEYRING_SERVICE_NAME, KEYRING_ACCOUNT_NAME)
    fallback_store = fallback_store or FallbackFileStore(TOKEN_CACHE_PATH)
    if foreign_stores is None:
        foreign_stores = [KeyringStore(service, account) for service, account in FOREIGN_KEYRING_ENTRIES]

    report = DiagnosticReport(
        env_file_path=str(env_path),
        env_file_found=env_path.exists(),
        client_id=client_id or "NOT SET",
        authority=authority,
    )
    log = logger.bind(command="troubleshoot")
    log.info("troubleshoot.start")

    def note(line: str) -> None:
        report.lines.append(line)

    if report.env_file_found:
        note(f"Found .env file at {env_path}")
        log.info("troubleshoot.env_found", path=str(env_path))
    else:
        note(f"No .env file found at {env_path}")
        log.error("troubleshoot.env_missing", path=str(env_path))

    if client_id:
        note(f"MS365_CLIENT_ID is set to: {client_id}")
        log.info("troubleshoot.client_id", client_id=client_id)
    else:
        note("MS365_CLIENT_ID environment variable is not set")
        log.error("troubleshoot.client_id_missing")

    report.fallback_file_found = fallback_store.exists()
    if report.fallback_file_found:
        note(f"Token cache file exists at {fallback_store.path}")
        try:
            report.fallback_file_removed = fallback_store.delete()
            note("Removed token cache file")
            log.info("troubleshoot.file_removed", path=str(fallback_store.path))
        except OSError as e:
            note(f"Failed to remove token cache file: {e}")
            log.error("troubleshoot.file_remove_failed", error=str(e))
    else:
        note("No token cache file found")

    try:
        report.store_entry_found = secure_store.read() is not None
        if report.store_entry_found:
            note("Token found in system keychain")
            try:
                report.store_entry_removed = secure_store.delete()
                note("Removed token from keychain")
                log.info("troubleshoot.keyring_removed")
            except StoreUnavailable as e:
                note(f"Failed to remove token from keychain: {e}")
                log.error("troubleshoot.keyring_remove_failed", error=str(e))
        else:
            note("No token found in system keychain")
    except StoreUnavailable as e:
        report.store_available = False
        note(f"Keychain access failed: {e}")
        log.warning("troubleshoot.keyring_unavailable", error=str(e))

    for store in foreign_stores:
        label = f"{store.service_name}/{store.account_name}"
        try:
            if store.read() is not None:
                report.interfering_entries.append(label)
                note(f"Credential {label} found in system keychain - this might interfere with MS365 login")
                log.warning("troubleshoot.foreign_entry", entry=label)
            else:
                note(f"No {label} credential found in system keychain")
        except StoreUnavailable as e:
            note(f"Keychain check for {label} failed: {e}")
            log.warning("troubleshoot.foreign_check_failed", entry=label, error=str(e))

    note(f"MSAL configuration: client_id={report.client_id} authority={authority}")
    log.info("troubleshoot.done", interfering=report.interfering_entries)
    return report
