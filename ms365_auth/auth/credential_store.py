"""Storage backends for the serialized token cache.

Two tiers: the OS credential store (through ``keyring``) and a plaintext
fallback file. The fallback file is not encrypted; it exists for hosts
without a usable keychain (headless servers, containers, CI).
"""

from pathlib import Path
from typing import Any

import keyring
from keyring.errors import PasswordDeleteError

from ms365_auth.auth.errors import StoreUnavailable


class KeyringStore:
    """Single (service, account) entry in the OS credential store.

    Every backend failure is raised as StoreUnavailable so callers can
    degrade to the fallback file.
    """

    name = "keyring"

    def __init__(self, service_name: str, account_name: str, backend: Any = None):
        self.service_name = service_name
        self.account_name = account_name
        # Any object with get_password/set_password/delete_password; defaults to the keyring module.
        self._backend = backend if backend is not None else keyring

    def read(self) -> str | None:
        try:
            value = self._backend.get_password(self.service_name, self.account_name)
        except Exception as e:
            raise StoreUnavailable(f"Keychain read failed: {e}") from e
        return value or None

    def write(self, blob: str) -> None:
        try:
            self._backend.set_password(self.service_name, self.account_name, blob)
        except Exception as e:
            raise StoreUnavailable(f"Keychain write failed: {e}") from e

    def delete(self) -> bool:
        """Delete the entry. Returns False when there was nothing to delete."""
        try:
            self._backend.delete_password(self.service_name, self.account_name)
        except PasswordDeleteError:
            return False
        except Exception as e:
            raise StoreUnavailable(f"Keychain deletion failed: {e}") from e
        return True


class FallbackFileStore:
    """Raw serialized cache kept in a file at a fixed path."""

    name = "file"

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> str | None:
        if not self.path.exists():
            return None
        data = self.path.read_text(encoding="utf-8")
        return data or None

    def write(self, blob: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(blob, encoding="utf-8")

    def delete(self) -> bool:
        """Remove the file. Returns False when it did not exist."""
        if not self.path.exists():
            return False
        self.path.unlink()
        return True
