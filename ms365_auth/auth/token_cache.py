"""Token cache persistence: keychain first, plaintext file as fallback.

The serialized MSAL cache is treated as one opaque string. It is never parsed
or merged here; whichever tier answers first wins.
"""

from dataclasses import dataclass

from ms365_auth.auth.credential_store import FallbackFileStore, KeyringStore
from ms365_auth.auth.errors import StorageClearFailed, StoreUnavailable
from ms365_auth.config import KEYRING_ACCOUNT_NAME, KEYRING_SERVICE_NAME, TOKEN_CACHE_PATH
from ms365_auth.utils.logger import get_logger

logger = get_logger("ms365_auth.auth.token_cache")


@dataclass
class ClearOutcome:
    """Per-tier result of clearing persisted auth state."""

    keyring_cleared: bool
    file_cleared: bool
    keyring_error: str | None = None
    file_error: str | None = None


class TokenCachePersistence:
    """Load/save/clear the serialized token cache across both storage tiers."""

    def __init__(
        self,
        secure_store: KeyringStore | None = None,
        fallback_store: FallbackFileStore | None = None,
    ):
        self.secure_store = secure_store or KeyringStore(KEYRING_SERVICE_NAME, KEYRING_ACCOUNT_NAME)
        self.fallback_store = fallback_store or FallbackFileStore(TOKEN_CACHE_PATH)

    def load(self) -> str | None:
        """Return the cached blob from the keychain, else the fallback file, else None.

        OS errors reading the fallback file propagate; the manager treats them
        like a corrupted cache.
        """
        try:
            blob = self.secure_store.read()
        except StoreUnavailable as e:
            logger.warning("token_cache.keyring_read_failed", error=str(e))
            blob = None
        if blob:
            logger.info("token_cache.load", source=self.secure_store.name)
            return blob

        blob = self.fallback_store.read()
        if blob:
            logger.info("token_cache.load", source=self.fallback_store.name, path=str(self.fallback_store.path))
            return blob

        logger.info("token_cache.load_empty")
        return None

    def save(self, blob: str) -> str:
        """Persist the blob and return the tier that holds it ("keyring" or "file")."""
        try:
            self.secure_store.write(blob)
        except StoreUnavailable as e:
            logger.warning("token_cache.keyring_save_failed", error=str(e), fallback=str(self.fallback_store.path))
            self.fallback_store.write(blob)
            logger.info("token_cache.save", target=self.fallback_store.name)
            return self.fallback_store.name

        # Keychain now holds the only authoritative copy
        try:
            if self.fallback_store.delete():
                logger.info("token_cache.stale_fallback_removed", path=str(self.fallback_store.path))
        except OSError as e:
            logger.warning("token_cache.stale_fallback_remove_failed", error=str(e))
        logger.info("token_cache.save", target=self.secure_store.name)
        return self.secure_store.name

    def clear(self) -> ClearOutcome:
        """Delete both tiers. Raises StorageClearFailed only if neither could be cleared."""
        outcome = ClearOutcome(keyring_cleared=False, file_cleared=False)

        try:
            removed = self.secure_store.delete()
            outcome.keyring_cleared = True
            if removed:
                logger.info("token_cache.keyring_cleared")
        except StoreUnavailable as e:
            outcome.keyring_error = str(e)
            logger.warning("token_cache.keyring_clear_failed", error=str(e))

        try:
            removed = self.fallback_store.delete()
            outcome.file_cleared = True
            if removed:
                logger.info("token_cache.file_cleared", path=str(self.fallback_store.path))
        except OSError as e:
            outcome.file_error = str(e)
            logger.warning("token_cache.file_clear_failed", path=str(self.fallback_store.path), error=str(e))

        if not outcome.keyring_cleared and not outcome.file_cleared:
            raise StorageClearFailed(
                f"Could not clear token cache: keychain ({outcome.keyring_error}); "
                f"file ({outcome.file_error})"
            )
        return outcome
