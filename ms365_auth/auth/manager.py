"""Token lifecycle for delegated Microsoft 365 access.

AuthManager owns the in-memory access token, the MSAL token cache and its
persistence. Silent renewal is attempted from the cached account; the
interactive device-code flow is a separate, explicit operation because it
needs a human to finish sign-in in a browser.
"""

import json
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import httpx
import msal
from pydantic import BaseModel

from ms365_auth.auth.errors import (
    AuthError,
    CacheCorrupted,
    InteractiveFlowErrorKind,
    InteractiveFlowFailed,
    NoValidToken,
    ProfileCheckFailed,
)
from ms365_auth.auth.token_cache import TokenCachePersistence
from ms365_auth.config import GRAPH_ME_URL, GRAPH_TIMEOUT_SECONDS, AuthConfiguration
from ms365_auth.utils.logger import get_logger, mask_secret

logger = get_logger("ms365_auth.auth.manager")

_NETWORK_ERROR_NAMES = (
    "ConnectionError",
    "ConnectTimeout",
    "ReadTimeout",
    "Timeout",
    "TimeoutError",
    "ConnectionResetError",
    "ProxyError",
    "SSLError",
)

_FLOW_HINTS = {
    InteractiveFlowErrorKind.INVALID_CLIENT: "Invalid client ID - check your Azure AD app registration",
    InteractiveFlowErrorKind.SCOPE_ERROR: "Scope issue detected - the app might not have the requested permissions",
    InteractiveFlowErrorKind.NETWORK_ERROR: "Network error detected - check your internet connection and firewall",
}


class AuthState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CACHE_LOADED = "cache_loaded"
    VALID = "valid"
    EXPIRED = "expired"
    SILENT_REFRESH_FAILED = "silent_refresh_failed"
    INTERACTIVE_FLOW_PENDING = "interactive_flow_pending"
    LOGGED_OUT = "logged_out"


@dataclass(frozen=True)
class TokenRecord:
    access_token: str
    expires_on: float  # epoch seconds

    def is_valid(self, now: float) -> bool:
        return self.expires_on > now


class DeviceCodePrompt(BaseModel):
    """What the user needs to finish device-code sign-in."""

    verification_url: str
    user_code: str
    message: str
    expires_in_seconds: int


class UserData(BaseModel):
    display_name: str | None = None
    user_principal_name: str | None = None


class LoginResult(BaseModel):
    success: bool
    message: str
    user_data: UserData | None = None


def _is_network_error(e: BaseException) -> bool:
    """True for transport failures (requests/httpx/socket), which all derive from OSError or share these names."""
    if isinstance(e, OSError):
        return True
    return type(e).__name__ in _NETWORK_ERROR_NAMES


def classify_device_code_error(
    error: str | None,
    description: str | None,
    exc: BaseException | None = None,
) -> InteractiveFlowErrorKind:
    """Map a device-code failure to a diagnostic kind. Checked in order: client, scope, network."""
    if error == "invalid_client":
        return InteractiveFlowErrorKind.INVALID_CLIENT
    if description and "scope" in description.lower():
        return InteractiveFlowErrorKind.SCOPE_ERROR
    if error == "network_error" or (exc is not None and _is_network_error(exc)):
        return InteractiveFlowErrorKind.NETWORK_ERROR
    return InteractiveFlowErrorKind.UNCLASSIFIED


def _decode_cache(blob: str) -> None:
    """Raise CacheCorrupted unless blob has MSAL's cache shape.

    The top level maps credential types to sections; every section maps
    entry keys to entry objects.
    """
    try:
        data = json.loads(blob)
    except ValueError as e:
        raise CacheCorrupted(f"Token cache is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise CacheCorrupted(f"Token cache has unexpected type {type(data).__name__}")
    for section_name, section in data.items():
        if not isinstance(section, dict):
            raise CacheCorrupted(
                f"Token cache section {section_name!r} has unexpected type {type(section).__name__}"
            )
        for key, entry in section.items():
            if not isinstance(entry, dict):
                raise CacheCorrupted(f"Token cache entry {key!r} in {section_name!r} is not an object")


class AuthManager:
    """Acquires, caches, refreshes and revokes tokens for one client registration."""

    def __init__(
        self,
        config: AuthConfiguration,
        persistence: TokenCachePersistence | None = None,
        app: Any = None,
        http_client: httpx.Client | None = None,
        clock: Callable[[], float] = time.time,
    ):
        logger.info(
            "auth_manager.init",
            client_id=mask_secret(config.client_id),
            authority=config.authority,
            scopes=list(config.scopes),
        )
        self.config = config
        self.persistence = persistence or TokenCachePersistence()
        self._app = app
        # An injected app brings its own cache; otherwise the app is built lazily around ours.
        self._cache = app.token_cache if app is not None else msal.SerializableTokenCache()
        self._http_client = http_client
        self._clock = clock
        self._token: TokenRecord | None = None
        self.state = AuthState.UNINITIALIZED

    @property
    def token_record(self) -> TokenRecord | None:
        return self._token

    def _get_app(self) -> Any:
        if self._app is None:
            self._app = msal.PublicClientApplication(
                client_id=self.config.client_id,
                authority=self.config.authority,
                token_cache=self._cache,
            )
        return self._app

    def _reset_cache(self) -> None:
        """Empty the in-memory MSAL cache in place (the app keeps its reference)."""
        self._cache.deserialize("{}")

    def load_token_cache(self) -> None:
        """Populate the MSAL cache from persisted state.

        A cache that cannot be read or parsed is deleted from both tiers and
        the manager continues as if nothing had been stored.
        """
        try:
            blob = self.persistence.load()
            if not blob:
                logger.info("auth_manager.cache_empty")
                return
            _decode_cache(blob)
            self._cache.deserialize(blob)
        except (CacheCorrupted, OSError, ValueError) as e:
            logger.error("auth_manager.cache_load_failed", error=str(e))
            self._discard_corrupted_cache()
            return

        self.state = AuthState.CACHE_LOADED
        logger.info("auth_manager.cache_loaded")

    def _discard_corrupted_cache(self) -> None:
        self._reset_cache()
        self._token = None
        try:
            self.persistence.clear()
            logger.info("auth_manager.corrupted_cache_cleared")
        except AuthError as e:
            logger.warning("auth_manager.corrupted_cache_clear_failed", error=str(e))
        self.state = AuthState.UNINITIALIZED

    def _save_token_cache(self) -> None:
        try:
            self.persistence.save(self._cache.serialize())
        except OSError as e:
            logger.error("auth_manager.cache_save_failed", error=str(e))

    def _store_result(self, result: dict) -> str:
        expires_in = int(result.get("expires_in", 0))
        self._token = TokenRecord(
            access_token=result["access_token"],
            expires_on=self._clock() + expires_in,
        )
        self.state = AuthState.VALID
        return self._token.access_token

    def get_token(self, force_refresh: bool = False) -> str:
        """Return a valid access token, renewing silently from the cached account if needed.

        Raises NoValidToken when there is no account or silent renewal fails;
        the caller decides whether to start the device-code flow.
        """
        if self._token is not None and self._token.is_valid(self._clock()) and not force_refresh:
            return self._token.access_token
        if self._token is not None:
            self.state = AuthState.EXPIRED

        try:
            app = self._get_app()
            accounts = app.get_accounts()
        except Exception as e:
            logger.error("auth_manager.accounts_unavailable", error=str(e))
            raise NoValidToken() from e

        if not accounts:
            logger.info("auth_manager.no_accounts")
            raise NoValidToken()

        account = accounts[0]
        log = logger.bind(account=account.get("username"))
        try:
            result = app.acquire_token_silent(list(self.config.scopes), account=account)
        except Exception as e:
            log.info("auth_manager.silent_failed", error=str(e))
            self.state = AuthState.SILENT_REFRESH_FAILED
            raise NoValidToken() from e

        if not result or "access_token" not in result:
            log.info(
                "auth_manager.silent_failed",
                error=(result or {}).get("error"),
                description=(result or {}).get("error_description"),
            )
            self.state = AuthState.SILENT_REFRESH_FAILED
            raise NoValidToken()

        token = self._store_result(result)
        if self._cache.has_state_changed:
            self._save_token_cache()
        log.info("auth_manager.silent_ok", expires_on=self._token.expires_on)
        return token

    def acquire_token_by_device_code(
        self,
        on_code_issued: Callable[[DeviceCodePrompt], None] | None = None,
    ) -> str:
        """Sign in interactively with the device-code flow.

        Existing tokens are cleared first. ``on_code_issued`` receives the
        prompt exactly once, then this call blocks until the user finishes
        (or the code expires). Raises InteractiveFlowFailed on failure.
        """
        try:
            self.logout()
            logger.info("auth_manager.pre_login_cleanup")
        except AuthError as e:
            logger.warning("auth_manager.pre_login_cleanup_failed", error=str(e))

        scopes = list(self.config.device_code_scopes)
        logger.info(
            "auth_manager.device_code_start",
            client_id=mask_secret(self.config.client_id),
            authority=self.config.authority,
            scopes=scopes,
            configured_scopes=list(self.config.scopes),
        )
        self.state = AuthState.INTERACTIVE_FLOW_PENDING

        try:
            app = self._get_app()
            flow = app.initiate_device_flow(scopes=scopes)
            if "user_code" not in flow:
                self._fail_device_flow(flow)

            prompt = DeviceCodePrompt(
                verification_url=flow.get("verification_uri") or flow.get("verification_url", ""),
                user_code=flow["user_code"],
                message=flow.get("message", ""),
                expires_in_seconds=int(flow.get("expires_in", 0)),
            )
            logger.info(
                "auth_manager.device_code_issued",
                verification_url=prompt.verification_url,
                expires_in=prompt.expires_in_seconds,
            )
            if on_code_issued is not None:
                on_code_issued(prompt)
            else:
                print(prompt.message, file=sys.stderr)

            result = app.acquire_token_by_device_flow(flow)
            if "access_token" not in result:
                self._fail_device_flow(result)
        except AuthError:
            self.state = AuthState.LOGGED_OUT
            raise
        except Exception as e:
            self.state = AuthState.LOGGED_OUT
            kind = classify_device_code_error(None, str(e), e)
            logger.error("auth_manager.device_code_error", error=str(e), kind=kind.value)
            self._log_hint(kind)
            raise InteractiveFlowFailed(kind, description=str(e)) from e

        token = self._store_result(result)
        logger.info("auth_manager.device_code_ok", expires_on=self._token.expires_on)
        self._save_token_cache()
        return token

    def _fail_device_flow(self, result: dict) -> None:
        error = result.get("error")
        description = result.get("error_description")
        kind = classify_device_code_error(error, description)
        logger.error(
            "auth_manager.device_code_error",
            error_code=error,
            error_message=description,
            sub_error=result.get("suberror") or "none",
            correlation_id=result.get("correlation_id") or "none",
            kind=kind.value,
        )
        self._log_hint(kind)
        raise InteractiveFlowFailed(
            kind,
            error=error,
            description=description,
            suberror=result.get("suberror"),
            correlation_id=result.get("correlation_id"),
        )

    @staticmethod
    def _log_hint(kind: InteractiveFlowErrorKind) -> None:
        hint = _FLOW_HINTS.get(kind)
        if hint:
            logger.error("auth_manager.device_code_hint", hint=hint)

    def _fetch_profile(self, token: str) -> dict:
        headers = {"Authorization": f"Bearer {token}"}
        try:
            if self._http_client is not None:
                response = self._http_client.get(GRAPH_ME_URL, headers=headers)
            else:
                with httpx.Client(timeout=GRAPH_TIMEOUT_SECONDS) as client:
                    response = client.get(GRAPH_ME_URL, headers=headers)
        except httpx.HTTPError as e:
            raise ProfileCheckFailed(str(e)) from e

        if not response.is_success:
            logger.error("auth_manager.profile_failed", status=response.status_code, body=response.text)
            raise ProfileCheckFailed(str(response.status_code), status_code=response.status_code)
        try:
            user = response.json()
        except ValueError as e:
            raise ProfileCheckFailed(f"invalid profile response: {e}", status_code=response.status_code) from e
        if not isinstance(user, dict):
            raise ProfileCheckFailed(
                f"invalid profile response: expected object, got {type(user).__name__}",
                status_code=response.status_code,
            )
        return user

    def test_login(self) -> LoginResult:
        """Check that a token is available and accepted by the profile endpoint. Never raises."""
        logger.info("auth_manager.test_login")
        try:
            token = self.get_token()
        except AuthError as e:
            logger.error("auth_manager.test_login_failed", error=str(e))
            return LoginResult(success=False, message=f"Login failed: {e}")

        try:
            user = self._fetch_profile(token)
        except ProfileCheckFailed as e:
            logger.error("auth_manager.profile_check_failed", error=str(e), status=e.status_code)
            return LoginResult(
                success=False,
                message=f"Login successful but Graph API access failed: {e}",
            )

        logger.info("auth_manager.profile_ok")
        return LoginResult(
            success=True,
            message="Login successful",
            user_data=UserData(
                display_name=user.get("displayName"),
                user_principal_name=user.get("userPrincipalName"),
            ),
        )

    def logout(self) -> bool:
        """Remove every cached account, the in-memory token and both storage tiers.

        Storage tiers are cleared best-effort; StorageClearFailed is raised
        only when neither tier could be cleared.
        """
        # Local cache only; building the app would trigger authority discovery over the network
        self._reset_cache()
        self._token = None
        self.state = AuthState.LOGGED_OUT

        self.persistence.clear()
        logger.info("auth_manager.logout")
        return True
