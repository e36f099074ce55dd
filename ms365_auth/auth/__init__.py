"""Authentication, token lifecycle and token cache persistence for delegated Microsoft 365 access."""

from ms365_auth.auth.credential_store import FallbackFileStore, KeyringStore
from ms365_auth.auth.errors import (
    AuthError,
    CacheCorrupted,
    InteractiveFlowErrorKind,
    InteractiveFlowFailed,
    NoValidToken,
    ProfileCheckFailed,
    StorageClearFailed,
    StoreUnavailable,
)
from ms365_auth.auth.manager import (
    AuthManager,
    AuthState,
    DeviceCodePrompt,
    LoginResult,
    TokenRecord,
)
from ms365_auth.auth.token_cache import TokenCachePersistence
from ms365_auth.auth.credential import BrokerCredential
from ms365_auth.auth.diagnostics import DiagnosticReport, troubleshoot_login

__all__ = [
    "AuthError",
    "AuthManager",
    "AuthState",
    "BrokerCredential",
    "CacheCorrupted",
    "DeviceCodePrompt",
    "DiagnosticReport",
    "FallbackFileStore",
    "InteractiveFlowErrorKind",
    "InteractiveFlowFailed",
    "KeyringStore",
    "LoginResult",
    "NoValidToken",
    "ProfileCheckFailed",
    "StorageClearFailed",
    "StoreUnavailable",
    "TokenCachePersistence",
    "TokenRecord",
    "troubleshoot_login",
]
