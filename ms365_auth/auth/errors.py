"""Error taxonomy for token storage and acquisition."""

from enum import Enum


class AuthError(Exception):
    """Base class for all auth broker errors."""


class StoreUnavailable(AuthError):
    """The OS credential store could not be used (locked, missing backend, denied)."""


class CacheCorrupted(AuthError):
    """The persisted token cache could not be deserialized."""


class NoValidToken(AuthError):
    """No usable token in memory and silent renewal was not possible."""

    def __init__(self, message: str = "No valid token found"):
        super().__init__(message)


class StorageClearFailed(AuthError):
    """Neither the credential store entry nor the fallback file could be cleared."""


class InteractiveFlowErrorKind(str, Enum):
    INVALID_CLIENT = "invalid_client"
    SCOPE_ERROR = "scope_error"
    NETWORK_ERROR = "network_error"
    UNCLASSIFIED = "unclassified"


class InteractiveFlowFailed(AuthError):
    """Device-code sign-in failed. Carries the provider's error fields unchanged."""

    def __init__(
        self,
        kind: InteractiveFlowErrorKind,
        error: str | None = None,
        description: str | None = None,
        suberror: str | None = None,
        correlation_id: str | None = None,
    ):
        self.kind = kind
        self.error = error
        self.description = description
        self.suberror = suberror
        self.correlation_id = correlation_id
        super().__init__(description or error or "Device code flow failed")


class ProfileCheckFailed(AuthError):
    """Profile request with the access token did not succeed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
