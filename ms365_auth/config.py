"""Configuration and settings."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator


class ConfigurationError(ValueError):
    """Raised when required identity-provider settings are missing."""


# Paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_PATH = PROJECT_ROOT / ".env"

load_dotenv(ENV_PATH)

# Logging
LOG_DIR = Path(os.getenv("LOG_DIR", str(PROJECT_ROOT / "logs")))
LOG_FILE = LOG_DIR / "auth.jsonl"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
VERBOSE_LOGGING = os.getenv("VERBOSE_LOGGING", "false").lower() == "true"
LOG_FORMAT = os.getenv("LOG_FORMAT", "console").lower()  # "console" | "json"

# Ensure log directory exists
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Identity provider (Microsoft Entra ID)
DEFAULT_AUTHORITY = "https://login.microsoftonline.com/common"
DEFAULT_SCOPES = (
    "User.Read",
    "Mail.Read",
    "Mail.Send",
    "Calendars.ReadWrite",
    "Files.Read",
)
# Minimal consent requested during device-code sign-in; silent renewal uses the full list.
DEFAULT_DEVICE_CODE_SCOPES = ("User.Read",)

# Token cache storage
KEYRING_SERVICE_NAME = os.getenv("MS365_KEYRING_SERVICE", "ms-365-mcp-server")
KEYRING_ACCOUNT_NAME = os.getenv("MS365_KEYRING_ACCOUNT", "msal-token-cache")
TOKEN_CACHE_PATH = Path(
    os.getenv("MS365_TOKEN_CACHE_PATH", str(PROJECT_ROOT / ".ms365-token-cache.json"))
)

# Entries owned by other tools sharing the OS credential store; reported, never deleted.
FOREIGN_KEYRING_ENTRIES = (("bqe-core-mcp", "bqe-core-token"),)

# Profile check (Microsoft Graph /me)
GRAPH_ME_URL = os.getenv("GRAPH_ME_URL", "https://graph.microsoft.com/v1.0/me")
GRAPH_TIMEOUT_SECONDS = float(os.getenv("GRAPH_TIMEOUT_SECONDS", "30"))


def _split_scopes(raw: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    """Parse a comma/space separated scope list, falling back to default when empty."""
    if not raw:
        return default
    scopes = tuple(s for s in raw.replace(",", " ").split() if s)
    return scopes or default


class AuthConfiguration(BaseModel):
    """Immutable identity-provider settings handed to the AuthManager at startup."""

    client_id: str
    authority: str = DEFAULT_AUTHORITY
    scopes: tuple[str, ...] = DEFAULT_SCOPES
    device_code_scopes: tuple[str, ...] = DEFAULT_DEVICE_CODE_SCOPES

    model_config = {"frozen": True}

    @field_validator("client_id")
    @classmethod
    def _client_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("client_id must not be empty")
        return value

    @field_validator("scopes", "device_code_scopes")
    @classmethod
    def _scopes_not_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one scope is required")
        return value


def load_auth_configuration(client_id: str | None = None) -> AuthConfiguration:
    """Build the AuthConfiguration from the environment (.env already loaded).

    Raises ConfigurationError when no client id is available.
    """
    effective_client_id = (client_id or os.getenv("MS365_CLIENT_ID") or "").strip()
    if not effective_client_id:
        raise ConfigurationError("MS365_CLIENT_ID environment variable is not set")
    return AuthConfiguration(
        client_id=effective_client_id,
        authority=os.getenv("MS365_AUTHORITY") or DEFAULT_AUTHORITY,
        scopes=_split_scopes(os.getenv("MS365_SCOPES"), DEFAULT_SCOPES),
        device_code_scopes=_split_scopes(
            os.getenv("MS365_DEVICE_CODE_SCOPES"), DEFAULT_DEVICE_CODE_SCOPES
        ),
    )
