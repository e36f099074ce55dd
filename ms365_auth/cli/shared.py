"""Shared CLI helpers: console, logger, JSON status lines, AuthManager construction."""

import json
import sys
from typing import Any

from rich.console import Console

from ms365_auth.auth import AuthManager
from ms365_auth.config import load_auth_configuration
from ms365_auth.utils.logger import get_logger

# stdout belongs to the MCP host; everything human-facing goes to stderr
console = Console(stderr=True)
logger = get_logger("ms365_auth.cli")


def safe_log(message: str, data: Any = None) -> None:
    """Write one JSON status line to stderr."""
    payload = {"type": "log", "message": message}
    if data is not None:
        payload["data"] = json.dumps(data, default=str) if isinstance(data, (dict, list)) else str(data)
    sys.stderr.write(json.dumps(payload) + "\n")


def safe_error(message: str, error: BaseException | str | None = None) -> None:
    """Write one JSON error line to stderr."""
    payload = {"type": "error", "message": message}
    if error is not None:
        payload["error"] = str(error)
    sys.stderr.write(json.dumps(payload) + "\n")


def build_auth_manager() -> AuthManager:
    """Create the AuthManager from the environment and load the persisted token cache."""
    manager = AuthManager(load_auth_configuration())
    manager.load_token_cache()
    return manager
