"""Utility modules."""

from ms365_auth.utils.logger import bind_context, clear_context, configure_logging, get_logger, mask_secret

__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "mask_secret",
]
