"""
Logging helpers for webpush_ece.

The library never configures handlers beyond a NullHandler on the package
logger. Applications opt in with ``logging.getLogger("webpush_ece")``.
Log lines are ``key=value`` formatted and never include key material.
"""

import logging

__all__ = ["get_logger"]

_PACKAGE_LOGGER = "webpush_ece"

logging.getLogger(_PACKAGE_LOGGER).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the package logger."""
    if name != _PACKAGE_LOGGER and not name.startswith(_PACKAGE_LOGGER + "."):
        name = f"{_PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
