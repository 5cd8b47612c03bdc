"""Core utilities for the shop backend."""

from shopgate.app.core.config import Settings, settings
from shopgate.app.core.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
]
