"""Core bdocore utilities.

This module exports the configuration and logging helpers used by the
filter and expression packages.
"""

from bdocore.core.config import Settings, get_settings
from bdocore.core.logging import (
    LoggingContext,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggingContext",
    "clear_context",
]
