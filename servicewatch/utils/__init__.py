"""
ServiceWatch - Utilities

Configuration and logging helpers.
"""

from servicewatch.utils.config import (
    Config,
    GatewayConfig,
    OperationalConfig,
    SessionConfig,
    DEFAULT_WINDOW_DAYS
)
from servicewatch.utils.logging_config import setup_logging

__all__ = [
    "Config",
    "GatewayConfig",
    "OperationalConfig",
    "SessionConfig",
    "DEFAULT_WINDOW_DAYS",
    "setup_logging"
]
