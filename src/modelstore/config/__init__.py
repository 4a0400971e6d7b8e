"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_float
from .errors import ConfigurationError
from .logging import configure_logging
from .settings import (
    DEFAULT_TICK_SECONDS,
    LOG_ERRORS_VAR,
    TICK_SECONDS_VAR,
    StoreSettings,
    get_store_settings,
)

__all__ = [
    "DEFAULT_TICK_SECONDS",
    "LOG_ERRORS_VAR",
    "TICK_SECONDS_VAR",
    "ConfigurationError",
    "StoreSettings",
    "configure_logging",
    "env_bool",
    "env_float",
    "get_store_settings",
]
