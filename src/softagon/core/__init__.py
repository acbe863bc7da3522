"""Softagon Core module.

Shared components used across the package:
- Configuration management
"""

from softagon.core.config import (
    ConfigValidationError,
    CryptoSettings,
    DatabaseSettings,
    Environment,
    Settings,
)
from softagon.core.settings import (
    clear_settings_cache,
    get_settings,
    get_settings_safe,
)

__all__ = [
    "ConfigValidationError",
    "CryptoSettings",
    "DatabaseSettings",
    "Environment",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    "get_settings_safe",
]
