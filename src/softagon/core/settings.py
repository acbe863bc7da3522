"""Process-wide access to the Softagon settings.

    from softagon.core.settings import get_settings

    dsn = get_settings().database.dsn

Settings are read from the environment (and .env) on first access and then
reused. Tests that change the environment call clear_settings_cache().
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import ValidationError

from softagon.core.config import ConfigValidationError, Settings, validate_settings

logger = logging.getLogger(__name__)


def _describe_validation_error(error: ValidationError) -> str:
    lines = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "<settings>"
        lines.append(f"  - {field}: {item['msg']}")
    return "\n".join(lines)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load, validate and cache the settings.

    Raises:
        SystemExit: If the environment holds an invalid configuration.
    """
    try:
        settings = Settings()
        validate_settings(settings)
    except ValidationError as e:
        logger.critical("Invalid Softagon configuration:\n%s", _describe_validation_error(e))
        raise SystemExit(1) from e
    except ConfigValidationError as e:
        logger.critical("Invalid Softagon configuration: %s (field: %s)", e.message, e.field)
        raise SystemExit(1) from e

    logger.info("Settings loaded", extra=settings.get_startup_summary())
    return settings


def get_settings_safe() -> Settings | None:
    """Like get_settings(), but returns None instead of exiting."""
    try:
        return get_settings()
    except SystemExit:
        return None


def clear_settings_cache() -> None:
    """Forget the cached settings so the next call reloads them."""
    get_settings.cache_clear()
