"""Logging configuration and the logger handed out by the service container."""

from __future__ import annotations

import logging
import logging.config
from typing import Any

from .config import LoggingSettings

APP_LOGGER = "zap_assistant"

# HTTP client internals log every request at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore")

_FORMATS: dict[bool, dict[str, Any]] = {
    True: {"format": "{asctime} level={levelname} logger={name} {message}", "style": "{"},
    False: {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
}


def build_logging_config(settings: LoggingSettings) -> dict[str, Any]:
    """Return the ``dictConfig`` mapping for ``settings``."""
    loggers: dict[str, Any] = {name: {"level": "WARNING"} for name in _QUIET_LOGGERS}
    loggers[APP_LOGGER] = {"level": settings.level}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": _FORMATS[settings.structured]},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": settings.level,
            },
        },
        "root": {"handlers": ["console"], "level": settings.level},
        "loggers": loggers,
    }


def configure_logging(settings: LoggingSettings) -> None:
    """Configure application logging according to provided settings."""
    logging.config.dictConfig(build_logging_config(settings))


def get_service_logger(settings: LoggingSettings, name: str = APP_LOGGER) -> logging.Logger:
    """Return the ``ILogger`` service; an unknown level raises ``ValueError``."""
    logger = logging.getLogger(name)
    logger.setLevel(settings.level)
    return logger


__all__ = ["APP_LOGGER", "build_logging_config", "configure_logging", "get_service_logger"]
