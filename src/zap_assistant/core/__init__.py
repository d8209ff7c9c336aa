"""Core utilities for configuration, logging, errors and events."""

from .config import AppSettings, LoggingSettings, load_app_settings
from .errors import AppError, ErrorHandler
from .events import DomainEvent, EventBus
from .features import enabled_features
from .logging import configure_logging

__all__ = [
    "AppError",
    "AppSettings",
    "DomainEvent",
    "ErrorHandler",
    "EventBus",
    "LoggingSettings",
    "configure_logging",
    "enabled_features",
    "load_app_settings",
]
