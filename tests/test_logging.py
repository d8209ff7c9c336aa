"""Tests for logging utilities."""

from __future__ import annotations

import logging

import pytest

from zap_assistant.core.config import LoggingSettings
from zap_assistant.core.logging import (
    build_logging_config,
    configure_logging,
    get_service_logger,
)


def test_configure_logging_sets_root_level() -> None:
    """configure_logging should set the root logger level according to settings."""

    settings = LoggingSettings(level="DEBUG", structured=False)
    configure_logging(settings)
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING


def test_service_logger_uses_configured_level() -> None:
    logger = get_service_logger(LoggingSettings(level="WARNING"), name="zap_assistant.test")

    assert logger.name == "zap_assistant.test"
    assert logger.level == logging.WARNING


def test_service_logger_rejects_unknown_level() -> None:
    with pytest.raises(ValueError):
        get_service_logger(LoggingSettings(level="LOUD"), name="zap_assistant.invalid")


def test_logging_config_quiets_http_clients() -> None:
    """HTTP client loggers stay at WARNING while the app logger follows settings."""

    config = build_logging_config(LoggingSettings(level="DEBUG", structured=True))

    assert config["loggers"]["httpx"] == {"level": "WARNING"}
    assert config["loggers"]["httpcore"] == {"level": "WARNING"}
    assert config["loggers"]["zap_assistant"] == {"level": "DEBUG"}
    assert config["formatters"]["default"]["style"] == "{"
