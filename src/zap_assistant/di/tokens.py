"""Well-known service tokens."""

from __future__ import annotations


class ServiceTokens:
    """String tokens under which the factory registers services."""

    # Configuration
    SETTINGS = "AppSettings"

    # Infrastructure
    LOGGER = "ILogger"
    ERROR_HANDLER = "IErrorHandler"
    EVENT_BUS = "IEventBus"

    # Business services
    MESSAGING = "IMessagingService"
    STORAGE = "IStorageService"
    AI = "IAIService"
    TODOIST = "ITodoistService"
    PORTFOLIO = "IPortfolioService"

    INFRASTRUCTURE = (LOGGER, ERROR_HANDLER, EVENT_BUS)


__all__ = ["ServiceTokens"]
