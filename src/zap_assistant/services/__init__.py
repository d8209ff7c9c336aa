"""External service clients composed by the service factory."""

from .ai import OpenAIService
from .messaging import ZApiMessagingService
from .portfolio import PortfolioService
from .storage import KVStorageService
from .todoist import TodoistService

__all__ = [
    "KVStorageService",
    "OpenAIService",
    "PortfolioService",
    "TodoistService",
    "ZApiMessagingService",
]
