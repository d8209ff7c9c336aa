"""Application error types and the centralised error handler service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx


@dataclass(slots=True)
class ErrorContext:
    """Where an error happened and on whose behalf."""

    module: str | None = None
    operation: str | None = None
    user_id: str | None = None
    correlation_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AppError(RuntimeError):
    """Base class for errors raised by application services."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        operational: bool = True,
        context: ErrorContext | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.operational = operational
        self.context = context
        self.retryable = retryable
        self.timestamp = datetime.now(tz=UTC)


class ValidationError(AppError):
    """Raised when input fails validation."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", context=context)


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str, context: ErrorContext | None = None) -> None:
        super().__init__(f"{resource} not found", "NOT_FOUND", context=context)


class RateLimitError(AppError):
    """Raised when a local or remote rate limit is exceeded."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(message, "RATE_LIMIT", context=context, retryable=True)


class ExternalServiceError(AppError):
    """Raised when a third-party API call fails."""

    def __init__(
        self, service: str, message: str, context: ErrorContext | None = None
    ) -> None:
        super().__init__(
            f"External service error ({service}): {message}",
            "EXTERNAL_SERVICE",
            context=context,
            retryable=True,
        )
        self.service = service


ErrorCallback = Callable[[BaseException, ErrorContext | None], None]


class ErrorHandler:
    """Log, classify and fan out application errors."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger
        self._callbacks: list[ErrorCallback] = []

    def handle(self, error: BaseException, context: ErrorContext | None = None) -> None:
        """Log ``error`` at a level matching its classification and notify callbacks."""
        where = _describe(context)
        if self.is_operational(error):
            self._logger.warning("Operational error%s: %s", where, error)
        else:
            self._logger.error("Unexpected error%s: %s", where, error, exc_info=error)

        for callback in list(self._callbacks):
            try:
                callback(error, context)
            except Exception:  # noqa: BLE001 - callbacks must not break handling
                self._logger.exception("Error callback failed")

    def on_error(self, callback: ErrorCallback) -> None:
        """Register a callback invoked for every handled error."""
        self._callbacks.append(callback)

    @staticmethod
    def create_error(
        message: str, code: str | None = None, context: ErrorContext | None = None
    ) -> AppError:
        return AppError(message, code, context=context)

    @staticmethod
    def is_operational(error: BaseException) -> bool:
        if isinstance(error, AppError):
            return error.operational
        return isinstance(error, httpx.HTTPError | TimeoutError)

    @staticmethod
    def should_retry(error: BaseException) -> bool:
        """Return ``True`` for errors worth retrying with backoff."""
        if isinstance(error, AppError):
            return error.retryable
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            return status == 429 or status >= 500
        return isinstance(error, httpx.TransportError | TimeoutError)


def _describe(context: ErrorContext | None) -> str:
    if context is None:
        return ""
    parts = [
        value
        for value in (context.module, context.operation)
        if value
    ]
    return f" in {'.'.join(parts)}" if parts else ""


__all__ = [
    "AppError",
    "ErrorContext",
    "ErrorHandler",
    "ExternalServiceError",
    "NotFoundError",
    "RateLimitError",
    "ValidationError",
]
