"""Z-API WhatsApp messaging client."""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import Any

import httpx

from zap_assistant.core.config import ZApiSettings
from zap_assistant.core.errors import RateLimitError, ValidationError
from zap_assistant.core.features import is_present
from zap_assistant.di.health import HealthResult

from .http import check_endpoint, request_json

_PHONE_PATTERN = re.compile(r"^\d{10,15}$")


class ZApiMessagingService:
    """Send WhatsApp messages through a Z-API instance."""

    service_name = "messaging"

    def __init__(
        self,
        settings: ZApiSettings,
        logger: logging.Logger,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        if not (
            is_present(settings.instance_id)
            and is_present(settings.instance_token)
            and is_present(settings.client_token)
        ):
            raise ValidationError(
                "Z-API credentials (instance id, instance token and client token) "
                "are required for messaging"
            )
        self._settings = settings
        self._logger = logger
        self._client = client or httpx.Client(timeout=settings.timeout_seconds)
        self._base = (
            f"{settings.base_url.rstrip('/')}/instances/{settings.instance_id}"
            f"/token/{settings.instance_token}"
        )
        self._headers = {"Client-Token": settings.client_token or ""}
        self._tokens = settings.rate_limit_per_minute
        self._window_started = time.monotonic()
        self._lock = threading.Lock()

    def send_text(self, phone: str, message: str) -> dict[str, Any]:
        """Send ``message`` to ``phone`` (digits only, with country code)."""
        if not _PHONE_PATTERN.match(phone):
            raise ValidationError(f"Invalid phone number: {phone!r}")
        if not message.strip():
            raise ValidationError("Message text must not be empty")
        self._take_token()

        payload = request_json(
            self._client,
            "POST",
            f"{self._base}/send-text",
            service="z-api",
            attempts=self._settings.max_retries,
            headers=self._headers,
            json={"phone": phone, "message": message},
        )
        self._logger.info("Sent WhatsApp message to %s", phone[-4:].rjust(len(phone), "*"))
        return payload or {}

    def check_health(self) -> HealthResult:
        ok, detail = check_endpoint(
            self._client, f"{self._base}/status", headers=self._headers
        )
        return HealthResult(ok, detail)

    def close(self) -> None:
        self._client.close()

    def _take_token(self) -> None:
        with self._lock:
            now = time.monotonic()
            if now - self._window_started >= 60:
                self._window_started = now
                self._tokens = self._settings.rate_limit_per_minute
            if self._tokens <= 0:
                raise RateLimitError("Z-API rate limit reached, retry in a minute")
            self._tokens -= 1


__all__ = ["ZApiMessagingService"]
