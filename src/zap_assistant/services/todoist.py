"""Todoist task capture client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from zap_assistant.core.config import TodoistSettings
from zap_assistant.core.errors import ValidationError
from zap_assistant.core.features import is_present
from zap_assistant.di.health import HealthResult

from .http import check_endpoint, request_json


class TodoistService:
    """Create tasks through the Todoist REST API."""

    service_name = "todoist"

    def __init__(
        self,
        settings: TodoistSettings,
        logger: logging.Logger,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        if not is_present(settings.api_token):
            raise ValidationError("Todoist API token is required")
        self._logger = logger
        self._client = client or httpx.Client(
            base_url=settings.base_url, timeout=settings.timeout_seconds
        )
        self._headers = {"Authorization": f"Bearer {settings.api_token}"}

    def create_task(
        self,
        content: str,
        *,
        due_string: str | None = None,
        priority: int | None = None,
        labels: list[str] | None = None,
    ) -> dict[str, Any]:
        """Create a task and return the stored payload."""
        if not content.strip():
            raise ValidationError("Task content must not be empty")
        payload: dict[str, Any] = {"content": content.strip()}
        if due_string:
            payload["due_string"] = due_string
        if priority is not None:
            payload["priority"] = max(1, min(priority, 4))
        if labels:
            payload["labels"] = labels

        task = request_json(
            self._client,
            "POST",
            "/tasks",
            service="todoist",
            headers=self._headers,
            json=payload,
        )
        self._logger.info("Created Todoist task %s", (task or {}).get("id"))
        return task or {}

    def check_health(self) -> HealthResult:
        ok, detail = check_endpoint(self._client, "/projects", headers=self._headers)
        return HealthResult(ok, detail)

    def close(self) -> None:
        self._client.close()


__all__ = ["TodoistService"]
