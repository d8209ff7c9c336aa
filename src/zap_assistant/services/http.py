"""Shared HTTP helpers for external API clients."""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any

import httpx

from zap_assistant.core.errors import ExternalServiceError

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def request_json(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    service: str,
    attempts: int = 3,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> Any:
    """Send a request with exponential backoff and return the decoded JSON body."""
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            response = client.request(method, url, **kwargs)
            response.raise_for_status()
            if not response.content:
                return None
            return response.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code not in _RETRYABLE_STATUS:
                raise ExternalServiceError(
                    service, f"HTTP {exc.response.status_code} from {url}"
                ) from exc
            last_error = exc
        except httpx.TransportError as exc:  # pragma: no cover - network dependent
            last_error = exc
        except json.JSONDecodeError as exc:
            raise ExternalServiceError(service, "response was not valid JSON") from exc

        if attempt < attempts:
            sleep(min(2**attempt, 8))

    raise ExternalServiceError(
        service, f"request failed after {attempts} attempts"
    ) from last_error


def check_endpoint(client: httpx.Client, url: str, **kwargs: Any) -> tuple[bool, str]:
    """Issue a single GET and report ``(ok, detail)`` without raising."""
    try:
        response = client.get(url, **kwargs)
    except httpx.HTTPError as exc:
        return False, f"{type(exc).__name__}: {exc}"
    if response.is_success:
        return True, f"HTTP {response.status_code}"
    return False, f"HTTP {response.status_code}"


__all__ = ["check_endpoint", "request_json"]
