"""OpenAI client used for transcription and text completion."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from zap_assistant.core.config import OpenAISettings
from zap_assistant.core.errors import ExternalServiceError, ValidationError
from zap_assistant.core.features import is_present
from zap_assistant.di.health import HealthResult

from .http import check_endpoint, request_json

TRANSCRIPTION_MODEL = "whisper-1"


class OpenAIService:
    """Thin synchronous client for the OpenAI HTTP API."""

    service_name = "ai"

    def __init__(
        self,
        settings: OpenAISettings,
        logger: logging.Logger,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        if not is_present(settings.api_key):
            raise ValidationError("OpenAI API key is required for the AI service")
        self._settings = settings
        self._logger = logger
        self._client = client or httpx.Client(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
        )
        self._headers = {"Authorization": f"Bearer {settings.api_key}"}

    @property
    def provider_id(self) -> str:
        """Return a human readable identifier for the configured model."""
        return f"openai:{self._settings.model}"

    def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.7,
    ) -> str:
        """Return the assistant reply for ``prompt``."""
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        data = request_json(
            self._client,
            "POST",
            "/chat/completions",
            service="openai",
            attempts=self._settings.max_retries,
            headers=self._headers,
            json={
                "model": self._settings.model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": self._settings.max_tokens,
            },
        )
        return _first_choice(data)

    def transcribe(self, audio: bytes, filename: str = "audio.ogg") -> str:
        """Transcribe an audio payload and return the text."""
        if not audio:
            raise ValidationError("Audio payload is empty")
        data = request_json(
            self._client,
            "POST",
            "/audio/transcriptions",
            service="openai",
            attempts=self._settings.max_retries,
            headers=self._headers,
            data={"model": TRANSCRIPTION_MODEL},
            files={"file": (filename, audio)},
        )
        text = data.get("text") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise ExternalServiceError("openai", "transcription response missing 'text'")
        self._logger.debug("Transcribed %d bytes of audio", len(audio))
        return text.strip()

    def check_health(self) -> HealthResult:
        ok, detail = check_endpoint(self._client, "/models", headers=self._headers)
        return HealthResult(ok, detail)

    def close(self) -> None:
        self._client.close()


def _first_choice(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ExternalServiceError("openai", "completion response missing choices") from exc
    if not isinstance(content, str):
        raise ExternalServiceError("openai", "completion content was not text")
    return content.strip()


__all__ = ["OpenAIService", "TRANSCRIPTION_MODEL"]
