"""Application configuration models and loader utilities."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator


class ZApiSettings(BaseModel):
    """Credentials and limits for the Z-API WhatsApp gateway."""

    base_url: str = Field(default="https://api.z-api.io", description="Z-API URL")
    instance_id: str | None = Field(default=None, description="Instance ID")
    instance_token: str | None = Field(default=None, description="Instance token")
    client_token: str | None = Field(
        default=None, description="Client-Token header, also used for webhooks"
    )
    rate_limit_per_minute: int = Field(default=60, ge=1)
    max_retries: int = Field(default=3, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)


class OpenAISettings(BaseModel):
    """Settings for the OpenAI completion and transcription API."""

    base_url: str = Field(default="https://api.openai.com/v1")
    api_key: str | None = Field(default=None, description="OpenAI API key")
    model: str = Field(default="gpt-4-turbo-preview", description="Chat model")
    max_tokens: int = Field(default=4096, ge=1)
    max_retries: int = Field(default=3, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)


class TodoistSettings(BaseModel):
    """Settings for task capture through Todoist."""

    base_url: str = Field(default="https://api.todoist.com/rest/v2")
    api_token: str | None = Field(default=None, description="Todoist API token")
    timeout_seconds: float = Field(default=15.0, gt=0)


class PositionSettings(BaseModel):
    """A single holding in the tracked portfolio."""

    ticker: str
    shares: float = Field(gt=0)
    avg_price: float = Field(default=0.0, ge=0)


class PortfolioSettings(BaseModel):
    """Settings for the stock portfolio tracker."""

    base_url: str = Field(default="https://brapi.dev/api")
    brapi_token: str | None = Field(default=None, description="brapi.dev token")
    whatsapp_number: str | None = Field(
        default=None, description="Destination number for portfolio reports"
    )
    positions: list[PositionSettings] = Field(
        default_factory=list, description="Holdings, JSON encoded in env files"
    )
    timeout_seconds: float = Field(default=15.0, gt=0)

    @field_validator("positions", mode="before")
    @classmethod
    def _decode_positions(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return json.loads(value)
        return value


class StorageSettings(BaseModel):
    """Settings for the KV-backed storage service."""

    namespace: str = Field(default="user-configs", description="KV namespace")
    cache_enabled: bool = Field(default=True)
    cache_ttl_seconds: int = Field(default=300, ge=1)


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class HealthSettings(BaseModel):
    """Settings for the bootstrap health-check pass."""

    enabled: bool = Field(default=True, description="Check services on startup")
    timeout_seconds: float = Field(
        default=5.0, gt=0, description="Per-service health check timeout"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    environment: str = Field(default="development")
    zapi: ZApiSettings = Field(default_factory=ZApiSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    todoist: TodoistSettings = Field(default_factory=TodoistSettings)
    portfolio: PortfolioSettings = Field(default_factory=PortfolioSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)

    def flat(self) -> dict[str, Any]:
        """Return the settings as a flat ``section__field`` mapping."""
        flattened: dict[str, Any] = {}
        for section, values in self.model_dump(mode="json").items():
            if isinstance(values, dict):
                for key, value in values.items():
                    flattened[f"{section}__{key}"] = value
            else:
                flattened[section] = values
        return flattened


ENV_PREFIX = "ZAP_ASSISTANT_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool = True
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(env_file, include_environment=include_environment)
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AppSettings",
    "ENV_PREFIX",
    "HealthSettings",
    "LoggingSettings",
    "OpenAISettings",
    "PortfolioSettings",
    "PositionSettings",
    "StorageSettings",
    "TodoistSettings",
    "ZApiSettings",
    "load_app_settings",
]
