"""Namespaced in-memory KV storage with TTL support."""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime, timedelta
from typing import Any

from zap_assistant.core.config import StorageSettings
from zap_assistant.di.health import HealthResult


class StorageEntry:
    """Stored value with an optional expiration time."""

    def __init__(self, value: Any, ttl_seconds: int | None = None) -> None:
        """Initialize entry with value and optional TTL."""
        self.value = value
        self.expires_at = (
            datetime.now(tz=UTC) + timedelta(seconds=ttl_seconds)
            if ttl_seconds is not None
            else None
        )

    def is_expired(self) -> bool:
        """Check if the entry has expired."""
        return self.expires_at is not None and datetime.now(tz=UTC) > self.expires_at


class KVStorageService:
    """KV store keyed by ``(namespace, key)`` with per-entry TTL."""

    service_name = "storage"

    def __init__(self, settings: StorageSettings, logger: logging.Logger) -> None:
        """Initialize empty storage for the configured namespace."""
        self._settings = settings
        self._logger = logger
        self._entries: dict[tuple[str, str], StorageEntry] = {}
        self._lock = threading.Lock()

    @property
    def default_namespace(self) -> str:
        return self._settings.namespace

    def get(self, key: str, *, namespace: str | None = None) -> Any | None:
        """Get stored value if present and not expired."""
        slot = (namespace or self.default_namespace, key)
        with self._lock:
            entry = self._entries.get(slot)
            if entry and not entry.is_expired():
                return entry.value

            # Clean up expired entry
            if entry:
                self._logger.debug("Entry expired for key: %s/%s", *slot)
                del self._entries[slot]
        return None

    def put(
        self,
        key: str,
        value: Any,
        *,
        namespace: str | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        """Store ``value``; ``ttl_seconds`` defaults to the configured cache TTL."""
        if ttl_seconds is None and self._settings.cache_enabled:
            ttl_seconds = self._settings.cache_ttl_seconds
        slot = (namespace or self.default_namespace, key)
        with self._lock:
            self._entries[slot] = StorageEntry(value, ttl_seconds)
        self._logger.debug("Stored key: %s/%s (TTL: %s)", slot[0], slot[1], ttl_seconds)

    def delete(self, key: str, *, namespace: str | None = None) -> bool:
        slot = (namespace or self.default_namespace, key)
        with self._lock:
            return self._entries.pop(slot, None) is not None

    def list_keys(self, prefix: str = "", *, namespace: str | None = None) -> list[str]:
        """Return live keys in ``namespace`` starting with ``prefix``, sorted."""
        target = namespace or self.default_namespace
        with self._lock:
            return sorted(
                key
                for (space, key), entry in self._entries.items()
                if space == target and key.startswith(prefix) and not entry.is_expired()
            )

    def cleanup_expired(self) -> int:
        """Remove all expired entries."""
        with self._lock:
            expired = [slot for slot, entry in self._entries.items() if entry.is_expired()]
            for slot in expired:
                del self._entries[slot]

        if expired:
            self._logger.debug("Cleaned up %d expired entries", len(expired))

        return len(expired)

    def size(self) -> int:
        """Get current number of stored entries."""
        with self._lock:
            return len(self._entries)

    def check_health(self) -> HealthResult:
        return HealthResult(True, f"{self.size()} entries")


__all__ = ["KVStorageService", "StorageEntry"]
