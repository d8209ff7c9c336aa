"""In-process event bus for domain events."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

WILDCARD = "*"


@dataclass(slots=True)
class DomainEvent:
    """Something that happened, published to interested handlers."""

    type: str
    payload: dict[str, Any] = field(default_factory=dict)
    source: str | None = None
    correlation_id: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


EventHandler = Callable[[DomainEvent], None]


@dataclass(frozen=True, slots=True)
class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    id: int
    event_type: str


class EventBus:
    """Dispatch events synchronously to subscribed handlers, in subscription order."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._handlers: dict[str, dict[int, EventHandler]] = {}
        self._next_id = 0
        self._lock = threading.Lock()

    def publish(self, event: DomainEvent) -> int:
        """Deliver ``event`` and return how many handlers received it."""
        with self._lock:
            handlers = [
                *self._handlers.get(event.type, {}).values(),
                *self._handlers.get(WILDCARD, {}).values(),
            ]
        if not handlers:
            self._logger.debug("No handlers for event: %s", event.type)
            return 0

        self._logger.debug("Publishing event %s (%s)", event.type, event.id)
        for handler in handlers:
            try:
                handler(event)
            except Exception:  # noqa: BLE001 - one handler must not starve the rest
                self._logger.exception(
                    "Error in event handler %s for %s",
                    getattr(handler, "__name__", "anonymous"),
                    event.type,
                )
        return len(handlers)

    def publish_many(self, events: list[DomainEvent]) -> None:
        for event in events:
            self.publish(event)

    def subscribe(self, event_type: str, handler: EventHandler) -> Subscription:
        """Register ``handler`` for ``event_type`` (``"*"`` receives everything)."""
        with self._lock:
            self._next_id += 1
            subscription = Subscription(self._next_id, event_type)
            self._handlers.setdefault(event_type, {})[subscription.id] = handler
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            handlers = self._handlers.get(subscription.event_type)
            if handlers is not None:
                handlers.pop(subscription.id, None)
                if not handlers:
                    del self._handlers[subscription.event_type]

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()


__all__ = ["DomainEvent", "EventBus", "EventHandler", "Subscription", "WILDCARD"]
