"""Tests for the in-process event bus."""

from __future__ import annotations

import logging

import pytest

from zap_assistant.core.events import DomainEvent, EventBus


def test_handlers_receive_events_in_order() -> None:
    bus = EventBus()
    received: list[str] = []

    bus.subscribe("message.received", lambda event: received.append(f"first:{event.type}"))
    bus.subscribe("message.received", lambda event: received.append("second"))
    bus.subscribe("*", lambda event: received.append("wildcard"))

    delivered = bus.publish(DomainEvent("message.received", {"text": "oi"}))

    assert delivered == 3
    assert received == ["first:message.received", "second", "wildcard"]


def test_unsubscribe_stops_delivery() -> None:
    bus = EventBus()
    received: list[DomainEvent] = []

    subscription = bus.subscribe("task.created", received.append)
    bus.unsubscribe(subscription)
    bus.unsubscribe(subscription)

    assert bus.publish(DomainEvent("task.created")) == 0
    assert received == []


def test_failing_handler_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    """A handler exception is logged and the remaining handlers still run."""

    bus = EventBus(logging.getLogger("zap_assistant.tests.events"))
    received: list[str] = []

    def broken(event: DomainEvent) -> None:
        raise RuntimeError("handler failed")

    bus.subscribe("report.sent", broken)
    bus.subscribe("report.sent", lambda event: received.append(event.id))

    with caplog.at_level(logging.ERROR, logger="zap_assistant.tests.events"):
        event = DomainEvent("report.sent", source="portfolio")
        bus.publish(event)

    assert received == [event.id]
    assert "Error in event handler broken" in caplog.text


def test_publish_many_and_clear() -> None:
    bus = EventBus()
    received: list[str] = []
    bus.subscribe("a", lambda event: received.append(event.type))

    bus.publish_many([DomainEvent("a"), DomainEvent("b"), DomainEvent("a")])
    bus.clear()
    bus.publish(DomainEvent("a"))

    assert received == ["a", "a"]
