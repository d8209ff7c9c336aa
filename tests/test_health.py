"""Tests for health-check probing."""

from __future__ import annotations

import threading

from zap_assistant.di import HealthCheckable, HealthResult, run_health_checks


class StubService:
    """Health-checkable stub returning a predefined outcome."""

    def __init__(
        self,
        name: str,
        outcome: HealthResult | bool | None = None,
        *,
        error: Exception | None = None,
        block: threading.Event | None = None,
    ) -> None:
        self._name = name
        self._outcome = outcome
        self._error = error
        self._block = block

    @property
    def service_name(self) -> str:
        return self._name

    def check_health(self) -> HealthResult | bool:
        if self._block is not None:
            self._block.wait(5)
        if self._error is not None:
            raise self._error
        assert self._outcome is not None
        return self._outcome


def test_stub_satisfies_capability() -> None:
    assert isinstance(StubService("x", True), HealthCheckable)
    assert not isinstance(object(), HealthCheckable)


def test_results_are_aggregated() -> None:
    services = {
        "messaging": StubService("messaging", HealthResult(True, "HTTP 200")),
        "ai": StubService("ai", False),
        "todoist": StubService("todoist", True),
    }

    report = run_health_checks(services, timeout_seconds=1.0)

    assert not report.healthy
    assert report.unhealthy_services == ["ai"]
    assert report.summary() == {
        "messaging": {"healthy": True, "detail": "HTTP 200"},
        "ai": {"healthy": False, "detail": "check reported unhealthy"},
        "todoist": {"healthy": True, "detail": "ok"},
    }
    assert report.results["messaging"].latency_ms is not None


def test_check_exception_is_unhealthy_result() -> None:
    services = {"ai": StubService("ai", error=ConnectionError("refused"))}

    report = run_health_checks(services, timeout_seconds=1.0)

    assert report.results["ai"].healthy is False
    assert "ConnectionError" in report.results["ai"].detail


def test_timeout_is_unhealthy_result() -> None:
    release = threading.Event()
    services = {
        "slow": StubService("slow", True, block=release),
        "fast": StubService("fast", True),
    }

    try:
        report = run_health_checks(services, timeout_seconds=0.05)
    finally:
        release.set()

    assert report.results["fast"].healthy
    assert not report.results["slow"].healthy
    assert "timed out" in report.results["slow"].detail


def test_empty_services_are_healthy() -> None:
    report = run_health_checks({}, timeout_seconds=1.0)

    assert report.healthy
    assert report.summary() == {}
