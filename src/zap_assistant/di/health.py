"""Liveness probing for services that opt into health checks."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class HealthResult:
    """Outcome of probing one service."""

    healthy: bool
    detail: str = ""
    latency_ms: float | None = None


@runtime_checkable
class HealthCheckable(Protocol):
    """Capability implemented by services that can report their liveness."""

    @property
    def service_name(self) -> str:
        """Name used in health reports."""
        raise NotImplementedError

    def check_health(self) -> HealthResult | bool:
        """Check the service; return a result or a bare healthy flag."""
        raise NotImplementedError


@dataclass(slots=True)
class HealthReport:
    """Aggregated health of every checked service."""

    results: dict[str, HealthResult] = field(default_factory=dict)
    checked_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def healthy(self) -> bool:
        return all(result.healthy for result in self.results.values())

    @property
    def unhealthy_services(self) -> list[str]:
        return [name for name, result in self.results.items() if not result.healthy]

    def summary(self) -> dict[str, dict[str, object]]:
        """Return ``{service: {"healthy": bool, "detail": str}}``."""
        return {
            name: {"healthy": result.healthy, "detail": result.detail}
            for name, result in self.results.items()
        }


def _check(service: HealthCheckable) -> HealthResult:
    started = time.perf_counter()
    outcome = service.check_health()
    elapsed = (time.perf_counter() - started) * 1000
    if isinstance(outcome, HealthResult):
        if outcome.latency_ms is None:
            outcome.latency_ms = elapsed
        return outcome
    healthy = bool(outcome)
    return HealthResult(healthy, "ok" if healthy else "check reported unhealthy", elapsed)


def run_health_checks(
    services: Mapping[str, HealthCheckable], timeout_seconds: float
) -> HealthReport:
    """Check ``services`` concurrently, each bounded by ``timeout_seconds``.

    Never raises: a check that fails or times out yields an unhealthy result.
    """
    report = HealthReport()
    if not services:
        return report

    executor = ThreadPoolExecutor(
        max_workers=len(services), thread_name_prefix="health-check"
    )
    try:
        futures = {name: executor.submit(_check, service) for name, service in services.items()}
        deadline = time.monotonic() + timeout_seconds
        for name, future in futures.items():
            remaining = max(deadline - time.monotonic(), 0.0)
            try:
                report.results[name] = future.result(timeout=remaining)
            except FutureTimeoutError:
                future.cancel()
                report.results[name] = HealthResult(
                    False, f"health check timed out after {timeout_seconds:g}s"
                )
            except Exception as exc:  # noqa: BLE001 - check failures are results
                report.results[name] = HealthResult(False, f"{type(exc).__name__}: {exc}")
    finally:
        # Timed-out checks keep running in their worker; do not wait for them.
        executor.shutdown(wait=False, cancel_futures=True)

    for name in report.unhealthy_services:
        LOGGER.warning("Service %s failed health check: %s", name, report.results[name].detail)
    return report


__all__ = ["HealthCheckable", "HealthReport", "HealthResult", "run_health_checks"]
