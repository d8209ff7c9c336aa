"""Application bootstrap: build the service container from a settings snapshot.

Infrastructure services are always registered and must construct. Business
services are registered only when their configuration is present; if one
still fails to construct, the failure is logged and the service is left out
so the rest of the application keeps working with a reduced feature set.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from zap_assistant.core.config import AppSettings
from zap_assistant.core.errors import ErrorHandler
from zap_assistant.core.events import EventBus
from zap_assistant.core.features import (
    ai_enabled,
    messaging_enabled,
    portfolio_enabled,
    storage_enabled,
    todoist_enabled,
)
from zap_assistant.core.logging import get_service_logger
from zap_assistant.services import (
    KVStorageService,
    OpenAIService,
    PortfolioService,
    TodoistService,
    ZApiMessagingService,
)

from .container import ServiceContainer
from .errors import CircularDependencyError, token_name
from .health import HealthCheckable, HealthReport, run_health_checks
from .markers import optional
from .registry import ServiceRegistry, default_registry
from .tokens import ServiceTokens

LOGGER = logging.getLogger(__name__)


class FactoryState(Enum):
    """Bootstrap lifecycle of a :class:`ServiceFactory`."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


@dataclass(frozen=True, slots=True)
class BusinessService:
    """A service wired in only when ``available(settings)`` holds."""

    name: str
    token: str
    available: Callable[[AppSettings], bool]
    cls: type[Any]
    dependencies: tuple[Any, ...] = ()
    factory: Callable[..., Any] | None = None


def default_business_services() -> list[BusinessService]:
    """Return the business services in registration order."""
    settings_and_logger = (ServiceTokens.SETTINGS, ServiceTokens.LOGGER)
    return [
        BusinessService(
            "storage",
            ServiceTokens.STORAGE,
            storage_enabled,
            KVStorageService,
            settings_and_logger,
            lambda settings, logger: KVStorageService(settings.storage, logger),
        ),
        BusinessService(
            "messaging",
            ServiceTokens.MESSAGING,
            messaging_enabled,
            ZApiMessagingService,
            settings_and_logger,
            lambda settings, logger: ZApiMessagingService(settings.zapi, logger),
        ),
        BusinessService(
            "ai",
            ServiceTokens.AI,
            ai_enabled,
            OpenAIService,
            settings_and_logger,
            lambda settings, logger: OpenAIService(settings.openai, logger),
        ),
        BusinessService(
            "todoist",
            ServiceTokens.TODOIST,
            todoist_enabled,
            TodoistService,
            settings_and_logger,
            lambda settings, logger: TodoistService(settings.todoist, logger),
        ),
        BusinessService(
            "portfolio",
            ServiceTokens.PORTFOLIO,
            portfolio_enabled,
            PortfolioService,
            (*settings_and_logger, optional(ServiceTokens.MESSAGING)),
            lambda settings, logger, messaging: PortfolioService(
                settings.portfolio, logger, messaging
            ),
        ),
    ]


class ServiceFactory:
    """Owns the application container and drives its bootstrap."""

    def __init__(
        self,
        settings: AppSettings,
        *,
        registry: ServiceRegistry | None = None,
        business_services: Iterable[BusinessService] | None = None,
    ) -> None:
        self._settings = settings
        self._registry = registry if registry is not None else default_registry
        self._container = ServiceContainer(self._registry)
        self._business_services: Sequence[BusinessService] = (
            list(business_services)
            if business_services is not None
            else default_business_services()
        )
        self._state = FactoryState.UNINITIALIZED
        self._lock = threading.Lock()
        self._checkable: dict[str, HealthCheckable] = {}
        self._disabled: dict[str, str] = {}
        self._health_report: HealthReport | None = None

    @property
    def state(self) -> FactoryState:
        return self._state

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def health_report(self) -> HealthReport | None:
        """Result of the last health-check pass, if one ran."""
        return self._health_report

    @property
    def disabled_services(self) -> dict[str, str]:
        """Business services left out of the container, with the reason."""
        return dict(self._disabled)

    def initialize(self) -> ServiceContainer:
        """Register every service and return the ready container.

        Calling it again once ready is a no-op. Infrastructure failures
        propagate and leave the factory uninitialized.
        """
        if self._state is FactoryState.INITIALIZING:
            raise RuntimeError("Service factory initialization already in progress")

        with self._lock:
            if self._state is FactoryState.READY:
                return self._container

            self._state = FactoryState.INITIALIZING
            try:
                self._container.register(ServiceTokens.SETTINGS, self._settings)
                self._register_infrastructure()
                self._register_business_services()
                if self._settings.health.enabled:
                    self._health_report = self.run_health_checks()
            except BaseException:
                self._reset()
                raise

            self._state = FactoryState.READY
            LOGGER.info(
                "Service factory ready with %d services (%d disabled)",
                len(self._container.get_registered_services()),
                len(self._disabled),
            )
            return self._container

    def _register_infrastructure(self) -> None:
        self._registry.declare(ErrorHandler, dependencies=[ServiceTokens.LOGGER])
        self._registry.declare(EventBus, dependencies=[ServiceTokens.LOGGER])

        self._container.register(
            ServiceTokens.LOGGER, lambda: get_service_logger(self._settings.logging)
        )
        self._container.register(ServiceTokens.ERROR_HANDLER, ErrorHandler)
        self._container.register(ServiceTokens.EVENT_BUS, EventBus)

        for token in ServiceTokens.INFRASTRUCTURE:
            self._track(token, self._container.resolve(token))

    def _register_business_services(self) -> None:
        registered: list[BusinessService] = []
        for service in self._business_services:
            if not service.available(self._settings):
                LOGGER.info("%s service disabled: configuration not present", service.name)
                self._disabled[service.name] = "not configured"
                continue

            try:
                self._registry.declare(
                    service.cls,
                    factory=service.factory,
                    dependencies=service.dependencies,
                )
                self._container.register(service.token, service.cls)
            except Exception as exc:  # noqa: BLE001 - degrade to a disabled feature
                self._withdraw(service, exc)
                continue
            registered.append(service)

        self._validate_graph()

        for service in registered:
            try:
                instance = self._container.resolve(service.token)
            except Exception as exc:  # noqa: BLE001 - degrade to a disabled feature
                self._withdraw(service, exc)
                continue

            LOGGER.debug("%s service registered as %s", service.name, service.token)
            self._track(service.token, instance)

    def _withdraw(self, service: BusinessService, exc: Exception) -> None:
        LOGGER.warning("%s service not available: %s", service.name, exc)
        instance = self._container.get_instances().get(service.token)
        if instance is not None:
            _close_instance(service.token, instance)
        self._container.unregister(service.token)
        self._checkable.pop(service.token, None)
        self._disabled[service.name] = str(exc)

    def _validate_graph(self) -> None:
        # Missing dependencies are logged by the container; bootstrap continues.
        try:
            self._container.validate_dependency_graph()
        except CircularDependencyError as exc:
            LOGGER.warning("Dependency graph validation failed: %s", exc)

    def _track(self, token: Any, instance: Any) -> None:
        self._checkable.pop(token, None)
        if isinstance(instance, HealthCheckable):
            self._checkable[token] = instance

    def run_health_checks(self) -> HealthReport:
        """Check every registered service that supports health checks."""
        services = {instance.service_name: instance for instance in self._checkable.values()}
        report = run_health_checks(services, self._settings.health.timeout_seconds)
        self._health_report = report
        if report.healthy:
            LOGGER.info("Health checks passed for %d services", len(report.results))
        else:
            LOGGER.warning(
                "Some services failed health checks: %s",
                ", ".join(report.unhealthy_services),
            )
        return report

    def get_container(self) -> ServiceContainer:
        return self._container

    def resolve(self, token: Any) -> Any:
        return self._container.resolve(token)

    def register(self, token: Any, provider: Any) -> None:
        """Register or override a service, primarily for tests.

        Once the factory is ready the new provider is resolved at once so
        health checks target it instead of the instance it replaced.
        """
        with self._lock:
            self._checkable.pop(token, None)
            self._container.register(token, provider)
            if self._state is FactoryState.READY:
                self._track(token, self._container.resolve(token))

    def clear(self) -> None:
        """Close owned clients, drop every service and return to the uninitialized state."""
        with self._lock:
            self._reset()

    def _reset(self) -> None:
        for token, instance in self._container.get_instances().items():
            _close_instance(token, instance)
        self._container.clear()
        self._checkable.clear()
        self._disabled.clear()
        self._health_report = None
        self._state = FactoryState.UNINITIALIZED


def _close_instance(token: Any, instance: Any) -> None:
    close = getattr(instance, "close", None)
    if not callable(close):
        return
    try:
        close()
    except Exception as exc:  # noqa: BLE001 - keep closing the remaining services
        LOGGER.warning("Failed to close %s: %s", token_name(token), exc)


def create_service_factory(settings: AppSettings, **kwargs: Any) -> ServiceFactory:
    """Create a factory and run its bootstrap."""
    factory = ServiceFactory(settings, **kwargs)
    factory.initialize()
    return factory


__all__ = [
    "BusinessService",
    "FactoryState",
    "ServiceFactory",
    "create_service_factory",
    "default_business_services",
]
