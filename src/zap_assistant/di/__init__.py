"""Dependency injection runtime: registry, markers, container and health checks.

The application bootstrap lives in :mod:`zap_assistant.di.factory`.
"""

from .container import ServiceContainer
from .errors import (
    CircularDependencyError,
    InjectionError,
    NotInjectableError,
    ServiceConstructionError,
    ServiceNotFoundError,
)
from .health import HealthCheckable, HealthReport, HealthResult, run_health_checks
from .markers import Inject, optional
from .registry import (
    Lifecycle,
    ServiceDescriptor,
    ServiceRegistry,
    default_registry,
    injectable,
)
from .tokens import ServiceTokens

__all__ = [
    "CircularDependencyError",
    "HealthCheckable",
    "HealthReport",
    "HealthResult",
    "Inject",
    "InjectionError",
    "Lifecycle",
    "NotInjectableError",
    "ServiceConstructionError",
    "ServiceContainer",
    "ServiceDescriptor",
    "ServiceNotFoundError",
    "ServiceRegistry",
    "ServiceTokens",
    "default_registry",
    "injectable",
    "optional",
    "run_health_checks",
]
