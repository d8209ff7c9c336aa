"""Errors raised by the service registry and container."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def token_name(token: Any) -> str:
    """Return a readable name for a service token."""
    if isinstance(token, type):
        return token.__name__
    return str(token)


class InjectionError(RuntimeError):
    """Base class for dependency injection failures."""


class ServiceNotFoundError(InjectionError):
    """Raised when a token has no registration and was not requested as optional."""

    def __init__(self, token: Any) -> None:
        super().__init__(f"Service not found for token: {token_name(token)}")
        self.token = token


class CircularDependencyError(InjectionError):
    """Raised when resolution re-enters a token that is still under construction."""

    def __init__(self, cycle: Sequence[Any]) -> None:
        self.cycle = tuple(cycle)
        path = " -> ".join(token_name(token) for token in self.cycle)
        super().__init__(f"Circular dependency detected: {path}")


class NotInjectableError(InjectionError):
    """Raised when registering a class that has no declared descriptor."""

    def __init__(self, token: Any) -> None:
        super().__init__(
            f"Class {token_name(token)} is not declared injectable; "
            "decorate it with @injectable or call registry.declare()"
        )
        self.token = token


class ServiceConstructionError(InjectionError):
    """Raised when the factory or constructor for a token fails."""

    def __init__(self, token: Any, cause: BaseException) -> None:
        super().__init__(f"Failed to construct {token_name(token)}: {cause}")
        self.token = token
        self.cause = cause


__all__ = [
    "CircularDependencyError",
    "InjectionError",
    "NotInjectableError",
    "ServiceConstructionError",
    "ServiceNotFoundError",
    "token_name",
]
