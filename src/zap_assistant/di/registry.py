"""Registry of injectable service declarations."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from .markers import split_dependency

T = TypeVar("T")

DEFAULT_SCOPE = "root"


class Lifecycle(Enum):
    """How the container caches instances of a service."""

    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass(frozen=True, slots=True)
class ServiceDescriptor:
    """How to construct and cache the service behind ``token``."""

    token: Any
    lifecycle: Lifecycle = Lifecycle.SINGLETON
    scope: str = DEFAULT_SCOPE
    factory: Callable[..., Any] | None = None
    dependency_tokens: tuple[Any, ...] = ()
    optional_flags: tuple[bool, ...] = ()

    @property
    def is_singleton(self) -> bool:
        return self.lifecycle is Lifecycle.SINGLETON

    @property
    def dependencies(self) -> list[tuple[Any, bool]]:
        """Return ``(token, optional)`` pairs in constructor order."""
        return list(zip(self.dependency_tokens, self.optional_flags, strict=True))


def build_descriptor(
    token: Any,
    *,
    singleton: bool = True,
    scope: str = DEFAULT_SCOPE,
    factory: Callable[..., Any] | None = None,
    dependencies: Iterable[Any] = (),
) -> ServiceDescriptor:
    """Create a descriptor, splitting ``Inject`` markers into tokens and flags."""
    if factory is None and not isinstance(token, type):
        raise ValueError(f"Token {token!r} is not a class and needs a factory")
    pairs = [split_dependency(entry) for entry in dependencies]
    return ServiceDescriptor(
        token=token,
        lifecycle=Lifecycle.SINGLETON if singleton else Lifecycle.TRANSIENT,
        scope=scope or DEFAULT_SCOPE,
        factory=factory,
        dependency_tokens=tuple(dep for dep, _ in pairs),
        optional_flags=tuple(flag for _, flag in pairs),
    )


class ServiceRegistry:
    """Source of truth for what is injectable and how to construct it.

    One registry normally lives for the whole process (``default_registry``);
    containers receive it by reference. ``reset`` exists for test isolation
    and independent bootstraps only.
    """

    def __init__(self) -> None:
        self._descriptors: dict[Any, ServiceDescriptor] = {}
        self._lock = threading.Lock()

    def declare(
        self,
        token: Any,
        *,
        singleton: bool = True,
        scope: str = DEFAULT_SCOPE,
        factory: Callable[..., Any] | None = None,
        dependencies: Iterable[Any] = (),
    ) -> ServiceDescriptor:
        """Record (or replace) the descriptor for ``token`` and return it."""
        descriptor = build_descriptor(
            token,
            singleton=singleton,
            scope=scope,
            factory=factory,
            dependencies=dependencies,
        )
        with self._lock:
            self._descriptors[token] = descriptor
        return descriptor

    def injectable(
        self,
        *,
        singleton: bool = True,
        scope: str = DEFAULT_SCOPE,
        factory: Callable[..., Any] | None = None,
        dependencies: Iterable[Any] = (),
    ) -> Callable[[type[T]], type[T]]:
        """Class decorator form of :meth:`declare`."""
        dependency_list = list(dependencies)

        def decorator(cls: type[T]) -> type[T]:
            self.declare(
                cls,
                singleton=singleton,
                scope=scope,
                factory=factory,
                dependencies=dependency_list,
            )
            return cls

        return decorator

    def lookup(self, token: Any) -> ServiceDescriptor | None:
        return self._descriptors.get(token)

    def list_all(self) -> list[tuple[Any, ServiceDescriptor]]:
        with self._lock:
            return list(self._descriptors.items())

    def is_declared(self, token: Any) -> bool:
        return token in self._descriptors

    def reset(self) -> None:
        """Drop every descriptor."""
        with self._lock:
            self._descriptors.clear()

    def __len__(self) -> int:
        return len(self._descriptors)


default_registry = ServiceRegistry()


def injectable(
    *,
    singleton: bool = True,
    scope: str = DEFAULT_SCOPE,
    factory: Callable[..., Any] | None = None,
    dependencies: Iterable[Any] = (),
) -> Callable[[type[T]], type[T]]:
    """Declare a class on the process registry."""
    return default_registry.injectable(
        singleton=singleton, scope=scope, factory=factory, dependencies=dependencies
    )


__all__ = [
    "DEFAULT_SCOPE",
    "Lifecycle",
    "ServiceDescriptor",
    "ServiceRegistry",
    "build_descriptor",
    "default_registry",
    "injectable",
]
