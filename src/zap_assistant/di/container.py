"""Service container resolving object graphs from registry descriptors."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar, cast, overload

from .errors import (
    CircularDependencyError,
    InjectionError,
    NotInjectableError,
    ServiceConstructionError,
    ServiceNotFoundError,
    token_name,
)
from .markers import property_injections
from .registry import ServiceDescriptor, ServiceRegistry, default_registry

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class ServiceContainer:
    """Dependency container with singleton caching and cycle detection.

    Registrations map a token either to an explicit descriptor (values and
    factory functions) or to the registry entry of a declared class, which is
    looked up again on every resolve. Singletons are built lazily on first
    resolve under a per-token lock, so concurrent first callers wait for the
    builder instead of constructing duplicates. A build is cached only if the
    token was not re-registered, unregistered or cleared while it ran.
    """

    def __init__(
        self,
        registry: ServiceRegistry | None = None,
        *,
        auto_register: bool = False,
    ) -> None:
        """Initialise container storage, optionally registering every declared class."""
        self._registry = registry if registry is not None else default_registry
        self._registrations: dict[Any, ServiceDescriptor | None] = {}
        self._instances: dict[Any, Any] = {}
        self._lock = threading.RLock()
        self._token_locks: dict[Any, threading.RLock] = {}
        self._versions: dict[Any, int] = {}
        self._generation = 0
        self._local = threading.local()

        if auto_register:
            self.scan_and_register()

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    # Registration -------------------------------------------------------------
    def register(self, token: Any, provider: Any) -> None:
        """Register ``provider`` under ``token``.

        A class is looked up in the registry and must have been declared. Any
        other callable is a zero-argument singleton factory. Everything else is
        a value returned unchanged by every resolve.
        """
        if isinstance(provider, type):
            declared = self._registry.lookup(provider)
            if declared is None:
                raise NotInjectableError(provider)
            descriptor = None
            if token is not provider:
                descriptor = dataclasses.replace(
                    declared, token=token, factory=declared.factory or provider
                )
            self._store(token, descriptor)
        elif callable(provider):
            self._store(token, ServiceDescriptor(token=token, factory=provider))
        else:
            self._store(
                token, ServiceDescriptor(token=token, factory=_constant(provider)), provider
            )
        LOGGER.debug("Registered service: %s", token_name(token))

    def register_class(self, cls: type[Any]) -> None:
        """Register a declared class under its own token."""
        if not self._registry.is_declared(cls):
            raise NotInjectableError(cls)
        self._store(cls, None)
        LOGGER.debug("Registered class: %s", cls.__name__)

    def unregister(self, token: Any) -> None:
        """Remove ``token`` and any cached instance for it."""
        with self._token_lock(token), self._lock:
            self._registrations.pop(token, None)
            self._instances.pop(token, None)
            self._bump(token)

    def scan_and_register(self) -> int:
        """Register every class declared on the registry that is not registered yet."""
        count = 0
        for token, _descriptor in self._registry.list_all():
            if isinstance(token, type) and token not in self._registrations:
                self.register_class(token)
                count += 1
        LOGGER.info("Auto-registered %d services", count)
        return count

    def _store(
        self,
        token: Any,
        descriptor: ServiceDescriptor | None,
        *value: Any,
    ) -> None:
        with self._token_lock(token), self._lock:
            self._registrations[token] = descriptor
            self._instances.pop(token, None)
            self._bump(token)
            if value:
                self._instances[token] = value[0]

    def _bump(self, token: Any) -> None:
        self._versions[token] = self._versions.get(token, 0) + 1

    def _stamp(self, token: Any) -> tuple[int, int]:
        return self._generation, self._versions.get(token, 0)

    # Resolution ---------------------------------------------------------------
    @overload
    def resolve(self, token: type[T]) -> T: ...

    @overload
    def resolve(self, token: Any) -> Any: ...

    def resolve(self, token: Any) -> Any:
        """Return the instance for ``token``, building it and its dependencies if needed."""
        return self._resolve(token, optional=False)

    def resolve_optional(self, token: Any) -> Any | None:
        """Resolve ``token`` or return ``None`` when it is not registered."""
        return self._resolve(token, optional=True)

    def _resolve(self, token: Any, *, optional: bool) -> Any:
        stack = self._resolution_stack()
        if token in stack:
            cycle = [*stack[stack.index(token):], token]
            raise CircularDependencyError(cycle)

        with self._lock:
            descriptor = self.descriptor_for(token)
            cached = self._instances.get(token, _MISSING)
        if descriptor is None:
            if optional:
                return None
            raise ServiceNotFoundError(token)
        if cached is not _MISSING:
            return cached

        if not descriptor.is_singleton:
            return self._construct(token, descriptor, stack)

        with self._token_lock(token):
            with self._lock:
                # Another thread may have finished building while we waited.
                if token in self._instances:
                    return self._instances[token]
                stamp = self._stamp(token)
            instance = self._construct(token, descriptor, stack)
            with self._lock:
                if self._stamp(token) == stamp:
                    self._instances[token] = instance
                else:
                    LOGGER.debug(
                        "Registration for %s changed during construction; not caching",
                        token_name(token),
                    )
            return instance

    def _construct(self, token: Any, descriptor: ServiceDescriptor, stack: list[Any]) -> Any:
        stack.append(token)
        try:
            arguments = [
                self._resolve_dependency(dependency, is_optional)
                for dependency, is_optional in descriptor.dependencies
            ]
            builder = _builder_for(descriptor)
            try:
                instance = builder(*arguments)
            except InjectionError:
                raise
            except Exception as exc:
                raise ServiceConstructionError(token, exc) from exc

            for name, marker in property_injections(type(instance)):
                value = self._resolve_dependency(marker.token, marker.optional)
                try:
                    setattr(instance, name, value)
                except (AttributeError, TypeError) as exc:
                    raise ServiceConstructionError(token, exc) from exc
            return instance
        finally:
            stack.pop()

    def _resolve_dependency(self, token: Any, is_optional: bool) -> Any:
        if not is_optional:
            return self._resolve(token, optional=False)
        try:
            return self._resolve(token, optional=True)
        except ServiceNotFoundError:
            LOGGER.debug("Optional dependency %s unavailable", token_name(token))
            return None

    def _resolution_stack(self) -> list[Any]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = []
            self._local.stack = stack
        return cast(list[Any], stack)

    def _token_lock(self, token: Any) -> threading.RLock:
        lock = self._token_locks.get(token)
        if lock is None:
            with self._lock:
                lock = self._token_locks.setdefault(token, threading.RLock())
        return lock

    # Introspection ------------------------------------------------------------
    def descriptor_for(self, token: Any) -> ServiceDescriptor | None:
        """Return the descriptor used to build ``token``, or ``None`` if unregistered."""
        if token not in self._registrations:
            return None
        descriptor = self._registrations.get(token)
        if descriptor is None:
            return self._registry.lookup(token)
        return descriptor

    def has(self, token: Any) -> bool:
        return token in self._registrations

    def get_registered_services(self) -> list[Any]:
        with self._lock:
            return list(self._registrations)

    def get_instances(self) -> dict[Any, Any]:
        """Return a copy of the cached singleton instances."""
        with self._lock:
            return dict(self._instances)

    def validate_dependency_graph(self) -> list[Any]:
        """Check the declared graph without constructing anything.

        Raises :class:`CircularDependencyError` for a cycle and returns the
        required dependency tokens that have no registration.
        """
        visited: set[Any] = set()
        missing: list[Any] = []
        path: list[Any] = []

        def visit(token: Any) -> None:
            if token in path:
                raise CircularDependencyError([*path[path.index(token):], token])
            if token in visited:
                return
            visited.add(token)
            descriptor = self.descriptor_for(token)
            if descriptor is None:
                return
            path.append(token)
            for dependency, is_optional in _graph_edges(descriptor):
                if not self.has(dependency):
                    if not is_optional and dependency not in missing:
                        missing.append(dependency)
                    continue
                visit(dependency)
            path.pop()

        for token in self.get_registered_services():
            visit(token)

        if missing:
            LOGGER.warning(
                "Unregistered dependencies: %s",
                ", ".join(token_name(token) for token in missing),
            )
        else:
            LOGGER.info("Dependency graph validation successful")
        return missing

    def clear(self) -> None:
        """Drop all registrations and cached instances.

        Builds still in flight finish for their callers but are not cached.
        """
        with self._lock:
            self._registrations.clear()
            self._instances.clear()
            self._token_locks.clear()
            self._versions.clear()
            self._generation += 1


def _constant(value: Any) -> Callable[[], Any]:
    return lambda: value


def _builder_for(descriptor: ServiceDescriptor) -> Callable[..., Any]:
    if descriptor.factory is not None:
        return descriptor.factory
    return cast(Callable[..., Any], descriptor.token)


def _graph_edges(descriptor: ServiceDescriptor) -> list[tuple[Any, bool]]:
    edges = descriptor.dependencies
    target = descriptor.factory if isinstance(descriptor.factory, type) else descriptor.token
    if isinstance(target, type):
        edges += [(marker.token, marker.optional) for _, marker in property_injections(target)]
    return edges


__all__ = ["ServiceContainer"]
