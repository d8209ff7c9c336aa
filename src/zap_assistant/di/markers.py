"""Injection markers: per-dependency metadata consumed by the container.

Markers never resolve anything on their own. An ``Inject`` placed in a
``dependencies`` list annotates that constructor position; an ``Inject``
assigned as a class attribute marks a property that the container fills in
after construction::

    @injectable(dependencies=[Inject("ILogger"), optional("IAIService")])
    class Transcriber:
        def __init__(self, logger, ai):
            ...

    @injectable()
    class UserRepository:
        db = Inject(DatabaseService)
"""

from __future__ import annotations

from typing import Any

from .errors import token_name


class Inject:
    """Explicit dependency token with an optional flag."""

    __slots__ = ("token", "optional", "name")

    def __init__(self, token: Any, *, optional: bool = False) -> None:
        if token is None:
            raise ValueError("Inject requires an explicit token")
        self.token = token
        self.optional = optional
        self.name: str | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        flag = ", optional=True" if self.optional else ""
        return f"Inject({token_name(self.token)}{flag})"


def optional(token: Any) -> Inject:
    """Mark ``token`` as a dependency whose absence resolves to ``None``."""
    return Inject(token, optional=True)


def split_dependency(entry: Any) -> tuple[Any, bool]:
    """Return ``(token, optional)`` for a dependency list entry."""
    if isinstance(entry, Inject):
        return entry.token, entry.optional
    return entry, False


def property_injections(cls: type) -> list[tuple[str, Inject]]:
    """Return the property markers declared on ``cls`` and its bases.

    Subclass definitions take precedence over base class ones.
    """
    found: dict[str, Inject] = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if isinstance(value, Inject):
                found[name] = value
            elif name in found:
                del found[name]
    return list(found.items())


__all__ = ["Inject", "optional", "property_injections", "split_dependency"]
