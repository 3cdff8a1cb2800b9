"""
Context: the default scope object under which hook state is stored.

A context carries no data of its own. The engine associates state with it by
identity, so any object can serve as a context; this class
is simply the one the library creates when the caller does not supply one.
"""

from __future__ import annotations

import itertools

_counter = itertools.count(1)


class Context:
    """
    Opaque, weak-referenceable scope object.

    Attributes:
        name: Optional label used by ``repr`` and the display helpers.
    """

    __slots__ = ("name", "__weakref__")

    def __init__(self, name: str | None = None) -> None:
        self.name = name or f"context-{next(_counter)}"

    def __repr__(self) -> str:
        return f"Context({self.name!r})"


def create_context(name: str | None = None) -> Context:
    """Create a fresh, unassociated context."""
    return Context(name)
