"""
Functional API over the default engine, and bound context handles.

The module-level functions mirror :class:`~ctxhooks.engine.Engine` methods
and always act on the engine returned by :func:`~ctxhooks.engine.get_engine`
at call time:

```python
import ctxhooks

ctx = ctxhooks.create_context()
db = ctxhooks.use(ctx, connect)       # runs connect(ctx) once
same = ctxhooks.use(ctx, connect)     # cached
child = ctxhooks.fork(ctx)
ctxhooks.is_inherited(child, connect) # True
```
"""

from __future__ import annotations

from typing import Any, TypeVar

from ctxhooks.context import Context
from ctxhooks.engine import Engine, Hook, get_engine

T = TypeVar("T")


def is_context(value: Any) -> bool:
    """Return True if *value* is associated with the default engine."""
    return get_engine().is_context(value)


def is_used(context: Any, hook: Hook) -> bool:
    """Return True if *hook* has a value reachable from *context*."""
    return get_engine().is_used(context, hook)


def init(context: Any, hook: Hook[T], *args: Any, **kwargs: Any) -> T:
    """Run *hook* and store the result as *context*'s own value."""
    return get_engine().init(context, hook, *args, **kwargs)


def use(context: Any, hook: Hook[T], *args: Any, **kwargs: Any) -> T:
    """Return the reachable value of *hook*, initializing it if missing."""
    return get_engine().use(context, hook, *args, **kwargs)


def get(context: Any, hook: Hook[T]) -> T:
    """Return the reachable value of *hook*; raise if it was never initialized."""
    return get_engine().get(context, hook)


def is_inherited(context: Any, hook: Hook) -> bool:
    """Return True if the value of *hook* seen from *context* lives in an ancestor."""
    return get_engine().is_inherited(context, hook)


def fork(context: Any, target: Any = None, *, mode: str | None = None) -> Any:
    """Derive a child context from *context*. See :meth:`Engine.fork`."""
    return get_engine().fork(context, target, mode=mode)


class ContextHandle:
    """
    Accessor bound to one context and one engine.

    Handles are cheap views: several handles over the same context object
    read and write the same state.

    Attributes:
        context: The underlying context object.
        engine: The engine holding the context's state.
    """

    __slots__ = ("context", "engine")

    def __init__(self, context: Any, engine: Engine) -> None:
        self.context = context
        self.engine = engine

    def __repr__(self) -> str:
        return f"ContextHandle({self.context!r})"

    @property
    def parent(self) -> Any:
        """The context this one was forked from, or None."""
        return self.engine.parent_of(self.context)

    def is_used(self, hook: Hook) -> bool:
        return self.engine.is_used(self.context, hook)

    def init(self, hook: Hook[T], *args: Any, **kwargs: Any) -> T:
        return self.engine.init(self.context, hook, *args, **kwargs)

    def use(self, hook: Hook[T], *args: Any, **kwargs: Any) -> T:
        return self.engine.use(self.context, hook, *args, **kwargs)

    def get(self, hook: Hook[T]) -> T:
        return self.engine.get(self.context, hook)

    def is_inherited(self, hook: Hook) -> bool:
        return self.engine.is_inherited(self.context, hook)

    def fork(self, target: Any = None, *, mode: str | None = None) -> Any:
        """
        Fork the bound context.

        Returns:
            The child context (not a handle); wrap it with
            :func:`use_context` to access it the same way.
        """
        return self.engine.fork(self.context, target, mode=mode)


def use_context(context: Any = None, *, engine: Engine | None = None) -> ContextHandle:
    """
    Obtain a handle for *context*, creating a new context when omitted.

    The context is associated with the engine immediately, so
    :func:`is_context` holds for it afterwards.

    Args:
        context: Any object. Defaults to a new
            :class:`~ctxhooks.context.Context`.
        engine: Engine to use. Defaults to the default engine.

    Returns:
        A :class:`ContextHandle` bound to the context.

    Example:
        ```python
        root = use_context()
        root.use(load_settings)

        child = use_context(root.fork())
        child.is_inherited(load_settings)  # True
        ```
    """
    engine = engine or get_engine()
    if context is None:
        context = Context()
    engine.associate(context)
    return ContextHandle(context, engine)
