"""
Composition wrappers: ready-made, self-memoizing hooks.

A hook is any function ``(context, *args, **kwargs) -> value``. The engine uses
the function object itself as the storage key, so the wrappers below only
decide *which* function identity is used as the key and *how* the context is
supplied:

- hook: Identity passthrough for typing
- anchor: ``anchor(fn)(ctx)`` is ``use(ctx, fn)``
- buoy / unforkable_anchor: Like anchor, but the state is never inherited by forks
- util: Like anchor, with an optional context (defaults to a process-wide scope)
- clone: Same behavior, new identity (hence independent state)
- factory / buoy_factory: Build a fresh, independent anchor (or buoy) per call

Wrappers are bound to the engine they were built with; pass ``engine=`` to
target a specific one, otherwise the default engine at construction time is
used.

Example:
    ```python
    @anchor
    def settings(ctx):
        return load_settings()

    @buoy
    def connection(ctx):
        return open_connection(settings(ctx))

    ctx = create_context()
    settings(ctx) is settings(ctx)   # True
    child = fork(ctx)
    settings(child) is settings(ctx)     # True, inherited
    connection(child) is connection(ctx) # False, buoys are per context
    ```
"""

from __future__ import annotations

import functools
from typing import Any, Callable, TypeVar

from ctxhooks.engine import Engine, Hook, get_engine

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])


def hook(fn: F) -> F:
    """Mark *fn* as a hook. Returns it unchanged."""
    return fn


def anchor(fn: Hook[T], *, engine: Engine | None = None) -> Hook[T]:
    """
    Wrap *fn* so that calling the wrapper memoizes *fn* in the given context.

    ``anchor(fn)(ctx, *args)`` is equivalent to ``use(ctx, fn, *args)``. The
    wrapped initializer is available as ``__wrapped__``.
    """
    eng = engine or get_engine()

    @functools.wraps(fn)
    def anchored(context: Any, *args: Any, **kwargs: Any) -> T:
        return eng.use(context, fn, *args, **kwargs)

    return anchored


def buoy(
    fn: Hook[T] | None = None,
    *,
    shared: bool | None = None,
    engine: Engine | None = None,
) -> Any:
    """
    Like :func:`anchor`, but *fn* is registered as unforkable first.

    The value is materialized separately in every context that asks for it,
    forks included. Can be used as ``@buoy`` or ``@buoy(shared=True)``.

    Args:
        fn: The initializer.
        shared: If True, the state is bound to *fn* as owner, so every
            :func:`clone` of *fn* sees the same value within a context.
            Defaults to the engine's ``buoy_sharing`` setting ("private").
        engine: Engine to register with and read from.

    Returns:
        The anchored hook, or a decorator when *fn* is omitted.
    """

    def decorator(func: Hook[T]) -> Hook[T]:
        eng = engine or get_engine()
        is_shared = eng.config.shared_buoys if shared is None else shared
        eng.mark_unforkable(func, shared=is_shared)
        return anchor(func, engine=eng)

    if fn is not None:
        return decorator(fn)
    return decorator


unforkable_anchor = buoy


def util(fn: Hook[T], *, engine: Engine | None = None) -> Callable[..., T]:
    """
    Like :func:`anchor`, but the context argument is optional.

    When called without a context (or with ``None``), *fn* itself is used as
    the context, so every such caller shares one process-wide value.
    """
    eng = engine or get_engine()

    @functools.wraps(fn)
    def utility(context: Any = None, *args: Any, **kwargs: Any) -> T:
        return eng.use(fn if context is None else context, fn, *args, **kwargs)

    return utility


def clone(fn: F, *, engine: Engine | None = None) -> F:
    """
    Return a function that behaves like *fn* but has its own identity.

    Clones are independent storage keys, so the same logic can back several
    independent states in one context. An unforkable *fn* yields an
    unforkable clone; if *fn* was registered with ``shared=True`` the clone
    resolves to the same owner and therefore to the same stored value.
    """
    eng = engine or get_engine()

    @functools.wraps(fn)
    def cloned(*args: Any, **kwargs: Any) -> Any:
        return fn(*args, **kwargs)

    registration = eng.registration(fn)
    if registration is not None:
        if registration.shared:
            eng.mark_unforkable(cloned, shared=True, owner=registration.owner)
        else:
            eng.mark_unforkable(cloned)

    return cloned  # type: ignore[return-value]


def factory(fn: Hook[T], *, engine: Engine | None = None) -> Callable[[], Hook[T]]:
    """
    Return a constructor producing a new ``anchor(clone(fn))`` on each call.

    Every produced hook memoizes independently of all the others.

    Example:
        ```python
        make_counter = factory(lambda ctx: itertools.count())
        a, b = make_counter(), make_counter()
        a(ctx) is b(ctx)  # False
        ```
    """
    eng = engine or get_engine()

    def construct() -> Hook[T]:
        return anchor(clone(fn, engine=eng), engine=eng)

    construct.__name__ = f"{getattr(fn, '__name__', 'hook')}_factory"
    construct.__doc__ = fn.__doc__
    return construct


def buoy_factory(
    fn: Hook[T],
    *,
    shared: bool | None = None,
    engine: Engine | None = None,
) -> Callable[[], Hook[T]]:
    """
    Like :func:`factory`, but every produced hook is a buoy.

    With private sharing each produced buoy has its own state. With
    ``shared=True`` all produced buoys resolve to *fn* as owner and share one
    value per context.
    """
    eng = engine or get_engine()
    is_shared = eng.config.shared_buoys if shared is None else shared
    eng.mark_unforkable(fn, shared=is_shared)

    def construct() -> Hook[T]:
        return anchor(clone(fn, engine=eng), engine=eng)

    construct.__name__ = f"{getattr(fn, '__name__', 'hook')}_buoy_factory"
    construct.__doc__ = fn.__doc__
    return construct
