"""
Engine: identity-keyed, hierarchical state store for hooks.

The engine associates contexts with the values their hooks produced:

- Association table: context -> own state (forkable and unforkable buckets)
- Parent link table: forked context -> the context it was forked from
- Unforkable registry: hook -> registration (owner hook, sharing flag)

All three tables are weak on their keys: the engine never keeps a context or
a hook alive on its own. Hooks are looked up by identity, so two functions
with identical code are always different keys.

Contexts that cannot be weakly referenced (a plain ``dict``, for instance)
are still accepted. They are held strongly in the same tables until
:meth:`Engine.dispose` (or :meth:`Engine.clear`) drops them.

Forking never creates a cycle: a fork target must carry no association,
must not have been disposed, and must not already be an ancestor of the
parent.

Lookup walks from a context up through its parents and stops at the first
context that owns a value for the hook. Unforkable hooks never take part in
that walk; their state is only read from, and written to, the exact context.

Thread-safety: none. The tables are shared by every caller of an engine, and
callers that touch one context tree from several threads must serialize that
access themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ctxhooks._weak import IdentityWeakMap, supports_weakref
from ctxhooks.config import FORK_MODES, EngineConfig
from ctxhooks.context import Context
from ctxhooks.errors import (
    ContextInUseError,
    NotInitializedError,
    SameContextError,
    hook_name,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Hook signature: (context, *args, **kwargs) -> value
Hook = Callable[..., T]

_MISSING: Any = object()


@dataclass(eq=False)
class _ContextState:
    """Own state of one context."""

    forkable: IdentityWeakMap = field(default_factory=IdentityWeakMap)
    unforkable: IdentityWeakMap = field(default_factory=IdentityWeakMap)
    # Snapshot forks own a full copy and stop falling back to their parent
    detached: bool = False


@dataclass(frozen=True)
class Registration:
    """
    Unforkable registration of a hook.

    Attributes:
        owner: The hook whose identity keys the stored value. For private
            registrations this is the hook itself.
        shared: True if clones of the hook resolve to the same owner.
    """

    owner: Any
    shared: bool = False


@dataclass(frozen=True)
class StateEntry:
    """One value owned by a context, as reported by :meth:`Engine.entries`."""

    hook: Any
    value: Any
    unforkable: bool = False


class Engine:
    """
    Owner of all context associations for one process (or one test).

    Most code uses the default engine through the module-level functions in
    :mod:`ctxhooks.accessor`; construct an ``Engine`` directly to keep a fully
    isolated set of contexts.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        """
        Initialize an engine with empty tables.

        Args:
            config: Engine settings. Defaults to ``EngineConfig()``.
        """
        self.config = config or EngineConfig()
        self._states: IdentityWeakMap[_ContextState] = IdentityWeakMap(allow_strong=True)
        self._parents: IdentityWeakMap[Any] = IdentityWeakMap(allow_strong=True)
        self._unforkable: IdentityWeakMap[Registration] = IdentityWeakMap()
        # Disposed contexts that may still be linked to from their forks
        self._retired: IdentityWeakMap[bool] = IdentityWeakMap()

    def __repr__(self) -> str:
        return (
            f"Engine(fork_mode={self.config.fork_mode!r}, "
            f"contexts={self.context_count})"
        )

    # ------------------------------------------------------------------
    # Association table
    # ------------------------------------------------------------------

    def _state(self, context: Any) -> _ContextState:
        state = self._states.get(context)
        if state is None:
            state = _ContextState()
            self._states.set(context, state)
            logger.debug("Associated new context %r", context)
        return state

    def associate(self, context: Any) -> Any:
        """
        Make *context* a valid context without storing any state in it.

        Returns:
            The same context.
        """
        self._state(context)
        return context

    def is_context(self, value: Any) -> bool:
        """Return True if *value* has been associated with this engine."""
        return value in self._states

    @property
    def context_count(self) -> int:
        """Number of live contexts associated with this engine."""
        return len(self._states)

    # ------------------------------------------------------------------
    # Unforkable registry
    # ------------------------------------------------------------------

    def mark_unforkable(self, hook: Hook, *, shared: bool = False, owner: Any = None) -> Hook:
        """
        Register *hook* as unforkable.

        Its state is never inherited by forks: each context materializes its
        own value on first access.

        Args:
            hook: The initializer to register.
            shared: If True, clones of *hook* (see :func:`ctxhooks.hooks.clone`)
                resolve to the same stored value within a context.
            owner: The hook whose identity keys the stored value. Defaults to
                *hook* itself. Only meaningful together with ``shared=True``.

        Returns:
            The hook, unchanged.

        Raises:
            ValueError: If *hook* is already registered differently.
        """
        registration = Registration(owner=hook if owner is None else owner, shared=shared)
        existing = self._unforkable.get(hook)
        if existing is not None:
            if existing.owner is registration.owner and existing.shared == shared:
                return hook
            raise ValueError(
                f"Hook {hook_name(hook)!r} is already registered as unforkable "
                "with a different owner or sharing mode"
            )
        self._unforkable.set(hook, registration)
        logger.debug(
            "Registered unforkable hook %s (shared=%s)", hook_name(hook), shared
        )
        return hook

    def is_unforkable(self, hook: Hook) -> bool:
        """Return True if *hook* is registered as unforkable."""
        return hook in self._unforkable

    def registration(self, hook: Hook) -> Registration | None:
        """Return the unforkable registration of *hook*, if any."""
        return self._unforkable.get(hook)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _find(self, context: Any, hook: Hook) -> tuple[Any, Any]:
        """
        Resolve *hook* from *context*.

        Returns:
            ``(holder, value)`` where *holder* is the context owning the value,
            or ``(None, _MISSING)`` when nothing is materialized.
        """
        registration = self._unforkable.get(hook)
        if registration is not None:
            state = self._states.get(context)
            if state is not None:
                value = state.unforkable.get(registration.owner, _MISSING)
                if value is not _MISSING:
                    return context, value
            return None, _MISSING

        current = context
        while current is not None:
            state = self._states.get(current)
            if state is not None:
                value = state.forkable.get(hook, _MISSING)
                if value is not _MISSING:
                    return current, value
                if state.detached:
                    break
            current = self._parents.get(current)
        return None, _MISSING

    def _store(self, context: Any, hook: Hook, value: Any) -> None:
        state = self._state(context)
        registration = self._unforkable.get(hook)
        if registration is not None:
            state.unforkable.set(registration.owner, value)
        else:
            state.forkable.set(hook, value)

    # ------------------------------------------------------------------
    # State accessor
    # ------------------------------------------------------------------

    def is_used(self, context: Any, hook: Hook) -> bool:
        """Return True if *hook* has a value reachable from *context*."""
        _, value = self._find(context, hook)
        return value is not _MISSING

    def init(self, context: Any, hook: Hook[T], *args: Any, **kwargs: Any) -> T:
        """
        Run *hook* and store its result as *context*'s own value.

        Any own value for the hook is replaced; values held by ancestors are
        left untouched. Nothing is stored if the hook raises.

        Args:
            context: The context to initialize the state in.
            hook: The initializer, called as ``hook(context, *args, **kwargs)``.

        Returns:
            The freshly computed value.
        """
        value = hook(context, *args, **kwargs)
        self._store(context, hook, value)
        logger.debug("Initialized %s in %r", hook_name(hook), context)
        return value

    def use(self, context: Any, hook: Hook[T], *args: Any, **kwargs: Any) -> T:
        """
        Return the value of *hook* reachable from *context*, initializing it
        in *context* if there is none.

        Arguments are only passed on when the hook actually runs.
        """
        _, value = self._find(context, hook)
        if value is not _MISSING:
            return value
        return self.init(context, hook, *args, **kwargs)

    def get(self, context: Any, hook: Hook[T]) -> T:
        """
        Return the value of *hook* reachable from *context*. Never runs the hook.

        Raises:
            NotInitializedError: If no value exists in the context chain.
        """
        _, value = self._find(context, hook)
        if value is _MISSING:
            raise NotInitializedError(hook)
        return value

    def is_inherited(self, context: Any, hook: Hook) -> bool:
        """Return True if the value reachable from *context* is owned by an ancestor."""
        holder, value = self._find(context, hook)
        return value is not _MISSING and holder is not context

    # ------------------------------------------------------------------
    # Fork
    # ------------------------------------------------------------------

    def fork(self, context: Any, target: Any = None, *, mode: str | None = None) -> Any:
        """
        Derive a child context from *context*.

        The child starts with no state of its own. In ``"reference"`` mode it
        reads its parent's forkable state until it initializes its own; in
        ``"copy"`` mode it receives a shallow snapshot of that state instead.
        Unforkable state is never visible in the child.

        Args:
            context: The parent context. Associated on the fly if new.
            target: Object to turn into the child context. A new
                :class:`~ctxhooks.context.Context` is created when omitted.
            mode: ``"reference"`` or ``"copy"``. Defaults to the engine's
                configured ``fork_mode``.

        Returns:
            The child context.

        Raises:
            SameContextError: If *target* is *context*.
            ContextInUseError: If *target* already holds state or a parent,
                was disposed, or is an ancestor of *context*.
            ValueError: If *mode* is not a known fork mode.
        """
        if target is context:
            raise SameContextError()
        if target is not None and self._in_use(context, target):
            raise ContextInUseError()

        mode = mode or self.config.fork_mode
        if mode not in FORK_MODES:
            raise ValueError(
                f"Invalid fork mode {mode!r}. Allowed values: {', '.join(FORK_MODES)}"
            )

        if target is None:
            target = Context()

        self._state(context)
        child = _ContextState()
        if mode == "copy":
            for hook, value in self._resolved_forkable(context):
                child.forkable.set(hook, value)
            child.detached = True

        self._states.set(target, child)
        self._parents.set(target, context)
        logger.debug("Forked %r into %r (mode=%s)", context, target, mode)
        return target

    def _in_use(self, context: Any, target: Any) -> bool:
        if target in self._states or target in self._parents or target in self._retired:
            return True
        return any(ancestor is target for ancestor in self._chain(context))

    def _resolved_forkable(self, context: Any) -> list[tuple[Any, Any]]:
        """Forkable values visible from *context*, nearest owner first."""
        seen: IdentityWeakMap[bool] = IdentityWeakMap()
        resolved: list[tuple[Any, Any]] = []
        for current in self._chain(context):
            state = self._states.get(current)
            if state is None:
                continue
            for hook, value in state.forkable.items():
                if hook not in seen:
                    seen.set(hook, True)
                    resolved.append((hook, value))
            if state.detached:
                break
        return resolved

    # ------------------------------------------------------------------
    # Parent links
    # ------------------------------------------------------------------

    def parent_of(self, context: Any) -> Any:
        """Return the context *context* was forked from, or None."""
        return self._parents.get(context)

    def _chain(self, context: Any) -> Iterator[Any]:
        current = context
        while current is not None:
            yield current
            current = self._parents.get(current)

    def ancestors(self, context: Any) -> Iterator[Any]:
        """Iterate over the ancestors of *context*, nearest first."""
        chain = self._chain(context)
        next(chain)
        yield from chain

    # ------------------------------------------------------------------
    # Introspection and teardown
    # ------------------------------------------------------------------

    def entries(self, context: Any) -> list[StateEntry]:
        """
        List the values owned by *context* itself (not inherited ones).

        Unforkable entries report the owner hook they are keyed by.
        """
        state = self._states.get(context)
        if state is None:
            return []
        result = [StateEntry(hook, value) for hook, value in state.forkable.items()]
        result.extend(
            StateEntry(owner, value, unforkable=True)
            for owner, value in state.unforkable.items()
        )
        return result

    def is_detached(self, context: Any) -> bool:
        """Return True if *context* is a snapshot fork that no longer reads its parent."""
        state = self._states.get(context)
        return state is not None and state.detached

    def dispose(self, context: Any) -> bool:
        """
        Drop all state and the parent link of *context*.

        Needed when stored values reference their own context, which keeps the
        context reachable through the association table, and for contexts
        that cannot be weakly referenced, which the engine holds strongly.
        Forks of *context* keep their link to it but no longer see its state.

        A disposed context can be used again, but never becomes a fork
        target: its forks may still link to it.

        Returns:
            True if anything was dropped.
        """
        dropped = self._states.pop(context, None) is not None
        dropped = (self._parents.pop(context, None) is not None) or dropped
        if dropped:
            if supports_weakref(context):
                self._retired.set(context, True)
            logger.debug("Disposed context %r", context)
        return dropped

    def clear(self) -> None:
        """
        Drop every association and parent link.

        Unforkable registrations are kept: they are fixed when a hook is
        built, and wrappers bound to this engine keep relying on them.
        """
        self._states.clear()
        self._parents.clear()
        self._retired.clear()
        logger.debug("Cleared engine tables")


# ---------------------------------------------------------------------------
# Default engine
# ---------------------------------------------------------------------------

_default_engine: Engine | None = None


def get_engine() -> Engine:
    """Return the process-wide default engine, creating it on first use."""
    global _default_engine
    if _default_engine is None:
        _default_engine = Engine()
    return _default_engine


def set_engine(engine: Engine) -> Engine | None:
    """
    Install *engine* as the default engine.

    Returns:
        The previously installed engine, or None.
    """
    global _default_engine
    previous, _default_engine = _default_engine, engine
    return previous


def reset_engine(config: EngineConfig | None = None) -> Engine:
    """
    Tear down the default engine and install a fresh one.

    Args:
        config: Settings for the new engine.

    Returns:
        The new default engine.
    """
    global _default_engine
    if _default_engine is not None:
        _default_engine.clear()
    _default_engine = Engine(config)
    return _default_engine
