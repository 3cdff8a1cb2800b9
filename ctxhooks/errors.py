"""
Errors raised by the context engine.

All of them signal programmer misuse and are raised immediately by the
failing operation. Exceptions raised by initializers themselves are never
wrapped; they reach the caller of ``use``/``init`` unchanged.
"""

from __future__ import annotations

from typing import Any


class ContextError(Exception):
    """Base class for context engine errors."""

    pass


class NotInitializedError(ContextError, LookupError):
    """Raised by ``get`` when no state exists for a hook in the context chain."""

    def __init__(self, hook: Any) -> None:
        self.hook = hook
        super().__init__(
            f"State for hook {hook_name(hook)!r} is not yet initialized "
            "in this context or any of its ancestors"
        )


class SameContextError(ContextError, ValueError):
    """Raised when a context is forked into itself."""

    def __init__(self) -> None:
        super().__init__("parent and forked context cannot be the same")


class ContextInUseError(ContextError, ValueError):
    """Raised when the fork target already holds state or a parent link."""

    def __init__(self) -> None:
        super().__init__("forked context already in use")


def hook_name(hook: Any) -> str:
    """Best-effort readable name for a hook, used in messages and logs."""
    return getattr(hook, "__qualname__", None) or getattr(hook, "__name__", None) or repr(hook)
