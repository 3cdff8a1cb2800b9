"""
IdentityWeakMap: identity-keyed mapping that never owns its keys.

``weakref.WeakKeyDictionary`` hashes keys with ``__hash__``/``__eq__``, which
would let two equal-but-distinct objects share an entry (and rejects
unhashable keys outright). Contexts and hooks are keyed by identity only, so
this map indexes entries by ``id()`` and keeps a weak reference next to each
value to tell a live key from a recycled id.

Maps created with ``allow_strong=True`` also accept keys that cannot be weakly
referenced (``dict``, ``list``, ...). Those keys are held strongly until they
are removed with :meth:`IdentityWeakMap.pop` or :meth:`IdentityWeakMap.clear`.

Limitation: a value that strongly references its own key keeps that key alive
for as long as the map is reachable. Drop such entries explicitly with
:meth:`IdentityWeakMap.pop`.
"""

from __future__ import annotations

import weakref
from collections.abc import Callable, Iterator
from typing import Any, Generic, TypeVar

V = TypeVar("V")

_MISSING: Any = object()


def supports_weakref(obj: object) -> bool:
    """Return True if *obj* can be weakly referenced."""
    try:
        weakref.ref(obj)
    except TypeError:
        return False
    return True


class _StrongRef:
    """Stand-in for ``weakref.ref`` that owns its referent."""

    __slots__ = ("_obj",)

    def __init__(self, obj: object) -> None:
        self._obj = obj

    def __call__(self) -> object:
        return self._obj


class IdentityWeakMap(Generic[V]):
    """Mapping from object identity to a value, without strong key references."""

    def __init__(self, allow_strong: bool = False) -> None:
        """
        Args:
            allow_strong: If True, keys that cannot be weakly referenced are
                stored with a strong reference instead of raising TypeError.
        """
        self._data: dict[int, tuple[Callable[[], Any], V]] = {}
        self._allow_strong = allow_strong

    def _ref(self, key: object, callback: Any) -> Callable[[], Any]:
        try:
            return weakref.ref(key, callback)
        except TypeError as e:
            if self._allow_strong:
                return _StrongRef(key)
            raise TypeError(
                f"Objects of type {type(key).__name__!r} cannot be tracked by "
                "identity: they do not support weak references"
            ) from e

    def _entry(self, key: object) -> tuple[Callable[[], Any], V] | None:
        entry = self._data.get(id(key))
        if entry is not None and entry[0]() is key:
            return entry
        return None

    def get(self, key: object, default: Any = None) -> Any:
        """Return the value stored for *key*, or *default*."""
        entry = self._entry(key)
        return default if entry is None else entry[1]

    def set(self, key: object, value: V) -> None:
        """Store *value* for *key*, replacing any existing value."""
        entry = self._entry(key)
        if entry is not None:
            self._data[id(key)] = (entry[0], value)
            return

        ident = id(key)
        selfref = weakref.ref(self)

        def _evict(ref: weakref.ref, ident: int = ident) -> None:
            owner = selfref()
            if owner is None:
                return
            current = owner._data.get(ident)
            # The slot may already belong to a newer object with the same id
            if current is not None and current[0] is ref:
                del owner._data[ident]

        self._data[ident] = (self._ref(key, _evict), value)

    def setdefault(self, key: object, default: V) -> V:
        """Return the value for *key*, storing *default* first if absent."""
        entry = self._entry(key)
        if entry is not None:
            return entry[1]
        self.set(key, default)
        return default

    def pop(self, key: object, default: Any = _MISSING) -> Any:
        """
        Remove *key* and return its value.

        Raises:
            KeyError: If *key* is absent and no default was given.
        """
        entry = self._entry(key)
        if entry is None:
            if default is _MISSING:
                raise KeyError(key)
            return default
        del self._data[id(key)]
        return entry[1]

    def items(self) -> Iterator[tuple[Any, V]]:
        """Iterate over (key, value) pairs whose keys are still alive."""
        for ref, value in list(self._data.values()):
            key = ref()
            if key is not None:
                yield key, value

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: object) -> bool:
        return self._entry(key) is not None

    def __len__(self) -> int:
        return sum(1 for ref, _ in list(self._data.values()) if ref() is not None)

    def __repr__(self) -> str:
        return f"IdentityWeakMap({len(self)} entries)"
