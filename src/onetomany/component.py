# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Sparse keyed storage for per-identifier values.

This module provides the storage layer a relation is built on. Each store
maps ids of one family to a value and treats absent ids as holding a default,
so callers never register an id before using it.

Components:
- ComponentStore: Abstract interface for storage backends
- InMemoryComponent: dict-backed implementation
- Component: Read-only view over a store
- KeyedSetView: Live read-only view of the set stored under one key
"""

from abc import ABC, abstractmethod
from collections.abc import Set as AbstractSet
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

from onetomany.ids import Id

F = TypeVar("F")
V = TypeVar("V")

_EMPTY: frozenset = frozenset()


class ComponentStore(ABC, Generic[F, V]):
    """Abstract sparse storage keyed by ``Id[F]``.

    Only explicitly inserted keys are stored. Reading an absent key through
    ``__getitem__`` yields the store default instead of raising, which makes
    "never seen" and "explicitly empty" indistinguishable to readers.

    NOT thread-safe: callers serialize access to the owning relation.
    """

    @abstractmethod
    def get(self, key: Id[F]) -> Optional[V]:
        """Get the stored value for a key.

        Args:
            key: Id to look up.

        Returns:
            The stored value (the same object, mutable values included),
            or None if the key is absent.
        """
        pass

    @abstractmethod
    def get_or_insert_with(self, key: Id[F], factory: Callable[[], V]) -> V:
        """Get the stored value, inserting ``factory()`` first if absent.

        Args:
            key: Id to look up.
            factory: Builds the value stored for an absent key.

        Returns:
            The stored value, which callers may mutate in place.
        """
        pass

    @abstractmethod
    def insert(self, key: Id[F], value: V) -> Optional[V]:
        """Store a value, replacing any previous one.

        Returns:
            The previous value, or None if the key was absent.
        """
        pass

    @abstractmethod
    def remove(self, key: Id[F]) -> Optional[V]:
        """Remove a key. Removing an absent key is a no-op.

        Returns:
            The removed value, or None if the key was absent.
        """
        pass

    @abstractmethod
    def items(self) -> List[Tuple[Id[F], V]]:
        """Snapshot of all stored (key, value) pairs."""
        pass

    @abstractmethod
    def default(self) -> Any:
        """Value reported for keys that are not stored."""
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def __contains__(self, key: object) -> bool:
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    def __getitem__(self, key: Id[F]) -> Any:
        value = self.get(key)
        if value is None:
            return self.default()
        return value


class InMemoryComponent(ComponentStore[F, V]):
    """dict-backed sparse store.

    Lookups, inserts and removals are O(1) average case. The default factory
    is called on every read of an absent key, so a mutable default handed to
    a caller is never shared with the store.
    """

    def __init__(self, default_factory: Callable[[], Any]) -> None:
        self._values: Dict[Id[F], V] = {}
        self._default_factory = default_factory

    def get(self, key: Id[F]) -> Optional[V]:
        return self._values.get(key)

    def get_or_insert_with(self, key: Id[F], factory: Callable[[], V]) -> V:
        value = self._values.get(key)
        if value is None:
            value = factory()
            self._values[key] = value
        return value

    def insert(self, key: Id[F], value: V) -> Optional[V]:
        previous = self._values.get(key)
        self._values[key] = value
        return previous

    def remove(self, key: Id[F]) -> Optional[V]:
        return self._values.pop(key, None)

    def items(self) -> List[Tuple[Id[F], V]]:
        return list(self._values.items())

    def default(self) -> Any:
        return self._default_factory()

    def clear(self) -> None:
        self._values.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)


class KeyedSetView(AbstractSet):
    """Read-only, live view of the set a store holds under one key.

    The key is resolved again on every access. A view taken before the key
    was ever inserted starts empty and picks up the set once it exists, and
    a view whose entry was dropped from the store reads as empty again.
    """

    def __init__(self, store: ComponentStore[Any, Any], key: Id[Any]) -> None:
        self._store = store
        self._key = key

    @classmethod
    def _from_iterable(cls, it: Iterable[Any]) -> frozenset:
        # Set algebra (|, &, -) produces plain frozensets, not new views.
        return frozenset(it)

    def _current(self) -> AbstractSet:
        value = self._store.get(self._key)
        return _EMPTY if value is None else value

    def __contains__(self, item: object) -> bool:
        return item in self._current()

    def __iter__(self) -> Iterator[Any]:
        return iter(self._current())

    def __len__(self) -> int:
        return len(self._current())

    def __repr__(self) -> str:
        members = ", ".join(str(item) for item in sorted(self._current()))
        return f"{type(self).__name__}({{{members}}})"


class Component(Generic[F, V]):
    """Read-only view over a ComponentStore.

    Exposes lookups without any mutators. Absent keys read as the store
    default. When ``view`` is given, ``__getitem__`` wraps each lookup with it
    (used to hand out read-only set views instead of the stored sets).
    """

    def __init__(
        self,
        store: ComponentStore[F, V],
        view: Optional[Callable[[ComponentStore[F, V], Id[F]], Any]] = None,
    ) -> None:
        self._store = store
        self._view = view

    def __getitem__(self, key: Id[F]) -> Any:
        if self._view is not None:
            return self._view(self._store, key)
        return self._store[key]

    def get(self, key: Id[F]) -> Any:
        """Same as ``self[key]``; kept for Mapping-style call sites."""
        return self[key]

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[Id[F]]:
        return iter([key for key, _ in self._store.items()])
