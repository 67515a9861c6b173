# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Unit tests for sparse component storage.

Tests cover:
- ComponentStore interface contract
- InMemoryComponent implementation
- Component read-only view
- KeyedSetView liveness
"""

import pytest

from onetomany.component import Component, ComponentStore, InMemoryComponent, KeyedSetView
from onetomany.ids import Id

a = Id.first(0)
b = Id.first(1)


class TestComponentStore:
    """Tests for the abstract interface."""

    def test_cannot_instantiate_abstract_store(self):
        """Test ComponentStore requires an implementation."""
        with pytest.raises(TypeError):
            ComponentStore()  # type: ignore[abstract]


class TestInMemoryComponent:
    """Tests for InMemoryComponent implementation."""

    def test_initialization(self):
        """Test store initializes empty."""
        store = InMemoryComponent(set)

        assert len(store) == 0
        assert store.items() == []

    def test_get_absent(self):
        """Test get returns None for absent keys."""
        store = InMemoryComponent(set)

        assert store.get(a) is None
        assert a not in store

    def test_getitem_absent_returns_default(self):
        """Test indexing an absent key yields the default without storing it."""
        store = InMemoryComponent(set)

        assert store[a] == set()
        assert a not in store

    def test_default_is_fresh_per_read(self):
        """Test a mutable default handed out is not shared with the store."""
        store = InMemoryComponent(set)

        store[a].add(b)

        assert store[a] == set()

    def test_insert_returns_previous(self):
        """Test insert replaces the value and returns the old one."""
        store = InMemoryComponent(lambda: None)

        assert store.insert(a, "first") is None
        assert store.insert(a, "second") == "first"
        assert store[a] == "second"

    def test_remove(self):
        """Test remove returns the value and forgets the key."""
        store = InMemoryComponent(lambda: None)
        store.insert(a, "value")

        assert store.remove(a) == "value"
        assert a not in store
        assert store[a] is None

    def test_remove_absent_is_noop(self):
        """Test removing an absent key returns None."""
        store = InMemoryComponent(lambda: None)

        assert store.remove(a) is None
        assert len(store) == 0

    def test_get_or_insert_with_inserts_once(self):
        """Test the factory runs only for absent keys."""
        store = InMemoryComponent(set)
        calls = []

        def factory():
            calls.append(1)
            return set()

        first = store.get_or_insert_with(a, factory)
        first.add(b)
        second = store.get_or_insert_with(a, factory)

        assert second is first
        assert store[a] == {b}
        assert len(calls) == 1

    def test_get_returns_stored_object(self):
        """Test get hands back the stored value for in-place mutation."""
        store = InMemoryComponent(set)
        store.insert(a, set())

        store.get(a).add(b)

        assert store[a] == {b}

    def test_items_and_clear(self):
        """Test items snapshot and clear."""
        store = InMemoryComponent(lambda: None)
        store.insert(a, 1)
        store.insert(b, 2)

        assert sorted(store.items()) == [(a, 1), (b, 2)]

        store.clear()

        assert len(store) == 0


class TestComponent:
    """Tests for the read-only Component view."""

    def test_reads_through_to_store(self):
        """Test lookups, membership, length and iteration."""
        store = InMemoryComponent(lambda: None)
        store.insert(a, "value")
        view = Component(store)

        assert view[a] == "value"
        assert view.get(a) == "value"
        assert view[b] is None
        assert a in view
        assert b not in view
        assert len(view) == 1
        assert list(view) == [a]

    def test_reflects_later_inserts(self):
        """Test the view is not a snapshot."""
        store = InMemoryComponent(lambda: None)
        view = Component(store)

        store.insert(a, "value")

        assert view[a] == "value"

    def test_has_no_mutators(self):
        """Test the view exposes no way to change the store."""
        view = Component(InMemoryComponent(set))

        for name in ("insert", "remove", "get_or_insert_with", "clear"):
            assert not hasattr(view, name)
        with pytest.raises(TypeError):
            view[a] = {b}  # type: ignore[index]

    def test_view_wrapper(self):
        """Test a view factory wraps each lookup."""
        store = InMemoryComponent(set)
        store.insert(a, {b})
        view = Component(store, view=KeyedSetView)

        assert isinstance(view[a], KeyedSetView)
        assert view[a] == {b}


class TestKeyedSetView:
    """Tests for KeyedSetView."""

    def test_absent_key_reads_empty(self):
        """Test a view over an absent key is empty."""
        view = KeyedSetView(InMemoryComponent(set), a)

        assert len(view) == 0
        assert list(view) == []
        assert b not in view

    def test_tracks_insertion_after_creation(self):
        """Test the view picks up a set inserted later."""
        store = InMemoryComponent(set)
        view = KeyedSetView(store, a)

        store.get_or_insert_with(a, set).add(b)

        assert view == {b}
        assert b in view

    def test_tracks_removal(self):
        """Test the view reads empty once the entry is removed."""
        store = InMemoryComponent(set)
        store.insert(a, {b})
        view = KeyedSetView(store, a)

        store.remove(a)

        assert view == set()

    def test_equality_both_directions(self):
        """Test comparison with plain sets works either way round."""
        store = InMemoryComponent(set)
        store.insert(a, {b})
        view = KeyedSetView(store, a)

        assert view == {b}
        assert {b} == view
        assert frozenset({b}) == view
        assert view != {a}

    def test_set_algebra_returns_frozenset(self):
        """Test operators return detached frozensets."""
        store = InMemoryComponent(set)
        store.insert(a, {a, b})
        view = KeyedSetView(store, a)

        assert (view & {b}) == frozenset({b})
        assert isinstance(view - {a}, frozenset)
        assert view.isdisjoint({Id.first(5)})

    def test_repr(self):
        """Test repr lists sorted members."""
        store = InMemoryComponent(set)
        store.insert(a, {b, a})

        assert repr(KeyedSetView(store, a)) == "KeyedSetView({0v0, 1v0})"
