# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests.

Provides a small scene-graph host that owns its node ids and keeps parent
links in a OneToMany, the way an embedding system would.
"""

from itertools import count
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import pytest

from onetomany.config import Config
from onetomany.ids import Id
from onetomany.relation import OneToMany


class Node:
    """Marker family for scene nodes."""


class NodeHandle:
    """Host-side handle wrapping a node id."""

    def __init__(self, ident: Id[Node], name: str) -> None:
        self._ident = ident
        self.name = name

    def id(self) -> Id[Node]:
        return self._ident

    def __repr__(self) -> str:
        return f"NodeHandle({self.name!r}, {self._ident})"


class SceneGraph:
    """Minimal host: allocates ids, stores names, delegates parenting."""

    def __init__(self, config: Optional[Config] = None) -> None:
        self._next_index = count()
        self._free: List[Id[Node]] = []
        self.names: Dict[Id[Node], str] = {}
        self.parents: OneToMany[Node, Node] = OneToMany(config)

    def spawn(self, name: str) -> NodeHandle:
        ident = self._free.pop().next_generation() if self._free else Id.first(next(self._next_index))
        self.names[ident] = name
        return NodeHandle(ident, name)

    def attach(self, parent: NodeHandle, child: NodeHandle) -> None:
        self.parents.link(parent, child)

    def despawn(self, node: NodeHandle) -> None:
        """Delete a node and, recursively, everything under it."""
        for child in list(self.parents.targets_of(node)):
            self.despawn(NodeHandle(child, self.names[child]))
        self.parents.unlink_source(node)
        self.parents.unlink(node)
        del self.names[node.id()]
        self._free.append(node.id())

    def children(self, node: NodeHandle) -> List[str]:
        return sorted(self.names[child] for child in self.parents.targets_of(node))

    def walk(self, node: NodeHandle) -> Iterator[str]:
        yield node.name
        for child in sorted(self.parents.targets_of(node)):
            yield from self.walk(NodeHandle(child, self.names[child]))


@pytest.fixture
def scene() -> SceneGraph:
    return SceneGraph(Config.from_mapping({"check_invariants": True}))


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a configuration file enabling every optional behaviour."""
    path = tmp_path / ".onetomany.yml"
    path.write_text(
        "check_invariants: true\n"
        "prune_empty_sets: true\n"
        "log_mutations: true\n"
        "most_linked_limit: 1\n",
        encoding="utf-8",
    )
    return path
