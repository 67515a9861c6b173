# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Typed identifiers for the two families of a relation.

Identifiers are allocated by the host system. This module only defines the
value type the relation keys on:
- Id: generational index tagged with a phantom family type
- ValidId: protocol for host handles that can produce an Id

The family parameter exists for the type checker only. ``Id[Node]`` and
``Id[Edge]`` are the same class at runtime, so passing an id of the wrong
family is caught statically rather than by the relation.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Protocol, TypeVar

F = TypeVar("F")


@dataclass(frozen=True, order=True)
class Id(Generic[F]):
    """Generational identifier for one element of family ``F``.

    Two ids are equal only when both index and generation match, so a recycled
    slot (same index, next generation) never aliases its previous occupant.
    Ordering is by index, then generation.
    """

    index: int
    generation: int = 0

    @classmethod
    def first(cls, index: int) -> "Id[F]":
        """Create the first-generation id for a slot.

        Args:
            index: Slot index assigned by the host allocator.

        Returns:
            Id with generation 0.
        """
        return cls(index=index, generation=0)

    def next_generation(self) -> "Id[F]":
        """Id for the same slot after it has been recycled once more."""
        return Id(index=self.index, generation=self.generation + 1)

    def id(self) -> "Id[F]":
        return self

    def __str__(self) -> str:
        return f"{self.index}v{self.generation}"

    def to_dict(self) -> Dict[str, int]:
        """Serialize to JSON-compatible dict.

        Returns:
            Dictionary with index and generation.
        """
        return {"index": self.index, "generation": self.generation}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Id[F]":
        """Deserialize from JSON-compatible dict.

        Args:
            data: Dictionary containing an ``index`` and optionally a ``generation``.

        Returns:
            Id instance.

        Raises:
            KeyError: If ``index`` is missing from data dict.
        """
        return cls(index=data["index"], generation=data.get("generation", 0))


class ValidId(Protocol[F]):
    """Anything that resolves to an ``Id`` of family ``F``.

    Hosts usually wrap ids in richer handles (entities, scene nodes). The
    relation accepts those handles directly and calls ``id()`` on them.
    """

    def id(self) -> Id[F]: ...
