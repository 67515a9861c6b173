# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""One-to-many relation between two identifier families.

A OneToMany keeps two sparse indices in lockstep:
- targets: Source id -> set of Target ids it owns
- source: Target id -> the Source id that owns it

Every Target has at most one owner, and both indices describe the same set
of links after every public call. No operation fails: ids that were never
linked read as an empty set or as no owner.

The relation is single-threaded. Hosts sharing one across threads wrap the
whole relation in their own lock.
"""

import logging
from datetime import datetime, timezone
from typing import AbstractSet, Any, Dict, Generic, List, Optional, Set, Tuple, TypeVar

from onetomany.component import Component, InMemoryComponent, KeyedSetView
from onetomany.config import Config
from onetomany.ids import Id, ValidId

logger = logging.getLogger(__name__)

S = TypeVar("S")
T = TypeVar("T")

EXPORT_FORMAT_VERSION = "1.0"


class InvariantError(Exception):
    """Raised when invariant checking is enabled and the indices disagree.

    Attributes:
        errors: Every inconsistency found by OneToMany.validate().
    """

    def __init__(self, errors: List[str]) -> None:
        super().__init__(f"Relation indices are inconsistent ({len(errors)} errors): {errors}")
        self.errors = errors


class OneToMany(Generic[S, T]):
    """Bidirectional one-to-many index from Sources to Targets.

    Usage:
        parents: OneToMany[Node, Node] = OneToMany()
        parents.link(root, child)
        parents.targets_of(root)   # KeyedSetView({child})
        parents.source_of(child)   # root

    Methods taking ids accept any ValidId, so host handles can be passed
    directly.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        """Initialize an empty relation.

        Args:
            config: Behaviour flags. If None, defaults are used without
                    reading any configuration file.
        """
        if config is None:
            config = Config.from_mapping({})
        self._config = config

        self._targets: InMemoryComponent[S, Set[Id[T]]] = InMemoryComponent(set)
        self._source: InMemoryComponent[T, Id[S]] = InMemoryComponent(lambda: None)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def targets(self) -> Component[S, Set[Id[T]]]:
        """Read-only forward index. ``relation.targets[s]`` is a live set view."""
        return Component(self._targets, view=KeyedSetView)

    @property
    def source(self) -> Component[T, Id[S]]:
        """Read-only backward index. ``relation.source[t]`` is the owner or None."""
        return Component(self._source)

    # =========================================================================
    # Mutation
    # =========================================================================

    def link(self, source: ValidId[S], target: ValidId[T]) -> None:
        """Make ``source`` the owner of ``target``.

        Any previous link of ``target`` is torn down first, so linking moves a
        Target between Sources, and linking a Target to its current owner
        leaves a single membership.

        Args:
            source: Owning Source.
            target: Target to attach.
        """
        self._link(source.id(), target.id())
        self._after_mutation()

    def _link(self, source: Id[S], target: Id[T]) -> None:
        previous = self._unlink(target)

        self._source.insert(target, source)
        self._targets.get_or_insert_with(source, set).add(target)

        if self._config.log_mutations:
            if previous is None:
                logger.debug(f"Linked target {target} to source {source}")
            else:
                logger.debug(f"Moved target {target} from source {previous} to {source}")

    def unlink(self, target: ValidId[T]) -> None:
        """Detach ``target`` from its owner. No-op if it has none.

        Args:
            target: Target to detach.
        """
        previous = self._unlink(target.id())
        if previous is not None and self._config.log_mutations:
            logger.debug(f"Unlinked target {target.id()} from source {previous}")
        self._after_mutation()

    def _unlink(self, target: Id[T]) -> Optional[Id[S]]:
        """Remove the link of a Target from both indices.

        Returns:
            The previous owner, or None if the Target was not linked.
        """
        existing_source = self._source.remove(target)
        if existing_source is None:
            return None

        targets = self._targets.get(existing_source)
        if targets is not None:
            targets.discard(target)
            self._prune(existing_source, targets)
        return existing_source

    def unlink_source(self, source: ValidId[S]) -> None:
        """Detach every Target owned by ``source``. No-op if it owns none.

        Args:
            source: Source whose Targets are released.
        """
        source_id = source.id()
        targets = self._targets.get(source_id)
        if not targets:
            self._after_mutation()
            return

        drained = list(targets)
        targets.clear()
        for target in drained:
            self._source.remove(target)
        self._prune(source_id, targets)

        if self._config.log_mutations:
            logger.debug(f"Unlinked {len(drained)} targets from source {source_id}")
        self._after_mutation()

    def clear(self) -> None:
        """Drop every link."""
        self._targets.clear()
        self._source.clear()

    def _prune(self, source: Id[S], targets: Set[Id[T]]) -> None:
        if not targets and self._config.prune_empty_sets:
            self._targets.remove(source)

    def _after_mutation(self) -> None:
        if not self._config.check_invariants:
            return
        is_valid, errors = self.validate()
        if not is_valid:
            logger.error(f"Relation invariant violated after mutation: {errors}")
            raise InvariantError(errors)

    # =========================================================================
    # Queries
    # =========================================================================

    def targets_of(self, source: ValidId[S]) -> AbstractSet[Id[T]]:
        """Targets currently owned by ``source``.

        Returns:
            Live read-only set view. Empty if ``source`` owns nothing.
        """
        return KeyedSetView(self._targets, source.id())

    def source_of(self, target: ValidId[T]) -> Optional[Id[S]]:
        """Current owner of ``target``, or None."""
        return self._source.get(target.id())

    def __len__(self) -> int:
        """Number of linked Targets."""
        return len(self._source)

    def __contains__(self, target: object) -> bool:
        """Whether a Target currently has an owner."""
        resolve = getattr(target, "id", None)
        if resolve is None:
            return False
        return resolve() in self._source

    def links(self) -> List[Tuple[Id[S], Id[T]]]:
        """All (source, target) pairs, sorted by target."""
        return sorted(
            ((source, target) for target, source in self._source.items()),
            key=lambda pair: pair[1],
        )

    def copy(self) -> "OneToMany[S, T]":
        """Independent copy sharing no mutable state with this relation."""
        clone: OneToMany[S, T] = OneToMany(self._config)
        for source, targets in self._targets.items():
            clone._targets.insert(source, set(targets))
        for target, source in self._source.items():
            clone._source.insert(target, source)
        return clone

    # =========================================================================
    # Consistency
    # =========================================================================

    def validate(self) -> Tuple[bool, List[str]]:
        """Validate that both indices describe the same links.

        Checks for:
        - Back-references whose owner does not list the Target
        - Target set members whose back-reference names another owner or none

        Returns:
            Tuple of (is_valid, error_messages).
            - is_valid: True if the indices agree, False otherwise
            - error_messages: List of inconsistencies found (empty if valid)
        """
        errors: List[str] = []

        for target, owner in self._source.items():
            owned = self._targets.get(owner)
            if owned is None or target not in owned:
                errors.append(
                    f"Index inconsistency: target {target} → source {owner} "
                    f"not in targets index"
                )

        for source, owned in self._targets.items():
            for target in owned:
                owner = self._source.get(target)
                if owner != source:
                    errors.append(
                        f"Index inconsistency: source {source} → target {target} "
                        f"but source index has {owner}"
                    )

        is_valid = len(errors) == 0
        return is_valid, errors

    def detect_corruption(self) -> bool:
        """Run validate() and log any errors found.

        Returns:
            True if corruption detected, False if the relation is valid.
        """
        is_valid, errors = self.validate()
        if not is_valid:
            logger.error(
                f"Relation corruption detected! Found {len(errors)} consistency errors. "
                f"Errors: {errors}"
            )
            return True
        return False

    # =========================================================================
    # Export
    # =========================================================================

    def export_to_dict(self) -> Dict[str, Any]:
        """Export the relation to a JSON-compatible dict.

        Returns:
            Dictionary containing:
            - metadata: timestamp, format version, counts
            - links: every (source, target) pair, sorted by target
            - graph_metadata: Sources owning the most Targets
        """
        populated = [(source, targets) for source, targets in self._targets.items() if targets]

        metadata = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": EXPORT_FORMAT_VERSION,
            "total_sources": len(populated),
            "total_targets": len(self._source),
        }

        links = [
            {"source": source.to_dict(), "target": target.to_dict()}
            for source, target in self.links()
        ]

        return {
            "metadata": metadata,
            "links": links,
            "graph_metadata": {
                "most_linked_sources": self._get_most_linked_sources(populated),
            },
        }

    def _get_most_linked_sources(
        self, populated: List[Tuple[Id[S], Set[Id[T]]]]
    ) -> List[Dict[str, Any]]:
        """Sources with the largest target sets, ties broken by id."""
        ranked = sorted(populated, key=lambda item: (-len(item[1]), item[0]))
        return [
            {"source": source.to_dict(), "target_count": len(targets)}
            for source, targets in ranked[: self._config.most_linked_limit]
        ]
