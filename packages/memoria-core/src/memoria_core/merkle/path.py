"""Leaf-to-root path reconstruction."""

from __future__ import annotations

from memoria_core.errors import InvalidInputError, NotFoundError
from memoria_core.merkle.hashing import ZERO_HASH, normalize_hash
from memoria_core.merkle.node_store import NodeStore

MAX_PATH_HOPS = 256


class PathFinder:
    def __init__(self, entity: str, store: NodeStore, root: str) -> None:
        self._entity = entity
        self._store = store
        self._root = root

    def path_to_root(self, leaf_hash: str | bytes, max_hops: int = MAX_PATH_HOPS) -> list[str]:
        """Hashes from *leaf_hash* up to the root, both ends included.

        Stops early, without error, when a node has no parent or the hop
        bound runs out; the partial path is returned as-is.
        """
        if max_hops < 1:
            raise InvalidInputError(
                f"max_hops must be positive, got {max_hops}",
                entity=self._entity,
                invariant="zero iteration bound",
            )
        h = normalize_hash(leaf_hash)
        node = self._store.find(h) if h != ZERO_HASH else None
        if node is None:
            raise NotFoundError("leaf node not found", entity=self._entity, invariant="leaf not found")
        if not node.is_leaf:
            raise InvalidInputError("node is not a leaf", entity=self._entity, invariant="not a leaf")

        path = [h]
        current = h
        hops = 0
        while current != self._root and hops < max_hops:
            parent = self._store.parent_of(current)
            if parent is None:
                break
            path.append(parent)
            current = parent
            hops += 1
        return path
