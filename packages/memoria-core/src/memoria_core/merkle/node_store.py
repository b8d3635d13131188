"""Per-entity registry of content-addressed tree nodes."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from memoria_core.errors import InvalidInputError, NotFoundError
from memoria_core.events import LedgerEvent, NodeAdded, TreeStructureReplaced
from memoria_core.merkle.hashing import ZERO_HASH, normalize_hash
from memoria_core.merkle.models import EntityState, EntityTree, TreeNode

logger = logging.getLogger(__name__)


def index_parents(tree: EntityTree) -> None:
    """Rebuild the child -> parent index of *tree* from its nodes.

    The first declaring parent in insertion order wins, matching a forward
    scan over the node list.
    """
    tree.parents.clear()
    for parent_hash in tree.order:
        for child in tree.nodes[parent_hash].children():
            tree.parents.setdefault(child, parent_hash)


_HASH_FIELDS = {"hash", "left_child", "right_child"}


def _coerce_node(node: TreeNode | dict, entity: str) -> TreeNode:
    if isinstance(node, TreeNode):
        return node
    try:
        return TreeNode.model_validate(node)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "node"
        raise InvalidInputError(
            f"invalid node {field}: {first['msg']}",
            entity=entity,
            invariant="malformed hash" if field in _HASH_FIELDS else "malformed node",
        ) from e


class NodeStore:
    """Node registry for a single entity.

    Replacement is total: the previous generation is dropped before the new
    batch goes in. Child references are stored as given and never resolved
    here; IntegrityChecker reports the dangling ones.
    """

    def __init__(self, state: EntityState, events: list[LedgerEvent] | None = None) -> None:
        self._state = state
        self._tree = state.tree
        self._events = events if events is not None else []

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace(
        self,
        nodes: Iterable[TreeNode | dict],
        now: int,
        new_root: str | None = None,
    ) -> int:
        """Swap the whole tree for *nodes*. Returns the previous node count.

        *new_root* is only used for the summary record; it defaults to the
        entity's current root.
        """
        batch = [_coerce_node(n, self._state.entity) for n in nodes]
        for node in batch:
            if node.hash == ZERO_HASH:
                raise InvalidInputError(
                    "node hash cannot be zero",
                    entity=self._state.entity,
                    invariant="zero node hash",
                )

        previous_count = self._tree.node_count
        previous_root = self._state.ledger.root
        self._tree.order.clear()
        self._tree.nodes.clear()
        self._tree.parents.clear()

        for node in batch:
            stamped = node.model_copy(update={"inserted_at": now})
            if stamped.hash not in self._tree.nodes:
                self._tree.order.append(stamped.hash)
            self._tree.nodes[stamped.hash] = stamped
            self._events.append(
                NodeAdded(
                    entity=self._state.entity,
                    timestamp=now,
                    node_hash=stamped.hash,
                    level=stamped.level,
                    position=stamped.position,
                    is_leaf=stamped.is_leaf,
                )
            )
        index_parents(self._tree)

        self._events.append(
            TreeStructureReplaced(
                entity=self._state.entity,
                timestamp=now,
                previous_node_count=previous_count,
                new_node_count=self._tree.node_count,
                previous_root=previous_root,
                new_root=normalize_hash(new_root) if new_root is not None else previous_root,
            )
        )
        logger.debug(
            "Replaced tree for %s: %d -> %d nodes",
            self._state.entity,
            previous_count,
            self._tree.node_count,
        )
        return previous_count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def exists(self, node_hash: str | bytes) -> bool:
        h = normalize_hash(node_hash)
        return h != ZERO_HASH and h in self._tree.nodes

    def get(self, node_hash: str | bytes) -> TreeNode:
        h = normalize_hash(node_hash)
        node = self._tree.nodes.get(h)
        if node is None:
            raise NotFoundError("node not found", entity=self._state.entity, invariant="node not found")
        return node

    def find(self, node_hash: str) -> TreeNode | None:
        return self._tree.nodes.get(node_hash)

    def parent_of(self, node_hash: str) -> str | None:
        return self._tree.parents.get(node_hash)

    def all_nodes(self) -> list[TreeNode]:
        return [self._tree.nodes[h] for h in self._tree.order]

    def nodes_at_level(self, level: int) -> list[TreeNode]:
        return [n for n in self.all_nodes() if n.level == level]

    def leaf_nodes(self) -> list[TreeNode]:
        return [n for n in self.all_nodes() if n.is_leaf]

    @property
    def node_count(self) -> int:
        return self._tree.node_count

    def depth(self) -> int:
        """Highest level present; 0 for an empty or single-level tree."""
        return max((n.level for n in self._tree.nodes.values()), default=0)
