"""Structural integrity checks over the stored node set.

Parents are never stored on a node; they are implied by some other node
naming it as a child. NodeStore keeps that relation as a reverse index built
at replace time, so the per-node check is a lookup rather than a scan.
"""

from __future__ import annotations

from memoria_core.merkle.hashing import ZERO_HASH, normalize_hash
from memoria_core.merkle.models import IntegrityReport, NodeIntegrity
from memoria_core.merkle.node_store import NodeStore


class IntegrityChecker:
    """Reports, never raises, structural inconsistencies."""

    def __init__(self, entity: str, store: NodeStore, root: str) -> None:
        self._entity = entity
        self._store = store
        self._root = root

    def verify_individual_node(self, node_hash: str | bytes) -> NodeIntegrity:
        h = normalize_hash(node_hash)
        node = self._store.find(h) if h != ZERO_HASH else None
        if node is None:
            return NodeIntegrity(node_hash=h, issues=["node not found"])

        issues: list[str] = []
        is_root = h == self._root

        parent = self._store.parent_of(h)
        has_valid_parent = parent is not None
        if not has_valid_parent and not is_root:
            issues.append("no parent references this node")

        missing = [c for c in node.children() if not self._store.exists(c)]
        has_valid_children = not missing
        if not node.is_leaf:
            for child in missing:
                side = "left" if child == node.left_child else "right"
                issues.append(f"{side} child {child} not found")

        is_valid = (has_valid_parent or is_root) and (node.is_leaf or has_valid_children)
        return NodeIntegrity(
            node_hash=h,
            exists=True,
            is_leaf=node.is_leaf,
            is_root=is_root,
            has_valid_parent=has_valid_parent,
            parent_hash=parent or ZERO_HASH,
            has_valid_children=has_valid_children,
            is_valid=is_valid,
            issues=issues,
        )

    def scan(self) -> IntegrityReport:
        """Check every stored node and collect dangling child references."""
        invalid: list[NodeIntegrity] = []
        dangling: list[str] = []
        for node in self._store.all_nodes():
            result = self.verify_individual_node(node.hash)
            if not result.is_valid:
                invalid.append(result)
            for child in node.children():
                if not self._store.exists(child) and child not in dangling:
                    dangling.append(child)
        return IntegrityReport(
            entity=self._entity,
            root=self._root,
            node_count=self._store.node_count,
            invalid=invalid,
            dangling=dangling,
        )
