"""Build a node batch, root and per-leaf proofs from raw payloads."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from memoria_core.errors import InvalidInputError
from memoria_core.merkle.hashing import compute_hash, hash_pair
from memoria_core.merkle.models import TreeNode


@dataclass(frozen=True)
class BuiltTree:
    """Output of build_tree(): everything a client submits or keeps."""

    root: str
    nodes: tuple[TreeNode, ...]
    leaves: tuple[str, ...]
    proofs: dict[str, list[str]] = field(default_factory=dict)

    @property
    def depth(self) -> int:
        return max((n.level for n in self.nodes), default=0)


def build_tree(payloads: Sequence[bytes | str]) -> BuiltTree:
    """Hash each payload into a leaf and pair levels up to a single root.

    Leaves keep input order. Parents use sorted-pair hashing; a level with
    an odd count pairs its last node with itself.
    """
    if not payloads:
        raise InvalidInputError("at least one payload is required")

    data = [p.encode("utf-8") if isinstance(p, str) else bytes(p) for p in payloads]
    leaves = [compute_hash(d) for d in data]
    if len(set(leaves)) != len(leaves):
        raise InvalidInputError("duplicate payloads produce duplicate leaf hashes")

    nodes: list[TreeNode] = [
        TreeNode(hash=h, data=d, level=0, position=i, is_leaf=True)
        for i, (h, d) in enumerate(zip(leaves, data))
    ]
    # Each leaf tracks its index in the current level while proofs grow.
    proofs: dict[str, list[str]] = {h: [] for h in leaves}
    index_of: dict[str, int] = {h: i for i, h in enumerate(leaves)}

    layer = list(leaves)
    level = 0
    while len(layer) > 1:
        if len(layer) % 2:
            layer.append(layer[-1])
        level += 1
        parents: list[str] = []
        for i in range(0, len(layer), 2):
            left, right = layer[i], layer[i + 1]
            parent = hash_pair(left, right)
            parents.append(parent)
            nodes.append(
                TreeNode(
                    hash=parent,
                    left_child=left,
                    right_child=right,
                    level=level,
                    position=i // 2,
                    is_leaf=False,
                )
            )
        for leaf, idx in index_of.items():
            sibling = idx ^ 1
            proofs[leaf].append(layer[sibling])
            index_of[leaf] = idx // 2
        layer = parents

    return BuiltTree(root=layer[0], nodes=tuple(nodes), leaves=tuple(leaves), proofs=proofs)
