"""Tests for PathFinder — leaf-to-root walks and the hop bound."""

from __future__ import annotations

import pytest

from conftest import h, internal, leaf
from memoria_core.errors import InvalidInputError, NotFoundError
from memoria_core.merkle import ZERO_HASH, NodeStore, PathFinder, build_tree
from memoria_core.merkle.models import EntityState


def _finder(nodes, root) -> PathFinder:
    state = EntityState(entity="e")
    store = NodeStore(state)
    store.replace(nodes, now=1)
    return PathFinder("e", store, root)


def test_two_level_tree():
    nodes = [leaf("leaf"), internal("root", h("leaf"), ZERO_HASH)]
    assert _finder(nodes, h("root")).path_to_root(h("leaf")) == [h("leaf"), h("root")]


def test_single_node_tree_is_its_own_root():
    assert _finder([leaf("only")], h("only")).path_to_root(h("only")) == [h("only")]


def test_built_tree_path_ends_at_root():
    built = build_tree([b"a", b"b", b"c", b"d", b"e"])
    finder = _finder(built.nodes, built.root)
    path = finder.path_to_root(built.leaves[0])
    assert path[0] == built.leaves[0]
    assert path[-1] == built.root
    assert len(path) == built.depth + 1


def test_unstored_root_returns_partial_path(small_tree):
    """Root hash is not a stored node, so the walk stops at the top parent."""
    path = _finder(small_tree, h("root")).path_to_root(h("leaf1"))
    assert path == [h("leaf1"), h("parent1")]


def test_missing_leaf(small_tree):
    with pytest.raises(NotFoundError, match="leaf node not found"):
        _finder(small_tree, h("root")).path_to_root(h("nonexistent"))


def test_non_leaf_rejected(small_tree):
    with pytest.raises(InvalidInputError, match="node is not a leaf"):
        _finder(small_tree, h("root")).path_to_root(h("parent1"))


def test_zero_hop_bound_rejected(small_tree):
    with pytest.raises(InvalidInputError) as exc_info:
        _finder(small_tree, h("root")).path_to_root(h("leaf1"), max_hops=0)
    assert exc_info.value.invariant == "zero iteration bound"


class TestHopBound:
    @pytest.fixture
    def cyclic(self) -> PathFinder:
        """X and Y name each other as children, so the walk never reaches the root."""
        nodes = [
            leaf("L"),
            internal("X", h("L"), h("Y"), level=1),
            internal("Y", h("X"), ZERO_HASH, level=2),
        ]
        return _finder(nodes, h("elsewhere"))

    def test_default_bound(self, cyclic):
        path = cyclic.path_to_root(h("L"))
        assert len(path) == 257

    def test_custom_bound(self, cyclic):
        path = cyclic.path_to_root(h("L"), max_hops=5)
        assert path == [h("L"), h("X"), h("Y"), h("X"), h("Y"), h("X")]
