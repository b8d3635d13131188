"""Tests for IntegrityChecker — per-node validity and whole-tree scans."""

from __future__ import annotations

import pytest

from conftest import h, internal, leaf
from memoria_core.merkle import ZERO_HASH, IntegrityChecker, NodeStore
from memoria_core.merkle.models import EntityState


def _checker(nodes, root=ZERO_HASH) -> IntegrityChecker:
    state = EntityState(entity="e")
    store = NodeStore(state)
    store.replace(nodes, now=1)
    return IntegrityChecker("e", store, root)


class TestIndividualNode:
    def test_missing_node(self):
        result = _checker([leaf("a")]).verify_individual_node(h("ghost"))
        assert result.exists is False
        assert result.is_valid is False
        assert result.issues == ["node not found"]

    def test_zero_hash_is_missing(self):
        assert _checker([leaf("a")]).verify_individual_node(ZERO_HASH).exists is False

    def test_leaf_with_parent_is_valid(self, small_tree):
        result = _checker(small_tree).verify_individual_node(h("leaf1"))
        assert result.exists
        assert result.has_valid_parent
        assert result.parent_hash == h("parent1")
        assert result.is_valid

    def test_leaf_without_parent_is_invalid(self, small_tree):
        result = _checker(small_tree).verify_individual_node(h("leaf3"))
        assert result.has_valid_parent is False
        assert result.parent_hash == ZERO_HASH
        assert result.is_valid is False
        assert "no parent references this node" in result.issues

    def test_root_exempt_from_parent(self, small_tree):
        result = _checker(small_tree, root=h("parent1")).verify_individual_node(h("parent1"))
        assert result.is_root
        assert result.has_valid_parent is False
        assert result.has_valid_children
        assert result.is_valid

    def test_dangling_child_flags_internal_node(self):
        """Non-leaf A names B as left child, B is never inserted."""
        a = internal("A", h("B"), ZERO_HASH)
        result = _checker([a], root=h("A")).verify_individual_node(h("A"))
        assert result.exists
        assert result.has_valid_children is False
        assert result.is_valid is False
        assert any("left child" in issue for issue in result.issues)

    def test_leaf_ignores_dangling_children(self):
        odd_leaf = leaf("odd").model_copy(update={"left_child": h("nowhere")})
        result = _checker([odd_leaf], root=h("odd")).verify_individual_node(h("odd"))
        assert result.has_valid_children is False
        assert result.is_valid is True


class TestScan:
    def test_consistent_tree(self):
        nodes = [leaf("l1"), leaf("l2"), internal("root", h("l1"), h("l2"))]
        report = _checker(nodes, root=h("root")).scan()
        assert report.ok
        assert report.node_count == 3

    def test_reports_invalid_and_dangling(self, small_tree):
        nodes = small_tree + [internal("broken", h("gone"), h("leaf3"), level=2)]
        report = _checker(nodes, root=h("broken")).scan()
        assert not report.ok
        assert report.dangling == [h("gone")]
        invalid = {r.node_hash for r in report.invalid}
        # parent1 has no parent and is not the root; broken has a dangling child.
        assert invalid == {h("parent1"), h("broken")}

    @pytest.mark.parametrize("root", [ZERO_HASH, h("unstored")])
    def test_empty_tree(self, root):
        report = _checker([], root=root).scan()
        assert report.ok
        assert report.node_count == 0
