"""Tests for rebuilding the outline from a flat export."""

import gc

import pytest

from conftest import node_payload
from workflowy_api.client.tree_builder import (
    TreeBuildError,
    TreeCycleError,
    TreeNode,
    build_tree,
    format_outline,
)
from workflowy_api.models import WorkFlowyNode


def make(node_id, parent_id=None, **extra):
    return WorkFlowyNode.model_validate(node_payload(node_id, parent_id=parent_id, **extra))


def test_parent_with_two_children():
    forest = build_tree([make("p"), make("c1", "p"), make("c2", "p")])

    assert [root.id for root in forest.roots] == ["p"]
    parent = forest.roots[0]
    assert [child.id for child in parent.children] == ["c1", "c2"]
    assert all(child.parent is parent for child in parent.children)
    assert forest.orphan_ids == []
    assert forest.node_count == 3


def test_children_listed_before_parent():
    forest = build_tree([make("c2", "p"), make("c1", "p"), make("p")])
    assert [child.id for child in forest.get("p").children] == ["c2", "c1"]


def test_every_node_appears_exactly_once():
    nodes = [make("a"), make("b", "a"), make("c", "b"), make("d", "a"), make("e"), make("f", "e")]
    forest = build_tree(nodes)

    seen = [tree_node.id for tree_node in forest.iter_nodes()]
    assert sorted(seen) == sorted(n.id for n in nodes)
    assert len(seen) == len(set(seen))
    assert forest.get("c").depth == 2
    assert forest.get("a").subtree_size() == 4
    assert all(root.is_root and root.parent is None for root in forest)


def test_blank_parent_is_root():
    forest = build_tree([make("a", "  "), make("b", "")])
    assert [root.id for root in forest.roots] == ["a", "b"]
    assert forest.orphan_ids == []


def test_orphan_is_promoted_to_root():
    forest = build_tree([make("a"), make("lost", "gone"), make("kid", "lost")])

    assert [root.id for root in forest.roots] == ["a", "lost"]
    assert forest.orphan_ids == ["lost"]
    assert forest.get("lost").parent is None
    assert [child.id for child in forest.get("lost").children] == ["kid"]


def test_cycle_is_rejected():
    with pytest.raises(TreeCycleError) as info:
        build_tree([make("root"), make("x", "y"), make("y", "x")])
    assert sorted(info.value.node_ids) == ["x", "y"]


def test_self_parent_is_rejected():
    with pytest.raises(TreeCycleError) as info:
        build_tree([make("loop", "loop")])
    assert info.value.node_ids == ["loop"]


def test_duplicate_ids_are_rejected():
    with pytest.raises(TreeBuildError):
        build_tree([make("a"), make("a")])


def test_empty_input():
    forest = build_tree([])
    assert forest.roots == []
    assert forest.node_count == 0
    assert format_outline(forest) == ""


def test_priority_ordering_is_optional():
    nodes = [make("p"), make("c1", "p", priority=2), make("c2", "p", priority=1)]

    assert [c.id for c in build_tree(nodes).get("p").children] == ["c1", "c2"]
    ordered = build_tree(nodes, order_by_priority=True)
    assert [c.id for c in ordered.get("p").children] == ["c2", "c1"]


def test_parent_link_does_not_keep_parent_alive():
    forest = build_tree([make("p"), make("c", "p")])
    child = forest.get("c")
    assert child.parent is not None

    del forest
    gc.collect()
    assert child.parent is None


def test_membership_and_lookup():
    forest = build_tree([make("a"), make("b", "a")])
    assert "b" in forest
    assert "zzz" not in forest
    assert forest.get("zzz") is None
    assert len(forest) == 1


def test_format_outline():
    forest = build_tree(
        [
            make("p", name="Project"),
            make("c1", "p", name="Done task", completed=True),
            make("c2", "p", name="Open task", note="details"),
        ]
    )
    assert format_outline(forest) == (
        "- Project\n"
        "  - [x] Done task\n"
        "  - Open task\n"
        "    Note: details"
    )
    assert "Note:" not in format_outline(forest, include_notes=False)


def test_root_with_parent_link_is_rejected(monkeypatch):
    monkeypatch.setattr(TreeNode, "parent", property(lambda self: self))
    with pytest.raises(TreeBuildError, match="parent link"):
        build_tree([make("a")])
