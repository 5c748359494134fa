"""Rebuild the WorkFlowy outline tree from a flat /nodes-export list.

/nodes-export returns every node once, in no guaranteed order, each with a
``parent_id`` back-reference. This module turns that list into a forest of
:class:`TreeNode` roots in O(n):

- Pass 1 builds an ``id -> TreeNode`` index (duplicate ids are rejected).
- Pass 2 links every node under its parent, appending in input order.
- A reachability walk from the roots verifies that no node was dropped.

Policies:
- ``parent_id`` missing/blank -> root.
- ``parent_id`` pointing outside the input set -> orphan, promoted to root
  and recorded in ``NodeForest.orphan_ids``.
- Parent chains that loop (including a node that is its own parent) can
  never reach a root; they raise :class:`TreeCycleError`.

Pure CPU work, no I/O; every call builds a fresh set of TreeNodes.
"""

from __future__ import annotations

import weakref
from typing import Iterable, Iterator

from ..models import WorkFlowyNode


class TreeBuildError(ValueError):
    """Input that cannot be turned into a forest."""


class TreeCycleError(TreeBuildError):
    """Parent references form a cycle."""

    def __init__(self, node_ids: list[str]) -> None:
        self.node_ids = node_ids
        preview = ", ".join(node_ids[:10])
        more = f" (+{len(node_ids) - 10} more)" if len(node_ids) > 10 else ""
        super().__init__(
            f"Cyclic parent chain: {len(node_ids)} node(s) cannot reach a root: {preview}{more}"
        )


class TreeNode:
    """A node plus its place in the rebuilt tree.

    The parent link is a weak reference; ownership flows strictly
    parent -> children.
    """

    __slots__ = ("node", "children", "_parent_ref", "__weakref__")

    def __init__(self, node: WorkFlowyNode) -> None:
        self.node = node
        self.children: list[TreeNode] = []
        self._parent_ref: weakref.ReferenceType[TreeNode] | None = None

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def parent(self) -> TreeNode | None:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def is_root(self) -> bool:
        return self._parent_ref is None

    @property
    def depth(self) -> int:
        depth = 0
        current = self.parent
        while current is not None:
            depth += 1
            current = current.parent
        return depth

    def _attach(self, child: TreeNode) -> None:
        child._parent_ref = weakref.ref(self)
        self.children.append(child)

    def iter_subtree(self) -> Iterator[TreeNode]:
        """Pre-order walk of this node and its descendants (no recursion)."""
        stack: list[TreeNode] = [self]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    def subtree_size(self) -> int:
        return sum(1 for _ in self.iter_subtree())

    def __repr__(self) -> str:
        return f"TreeNode(id={self.node.id!r}, name={self.node.name!r}, children={len(self.children)})"


class NodeForest:
    """Result of :func:`build_tree`: root TreeNodes plus an id index."""

    def __init__(
        self,
        roots: list[TreeNode],
        index: dict[str, TreeNode],
        orphan_ids: list[str],
    ) -> None:
        self.roots = roots
        self.orphan_ids = orphan_ids
        self._index = index

    @property
    def node_count(self) -> int:
        return len(self._index)

    def get(self, node_id: str) -> TreeNode | None:
        return self._index.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def __iter__(self) -> Iterator[TreeNode]:
        return iter(self.roots)

    def __len__(self) -> int:
        return len(self.roots)

    def iter_nodes(self) -> Iterator[TreeNode]:
        """Every TreeNode, root by root, in pre-order."""
        for root in self.roots:
            yield from root.iter_subtree()


def _parent_key(node: WorkFlowyNode) -> str | None:
    parent_id = node.parent_id
    if parent_id is None or not parent_id.strip():
        return None
    return parent_id


def build_tree(nodes: Iterable[WorkFlowyNode], order_by_priority: bool = False) -> NodeForest:
    """Link a flat node list into a forest.

    Args:
        nodes: Flat nodes, typically from ``export_nodes()``, in any order.
        order_by_priority: Stable-sort each sibling list by ``priority``
            instead of keeping input order.

    Raises:
        TreeBuildError: duplicate node ids.
        TreeCycleError: parent references that loop.
    """
    flat = list(nodes)

    # Pass 1: index
    index: dict[str, TreeNode] = {}
    for node in flat:
        if node.id in index:
            raise TreeBuildError(f"Duplicate node id in input: {node.id!r}")
        index[node.id] = TreeNode(node)

    # Pass 2: link
    roots: list[TreeNode] = []
    orphan_ids: list[str] = []
    for node in flat:
        tree_node = index[node.id]
        parent_id = _parent_key(node)

        if parent_id is None:
            roots.append(tree_node)
            continue

        parent = index.get(parent_id)
        if parent is None:
            # Parent not in this export: keep the node reachable as a root
            orphan_ids.append(node.id)
            roots.append(tree_node)
            continue

        parent._attach(tree_node)

    if order_by_priority:
        for tree_node in index.values():
            if len(tree_node.children) > 1:
                tree_node.children.sort(key=lambda child: child.node.priority)

    forest = NodeForest(roots, index, orphan_ids)

    reached = set()
    for tree_node in forest.iter_nodes():
        reached.add(tree_node.node.id)

    if len(reached) != len(index):
        unreached = [node.id for node in flat if node.id not in reached]
        raise TreeCycleError(unreached)

    if any(root.parent is not None for root in roots):
        raise TreeBuildError("A root node carries a parent link")

    return forest


def format_outline(forest: NodeForest, include_notes: bool = True) -> str:
    """Render the forest as an indented markdown bullet list."""
    lines: list[str] = []

    stack = [(root, 0) for root in reversed(forest.roots)]
    while stack:
        tree_node, indent = stack.pop()
        node = tree_node.node
        status = "[x] " if node.completed else ""
        lines.append(f"{'  ' * indent}- {status}{node.name or '(untitled)'}")

        if include_notes and node.note:
            lines.append(f"{'  ' * (indent + 1)}Note: {node.note}")

        stack.extend((child, indent + 1) for child in reversed(tree_node.children))

    return "\n".join(lines)
