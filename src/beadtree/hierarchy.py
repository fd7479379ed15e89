"""Parent/child forest built from ``parent-child`` dependency edges."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from .model import Issue


@dataclass
class TreeNode:
    issue: Issue
    depth: int = 0
    parent: str | None = None
    children: list[str] = field(default_factory=list)
    expanded: bool = False

    @property
    def id(self) -> str:
        return self.issue.id

    @property
    def has_children(self) -> bool:
        return bool(self.children)


def default_expanded(depth: int) -> bool:
    return depth == 0


class Forest:
    """Arena of tree nodes keyed by issue id; child lists hold ids."""

    def __init__(self) -> None:
        self.nodes: dict[str, TreeNode] = {}
        self.roots: list[str] = []

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, issue_id: object) -> bool:
        return issue_id in self.nodes

    def get(self, issue_id: str) -> TreeNode | None:
        return self.nodes.get(issue_id)

    def root_nodes(self) -> list[TreeNode]:
        return [self.nodes[rid] for rid in self.roots]

    def children_of(self, node: TreeNode) -> list[TreeNode]:
        return [self.nodes[cid] for cid in node.children]

    def parent_of(self, node: TreeNode) -> TreeNode | None:
        if node.parent is None:
            return None
        return self.nodes.get(node.parent)

    def ancestors(self, node: TreeNode) -> Iterator[TreeNode]:
        """Yield parents from nearest to the root."""
        current = self.parent_of(node)
        while current is not None:
            yield current
            current = self.parent_of(current)

    def walk(self, start: Iterable[str] | None = None) -> Iterator[TreeNode]:
        """Pre-order walk over the whole forest (expand state ignored)."""
        stack = list(reversed(list(self.roots if start is None else start)))
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def subtree(self, node: TreeNode) -> Iterator[TreeNode]:
        return self.walk([node.id])


def build_forest(issues: Iterable[Issue] | None) -> Forest:
    """Build a forest from a flat issue collection.

    An issue is a root when it names no parent, when its parent is not part
    of the collection, or when its parent chain loops back on itself. Cycle
    members unreachable from a true root are promoted to roots in input
    order, so every issue ends up in the forest exactly once.
    """
    forest = Forest()
    by_id: dict[str, Issue] = {}
    order: list[str] = []
    for issue in issues or ():
        if not issue.id or issue.id in by_id:
            continue
        by_id[issue.id] = issue
        order.append(issue.id)

    parent_of: dict[str, str] = {}
    children_of: dict[str, list[str]] = {}
    for issue_id in order:
        for parent_id in by_id[issue_id].parent_ids():
            if parent_id in by_id and parent_id != issue_id:
                parent_of[issue_id] = parent_id
                children_of.setdefault(parent_id, []).append(issue_id)
                break

    for issue_id in order:
        if issue_id not in parent_of:
            _build_subtree(forest, by_id, children_of, issue_id)

    for issue_id in order:
        if issue_id not in forest.nodes:
            _build_subtree(forest, by_id, children_of, issue_id)

    return forest


def _build_subtree(
    forest: Forest,
    by_id: dict[str, Issue],
    children_of: dict[str, list[str]],
    root_id: str,
) -> None:
    forest.roots.append(root_id)
    forest.nodes[root_id] = TreeNode(
        issue=by_id[root_id],
        depth=0,
        expanded=default_expanded(0),
    )

    # Explicit stack instead of recursion; ``path`` holds the ids on the
    # current root-to-node path and is released on backtrack.
    path: set[str] = {root_id}
    stack: list[tuple[str, int]] = [(root_id, 0)]
    while stack:
        node_id, next_child = stack[-1]
        kids = children_of.get(node_id, [])
        if next_child >= len(kids):
            stack.pop()
            path.discard(node_id)
            continue
        stack[-1] = (node_id, next_child + 1)
        child_id = kids[next_child]
        if child_id in path or child_id in forest.nodes:
            continue
        parent = forest.nodes[node_id]
        depth = parent.depth + 1
        forest.nodes[child_id] = TreeNode(
            issue=by_id[child_id],
            depth=depth,
            parent=node_id,
            expanded=default_expanded(depth),
        )
        parent.children.append(child_id)
        path.add(child_id)
        stack.append((child_id, 0))
