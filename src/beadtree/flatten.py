"""Flatten the forest into the ordered list of visible rows."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from .filtering import FilterResult
from .hierarchy import Forest, TreeNode
from .sorting import SortDirection, SortField, sort_nodes


@dataclass(frozen=True)
class FlatEntry:
    node: TreeNode
    depth: int
    dimmed: bool = False
    parent_id: str | None = None
    is_last: bool = True
    # One flag per ancestor level below the displayed root: True when that
    # ancestor has a later sibling, i.e. its vertical guide continues.
    guides: tuple[bool, ...] = ()

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def issue(self):
        return self.node.issue


def flatten(
    forest: Forest,
    *,
    filter_result: FilterResult | None = None,
    xray_root: str | None = None,
    flat: bool = False,
    sort_field: SortField = SortField.CREATED,
    sort_direction: SortDirection = SortDirection.DESCENDING,
    page_rank: Mapping[str, float] | None = None,
) -> list[FlatEntry]:
    if flat:
        return _flatten_flat(
            forest,
            filter_result,
            xray_root,
            sort_field,
            sort_direction,
            page_rank,
        )

    if xray_root is not None and xray_root in forest:
        start = [xray_root]
        base_depth = forest.nodes[xray_root].depth
        always_expand = True
    else:
        start = list(forest.roots)
        base_depth = 0
        always_expand = False

    raw: list[tuple[TreeNode, int, str | None]] = []
    stack: list[tuple[str, str | None]] = [(nid, None) for nid in reversed(start)]
    while stack:
        node_id, parent_id = stack.pop()
        node = forest.nodes[node_id]
        if filter_result is not None and not filter_result.includes(node_id):
            continue
        raw.append((node, node.depth - base_depth, parent_id))
        descend = always_expand or node.expanded
        if filter_result is not None and node_id in filter_result.context:
            descend = True
        if descend:
            for child_id in reversed(node.children):
                stack.append((child_id, node_id))

    return _with_connectors(raw, filter_result)


def _flatten_flat(
    forest: Forest,
    filter_result: FilterResult | None,
    xray_root: str | None,
    sort_field: SortField,
    sort_direction: SortDirection,
    page_rank: Mapping[str, float] | None,
) -> list[FlatEntry]:
    if xray_root is not None and xray_root in forest:
        nodes = list(forest.subtree(forest.nodes[xray_root]))
    else:
        nodes = list(forest.nodes.values())
    if filter_result is not None:
        nodes = [node for node in nodes if filter_result.includes(node.id)]
    nodes = sort_nodes(nodes, sort_field, sort_direction, page_rank)
    last = len(nodes) - 1
    return [
        FlatEntry(
            node=node,
            depth=0,
            dimmed=filter_result is not None and filter_result.is_dimmed(node.id),
            is_last=idx == last,
        )
        for idx, node in enumerate(nodes)
    ]


def _with_connectors(
    raw: list[tuple[TreeNode, int, str | None]],
    filter_result: FilterResult | None,
) -> list[FlatEntry]:
    # Reverse pass: a row is the last of its sibling group when no later row
    # shares its displayed parent before the group ends.
    is_last = [True] * len(raw)
    seen_parent: dict[int, str | None] = {}
    for idx in range(len(raw) - 1, -1, -1):
        _, depth, parent_id = raw[idx]
        for deeper in [d for d in seen_parent if d > depth]:
            del seen_parent[deeper]
        if depth in seen_parent and seen_parent[depth] == parent_id:
            is_last[idx] = False
        seen_parent[depth] = parent_id

    out: list[FlatEntry] = []
    open_levels: list[bool] = []
    for idx, (node, depth, parent_id) in enumerate(raw):
        del open_levels[max(depth - 1, 0):]
        guides = tuple(open_levels[:max(depth - 1, 0)])
        out.append(
            FlatEntry(
                node=node,
                depth=depth,
                dimmed=filter_result is not None and filter_result.is_dimmed(node.id),
                parent_id=parent_id,
                is_last=is_last[idx],
                guides=guides,
            )
        )
        if depth >= 1:
            open_levels.append(not is_last[idx])
    return out
