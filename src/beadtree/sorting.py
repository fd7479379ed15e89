"""Sibling ordering for the issue tree."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import IntEnum
from typing import Any

from .hierarchy import Forest, TreeNode
from .model import Issue, issue_type_order, status_order, timestamp_key


class SortDirection(IntEnum):
    ASCENDING = 0
    DESCENDING = 1

    def toggle(self) -> SortDirection:
        if self is SortDirection.ASCENDING:
            return SortDirection.DESCENDING
        return SortDirection.ASCENDING

    def indicator(self) -> str:
        return "▲" if self is SortDirection.ASCENDING else "▼"

    def __str__(self) -> str:
        return "Ascending" if self is SortDirection.ASCENDING else "Descending"


class SortField(IntEnum):
    PRIORITY = 0
    CREATED = 1
    UPDATED = 2
    TITLE = 3
    STATUS = 4
    TYPE = 5
    DEPS_COUNT = 6
    PAGERANK = 7

    @property
    def label(self) -> str:
        return _FIELD_LABELS[self]

    def __str__(self) -> str:
        return self.label

    def default_direction(self) -> SortDirection:
        if self in (SortField.CREATED, SortField.UPDATED, SortField.PAGERANK):
            return SortDirection.DESCENDING
        return SortDirection.ASCENDING

    @classmethod
    def parse(cls, raw: str) -> SortField:
        value = raw.strip().lower().replace("-", "_")
        for member in cls:
            if value in (member.name.lower(), member.label.lower()):
                return member
        raise ValueError(f"invalid sort field: {raw}")


NUM_SORT_FIELDS = len(SortField)

_FIELD_LABELS = {
    SortField.PRIORITY: "Priority",
    SortField.CREATED: "Created",
    SortField.UPDATED: "Updated",
    SortField.TITLE: "Title",
    SortField.STATUS: "Status",
    SortField.TYPE: "Type",
    SortField.DEPS_COUNT: "Deps",
    SortField.PAGERANK: "PageRank",
}

DEFAULT_SORT_FIELD = SortField.CREATED
DEFAULT_SORT_DIRECTION = SortDirection.DESCENDING


def sort_key(
    field: SortField,
    page_rank: Mapping[str, float] | None = None,
) -> Callable[[Issue], tuple[Any, ...]]:
    """Return an ascending key function; the id is always the last element."""
    scores = page_rank or {}

    if field is SortField.PRIORITY:
        return lambda i: (i.priority, issue_type_order(i.issue_type), i.id)
    if field is SortField.CREATED:
        return lambda i: (timestamp_key(i.created_at), i.id)
    if field is SortField.UPDATED:
        return lambda i: (timestamp_key(i.updated_at), i.id)
    if field is SortField.TITLE:
        return lambda i: (i.title, i.id)
    if field is SortField.STATUS:
        return lambda i: (status_order(i.status), i.id)
    if field is SortField.TYPE:
        return lambda i: (issue_type_order(i.issue_type), i.id)
    if field is SortField.DEPS_COUNT:
        return lambda i: (len(i.dependencies), i.id)
    return lambda i: (float(scores.get(i.id, 0.0)), i.id)


def sort_nodes(
    nodes: list[TreeNode],
    field: SortField,
    direction: SortDirection,
    page_rank: Mapping[str, float] | None = None,
) -> list[TreeNode]:
    key = sort_key(field, page_rank)
    return sorted(
        nodes,
        key=lambda node: key(node.issue),
        reverse=direction is SortDirection.DESCENDING,
    )


def sort_forest(
    forest: Forest,
    field: SortField,
    direction: SortDirection,
    page_rank: Mapping[str, float] | None = None,
) -> None:
    """Reorder roots and every sibling group in place."""
    key = sort_key(field, page_rank)
    reverse = direction is SortDirection.DESCENDING

    def order(ids: list[str]) -> list[str]:
        return sorted(ids, key=lambda nid: key(forest.nodes[nid].issue), reverse=reverse)

    forest.roots = order(forest.roots)
    for node in forest.nodes.values():
        if len(node.children) > 1:
            node.children = order(node.children)
