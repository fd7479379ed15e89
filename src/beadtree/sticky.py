"""Breadcrumb lines for ancestors scrolled above the viewport."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .flatten import FlatEntry

MAX_STICKY_LINES = 2


def sticky_ancestors(
    entries: Sequence[FlatEntry],
    index_by_id: Mapping[str, int],
    cursor: int,
    window_start: int,
    *,
    flat: bool = False,
    limit: int = MAX_STICKY_LINES,
) -> list[FlatEntry]:
    """Nearest displayed ancestors of the cursor row above ``window_start``.

    Closest ancestor first, at most ``limit`` entries.
    """
    if flat or limit <= 0 or not 0 <= cursor < len(entries):
        return []
    out: list[FlatEntry] = []
    parent_id = entries[cursor].parent_id
    while parent_id is not None and len(out) < limit:
        idx = index_by_id.get(parent_id)
        if idx is None:
            break
        if idx < window_start:
            out.append(entries[idx])
        parent_id = entries[idx].parent_id
    return out
