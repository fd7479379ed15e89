from __future__ import annotations

import sys
from datetime import datetime, timezone

from rich.cells import cell_len, set_cell_size


def eprint(*parts: object) -> None:
    print(*parts, file=sys.stderr)


def truncate_cells(text: str, limit: int, ellipsis: str = "…") -> str:
    """Trim ``text`` to at most ``limit`` terminal cells."""
    if limit <= 0:
        return ""
    if cell_len(text) <= limit:
        return text
    if limit <= cell_len(ellipsis):
        return set_cell_size(text, limit)
    return set_cell_size(text, limit - cell_len(ellipsis)) + ellipsis


def format_time_rel(value: datetime | None, *, now: datetime | None = None) -> str:
    if value is None:
        return "-"
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    delta = int((now - value).total_seconds())
    if delta < 60:
        return "now"
    if delta < 3600:
        return f"{delta // 60}m ago"
    if delta < 86400:
        return f"{delta // 3600}h ago"
    if delta < 86400 * 30:
        return f"{delta // 86400}d ago"
    if delta < 86400 * 365:
        return f"{delta // (86400 * 30)}mo ago"
    return f"{delta // (86400 * 365)}y ago"
