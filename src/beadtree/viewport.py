"""Windowed viewport arithmetic.

Every function here is O(1) in the number of rows: the renderer only ever
touches ``visible_range`` worth of entries.
"""

from __future__ import annotations

from dataclasses import dataclass

FALLBACK_VISIBLE_ROWS = 19


def base_visible_count(height: int) -> int:
    """Rows available for nodes once the header row is taken."""
    count = height - 1
    if count <= 0:
        count = FALLBACK_VISIBLE_ROWS
    return count


def needs_position_indicator(length: int, height: int) -> bool:
    return length > base_visible_count(height)


def effective_visible_count(length: int, height: int) -> int:
    count = base_visible_count(height)
    if length > count:
        count -= 1
    return max(count, 1)


def max_offset(length: int, height: int) -> int:
    return max(0, length - effective_visible_count(length, height))


def visible_range(length: int, height: int, offset: int) -> tuple[int, int]:
    if length <= 0:
        return 0, 0
    count = effective_visible_count(length, height)
    start = min(max(offset, 0), max_offset(length, height))
    return start, min(start + count, length)


def ensure_cursor_visible(length: int, height: int, cursor: int, offset: int) -> int:
    """Return the offset that keeps ``cursor`` on screen with minimal scroll."""
    if length <= 0:
        return 0
    count = effective_visible_count(length, height)
    if cursor < offset:
        offset = cursor
    if cursor >= offset + count:
        offset = cursor - count + 1
    return min(max(offset, 0), max_offset(length, height))


def page_info(length: int, height: int, offset: int) -> tuple[int, int]:
    page_size = effective_visible_count(length, height)
    total_pages = max(1, (length + page_size - 1) // page_size)
    current = min(max(offset, 0) // page_size + 1, total_pages)
    return current, total_pages


def position_indicator(length: int, height: int, offset: int) -> str:
    start, end = visible_range(length, height, offset)
    current, total_pages = page_info(length, height, offset)
    return f" Page {current}/{total_pages} ({start + 1}-{end} of {length})"


@dataclass
class Viewport:
    height: int = 0
    width: int = 0
    cursor: int = 0
    offset: int = 0

    def visible_count(self, length: int) -> int:
        return effective_visible_count(length, self.height)

    def visible_range(self, length: int) -> tuple[int, int]:
        return visible_range(length, self.height, self.offset)

    def clamp_cursor(self, length: int) -> None:
        if self.cursor >= length:
            self.cursor = length - 1
        if self.cursor < 0:
            self.cursor = 0

    def ensure_cursor_visible(self, length: int) -> None:
        self.offset = ensure_cursor_visible(length, self.height, self.cursor, self.offset)

    def move_to(self, index: int, length: int) -> None:
        self.cursor = index
        self.clamp_cursor(length)
        self.ensure_cursor_visible(length)
