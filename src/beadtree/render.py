"""Row, header and overlay rendering for the tree view."""

from __future__ import annotations

from datetime import datetime

from rich.cells import cell_len
from rich.text import Text

from .flatten import FlatEntry
from .sorting import SortDirection, SortField
from .util import format_time_rel, truncate_cells

DEFAULT_WIDTH = 80
MAX_ID_WIDTH = 35
STATUS_WIDTH = 11

_STATUS_STYLES = {
    "open": "yellow",
    "in_progress": "cyan",
    "blocked": "red",
    "closed": "green",
    "tombstone": "dim",
}
_PRIORITY_STYLES = {
    0: "bold red",
    1: "bold yellow",
    2: "yellow",
}
_TYPE_GLYPHS = {
    "epic": ("◆", "magenta"),
    "feature": ("◇", "blue"),
    "task": ("■", "cyan"),
    "bug": ("✗", "red"),
    "chore": ("○", "dim"),
}

HEADER_COLUMNS = "  TYPE PRI STATUS      ID                     TITLE"


def _width(width: int) -> int:
    return width if width > 0 else DEFAULT_WIDTH


def status_style(status: str) -> str:
    return _STATUS_STYLES.get(status, "dim")


def priority_style(priority: int) -> str:
    return _PRIORITY_STYLES.get(priority, "dim")


def type_glyph(issue_type: str) -> tuple[str, str]:
    return _TYPE_GLYPHS.get(issue_type, ("·", "dim"))


def tree_prefix(entry: FlatEntry) -> str:
    if entry.depth == 0:
        return ""
    guides = "".join("│   " if cont else "    " for cont in entry.guides)
    return guides + ("└── " if entry.is_last else "├── ")


def expand_indicator(entry: FlatEntry, *, flat: bool = False) -> str:
    if flat or not entry.node.has_children:
        return "•"
    return "▾" if entry.node.expanded else "▸"


def render_header(
    width: int,
    *,
    flat: bool = False,
    xray_title: str | None = None,
    follow: bool = False,
    occur_pattern: str | None = None,
    sort_field: SortField = SortField.CREATED,
    sort_direction: SortDirection = SortDirection.DESCENDING,
    filter_label: str = "all",
) -> Text:
    text = Text(style="bold")
    text.append("[FLAT]" if flat else "[TREE]", style="bold white on blue")
    if xray_title is not None:
        text.append(" ")
        text.append(f"[XRAY: {xray_title}]", style="bold black on yellow")
    if occur_pattern:
        text.append(" ")
        text.append(f"[OCCUR: {occur_pattern}]", style="bold black on cyan")
    if follow:
        text.append(" ")
        text.append("[FOLLOW]", style="bold black on green")
    text.append(f" {sort_field.label} {sort_direction.indicator()}", style="cyan")
    if filter_label and filter_label != "all":
        text.append(f" filter: {filter_label}", style="magenta")
    text.append(HEADER_COLUMNS)
    text.truncate(_width(width), overflow="ellipsis")
    return text


def render_row(
    entry: FlatEntry,
    *,
    width: int,
    selected: bool = False,
    marked: bool = False,
    bookmarked: bool = False,
    search_match: bool = False,
    current_match: bool = False,
    flat: bool = False,
    now: datetime | None = None,
) -> Text:
    issue = entry.issue
    # One cell short of the terminal edge so rows never wrap.
    width = _width(width) - 1

    prefix = tree_prefix(entry)
    indicator = expand_indicator(entry, flat=flat)
    glyph, glyph_style = type_glyph(issue.issue_type)
    prio = f"P{issue.priority}"
    status = issue.status.ljust(STATUS_WIDTH)
    issue_id = truncate_cells(issue.id, MAX_ID_WIDTH)

    row = Text(no_wrap=True)
    row.append(prefix, style="dim")
    row.append(indicator, style="blue")
    row.append("●" if marked else " ", style="bold magenta")
    row.append("★" if bookmarked else " ", style="bold yellow")
    row.append(" ")
    row.append(glyph, style=glyph_style)
    row.append(" ")
    row.append(prio, style=priority_style(issue.priority))
    row.append(" ")
    row.append(status, style=status_style(issue.status))
    row.append(" ")
    row.append(issue_id, style="bold" if selected else "bright_black")
    row.append(" ")

    right = ""
    if width > 60:
        right = f"{format_time_rel(issue.created_at, now=now):>8}"

    title_width = max(width - row.cell_len - cell_len(right) - 2, 5)
    title = truncate_cells(issue.title, title_width)
    title += " " * (title_width - cell_len(title))
    if selected:
        title_style = "bold cyan"
    elif current_match:
        title_style = "bold bright_yellow"
    elif search_match:
        title_style = "dark_orange"
    else:
        title_style = ""
    row.append(title, style=title_style)

    if right:
        padding = width - row.cell_len - cell_len(right)
        if padding > 0:
            row.append(" " * padding)
        row.append(right, style="dim")

    row.truncate(width, overflow="crop")
    if selected:
        row.stylize("reverse")
    elif entry.dimmed:
        row.stylize("dim")
    return row


def render_sticky_line(entry: FlatEntry, width: int) -> Text:
    line = Text(no_wrap=True, style="dim italic")
    line.append("↑ ")
    line.append("  " * entry.depth)
    line.append(entry.issue.title)
    line.append(f" ({entry.id})", style="bright_black")
    line.truncate(_width(width) - 1, overflow="ellipsis")
    return line


def render_position_indicator(text: str) -> Text:
    return Text(text, style="bright_black")


def render_search_bar(query: str, index: int, count: int) -> Text:
    info = ""
    if count > 0:
        info = f" [{index + 1}/{count}]"
    elif query:
        info = " [no matches]"
    return Text(f"/{query}{info}", style="bold cyan")


def render_sort_popup(
    cursor: int,
    current: SortField,
    direction: SortDirection,
) -> Text:
    out = Text()
    out.append("Sort by:", style="bold cyan")
    for field in SortField:
        out.append("\n")
        indicator = f"{direction.indicator()} " if field is current else "  "
        label = indicator + field.label
        if int(field) == cursor:
            out.append("▸ " + label, style="bold cyan")
        else:
            out.append("  " + label)
    return out


def render_empty_state() -> Text:
    out = Text()
    out.append("Tree View", style="bold cyan")
    out.append("\n\n")
    out.append("No issues to display.", style="bright_black")
    out.append("\n\n")
    out.append("To create hierarchy, add parent-child dependencies:", style="bright_black")
    out.append("\n")
    out.append("  bd dep add <child> <parent> --type parent-child", style="bright_black")
    return out
