"""Navigable issue tree: the state owner behind the tree view.

``TreeModel`` keeps the forest, the flattened row list and the viewport in
sync. Every operation that changes expand state, filter, sort or display
mode re-runs the flattening pass, then keeps the cursor on screen. All
operations are no-ops on an empty or unbuilt model.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from rich.text import Text

from .filtering import (
    SIMPLE_FILTERS,
    FilterResult,
    advanced_predicate,
    compute_filter,
    parse_filter_predicates,
    simple_predicate,
)
from .flatten import FlatEntry, flatten
from .hierarchy import Forest, TreeNode, build_forest
from .model import Issue
from .render import (
    render_empty_state,
    render_header,
    render_position_indicator,
    render_row,
    render_search_bar,
    render_sort_popup,
    render_sticky_line,
)
from .sorting import (
    DEFAULT_SORT_DIRECTION,
    DEFAULT_SORT_FIELD,
    NUM_SORT_FIELDS,
    SortDirection,
    SortField,
    sort_forest,
)
from .state import load_tree_state, save_tree_state, snapshot_tree_state
from .sticky import sticky_ancestors
from .viewport import Viewport, needs_position_indicator, position_indicator

if TYPE_CHECKING:
    from .config import TreeFileConfig


class TreeModel:
    def __init__(self, *, width: int = 0, height: int = 0) -> None:
        self.forest = Forest()
        self.entries: list[FlatEntry] = []
        self._index_by_id: dict[str, int] = {}
        self.viewport = Viewport(height=height, width=width)
        self.built = False

        self.beads_dir: Path | None = None
        self._state_loaded = False
        self._loaded_expanded: dict[str, bool] = {}

        self.global_issues: Mapping[str, Issue] = {}
        self.page_rank: Mapping[str, float] = {}
        self.sort_field = DEFAULT_SORT_FIELD
        self.sort_direction = DEFAULT_SORT_DIRECTION

        self.filter_label = "all"
        self._filter_query: str | None = None
        self._filter_advanced = False
        self.filter_result: FilterResult | None = None

        self.flat_mode = False
        self.xray_root: str | None = None
        self.follow_mode = False
        self._last_snapshot: list[str] | None = None
        self._occur_pattern = ""

        self.marks: set[str] = set()
        self.bookmarks: set[str] = set()

        self.sort_popup_open = False
        self.sort_popup_cursor = 0

        self.search_mode = False
        self.search_query = ""
        self.search_matches: list[str] = []
        self.search_match_index = 0

        self._global_cycle_state = 0

    # ── configuration ────────────────────────────────────────────────

    def set_size(self, width: int, height: int) -> None:
        self.viewport.width = width
        self.viewport.height = height
        self._ensure_cursor_visible()

    def set_beads_dir(self, path: str | Path | None) -> None:
        """Enable persistence under ``path``; state loads on the next build."""
        self.beads_dir = Path(path) if path else None
        self._state_loaded = False

    def set_global_issue_index(self, issues: Mapping[str, Issue] | None) -> None:
        self.global_issues = issues or {}
        if self.filter_label == "ready" and not self._filter_advanced:
            self._recompute_filter()
            self._rebuild()

    def set_page_rank_scores(self, scores: Mapping[str, float] | None) -> None:
        self.page_rank = scores or {}
        if self.sort_field is SortField.PAGERANK:
            self._resort()

    def apply_config(self, cfg: TreeFileConfig) -> None:
        direction = cfg.sort_direction
        if cfg.sort_field is not None:
            if direction is None:
                direction = cfg.sort_field.default_direction()
            self.set_sort(cfg.sort_field, direction)
        elif direction is not None:
            self.set_sort(self.sort_field, direction)
        if cfg.filter:
            if cfg.filter.lower() in SIMPLE_FILTERS:
                self.apply_filter(cfg.filter)
            else:
                self.apply_advanced_filter(cfg.filter)
        if cfg.flat and not self.flat_mode:
            self.toggle_flat_mode()
        if cfg.follow:
            self.follow_mode = True
        if cfg.height is not None:
            self.set_size(self.viewport.width, cfg.height)

    # ── construction ─────────────────────────────────────────────────

    def build(self, issues: Iterable[Issue] | None) -> None:
        selected = self.selected_id()
        previous = {nid: node.expanded for nid, node in self.forest.nodes.items()}

        self.forest = build_forest(issues)
        if self._load_state():
            previous = {}
        for node in self.forest.nodes.values():
            if node.id in previous:
                node.expanded = previous[node.id]
            elif node.id in self._loaded_expanded:
                node.expanded = self._loaded_expanded[node.id]

        sort_forest(self.forest, self.sort_field, self.sort_direction, self.page_rank)
        if self.xray_root is not None and self.xray_root not in self.forest:
            self.xray_root = None
        self._recompute_filter()
        self.built = True
        self._rebuild(keep=selected)

    def _load_state(self) -> bool:
        if self.beads_dir is None or self._state_loaded:
            return False
        state = load_tree_state(self.beads_dir)
        self._state_loaded = True
        self._loaded_expanded = dict(state.expanded)
        self.bookmarks = {bid for bid in state.bookmarks if bid in self.forest}
        return True

    def _save_state(self) -> None:
        if self.beads_dir is None:
            return
        save_tree_state(self.beads_dir, snapshot_tree_state(self.forest, self.bookmarks))

    # ── pipeline ─────────────────────────────────────────────────────

    def _recompute_filter(self) -> None:
        if self._filter_query is None:
            self.filter_result = None
            return
        if self._filter_advanced:
            predicate = advanced_predicate(self._filter_query)
        else:
            predicate = simple_predicate(self._filter_query, self.global_issues)
        self.filter_result = compute_filter(self.forest, predicate)

    def _rebuild(self, keep: str | None = None) -> None:
        """Re-flatten and keep the cursor on ``keep`` (or the selection)."""
        if keep is None:
            keep = self.selected_id()
        self.entries = flatten(
            self.forest,
            filter_result=self.filter_result,
            xray_root=self.xray_root,
            flat=self.flat_mode,
            sort_field=self.sort_field,
            sort_direction=self.sort_direction,
            page_rank=self.page_rank,
        )
        if self._occur_pattern:
            self.entries = _occur_entries(self.entries, self._occur_pattern)
        self._index_by_id = {entry.id: idx for idx, entry in enumerate(self.entries)}

        target = self._nearest_visible(keep) if keep else None
        if target is not None:
            self.viewport.cursor = target
        self.viewport.clamp_cursor(len(self.entries))
        self._ensure_cursor_visible()

    def _nearest_visible(self, issue_id: str) -> int | None:
        if issue_id in self._index_by_id:
            return self._index_by_id[issue_id]
        node = self.forest.get(issue_id)
        if node is None:
            return None
        for ancestor in self.forest.ancestors(node):
            if ancestor.id in self._index_by_id:
                return self._index_by_id[ancestor.id]
        return None

    def _resort(self) -> None:
        sort_forest(self.forest, self.sort_field, self.sort_direction, self.page_rank)
        self._rebuild()

    def _ensure_cursor_visible(self) -> None:
        self.viewport.ensure_cursor_visible(len(self.entries))

    def _move_cursor(self, index: int) -> None:
        if not self.entries:
            return
        self.viewport.move_to(index, len(self.entries))

    def _after_expand_change(self) -> None:
        self._rebuild()
        self._save_state()

    # ── queries ──────────────────────────────────────────────────────

    @property
    def cursor(self) -> int:
        return self.viewport.cursor

    @property
    def viewport_offset(self) -> int:
        return self.viewport.offset

    def node_count(self) -> int:
        return len(self.entries)

    def root_count(self) -> int:
        return len(self.forest.roots)

    def selected_entry(self) -> FlatEntry | None:
        if 0 <= self.viewport.cursor < len(self.entries):
            return self.entries[self.viewport.cursor]
        return None

    def selected_node(self) -> TreeNode | None:
        entry = self.selected_entry()
        return entry.node if entry is not None else None

    def selected_issue(self) -> Issue | None:
        entry = self.selected_entry()
        return entry.issue if entry is not None else None

    def selected_id(self) -> str:
        entry = self.selected_entry()
        return entry.id if entry is not None else ""

    def visible_ids(self) -> list[str]:
        return [entry.id for entry in self.entries]

    def visible_range(self) -> tuple[int, int]:
        return self.viewport.visible_range(len(self.entries))

    def effective_visible_count(self) -> int:
        return self.viewport.visible_count(len(self.entries))

    def is_filter_dimmed(self, issue_id: str) -> bool:
        return self.filter_result is not None and self.filter_result.is_dimmed(issue_id)

    def is_marked(self, issue_id: str) -> bool:
        return issue_id in self.marks

    def marked_ids(self) -> list[str]:
        return sorted(self.marks)

    def is_bookmarked(self, issue_id: str) -> bool:
        return issue_id in self.bookmarks

    def bookmarked_ids(self) -> list[str]:
        return sorted(self.bookmarks)

    def is_xray_mode(self) -> bool:
        return self.xray_root is not None

    def xray_title(self) -> str:
        node = self.forest.get(self.xray_root) if self.xray_root else None
        return node.issue.title if node is not None else ""

    # ── cursor movement ──────────────────────────────────────────────

    def move_up(self) -> None:
        if self.viewport.cursor > 0:
            self._move_cursor(self.viewport.cursor - 1)

    def move_down(self) -> None:
        if self.viewport.cursor < len(self.entries) - 1:
            self._move_cursor(self.viewport.cursor + 1)

    def jump_to_top(self) -> None:
        self._move_cursor(0)

    def jump_to_bottom(self) -> None:
        self._move_cursor(len(self.entries) - 1)

    def page_down(self) -> None:
        """Half a page down."""
        step = max(self.effective_visible_count() // 2, 1)
        self._move_cursor(self.viewport.cursor + step)

    def page_up(self) -> None:
        step = max(self.effective_visible_count() // 2, 1)
        self._move_cursor(self.viewport.cursor - step)

    def page_forward_full(self) -> None:
        self._move_cursor(self.viewport.cursor + self.effective_visible_count())

    def page_backward_full(self) -> None:
        self._move_cursor(self.viewport.cursor - self.effective_visible_count())

    def select_by_id(self, issue_id: str) -> bool:
        idx = self._index_by_id.get(issue_id)
        if idx is None:
            return False
        self._move_cursor(idx)
        return True

    def jump_to_parent(self) -> None:
        entry = self.selected_entry()
        if entry is None or entry.parent_id is None:
            return
        idx = self._index_by_id.get(entry.parent_id)
        if idx is not None:
            self._move_cursor(idx)

    def _sibling_indices(self, entry: FlatEntry) -> list[int]:
        return [
            idx
            for idx, other in enumerate(self.entries)
            if other.parent_id == entry.parent_id and other.depth == entry.depth
        ]

    def _move_among_siblings(self, pick: Callable[[list[int], int], int | None]) -> None:
        entry = self.selected_entry()
        if entry is None:
            return
        siblings = self._sibling_indices(entry)
        pos = siblings.index(self.viewport.cursor)
        target = pick(siblings, pos)
        if target is not None:
            self._move_cursor(target)

    def next_sibling(self) -> None:
        self._move_among_siblings(
            lambda sibs, pos: sibs[pos + 1] if pos < len(sibs) - 1 else None
        )

    def prev_sibling(self) -> None:
        self._move_among_siblings(lambda sibs, pos: sibs[pos - 1] if pos > 0 else None)

    def first_sibling(self) -> None:
        self._move_among_siblings(lambda sibs, pos: sibs[0])

    def last_sibling(self) -> None:
        self._move_among_siblings(lambda sibs, pos: sibs[-1])

    # ── expand / collapse ────────────────────────────────────────────

    def expand_or_move_to_child(self) -> None:
        node = self.selected_node()
        if node is None or not node.has_children:
            return
        if not node.expanded:
            node.expanded = True
            self._after_expand_change()
            return
        nxt = self.viewport.cursor + 1
        if nxt < len(self.entries) and self.entries[nxt].parent_id == node.id:
            self._move_cursor(nxt)

    def collapse_or_jump_to_parent(self) -> None:
        node = self.selected_node()
        if node is None:
            return
        if node.has_children and node.expanded:
            node.expanded = False
            self._after_expand_change()
            return
        self.jump_to_parent()

    def toggle_expand(self) -> None:
        node = self.selected_node()
        if node is None or not node.has_children:
            return
        node.expanded = not node.expanded
        self._after_expand_change()

    def _set_expanded_recursive(self, node: TreeNode, expanded: bool) -> None:
        for each in self.forest.subtree(node):
            each.expanded = expanded

    def expand_all(self) -> None:
        if not self.forest.nodes:
            return
        for node in self.forest.nodes.values():
            node.expanded = True
        self._after_expand_change()

    def collapse_all(self) -> None:
        if not self.forest.nodes:
            return
        for node in self.forest.nodes.values():
            node.expanded = False
        self._after_expand_change()

    def toggle_expand_collapse_all(self) -> None:
        if any(n.has_children and not n.expanded for n in self.forest.nodes.values()):
            self.expand_all()
        else:
            self.collapse_all()

    def _all_descendants_expanded(self, node: TreeNode) -> bool:
        return all(
            each.expanded
            for each in self.forest.subtree(node)
            if each.has_children and each is not node
        )

    def cycle_node_visibility(self) -> None:
        """Folded -> direct children -> full subtree -> folded."""
        node = self.selected_node()
        if node is None or not node.has_children:
            return
        if not node.expanded:
            node.expanded = True
            for child in self.forest.children_of(node):
                self._set_expanded_recursive(child, False)
        elif not self._all_descendants_expanded(node):
            self._set_expanded_recursive(node, True)
        else:
            self._set_expanded_recursive(node, False)
        self._after_expand_change()

    def cycle_global_visibility(self) -> None:
        """All folded -> top level open -> everything expanded."""
        if not self.forest.nodes:
            return
        if self._global_cycle_state == 0:
            for node in self.forest.nodes.values():
                node.expanded = False
        elif self._global_cycle_state == 1:
            for node in self.forest.nodes.values():
                node.expanded = node.depth == 0
        else:
            for node in self.forest.nodes.values():
                node.expanded = True
        self._global_cycle_state = (self._global_cycle_state + 1) % 3
        self._after_expand_change()

    def expand_to_level(self, level: int) -> None:
        """Show depths ``0 .. level-1``; ``1`` shows only the roots."""
        if not self.forest.nodes:
            return
        for node in self.forest.nodes.values():
            if node.has_children:
                node.expanded = node.depth < level - 1
        self._after_expand_change()

    # ── marks and bookmarks ──────────────────────────────────────────

    def toggle_mark(self) -> None:
        issue_id = self.selected_id()
        if not issue_id:
            return
        if issue_id in self.marks:
            self.marks.discard(issue_id)
        else:
            self.marks.add(issue_id)

    def unmark_all(self) -> None:
        self.marks.clear()

    def toggle_bookmark(self) -> None:
        issue_id = self.selected_id()
        if not issue_id:
            return
        if issue_id in self.bookmarks:
            self.bookmarks.discard(issue_id)
        else:
            self.bookmarks.add(issue_id)
        self._save_state()

    def cycle_bookmark(self) -> None:
        """Jump to the next bookmark after the cursor, wrapping around."""
        if not self.bookmarks or not self.entries:
            return
        cursor = self.viewport.cursor
        order = list(range(cursor + 1, len(self.entries))) + list(range(0, cursor + 1))
        for idx in order:
            if self.entries[idx].id in self.bookmarks:
                self._move_cursor(idx)
                return

    # ── display modes ────────────────────────────────────────────────

    def toggle_flat_mode(self) -> None:
        self.flat_mode = not self.flat_mode
        self._rebuild()

    def toggle_xray(self) -> None:
        if self.xray_root is not None:
            self.exit_xray()
            return
        node = self.selected_node()
        if node is None or not node.has_children:
            return
        self.xray_root = node.id
        self._rebuild(keep=node.id)

    def exit_xray(self) -> None:
        if self.xray_root is None:
            return
        self.xray_root = None
        self._rebuild()

    def toggle_follow_mode(self) -> None:
        self.follow_mode = not self.follow_mode

    def detect_and_follow_changes(
        self,
        old_ids: Iterable[str],
        new_ids: Iterable[str],
    ) -> str:
        """Reveal and select the first newly added issue in display order.

        Acts only when ``new_ids`` is a strict superset of ``old_ids``.
        Returns the selected id, or ``""`` when nothing was followed.
        """
        if not self.follow_mode:
            return ""
        before = set(old_ids)
        after = set(new_ids)
        if not after > before:
            return ""
        added = after - before

        opened: list[TreeNode] = []
        for issue_id in added:
            node = self.forest.get(issue_id)
            if node is None:
                continue
            for ancestor in self.forest.ancestors(node):
                if not ancestor.expanded:
                    ancestor.expanded = True
                    opened.append(ancestor)
        if opened:
            self._rebuild()

        shown = [self._index_by_id[i] for i in added if i in self._index_by_id]
        target = self.entries[min(shown)].id if shown else ""
        keep_open: set[str] = set()
        if target:
            keep_open = {a.id for a in self.forest.ancestors(self.forest.nodes[target])}
        for node in opened:
            if node.id not in keep_open:
                node.expanded = False
        if keep_open.intersection(node.id for node in opened):
            self._after_expand_change()
        elif opened:
            self._rebuild()
        if not target or not self.select_by_id(target):
            return ""
        return target

    def follow_changes(self, ids: Iterable[str]) -> str:
        """Diff ``ids`` against the snapshot seen on the previous call."""
        current = list(ids)
        previous, self._last_snapshot = self._last_snapshot, current
        if previous is None:
            return ""
        return self.detect_and_follow_changes(previous, current)

    def enter_occur_mode(self, pattern: str) -> None:
        """Keep only rows whose id, title or status match ``pattern``.

        Case-insensitive regex; an invalid pattern leaves the rows unchanged.
        """
        if not pattern:
            return
        self._occur_pattern = pattern
        self._rebuild()

    def exit_occur_mode(self) -> None:
        if not self._occur_pattern:
            return
        self._occur_pattern = ""
        self._rebuild()

    def is_occur_mode(self) -> bool:
        return bool(self._occur_pattern)

    def occur_pattern(self) -> str:
        return self._occur_pattern

    # ── sorting ──────────────────────────────────────────────────────

    def set_sort(self, field: SortField, direction: SortDirection) -> None:
        self.sort_field = SortField(field)
        self.sort_direction = SortDirection(direction)
        self._resort()

    def cycle_sort_mode(self) -> None:
        field = SortField((int(self.sort_field) + 1) % NUM_SORT_FIELDS)
        self.set_sort(field, field.default_direction())

    def open_sort_popup(self) -> None:
        self.sort_popup_open = True
        self.sort_popup_cursor = int(self.sort_field)

    def close_sort_popup(self) -> None:
        self.sort_popup_open = False

    def sort_popup_down(self) -> None:
        if self.sort_popup_cursor < NUM_SORT_FIELDS - 1:
            self.sort_popup_cursor += 1

    def sort_popup_up(self) -> None:
        if self.sort_popup_cursor > 0:
            self.sort_popup_cursor -= 1

    def sort_popup_select(self) -> None:
        """Same field toggles direction; another field takes its default."""
        field = SortField(self.sort_popup_cursor)
        if field is self.sort_field:
            self.set_sort(field, self.sort_direction.toggle())
        else:
            self.set_sort(field, field.default_direction())
        self.sort_popup_open = False

    # ── filtering ────────────────────────────────────────────────────

    def apply_filter(self, name: str | None) -> None:
        value = (name or "").strip().lower()
        if value == "all" or value not in SIMPLE_FILTERS:
            self._clear_filter()
            return
        self.filter_label = value
        self._filter_query = value
        self._filter_advanced = False
        self._recompute_filter()
        self._rebuild()

    def apply_advanced_filter(self, query: str | None) -> None:
        text = (query or "").strip()
        if not parse_filter_predicates(text):
            self._clear_filter()
            return
        self.filter_label = text
        self._filter_query = text
        self._filter_advanced = True
        self._recompute_filter()
        self._rebuild()

    def _clear_filter(self) -> None:
        self.filter_label = "all"
        self._filter_query = None
        self._filter_advanced = False
        self.filter_result = None
        self._rebuild()

    # ── search ───────────────────────────────────────────────────────

    def enter_search_mode(self) -> None:
        self.search_mode = True
        self.search_query = ""
        self.search_matches = []
        self.search_match_index = 0

    def exit_search_mode(self) -> None:
        self.search_mode = False

    def clear_search(self) -> None:
        self.search_mode = False
        self.search_query = ""
        self.search_matches = []
        self.search_match_index = 0

    def search_add_char(self, ch: str) -> None:
        self.set_search_query(self.search_query + ch)

    def search_backspace(self) -> None:
        self.set_search_query(self.search_query[:-1])

    def set_search_query(self, query: str) -> None:
        """Match title or id across every node, collapsed ones included."""
        self.search_query = query
        self.search_matches = []
        self.search_match_index = 0
        if not query:
            return
        needle = query.lower()
        self.search_matches = [
            node.id
            for node in self.forest.walk()
            if needle in node.issue.title.lower() or needle in node.id.lower()
        ]
        if self.search_matches:
            self._reveal(self.search_matches[0])

    def next_search_match(self) -> None:
        if not self.search_matches:
            return
        self.search_match_index = (self.search_match_index + 1) % len(self.search_matches)
        self._reveal(self.search_matches[self.search_match_index])

    def prev_search_match(self) -> None:
        if not self.search_matches:
            return
        self.search_match_index = (self.search_match_index - 1) % len(self.search_matches)
        self._reveal(self.search_matches[self.search_match_index])

    def _reveal(self, issue_id: str) -> None:
        node = self.forest.get(issue_id)
        if node is None:
            return
        changed = False
        for ancestor in self.forest.ancestors(node):
            if not ancestor.expanded:
                ancestor.expanded = True
                changed = True
        if changed:
            self._after_expand_change()
        self.select_by_id(issue_id)

    # ── rendering ────────────────────────────────────────────────────

    def sticky_scroll_entries(self) -> list[FlatEntry]:
        start, _ = self.visible_range()
        return sticky_ancestors(
            self.entries,
            self._index_by_id,
            self.viewport.cursor,
            start,
            flat=self.flat_mode,
        )

    def sticky_scroll_lines(self) -> list[str]:
        width = self.viewport.width
        return [render_sticky_line(entry, width).plain for entry in self.sticky_scroll_entries()]

    def render(self, *, now: datetime | None = None) -> Text:
        if not self.built or not self.entries:
            return render_empty_state()

        width = self.viewport.width
        lines: list[Text] = [
            render_header(
                width,
                flat=self.flat_mode,
                xray_title=self.xray_title() if self.xray_root else None,
                follow=self.follow_mode,
                occur_pattern=self._occur_pattern or None,
                sort_field=self.sort_field,
                sort_direction=self.sort_direction,
                filter_label=self.filter_label,
            )
        ]
        for entry in self.sticky_scroll_entries():
            lines.append(render_sticky_line(entry, width))

        search_ids = set(self.search_matches)
        current_match = (
            self.search_matches[self.search_match_index] if self.search_matches else None
        )
        start, end = self.visible_range()
        for idx in range(start, end):
            entry = self.entries[idx]
            lines.append(
                render_row(
                    entry,
                    width=width,
                    selected=idx == self.viewport.cursor,
                    marked=entry.id in self.marks,
                    bookmarked=entry.id in self.bookmarks,
                    search_match=entry.id in search_ids,
                    current_match=entry.id == current_match,
                    flat=self.flat_mode,
                    now=now,
                )
            )

        length = len(self.entries)
        if needs_position_indicator(length, self.viewport.height):
            lines.append(
                render_position_indicator(
                    position_indicator(length, self.viewport.height, self.viewport.offset)
                )
            )
        if self.search_mode:
            lines.append(
                render_search_bar(
                    self.search_query,
                    self.search_match_index,
                    len(self.search_matches),
                )
            )
        return Text("\n").join(lines)

    def view(self, *, now: datetime | None = None) -> str:
        return self.render(now=now).plain

    def render_sort_popup(self) -> Text | None:
        if not self.sort_popup_open:
            return None
        return render_sort_popup(self.sort_popup_cursor, self.sort_field, self.sort_direction)


def _occur_entries(entries: list[FlatEntry], pattern: str) -> list[FlatEntry]:
    try:
        rx = re.compile(pattern, re.IGNORECASE)
    except re.error:
        return entries
    return [
        entry
        for entry in entries
        if rx.search(entry.id) or rx.search(entry.issue.title) or rx.search(entry.issue.status)
    ]
