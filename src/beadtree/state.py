"""Persisted expand/collapse and bookmark state (``tree-state.json``).

File format::

    {
      "version": 1,
      "expanded": {"bd-123": true, "bd-456": false},
      "bookmarks": ["bd-789"]
    }

Only entries that differ from the depth-based default are written (roots
expanded, everything deeper collapsed). Missing or corrupt files fall back
to defaults and never raise.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .hierarchy import Forest, default_expanded
from .jsonl import write_json_atomic
from .util import eprint

TREE_STATE_VERSION = 1
TREE_STATE_FILENAME = "tree-state.json"
DEFAULT_BEADS_DIR = ".beads"
BEADS_DIR_ENV_VAR = "BEADS_DIR"


@dataclass
class TreeState:
    version: int = TREE_STATE_VERSION
    expanded: dict[str, bool] = field(default_factory=dict)
    bookmarks: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "expanded": dict(sorted(self.expanded.items())),
            "bookmarks": sorted(self.bookmarks),
        }

    @classmethod
    def from_dict(cls, payload: object) -> TreeState:
        if not isinstance(payload, dict):
            raise ValueError("tree state must be a JSON object")
        version = payload.get("version", TREE_STATE_VERSION)
        if not isinstance(version, int) or isinstance(version, bool):
            version = TREE_STATE_VERSION

        expanded: dict[str, bool] = {}
        raw_expanded = payload.get("expanded") or {}
        if isinstance(raw_expanded, dict):
            for key, value in raw_expanded.items():
                if isinstance(key, str) and isinstance(value, bool):
                    expanded[key] = value

        bookmarks: set[str] = set()
        raw_bookmarks = payload.get("bookmarks") or []
        if isinstance(raw_bookmarks, list):
            bookmarks = {item for item in raw_bookmarks if isinstance(item, str) and item}

        return cls(version=version, expanded=expanded, bookmarks=bookmarks)


def tree_state_path(beads_dir: str | Path | None) -> Path:
    return Path(beads_dir or DEFAULT_BEADS_DIR) / TREE_STATE_FILENAME


def resolve_beads_dir(cwd: Path | None = None, *, env: dict[str, str] | None = None) -> Path:
    """Return the beads directory.

    Resolution order:
    1. BEADS_DIR
    2. nearest existing .beads directory from cwd upward
    3. cwd/.beads
    """
    env = os.environ if env is None else env
    raw = env.get(BEADS_DIR_ENV_VAR, "").strip()
    if raw:
        return Path(raw).expanduser().resolve()

    start = (cwd or Path.cwd()).resolve()
    for base in (start, *start.parents):
        candidate = base / DEFAULT_BEADS_DIR
        if candidate.is_dir():
            return candidate
    return start / DEFAULT_BEADS_DIR


def load_tree_state(beads_dir: str | Path | None) -> TreeState:
    path = tree_state_path(beads_dir)
    try:
        raw = path.read_bytes()
    except OSError:
        return TreeState()
    try:
        return TreeState.from_dict(json.loads(raw.decode("utf-8")))
    except (ValueError, RecursionError) as exc:
        eprint(f"warning: invalid tree state file {path}, using defaults: {exc}")
        return TreeState()


def snapshot_tree_state(forest: Forest, bookmarks: Iterable[str]) -> TreeState:
    expanded = {
        node.id: node.expanded
        for node in forest.nodes.values()
        if node.expanded != default_expanded(node.depth)
    }
    return TreeState(expanded=expanded, bookmarks=set(bookmarks))


def save_tree_state(beads_dir: str | Path | None, state: TreeState) -> bool:
    path = tree_state_path(beads_dir)
    try:
        write_json_atomic(path, state.to_dict())
    except OSError as exc:
        eprint(f"warning: failed to write tree state to {path}: {exc}")
        return False
    return True
