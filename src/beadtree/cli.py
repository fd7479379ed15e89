"""CLI entry point for beadtree."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.text import Text

from . import __version__
from .config import load_config
from .filtering import SIMPLE_FILTERS
from .jsonl import load_issues
from .sorting import SortDirection, SortField
from .state import resolve_beads_dir
from .tree import TreeModel
from .ui import (
    OutputMode,
    add_output_mode_argument,
    make_console,
    render_error,
    render_frame,
    resolve_output_mode,
)
from .util import eprint

ISSUES_FILENAME = "issues.jsonl"


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="beadtree",
        description="Print a hierarchical view of a beads issue database.",
    )
    p.add_argument("--beads-dir", default=None, help="Beads directory (default: auto-detect)")
    p.add_argument("--issues", default=None, help="Issues JSONL path (default: <beads-dir>/issues.jsonl)")
    p.add_argument("--filter", choices=SIMPLE_FILTERS, default=None, help="Simple status filter")
    p.add_argument("--query", default=None, help="Advanced filter, e.g. 'login !status:closed'")
    p.add_argument("--sort", default=None, help="Sort field (priority, created, updated, title, ...)")
    direction = p.add_mutually_exclusive_group()
    direction.add_argument("--asc", dest="direction", action="store_const", const=SortDirection.ASCENDING)
    direction.add_argument("--desc", dest="direction", action="store_const", const=SortDirection.DESCENDING)
    p.add_argument("--flat", action="store_true", help="List every issue at depth 0")
    p.add_argument("--xray", default=None, metavar="ID", help="Show only the subtree under ID")
    p.add_argument("--occur", default=None, metavar="REGEX", help="Keep only rows whose id, title or status match REGEX")
    p.add_argument("--select", default=None, metavar="ID", help="Place the cursor on ID")
    p.add_argument("--expand-all", action="store_true", help="Expand every node")
    p.add_argument("--height", type=int, default=None, help="Viewport rows (default: fit all rows)")
    p.add_argument("--width", type=int, default=None, help="Viewport columns (default: terminal width)")
    add_output_mode_argument(p)
    p.add_argument("--version", action="store_true", help="Show version")
    return p


def _apply_flags(tree: TreeModel, args: argparse.Namespace, console: Console) -> int:
    if args.sort:
        try:
            field = SortField.parse(args.sort)
        except ValueError as exc:
            render_error(console, str(exc))
            return 1
        direction = args.direction
        if direction is None:
            direction = field.default_direction()
        tree.set_sort(field, direction)
    elif args.direction is not None:
        tree.set_sort(tree.sort_field, args.direction)

    if args.filter:
        tree.apply_filter(args.filter)
    if args.query:
        tree.apply_advanced_filter(args.query)
    if args.flat and not tree.flat_mode:
        tree.toggle_flat_mode()
    if args.expand_all:
        tree.expand_all()

    if args.xray:
        if not tree.select_by_id(args.xray):
            render_error(console, f"Issue not visible: {args.xray}")
            return 1
        tree.toggle_xray()
        if not tree.is_xray_mode():
            eprint(f"warning: {args.xray} has no children; showing full tree")
    if args.occur:
        tree.enter_occur_mode(args.occur)
    if args.select and not tree.select_by_id(args.select):
        eprint(f"warning: issue not visible: {args.select}")
    return 0


def cmd_show(args: argparse.Namespace, console: Console, mode: OutputMode) -> int:
    beads_dir = Path(args.beads_dir) if args.beads_dir else resolve_beads_dir()
    issues_path = Path(args.issues) if args.issues else beads_dir / ISSUES_FILENAME
    if not issues_path.exists():
        render_error(console, f"Issues file not found: {issues_path}")
        return 1
    try:
        issues = load_issues(issues_path)
    except (OSError, ValueError) as exc:
        render_error(console, f"Failed to read {issues_path}: {exc}")
        return 1

    cfg = load_config(beads_dir)
    if cfg.error:
        eprint(f"warning: {cfg.error}")

    width = args.width if args.width is not None else console.width
    tree = TreeModel(width=width)
    tree.set_beads_dir(beads_dir)
    tree.set_global_issue_index({issue.id: issue for issue in issues})
    tree.build(issues)
    tree.apply_config(cfg)

    rc = _apply_flags(tree, args, console)
    if rc:
        return rc

    height = args.height if args.height is not None else cfg.height
    if height is None:
        # Header plus every row, so the frame never scrolls.
        height = tree.node_count() + 1
    tree.set_size(width, height)

    render_frame(console, tree.render(), mode=mode)
    return 0


def main(argv: list[str] | None = None) -> None:
    raw = argv if argv is not None else sys.argv[1:]
    args = _parser().parse_args(raw)

    if args.version:
        Console().print(Text(f"beadtree {__version__}", style="bold"))
        sys.exit(0)

    try:
        mode = resolve_output_mode(args.output)
    except ValueError as exc:
        render_error(make_console("plain", stderr=True), str(exc))
        sys.exit(1)

    console = make_console(mode, width=args.width)
    sys.exit(cmd_show(args, console, mode))


if __name__ == "__main__":
    main()
