from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping
from typing import Literal, TextIO

from rich.console import Console
from rich.text import Text

OUTPUT_CHOICES = ("auto", "plain", "rich")
OUTPUT_ENV_VAR = "BEADTREE_OUTPUT"
OutputMode = Literal["plain", "rich"]


def add_output_mode_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        choices=OUTPUT_CHOICES,
        help=(
            "Output mode: auto (default), plain, or rich. "
            f"Falls back to ${OUTPUT_ENV_VAR} when omitted."
        ),
    )


def _normalize_choice(raw: str | None, *, source: str) -> str | None:
    if raw is None:
        return None
    value = raw.strip().lower()
    if not value:
        return None
    if value not in OUTPUT_CHOICES:
        expected = ", ".join(OUTPUT_CHOICES)
        raise ValueError(f"invalid {source} value {raw!r}; expected one of: {expected}")
    return value


def _stream_is_tty(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    if not callable(isatty):
        return False
    try:
        return bool(isatty())
    except Exception:
        return False


def resolve_output_mode(
    requested: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    is_tty: bool | None = None,
) -> OutputMode:
    """Flag first, then ``$BEADTREE_OUTPUT``, then TTY detection."""
    selected = _normalize_choice(requested, source="--output")
    if selected is None:
        environ = os.environ if env is None else env
        selected = _normalize_choice(environ.get(OUTPUT_ENV_VAR), source=OUTPUT_ENV_VAR)
    if selected is None:
        selected = "auto"

    if selected == "auto":
        tty = _stream_is_tty(sys.stdout) if is_tty is None else bool(is_tty)
        return "rich" if tty else "plain"
    return "rich" if selected == "rich" else "plain"


def make_console(
    mode: OutputMode,
    *,
    stderr: bool = False,
    file: TextIO | None = None,
    width: int | None = None,
) -> Console:
    if file is None:
        file = sys.stderr if stderr else sys.stdout
    return Console(
        file=file,
        force_terminal=mode == "rich",
        no_color=mode != "rich",
        highlight=False,
        emoji=False,
        width=width,
    )


def render_frame(console: Console, frame: Text, *, mode: OutputMode) -> None:
    """Print one rendered tree frame; plain mode drops all styling."""
    if mode == "plain":
        console.print(frame.plain, markup=False, highlight=False, soft_wrap=True)
        return
    console.print(frame, soft_wrap=True)


def render_error(console: Console, message: str) -> None:
    console.print(Text(message, style="red"), soft_wrap=True)
