from __future__ import annotations

import io

import pytest
from rich.text import Text

from beadtree.ui import OUTPUT_ENV_VAR, make_console, render_frame, resolve_output_mode


def test_resolve_output_mode_defaults_to_plain_without_tty() -> None:
    mode = resolve_output_mode(env={}, is_tty=False)
    assert mode == "plain"


def test_resolve_output_mode_auto_uses_tty_for_rich() -> None:
    mode = resolve_output_mode(env={}, is_tty=True)
    assert mode == "rich"


def test_resolve_output_mode_uses_env_when_flag_missing() -> None:
    mode = resolve_output_mode(env={OUTPUT_ENV_VAR: "rich"}, is_tty=False)
    assert mode == "rich"


def test_resolve_output_mode_flag_overrides_env() -> None:
    mode = resolve_output_mode(
        "plain",
        env={OUTPUT_ENV_VAR: "rich"},
        is_tty=True,
    )
    assert mode == "plain"


def test_resolve_output_mode_rejects_invalid_env_value() -> None:
    with pytest.raises(ValueError):
        resolve_output_mode(env={OUTPUT_ENV_VAR: "invalid"}, is_tty=True)


def test_render_frame_plain_has_no_escape_codes() -> None:
    buf = io.StringIO()
    console = make_console("plain", file=buf, width=80)
    render_frame(console, Text("[TREE] row", style="bold red"), mode="plain")
    assert buf.getvalue() == "[TREE] row\n"


def test_render_frame_rich_emits_styles() -> None:
    buf = io.StringIO()
    console = make_console("rich", file=buf, width=80)
    render_frame(console, Text("row", style="bold"), mode="rich")
    assert "\x1b[" in buf.getvalue()
    assert "row" in buf.getvalue()
