from __future__ import annotations

import json
from pathlib import Path

import pytest

from beadtree import __version__
from beadtree.cli import main
from beadtree.ui import OUTPUT_ENV_VAR

ROWS = [
    {"id": "epic-1", "title": "Launch", "issue_type": "epic", "priority": 1,
     "created_at": "2026-01-10T00:00:00Z"},
    {"id": "task-1", "title": "Write docs", "status": "closed",
     "created_at": "2026-01-11T00:00:00Z",
     "dependencies": [{"depends_on_id": "epic-1", "type": "parent-child"}]},
    {"id": "task-2", "title": "Ship build", "status": "in_progress",
     "created_at": "2026-01-12T00:00:00Z",
     "dependencies": [{"depends_on_id": "epic-1", "type": "parent-child"}]},
    {"id": "chore-1", "title": "Alpha cleanup", "issue_type": "chore",
     "created_at": "2026-01-09T00:00:00Z"},
]


@pytest.fixture(autouse=True)
def _no_output_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(OUTPUT_ENV_VAR, raising=False)


@pytest.fixture
def beads(tmp_path: Path) -> Path:
    beads_dir = tmp_path / ".beads"
    beads_dir.mkdir()
    (beads_dir / "issues.jsonl").write_text(
        "\n".join(json.dumps(row) for row in ROWS) + "\n", encoding="utf-8"
    )
    return beads_dir


def _run(argv: list[str], capsys: pytest.CaptureFixture[str]) -> tuple[int, str, str]:
    with pytest.raises(SystemExit) as exc:
        main(argv)
    captured = capsys.readouterr()
    return int(exc.value.code or 0), captured.out, captured.err


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(["--version"], capsys)
    assert code == 0
    assert f"beadtree {__version__}" in out


def test_renders_tree_frame(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, err = _run(["--beads-dir", str(beads), "--width", "100"], capsys)
    assert code == 0
    assert err == ""
    lines = out.splitlines()
    assert lines[0].startswith("[TREE]")
    assert len(lines) == 5
    assert "Launch" in lines[1]
    assert "├── " in lines[2] and "Ship build" in lines[2]
    assert "└── " in lines[3] and "Write docs" in lines[3]
    assert "Alpha cleanup" in lines[4]
    assert "\x1b[" not in out


def test_flat_title_sort(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(
        ["--beads-dir", str(beads), "--width", "100", "--flat", "--sort", "title", "--asc"],
        capsys,
    )
    assert code == 0
    lines = out.splitlines()
    assert lines[0].startswith("[FLAT] Title ▲")
    titles = [next(t for t in ("Alpha", "Launch", "Ship", "Write") if t in line) for line in lines[1:]]
    assert titles == ["Alpha", "Launch", "Ship", "Write"]


def test_query_keeps_dimmed_ancestors(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(
        ["--beads-dir", str(beads), "--width", "100", "--query", "status:closed"],
        capsys,
    )
    assert code == 0
    assert "filter: status:closed" in out
    assert "Launch" in out
    assert "Write docs" in out
    assert "Ship build" not in out
    assert "Alpha cleanup" not in out


def test_simple_filter_choice(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(["--beads-dir", str(beads), "--width", "100", "--filter", "open"], capsys)
    assert code == 0
    assert "Write docs" not in out
    assert "Ship build" in out


def test_xray(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(["--beads-dir", str(beads), "--width", "100", "--xray", "epic-1"], capsys)
    assert code == 0
    assert "[XRAY: Launch]" in out
    assert "Alpha cleanup" not in out


def test_xray_unknown_id_fails(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(["--beads-dir", str(beads), "--xray", "nope"], capsys)
    assert code == 1
    assert "Issue not visible: nope" in out


def test_xray_on_leaf_warns(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, err = _run(["--beads-dir", str(beads), "--xray", "chore-1"], capsys)
    assert code == 0
    assert "warning: chore-1 has no children" in err
    assert "[XRAY:" not in out


def test_missing_issues_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(["--beads-dir", str(tmp_path / "empty")], capsys)
    assert code == 1
    assert "Issues file not found" in out


def test_invalid_sort_field(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(["--beads-dir", str(beads), "--sort", "colour"], capsys)
    assert code == 1
    assert "invalid sort field" in out


def test_height_limits_rows_and_adds_indicator(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(["--beads-dir", str(beads), "--width", "100", "--height", "3"], capsys)
    assert code == 0
    lines = out.splitlines()
    assert len(lines) == 3
    assert lines[-1] == " Page 1/4 (1-1 of 4)"


def test_expand_all_persists_state(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, _, _ = _run(["--beads-dir", str(beads), "--expand-all"], capsys)
    assert code == 0
    assert (beads / "tree-state.json").exists()


def test_config_file_is_applied(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (beads / "tree.toml").write_text('[tree]\nflat = true\nsort = "priority"\n', encoding="utf-8")
    code, out, _ = _run(["--beads-dir", str(beads), "--width", "100"], capsys)
    assert code == 0
    assert out.startswith("[FLAT] Priority ▲")


def test_invalid_config_warns(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (beads / "tree.toml").write_text('[tree]\ndirection = "up"\n', encoding="utf-8")
    code, out, err = _run(["--beads-dir", str(beads), "--width", "100"], capsys)
    assert code == 0
    assert "warning:" in err
    assert "[tree].direction" in err
    assert out.startswith("[TREE]")


def test_rich_output_mode(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(["--beads-dir", str(beads), "--output", "rich"], capsys)
    assert code == 0
    assert "\x1b[" in out


def test_invalid_output_env_fails(
    beads: Path,
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv(OUTPUT_ENV_VAR, "fancy")
    code, _, err = _run(["--beads-dir", str(beads)], capsys)
    assert code == 1
    assert OUTPUT_ENV_VAR in err


def test_occur_keeps_matching_rows(beads: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(["--beads-dir", str(beads), "--width", "100", "--occur", "^(ship|alpha)"], capsys)
    assert code == 0
    lines = out.splitlines()
    assert "[OCCUR: ^(ship|alpha)]" in lines[0]
    assert len(lines) == 3
    assert "Ship build" in out
    assert "Alpha cleanup" in out
    assert "Launch" not in out
