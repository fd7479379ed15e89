from __future__ import annotations

import json
from pathlib import Path

import pytest

from beadtree.jsonl import load_issues, read_jsonl, write_json_atomic


def test_read_jsonl_missing_file_is_empty(tmp_path: Path) -> None:
    assert read_jsonl(tmp_path / "nope.jsonl") == []


def test_read_jsonl_skips_blank_lines(tmp_path: Path) -> None:
    path = tmp_path / "issues.jsonl"
    path.write_text('{"id": "a"}\n\n   \n{"id": "b"}\n', encoding="utf-8")
    assert read_jsonl(path) == [{"id": "a"}, {"id": "b"}]


def test_read_jsonl_raises_on_malformed_line(tmp_path: Path) -> None:
    path = tmp_path / "issues.jsonl"
    path.write_text('{"id": "a"}\n{oops\n', encoding="utf-8")
    with pytest.raises(ValueError):
        read_jsonl(path)


def test_load_issues_drops_rows_without_id(tmp_path: Path) -> None:
    path = tmp_path / "issues.jsonl"
    rows = [{"id": "bd-1", "title": "One"}, {"title": "anonymous"}, [1, 2], {"id": "  "}]
    path.write_text("\n".join(json.dumps(row) for row in rows) + "\n", encoding="utf-8")

    issues = load_issues(path)
    assert [issue.id for issue in issues] == ["bd-1"]


def test_write_json_atomic_creates_parents_and_leaves_no_temp(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "dir" / "state.json"
    write_json_atomic(path, {"b": 1, "a": [1, 2]})

    assert json.loads(path.read_text(encoding="utf-8")) == {"a": [1, 2], "b": 1}
    assert sorted(p.name for p in path.parent.iterdir()) == ["state.json"]


def test_write_json_atomic_overwrites_whole_file(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    write_json_atomic(path, {"items": list(range(50))})
    write_json_atomic(path, {"items": []})
    assert json.loads(path.read_text(encoding="utf-8")) == {"items": []}
