"""Low-level JSON/JSONL storage helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from .model import Issue


def read_jsonl(path: Path) -> list[dict]:
    if not path.exists():
        return []
    rows: list[dict] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                rows.append(json.loads(line))
    return rows


def load_issues(path: Path) -> list[Issue]:
    issues: list[Issue] = []
    for row in read_jsonl(path):
        if not isinstance(row, dict):
            continue
        issue = Issue.from_dict(row)
        if issue.id:
            issues.append(issue)
    return issues


def write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")
    os.replace(tmp, path)
