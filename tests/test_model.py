from __future__ import annotations

from datetime import datetime, timezone

from beadtree.model import (
    DEP_BLOCKS,
    DEP_PARENT_CHILD,
    Issue,
    is_closed_like,
    parse_timestamp,
    timestamp_key,
)


def test_issue_from_dict_parses_beads_row() -> None:
    issue = Issue.from_dict(
        {
            "id": "bd-12",
            "title": "Wire up login",
            "status": "IN_PROGRESS",
            "priority": 1,
            "issue_type": "feature",
            "created_at": "2026-01-15T12:00:00Z",
            "labels": ["ui", "auth"],
            "dependencies": [
                {"issue_id": "bd-12", "depends_on_id": "bd-1", "type": "parent-child"},
                {"depends_on_id": "bd-7", "type": "blocks"},
            ],
        }
    )

    assert issue.id == "bd-12"
    assert issue.status == "in_progress"
    assert issue.issue_type == "feature"
    assert issue.created_at == datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
    assert issue.labels == ("ui", "auth")
    assert issue.parent_ids() == ["bd-1"]
    assert issue.blocker_ids() == ["bd-7"]
    assert issue.dependencies[1].issue_id == "bd-12"


def test_issue_from_dict_defaults_and_skips_malformed_dependencies() -> None:
    issue = Issue.from_dict(
        {
            "id": "bd-3",
            "priority": "P0",
            "dependencies": ["bd-1", {"type": "blocks"}, {"depends_on_id": "bd-2"}],
        }
    )

    assert issue.title == ""
    assert issue.status == "open"
    assert issue.issue_type == "task"
    assert issue.priority == 0
    assert [(d.depends_on_id, d.type) for d in issue.dependencies] == [("bd-2", DEP_BLOCKS)]


def test_issue_from_dict_bad_priority_falls_back_to_default() -> None:
    assert Issue.from_dict({"id": "x", "priority": "urgent"}).priority == 2
    assert Issue.from_dict({"id": "x", "priority": True}).priority == 2


def test_parse_timestamp_accepts_epoch_and_rejects_garbage() -> None:
    assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("not a date") is None
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None


def test_timestamp_key_orders_missing_first() -> None:
    naive = datetime(2026, 1, 1)
    aware = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert timestamp_key(None) < timestamp_key(naive)
    assert timestamp_key(naive) == timestamp_key(aware)


def test_is_closed_like() -> None:
    assert is_closed_like("closed")
    assert is_closed_like("tombstone")
    assert not is_closed_like("open")
    assert not is_closed_like("blocked")


def test_parent_ids_ignore_other_dependency_types() -> None:
    issue = Issue.from_dict(
        {
            "id": "a",
            "dependencies": [
                {"depends_on_id": "b", "type": "related"},
                {"depends_on_id": "c", "type": DEP_PARENT_CHILD},
            ],
        }
    )
    assert issue.parent_ids() == ["c"]
    assert issue.blocker_ids() == []
