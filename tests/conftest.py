from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from beadtree.model import DEP_BLOCKS, DEP_PARENT_CHILD, Dependency, Issue
from beadtree.tree import TreeModel

BASE_TIME = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

IssueFactory = Callable[..., Issue]


def _issue(
    issue_id: str,
    *,
    title: str | None = None,
    parent: str | None = None,
    status: str = "open",
    priority: int = 2,
    issue_type: str = "task",
    hours: float = 0,
    blocked_by: Iterable[str] = (),
) -> Issue:
    deps: list[Dependency] = []
    if parent is not None:
        deps.append(Dependency(issue_id, parent, DEP_PARENT_CHILD))
    for blocker in blocked_by:
        deps.append(Dependency(issue_id, blocker, DEP_BLOCKS))
    created = BASE_TIME + timedelta(hours=hours)
    return Issue(
        id=issue_id,
        title=title if title is not None else issue_id,
        status=status,
        priority=priority,
        issue_type=issue_type,
        created_at=created,
        updated_at=created,
        dependencies=tuple(deps),
    )


@pytest.fixture
def make_issue() -> IssueFactory:
    return _issue


@pytest.fixture
def beads_dir(tmp_path: Path) -> Path:
    return tmp_path / ".beads"


@pytest.fixture
def tree(beads_dir: Path) -> TreeModel:
    model = TreeModel(width=100, height=30)
    model.set_beads_dir(beads_dir)
    return model


@pytest.fixture
def three_level(make_issue: IssueFactory) -> list[Issue]:
    """epic-1 -> task-1 -> subtask-1."""
    return [
        make_issue("epic-1", title="Epic", priority=1, issue_type="epic"),
        make_issue("task-1", title="Task under Epic", parent="epic-1", hours=1),
        make_issue("subtask-1", title="Subtask", parent="task-1", priority=3, hours=2),
    ]
