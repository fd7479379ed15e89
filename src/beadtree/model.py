"""Issue records consumed by the tree engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


DEP_PARENT_CHILD = "parent-child"
DEP_BLOCKS = "blocks"
DEP_RELATED = "related"
DEP_DISCOVERED_FROM = "discovered-from"
DEPENDENCY_TYPES = (
    DEP_PARENT_CHILD,
    DEP_BLOCKS,
    DEP_RELATED,
    DEP_DISCOVERED_FROM,
)

ISSUE_STATUSES = (
    "open",
    "in_progress",
    "blocked",
    "closed",
    "tombstone",
)
CLOSED_LIKE_STATUSES = {"closed", "tombstone"}

ISSUE_TYPES = (
    "epic",
    "feature",
    "task",
    "bug",
    "chore",
)


def is_closed_like(status: str) -> bool:
    return status in CLOSED_LIKE_STATUSES


def status_order(status: str) -> int:
    try:
        return ISSUE_STATUSES.index(status)
    except ValueError:
        return len(ISSUE_STATUSES)


def issue_type_order(issue_type: str) -> int:
    try:
        return ISSUE_TYPES.index(issue_type)
    except ValueError:
        return len(ISSUE_TYPES)


@dataclass(frozen=True)
class Dependency:
    issue_id: str
    depends_on_id: str
    type: str = DEP_BLOCKS

    @classmethod
    def from_dict(cls, row: dict[str, Any], *, issue_id: str = "") -> Dependency | None:
        target = str(row.get("depends_on_id") or "").strip()
        if not target:
            return None
        return cls(
            issue_id=str(row.get("issue_id") or issue_id),
            depends_on_id=target,
            type=str(row.get("type") or DEP_BLOCKS).strip().lower(),
        )


@dataclass(frozen=True)
class Issue:
    id: str
    title: str = ""
    status: str = "open"
    priority: int = 2
    issue_type: str = "task"
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None
    labels: tuple[str, ...] = ()
    dependencies: tuple[Dependency, ...] = ()

    def parent_ids(self) -> list[str]:
        return [
            dep.depends_on_id
            for dep in self.dependencies
            if dep.type == DEP_PARENT_CHILD
        ]

    def blocker_ids(self) -> list[str]:
        return [
            dep.depends_on_id
            for dep in self.dependencies
            if dep.type == DEP_BLOCKS
        ]

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> Issue:
        issue_id = str(row.get("id") or "").strip()
        deps: list[Dependency] = []
        for raw in row.get("dependencies") or []:
            if not isinstance(raw, dict):
                continue
            dep = Dependency.from_dict(raw, issue_id=issue_id)
            if dep is not None:
                deps.append(dep)
        return cls(
            id=issue_id,
            title=str(row.get("title") or ""),
            status=str(row.get("status") or "open").strip().lower(),
            priority=_to_int(row.get("priority"), default=2),
            issue_type=str(row.get("issue_type") or "task").strip().lower(),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
            closed_at=parse_timestamp(row.get("closed_at")),
            labels=tuple(str(label) for label in row.get("labels") or []),
            dependencies=tuple(deps),
        )


def _to_int(value: object, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lstrip("Pp")
        try:
            return int(text)
        except ValueError:
            return default
    return default


def parse_timestamp(value: object) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def timestamp_key(value: datetime | None) -> float:
    """Sortable number for an optional timestamp; missing sorts oldest."""
    if value is None:
        return float("-inf")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()
