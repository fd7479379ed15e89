from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import tomllib

from .sorting import SortDirection, SortField

CONFIG_FILENAME = "tree.toml"

_DIRECTION_ALIASES = {
    "asc": SortDirection.ASCENDING,
    "ascending": SortDirection.ASCENDING,
    "desc": SortDirection.DESCENDING,
    "descending": SortDirection.DESCENDING,
}


@dataclass(frozen=True)
class TreeFileConfig:
    path: Path
    sort_field: SortField | None = None
    sort_direction: SortDirection | None = None
    filter: str | None = None
    flat: bool = False
    follow: bool = False
    height: int | None = None
    error: str | None = None


class ConfigValidationError(ValueError):
    pass


def _as_str(value: object, *, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigValidationError(f"[tree].{field} must be a string")
    stripped = value.strip()
    return stripped or None


def _as_bool(value: object, *, field: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigValidationError(f"[tree].{field} must be true or false")
    return value


def _parse_tree_table(path: Path, table: object) -> TreeFileConfig:
    if not isinstance(table, dict):
        raise ConfigValidationError("[tree] must be a table")

    sort_field: SortField | None = None
    raw_sort = _as_str(table.get("sort"), field="sort")
    if raw_sort is not None:
        try:
            sort_field = SortField.parse(raw_sort)
        except ValueError as exc:
            raise ConfigValidationError(f"[tree].sort: {exc}") from None

    sort_direction: SortDirection | None = None
    raw_direction = _as_str(table.get("direction"), field="direction")
    if raw_direction is not None:
        sort_direction = _DIRECTION_ALIASES.get(raw_direction.lower())
        if sort_direction is None:
            raise ConfigValidationError(
                f"[tree].direction must be asc or desc, got {raw_direction!r}"
            )

    height = table.get("height")
    if height is not None and (not isinstance(height, int) or isinstance(height, bool)):
        raise ConfigValidationError("[tree].height must be an integer")

    return TreeFileConfig(
        path=path,
        sort_field=sort_field,
        sort_direction=sort_direction,
        filter=_as_str(table.get("filter"), field="filter"),
        flat=_as_bool(table.get("flat"), field="flat"),
        follow=_as_bool(table.get("follow"), field="follow"),
        height=height,
    )


def load_config(beads_dir: Path) -> TreeFileConfig:
    path = beads_dir / CONFIG_FILENAME
    if not path.exists():
        return TreeFileConfig(path=path)
    try:
        payload = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        return TreeFileConfig(path=path, error=f"failed to read {path}: {exc}")

    try:
        return _parse_tree_table(path, payload.get("tree", {}))
    except ConfigValidationError as exc:
        return TreeFileConfig(path=path, error=f"{path}: {exc}")
