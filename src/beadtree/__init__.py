from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "__version__",
    "Issue",
    "Dependency",
    "SortDirection",
    "SortField",
    "TreeModel",
]

__version__ = "0.1.0"

if TYPE_CHECKING:
    from .model import Dependency, Issue
    from .sorting import SortDirection, SortField
    from .tree import TreeModel


def __getattr__(name: str):
    if name in {"Issue", "Dependency"}:
        from .model import Dependency, Issue

        return {"Issue": Issue, "Dependency": Dependency}[name]
    if name in {"SortField", "SortDirection"}:
        from .sorting import SortDirection, SortField

        return {"SortField": SortField, "SortDirection": SortDirection}[name]
    if name == "TreeModel":
        from .tree import TreeModel

        return TreeModel
    raise AttributeError(f"module 'beadtree' has no attribute {name!r}")
