"""Simple and advanced filters over the issue forest.

A filter produces two id sets: the direct matches and the context
ancestors (forest ancestors of a match). The flattening pass shows both and
dims the ancestors that do not match themselves.

Advanced filter grammar, whitespace separated::

    login !status:closed priority:1 type:epic

``field:value`` tokens compare against the issue attribute, a leading ``!``
negates, and the remaining words form one case-insensitive title search.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from .hierarchy import Forest
from .model import Issue, is_closed_like

SIMPLE_FILTERS = ("all", "open", "closed", "ready")
PREDICATE_FIELDS = ("status", "priority", "type")


@dataclass(frozen=True)
class FilterPredicate:
    field: str
    value: str
    negated: bool = False

    def matches(self, issue: Issue) -> bool:
        result = _field_matches(self.field, self.value, issue)
        return not result if self.negated else result


@dataclass(frozen=True)
class FilterResult:
    matches: frozenset[str]
    context: frozenset[str]

    def includes(self, issue_id: str) -> bool:
        return issue_id in self.matches or issue_id in self.context

    def is_dimmed(self, issue_id: str) -> bool:
        return issue_id in self.context and issue_id not in self.matches


def parse_filter_predicates(text: str | None) -> list[FilterPredicate]:
    preds: list[FilterPredicate] = []
    words: list[str] = []
    plain_at: int | None = None

    for token in (text or "").split():
        negated = token.startswith("!")
        body = token[1:] if negated else token
        if not body:
            continue
        name, sep, value = body.partition(":")
        if sep and name.lower() in PREDICATE_FIELDS:
            if value:
                preds.append(FilterPredicate(name.lower(), value, negated))
            continue
        if negated:
            preds.append(FilterPredicate("", body, True))
            continue
        if plain_at is None:
            plain_at = len(preds)
            preds.append(FilterPredicate("", ""))
        words.append(body)

    if plain_at is not None:
        preds[plain_at] = FilterPredicate("", " ".join(words))
    return preds


def _parse_priority(value: str) -> int | None:
    text = value.strip()
    if text[:1] in ("p", "P"):
        text = text[1:]
    try:
        return int(text)
    except ValueError:
        return None


def _field_matches(field: str, value: str, issue: Issue) -> bool:
    if field == "":
        return value.lower() in issue.title.lower()
    if field == "status":
        return issue.status.lower() == value.lower()
    if field == "type":
        return issue.issue_type.lower() == value.lower()
    if field == "priority":
        wanted = _parse_priority(value)
        return wanted is not None and issue.priority == wanted
    return False


def simple_predicate(
    name: str,
    global_issues: Mapping[str, Issue] | None = None,
) -> Callable[[Issue], bool]:
    """Predicate for ``open``/``closed``/``ready``; anything else matches all."""
    blockers = global_issues or {}

    if name == "open":
        return lambda issue: not is_closed_like(issue.status)
    if name == "closed":
        return lambda issue: is_closed_like(issue.status)
    if name == "ready":

        def ready(issue: Issue) -> bool:
            if is_closed_like(issue.status) or issue.status == "blocked":
                return False
            for blocker_id in issue.blocker_ids():
                blocker = blockers.get(blocker_id)
                if blocker is not None and not is_closed_like(blocker.status):
                    return False
            return True

        return ready
    return lambda issue: True


def advanced_predicate(text: str) -> Callable[[Issue], bool]:
    preds = parse_filter_predicates(text)
    return lambda issue: all(pred.matches(issue) for pred in preds)


def compute_filter(forest: Forest, predicate: Callable[[Issue], bool]) -> FilterResult:
    matches: set[str] = set()
    context: set[str] = set()
    for node in forest.nodes.values():
        if not predicate(node.issue):
            continue
        matches.add(node.id)
        for ancestor in forest.ancestors(node):
            if ancestor.id in context:
                break
            context.add(ancestor.id)
    return FilterResult(frozenset(matches), frozenset(context))
