# -*- coding: utf-8 -*-
"""Search parsing and filtering (pure functions).

Query syntax
- plain words match a substring of the item name or identifier
- `#tag` tokens must all be present in the item's types/tags
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

from .models import CONTENT_TYPE_LABELS, CONTENT_TYPES, HIDDEN_TYPE, ContentItem, UpdateRecord

_TAG_STRIP = re.compile(r"[^\w-]")


@dataclass(frozen=True)
class Query:
    text: str = ""
    tags: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.tags


QueryLike = Union[str, Query, None]


def parse_query(raw: Optional[str]) -> Query:
    if not raw or not raw.strip():
        return Query()
    tags: List[str] = []
    words: List[str] = []
    for token in raw.strip().lower().split():
        if token.startswith("#"):
            tag = _TAG_STRIP.sub("", token[1:])
            if tag:
                tags.append(tag)
        else:
            words.append(token)
    return Query(text=" ".join(words), tags=frozenset(tags))


def _as_query(query: QueryLike) -> Query:
    if isinstance(query, Query):
        return query
    return parse_query(query)


def item_matches(item: ContentItem, query: Query) -> bool:
    if query.text:
        if query.text not in item.name.lower() and query.text not in item.identifier.lower():
            return False
    if query.tags and not query.tags <= item.tag_set():
        return False
    return True


def filter_items(items: Optional[Iterable[ContentItem]], query: QueryLike, remove_duplicates: bool) -> List[ContentItem]:
    if not items:
        return []
    q = _as_query(query)
    out = [it for it in items if item_matches(it, q)]
    if remove_duplicates:
        out = [it for it in out if HIDDEN_TYPE not in it.types]
    return out


def filter_record(record: UpdateRecord, query: QueryLike, remove_duplicates: bool) -> UpdateRecord:
    """Record copy with every content type filtered; `record` is untouched."""
    q = _as_query(query)
    return record.with_added({t: filter_items(record.items(t), q, remove_duplicates) for t in CONTENT_TYPES})


def has_visible_content(record: UpdateRecord, visibility: Mapping[str, bool]) -> bool:
    return any(visibility.get(t, True) and record.count(t) > 0 for t in CONTENT_TYPES)


def get_filtered_view(
    dataset: Sequence[UpdateRecord],
    query: QueryLike,
    remove_duplicates: bool,
    visibility: Mapping[str, bool],
) -> List[UpdateRecord]:
    q = _as_query(query)
    mapped = [filter_record(rec, q, remove_duplicates) for rec in dataset]
    return [rec for rec in mapped if has_visible_content(rec, visibility)]


# ----------------- summaries -----------------


@dataclass(frozen=True)
class ResultsSummary:
    query: str
    entry_count: int
    item_count: int

    def to_dict(self) -> Dict[str, object]:
        return {"query": self.query, "entry_count": self.entry_count, "item_count": self.item_count}


def results_summary(records: Sequence[UpdateRecord], visibility: Mapping[str, bool], query: str = "") -> ResultsSummary:
    items = 0
    for rec in records:
        for t in CONTENT_TYPES:
            if visibility.get(t, True):
                items += rec.count(t)
    return ResultsSummary(query=query or "", entry_count=len(records), item_count=items)


def section_counts(record: UpdateRecord, visibility: Mapping[str, bool]) -> List[Dict[str, object]]:
    """Per-section counts for the detail navigation (non-empty, visible only)."""
    out: List[Dict[str, object]] = []
    for t in CONTENT_TYPES:
        n = record.count(t)
        if n and visibility.get(t, True) is not False:
            out.append({"section": t, "label": CONTENT_TYPE_LABELS[t], "count": n})
    return out


def name_suggestions(records: Iterable[UpdateRecord], limit: int = 80) -> List[str]:
    """Most frequent item names, ties broken alphabetically."""
    counts: Counter = Counter()
    for rec in records:
        for t in CONTENT_TYPES:
            for it in rec.items(t):
                if it.name:
                    counts[it.name] += 1
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [name for name, _ in ranked[: max(0, int(limit))]]


def all_names(records: Iterable[UpdateRecord]) -> List[str]:
    """Unique item names, shortest first (first-seen order among equal lengths)."""
    seen: Dict[str, None] = {}
    for rec in records:
        for t in CONTENT_TYPES:
            for it in rec.items(t):
                if it.name:
                    seen.setdefault(it.name, None)
    return sorted(seen, key=len)
