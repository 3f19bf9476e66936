# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .dates import is_year_only, parse_release_date
from .models import CONTENT_TYPES, ContentItem, UpdateRecord, empty_added, make_year_group, parse_update_record
from .view_state import DatasetView

logger = logging.getLogger(__name__)


def _partition(records: Sequence[UpdateRecord]) -> Tuple[List[UpdateRecord], List[UpdateRecord], List[UpdateRecord]]:
    upcoming: List[UpdateRecord] = []
    year_only: List[UpdateRecord] = []
    dated: List[UpdateRecord] = []
    for rec in records:
        if rec.release_date is None:
            upcoming.append(rec)
        elif is_year_only(rec.release_date):
            year_only.append(rec)
        else:
            dated.append(rec)
    return upcoming, year_only, dated


def sort_records(records: Iterable[UpdateRecord]) -> List[UpdateRecord]:
    """Display order: upcoming, then year-only (desc), then full dates (desc).

    Unparseable full dates sink below every parsed date; Python's stable sort
    keeps insertion order inside ties.
    """
    upcoming, year_only, dated = _partition(list(records))

    year_only.sort(key=lambda r: int(str(r.release_date).strip()), reverse=True)

    parsed: List[Tuple[datetime, UpdateRecord]] = []
    broken: List[UpdateRecord] = []
    for rec in dated:
        dt = parse_release_date(rec.release_date)
        if dt is None:
            broken.append(rec)
        else:
            parsed.append((dt, rec))
    parsed.sort(key=lambda pair: pair[0], reverse=True)

    return upcoming + year_only + [rec for _, rec in parsed] + broken


def group_by_year(records: Iterable[UpdateRecord]) -> List[UpdateRecord]:
    """Aggregate records into YearGroups, newest year first.

    Records without a parseable year are left out of every group.
    """
    buckets: Dict[int, Dict[str, List[ContentItem]]] = {}
    for rec in records:
        dt = parse_release_date(rec.release_date)
        if dt is None:
            continue
        added = buckets.setdefault(dt.year, empty_added())
        for t in CONTENT_TYPES:
            added[t].extend(rec.items(t))
    return [make_year_group(year, buckets[year]) for year in sorted(buckets, reverse=True)]


class RecordStore:
    """Immutable, sorted update records for one session (thread-safe reads).

    The year grouping is computed on first use and cached; the dataset never
    changes after `load`, so the cache is never invalidated.
    """

    def __init__(self, raw_records: Optional[Iterable[Any]] = None):
        self._lock = threading.RLock()
        self._records: Tuple[UpdateRecord, ...] = ()
        self._by_id: Dict[str, UpdateRecord] = {}
        self._year_groups: Optional[Tuple[UpdateRecord, ...]] = None
        if raw_records is not None:
            self.load(raw_records)

    def load(self, raw_records: Iterable[Any]) -> List[UpdateRecord]:
        parsed = [parse_update_record(r) for r in raw_records]
        ordered = sort_records(parsed)
        with self._lock:
            self._records = tuple(ordered)
            self._by_id = {}
            for rec in ordered:
                # first (newest) record wins on id collisions
                self._by_id.setdefault(rec.derived_id, rec)
            self._year_groups = None
        logger.debug("record store loaded %d records", len(ordered))
        return list(ordered)

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> Tuple[UpdateRecord, ...]:
        return self._records

    def get(self, record_id: str) -> Optional[UpdateRecord]:
        if not record_id:
            return None
        return self._by_id.get(str(record_id))

    def year_groups(self) -> Tuple[UpdateRecord, ...]:
        with self._lock:
            if self._year_groups is None:
                self._year_groups = tuple(group_by_year(self._records))
            return self._year_groups

    def dataset(self, view: DatasetView) -> Tuple[UpdateRecord, ...]:
        if view == DatasetView.YEARS:
            return self.year_groups()
        return self._records

    def find(self, view: DatasetView, record_id: Optional[str]) -> Optional[UpdateRecord]:
        if not record_id:
            return None
        if view == DatasetView.VERSIONS:
            return self.get(record_id)
        return next((g for g in self.year_groups() if g.derived_id == record_id), None)

    def neighbors(self, view: DatasetView, record_id: str) -> Tuple[Optional[UpdateRecord], Optional[UpdateRecord]]:
        """(previous, next) around `record_id` in the view's display order."""
        data = self.dataset(view)
        for idx, rec in enumerate(data):
            if rec.derived_id == record_id:
                prev_rec = data[idx - 1] if idx > 0 else None
                next_rec = data[idx + 1] if idx < len(data) - 1 else None
                return prev_rec, next_rec
        return None, None
