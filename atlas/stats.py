# -*- coding: utf-8 -*-
"""Growth series and content tables for the statistics mode.

Growth is always accumulated oldest -> newest, i.e. in the reverse of the
display order kept by RecordStore.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .dates import is_year_only, parse_release_date, release_year
from .models import CONTENT_TYPES, UpdateRecord
from .view_state import DatasetView

NA = "N/A"


@dataclass
class GrowthSeries:
    labels: List[str] = field(default_factory=list)
    series: Dict[str, List[int]] = field(default_factory=lambda: {t: [] for t in CONTENT_TYPES})
    cumulative: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"labels": list(self.labels), "cumulative": self.cumulative, "series": {k: list(v) for k, v in self.series.items()}}


def _scan(labels: List[str], rows: List[Dict[str, int]], cumulative: bool) -> GrowthSeries:
    out = GrowthSeries(labels=labels, cumulative=cumulative)
    running = {t: 0 for t in CONTENT_TYPES}
    for row in rows:
        for t in CONTENT_TYPES:
            if cumulative:
                running[t] += row.get(t, 0)
                out.series[t].append(running[t])
            else:
                out.series[t].append(row.get(t, 0))
    return out


def growth_by_version(records: Sequence[UpdateRecord], cumulative: bool = True) -> GrowthSeries:
    """`records` in display order (newest first); scanned in reverse."""
    labels: List[str] = []
    rows: List[Dict[str, int]] = []
    for rec in reversed(list(records)):
        labels.append(rec.version_label or rec.name or NA)
        rows.append({t: rec.count(t) for t in CONTENT_TYPES})
    return _scan(labels, rows, cumulative)


def growth_by_year(records: Sequence[UpdateRecord], cumulative: bool = True) -> GrowthSeries:
    by_year: Dict[int, Dict[str, int]] = {}
    for rec in records:
        year = release_year(rec.release_date)
        if year is None:
            continue
        bucket = by_year.setdefault(year, {t: 0 for t in CONTENT_TYPES})
        for t in CONTENT_TYPES:
            bucket[t] += rec.count(t)
    years = sorted(by_year)
    return _scan([str(y) for y in years], [by_year[y] for y in years], cumulative)


def growth(records: Sequence[UpdateRecord], view: DatasetView, cumulative: bool = True) -> GrowthSeries:
    if view == DatasetView.YEARS:
        return growth_by_year(records, cumulative=cumulative)
    return growth_by_version(records, cumulative=cumulative)


# ----------------- tables -----------------


def versions_table(records: Iterable[UpdateRecord]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for rec in records:
        dt = parse_release_date(rec.release_date)
        row: Dict[str, Any] = {
            "id": rec.derived_id,
            "name": rec.name or NA,
            "version": rec.version_label or NA,
        }
        for t in CONTENT_TYPES:
            row[t] = rec.count(t)
        row["total"] = rec.total()
        row["_release_date"] = rec.release_date
        row["_is_year_only"] = is_year_only(rec.release_date)
        row["_date_value"] = dt.timestamp() if dt else None
        rows.append(row)
    return rows


def years_table(records: Iterable[UpdateRecord]) -> List[Dict[str, Any]]:
    by_year: Dict[int, Dict[str, int]] = {}
    for rec in records:
        year = release_year(rec.release_date)
        if year is None:
            continue
        bucket = by_year.setdefault(year, {t: 0 for t in CONTENT_TYPES})
        for t in CONTENT_TYPES:
            bucket[t] += rec.count(t)
    rows: List[Dict[str, Any]] = []
    for year, counts in by_year.items():
        row: Dict[str, Any] = {"id": "id-" + str(year), "year": year}
        row.update(counts)
        row["total"] = sum(counts.values())
        rows.append(row)
    return rows


_NUM_CHUNK = re.compile(r"(\d+)")


def _natural_key(value: Any) -> List[Any]:
    parts = _NUM_CHUNK.split(str(value).lower())
    return [(0, int(p)) if p.isdigit() else (1, p) for p in parts if p != ""]


def _natural_cmp(a: Any, b: Any) -> int:
    ka, kb = _natural_key(a), _natural_key(b)
    return (ka > kb) - (ka < kb)


def _version_rank(row: Dict[str, Any]) -> int:
    if row.get("_release_date") is None:
        return 0
    if row.get("_is_year_only"):
        return 1
    return 2


def _display_cmp(a: Dict[str, Any], b: Dict[str, Any]) -> int:
    # display order: upcoming, year-only, then dated newest first
    ra, rb = _version_rank(a), _version_rank(b)
    if ra != rb:
        return ra - rb
    da, db = a.get("_date_value"), b.get("_date_value")
    if da is None or db is None:
        return (da is None) - (db is None)
    return (da < db) - (da > db)


def sort_rows(rows: Sequence[Dict[str, Any]], column: str, direction: str = "desc") -> List[Dict[str, Any]]:
    """Table sort used by the statistics mode (returns a new list)."""
    sign = 1 if direction == "asc" else -1

    def compare(a: Dict[str, Any], b: Dict[str, Any]) -> int:
        if column == "name":
            a_na = 1 if a.get("name") == NA else 0
            b_na = 1 if b.get("name") == NA else 0
            if a_na != b_na:
                return a_na - b_na
            return sign * _natural_cmp(a.get("name"), b.get("name"))

        if column == "version":
            return sign * _display_cmp(a, b)

        va, vb = a.get(column), b.get(column)
        if isinstance(va, str) or isinstance(vb, str):
            return sign * _natural_cmp(va, vb)
        va = va or 0
        vb = vb or 0
        return sign * ((va > vb) - (va < vb))

    return sorted(rows, key=cmp_to_key(compare))


@dataclass
class SortState:
    column: str = "total"
    direction: str = "desc"

    def toggle(self, column: str) -> None:
        if self.column == column:
            self.direction = "asc" if self.direction == "desc" else "desc"
        else:
            self.column = column
            self.direction = "desc"

    def reset(self) -> None:
        self.column = "total"
        self.direction = "desc"


def name_length_stats(names: Iterable[str], limit: int = 5) -> Dict[str, List[str]]:
    uniq: List[str] = []
    seen = set()
    for n in names:
        if n and n not in seen:
            seen.add(n)
            uniq.append(n)
    by_len = sorted(uniq, key=len)
    return {
        "longest": list(reversed(by_len[-limit:])) if limit > 0 else [],
        "shortest": by_len[:limit] if limit > 0 else [],
    }


def table_for_view(records: Sequence[UpdateRecord], view: DatasetView, sort: Optional[SortState] = None) -> List[Dict[str, Any]]:
    rows = years_table(records) if view == DatasetView.YEARS else versions_table(records)
    st = sort or SortState()
    return sort_rows(rows, st.column, st.direction)
