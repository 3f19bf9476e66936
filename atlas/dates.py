# -*- coding: utf-8 -*-
"""Release date helpers.

Release dates come in three shapes:
- None          -> upcoming
- "2021"        -> year-only (treated as Dec 31 of that year)
- "2021-06-08"  -> full date (ISO-8601, optional time part)
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

_YEAR_ONLY = re.compile(r"^\d{4}$")

MONTHS = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]


def is_year_only(value: Optional[str]) -> bool:
    return bool(value) and bool(_YEAR_ONLY.match(str(value).strip()))


def parse_release_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    s = str(value).strip()
    if _YEAR_ONLY.match(s):
        try:
            return datetime(int(s), 12, 31)
        except ValueError:
            return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    # naive and aware values must stay comparable inside one sort
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def release_year(value: Optional[str]) -> Optional[int]:
    dt = parse_release_date(value)
    return dt.year if dt else None


def format_date_for_display(value: Optional[str]) -> str:
    if not value:
        return "upcoming"
    return str(value)


def format_long_date(value: Optional[str]) -> str:
    """'2021-06-08' -> 'June 8, 2021'. Unparseable strings are returned as-is."""
    if not value:
        return "Unknown"
    dt = parse_release_date(value)
    if dt is None:
        return str(value)
    return f"{MONTHS[dt.month - 1]} {dt.day}, {dt.year}"
