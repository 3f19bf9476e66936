# -*- coding: utf-8 -*-
"""Stable, identifier-safe ids for records and items."""

from __future__ import annotations

import re
import time
from typing import Any, Mapping, Optional

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")

ID_SEPARATOR = "-"
DIGIT_PREFIX = "id-"


def _field(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def _version_label(obj: Any) -> Optional[str]:
    label = _field(obj, "version_label")
    if label:
        return str(label)
    rv = _field(obj, "release_version")
    if isinstance(rv, Mapping):
        java = rv.get("java")
        return str(java) if java else None
    return None


def sanitize_id(text: str) -> str:
    """Replace every non-alphanumeric char with '-' and guard a leading digit."""
    out = _NON_ALNUM.sub(ID_SEPARATOR, str(text))
    if out[:1].isdigit():
        return DIGIT_PREFIX + out
    return out


def derived_id(obj: Any) -> str:
    """Join key used by URLs, persisted selections and nav anchors.

    Prefers `name`, then the version label. The timestamp placeholder is only
    reached for records with neither (never produced by the loader).
    """
    source = _field(obj, "name") or _version_label(obj) or f"year-{int(time.time() * 1000)}"
    return sanitize_id(source)
