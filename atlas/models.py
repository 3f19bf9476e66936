# -*- coding: utf-8 -*-
"""Update records and content items.

Raw JSON (one file per version/drop) is normalized here, at the ingestion
boundary. Everything past this module works with frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import RecordFormatError
from .ids import derived_id

CONTENT_TYPES: Tuple[str, ...] = (
    "blocks",
    "items",
    "mobs",
    "mob_variants",
    "effects",
    "enchantments",
    "advancements",
    "paintings",
    "biomes",
    "structures",
)

CONTENT_TYPE_LABELS: Dict[str, str] = {
    "blocks": "Blocks",
    "items": "Items",
    "mobs": "Mobs",
    "mob_variants": "Mob Variants",
    "effects": "Effects",
    "enchantments": "Enchantments",
    "advancements": "Advancements",
    "paintings": "Paintings",
    "biomes": "Biomes",
    "structures": "Structures",
}

HIDDEN_TYPE = "hidden"
YEAR_KIND = "year"


def _as_str_tuple(val: Any) -> Tuple[str, ...]:
    if isinstance(val, str):
        return (val,) if val else ()
    if isinstance(val, (list, tuple, set)):
        return tuple(str(x) for x in val if x)
    return ()


@dataclass(frozen=True)
class ContentItem:
    identifier: str
    name: str
    wiki: Optional[str] = None
    types: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    meta: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def tag_set(self) -> frozenset:
        """Lower-cased union of categorical types and free tags."""
        return frozenset(t.lower() for t in self.types + self.tags)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "identifier": self.identifier,
            "name": self.name,
            "types": list(self.types),
            "tags": list(self.tags),
        }
        if self.wiki:
            out["wiki"] = self.wiki
        if self.meta:
            out["meta"] = dict(self.meta)
        return out


@dataclass(frozen=True)
class UpdateRecord:
    """One version or drop. `kind == "year"` marks a synthetic YearGroup."""

    name: Optional[str]
    release_version: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)
    release_date: Optional[str] = None
    wiki: Optional[str] = None
    kind: Optional[str] = None
    added: Mapping[str, Tuple[ContentItem, ...]] = field(default_factory=dict, compare=False, hash=False)

    @property
    def version_label(self) -> Optional[str]:
        java = (self.release_version or {}).get("java")
        return str(java) if java else None

    @property
    def derived_id(self) -> str:
        return derived_id(self)

    @property
    def is_year_group(self) -> bool:
        return self.kind == YEAR_KIND

    @property
    def display_name(self) -> str:
        return self.name or self.version_label or "N/A"

    def items(self, content_type: str) -> Tuple[ContentItem, ...]:
        return tuple(self.added.get(content_type) or ())

    def count(self, content_type: str) -> int:
        return len(self.added.get(content_type) or ())

    def total(self, content_types: Iterable[str] = CONTENT_TYPES) -> int:
        return sum(self.count(t) for t in content_types)

    def with_added(self, added: Mapping[str, Iterable[ContentItem]]) -> "UpdateRecord":
        return replace(self, added=_freeze_added(added))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.derived_id,
            "name": self.name,
            "release_version": dict(self.release_version or {}),
            "release_date": self.release_date,
            "wiki": self.wiki,
            "type": self.kind,
            "added": {t: [i.to_dict() for i in self.items(t)] for t in CONTENT_TYPES},
        }


def _freeze_added(added: Mapping[str, Iterable[ContentItem]]) -> Mapping[str, Tuple[ContentItem, ...]]:
    out: Dict[str, Tuple[ContentItem, ...]] = {}
    for t in CONTENT_TYPES:
        out[t] = tuple((added or {}).get(t) or ())
    return MappingProxyType(out)


def empty_added() -> Dict[str, List[ContentItem]]:
    return {t: [] for t in CONTENT_TYPES}


def make_record(
    name: Optional[str],
    *,
    release_version: Optional[Mapping[str, str]] = None,
    release_date: Optional[str] = None,
    wiki: Optional[str] = None,
    kind: Optional[str] = None,
    added: Optional[Mapping[str, Iterable[ContentItem]]] = None,
) -> UpdateRecord:
    return UpdateRecord(
        name=name,
        release_version=MappingProxyType(dict(release_version or {})),
        release_date=release_date,
        wiki=wiki,
        kind=kind,
        added=_freeze_added(added or {}),
    )


def make_year_group(year: int, added: Mapping[str, Iterable[ContentItem]]) -> UpdateRecord:
    return make_record(str(year), kind=YEAR_KIND, added=added)


# ----------------- ingestion -----------------


def parse_content_item(raw: Any) -> Optional[ContentItem]:
    """Normalize one raw item; returns None for unusable entries."""
    if not isinstance(raw, dict):
        return None
    name = str(raw.get("name") or "").strip()
    ident = str(raw.get("identifier") or "").strip()
    if not name and not ident:
        return None
    meta = {k: v for k, v in raw.items() if k not in ("identifier", "name", "wiki", "types", "tags")}
    return ContentItem(
        identifier=ident or name,
        name=name or ident,
        wiki=(str(raw.get("wiki")) if raw.get("wiki") else None),
        types=_as_str_tuple(raw.get("types")),
        tags=_as_str_tuple(raw.get("tags")),
        meta=MappingProxyType(meta),
    )


def parse_update_record(raw: Any) -> UpdateRecord:
    if isinstance(raw, UpdateRecord):
        return raw
    if not isinstance(raw, dict):
        raise RecordFormatError("Update record must be a JSON object")

    rv = raw.get("release_version")
    if isinstance(rv, str):
        release_version = {"java": rv}
    elif isinstance(rv, dict):
        release_version = {str(k): str(v) for k, v in rv.items() if k and v}
    else:
        release_version = {}

    name = str(raw.get("name") or "").strip() or None
    if not name and not release_version.get("java"):
        raise RecordFormatError("Update record needs a name or release_version.java")

    rd = raw.get("release_date")
    release_date = str(rd).strip() if rd not in (None, "") else None

    added_raw = raw.get("added") or {}
    if not isinstance(added_raw, dict):
        raise RecordFormatError(f"Update record {name or release_version.get('java')}: added must be an object")

    added: Dict[str, List[ContentItem]] = empty_added()
    for t in CONTENT_TYPES:
        entries = added_raw.get(t) or []
        if not isinstance(entries, list):
            continue
        for entry in entries:
            item = parse_content_item(entry)
            if item is not None:
                added[t].append(item)

    return make_record(
        name,
        release_version=release_version,
        release_date=release_date,
        wiki=(str(raw.get("wiki")) if raw.get("wiki") else None),
        kind=(str(raw.get("type")) if raw.get("type") else None),
        added=added,
    )
