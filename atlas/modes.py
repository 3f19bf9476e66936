# -*- coding: utf-8 -*-
"""Lazily fetched datasets owned by the Stats, TimeSince and MaterialGroups modes.

Each dataset lives for one activation of its mode. `enter()` and `exit()` both
bump the activation epoch; a fetch started under an older epoch is discarded
when it resolves, so a slow response can never repopulate an exited mode.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from .dates import format_long_date, parse_release_date
from .errors import ModeDataError
from .loader import Fetcher
from .persistence import PersistenceGateway
from .stats import SortState
from .timers import RepeatingTimer
from .view_state import Mode

logger = logging.getLogger(__name__)

DEFAULT_STATS_DIR = "statistics"


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ModeDataset:
    mode: Mode = Mode.LIST
    filename: str = ""

    def __init__(self, fetcher: Optional[Fetcher], stats_dir: str = DEFAULT_STATS_DIR):
        self.fetcher = fetcher
        self.stats_dir = stats_dir.strip("/")
        self._epoch = 0
        self._active = False
        self._data: Any = None
        self._inflight: Optional[Tuple[int, "asyncio.Task[Any]"]] = None
        self.fetch_count = 0

    @property
    def path(self) -> str:
        return f"{self.stats_dir}/{self.filename}" if self.stats_dir else self.filename

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def active(self) -> bool:
        return self._active

    @property
    def cached(self) -> Any:
        return self._data

    def enter(self) -> int:
        self._epoch += 1
        self._active = True
        self._data = None
        self._inflight = None
        return self._epoch

    def exit(self) -> None:
        self._epoch += 1
        self._active = False
        self._data = None
        self._inflight = None

    async def _fetch(self) -> Any:
        self.fetch_count += 1
        if self.fetcher is None:
            raise ModeDataError(self.mode.value, "no data source configured")
        try:
            return await self.fetcher.fetch_json(self.path)
        except (OSError, ValueError, httpx.HTTPError) as e:
            logger.warning("%s dataset %s failed: %s", self.mode.value, self.path, e)
            raise ModeDataError(self.mode.value, f"Failed to load {self.path}: {e}") from e

    async def ensure(self) -> Any:
        """Cached dataset for the current activation, or None if it was exited meanwhile."""
        if not self._active:
            return None
        if self._data is not None:
            return self._data

        epoch = self._epoch
        if self._inflight is None or self._inflight[0] != epoch:
            self._inflight = (epoch, asyncio.ensure_future(self._fetch()))
        task = self._inflight[1]
        try:
            raw = await task
        except ModeDataError:
            if epoch != self._epoch or not self._active:
                logger.debug("%s dataset failed after exit, discarded", self.mode.value)
                return None
            raise
        finally:
            if self._inflight is not None and self._inflight[1] is task:
                self._inflight = None

        if epoch != self._epoch or not self._active:
            logger.debug("%s dataset resolved after exit, discarded", self.mode.value)
            return None
        if self._data is None:
            self._data = self.build(raw)
        return self._data

    def build(self, raw: Any) -> Any:
        return raw


# ----------------- stats -----------------


@dataclass
class NameStats:
    longest: List[str] = field(default_factory=list)
    shortest: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "longest": [{"name": n, "length": len(n)} for n in self.longest],
            "shortest": [{"name": n, "length": len(n)} for n in self.shortest],
        }


def _str_list(val: Any) -> List[str]:
    if not isinstance(val, list):
        return []
    return [str(x) for x in val if isinstance(x, str)]


class StatsMode(ModeDataset):
    mode = Mode.STATS
    filename = "names.json"

    def __init__(self, fetcher: Optional[Fetcher], stats_dir: str = DEFAULT_STATS_DIR):
        super().__init__(fetcher, stats_dir)
        self.sort = SortState()
        self.cumulative = True

    def build(self, raw: Any) -> NameStats:
        if not isinstance(raw, dict):
            raise ModeDataError(self.mode.value, f"{self.path} must be a JSON object")
        return NameStats(longest=_str_list(raw.get("longest")), shortest=_str_list(raw.get("shortest")))


# ----------------- time since -----------------

VERSION_CARDS = (("last_drop", "Drop Update"), ("last_major", "Major Update"))

CONTENT_CARDS = (
    ("last_block", "Block"),
    ("last_item", "Item"),
    ("last_mob", "Mob"),
    ("last_mob_variant", "Mob Variant"),
    ("last_advancement", "Advancement"),
    ("last_biome", "Biome"),
    ("last_painting", "Painting"),
    ("last_effect", "Effect"),
    ("last_enchantment", "Enchantment"),
    ("last_structure", "Structure"),
)

_YEAR = 365 * 86400
_MONTH = 30 * 86400
_DAY = 86400


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"


def format_elapsed(release: Optional[datetime], now: datetime) -> str:
    """Elapsed time as "1 year, 2 months, 3 hours, 0 minutes and 5 seconds".

    Years are 365 days and months 30 days. Years, months and days appear only
    when non-zero; hours, minutes and seconds always appear.
    """
    if release is None:
        return "Unknown"
    delta = now - release
    if delta.total_seconds() < 0:
        return "Not yet released"
    total = int(delta.total_seconds())

    parts: List[str] = []
    years = total // _YEAR
    months = (total % _YEAR) // _MONTH
    days = (total % _MONTH) // _DAY
    if years > 0:
        parts.append(_plural(years, "year"))
    if months > 0:
        parts.append(_plural(months, "month"))
    if days > 0:
        parts.append(_plural(days, "day"))
    parts.append(_plural((total % _DAY) // 3600, "hour"))
    parts.append(_plural((total % 3600) // 60, "minute"))
    parts.append(_plural(total % 60, "second"))
    return ", ".join(parts[:-1]) + " and " + parts[-1]


@dataclass
class TimeSinceCard:
    key: str
    label: str
    name: Optional[str]
    version: Optional[str]
    release_date: Optional[str]
    wiki: Optional[str] = None
    version_name: Optional[str] = None

    @property
    def released(self) -> Optional[datetime]:
        return parse_release_date(self.release_date)

    def to_dict(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "name": self.name,
            "version": self.version,
            "version_name": self.version_name,
            "release_date": self.release_date,
            "released_on": format_long_date(self.release_date),
            "wiki": self.wiki,
            "elapsed": format_elapsed(self.released, now or utc_now()),
        }


@dataclass
class TimeSinceBoard:
    version_cards: List[TimeSinceCard] = field(default_factory=list)
    content_cards: List[TimeSinceCard] = field(default_factory=list)

    def cards(self) -> List[TimeSinceCard]:
        return self.version_cards + self.content_cards

    def to_dict(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utc_now()
        return {
            "version_cards": [c.to_dict(now) for c in self.version_cards],
            "content_cards": [c.to_dict(now) for c in self.content_cards],
        }


def _opt_str(val: Any) -> Optional[str]:
    return str(val) if val not in (None, "") else None


def build_time_since(raw: Any) -> TimeSinceBoard:
    if not isinstance(raw, dict):
        raise ModeDataError(Mode.TIME_SINCE.value, "time-since data must be a JSON object")
    board = TimeSinceBoard()
    for key, label in VERSION_CARDS:
        data = raw.get(key)
        if not isinstance(data, dict):
            continue
        board.version_cards.append(
            TimeSinceCard(
                key=key,
                label=label,
                name=_opt_str(data.get("name")),
                version=_opt_str(data.get("version")),
                release_date=_opt_str(data.get("release_date")),
                wiki=_opt_str(data.get("wiki")),
            )
        )

    content: List[TimeSinceCard] = []
    for key, label in CONTENT_CARDS:
        data = raw.get(key)
        if not isinstance(data, dict):
            continue
        element = data.get("element") if isinstance(data.get("element"), dict) else {}
        content.append(
            TimeSinceCard(
                key=key,
                label=label,
                name=_opt_str(element.get("name")) or "Unknown",
                version=_opt_str(data.get("version")),
                version_name=_opt_str(data.get("version_name")),
                release_date=_opt_str(data.get("release_date")),
                wiki=_opt_str(element.get("wiki")),
            )
        )

    def newest_first(card: TimeSinceCard) -> float:
        dt = card.released
        return -dt.replace(tzinfo=timezone.utc).timestamp() if dt else 0.0

    board.content_cards = sorted(content, key=newest_first)
    return board


class TimeSinceMode(ModeDataset):
    """Owns a 1-second RepeatingTimer for the lifetime of one activation."""

    mode = Mode.TIME_SINCE
    filename = "time_since.json"
    tick_interval = 1.0

    def __init__(
        self,
        fetcher: Optional[Fetcher],
        stats_dir: str = DEFAULT_STATS_DIR,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(fetcher, stats_dir)
        self.clock = clock
        self.timer: Optional[RepeatingTimer] = None
        self.elapsed: Dict[str, str] = {}

    def build(self, raw: Any) -> TimeSinceBoard:
        return build_time_since(raw)

    def refresh(self) -> Dict[str, str]:
        board = self._data
        if board is None:
            return {}
        now = self.clock()
        self.elapsed = {c.key: format_elapsed(c.released, now) for c in board.cards()}
        return self.elapsed

    def start_ticking(self, listener: Optional[Callable[[Dict[str, str]], Any]] = None) -> Optional[RepeatingTimer]:
        """Start the per-second refresh; must be called from a running loop."""
        if not self._active:
            return None
        if self.timer is not None and self.timer.active:
            return self.timer

        def tick() -> None:
            elapsed = self.refresh()
            if listener is not None:
                listener(elapsed)

        self.timer = RepeatingTimer(self.tick_interval, tick, name="time-since").start()
        return self.timer

    def exit(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
        self.elapsed = {}
        super().exit()


# ----------------- material groups -----------------


@dataclass
class GroupCell:
    identifier: str
    name: str
    wiki: Optional[str] = None
    element_type: str = "item"

    def to_dict(self) -> Dict[str, Any]:
        return {"identifier": self.identifier, "name": self.name, "wiki": self.wiki, "element_type": self.element_type}


def parse_group_cell(raw: Any) -> Optional[GroupCell]:
    if not isinstance(raw, dict):
        return None
    ident = str(raw.get("identifier") or raw.get("minecraft_identifier") or "")
    return GroupCell(
        identifier=ident,
        name=str(raw.get("display_name") or raw.get("name") or ident),
        wiki=_opt_str(raw.get("wiki")),
        element_type=str(raw.get("element_type") or "item"),
    )


@dataclass
class GroupRow:
    material: Optional[GroupCell]
    cells: List[Optional[GroupCell]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material": self.material.to_dict() if self.material else None,
            "cells": [c.to_dict() if c else None for c in self.cells],
        }


@dataclass
class MaterialGroup:
    section_id: str
    name: str
    columns: List[str]
    rows: List[GroupRow]
    collapsed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section_id": self.section_id,
            "name": self.name,
            "columns": list(self.columns),
            "collapsed": self.collapsed,
            "rows": [r.to_dict() for r in self.rows],
        }


def column_order(groups: List[Any]) -> List[str]:
    """Union of item keys across groups, first-seen order."""
    seen: Dict[str, None] = {}
    for g in groups:
        items = g.get("items") if isinstance(g, dict) else None
        if isinstance(items, dict):
            for k in items:
                seen.setdefault(str(k), None)
    return list(seen)


def build_material_groups(raw: Any) -> List[MaterialGroup]:
    if not isinstance(raw, dict):
        raise ModeDataError(Mode.MATERIAL_GROUPS.value, "material-group data must be a JSON object")
    content = raw.get("content") if isinstance(raw.get("content"), list) else []
    tiered = [e for e in content if isinstance(e, dict) and isinstance(e.get("groups"), list) and e["groups"]]

    out: List[MaterialGroup] = []
    for index, entry in enumerate(tiered):
        groups = entry["groups"]
        columns = column_order(groups)
        if not columns:
            continue
        rows: List[GroupRow] = []
        for g in groups:
            g = g if isinstance(g, dict) else {}
            items = g.get("items") if isinstance(g.get("items"), dict) else {}
            rows.append(GroupRow(material=parse_group_cell(g.get("material")), cells=[parse_group_cell(items.get(k)) for k in columns]))
        out.append(
            MaterialGroup(
                section_id=f"material-group-{index}",
                name=str(entry.get("name") or f"Group {index + 1}"),
                columns=columns,
                rows=rows,
            )
        )
    return out


class MaterialGroupsMode(ModeDataset):
    mode = Mode.MATERIAL_GROUPS
    filename = "special.json"

    def __init__(
        self,
        fetcher: Optional[Fetcher],
        stats_dir: str = DEFAULT_STATS_DIR,
        gateway: Optional[PersistenceGateway] = None,
    ):
        super().__init__(fetcher, stats_dir)
        self.gateway = gateway or PersistenceGateway()

    def build(self, raw: Any) -> List[MaterialGroup]:
        groups = build_material_groups(raw)
        for g in groups:
            g.collapsed = self.gateway.is_group_collapsed(g.section_id)
        return groups

    def is_collapsed(self, section_id: str) -> bool:
        return self.gateway.is_group_collapsed(section_id)

    def set_collapsed(self, section_id: str, collapsed: bool) -> None:
        self.gateway.set_group_collapsed(section_id, collapsed)
        for g in self._data or []:
            if g.section_id == section_id:
                g.collapsed = collapsed

    def toggle(self, section_id: str) -> bool:
        collapsed = not self.is_collapsed(section_id)
        self.set_collapsed(section_id, collapsed)
        return collapsed
