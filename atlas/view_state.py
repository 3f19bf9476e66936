# -*- coding: utf-8 -*-
"""ViewState and the enums shared by controller, codecs and reconcile."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .models import CONTENT_TYPES


class DatasetView(str, Enum):
    VERSIONS = "versions"
    YEARS = "years"

    @classmethod
    def parse(cls, value: Any) -> Optional["DatasetView"]:
        try:
            return cls(str(value))
        except ValueError:
            return None


class Mode(str, Enum):
    LIST = "list"
    COMPARE = "compare"
    STATS = "stats"
    TIME_SINCE = "time-since"
    MATERIAL_GROUPS = "material-groups"
    DETAIL = "detail"

    @classmethod
    def parse(cls, value: Any) -> Optional["Mode"]:
        try:
            return cls(str(value))
        except ValueError:
            return None


# modes with their own lazily fetched dataset
DATA_MODES = (Mode.STATS, Mode.TIME_SINCE, Mode.MATERIAL_GROUPS)

# modes in which the search box is disabled
SEARCHLESS_MODES = (Mode.STATS, Mode.TIME_SINCE, Mode.MATERIAL_GROUPS)

# modes detail can return to
DETAIL_RETURN_MODES = (Mode.LIST, Mode.STATS, Mode.COMPARE)

DETAIL_KIND_YEAR = "year"
DETAIL_KIND_VERSION = "version"


@dataclass(frozen=True)
class RecordRef:
    """A derived id plus the dataset view it was selected under."""

    record_id: str
    view: DatasetView


@dataclass(frozen=True)
class DetailTarget:
    kind: str
    record_id: str

    @property
    def view(self) -> DatasetView:
        return DatasetView.YEARS if self.kind == DETAIL_KIND_YEAR else DatasetView.VERSIONS

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.kind, "id": self.record_id}

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["DetailTarget"]:
        if not isinstance(raw, dict):
            return None
        rid = raw.get("id")
        if not isinstance(rid, str) or not rid:
            return None
        kind = raw.get("type")
        kind = kind if kind in (DETAIL_KIND_YEAR, DETAIL_KIND_VERSION) else DETAIL_KIND_VERSION
        return cls(kind=kind, record_id=rid)


def default_visibility() -> Dict[str, bool]:
    return {t: True for t in CONTENT_TYPES}


@dataclass
class ViewState:
    """Mutable UI state. Only ViewStateController writes to it."""

    view: DatasetView = DatasetView.VERSIONS
    mode: Mode = Mode.LIST
    visibility: Dict[str, bool] = field(default_factory=default_visibility)
    remove_duplicates: bool = True
    query: str = ""
    compare_selection: List[Optional[RecordRef]] = field(default_factory=lambda: [None, None])
    detail_target: Optional[DetailTarget] = None
    detail_return_mode: Mode = Mode.LIST
    collapsed_sections: Dict[str, bool] = field(default_factory=dict)

    def copy(self) -> "ViewState":
        return ViewState(
            view=self.view,
            mode=self.mode,
            visibility=dict(self.visibility),
            remove_duplicates=self.remove_duplicates,
            query=self.query,
            compare_selection=list(self.compare_selection),
            detail_target=self.detail_target,
            detail_return_mode=self.detail_return_mode,
            collapsed_sections=dict(self.collapsed_sections),
        )

    def compare_ids(self) -> List[Optional[str]]:
        return [ref.record_id if ref else None for ref in self.compare_selection]


def section_key(record_id: str, section_type: str) -> str:
    return f"{record_id or 'unknown'}:{section_type or 'unknown'}"
