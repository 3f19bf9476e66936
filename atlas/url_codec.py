# -*- coding: utf-8 -*-
"""URL query parameters <-> ViewState, plus an in-process history stack."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Union
from urllib.parse import parse_qs, urlencode

from .view_state import DETAIL_KIND_VERSION, DatasetView, Mode, ViewState

QueryInput = Union[str, Mapping[str, str], None]


@dataclass(frozen=True)
class UrlParams:
    """Decoded parameters. Invalid enum values decode to None.

    `mode_present` tells an explicit-but-invalid `mode` apart from no `mode`.
    """

    view: Optional[DatasetView] = None
    mode: Optional[Mode] = None
    mode_present: bool = False
    search: Optional[str] = None
    compare1: Optional[str] = None
    compare2: Optional[str] = None
    detail_type: Optional[str] = None
    detail_id: Optional[str] = None


def _flatten(query: QueryInput) -> Dict[str, str]:
    if not query:
        return {}
    if isinstance(query, str):
        qs = query[1:] if query.startswith("?") else query
        parsed = parse_qs(qs, keep_blank_values=True)
        return {k: v[0] for k, v in parsed.items() if v}
    return {str(k): str(v) for k, v in query.items() if v is not None}


def decode(query: QueryInput) -> UrlParams:
    raw = _flatten(query)
    mode_raw = raw.get("mode")
    mode = Mode.parse(mode_raw) if mode_raw else None
    return UrlParams(
        view=DatasetView.parse(raw.get("view")) if raw.get("view") else None,
        mode=mode,
        mode_present=bool(mode_raw),
        search=raw.get("search") or None,
        compare1=raw.get("compare1") or None,
        compare2=raw.get("compare2") or None,
        detail_type=(raw.get("detailType") or DETAIL_KIND_VERSION) if mode == Mode.DETAIL else None,
        detail_id=raw.get("detailId") or None,
    )


def encode(state: ViewState) -> Dict[str, str]:
    out: Dict[str, str] = {"view": state.view.value}
    if state.query:
        out["search"] = state.query

    if state.mode == Mode.DETAIL and state.detail_target is not None:
        out["mode"] = Mode.DETAIL.value
        out["detailType"] = state.detail_target.kind
        out["detailId"] = state.detail_target.record_id
    elif state.mode in (Mode.STATS, Mode.TIME_SINCE, Mode.MATERIAL_GROUPS):
        out["mode"] = state.mode.value
    elif state.mode == Mode.COMPARE:
        out["mode"] = Mode.COMPARE.value
        first, second = state.compare_ids()
        if first:
            out["compare1"] = first
        if second:
            out["compare2"] = second
    return out


def to_query_string(params: Mapping[str, str]) -> str:
    return urlencode(list(params.items()))


class UrlHistory:
    """Browser-like history: push drops the forward stack, replace overwrites."""

    def __init__(self, initial: str = ""):
        self._entries: List[str] = [initial]
        self._index = 0

    def current(self) -> str:
        return self._entries[self._index]

    def push(self, url: str) -> None:
        del self._entries[self._index + 1:]
        self._entries.append(url)
        self._index += 1

    def replace(self, url: str) -> None:
        self._entries[self._index] = url

    def back(self) -> Optional[str]:
        if self._index == 0:
            return None
        self._index -= 1
        return self.current()

    def forward(self) -> Optional[str]:
        if self._index >= len(self._entries) - 1:
            return None
        self._index += 1
        return self.current()

    def entries(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
