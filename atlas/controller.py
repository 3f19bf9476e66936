# -*- coding: utf-8 -*-
"""ViewStateController: the single owner of ViewState.

Every state-changing operation runs the same tail: persist the snapshot,
write the URL (push for navigation, replace for incidental changes) and emit
a ViewSnapshot to subscribers.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from .loader import Fetcher
from .models import CONTENT_TYPES, UpdateRecord
from .modes import DEFAULT_STATS_DIR, MaterialGroupsMode, ModeDataset, StatsMode, TimeSinceMode, utc_now
from .persistence import PersistenceGateway
from .query import Query, ResultsSummary, filter_record, get_filtered_view, parse_query, results_summary, section_counts
from .reconcile import reconcile
from .record_store import RecordStore
from .selection import SelectionResolver
from .stats import GrowthSeries, growth, table_for_view
from .url_codec import UrlHistory, decode, encode, to_query_string
from .view_state import (
    DETAIL_RETURN_MODES,
    SEARCHLESS_MODES,
    DatasetView,
    DetailTarget,
    Mode,
    ViewState,
    section_key,
)

logger = logging.getLogger(__name__)

Listener = Callable[["ViewSnapshot"], Any]


@dataclass
class ViewSnapshot:
    """Read-only view handed to the rendering layer."""

    mode: Mode
    view: DatasetView
    query: str
    search_enabled: bool
    remove_duplicates: bool
    visibility: Dict[str, bool]
    loaded: bool = False
    records: List[UpdateRecord] = field(default_factory=list)
    summary: Optional[ResultsSummary] = None
    compare: List[Optional[UpdateRecord]] = field(default_factory=lambda: [None, None])
    compare_ids: List[Optional[str]] = field(default_factory=lambda: [None, None])
    detail: Optional[UpdateRecord] = None
    detail_target: Optional[DetailTarget] = None
    detail_return_mode: Mode = Mode.LIST
    detail_prev: Optional[UpdateRecord] = None
    detail_next: Optional[UpdateRecord] = None
    detail_sections: List[Dict[str, object]] = field(default_factory=list)
    collapsed_sections: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        def rec(r: Optional[UpdateRecord]) -> Optional[Dict[str, Any]]:
            return r.to_dict() if r is not None else None

        def ref(r: Optional[UpdateRecord]) -> Optional[Dict[str, Any]]:
            return {"id": r.derived_id, "name": r.display_name} if r is not None else None

        return {
            "mode": self.mode.value,
            "view": self.view.value,
            "query": self.query,
            "search_enabled": self.search_enabled,
            "remove_duplicates": self.remove_duplicates,
            "visibility": dict(self.visibility),
            "loaded": self.loaded,
            "records": [r.to_dict() for r in self.records],
            "summary": self.summary.to_dict() if self.summary else None,
            "compare": [rec(r) for r in self.compare],
            "compare_ids": list(self.compare_ids),
            "detail": rec(self.detail),
            "detail_target": self.detail_target.to_dict() if self.detail_target else None,
            "detail_return_mode": self.detail_return_mode.value,
            "detail_prev": ref(self.detail_prev),
            "detail_next": ref(self.detail_next),
            "detail_sections": list(self.detail_sections),
            "collapsed_sections": dict(self.collapsed_sections),
        }


class ViewStateController:
    def __init__(
        self,
        *,
        gateway: Optional[PersistenceGateway] = None,
        fetcher: Optional[Fetcher] = None,
        stats_dir: str = DEFAULT_STATS_DIR,
        defaults: Optional[ViewState] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.gateway = gateway or PersistenceGateway()
        self.store = RecordStore()
        self.selection = SelectionResolver(self.store)
        self.history = UrlHistory()
        self._defaults = (defaults or ViewState()).copy()
        self._state = self._defaults.copy()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._pending_compare: List[Optional[str]] = [None, None]
        self._pending_detail: Optional[DetailTarget] = None
        self._scroll_offset = 0
        self._loaded = False

        self.stats = StatsMode(fetcher, stats_dir)
        self.time_since = TimeSinceMode(fetcher, stats_dir, clock=clock)
        self.material_groups = MaterialGroupsMode(fetcher, stats_dir, gateway=self.gateway)
        self.modes: Dict[Mode, ModeDataset] = {
            Mode.STATS: self.stats,
            Mode.TIME_SINCE: self.time_since,
            Mode.MATERIAL_GROUPS: self.material_groups,
        }

    # ----------------- read side -----------------

    @property
    def state(self) -> ViewState:
        return self._state.copy()

    @property
    def mode(self) -> Mode:
        return self._state.mode

    @property
    def view(self) -> DatasetView:
        return self._state.view

    @property
    def loaded(self) -> bool:
        return self._loaded

    def current_url(self) -> str:
        return to_query_string(encode(self._state))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _active_query(self) -> Query:
        if self._state.mode in SEARCHLESS_MODES:
            return Query()
        return parse_query(self._state.query)

    def snapshot(self) -> ViewSnapshot:
        with self._lock:
            st = self._state
            q = self._active_query()
            snap = ViewSnapshot(
                mode=st.mode,
                view=st.view,
                query=st.query,
                search_enabled=st.mode not in SEARCHLESS_MODES,
                remove_duplicates=st.remove_duplicates,
                visibility=dict(st.visibility),
                loaded=self._loaded,
                compare_ids=st.compare_ids(),
                detail_target=st.detail_target,
                detail_return_mode=st.detail_return_mode,
                collapsed_sections=dict(st.collapsed_sections),
            )
            if not self._loaded:
                return snap

            if st.mode == Mode.LIST:
                snap.records = get_filtered_view(self.store.dataset(st.view), q, st.remove_duplicates, st.visibility)
                snap.summary = results_summary(snap.records, st.visibility, st.query)
            elif st.mode == Mode.COMPARE:
                pair: List[Optional[UpdateRecord]] = []
                for r in st.compare_selection:
                    found = self.store.find(r.view, r.record_id) if r else None
                    pair.append(filter_record(found, q, st.remove_duplicates) if found is not None else None)
                snap.compare = pair
            elif st.mode == Mode.DETAIL and st.detail_target is not None:
                target = st.detail_target
                found = self.store.find(target.view, target.record_id)
                if found is not None:
                    snap.detail = filter_record(found, q, st.remove_duplicates)
                    snap.detail_prev, snap.detail_next = self.store.neighbors(target.view, target.record_id)
                    snap.detail_sections = section_counts(snap.detail, st.visibility)
            return snap

    # ----------------- commit -----------------

    def _emit(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("view listener failed")

    def _commit(self, push: Optional[bool] = False, persist: bool = True) -> None:
        """push=True appends a history entry, False replaces it, None leaves the URL alone."""
        if persist:
            self.gateway.save(self._state)
        if push is not None:
            url = self.current_url()
            if push and url != self.history.current():
                self.history.push(url)
            else:
                self.history.replace(url)
        self._emit()

    def _enter(self, mode: Mode) -> None:
        ds = self.modes.get(mode)
        if ds is not None:
            ds.enter()

    def _exit(self, mode: Mode) -> None:
        ds = self.modes.get(mode)
        if ds is not None:
            ds.exit()

    # ----------------- startup -----------------

    def restore(self, url_query: Optional[str] = None) -> ViewState:
        """Merge defaults, the persisted snapshot and `url_query` into the live state."""
        with self._lock:
            merged = reconcile(self._defaults, self.gateway.load(), decode(url_query))
            self._exit(self._state.mode)
            self._state = merged.state
            self._pending_compare = merged.pending_compare_ids
            self._pending_detail = merged.pending_detail_target
            self._enter(self._state.mode)
            self.history.replace(self.current_url())
            return self._state.copy()

    def _resolve_pending(self) -> None:
        st = self._state
        # a reinstall keeps the live selection when nothing is pending
        ids = self._pending_compare if any(self._pending_compare) else st.compare_ids()
        st.compare_selection = self.selection.resolve(st.view, ids)
        self.selection.remember(st.view, st.compare_selection)
        self._pending_compare = [None, None]

        if st.mode == Mode.DETAIL:
            target = self._pending_detail or st.detail_target
            if target is not None and self.store.find(target.view, target.record_id) is not None:
                st.detail_target = target
                st.view = target.view
            else:
                logger.info("detail target %r no longer resolves, showing the list", target)
                st.mode = Mode.LIST
                st.detail_target = None
                st.detail_return_mode = Mode.LIST
        self._pending_detail = None

    def install(self, records: Iterable[Any]) -> ViewSnapshot:
        """Install the loaded dataset and resolve selections picked before the load."""
        with self._lock:
            self.store.load(records)
            self._loaded = True
            self._resolve_pending()
            self._commit(push=False)
        return self.snapshot()

    def apply_url(self, url_query: Optional[str]) -> ViewSnapshot:
        """Back/forward navigation: re-reconcile from storage and the given URL."""
        with self._lock:
            old_mode = self._state.mode
            merged = reconcile(self._defaults, self.gateway.load(), decode(url_query))
            new_mode = merged.state.mode
            if new_mode != old_mode:
                self._exit(old_mode)
            self._state = merged.state
            self._pending_compare = merged.pending_compare_ids
            self._pending_detail = merged.pending_detail_target
            if self._loaded:
                self._resolve_pending()
            if new_mode != old_mode and self._state.mode == new_mode:
                self._enter(new_mode)
            self._commit(push=None)
        return self.snapshot()

    def back(self) -> Optional[ViewSnapshot]:
        url = self.history.back()
        return None if url is None else self.apply_url(url)

    def forward(self) -> Optional[ViewSnapshot]:
        url = self.history.forward()
        return None if url is None else self.apply_url(url)

    # ----------------- modes -----------------

    def set_mode(self, target: Mode) -> bool:
        target = Mode(target)
        with self._lock:
            st = self._state
            if target == st.mode:
                return False
            if target == Mode.DETAIL:
                if st.detail_target is None:
                    logger.debug("detail mode needs a target, use open_detail")
                    return False
            self._exit(st.mode)
            st.mode = target
            if target != Mode.DETAIL:
                st.detail_target = None
                st.detail_return_mode = Mode.LIST
            self._enter(target)
            self._commit(push=True)
            return True

    def toggle_mode(self, mode: Mode) -> bool:
        mode = Mode(mode)
        return self.set_mode(Mode.LIST if self._state.mode == mode else mode)

    def set_view(self, view: DatasetView) -> bool:
        view = DatasetView(view)
        with self._lock:
            st = self._state
            if view == st.view:
                return False
            old_view = st.view
            if st.mode == Mode.DETAIL:
                st.mode = Mode.LIST
                st.detail_target = None
                st.detail_return_mode = Mode.LIST
            elif st.mode == Mode.TIME_SINCE:
                self._exit(Mode.TIME_SINCE)
                st.mode = Mode.LIST
            st.view = view
            st.compare_selection = self.selection.switch_view(st.compare_selection, old_view, view)
            self.stats.sort.reset()
            self._commit(push=True)
            return True

    def toggle_view(self) -> bool:
        return self.set_view(DatasetView.YEARS if self._state.view == DatasetView.VERSIONS else DatasetView.VERSIONS)

    # ----------------- detail -----------------

    def open_detail(self, kind: str, record_id: str, scroll_offset: int = 0) -> bool:
        target = DetailTarget.from_dict({"type": kind, "id": record_id})
        with self._lock:
            if target is None or self.store.find(target.view, target.record_id) is None:
                logger.info("open_detail: %s %r not found", kind, record_id)
                return False
            st = self._state
            if st.mode == Mode.DETAIL:
                return_mode = st.detail_return_mode
            else:
                return_mode = st.mode if st.mode in DETAIL_RETURN_MODES else Mode.LIST
                self._exit(st.mode)
                self._scroll_offset = int(scroll_offset or 0)
            if target.view != st.view:
                st.compare_selection = self.selection.switch_view(st.compare_selection, st.view, target.view)
                st.view = target.view
            st.mode = Mode.DETAIL
            st.detail_target = target
            st.detail_return_mode = return_mode
            self._commit(push=True)
            return True

    def close_detail(self) -> Optional[int]:
        with self._lock:
            st = self._state
            if st.mode != Mode.DETAIL:
                return None
            target_mode = st.detail_return_mode or Mode.LIST
            st.mode = target_mode
            st.detail_target = None
            st.detail_return_mode = Mode.LIST
            self._enter(target_mode)
            self._commit(push=True)
            offset, self._scroll_offset = self._scroll_offset, 0
            return offset

    def step_detail(self, direction: int) -> bool:
        """Open the previous (-1) or next (+1) record of the current detail view."""
        st = self._state
        if st.mode != Mode.DETAIL or st.detail_target is None:
            return False
        prev_rec, next_rec = self.store.neighbors(st.detail_target.view, st.detail_target.record_id)
        rec = prev_rec if direction < 0 else next_rec
        if rec is None:
            return False
        return self.open_detail(st.detail_target.kind, rec.derived_id)

    # ----------------- filters -----------------

    def set_search(self, query: str) -> bool:
        with self._lock:
            if self._state.mode in SEARCHLESS_MODES:
                logger.debug("search ignored in %s mode", self._state.mode.value)
                return False
            self._state.query = (query or "").strip()
            self._commit(push=False, persist=False)
            return True

    def _check_type(self, content_type: str) -> None:
        if content_type not in CONTENT_TYPES:
            raise ValueError(f"Unknown content type: {content_type}")

    def set_visibility(self, content_type: str, visible: bool) -> None:
        self._check_type(content_type)
        with self._lock:
            self._state.visibility[content_type] = bool(visible)
            self._commit(push=False)

    def toggle_visibility(self, content_type: str) -> bool:
        self._check_type(content_type)
        visible = not self._state.visibility.get(content_type, True)
        self.set_visibility(content_type, visible)
        return visible

    def set_all_visibility(self, visible: bool) -> None:
        with self._lock:
            self._state.visibility = {t: bool(visible) for t in CONTENT_TYPES}
            self._commit(push=False)

    def set_remove_duplicates(self, enabled: bool) -> None:
        with self._lock:
            self._state.remove_duplicates = bool(enabled)
            self._commit(push=False)

    # ----------------- sections -----------------

    def is_section_collapsed(self, record_id: str, section: str) -> bool:
        return bool(self._state.collapsed_sections.get(section_key(record_id, section), False))

    def set_section_collapsed(self, record_id: str, section: str, collapsed: bool) -> None:
        with self._lock:
            self._state.collapsed_sections[section_key(record_id, section)] = bool(collapsed)
            self._commit(push=None)

    def toggle_section(self, record_id: str, section: str) -> bool:
        collapsed = not self.is_section_collapsed(record_id, section)
        self.set_section_collapsed(record_id, section, collapsed)
        return collapsed

    # ----------------- compare -----------------

    def select_compare(self, slot: int, record_id: Optional[str]) -> bool:
        """Pick a record for compare slot 0/1; returns whether it resolved."""
        with self._lock:
            st = self._state
            st.compare_selection = self.selection.pick(st.compare_selection, st.view, slot, record_id)
            self._commit(push=False)
            return st.compare_selection[slot] is not None

    # ----------------- mode data -----------------

    async def mode_data(self, listener: Optional[Callable[[Dict[str, str]], Any]] = None) -> Any:
        """Dataset of the active data mode, or None (other mode, or exited meanwhile)."""
        ds = self.modes.get(self._state.mode)
        if ds is None:
            return None
        data = await ds.ensure()
        if data is not None and ds is self.time_since:
            self.time_since.start_ticking(listener)
        return data

    def close(self) -> None:
        """Drop the active mode dataset and stop its timer (shutdown)."""
        self._exit(self._state.mode)

    def growth(self, cumulative: bool = True) -> GrowthSeries:
        return growth(self.store.records(), self._state.view, cumulative=cumulative)

    def stats_table(self, column: Optional[str] = None) -> List[Dict[str, Any]]:
        """Rows for the current view; a `column` click toggles the sort first."""
        with self._lock:
            if column:
                self.stats.sort.toggle(column)
            return table_for_view(self.store.records(), self._state.view, self.stats.sort)
