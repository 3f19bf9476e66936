# -*- coding: utf-8 -*-
"""Best-effort persistence of the UI snapshot in a key-value store.

Only a documented subset of ViewState is stored under one key; the search
query is never persisted. Every store failure is recovered here: a failed
read is "nothing saved", a failed write is logged and dropped.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .errors import PersistenceError
from .models import CONTENT_TYPES
from .view_state import DatasetView, DetailTarget, Mode, ViewState

logger = logging.getLogger(__name__)

STATE_KEY = "update_atlas_ui_state"
GROUP_COLLAPSED_PREFIX = "material-group-collapsed-"

# persisted flag name -> mode
MODE_FLAGS: Dict[str, Mode] = {
    "is_compare_mode": Mode.COMPARE,
    "is_stats_mode": Mode.STATS,
    "is_time_since_mode": Mode.TIME_SINCE,
    "is_material_groups_mode": Mode.MATERIAL_GROUPS,
    "is_detail_mode": Mode.DETAIL,
}


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class JsonFileKeyValueStore:
    """All keys in one JSON object on disk; writes go through a temp file."""

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read state file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"State file {self.path} is not a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        tmp_file = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            tmp_file.replace(self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write state file {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            try:
                data = self._read_all()
            except PersistenceError:
                logger.warning("state file %s unreadable, rewriting", self.path)
                data = {}
            data[key] = value
            self._write_all(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)


@dataclass
class StoredState:
    """Decoded snapshot; a field is None (or empty) when absent or mistyped."""

    view: Optional[DatasetView] = None
    remove_duplicates: Optional[bool] = None
    visibility: Dict[str, bool] = field(default_factory=dict)
    collapsed_sections: Dict[str, bool] = field(default_factory=dict)
    mode_flags: Dict[Mode, bool] = field(default_factory=dict)
    detail_target: Optional[DetailTarget] = None
    detail_return_mode: Optional[Mode] = None
    compare_ids: List[Optional[str]] = field(default_factory=lambda: [None, None])


def encode_state(state: ViewState) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "current_view": state.view.value,
        "remove_duplicates": bool(state.remove_duplicates),
        "visibility": {t: bool(state.visibility.get(t, True)) for t in CONTENT_TYPES},
        "collapsed_sections": dict(state.collapsed_sections),
    }
    for flag, mode in MODE_FLAGS.items():
        out[flag] = state.mode == mode
    out["detail_target"] = state.detail_target.to_dict() if state.detail_target else None
    out["detail_return_mode"] = state.detail_return_mode.value
    out["compare_ids"] = state.compare_ids()
    return out


def decode_state(raw: Any) -> Optional[StoredState]:
    if not isinstance(raw, dict):
        return None
    st = StoredState()
    st.view = DatasetView.parse(raw.get("current_view"))
    if isinstance(raw.get("remove_duplicates"), bool):
        st.remove_duplicates = raw["remove_duplicates"]

    vis = raw.get("visibility")
    if isinstance(vis, dict):
        st.visibility = {t: vis[t] for t in CONTENT_TYPES if isinstance(vis.get(t), bool)}

    collapsed = raw.get("collapsed_sections")
    if isinstance(collapsed, dict):
        st.collapsed_sections = {str(k): v for k, v in collapsed.items() if isinstance(v, bool)}

    for flag, mode in MODE_FLAGS.items():
        if isinstance(raw.get(flag), bool):
            st.mode_flags[mode] = raw[flag]

    st.detail_target = DetailTarget.from_dict(raw.get("detail_target"))
    st.detail_return_mode = Mode.parse(raw.get("detail_return_mode")) if raw.get("detail_return_mode") else None

    ids = raw.get("compare_ids")
    if isinstance(ids, list):
        picked = [(x if isinstance(x, str) and x else None) for x in ids[:2]]
        st.compare_ids = picked + [None] * (2 - len(picked))
    return st


class PersistenceGateway:
    def __init__(self, store: Optional[KeyValueStore] = None, key: str = STATE_KEY):
        self.store: KeyValueStore = store if store is not None else MemoryKeyValueStore()
        self.key = key

    def load(self) -> Optional[StoredState]:
        try:
            raw = self.store.get(self.key)
        except PersistenceError as e:
            logger.warning("persisted state unavailable: %s", e)
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("persisted state is corrupt, ignoring")
            return None
        st = decode_state(data)
        if st is None:
            logger.debug("persisted state is not an object, ignoring")
        return st

    def save(self, state: ViewState) -> bool:
        try:
            self.store.set(self.key, json.dumps(encode_state(state), ensure_ascii=False))
            return True
        except PersistenceError as e:
            logger.warning("could not persist state: %s", e)
            return False

    # material-group sections keep one key each
    def is_group_collapsed(self, section_id: str) -> bool:
        try:
            return self.store.get(GROUP_COLLAPSED_PREFIX + section_id) == "true"
        except PersistenceError as e:
            logger.debug("collapsed flag unavailable for %s: %s", section_id, e)
            return False

    def set_group_collapsed(self, section_id: str, collapsed: bool) -> None:
        key = GROUP_COLLAPSED_PREFIX + section_id
        try:
            if collapsed:
                self.store.set(key, "true")
            else:
                self.store.delete(key)
        except PersistenceError as e:
            logger.warning("could not persist collapsed flag for %s: %s", section_id, e)
