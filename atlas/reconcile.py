# -*- coding: utf-8 -*-
"""Startup merge of the three state sources: defaults < stored < URL.

Record ids cannot be resolved before the dataset is loaded, so compare ids
and the detail target come back as *pending* values that the controller
resolves in `install`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .persistence import StoredState
from .url_codec import UrlParams
from .view_state import DETAIL_RETURN_MODES, DetailTarget, Mode, ViewState

logger = logging.getLogger(__name__)

# first set flag wins when a stored snapshot carries several
MODE_PRECEDENCE = (Mode.DETAIL, Mode.COMPARE, Mode.STATS, Mode.TIME_SINCE, Mode.MATERIAL_GROUPS)


@dataclass
class Reconciled:
    state: ViewState
    pending_compare_ids: List[Optional[str]] = field(default_factory=lambda: [None, None])
    pending_detail_target: Optional[DetailTarget] = None


def stored_mode(stored: Optional[StoredState]) -> Optional[Mode]:
    if stored is None:
        return None
    for mode in MODE_PRECEDENCE:
        if stored.mode_flags.get(mode):
            return mode
    if any(v is False for v in stored.mode_flags.values()):
        return Mode.LIST
    return None


def _url_mode(url: UrlParams, fallback: Mode) -> Mode:
    if url.mode is not None:
        return url.mode
    if url.mode_present:
        logger.debug("ignoring invalid mode in URL")
        return fallback
    if url.view is not None:
        # a URL with a view but no mode describes the list
        return Mode.LIST
    return fallback


def reconcile(
    defaults: Optional[ViewState] = None,
    stored: Optional[StoredState] = None,
    url: Optional[UrlParams] = None,
) -> Reconciled:
    state = (defaults or ViewState()).copy()
    pending_ids: List[Optional[str]] = [None, None]
    pending_detail: Optional[DetailTarget] = None

    if stored is not None:
        if stored.view is not None:
            state.view = stored.view
        if stored.remove_duplicates is not None:
            state.remove_duplicates = stored.remove_duplicates
        state.visibility.update(stored.visibility)
        state.collapsed_sections.update(stored.collapsed_sections)
        state.mode = stored_mode(stored) or state.mode
        if stored.detail_return_mode in DETAIL_RETURN_MODES:
            state.detail_return_mode = stored.detail_return_mode
        pending_ids = list(stored.compare_ids)
        pending_detail = stored.detail_target

    if url is not None:
        if url.view is not None:
            state.view = url.view
        state.mode = _url_mode(url, state.mode)
        if url.search:
            state.query = url.search
        if url.mode == Mode.DETAIL and url.detail_id:
            pending_detail = DetailTarget.from_dict({"type": url.detail_type, "id": url.detail_id})
        if url.mode == Mode.COMPARE and (url.compare1 or url.compare2):
            pending_ids = [url.compare1, url.compare2]

    if state.mode == Mode.DETAIL:
        if pending_detail is None:
            logger.debug("detail mode without a target, falling back to list")
            state.mode = Mode.LIST
        else:
            state.view = pending_detail.view
    if state.mode != Mode.DETAIL:
        pending_detail = None
        state.detail_return_mode = Mode.LIST
    state.detail_target = None

    return Reconciled(state=state, pending_compare_ids=pending_ids, pending_detail_target=pending_detail)
