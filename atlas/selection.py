# -*- coding: utf-8 -*-
"""Cross-view resolution of compare selections.

Versions and Years are different record universes that only share the
derived-id namespace, so a RecordRef picked under one view has to be looked
up again whenever the active view changes.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .record_store import RecordStore
from .view_state import DatasetView, RecordRef

logger = logging.getLogger(__name__)

SLOTS = 2


def _pad(ids: Sequence[Optional[str]]) -> List[Optional[str]]:
    out = [(str(x) if x else None) for x in list(ids)[:SLOTS]]
    return out + [None] * (SLOTS - len(out))


class SelectionResolver:
    """Resolves compare ids against a RecordStore and remembers picks per view."""

    def __init__(self, store: Optional[RecordStore] = None):
        self.store = store
        self._picked: Dict[DatasetView, List[Optional[str]]] = {}

    def resolve_id(self, view: DatasetView, record_id: Optional[str]) -> Optional[RecordRef]:
        if not record_id:
            return None
        if self.store is None:
            return None
        if self.store.find(view, record_id) is None:
            logger.debug("compare id %r does not resolve under %s", record_id, view.value)
            return None
        return RecordRef(record_id=str(record_id), view=view)

    def resolve(self, view: DatasetView, ids: Sequence[Optional[str]]) -> List[Optional[RecordRef]]:
        return [self.resolve_id(view, rid) for rid in _pad(ids)]

    def remember(self, view: DatasetView, selection: Sequence[Optional[RecordRef]]) -> None:
        ids = [ref.record_id if ref else None for ref in selection]
        if any(ids):
            self._picked[view] = _pad(ids)

    def pick(
        self,
        selection: Sequence[Optional[RecordRef]],
        view: DatasetView,
        slot: int,
        record_id: Optional[str],
    ) -> List[Optional[RecordRef]]:
        if slot not in range(SLOTS):
            raise ValueError(f"compare slot must be 0 or 1, got {slot}")
        out = list(selection) + [None] * (SLOTS - len(selection))
        out[slot] = self.resolve_id(view, record_id)
        self._picked[view] = _pad([ref.record_id if ref else None for ref in out])
        return out[:SLOTS]

    def switch_view(
        self,
        selection: Sequence[Optional[RecordRef]],
        old_view: DatasetView,
        new_view: DatasetView,
    ) -> List[Optional[RecordRef]]:
        """Re-resolve `selection` for `new_view`.

        Picks made earlier under `new_view` take priority over the ids that are
        carried across, so Versions -> Years -> Versions returns to the
        original pair when both records still exist.
        """
        self.remember(old_view, selection)
        carried = [ref.record_id if ref else None for ref in selection]
        remembered = self._picked.get(new_view)
        candidates = remembered if remembered is not None else carried
        return self.resolve(new_view, candidates)
