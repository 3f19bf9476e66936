#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Shared helpers for CLI tools."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from atlas.config import ConfigLoader
from atlas.controller import ViewStateController
from atlas.errors import LoadError
from atlas.loader import load_records, make_fetcher
from atlas.models import CONTENT_TYPE_LABELS, UpdateRecord
from atlas.persistence import JsonFileKeyValueStore, MemoryKeyValueStore, PersistenceGateway


def short_label(content_type: str) -> str:
    return CONTENT_TYPE_LABELS.get(content_type, content_type)


def record_title(rec: UpdateRecord) -> str:
    label = rec.version_label
    if label and rec.name and label != rec.name:
        return f"{rec.name} ({label})"
    return rec.display_name


async def open_controller(
    cfg: ConfigLoader,
    *,
    data: Optional[str] = None,
    state: Optional[str] = None,
    url: str = "",
    memory: bool = False,
) -> ViewStateController:
    """Controller restored from the state file + `url`, with the dataset installed.

    Raises LoadError when the dataset cannot be loaded.
    """
    source = data or cfg.data_source()
    if memory:
        kv = MemoryKeyValueStore()
    else:
        kv = JsonFileKeyValueStore(Path(state).expanduser() if state else cfg.state_file())
    fetcher = make_fetcher(source)
    ctl = ViewStateController(
        gateway=PersistenceGateway(kv),
        fetcher=fetcher,
        stats_dir=cfg.get("DATA", "stats_dir") or "statistics",
    )
    ctl.restore(url)
    try:
        records = await load_records(fetcher, cfg.get("DATA", "index_file") or "index.json")
    except LoadError:
        aclose = getattr(fetcher, "aclose", None)
        if aclose is not None:
            await aclose()
        raise
    ctl.install(records)
    return ctl


async def close_controller(ctl: ViewStateController) -> None:
    ctl.close()
    for ds in ctl.modes.values():
        aclose = getattr(ds.fetcher, "aclose", None)
        if aclose is not None:
            await aclose()
            break
