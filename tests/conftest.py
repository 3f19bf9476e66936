# -*- coding: utf-8 -*-
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from atlas.controller import ViewStateController
from atlas.loader import FileFetcher
from atlas.persistence import MemoryKeyValueStore, PersistenceGateway
from atlas.record_store import RecordStore


def raw_records() -> List[Dict[str, Any]]:
    """Four records covering upcoming, year-only and full release dates."""
    return [
        {
            "name": "Delta",
            "release_version": {"java": "1.3"},
            "release_date": "2020-01-01",
            "added": {
                "mobs": [{"identifier": "ender_dragon", "name": "Ender Dragon", "tags": ["boss", "rare"]}],
            },
        },
        {
            "name": "Alpha",
            "release_version": {"java": "1.0"},
            "release_date": None,
            "added": {"blocks": [{"identifier": "pale_log", "name": "Pale Log"}]},
        },
        {
            "name": "Charlie",
            "release_version": {"java": "1.2"},
            "release_date": "2021-06-01",
            "added": {
                "blocks": [{"identifier": "stone", "name": "Stone"}],
                "items": [{"identifier": "ender_pearl", "name": "Ender Pearl", "tags": ["rare"]}],
            },
        },
        {
            "name": "Bravo",
            "release_version": {"java": "1.1"},
            "release_date": "2021",
            "added": {
                "blocks": [{"identifier": "ender_block", "name": "Ender Block", "tags": ["rare", "boss"]}],
                "mobs": [{"identifier": "zombie", "name": "Zombie", "types": ["hidden"]}],
            },
        },
    ]


STATS_FILES: Dict[str, Any] = {
    "names.json": {"longest": ["Ender Dragon", "Ender Pearl"], "shortest": ["Stone"]},
    "time_since.json": {
        "last_drop": {"name": "Charlie", "version": "1.2", "release_date": "2021-06-01"},
        "last_block": {"version": "1.2", "release_date": "2021-06-01", "element": {"name": "Stone"}},
        "last_mob": {"version": "1.3", "release_date": "2020-01-01", "element": {"name": "Ender Dragon"}},
        "last_item": {"version": "1.2", "release_date": "2021-06-02", "element": {"name": "Ender Pearl"}},
    },
    "special.json": {
        "content": [
            {
                "name": "Copper",
                "groups": [
                    {"material": {"identifier": "copper"}, "items": {"cut": {"identifier": "cut_copper"}}},
                    {"material": {"identifier": "exposed"}, "items": {"slab": {"identifier": "exposed_slab"}}},
                ],
            },
            {"name": "No groups"},
        ]
    },
}


def write_dataset(root: Path, records: List[Dict[str, Any]], with_stats: bool = True) -> Path:
    files = []
    (root / "updates").mkdir(parents=True, exist_ok=True)
    for i, rec in enumerate(records):
        rel = f"updates/{i}.json"
        (root / rel).write_text(json.dumps(rec), encoding="utf-8")
        files.append(rel)
    (root / "index.json").write_text(json.dumps({"files": files}), encoding="utf-8")
    if with_stats:
        (root / "statistics").mkdir(exist_ok=True)
        for name, doc in STATS_FILES.items():
            (root / "statistics" / name).write_text(json.dumps(doc), encoding="utf-8")
    return root


@pytest.fixture
def raw() -> List[Dict[str, Any]]:
    return raw_records()


@pytest.fixture
def store(raw) -> RecordStore:
    return RecordStore(raw)


@pytest.fixture
def data_dir(tmp_path, raw) -> Path:
    return write_dataset(tmp_path / "data", raw)


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def make_controller(kv, data_dir):
    def _make(url: str = "", install: bool = True) -> ViewStateController:
        ctl = ViewStateController(gateway=PersistenceGateway(kv), fetcher=FileFetcher(data_dir))
        ctl.restore(url)
        if install:
            ctl.install(raw_records())
        return ctl

    return _make


@pytest.fixture
def controller(make_controller) -> ViewStateController:
    return make_controller()
