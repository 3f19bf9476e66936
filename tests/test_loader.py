# -*- coding: utf-8 -*-
import asyncio
import json

import httpx
import pytest
from conftest import write_dataset

from atlas.errors import LoadError
from atlas.loader import FileFetcher, HttpFetcher, load_records, load_store, make_fetcher
from atlas.view_state import DatasetView


def test_load_from_directory(data_dir):
    records = asyncio.run(load_records(FileFetcher(data_dir)))
    assert sorted(r.name for r in records) == ["Alpha", "Bravo", "Charlie", "Delta"]


def test_load_store_sorts(data_dir):
    store = asyncio.run(load_store(FileFetcher(data_dir)))
    assert [r.derived_id for r in store.dataset(DatasetView.YEARS)] == ["id-2021", "id-2020"]


def test_missing_record_file_fails_whole_load(tmp_path, raw):
    root = write_dataset(tmp_path, raw, with_stats=False)
    (root / "updates" / "2.json").unlink()
    with pytest.raises(LoadError):
        asyncio.run(load_records(FileFetcher(root)))


def test_failed_file_cancels_pending_siblings():
    cancelled = []

    class StallingFetcher:
        async def fetch_json(self, path):
            if path == "index.json":
                return {"files": ["slow.json", "bad.json"]}
            if path == "bad.json":
                await asyncio.sleep(0)
                raise OSError("bad.json: no such file")
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(path)
                raise

    async def scenario():
        with pytest.raises(LoadError):
            await load_records(StallingFetcher())
        await asyncio.sleep(0)
        assert cancelled == ["slow.json"]

    asyncio.run(scenario())


def test_malformed_json_fails_whole_load(tmp_path, raw):
    root = write_dataset(tmp_path, raw, with_stats=False)
    (root / "updates" / "0.json").write_text("{oops", encoding="utf-8")
    with pytest.raises(LoadError):
        asyncio.run(load_records(FileFetcher(root)))


@pytest.mark.parametrize("index", [[], {"files": "a.json"}, {"files": ["a.json", 3]}])
def test_bad_index(tmp_path, index):
    (tmp_path / "index.json").write_text(json.dumps(index), encoding="utf-8")
    with pytest.raises(LoadError):
        asyncio.run(load_records(FileFetcher(tmp_path)))


def test_missing_index(tmp_path):
    with pytest.raises(LoadError, match="index"):
        asyncio.run(load_records(FileFetcher(tmp_path)))


def test_make_fetcher_picks_transport(tmp_path):
    assert isinstance(make_fetcher("https://example.org/data"), HttpFetcher)
    assert isinstance(make_fetcher(str(tmp_path)), FileFetcher)


def _transport(raw, fail_path=None):
    docs = {"/data/index.json": {"files": [f"updates/{i}.json" for i in range(len(raw))]}}
    docs.update({f"/data/updates/{i}.json": rec for i, rec in enumerate(raw)})
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == fail_path:
            return httpx.Response(500)
        if request.url.path not in docs:
            return httpx.Response(404)
        return httpx.Response(200, json=docs[request.url.path])

    return httpx.MockTransport(handler), seen


def test_http_fetcher_loads_records(raw):
    transport, seen = _transport(raw)

    async def scenario():
        async with HttpFetcher("https://atlas.test/data", transport=transport) as fetcher:
            return await load_records(fetcher)

    records = asyncio.run(scenario())
    assert len(records) == 4
    assert seen[0].url.path == "/data/index.json"
    assert seen[0].headers["User-Agent"].startswith("UpdateAtlas/")


def test_http_error_is_load_error(raw):
    transport, _ = _transport(raw, fail_path="/data/updates/1.json")

    async def scenario():
        fetcher = HttpFetcher("https://atlas.test/data/", transport=transport)
        try:
            return await load_records(fetcher)
        finally:
            await fetcher.aclose()

    with pytest.raises(LoadError):
        asyncio.run(scenario())
