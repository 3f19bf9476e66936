# -*- coding: utf-8 -*-
"""Initial dataset load.

The index file lists one JSON document per update record:

    {"files": ["updates/1.21.json", "updates/1.20.json", ...]}

All documents are fetched concurrently. Any failure (transport, JSON, record
shape) aborts the whole load with LoadError; nothing partial is returned.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Protocol

import httpx

from .errors import LoadError
from .models import UpdateRecord, parse_update_record
from .record_store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_INDEX_FILE = "index.json"


class Fetcher(Protocol):
    async def fetch_json(self, path: str) -> Any: ...


class FileFetcher:
    """Reads JSON below `base_dir`; file I/O runs in a worker thread."""

    def __init__(self, base_dir: Path | str):
        self.base_dir = Path(base_dir).expanduser()

    def _resolve(self, path: str) -> Path:
        return self.base_dir / str(path).lstrip("/")

    def _read(self, path: str) -> Any:
        p = self._resolve(path)
        with open(p, "r", encoding="utf-8") as f:
            return json.load(f)

    async def fetch_json(self, path: str) -> Any:
        return await asyncio.to_thread(self._read, path)

    def __repr__(self) -> str:
        return f"FileFetcher({str(self.base_dir)!r})"


class HttpFetcher:
    """GETs JSON relative to `base_url` with one shared httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        user_agent: str = "UpdateAtlas/0.3",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def fetch_json(self, path: str) -> Any:
        response = await self._get_client().get(str(path).lstrip("/"))
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"HttpFetcher({self.base_url!r})"


def make_fetcher(source: str) -> Fetcher:
    if str(source).startswith(("http://", "https://")):
        return HttpFetcher(str(source))
    return FileFetcher(source)


def _index_files(index: Any) -> List[str]:
    if not isinstance(index, dict) or not isinstance(index.get("files"), list):
        raise LoadError('Index must be an object with a "files" list')
    files = [f for f in index["files"] if isinstance(f, str) and f]
    if len(files) != len(index["files"]):
        raise LoadError("Index lists a non-string file entry")
    return files


async def load_records(fetcher: Fetcher, index_file: str = DEFAULT_INDEX_FILE) -> List[UpdateRecord]:
    try:
        index = await fetcher.fetch_json(index_file)
    except (OSError, ValueError, httpx.HTTPError) as e:
        logger.error("cannot load index %s from %r: %s", index_file, fetcher, e)
        raise LoadError(f"Cannot load index {index_file}: {e}") from e

    files = _index_files(index)
    tasks = [asyncio.ensure_future(fetcher.fetch_json(f)) for f in files]
    try:
        docs = await asyncio.gather(*tasks)
    except (OSError, ValueError, httpx.HTTPError) as e:
        logger.error("dataset load failed: %s", e)
        raise LoadError(f"Cannot load update records: {e}") from e
    finally:
        # siblings of a failed file are cancelled, not orphaned
        for task in tasks:
            if not task.done():
                task.cancel()

    records = [parse_update_record(doc) for doc in docs]
    logger.info("loaded %d update records from %r", len(records), fetcher)
    return records


async def load_store(fetcher: Fetcher, index_file: str = DEFAULT_INDEX_FILE) -> RecordStore:
    return RecordStore(await load_records(fetcher, index_file))
