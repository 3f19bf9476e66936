# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from atlas.controller import ViewStateController
from atlas.errors import LoadError
from atlas.loader import DEFAULT_INDEX_FILE, load_records, make_fetcher
from atlas.modes import DEFAULT_STATS_DIR
from atlas.persistence import JsonFileKeyValueStore, MemoryKeyValueStore, PersistenceGateway

from .api import router as api_router
from .settings import WebAtlasSettings

logger = logging.getLogger(__name__)


def create_app(
    data_source: str,
    *,
    index_file: str = DEFAULT_INDEX_FILE,
    stats_dir: str = DEFAULT_STATS_DIR,
    state_path: Optional[Path] = None,
    initial_url: str = "",
    root_path: str = "",
    cors_allow_origins: Optional[Sequence[str]] = None,
    gzip_minimum_size: int = 800,
) -> FastAPI:
    """FastAPI app factory.

    The dataset is loaded once on startup. A LoadError is kept on app.state and
    turns every data endpoint into a 503 for the lifetime of the process.
    """

    rp = WebAtlasSettings.normalize_root_path(root_path)

    app = FastAPI(
        title="Update Atlas API",
        version="0.3",
        root_path=rp,
        docs_url="/docs",
        redoc_url=None,
    )

    # state
    store = JsonFileKeyValueStore(Path(state_path)) if state_path else MemoryKeyValueStore()
    fetcher = make_fetcher(str(data_source))
    controller = ViewStateController(gateway=PersistenceGateway(store), fetcher=fetcher, stats_dir=stats_dir)
    controller.restore(initial_url)

    app.state.data_source = str(data_source)
    app.state.index_file = index_file
    app.state.fetcher = fetcher
    app.state.controller = controller
    app.state.load_error = None

    # middleware
    if gzip_minimum_size and gzip_minimum_size > 0:
        app.add_middleware(GZipMiddleware, minimum_size=int(gzip_minimum_size))

    if cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_allow_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # routes
    app.include_router(api_router)

    @app.on_event("startup")
    async def _load() -> None:
        try:
            records = await load_records(fetcher, index_file)
        except LoadError as e:
            logger.error("dataset unavailable: %s", e)
            app.state.load_error = str(e)
            return
        controller.install(records)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        controller.close()
        aclose = getattr(fetcher, "aclose", None)
        if aclose is not None:
            await aclose()

    @app.get("/healthz")
    def healthz():
        return {"ok": True, "loaded": controller.loaded, "error": app.state.load_error}

    return app


def create_app_from_settings(settings: WebAtlasSettings, initial_url: str = "") -> FastAPI:
    return create_app(
        settings.data_source,
        index_file=settings.index_file,
        stats_dir=settings.stats_dir,
        state_path=settings.state_file,
        initial_url=initial_url,
        root_path=settings.root_path,
        cors_allow_origins=settings.cors_allow_origins,
        gzip_minimum_size=settings.gzip_minimum_size,
    )
