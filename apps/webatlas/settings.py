# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from atlas.config import ConfigLoader


@dataclass(frozen=True)
class WebAtlasSettings:
    """Runtime settings for the WebAtlas server.

    Notes
    - data_source is a local directory or an http(s) base URL; index_file and
      stats_dir are resolved relative to it.
    - state_file holds the persisted UI snapshot (None keeps it in memory).
    - root_path is for reverse-proxy mount (e.g. '/atlas')
    """

    data_source: str
    index_file: str = "index.json"
    stats_dir: str = "statistics"
    state_file: Optional[Path] = None
    root_path: str = ""
    cors_allow_origins: Optional[List[str]] = None
    gzip_minimum_size: int = 800

    @staticmethod
    def normalize_root_path(root_path: str) -> str:
        """'atlas' and '/atlas/' both become '/atlas'; '' and '/' mean no prefix."""
        rp = (root_path or "").strip().strip("/")
        return f"/{rp}" if rp else ""

    @classmethod
    def from_config(cls, cfg: ConfigLoader) -> "WebAtlasSettings":
        return cls(
            data_source=cfg.data_source(),
            index_file=cfg.get("DATA", "index_file") or "index.json",
            stats_dir=cfg.get("DATA", "stats_dir") or "statistics",
            state_file=cfg.state_file(),
            root_path=cls.normalize_root_path(cfg.get("WEB", "root_path") or ""),
        )
