#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Run the WebAtlas server (FastAPI + Uvicorn).

Defaults come from conf/settings.ini; flags override them.

Usage:
  python3 devtools/serve_webatlas.py --port 20000 --data data
  python3 devtools/serve_webatlas.py --data https://cdn.example.org/atlas --no-state
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import uvicorn  # type: ignore  # noqa: E402

from apps.webatlas.app import create_app_from_settings  # noqa: E402
from apps.webatlas.settings import WebAtlasSettings  # noqa: E402
from atlas.config import ConfigLoader  # noqa: E402


def _resolve_source(source: str) -> str:
    if source.startswith(("http://", "https://")):
        return source
    data_dir = Path(source).expanduser().resolve()
    if not data_dir.is_dir():
        print(f"❌ Data directory not found: {data_dir}")
        sys.exit(2)
    return str(data_dir)


def main() -> None:
    cfg = ConfigLoader()
    base = WebAtlasSettings.from_config(cfg)

    parser = argparse.ArgumentParser(description="Update Atlas WebAtlas (FastAPI) server.")
    parser.add_argument("--data", default=base.data_source, help="Data directory or http(s) base URL")
    parser.add_argument("--state", default=str(base.state_file), help="State file for the persisted UI snapshot")
    parser.add_argument("--no-state", action="store_true", help="Keep UI state in memory only")
    parser.add_argument("--url", default="", help="Initial URL query, e.g. 'view=years&mode=stats'")
    parser.add_argument("--host", default=cfg.get("WEB", "host") or "127.0.0.1")
    parser.add_argument("--port", type=int, default=cfg.get_int("WEB", "port", 20000))
    parser.add_argument("--root-path", default=base.root_path, help="Reverse proxy mount path, e.g. /atlas")
    parser.add_argument("--log-level", default="info", choices=["critical", "error", "warning", "info", "debug", "trace"])
    parser.add_argument("--cors-allow-origin", action="append", default=[], help="CORS allow origin (repeatable, '*' for any)")
    args = parser.parse_args()

    settings = dataclasses.replace(
        base,
        data_source=_resolve_source(str(args.data)),
        state_file=None if args.no_state else Path(args.state).expanduser(),
        root_path=WebAtlasSettings.normalize_root_path(args.root_path),
        cors_allow_origins=args.cors_allow_origin or None,
    )
    app = create_app_from_settings(settings, initial_url=args.url)

    print(f"Update Atlas: http://{args.host}:{args.port}{settings.root_path}/api/v1/view")
    print(f"Data:  {settings.data_source}")
    print(f"State: {settings.state_file or '(memory)'}")

    uvicorn.run(app, host=str(args.host), port=int(args.port), log_level=args.log_level, proxy_headers=True, forwarded_allow_ips="*")


if __name__ == "__main__":
    main()
