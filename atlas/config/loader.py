# -*- coding: utf-8 -*-
from __future__ import annotations

import configparser
import logging
import os
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Dict[str, str]] = {
    "DATA": {
        "source": "data",
        "index_file": "index.json",
        "stats_dir": "statistics",
    },
    "STATE": {
        "state_file": "~/.update_atlas/state.json",
    },
    "WEB": {
        "host": "127.0.0.1",
        "port": "20000",
        "root_path": "",
    },
}

# environment variable -> (section, key)
ENV_OVERRIDES = {
    "ATLAS_DATA_SOURCE": ("DATA", "source"),
    "ATLAS_STATE_FILE": ("STATE", "state_file"),
}


class ConfigLoader:
    def __init__(self, config_path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None):
        # project root is two levels above atlas/config/
        self.project_root = Path(__file__).resolve().parents[2]
        self.config_path = Path(config_path) if config_path else self.project_root / "conf" / "settings.ini"
        self.environ = os.environ if environ is None else environ

        self.config = configparser.ConfigParser()
        self.config.read_dict(DEFAULTS)
        if self.config_path.exists():
            self.config.read(self.config_path, encoding="utf-8")
        else:
            logger.debug("no settings file at %s, using defaults", self.config_path)

    def get(self, section: str, key: str) -> Optional[str]:
        """Config value with env overrides applied and `~` expanded."""
        for env, (sec, k) in ENV_OVERRIDES.items():
            if sec == section and k == key and self.environ.get(env):
                val = self.environ[env]
                break
        else:
            val = self.config.get(section, key, fallback=None)
        if val and "~" in val:
            return os.path.expanduser(val)
        return val

    def get_int(self, section: str, key: str, default: int = 0) -> int:
        val = self.get(section, key)
        try:
            return int(val) if val not in (None, "") else default
        except ValueError:
            logger.warning("[%s] %s is not an integer: %r", section, key, val)
            return default

    def data_source(self) -> str:
        """Local directory (resolved against the project root) or http(s) URL."""
        src = self.get("DATA", "source") or "data"
        if src.startswith(("http://", "https://")):
            return src
        p = Path(src)
        return str(p if p.is_absolute() else self.project_root / p)

    def state_file(self) -> Path:
        return Path(self.get("STATE", "state_file") or DEFAULTS["STATE"]["state_file"]).expanduser()


atlas_config = ConfigLoader()
