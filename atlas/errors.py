# -*- coding: utf-8 -*-
"""Error taxonomy shared by loader, mode datasets and persistence."""

from __future__ import annotations


class AtlasError(RuntimeError):
    pass


class LoadError(AtlasError):
    """Initial dataset load failed (network, file or parse). Fatal to the session."""


class RecordFormatError(LoadError):
    """A raw update record is missing required fields."""


class ModeDataError(AtlasError):
    """A lazily fetched mode dataset (stats, time-since, material groups) failed."""

    def __init__(self, mode: str, message: str):
        super().__init__(f"{mode}: {message}")
        self.mode = mode


class PersistenceError(AtlasError):
    """Key-value store read/write failure. Never surfaced past PersistenceGateway."""
