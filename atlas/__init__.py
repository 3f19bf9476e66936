# -*- coding: utf-8 -*-
"""Update Atlas core (UI-agnostic).

- Data: per-version update JSON files listed by an index file
- Views: versions (flat, newest first) and years (aggregated)
- State: one ViewState owned by ViewStateController (defaults < stored < URL)
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
