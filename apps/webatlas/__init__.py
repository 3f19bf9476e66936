# -*- coding: utf-8 -*-
"""WebAtlas: JSON service over the update catalog.

- Backend: FastAPI (ASGI)
- Data: per-version update JSON files listed by index.json
- State: one ViewStateController per process (single user, local persistence)
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
