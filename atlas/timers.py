# -*- coding: utf-8 -*-
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTimer:
    """Cancellable asyncio ticker: first tick right away, then every `interval`.

    `callback` may be a plain function or a coroutine function. An exception
    from one tick is logged and the timer keeps running.
    """

    def __init__(self, interval: float, callback: Callable[[], Any], *, name: str = "timer"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = float(interval)
        self.callback = callback
        self.name = name
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "RepeatingTimer":
        if self.active:
            return self
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self

    async def _run(self) -> None:
        while True:
            try:
                res = self.callback()
                if inspect.isawaitable(res):
                    await res
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s tick failed", self.name)
            self.ticks += 1
            await asyncio.sleep(self.interval)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
        self._task = None

    async def wait_cancelled(self) -> None:
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
