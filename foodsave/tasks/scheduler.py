"""Fixed-interval background loop used by the pollers.

A tick runs in a worker thread so blocking database and SMTP calls never
stall the event loop. A failed tick is logged and the loop carries on.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class PeriodicTask:
    def __init__(self, name: str, interval: float, tick: Callable[[], Any]) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._tick = tick
        self._task: asyncio.Task | None = None
        self.ticks = 0
        self.failures = 0

    async def run_once(self) -> bool:
        """Run one tick; returns False if it raised."""
        self.ticks += 1
        try:
            await asyncio.to_thread(self._tick)
        except Exception:
            self.failures += 1
            logger.exception("%s tick failed", self.name)
            return False
        return True

    async def run(self) -> None:
        logger.info("%s started (interval: %ss)", self.name, self.interval)
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run(), name=self.name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("%s stopped", self.name)
