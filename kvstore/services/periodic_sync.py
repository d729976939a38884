"""Periodic Sync — instance-scoped timer that pushes the store to its adapter.

Invariants:
    - At most one timer task per PeriodicSync
    - stop() cancels exactly once; further calls are no-ops
    - A failing sync is logged and the timer keeps running
"""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicSync:
    """Calls an async callback every interval_ms until stopped."""

    def __init__(self, callback: Callable[[], Awaitable[None]], interval_ms: int):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._callback = callback
        self._interval = interval_ms / 1000
        self._task: asyncio.Task | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return not self._stopped and self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the timer on the running event loop. Idempotent."""
        if self._stopped or self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._task is not None:
            self._task.cancel()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._callback()
            except Exception:
                logger.exception(
                    "Periodic sync failed", extra={"operation": "sync"},
                )
