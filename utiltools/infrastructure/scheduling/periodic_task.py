"""Cancellable periodic task running on the asyncio event loop.

Used by the cache sweep and the retry tracker's garbage collection. The
task must be stopped on shutdown so no timer outlives its owner.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Invokes a synchronous callback every `interval_seconds`."""

    def __init__(self, name: str, interval_seconds: float, callback: Callable[[], object]):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self.name = name
        self.interval_seconds = interval_seconds
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedules the loop on the running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug(f"Periodic task '{self.name}' started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Cancels the loop and waits for it to finish. Safe to call twice."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        # wait() never re-raises the task's own CancelledError, so only a
        # cancellation aimed at the caller propagates from here.
        await asyncio.wait([task])
        logger.debug(f"Periodic task '{self.name}' stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self._callback()
            except Exception as e:
                # The loop outlives a failing callback.
                logger.error(f"Periodic task '{self.name}' failed: {e}", exc_info=True)
