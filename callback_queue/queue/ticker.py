"""Periodic wait-time decay for pending callbacks."""

import asyncio
import logging
from typing import Optional

from callback_queue.config import settings
from callback_queue.queue.service import CallbackQueueService

logger = logging.getLogger(__name__)


class WaitTimeTicker:
    """
    Background task that ticks the queue's wait-time decay on a fixed period.

    ``stop()`` stops new ticks from starting and waits for a tick that is
    already running to finish, so a decay is never cut off between the
    in-memory update and the store write.
    """

    def __init__(
        self, service: CallbackQueueService, interval_seconds: Optional[float] = None
    ) -> None:
        self._service = service
        self._interval = (
            interval_seconds if interval_seconds is not None
            else settings.scheduler.tick_interval_seconds
        )
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self.tick_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the ticker background task."""
        if self.running:
            logger.warning("Wait-time ticker already running")
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Wait-time ticker started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        """Stop ticking and wait for any in-flight tick to complete."""
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        logger.info("Wait-time ticker stopped after %d ticks", self.tick_count)

    async def run_once(self) -> int:
        """Run a single tick. Returns the number of requests whose estimate changed."""
        changed = await self._service.decay_wait_times()
        self.tick_count += 1
        return changed

    async def _run_loop(self) -> None:
        """Main ticker loop."""
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                break
            except asyncio.TimeoutError:
                pass
            try:
                await self.run_once()
            except Exception:
                logger.exception("Wait-time tick failed")
