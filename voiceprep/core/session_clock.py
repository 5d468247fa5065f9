"""
Session clock: a periodic tick owned by one SessionRunner.
"""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class SessionClock:
    """
    Calls on_tick once per interval from an asyncio task.

    The task exists only between start() and stop().
    """

    def __init__(self, interval_seconds: float = 1.0):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self.ticks = 0
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, on_tick: Callable[[], None]) -> None:
        """Begin ticking. Restarts if already running."""
        self.stop()
        self.ticks = 0
        self._task = asyncio.get_running_loop().create_task(self._run(on_tick))

    def stop(self) -> None:
        """Halt ticking."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, on_tick: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.ticks += 1
            try:
                on_tick()
            except Exception as e:
                logger.error(f"Clock tick callback error: {e}")
