"""Repeating timer that drives fetch cycles on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

MIN_INTERVAL = 0.05


class Poller:
    """
    Calls a function every ``interval`` seconds while running.

    Ticks are fixed-rate and the callback is invoked synchronously on the
    event loop, so a slow fetch cycle must be scheduled by the callback rather
    than awaited here. Exceptions from the callback are logged and the timer
    keeps going.
    """

    def __init__(self, callback: Callable[[], object], interval: float = 5.0) -> None:
        """
        Initialize the Poller.

        Args:
            callback: Called once per tick.
            interval: Seconds between ticks. Default 5.0s.
        """
        self._callback = callback
        self._interval = max(MIN_INTERVAL, interval)
        self._task: asyncio.Task[None] | None = None
        self.ticks = 0

    @property
    def interval(self) -> float:
        """Get the current interval."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the interval, restarting the timer so the next tick uses it."""
        self._interval = max(MIN_INTERVAL, value)
        if self.is_running:
            self.stop()
            self.start()

    @property
    def is_running(self) -> bool:
        """Check if the timer task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the timer. Must be called from a running event loop."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="Poller")

    def stop(self) -> None:
        """Cancel the timer. No tick fires after this returns."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.ticks += 1
            try:
                self._callback()
            except Exception:
                logger.exception("poll callback failed")
