"""Trailing-edge debounce for determination requests."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class DebounceScheduler:
    """Coalesces bursts of requests into a single callback run.

    Every ``schedule()`` call restarts the quiet period, so the callback
    runs once, ``delay`` seconds after the last request of a burst.
    Cancelling only affects a timer that has not fired yet; a callback
    that is already running is left to complete.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Awaitable[Any]],
    ) -> None:
        self.delay = delay
        self._callback = callback
        self._timer: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """True if a timer is armed and has not fired."""
        return self._timer is not None

    @property
    def running(self) -> bool:
        """True if a fired callback is still in progress."""
        return bool(self._running)

    def schedule(self) -> None:
        """Arm the timer, replacing any unfired one.

        Must be called from within a running event loop.
        """
        loop = asyncio.get_running_loop()
        self.cancel()
        self._timer = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Cancel the unfired timer, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._run())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self) -> None:
        try:
            await self._callback()
        except Exception as e:
            # Nobody awaits a debounced run, so the error stops here
            logger.warning("Debounced determination failed: %s", e)

    async def wait_idle(self) -> None:
        """Wait until no fired callback is running."""
        while self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
