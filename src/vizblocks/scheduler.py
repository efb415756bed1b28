"""Debounced re-render scheduling.

Each rendered document owns one RenderScheduler holding at most one pending
timer. Scheduling cancels the pending timer and starts a new one
(trailing-edge debounce), so a burst of edits settles into a single call
carrying only the last payload.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class RenderScheduler:
    """Trailing-edge debouncer for an async callback.

    Example:
        >>> scheduler = RenderScheduler(document.rerender, delay=0.25)
        >>> scheduler.schedule(blocks_v1)
        >>> scheduler.schedule(blocks_v2)   # cancels the first timer
        >>> await scheduler.wait()          # rerender(blocks_v2) ran once
    """

    def __init__(self, callback: Callable[[Any], Awaitable[Any]], delay: float = 0.25) -> None:
        if delay < 0:
            raise ValueError(f"Debounce delay must be non-negative, got {delay}")
        self.callback = callback
        self.delay = delay
        self._timer: asyncio.Task | None = None
        self._running: asyncio.Task | None = None
        self._payload: Any = None
        self.fired = 0

    @property
    def pending(self) -> bool:
        """True while a timer is waiting to fire."""
        return self._timer is not None and not self._timer.done()

    def schedule(self, payload: Any = None) -> None:
        """(Re)start the timer with ``payload``. Requires a running event loop."""
        self._payload = payload
        if self.pending:
            self._timer.cancel()
            logger.debug("Debounce timer restarted")
        self._timer = asyncio.get_running_loop().create_task(self._fire_after_delay())

    def cancel(self) -> None:
        """Drop the pending timer, if any. A callback already running is not interrupted."""
        if self.pending:
            self._timer.cancel()
        self._timer = None
        self._payload = None

    async def flush(self) -> None:
        """Fire the pending timer immediately."""
        if not self.pending:
            return
        self._timer.cancel()
        self._timer = None
        await self._fire()

    async def wait(self) -> None:
        """Wait until no timer is pending and no callback is running."""
        while True:
            task = self._timer if self.pending else self._running
            if task is None or task.done():
                return
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                # The timer was restarted; wait for its replacement
                if task.cancelled():
                    continue
                raise

    async def _fire_after_delay(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        try:
            await self._fire()
        except Exception:
            logger.exception("Scheduled render failed")

    async def _fire(self) -> None:
        payload, self._payload = self._payload, None
        self.fired += 1
        task = asyncio.current_task()
        self._running = task
        try:
            await self.callback(payload)
        finally:
            # A newer call may have taken over while this one was running
            if self._running is task:
                self._running = None
