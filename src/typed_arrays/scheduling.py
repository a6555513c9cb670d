"""Cancelable one-shot timers for debounce and autoplay.

Everything runs on one thread: a timer callback is only ever invoked from
the event loop (or from :meth:`ManualScheduler.advance`), never in parallel
with other work on the timeline.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    """Handle returned by ``call_later``; ``cancel`` is idempotent."""

    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop.

    Timers requested while no loop is running are held, then armed with
    their original delay the next time the scheduler is used from inside a
    running loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._held: list[tuple[float, TimerHandle]] = []

    @property
    def loop(self) -> asyncio.AbstractEventLoop | None:
        """The bound loop, or None while no loop is running."""
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                return None
        return self._loop

    @property
    def held(self) -> int:
        """Number of timers waiting for a running loop (not cancelled)."""
        return sum(1 for _, h in self._held if not h.cancelled)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(delay, callback)
        loop = self.loop
        if loop is None:
            logger.debug("No running event loop; holding timer (%.3fs)", delay)
            self._held.append((delay, handle))
            return handle
        held, self._held = self._held, []
        for held_delay, pending in held:
            if not pending.cancelled:
                loop.call_later(held_delay, self._fire, pending)
        handle.when = loop.time() + delay
        loop.call_later(delay, self._fire, handle)
        return handle

    @staticmethod
    def _fire(handle: TimerHandle) -> None:
        if not handle.cancelled:
            handle.callback()


class ManualScheduler:
    """A virtual clock; timers fire only when :meth:`advance` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self.now + delay, callback)
        heapq.heappush(self._queue, (handle.when, next(self._counter), handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of timers that are scheduled and not cancelled."""
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due timers in order.

        Timers scheduled by a firing callback also fire if they fall due
        within the same advance. Returns the number of callbacks run.
        """
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = when
            handle.callback()
            fired += 1
        self.now = target
        return fired
