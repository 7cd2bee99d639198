"""
Timer scheduling for the planner client.

Debounce, follow-up flush, user-activity and error-banner timers are all
created through a ``Scheduler`` so the client state machine can run on the
asyncio event loop in production and on a manually advanced clock in tests.

A scheduled callback may be a plain function or return an awaitable; the
asyncio scheduler runs awaitables as tasks, the manual scheduler awaits them
inside ``advance()``.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional, Set

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Any]


class TimerHandle:
    """Handle returned by ``Scheduler.call_later``."""

    def __init__(self, when: float, callback: TimerCallback):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self._loop_handle: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        self.cancelled = True
        if self._loop_handle is not None:
            self._loop_handle.cancel()


class Scheduler:
    """Base scheduler interface."""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        raise NotImplementedError


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        # Keep references so tasks are not garbage collected mid-flight
        self._tasks: Set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        handle = TimerHandle(self.now() + delay, callback)
        handle._loop_handle = self.loop.call_later(delay, self._fire, handle)
        return handle

    def _fire(self, handle: TimerHandle) -> None:
        if handle.cancelled:
            return
        try:
            result = handle.callback()
        except Exception as e:
            logger.error(f"Scheduled callback failed: {e}", exc_info=True)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Scheduled task failed: {task.exception()}")


class ManualScheduler(Scheduler):
    """Deterministic scheduler driven by ``advance()``; used in tests."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._timers: List[TimerHandle] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        handle = TimerHandle(self._now + delay, callback)
        self._timers.append(handle)
        return handle

    @property
    def pending_timers(self) -> List[TimerHandle]:
        return [t for t in self._timers if not t.cancelled]

    async def advance(self, seconds: float) -> None:
        """
        Move the clock forward, firing due timers in time order.

        Timers scheduled by callbacks are fired too when they fall inside the
        advanced interval.
        """
        target = self._now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            handle = min(due, key=lambda t: t.when)
            self._timers.remove(handle)
            self._now = max(self._now, handle.when)
            result = handle.callback()
            if inspect.isawaitable(result):
                await result
        self._now = target
        self._timers = [t for t in self._timers if not t.cancelled]
