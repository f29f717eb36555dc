"""Cancellable one-shot timers.

The gateway and the room registry receive a scheduler instead of touching
the event loop directly, so tests can drive time with :class:`FakeScheduler`.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Protocol

import anyio

log = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class TimerHandle:
    def __init__(self, delay: float, callback: Callback):
        self.delay = delay
        self._callback = callback
        self._task: asyncio.Task | None = None
        self.cancelled = False
        self.fired = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        # Safe to call twice, and after the callback has run
        if not self.pending:
            return
        self.cancelled = True
        if self._task is not None:
            self._task.cancel()

    async def fire(self) -> None:
        if not self.pending:
            return
        self.fired = True
        await self._callback()


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...


class LoopScheduler:
    """Runs each timer as a task on the running event loop."""

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(delay, callback)
        handle._task = asyncio.get_running_loop().create_task(self._run(handle))
        return handle

    @staticmethod
    async def _run(handle: TimerHandle) -> None:
        await anyio.sleep(handle.delay)
        try:
            await handle.fire()
        except Exception:
            log.exception("Timer callback failed")


class FakeScheduler:
    """Virtual clock for tests: nothing fires until :meth:`advance` is awaited."""

    def __init__(self):
        self.now = 0.0
        self._timers: list[tuple[float, int, TimerHandle]] = []
        self._seq = 0

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(delay, callback)
        self._seq += 1
        self._timers.append((self.now + delay, self._seq, handle))
        return handle

    @property
    def pending(self) -> list[TimerHandle]:
        return [h for _, _, h in self._timers if h.pending]

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted(t for t in self._timers if t[0] <= target and t[2].pending)
            if not due:
                break
            when, _, handle = due[0]
            self.now = when
            await handle.fire()
        self.now = target
        self._timers = [t for t in self._timers if t[2].pending]
