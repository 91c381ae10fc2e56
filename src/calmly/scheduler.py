"""
Cancellable periodic callbacks.

Exercise runners never touch tk directly; they ask a Scheduler for a
repeating task and cancel it when they are done. TkScheduler drives the real
app from the tk event loop, ManualScheduler is a virtual clock that tests
(and headless callers) advance by hand.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    def __init__(self, interval_ms: int, callback: Callable[[], None]):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.interval_ms = int(interval_ms)
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        # safe to call any number of times
        self.cancelled = True


class Scheduler:
    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        raise NotImplementedError


class TkScheduler(Scheduler):
    """Re-arms ``widget.after`` on every tick, like a hand-rolled setInterval."""

    def __init__(self, widget: Any):
        self.widget = widget

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        task = _TkTask(self.widget, interval_ms, callback)
        task.arm()
        return task


class _TkTask(ScheduledTask):
    def __init__(self, widget: Any, interval_ms: int, callback: Callable[[], None]):
        super().__init__(interval_ms, callback)
        self.widget = widget
        self._job: str | None = None

    def arm(self) -> None:
        self._job = self.widget.after(self.interval_ms, self._fire)

    def _fire(self) -> None:
        self._job = None
        if self.cancelled:
            return
        # re-arm first so a callback that cancels us wins
        self.arm()
        self.callback()

    def cancel(self) -> None:
        super().cancel()
        if self._job is not None:
            try:
                self.widget.after_cancel(self._job)
            except Exception as e:  # widget already destroyed
                logger.debug("after_cancel(%s) failed: %s", self._job, e)
            self._job = None


class ManualScheduler(Scheduler):
    """Deterministic scheduler: nothing fires until ``advance`` is called."""

    def __init__(self) -> None:
        self.now_ms = 0
        self._queue: list[tuple[int, int, ScheduledTask]] = []
        self._seq = itertools.count()

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(interval_ms, callback)
        self._push(self.now_ms + task.interval_ms, task)
        return task

    def _push(self, due: int, task: ScheduledTask) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), task))

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, ms: int) -> None:
        """Move the clock forward, firing due callbacks in time order."""
        target = self.now_ms + int(ms)
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self.now_ms = due
            self._push(due + task.interval_ms, task)
            task.callback()
        self.now_ms = target

    def advance_seconds(self, seconds: float) -> None:
        self.advance(int(seconds * 1000))
