"""
Timer Scheduler Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

Timers never fire on their own thread: the pipeline asks for the next deadline,
waits on its message queue for at most that long and then calls ``run_due``.
All callbacks therefore run inside the same serialized context.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import heapq
import itertools
import time
from typing import Any, Callable, List, Optional, Tuple


class TimerHandle:
    """A scheduled callback. Cancelled or fired handles are inert."""

    __slots__ = ("deadline", "callback", "args", "cancelled")

    def __init__(self, deadline: float, callback: Callable, args: Tuple[Any, ...]):
        self.deadline = deadline
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "pending"
        return f"<TimerHandle {getattr(self.callback, '__name__', self.callback)} at {self.deadline:.3f} {state}>"


class Scheduler:
    """
    Min-heap of timers keyed by deadline.

    Attributes:
        clock (Callable): Monotonic time source, injectable for tests
    """

    def __init__(self, clock: Callable[[], float] = None):
        self.clock = clock or time.monotonic
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self.clock()

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(self.clock() + max(delay, 0.0), callback, args)
        heapq.heappush(self._heap, (handle.deadline, next(self._counter), handle))
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    def _discard_cancelled(self) -> None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)

    def next_delay(self) -> Optional[float]:
        """Seconds until the earliest live timer, or None when nothing is pending."""
        self._discard_cancelled()
        if not self._heap:
            return None
        return max(self._heap[0][0] - self.clock(), 0.0)

    def run_due(self) -> int:
        """Fire every live timer whose deadline has passed. Returns the number fired."""
        now = self.clock()
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            # A fired handle behaves like a cancelled one from here on
            handle.cancelled = True
            handle.callback(*handle.args)
            fired += 1
        return fired

    def pending(self) -> int:
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)

    def clear(self) -> None:
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()
