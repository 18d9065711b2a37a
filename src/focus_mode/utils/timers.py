import heapq
import itertools
import time
from typing import Callable

from loguru import logger


class TimerHandle:
    """Identity of one scheduled callback."""

    __slots__ = ("due", "callback", "cancelled", "fired")

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def __repr__(self) -> str:
        name = getattr(self.callback, "__name__", repr(self.callback))
        return f"<TimerHandle {name} due={self.due:.1f} active={self.active}>"


class Scheduler:
    """
    Single-threaded delayed-task queue.

    Nothing runs on its own: the owning loop calls ``run_pending()``.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def schedule_in(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self._clock() + max(0.0, delay), callback)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        logger.debug(f"Scheduled {handle!r} in {delay}s")
        return handle

    def cancel(self, handle: TimerHandle | None):
        if handle is None or not handle.active:
            return
        handle.cancelled = True
        logger.debug(f"Cancelled {handle!r}")

    def _drop_cancelled(self):
        while self._queue and not self._queue[0][2].active:
            heapq.heappop(self._queue)

    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if h.active)

    def next_delay(self) -> float | None:
        """Seconds until the earliest live timer, or None when idle."""
        self._drop_cancelled()
        if not self._queue:
            return None
        return max(0.0, self._queue[0][0] - self._clock())

    def run_pending(self) -> int:
        """Runs every callback that is due now. Returns how many ran."""
        now = self._clock()
        ran = 0
        while True:
            self._drop_cancelled()
            if not self._queue or self._queue[0][0] > now:
                break
            _, _, handle = heapq.heappop(self._queue)
            handle.fired = True
            ran += 1
            try:
                handle.callback()
            except Exception as e:
                logger.exception(f"Error in scheduled callback {handle!r}: {e}")
        return ran
