"""
Virtual-time timers driven by the host's tick.

Nothing here sleeps or spawns threads: the owner advances time explicitly,
so a render loop, a fixed-step game loop or a test can drive the same code.
"""
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List


@dataclass(eq=False)
class Timer:
    name: str
    callback: Callable[[], None]
    due_ms: float
    interval_ms: float
    epoch: int
    seq: int = field(default=0)
    cancelled: bool = False


class TimerScheduler:
    def __init__(self):
        self.logger = logging.getLogger("TimerScheduler")
        self.now_ms = 0.0
        self.epoch = 0
        self._timers: List[Timer] = []
        self._seq = itertools.count()

    @property
    def active_count(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def set_interval(self, interval_ms: float, callback: Callable[[], None], name: str = "interval") -> Timer:
        if interval_ms <= 0:
            raise ValueError(f"Interval must be positive, got {interval_ms}")
        timer = Timer(name, callback, self.now_ms + interval_ms, interval_ms, self.epoch, next(self._seq))
        self._timers.append(timer)
        self.logger.debug("Timer '%s' armed (due %.0f ms, epoch %s)", name, timer.due_ms, self.epoch)
        return timer

    def cancel_all(self) -> None:
        for t in self._timers:
            t.cancelled = True
        if self._timers:
            self.logger.debug("Cancelled %s timer(s)", len(self._timers))
        self._timers = []
        self.epoch += 1

    def _live(self, timer: Timer) -> bool:
        return not timer.cancelled and timer.epoch == self.epoch

    def advance(self, elapsed_ms: float) -> int:
        """Move virtual time forward and fire due callbacks in due order."""
        if elapsed_ms < 0:
            return 0
        target = self.now_ms + elapsed_ms
        fired = 0
        while True:
            due = [t for t in self._timers if self._live(t) and t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due_ms, t.seq))
            self.now_ms = max(self.now_ms, timer.due_ms)
            timer.due_ms += timer.interval_ms
            try:
                timer.callback()
            except Exception as e:
                self.logger.error("Timer '%s' callback failed: %s", timer.name, e, exc_info=True)
            fired += 1
        self.now_ms = target
        self._timers = [t for t in self._timers if self._live(t)]
        return fired
