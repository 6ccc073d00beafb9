"""
Clock abstraction used by pools and the refill scheduler

AsyncioClock schedules on the running event loop. ManualClock is a simulated
clock for tests and dry runs: time only moves when advance() is called.
"""

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


class Clock(Protocol):
    """Monotonic time plus cancelable one-shot and repeating callbacks"""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle: ...


class _LoopTimer:
    """One-shot or repeating timer backed by loop.call_later"""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        delay: float,
        callback: Callable[[], None],
        repeat: bool = False
    ):
        self._loop = loop
        self._delay = delay
        self._callback = callback
        self._repeat = repeat
        self._cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = None
        self._schedule()

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        if self._repeat:
            self._schedule()
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioClock:
    """Clock backed by the asyncio event loop; now() is loop.time()"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _LoopTimer:
        return _LoopTimer(self.loop, max(0.0, delay), callback)

    def call_every(self, interval: float, callback: Callable[[], None]) -> _LoopTimer:
        if interval <= 0:
            raise ValueError("interval must be positive")
        return _LoopTimer(self.loop, interval, callback, repeat=True)


class _ManualTimer:
    def __init__(self, deadline: float, callback: Callable[[], None], interval: Optional[float]):
        self.deadline = deadline
        self.callback = callback
        self.interval = interval
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualClock:
    """
    Deterministic clock

    Timers fire only inside advance()/advance_to(), in deadline order, with
    now() set to each timer's deadline while its callback runs.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._timers: List[Tuple[float, int, _ManualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(self._now + max(0.0, delay), callback, None)
        self._push(timer)
        return timer

    def call_every(self, interval: float, callback: Callable[[], None]) -> _ManualTimer:
        if interval <= 0:
            raise ValueError("interval must be positive")
        timer = _ManualTimer(self._now + interval, callback, interval)
        self._push(timer)
        return timer

    def _push(self, timer: _ManualTimer) -> None:
        heapq.heappush(self._timers, (timer.deadline, next(self._seq), timer))

    def advance(self, seconds: float) -> int:
        """Move time forward, firing due timers; returns number fired"""
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        return self.advance_to(self._now + seconds)

    def advance_to(self, target: float) -> int:
        if target < self._now:
            raise ValueError("cannot move a clock backwards")

        fired = 0
        while self._timers and self._timers[0][0] <= target:
            deadline, _, timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = deadline
            if timer.interval is not None:
                timer.deadline = deadline + timer.interval
                self._push(timer)
            fired += 1
            timer.callback()

        self._now = target
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._timers if not t.cancelled)
