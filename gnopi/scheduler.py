from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class ScheduledCall(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """The only scheduling primitive the core needs from its host loop."""

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> ScheduledCall: ...


class _IntervalCall:
    __slots__ = ("interval_s", "callback", "next_due_s", "active")

    def __init__(self, interval_s: float, callback: Callable[[], None], next_due_s: float) -> None:
        self.interval_s = interval_s
        self.callback = callback
        self.next_due_s = next_due_s
        self.active = True

    def cancel(self) -> None:
        self.active = False


class IntervalScheduler:
    """Cooperative periodic callbacks, fired from ``pump()`` on the host loop.

    Missed intervals are caught up in order, so the number of firings tracks
    elapsed clock time rather than frame rate. A call cancelled while the pump
    is running (including by its own callback) never fires again.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._calls: list[_IntervalCall] = []

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> _IntervalCall:
        if interval_s <= 0.0:
            raise ValueError("interval_s must be > 0")
        call = _IntervalCall(float(interval_s), callback, self._clock.now() + float(interval_s))
        self._calls.append(call)
        return call

    def pending(self) -> int:
        return sum(1 for call in self._calls if call.active)

    def pump(self) -> int:
        """Fire every due callback; returns the number of firings."""

        now = self._clock.now()
        fired = 0
        for call in list(self._calls):
            while call.active and call.next_due_s <= now:
                call.next_due_s += call.interval_s
                call.callback()
                fired += 1
        self._calls = [call for call in self._calls if call.active]
        return fired
