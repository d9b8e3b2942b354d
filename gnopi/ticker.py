from __future__ import annotations

import logging
from collections.abc import Callable

from .scheduler import ScheduledCall, Scheduler

logger = logging.getLogger(__name__)

TICK_INTERVAL_S = 0.05


class TimeoutTicker:
    """Countdown driven by a periodic scheduled callback.

    Each tick adds ``tick_interval_s / timeout_s`` to ``progress``. Reaching 1.0
    stops the ticker and calls ``on_expire`` once; it stays stopped until
    re-armed. At most one scheduled call is live at a time.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        on_expire: Callable[[], None],
        tick_interval_s: float = TICK_INTERVAL_S,
    ) -> None:
        if tick_interval_s <= 0.0:
            raise ValueError("tick_interval_s must be > 0")
        self._scheduler = scheduler
        self._on_expire = on_expire
        self._tick_interval_s = float(tick_interval_s)

        self._call: ScheduledCall | None = None
        self._timeout_s: float | None = None
        self._increment = 0.0
        self._progress = 0.0

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def armed(self) -> bool:
        return self._call is not None

    @property
    def tick_interval_s(self) -> float:
        return self._tick_interval_s

    @property
    def increment(self) -> float:
        return self._increment

    def arm(self, timeout_s: float) -> None:
        if timeout_s <= 0.0:
            raise ValueError("timeout_s must be > 0")
        self.cancel()
        self._timeout_s = float(timeout_s)
        self._increment = self._tick_interval_s / self._timeout_s
        self._call = self._scheduler.call_every(self._tick_interval_s, self.tick)
        logger.debug("Timeout armed: %.2fs (+%.4f per tick)", self._timeout_s, self._increment)

    def cancel(self) -> None:
        if self._call is not None:
            self._call.cancel()
            self._call = None
            logger.debug("Timeout cancelled")
        self._progress = 0.0

    def tick(self) -> bool:
        """Advance one interval. Returns True on the tick that expires."""

        if self._call is None:
            return False
        self._progress += self._increment
        if self._progress < 1.0 - 1e-9:
            return False

        self._progress = 1.0
        self._call.cancel()
        self._call = None
        self._on_expire()
        return True
