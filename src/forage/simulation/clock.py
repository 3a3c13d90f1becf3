"""TickClock: the barrier between the tick driver and robot threads.

The driver calls ``advance()``: the tick number goes up, every robot
thread blocked in ``wait_next()`` wakes, and the driver waits until each
of them has called ``mark_done()`` (or the clock is stopped).  A robot
therefore acts at most once per tick and only ever pauses between ticks.

``stop()`` wakes everybody.  Waiters get ``None`` back from
``wait_next()`` and leave their loops, so shutdown never depends on a
timeout.
"""

from __future__ import annotations

import threading


class TickClock:
    def __init__(self, parties: int) -> None:
        self._cond = threading.Condition()
        self._parties = parties
        self._tick = 0
        self._done = 0
        self._stopped = False

    @property
    def tick(self) -> int:
        with self._cond:
            return self._tick

    @property
    def stopped(self) -> bool:
        with self._cond:
            return self._stopped

    def advance(self, timeout: float | None = None) -> bool:
        """Start the next tick and wait for every party to finish it.

        Returns False if the clock was stopped or *timeout* expired first.
        """
        with self._cond:
            if self._stopped:
                return False
            self._tick += 1
            self._done = 0
            self._cond.notify_all()
            finished = self._cond.wait_for(
                lambda: self._done >= self._parties or self._stopped, timeout,
            )
            return bool(finished) and not self._stopped

    def wait_next(self, last_seen: int) -> int | None:
        """Block until a tick newer than *last_seen* starts; None once stopped."""
        with self._cond:
            self._cond.wait_for(lambda: self._stopped or self._tick > last_seen)
            if self._stopped:
                return None
            return self._tick

    def mark_done(self) -> None:
        with self._cond:
            self._done += 1
            self._cond.notify_all()

    def retire(self) -> None:
        """Remove one party for good (a unit that crashed)."""
        with self._cond:
            self._parties = max(0, self._parties - 1)
            self._cond.notify_all()

    def stop(self) -> None:
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
