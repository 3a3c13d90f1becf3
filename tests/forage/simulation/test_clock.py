"""Unit tests for TickClock: tick barrier between driver and robot threads."""

from __future__ import annotations

import threading

import pytest

from forage.simulation.clock import TickClock


pytestmark = pytest.mark.unit


def _worker(clock: TickClock, seen: list[int], lock: threading.Lock) -> threading.Thread:
    def loop() -> None:
        last = 0
        while True:
            tick = clock.wait_next(last)
            if tick is None:
                return
            last = tick
            with lock:
                seen.append(tick)
            clock.mark_done()

    t = threading.Thread(target=loop, daemon=True)
    t.start()
    return t


class TestTickClock:
    def test_starts_at_zero(self):
        clock = TickClock(1)
        assert clock.tick == 0
        assert not clock.stopped

    def test_advance_waits_for_every_party(self):
        clock = TickClock(3)
        seen: list[int] = []
        lock = threading.Lock()
        workers = [_worker(clock, seen, lock) for _ in range(3)]
        for _ in range(5):
            assert clock.advance(timeout=5.0)
            # Each tick is complete before the next begins
            with lock:
                assert len(seen) == clock.tick * 3
        clock.stop()
        for w in workers:
            w.join(timeout=5)
            assert not w.is_alive()
        assert sorted(seen) == sorted([t for t in range(1, 6) for _ in range(3)])

    def test_advance_times_out_without_parties(self):
        clock = TickClock(1)
        assert clock.advance(timeout=0.05) is False
        assert clock.tick == 1

    def test_zero_parties_completes_immediately(self):
        clock = TickClock(0)
        assert clock.advance(timeout=1.0) is True

    def test_stop_wakes_waiters(self):
        clock = TickClock(1)
        result = []
        t = threading.Thread(target=lambda: result.append(clock.wait_next(0)), daemon=True)
        t.start()
        clock.stop()
        t.join(timeout=5)
        assert result == [None]

    def test_advance_after_stop_refused(self):
        clock = TickClock(1)
        clock.stop()
        assert clock.advance(timeout=1.0) is False
        assert clock.tick == 0

    def test_retire_releases_pending_tick(self):
        clock = TickClock(2)
        seen: list[int] = []
        lock = threading.Lock()
        worker = _worker(clock, seen, lock)
        retirer = threading.Timer(0.05, clock.retire)
        retirer.start()
        assert clock.advance(timeout=5.0) is True
        clock.stop()
        worker.join(timeout=5)
