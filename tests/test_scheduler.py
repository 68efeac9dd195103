import threading
import time

from daybot.worker.reminder_loop import ReminderScheduler
from daybot.worker.sweeper import SweepReport
from helpers import ist


class FakeSweeper:
    def __init__(self, hold: float = 0.0) -> None:
        self.hold = hold
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.block = False

    def sweep_once(self, now=None):
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.entered.set()
        try:
            if self.block:
                self.release.wait(5)
            if self.hold:
                time.sleep(self.hold)
            return SweepReport(now=now or ist(10, 0))
        finally:
            with self._lock:
                self.active -= 1


def test_run_tick_records_last_report():
    sched = ReminderScheduler(FakeSweeper(), interval_seconds=60)
    report = sched.run_tick(ist(10, 0))
    assert report is not None
    assert sched.ticks == 1
    assert sched.last_report is report
    assert sched.last_tick_at == ist(10, 0)


def test_overlapping_tick_is_skipped():
    sweeper = FakeSweeper()
    sweeper.block = True
    sched = ReminderScheduler(sweeper, interval_seconds=60)

    t = threading.Thread(target=sched.run_tick)
    t.start()
    assert sweeper.entered.wait(5)

    assert sched.run_tick() is None
    assert sched.skipped == 1

    sweeper.release.set()
    t.join(5)
    assert sweeper.calls == 1
    assert sched.ticks == 1


def test_background_loop_ticks_and_stops():
    sweeper = FakeSweeper()
    sched = ReminderScheduler(sweeper, interval_seconds=0.02)
    sched.start()
    try:
        deadline = time.monotonic() + 5
        while sweeper.calls < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert sched.running
    finally:
        sched.stop(timeout=5)

    assert sweeper.calls >= 3
    assert not sched.running
    assert sweeper.max_active == 1
    calls = sweeper.calls
    time.sleep(0.1)
    assert sweeper.calls == calls


def test_slow_ticks_never_overlap_and_missed_slots_are_skipped():
    sweeper = FakeSweeper(hold=0.05)
    sched = ReminderScheduler(sweeper, interval_seconds=0.01)
    sched.start()
    try:
        deadline = time.monotonic() + 5
        while sweeper.calls < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        sched.stop(timeout=5)

    assert sweeper.max_active == 1
    assert sched.skipped > 0


def test_exception_in_sweep_does_not_kill_scheduler():
    class Broken:
        calls = 0

        def sweep_once(self, now=None):
            self.calls += 1
            raise RuntimeError("boom")

    broken = Broken()
    sched = ReminderScheduler(broken, interval_seconds=60)
    assert sched.run_tick() is None
    assert sched.run_tick() is None
    assert broken.calls == 2
    assert sched.ticks == 0


def test_start_is_idempotent():
    sched = ReminderScheduler(FakeSweeper(), interval_seconds=60)
    sched.start()
    first = sched._thread
    sched.start()
    try:
        assert sched._thread is first
    finally:
        sched.stop(timeout=5)


def test_stop_with_timeout_does_not_wait_for_a_stuck_tick():
    sweeper = FakeSweeper()
    sweeper.block = True
    sched = ReminderScheduler(sweeper, interval_seconds=0.01)
    sched.start()
    try:
        assert sweeper.entered.wait(5)
        started = time.monotonic()
        sched.stop(timeout=0.1)
        assert time.monotonic() - started < 2
    finally:
        sweeper.release.set()
