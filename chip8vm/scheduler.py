"""Clock source and countdown timers.

One ``Scheduler`` owns a clock and the timers created from it. The VM creates
three timers: the periodic CPU clock, the one-shot delay clock and the one-shot
sound clock. ``VirtualClock`` replaces wall-clock time in tests.
"""

import time
from typing import Callable, List, Optional, Protocol

from chip8vm.constants import NS_PER_SECOND, TIMER_HZ
from chip8vm.errors import TimerError

# Idle wait when no timer is armed
POLL_INTERVAL_NS = 1_000_000


class Clock(Protocol):
    def now_ns(self) -> int: ...

    def sleep_ns(self, duration: int) -> None: ...


class MonotonicClock:
    """Host monotonic clock."""

    def now_ns(self) -> int:
        return time.monotonic_ns()

    def sleep_ns(self, duration: int) -> None:
        if duration > 0:
            time.sleep(duration / NS_PER_SECOND)


class VirtualClock:
    """Manually advanced clock; sleeping advances it instantly."""

    def __init__(self, start_ns: int = 0):
        self._now = start_ns

    def now_ns(self) -> int:
        return self._now

    def advance(self, duration: int) -> None:
        if duration < 0:
            raise ValueError("cannot move a clock backwards")
        self._now += duration

    def sleep_ns(self, duration: int) -> None:
        self.advance(max(0, duration))


def ticks_to_ns(ticks: int, hz: int = TIMER_HZ) -> int:
    """Duration of ``ticks`` periods of a ``hz`` clock, rounded down."""
    return ticks * NS_PER_SECOND // hz


def ns_to_ticks(duration: int, hz: int = TIMER_HZ) -> int:
    """Number of ``hz`` ticks left in ``duration``, rounded up."""
    return -(-duration * hz // NS_PER_SECOND)


class CountdownTimer:
    """Timer with an initial expiration and an optional periodic re-arm."""

    def __init__(self, scheduler: "Scheduler", name: str, callback: Optional[Callable[[], None]] = None):
        self.scheduler = scheduler
        self.name = name
        self.callback = callback
        self.deadline: Optional[int] = None
        self.interval = 0
        self.overruns = 0
        # periods coalesced into the latest firing
        self.last_missed = 0
        self.closed = False

    @property
    def armed(self) -> bool:
        return self.deadline is not None

    def _check_open(self):
        if self.closed:
            raise TimerError(f"{self.name} timer is closed")

    def arm(self, initial_ns: int, interval_ns: int = 0):
        """Expire after ``initial_ns``, then every ``interval_ns`` if non-zero.

        An initial expiration of zero disarms the timer.
        """
        self._check_open()
        if initial_ns < 0 or interval_ns < 0:
            raise TimerError(f"{self.name} timer: negative duration")
        if initial_ns == 0:
            self.disarm()
            return
        self.deadline = self.scheduler.clock.now_ns() + initial_ns
        self.interval = interval_ns

    def arm_ticks(self, ticks: int, hz: int = TIMER_HZ):
        """One-shot expiration after ``ticks`` periods of a ``hz`` clock."""
        self.arm(ticks_to_ns(ticks, hz))

    def disarm(self):
        self._check_open()
        self.deadline = None
        self.interval = 0

    def remaining_ns(self) -> int:
        self._check_open()
        if self.deadline is None:
            return 0
        return max(0, self.deadline - self.scheduler.clock.now_ns())

    def remaining_ticks(self, hz: int = TIMER_HZ) -> int:
        """Time left quantized to ``hz`` ticks, clamped to one byte."""
        return min(0xFF, ns_to_ticks(self.remaining_ns(), hz))

    def close(self):
        self.deadline = None
        self.interval = 0
        self.closed = True

    def _expire(self, now: int):
        if self.interval:
            missed = (now - self.deadline) // self.interval
            self.overruns += missed
            self.last_missed = missed
            self.deadline += (missed + 1) * self.interval
        else:
            self.deadline = None
        if self.callback is not None:
            self.callback()

    def __repr__(self):
        state = f"deadline={self.deadline}" if self.armed else "disarmed"
        return f"CountdownTimer({self.name!r}, {state}, interval={self.interval})"


class Scheduler:
    """Single clock source driving any number of countdown timers."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock if clock is not None else MonotonicClock()
        self.timers: List[CountdownTimer] = []

    def create_timer(self, name: str, callback: Optional[Callable[[], None]] = None) -> CountdownTimer:
        timer = CountdownTimer(self, name, callback)
        self.timers.append(timer)
        return timer

    def next_deadline(self) -> Optional[int]:
        deadlines = [t.deadline for t in self.timers if t.armed]
        return min(deadlines) if deadlines else None

    def run_pending(self) -> int:
        """Fire every timer whose deadline has passed, earliest first.

        A periodic timer that missed several periods fires once; the missed
        periods are added to its ``overruns``. Callback exceptions propagate.

        Returns:
            Number of timers fired.
        """
        now = self.clock.now_ns()
        due = sorted(
            (t for t in self.timers if t.armed and t.deadline <= now),
            key=lambda t: t.deadline,
        )
        fired = 0
        for timer in due:
            # an earlier callback may have re-armed or disarmed it
            if timer.armed and timer.deadline <= now:
                timer._expire(now)
                fired += 1
        return fired

    def run(self, until: Callable[[], bool]):
        """Wait for and fire timers until ``until()`` returns True."""
        while not until():
            deadline = self.next_deadline()
            if deadline is None:
                self.clock.sleep_ns(POLL_INTERVAL_NS)
            else:
                self.clock.sleep_ns(deadline - self.clock.now_ns())
            self.run_pending()

    def close(self):
        for timer in self.timers:
            timer.close()
        self.timers.clear()
