"""Tests for the clock source and countdown timers."""

import pytest
from chip8vm.constants import NS_PER_SECOND
from chip8vm.errors import TimerError
from chip8vm.scheduler import CountdownTimer, Scheduler, VirtualClock, ns_to_ticks, ticks_to_ns


class TestConversions:

    def test_ticks_to_ns_rounds_down(self):
        assert ticks_to_ns(1) == 16_666_666
        assert ticks_to_ns(60) == NS_PER_SECOND
        assert ticks_to_ns(0) == 0

    def test_ns_to_ticks_rounds_up(self):
        assert ns_to_ticks(0) == 0
        assert ns_to_ticks(1) == 1
        assert ns_to_ticks(16_666_666) == 1
        assert ns_to_ticks(16_666_667) == 2
        assert ns_to_ticks(NS_PER_SECOND) == 60

    @pytest.mark.parametrize("ticks", [1, 2, 17, 60, 255])
    def test_armed_ticks_read_back(self, ticks):
        assert ns_to_ticks(ticks_to_ns(ticks)) == ticks


class TestVirtualClock:

    def test_advance(self):
        clock = VirtualClock(start_ns=5)
        clock.advance(10)
        assert clock.now_ns() == 15

    def test_sleep_advances(self):
        clock = VirtualClock()
        clock.sleep_ns(100)
        clock.sleep_ns(-5)
        assert clock.now_ns() == 100

    def test_no_backwards(self):
        with pytest.raises(ValueError):
            VirtualClock().advance(-1)


class TestCountdownTimer:

    def test_new_timer_disarmed(self, scheduler):
        timer = scheduler.create_timer("t")
        assert not timer.armed
        assert timer.remaining_ns() == 0
        assert timer.remaining_ticks() == 0

    def test_arm_and_remaining(self, scheduler, clock):
        timer = scheduler.create_timer("t")
        timer.arm(1000)
        clock.advance(400)
        assert timer.remaining_ns() == 600

    def test_arm_zero_disarms(self, scheduler):
        timer = scheduler.create_timer("t")
        timer.arm(1000)
        timer.arm(0)
        assert not timer.armed

    def test_rearm_replaces_deadline(self, scheduler, clock):
        timer = scheduler.create_timer("t")
        timer.arm(1000)
        clock.advance(900)
        timer.arm(1000)
        assert timer.remaining_ns() == 1000

    def test_negative_duration(self, scheduler):
        timer = scheduler.create_timer("t")
        with pytest.raises(TimerError):
            timer.arm(-1)

    def test_remaining_ticks_clamped(self, scheduler):
        timer = scheduler.create_timer("t")
        timer.arm(60 * NS_PER_SECOND)
        assert timer.remaining_ticks() == 0xFF

    def test_closed_timer_raises(self, scheduler):
        timer = scheduler.create_timer("delay")
        timer.close()
        with pytest.raises(TimerError, match="delay timer is closed"):
            timer.remaining_ticks()
        with pytest.raises(TimerError):
            timer.arm_ticks(5)

    def test_repr(self, scheduler):
        timer = scheduler.create_timer("sound")
        assert "disarmed" in repr(timer)
        timer.arm(10)
        assert "deadline=10" in repr(timer)


class TestScheduler:

    def test_one_shot_fires_once(self, scheduler, clock):
        fired = []
        timer = scheduler.create_timer("t", lambda: fired.append(clock.now_ns()))
        timer.arm(100)

        clock.advance(99)
        assert scheduler.run_pending() == 0
        clock.advance(1)
        assert scheduler.run_pending() == 1
        clock.advance(1000)
        assert scheduler.run_pending() == 0

        assert fired == [100]
        assert not timer.armed

    def test_periodic_fires_every_interval(self, scheduler, clock):
        fired = []
        timer = scheduler.create_timer("cpu", lambda: fired.append(clock.now_ns()))
        timer.arm(10, 5)

        for _ in range(4):
            clock.advance(scheduler.next_deadline() - clock.now_ns())
            scheduler.run_pending()

        assert fired == [10, 15, 20, 25]
        assert timer.overruns == 0

    def test_periodic_coalesces_overruns(self, scheduler, clock):
        fired = []
        timer = scheduler.create_timer("cpu", lambda: fired.append(clock.now_ns()))
        timer.arm(10, 5)

        clock.advance(27)  # deadlines 10, 15, 20, 25 have all passed
        assert scheduler.run_pending() == 1

        assert len(fired) == 1
        assert timer.overruns == 3
        assert timer.last_missed == 3
        assert timer.deadline == 30

        clock.advance(3)
        scheduler.run_pending()
        assert timer.last_missed == 0
        assert timer.overruns == 3

    def test_earliest_deadline_first(self, scheduler, clock):
        order = []
        late = scheduler.create_timer("late", lambda: order.append("late"))
        early = scheduler.create_timer("early", lambda: order.append("early"))
        late.arm(20)
        early.arm(10)

        clock.advance(30)
        scheduler.run_pending()

        assert order == ["early", "late"]

    def test_callback_can_disarm_other_timer(self, scheduler, clock):
        fired = []
        second = scheduler.create_timer("second", lambda: fired.append("second"))
        first = scheduler.create_timer("first", second.disarm)
        first.arm(10)
        second.arm(20)

        clock.advance(30)
        assert scheduler.run_pending() == 1
        assert fired == []

    def test_callback_error_propagates(self, scheduler, clock):
        def fail():
            raise RuntimeError("boom")

        scheduler.create_timer("t", fail).arm(1)
        clock.advance(1)
        with pytest.raises(RuntimeError, match="boom"):
            scheduler.run_pending()

    def test_next_deadline(self, scheduler):
        assert scheduler.next_deadline() is None
        scheduler.create_timer("a").arm(50)
        scheduler.create_timer("b").arm(20)
        assert scheduler.next_deadline() == 20

    def test_run_until(self, scheduler, clock):
        count = [0]

        def tick():
            count[0] += 1

        scheduler.create_timer("cpu", tick).arm(10, 10)
        scheduler.run(until=lambda: count[0] >= 5)

        assert count[0] == 5
        assert clock.now_ns() == 50

    def test_run_idles_without_timers(self, scheduler, clock):
        polls = [0]

        def until():
            polls[0] += 1
            return polls[0] > 3

        scheduler.run(until)
        assert clock.now_ns() > 0

    def test_close(self, scheduler):
        timer = scheduler.create_timer("t")
        timer.arm(10)
        scheduler.close()
        assert timer.closed
        assert not timer.armed
        assert scheduler.next_deadline() is None

    def test_default_clock_is_monotonic(self):
        from chip8vm.scheduler import MonotonicClock

        assert isinstance(Scheduler().clock, MonotonicClock)
        assert isinstance(Scheduler().create_timer("t"), CountdownTimer)
