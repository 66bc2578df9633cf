"""End-to-end tests of the virtual machine on a virtual clock."""

import pytest
import jax.numpy as jnp
from chip8vm import Chip8VM, Chip8Config
from chip8vm.devices import FrameRecorder, NullDisplay
from chip8vm.errors import RomTooLargeError, StackUnderflowError, TimerError, UnknownOpcodeError
from conftest import make_rom


@pytest.fixture
def make_vm(clock, logger, screen, audio, keys):
    """Build a VM sharing the test clock and devices."""
    machines = []

    def _make_vm(*words, events=None, **settings):
        settings.setdefault("seed", 0)
        vm = Chip8VM(
            make_rom(*words),
            Chip8Config(**settings),
            screen=screen,
            audio=audio,
            keys=keys,
            events=events,
            clock=clock,
            logger=logger,
        )
        machines.append(vm)
        return vm

    yield _make_vm
    for vm in machines:
        vm.close()


class QuitAfter:
    """Event source requesting quit on the n-th poll."""

    def __init__(self, polls):
        self.polls = polls
        self.count = 0

    def quit_requested(self):
        self.count += 1
        return self.count >= self.polls


class TestRun:

    def test_clear_loop(self, make_vm):
        """00E0 1200 runs forever with a blank screen."""
        vm = make_vm(0x00E0, 0x1200, max_cycles=10)

        assert vm.run() == 10
        assert vm.cycles == 10
        assert vm.state.pc == 0x200
        assert not bool(jnp.any(vm.display))

    def test_add_program(self, make_vm):
        vm = make_vm(0x6A02, 0x6B03, 0x8AB4, 0x1206, max_cycles=4)
        vm.run()
        assert vm.state.V[0xA] == 5
        assert vm.state.V[0xF] == 0

    def test_add_program_carry(self, make_vm):
        vm = make_vm(0x6AFF, 0x6B01, 0x8AB4, 0x1206, max_cycles=4)
        vm.run()
        assert vm.state.V[0xA] == 0
        assert vm.state.V[0xF] == 1

    def test_cycle_timing(self, make_vm, clock):
        """First cycle after 10 ms, then one per CPU period."""
        vm = make_vm(0x1200, frequency=100, max_cycles=5)
        vm.run()
        assert clock.now_ns() == 10_000_000 + 4 * 10_000_000

    def test_font_draw(self, make_vm):
        vm = make_vm(0xF029, 0xD005, 0x1204, max_cycles=3)
        vm.run()
        assert vm.pixel(0, 0)
        assert vm.pixel(3, 0)
        assert not vm.pixel(1, 1)

    def test_rom_offset(self, make_vm):
        vm = make_vm(0x6007, 0x1302, rom_offset=0x300, max_cycles=2)
        assert vm.state.pc == 0x300
        assert vm.state.memory[0x300] == 0x60
        vm.run()
        assert vm.state.V[0] == 7

    def test_progress_reported(self, make_vm):
        vm = make_vm(0x1200, max_cycles=5)
        seen = []
        vm.run(progress=seen.append)
        assert seen[0] == 0
        assert seen[-1] == 5

    def test_quit_event(self, make_vm):
        vm = make_vm(0x1200, events=QuitAfter(3))
        assert vm.run() == 2
        assert vm.quit_requested
        assert not vm.cpu_timer.armed

    def test_stats(self, make_vm):
        vm = make_vm(0x1200, max_cycles=3)
        vm.run()
        stats = vm.stats()
        assert stats["cycles"] == 3
        assert stats["skipped_cycles"] == 0
        assert stats["pc"] == "0x200"


class TestTimersInVM:

    def test_sound_and_delay_independent(self, make_vm, audio, clock):
        """6A1E FA18 FB07: sound armed, delay still reads zero."""
        vm = make_vm(0x6A1E, 0xFA18, 0xFB07, 0x1206, max_cycles=3)
        vm.run()

        assert vm.state.V[0xB] == 0
        assert vm.delay_timer == 0
        assert vm.sound_timer == 30
        assert audio.playing

        clock.advance(600_000_000)
        vm.scheduler.run_pending()
        assert not audio.playing
        assert vm.sound_timer == 0

    def test_delay_readback(self, make_vm):
        vm = make_vm(0x6A3C, 0xFA15, 0xFB07, 0x1206, max_cycles=3)
        vm.run()
        assert vm.state.V[0xB] == 60
        assert vm.delay_timer == 60

    def test_delay_loop_terminates(self, make_vm):
        """Busy-wait on the delay timer until it reaches zero."""
        vm = make_vm(
            0x6A06,  # VA = 6
            0xFA15,  # delay = VA
            0xFB07,  # VB = delay
            0x3B00,  # skip if VB == 0
            0x1204,  # loop
            0x120A,  # halt
            max_cycles=200,
        )
        vm.run()
        assert vm.state.V[0xB] == 0
        assert vm.state.pc == 0x20A


class TestRendering:

    def test_refresh_interval(self, make_vm, screen):
        vm = make_vm(0x00E0, 0x1200, refresh_interval=5, max_cycles=10)
        vm.run()
        assert screen.presents == 2

    def test_presents_on_first_cycle(self, make_vm, screen):
        vm = make_vm(0x1200, refresh_interval=20)
        vm.cycle()
        assert screen.presents == 1

    def test_lazy_render(self, make_vm, screen):
        vm = make_vm(0x00E0, 0x1200, lazy_render=True, max_cycles=10)
        vm.run()
        assert screen.presents == 5

    def test_lazy_render_draw(self, make_vm, screen):
        vm = make_vm(0xD005, 0x1202, lazy_render=True, max_cycles=4)
        vm.run()
        assert screen.presents == 1


class TestKeys:

    def test_wait_for_key(self, make_vm, keys):
        vm = make_vm(0xF00A, 0x1202)
        for _ in range(3):
            vm.cycle()
            assert vm.state.pc == 0x200

        keys.press(0xB)
        vm.cycle()
        assert vm.state.V[0] == 0xB
        assert vm.state.pc == 0x202

    def test_keys_only_queried_by_key_instructions(self, make_vm, keys):
        vm = make_vm(0x6001, 0x7001, 0x1202, max_cycles=10)
        vm.run()
        assert keys.queries == 0


class TestReentrancy:

    def test_nested_cycle_skipped(self, clock, logger, log_stream):
        class ReentrantScreen:
            def __init__(self):
                self.vm = None
                self.results = []

            def present(self, display):
                self.results.append(self.vm.cycle())

        screen = ReentrantScreen()
        with Chip8VM(make_rom(0x00E0, 0x1200), Chip8Config(seed=0, refresh_interval=1),
                     screen=screen, clock=clock, logger=logger) as vm:
            screen.vm = vm
            assert vm.cycle()

            assert screen.results == [False]
            assert vm.skipped_cycles == 1
            assert vm.cycles == 1
            assert vm.state.pc == 0x202
            assert "CPU frequency may be too high" in log_stream.getvalue()

    def test_slow_cycle_counts_overruns(self, clock, logger, log_stream):
        class SlowScreen:
            def __init__(self):
                self.slow = True

            def present(self, display):
                if self.slow:
                    self.slow = False
                    clock.advance(12_000_000)

        with Chip8VM(make_rom(0x1200), Chip8Config(seed=0, refresh_interval=1, max_cycles=2),
                     screen=SlowScreen(), clock=clock, logger=logger) as vm:
            vm.run()
            assert vm.cycles == 2
            assert vm.stats()["cpu_overruns"] == 1
            assert vm.skipped_cycles == 0
        assert "cycle 0 overran, 1 firing(s) skipped" in log_stream.getvalue()

    def test_long_stall_reported_once(self, clock, logger, log_stream):
        class StallingScreen:
            def __init__(self):
                self.stalls = 1

            def present(self, display):
                if self.stalls:
                    self.stalls -= 1
                    clock.advance(50_000_000)

        with Chip8VM(make_rom(0x1200), Chip8Config(seed=0, refresh_interval=1, max_cycles=4),
                     screen=StallingScreen(), clock=clock, logger=logger) as vm:
            vm.run()
            assert vm.cycles == 4
            assert vm.cpu_timer.overruns == 9

        output = log_stream.getvalue()
        assert output.count("CPU frequency may be too high") == 1
        assert "9 firing(s) skipped" in output

    def test_steady_run_logs_no_warning(self, make_vm, log_stream):
        make_vm(0x1200, max_cycles=20).run()
        assert "WARNING" not in log_stream.getvalue()


class TestErrors:

    def test_unknown_opcode_stops_machine(self, make_vm):
        vm = make_vm(0x6001, 0x0123)
        with pytest.raises(UnknownOpcodeError) as excinfo:
            vm.run()

        assert excinfo.value.address == 0x202
        assert vm.quit_requested
        assert not vm.cpu_timer.armed
        assert vm.cycles == 1
        assert vm.state.pc == 0x202
        assert vm.state.V[0] == 1

    def test_stack_underflow(self, make_vm):
        vm = make_vm(0x00EE)
        with pytest.raises(StackUnderflowError):
            vm.run()
        assert vm.state.pc == 0x200

    def test_rom_too_large(self, clock):
        with pytest.raises(RomTooLargeError):
            Chip8VM(bytes(4096 - 0x200 + 1), Chip8Config(seed=0), clock=clock)

    def test_close_tears_down_timers(self, make_vm, audio):
        vm = make_vm(0x6A1E, 0xFA18, 0x1204, max_cycles=3)
        vm.run()
        assert audio.playing

        vm.close()
        assert not audio.playing
        with pytest.raises(TimerError):
            vm.delay_timer


class TestDeterminism:

    def test_same_seed_same_random(self, clock, logger):
        values = []
        for _ in range(2):
            with Chip8VM(make_rom(0xC0FF, 0xC1FF), Chip8Config(seed=7), clock=clock, logger=logger) as vm:
                vm.cycle()
                vm.cycle()
                values.append((int(vm.state.V[0]), int(vm.state.V[1])))
        assert values[0] == values[1]


def test_frame_recorder_keeps_frames(clock, logger):
    recorder = FrameRecorder(max_frames=2, sink=NullDisplay())
    with Chip8VM(make_rom(0x1200), Chip8Config(seed=0, refresh_interval=1, max_cycles=3),
                 screen=recorder, clock=clock, logger=logger) as vm:
        vm.run()
    assert len(recorder.frames) == 2
    assert recorder.sink.presents == 3
    assert recorder.stacked().shape == (2, 64, 32)
