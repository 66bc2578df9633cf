"""The CHIP-8 virtual machine context.

``Chip8VM`` owns everything one machine needs: the immutable
``EmulatorState``, a scheduler with the CPU, delay and sound clocks, and the
external devices. Each CPU clock firing runs exactly one instruction.
"""

import threading
import time
from typing import Callable, Optional, Union

import jax

from chip8vm.config import Chip8Config
from chip8vm.constants import CPU_START_DELAY_NS, NS_PER_SECOND
from chip8vm.devices import (
    AudioSwitch, Devices, DisplaySink, EventSource, KeySource, NoEvents, NullAudio,
    NullDisplay, StaticKeys,
)
from chip8vm.display import pixel
from chip8vm.emulator import load_rom, step
from chip8vm.logging import ConsoleLogger, EmulatorLogger
from chip8vm.scheduler import Clock, Scheduler
from chip8vm.state import EmulatorState, create_state


class Chip8VM:
    """One CHIP-8 machine driven by its own scheduler.

    Args:
        rom: ROM bytes, or a path to a ROM file.
        config: Machine settings; defaults to ``Chip8Config()``.
        screen: Sink receiving present requests.
        audio: Buzzer switch, started by FX18 and stopped when the sound
            clock expires.
        keys: Physical key state, queried only by EX9E, EXA1 and FX0A.
        events: Polled once per cycle for a quit request.
        clock: Time source for the scheduler (a ``VirtualClock`` in tests).
        logger: Diagnostic channel.

    Raises:
        RomError: the ROM cannot be read or does not fit in memory.
    """

    def __init__(
        self,
        rom: Union[bytes, str],
        config: Optional[Chip8Config] = None,
        screen: Optional[DisplaySink] = None,
        audio: Optional[AudioSwitch] = None,
        keys: Optional[KeySource] = None,
        events: Optional[EventSource] = None,
        clock: Optional[Clock] = None,
        logger: Optional[ConsoleLogger] = None,
    ):
        self.config = config if config is not None else Chip8Config()
        self.logger = logger if logger is not None else EmulatorLogger(log_level=self.config.log_level)
        self.events = events if events is not None else NoEvents()

        self.scheduler = Scheduler(clock)
        self.cpu_timer = self.scheduler.create_timer("cpu", self.cycle)
        audio = audio if audio is not None else NullAudio()
        self.devices = Devices(
            screen=screen if screen is not None else NullDisplay(),
            audio=audio,
            keys=keys if keys is not None else StaticKeys(),
            delay_timer=self.scheduler.create_timer("delay"),
            sound_timer=self.scheduler.create_timer("sound", audio.stop),
            logger=self.logger,
        )

        seed = self.config.seed if self.config.seed is not None else time.time_ns()
        state = create_state(
            jax.random.PRNGKey(seed),
            pc=self.config.rom_offset,
            font_offset=self.config.font_offset,
            legacy_shift=self.config.legacy_shift,
            lazy_render=self.config.lazy_render,
        )
        try:
            self.state: EmulatorState = load_rom(state, rom, self.config.rom_offset)
        except Exception:
            self.scheduler.close()
            raise

        self.cycles = 0
        self.skipped_cycles = 0
        self.quit_requested = False
        self._cycle_lock = threading.Lock()

    @property
    def display(self):
        return self.state.display

    def pixel(self, x: int, y: int) -> bool:
        return pixel(self.state.display, x, y)

    @property
    def delay_timer(self) -> int:
        """Delay counter as a program would read it with FX07."""
        return self.devices.delay_timer.remaining_ticks()

    @property
    def sound_timer(self) -> int:
        return self.devices.sound_timer.remaining_ticks()

    @property
    def period_ns(self) -> int:
        return NS_PER_SECOND // self.config.frequency

    def present(self):
        self.devices.screen.present(self.state.display)

    def cycle(self) -> bool:
        """Handle one CPU clock firing.

        Polls for a quit request, executes one instruction and refreshes the
        screen every ``refresh_interval`` cycles unless rendering lazily. A
        firing that starts while another is still running is skipped, and
        firings lost to an overrunning cycle are reported; both are logged.

        Returns:
            False if the firing was skipped.

        Raises:
            ExecutionError: the instruction failed; the state is unchanged.
        """
        if not self._cycle_lock.acquire(blocking=False):
            self.skipped_cycles += 1
            self.logger.warning(
                f"CPU frequency may be too high ({self.config.frequency} Hz): "
                f"clock fired during cycle {self.cycles}, firing skipped"
            )
            return False

        try:
            missed, self.cpu_timer.last_missed = self.cpu_timer.last_missed, 0
            if missed:
                self.logger.warning(
                    f"CPU frequency may be too high ({self.config.frequency} Hz): "
                    f"cycle {self.cycles - 1} overran, {missed} firing(s) skipped"
                )

            if self.events.quit_requested():
                self.quit()
                return True

            self.state = step(self.state, self.devices)

            # every so often, force display update
            if not self.config.lazy_render and self.cycles % self.config.refresh_interval == 0:
                self.present()
            self.cycles += 1

            if self.config.max_cycles is not None and self.cycles >= self.config.max_cycles:
                self.quit()
        finally:
            self._cycle_lock.release()
        return True

    def start(self):
        """Arm the CPU clock."""
        self.cpu_timer.arm(CPU_START_DELAY_NS, self.period_ns)

    def quit(self):
        """Disarm the CPU clock and let ``run`` return."""
        self.quit_requested = True
        if not self.cpu_timer.closed:
            self.cpu_timer.disarm()

    def run(self, progress: Optional[Callable[[int], None]] = None) -> int:
        """Start the CPU clock and block until a quit request.

        Args:
            progress: Called with the cycle count while waiting for timers.

        Returns:
            Number of executed cycles.

        Raises:
            ExecutionError: an instruction failed; the machine is stopped.
        """
        def until() -> bool:
            if progress is not None:
                progress(self.cycles)
            return self.quit_requested

        self.start()
        try:
            self.scheduler.run(until=until)
        except Exception:
            self.quit()
            raise
        return self.cycles

    def stats(self) -> dict:
        return {
            "cycles": self.cycles,
            "skipped_cycles": self.skipped_cycles,
            "cpu_overruns": self.cpu_timer.overruns,
            "pc": f"0x{int(self.state.pc):03X}",
        }

    def close(self):
        """Stop the buzzer and tear down all timers."""
        self.devices.audio.stop()
        self.scheduler.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
