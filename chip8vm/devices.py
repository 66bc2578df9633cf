"""Interfaces between the machine core and its external collaborators.

The core only ever talks to a display sink, an audio switch, a key source and
an event source. ``Devices`` bundles them with the delay and sound clocks so
instruction handlers receive a single context object.
"""

import dataclasses
from typing import List, Optional, Protocol, Sequence

import jax.numpy as jnp

from chip8vm.constants import NUM_KEYS
from chip8vm.logging import ConsoleLogger
from chip8vm.scheduler import CountdownTimer, Scheduler, VirtualClock


class DisplaySink(Protocol):
    def present(self, display: jnp.ndarray) -> None: ...


class AudioSwitch(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


class KeySource(Protocol):
    def pressed(self) -> Sequence[bool]: ...


class EventSource(Protocol):
    def quit_requested(self) -> bool: ...


class NullDisplay:
    """Display sink that counts presents and keeps nothing."""

    def __init__(self):
        self.presents = 0

    def present(self, display: jnp.ndarray) -> None:
        self.presents += 1


class FrameRecorder:
    """Display sink that keeps a copy of every presented frame.

    Frames are forwarded to ``sink`` when one is given, so recording can sit
    in front of a real window.
    """

    def __init__(self, max_frames: Optional[int] = None, sink: Optional[DisplaySink] = None):
        self.max_frames = max_frames
        self.sink = sink
        self.frames: List[jnp.ndarray] = []

    def present(self, display: jnp.ndarray) -> None:
        self.frames.append(display)
        if self.sink is not None:
            self.sink.present(display)
        if self.max_frames is not None and len(self.frames) > self.max_frames:
            self.frames.pop(0)

    @property
    def last_frame(self) -> Optional[jnp.ndarray]:
        return self.frames[-1] if self.frames else None

    def stacked(self) -> jnp.ndarray:
        """All recorded frames as an array of shape (N, 64, 32)."""
        return jnp.stack(self.frames)


class NullAudio:
    """Audio switch that only tracks whether playback is on."""

    def __init__(self):
        self.playing = False
        self.starts = 0

    def start(self) -> None:
        self.playing = True
        self.starts += 1

    def stop(self) -> None:
        self.playing = False


class StaticKeys:
    """Key source backed by a mutable list of 16 booleans."""

    def __init__(self, pressed: Optional[Sequence[bool]] = None):
        self.state = list(pressed) if pressed is not None else [False] * NUM_KEYS
        self.queries = 0

    def press(self, key: int):
        self.state[key] = True

    def release(self, key: int):
        self.state[key] = False

    def pressed(self) -> Sequence[bool]:
        self.queries += 1
        return list(self.state)


class NoEvents:
    """Event source that never asks to quit."""

    def quit_requested(self) -> bool:
        return False


@dataclasses.dataclass
class Devices:
    """Context handed to every instruction handler."""
    screen: DisplaySink
    audio: AudioSwitch
    keys: KeySource
    delay_timer: CountdownTimer
    sound_timer: CountdownTimer
    logger: ConsoleLogger

    @classmethod
    def headless(
        cls,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[ConsoleLogger] = None,
        screen: Optional[DisplaySink] = None,
        audio: Optional[AudioSwitch] = None,
        keys: Optional[KeySource] = None,
    ) -> "Devices":
        """Devices with null collaborators and timers on a virtual clock."""
        if scheduler is None:
            scheduler = Scheduler(VirtualClock())
        audio = audio if audio is not None else NullAudio()
        return cls(
            screen=screen if screen is not None else NullDisplay(),
            audio=audio,
            keys=keys if keys is not None else StaticKeys(),
            delay_timer=scheduler.create_timer("delay"),
            sound_timer=scheduler.create_timer("sound", audio.stop),
            logger=logger if logger is not None else ConsoleLogger(),
        )
