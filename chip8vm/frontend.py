"""pygame window, keyboard and buzzer for the CHIP-8 virtual machine."""

import math
from typing import List, Optional, Sequence

import jax.numpy as jnp
import numpy as np
import pygame

from chip8vm.constants import SCREEN_WIDTH, SCREEN_HEIGHT
from chip8vm.errors import DeviceError
from chip8vm.keypad import KEY_LAYOUT
from chip8vm.logging import ConsoleLogger
from chip8vm.rendering import chip8_display_to_rgb, create_color_scheme


class PygameDisplay:
    """Window showing the display buffer, scaled by ``scale``."""

    def __init__(self, scale: int = 10, color_scheme: str = "mvemu", caption: str = "CHIP8"):
        self.scale = scale
        self.on_color, self.off_color = create_color_scheme(color_scheme)
        try:
            pygame.display.init()
            self.surface = pygame.display.set_mode((SCREEN_WIDTH * scale, SCREEN_HEIGHT * scale))
        except pygame.error as error:
            raise DeviceError(f"unable to create window ({error})") from error
        pygame.display.set_caption(caption)

        # clear initial screen (first instruction should be 00E0 anyway)
        self.surface.fill(self.off_color)
        pygame.display.flip()

    def present(self, display: jnp.ndarray) -> None:
        rgb = chip8_display_to_rgb(display, self.scale, self.on_color, self.off_color)
        # surfarray is indexed (x, y)
        pygame.surfarray.blit_array(self.surface, rgb.swapaxes(0, 1))
        pygame.display.flip()

    def close(self):
        pygame.display.quit()


class PygameKeys:
    """Physical key state through ``pygame.key.get_pressed``.

    pygame only updates key state while events are pumped, which
    ``PygameEvents.quit_requested`` does once per cycle.
    """

    def __init__(self, layout: Optional[dict] = None):
        layout = layout if layout is not None else KEY_LAYOUT
        self.key_codes: List[int] = [pygame.key.key_code(layout[key]) for key in sorted(layout)]

    def pressed(self) -> Sequence[bool]:
        state = pygame.key.get_pressed()
        return [bool(state[code]) for code in self.key_codes]


class PygameEvents:
    """Drains the pygame event queue; window close or Escape requests quit."""

    def quit_requested(self) -> bool:
        requested = False
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                requested = True
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                requested = True
        return requested


class ToneAudio:
    """Looping sine tone through ``pygame.mixer``."""

    def __init__(
        self,
        tone_frequency: float = 440.0,
        device: Optional[str] = None,
        volume: float = 0.25,
        sample_rate: int = 44100,
        logger: Optional[ConsoleLogger] = None,
    ):
        self.logger = logger if logger is not None else ConsoleLogger()
        try:
            pygame.mixer.init(frequency=sample_rate, size=-16, channels=1, devicename=device)
        except pygame.error as error:
            raise DeviceError(f"unable to initialize sound system ({error})") from error

        mixer_rate, _, channels = pygame.mixer.get_init()
        self.sound = pygame.sndarray.make_sound(
            make_tone(tone_frequency, mixer_rate, volume, channels)
        )
        self.playing = False

    def start(self) -> None:
        if not self.playing:
            self.sound.play(loops=-1)
            self.playing = True

    def stop(self) -> None:
        if self.playing:
            self.sound.stop()
            self.playing = False

    def close(self):
        self.stop()
        pygame.mixer.quit()


def make_tone(tone_frequency: float, sample_rate: int, volume: float = 0.25, channels: int = 1) -> np.ndarray:
    """Whole periods of a sine wave, at least 100 ms long, as int16 samples."""
    period = sample_rate / tone_frequency
    periods = max(1, math.ceil(0.1 * sample_rate / period))
    length = max(1, round(periods * period))
    t = np.arange(length)
    wave = (np.sin(2 * np.pi * tone_frequency * t / sample_rate) * volume * 32767).astype(np.int16)
    if channels > 1:
        wave = np.ascontiguousarray(np.repeat(wave[:, None], channels, axis=1))
    return wave


def list_audio_devices() -> List[str]:
    """Names of the available audio output devices."""
    from pygame._sdl2.audio import get_audio_device_names

    pygame.mixer.init()
    try:
        return list(get_audio_device_names(False))
    finally:
        pygame.mixer.quit()
