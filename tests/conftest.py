"""Test configuration and fixtures for CHIP-8 virtual machine tests."""

import io

import pytest
import jax.numpy as jnp
from chip8vm import create_state, Devices, Scheduler, VirtualClock
from chip8vm.devices import NullAudio, NullDisplay, StaticKeys
from chip8vm.logging import ConsoleLogger


@pytest.fixture
def fresh_state():
    """Provide a fresh emulator state for each test."""
    return create_state()


@pytest.fixture
def new_shift_state():
    """Provide a fresh state where shifts operate on VX directly."""
    return create_state(legacy_shift=False)


@pytest.fixture
def legacy_state():
    """Provide a fresh state where shifts read VY."""
    return create_state(legacy_shift=True)


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    return ConsoleLogger(log_level="DEBUG", show_timestamps=False, stream=log_stream)


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock)


@pytest.fixture
def keys():
    return StaticKeys()


@pytest.fixture
def audio():
    return NullAudio()


@pytest.fixture
def screen():
    return NullDisplay()


@pytest.fixture
def devices(scheduler, logger, screen, audio, keys):
    """Headless devices sharing the test clock, keys, audio and screen."""
    return Devices.headless(scheduler, logger, screen=screen, audio=audio, keys=keys)


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )


def make_rom(*words):
    """Assemble 16-bit instruction words into big-endian ROM bytes."""
    return b"".join(word.to_bytes(2, "big") for word in words)
