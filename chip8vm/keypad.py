"""Lazily refreshed 16-key input state.

The snapshot lives in ``EmulatorState.keypad`` and is only refreshed by the
instructions that read it (EX9E, EXA1, FX0A), never on a timer.
"""

from typing import Optional, Sequence

import jax.numpy as jnp

from chip8vm.constants import NUM_KEYS

# CHIP-8 key -> keyboard key name
#   1 2 3 C  |  1 2 3 4
#   4 5 6 D  |  Q W E R
#   7 8 9 E  |  A S D F
#   A 0 B F  |  Z X C V
KEY_LAYOUT = {
    0x0: "x", 0x1: "1", 0x2: "2", 0x3: "3",
    0x4: "q", 0x5: "w", 0x6: "e", 0x7: "a",
    0x8: "s", 0x9: "d", 0xA: "z", 0xB: "c",
    0xC: "4", 0xD: "r", 0xE: "f", 0xF: "v",
}


def refresh(snapshot: jnp.ndarray, physical: Sequence[bool]) -> tuple[jnp.ndarray, Optional[int]]:
    """Replace the key snapshot with the physical key state.

    Returns:
        The new snapshot and the lowest-indexed key that went from released
        to pressed, or None if no key did.
    """
    current = jnp.asarray(physical, dtype=jnp.bool_)
    if current.shape != (NUM_KEYS,):
        raise ValueError(f"Expected {NUM_KEYS} key states, got shape {current.shape}")

    newly_pressed = current & ~snapshot
    key = int(jnp.argmax(newly_pressed)) if bool(jnp.any(newly_pressed)) else None
    return current, key
