"""Logical 64x32 monochrome display buffer.

The buffer is a boolean array indexed ``[x, y]``. It never redraws itself;
presentation sinks read it when the machine asks them to present.
"""

import jax.numpy as jnp

from chip8vm.constants import SCREEN_WIDTH, SCREEN_HEIGHT

_COLUMNS = jnp.arange(8)


def create_display() -> jnp.ndarray:
    return jnp.zeros((SCREEN_WIDTH, SCREEN_HEIGHT), dtype=jnp.bool_)


def clear(display: jnp.ndarray) -> jnp.ndarray:
    """Turn every pixel off."""
    return jnp.zeros_like(display)


def sprite_blit(display: jnp.ndarray, x: int, y: int, sprite) -> tuple[jnp.ndarray, bool]:
    """XOR an 8-pixel-wide sprite onto the display at (x, y).

    Each sprite byte is one row, most significant bit leftmost. Coordinates
    wrap around both edges of the screen.

    Returns:
        The new display and whether any pixel was switched from on to off.
    """
    rows = jnp.asarray(sprite, dtype=jnp.uint8).astype(jnp.int32)
    if rows.shape[0] == 0:
        return display, False

    bits = ((rows[:, None] >> (7 - _COLUMNS[None, :])) & 1).astype(jnp.bool_)
    xs = jnp.broadcast_to((x + _COLUMNS[None, :]) % SCREEN_WIDTH, bits.shape)
    ys = jnp.broadcast_to((y + jnp.arange(rows.shape[0])[:, None]) % SCREEN_HEIGHT, bits.shape)

    old = display[xs, ys]
    collision = bool(jnp.any(old & bits))
    return display.at[xs, ys].set(old ^ bits), collision


def pixel(display: jnp.ndarray, x: int, y: int) -> bool:
    """Return whether the pixel at (x, y) is on."""
    return bool(display[x % SCREEN_WIDTH, y % SCREEN_HEIGHT])
