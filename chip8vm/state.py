"""CHIP-8 emulator state structures."""

import jax
import jax.numpy as jnp
from flax.struct import dataclass, PyTreeNode, field

from chip8vm.constants import (
    PROGRAM_START, FONT_START, FONT_DATA, STACK_SIZE, MEMORY_SIZE, NUM_REGISTERS, NUM_KEYS,
)
from chip8vm.display import create_display
from chip8vm.memory import write_bytes


@dataclass(frozen=True)
class StackState:
    """Stack state for subroutine calls."""
    data: jnp.ndarray = field(default_factory=lambda: jnp.zeros(STACK_SIZE, dtype=jnp.uint16))
    pointer: int = 0


class EmulatorState(PyTreeNode):
    """Registers, memory, call stack, display and key snapshot of one machine.

    Delay and sound counters are not stored here: they are read from and
    written to the timer subsystem. ``legacy_shift``, ``lazy_render`` and
    ``font_offset`` are fixed when the state is created.
    """
    rng: jax.random.PRNGKey
    memory: jnp.ndarray = field(default_factory=lambda: jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8))
    pc: jnp.ndarray = field(default_factory=lambda: jnp.asarray(PROGRAM_START, dtype=jnp.uint16))
    display: jnp.ndarray = field(default_factory=create_display)
    stack: StackState = field(default_factory=StackState)
    keypad: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_KEYS, dtype=jnp.bool_))
    V: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8))
    I: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    legacy_shift: bool = field(pytree_node=False, default=True)
    lazy_render: bool = field(pytree_node=False, default=False)
    font_offset: int = field(pytree_node=False, default=FONT_START)


def create_state(
    rng: jax.random.PRNGKey = jax.random.PRNGKey(0),
    pc: int = PROGRAM_START,
    font_offset: int = FONT_START,
    legacy_shift: bool = True,
    lazy_render: bool = False,
) -> EmulatorState:
    """Create initial emulator state with zeroed memory and font data loaded."""
    state = EmulatorState(
        rng,
        pc=jnp.asarray(pc, dtype=jnp.uint16),
        legacy_shift=legacy_shift,
        lazy_render=lazy_render,
        font_offset=font_offset,
    )
    return state.replace(memory=write_bytes(state.memory, font_offset, FONT_DATA))
