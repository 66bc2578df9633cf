"""Memory block and register file access.

All register writes go through these helpers so that V registers wrap to
8 bits and the address register and program counter stay within 12 bits.
"""

from typing import Sequence, Union

import jax.numpy as jnp

from chip8vm.constants import ADDRESS_MASK, FLAG_REGISTER
from chip8vm.errors import MemoryAccessError


def _check_range(memory: jnp.ndarray, address: int, length: int) -> None:
    size = memory.shape[0]
    if address < 0 or length < 0 or address + length > size:
        raise MemoryAccessError(address, length, size)


def read_bytes(memory: jnp.ndarray, address: int, length: int) -> jnp.ndarray:
    """Read ``length`` bytes starting at ``address``."""
    address, length = int(address), int(length)
    _check_range(memory, address, length)
    return memory[address:address + length]


def write_bytes(
    memory: jnp.ndarray, address: int, data: Union[bytes, Sequence[int], jnp.ndarray]
) -> jnp.ndarray:
    """Return a copy of ``memory`` with ``data`` written at ``address``."""
    if isinstance(data, (bytes, bytearray)):
        data = list(data)
    values = jnp.asarray(data, dtype=jnp.uint8)
    address = int(address)
    _check_range(memory, address, values.shape[0])
    return memory.at[address:address + values.shape[0]].set(values)


def get_register(state, x: int) -> int:
    return int(state.V[x])


def set_register(state, x: int, value: int):
    """Vx := value mod 256."""
    return state.replace(V=state.V.at[x].set(int(value) & 0xFF))


def set_flag(state, value: int):
    """Write the carry/borrow/collision flag into VF."""
    return set_register(state, FLAG_REGISTER, 1 if value else 0)


def set_registers(state, x: int, value: int, flag: int):
    """Write Vx then VF; when x is VF the flag wins."""
    return set_flag(set_register(state, x, value), flag)


def set_index(state, value: int):
    return state.replace(I=jnp.asarray(int(value) & ADDRESS_MASK, dtype=jnp.uint16))


def set_pc(state, value: int):
    return state.replace(pc=jnp.asarray(int(value) & ADDRESS_MASK, dtype=jnp.uint16))
