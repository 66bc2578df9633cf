"""CHIP-8 memory and register operations."""

import jax

from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.devices import Devices
from chip8vm.memory import get_register, set_index, set_register


def execute_set(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """6XNN - Set VX = NN."""
    return set_register(state, instruction.x, instruction.nn)


def execute_add(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """7XNN - Add NN to VX, no carry."""
    return set_register(state, instruction.x, get_register(state, instruction.x) + instruction.nn)


def execute_set_index(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """ANNN - Set I = NNN."""
    return set_index(state, instruction.nnn)


def execute_random(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """CXNN - Set VX = random & NN."""
    key, subkey = jax.random.split(state.rng)
    random_value = int(jax.random.randint(subkey, shape=(), minval=0, maxval=256))
    return set_register(state.replace(rng=key), instruction.x, random_value & instruction.nn)
