"""CHIP-8 miscellaneous instructions (Fxxx).

The delay and sound counters are not registers: FX07, FX15 and FX18 read and
arm the delay and sound clocks. Timer failures are logged and the timer
effect is skipped; they never stop the machine.
"""

import jax.numpy as jnp

from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.devices import Devices
from chip8vm.constants import ADDRESS_MASK, FONT_SPRITE_SIZE
from chip8vm.errors import TimerError, UnknownOpcodeError
from chip8vm.keypad import refresh
from chip8vm.memory import get_register, read_bytes, set_flag, set_index, set_pc, set_register, write_bytes


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    try:
        ticks = devices.delay_timer.remaining_ticks()
    except TimerError as error:
        devices.logger.error(f"unable to query delay timer ({error})")
        ticks = 0
    return set_register(state, instruction.x, ticks)


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """FX0A - Wait for key press.

    Does not block: without a newly pressed key the PC is rewound so the
    instruction runs again on the next cycle.
    """
    keypad, key = refresh(state.keypad, devices.keys.pressed())
    state = state.replace(keypad=keypad)
    if key is None:
        return set_pc(state, int(state.pc) - 2)
    return set_register(state, instruction.x, key)


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    try:
        devices.delay_timer.arm_ticks(get_register(state, instruction.x))
    except TimerError as error:
        devices.logger.error(f"unable to arm delay timer ({error})")
    return state


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """FX18 - Set sound timer to VX and start the buzzer."""
    ticks = get_register(state, instruction.x)
    try:
        devices.sound_timer.arm_ticks(ticks)
    except TimerError as error:
        devices.logger.error(f"unable to arm sound timer ({error})")
        return state

    # zero disarms the sound clock, so nothing would stop the tone later
    if ticks:
        devices.audio.start()
    else:
        devices.audio.stop()
    return state


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """FX1E - Add VX to I register, VF = overflow past 0xFFF."""
    new_i = int(state.I) + get_register(state, instruction.x)
    return set_flag(set_index(state, new_i), new_i > ADDRESS_MASK)


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    digit = get_register(state, instruction.x) & 0xF
    return set_index(state, state.font_offset + FONT_SPRITE_SIZE * digit)


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = get_register(state, instruction.x)
    digits = [value // 100, (value // 10) % 10, value % 10]
    return state.replace(memory=write_bytes(state.memory, state.I, digits))


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I, then I += X + 1."""
    count = instruction.x + 1
    new_memory = write_bytes(state.memory, state.I, state.V[:count])
    return set_index(state.replace(memory=new_memory), int(state.I) + count)


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I, then I += X + 1."""
    count = instruction.x + 1
    values = read_bytes(state.memory, state.I, count)
    new_V = state.V.at[:count].set(values.astype(jnp.uint8))
    return set_index(state.replace(V=new_V), int(state.I) + count)


MISC_INSTRUCTIONS = {
    0x07: execute_get_delay_timer,
    0x0A: execute_wait_for_key,
    0x15: execute_set_delay_timer,
    0x18: execute_set_sound_timer,
    0x1E: execute_add_to_index,
    0x29: execute_font_character,
    0x33: execute_bcd_conversion,
    0x55: execute_store_registers,
    0x65: execute_load_registers,
}


def execute_misc_instruction(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """Dispatch misc instructions on the low byte."""
    handler = MISC_INSTRUCTIONS.get(instruction.variant)
    if handler is None:
        raise UnknownOpcodeError(instruction.raw)
    return handler(state, instruction, devices)
