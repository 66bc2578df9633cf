"""CHIP-8 control flow instructions."""

from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.devices import Devices
from chip8vm.errors import UnknownOpcodeError
from chip8vm.keypad import refresh
from chip8vm.memory import set_pc
from chip8vm.stack import push


def execute_jump(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return set_pc(state, instruction.nnn)


def execute_call(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """2NNN - Call subroutine at NNN."""
    state = state.replace(stack=push(state.stack, state.pc))
    return execute_jump(state, instruction, devices)


def skip_next(state: EmulatorState, condition: bool) -> EmulatorState:
    return set_pc(state, int(state.pc) + 2) if condition else state


def make_skip_instruction(condition_fn):
    """Factory for skip instructions."""
    def skip_instruction(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
        return skip_next(state, bool(condition_fn(state, instruction)))
    return skip_instruction


def make_register_skip_instruction(condition_fn):
    """Factory for 5XY0/9XY0, whose last nibble must be zero."""
    skip_instruction = make_skip_instruction(condition_fn)

    def register_skip_instruction(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
        if instruction.variant != 0:
            raise UnknownOpcodeError(instruction.raw)
        return skip_instruction(state, instruction, devices)
    return register_skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = make_register_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y]
)

execute_skip_if_not_equal_register = make_register_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y]
)


def execute_jump_with_offset(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """BNNN - Jump to address NNN + V0."""
    return set_pc(state, instruction.nnn + int(state.V[0]))


def execute_skip_if_key(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """EX9E/EXA1 - Skip if key pressed/not pressed."""
    if instruction.variant not in (0x9E, 0xA1):
        raise UnknownOpcodeError(instruction.raw)

    keypad, _ = refresh(state.keypad, devices.keys.pressed())
    state = state.replace(keypad=keypad)

    key_pressed = bool(keypad[int(state.V[instruction.x]) & 0xF])
    is_not_instruction = instruction.nn == 0xA1
    return skip_next(state, key_pressed ^ is_not_instruction)
