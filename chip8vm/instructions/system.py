"""CHIP-8 system instructions (0x0xxx)."""

from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.devices import Devices
from chip8vm.display import clear
from chip8vm.errors import UnknownOpcodeError
from chip8vm.memory import set_pc
from chip8vm.stack import pop


def execute_clear_screen(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """00E0 - Clear display."""
    state = state.replace(display=clear(state.display))
    if state.lazy_render:
        devices.screen.present(state.display)
    return state


def execute_return(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """00EE - Return from subroutine."""
    stack, address = pop(state.stack)
    return set_pc(state.replace(stack=stack), address)


SYSTEM_INSTRUCTIONS = {
    0x0E0: execute_clear_screen,
    0x0EE: execute_return,
}


def execute_system_instruction(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """Dispatch 0NNN on the full address field; machine-code calls are not supported."""
    handler = SYSTEM_INSTRUCTIONS.get(instruction.variant)
    if handler is None:
        raise UnknownOpcodeError(instruction.raw)
    return handler(state, instruction, devices)
