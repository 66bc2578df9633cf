"""Main CHIP-8 emulator execution engine."""

from typing import Optional, Union

from chip8vm.state import EmulatorState
from chip8vm.decode import decode
from chip8vm.devices import Devices
from chip8vm.constants import MEMORY_SIZE, PROGRAM_START
from chip8vm.errors import InvalidProgramCounterError, RomError, RomTooLargeError, UnknownOpcodeError
from chip8vm.memory import write_bytes
from chip8vm.instructions.system import execute_system_instruction
from chip8vm.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset, execute_skip_if_key
)
from chip8vm.instructions.alu import execute_alu_operation
from chip8vm.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chip8vm.instructions.display import execute_display
from chip8vm.instructions.misc import execute_misc_instruction

# Indexed by the first nibble of the instruction
INSTRUCTION_CLASSES = [
    execute_system_instruction,
    execute_jump,
    execute_call,
    execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate,
    execute_skip_if_equal_register,
    execute_set,
    execute_add,
    execute_alu_operation,
    execute_skip_if_not_equal_register,
    execute_set_index,
    execute_jump_with_offset,
    execute_random,
    execute_display,
    execute_skip_if_key,
    execute_misc_instruction,
]


def execute(state: EmulatorState, instruction: int, devices: Optional[Devices] = None) -> EmulatorState:
    """Execute single CHIP-8 instruction.

    Without ``devices`` the instruction runs against headless devices with
    fresh timers, which is enough for anything but timer readback.

    Raises:
        ExecutionError: unknown opcode, call stack or memory violation. The
            input state is left untouched.
    """
    if devices is None:
        devices = Devices.headless()
    decoded_instruction = decode(instruction)
    return INSTRUCTION_CLASSES[decoded_instruction.opcode](state, decoded_instruction, devices)


def fetch(state: EmulatorState) -> tuple[EmulatorState, int]:
    """Fetch the big-endian instruction at PC and advance PC by 2."""
    pc = int(state.pc)
    if pc % 2 or pc + 1 >= MEMORY_SIZE:
        raise InvalidProgramCounterError(pc)
    instruction = (int(state.memory[pc]) << 8) | int(state.memory[pc + 1])
    return state.replace(pc=state.pc + 2), instruction


def step(state: EmulatorState, devices: Optional[Devices] = None) -> EmulatorState:
    """Run one fetch-decode-execute cycle."""
    address = int(state.pc)
    state, instruction = fetch(state)
    try:
        return execute(state, instruction, devices)
    except UnknownOpcodeError as error:
        raise UnknownOpcodeError(error.opcode, address) from None


def read_rom(filename: str) -> bytes:
    """Read a raw ROM image from disk."""
    try:
        with open(filename, 'rb') as f:
            return f.read()
    except OSError as error:
        raise RomError(f"unable to open ROM {filename!r} ({error.strerror or error})") from error


def load_rom(state: EmulatorState, rom: Union[bytes, str], offset: int = PROGRAM_START) -> EmulatorState:
    """Copy ROM bytes (or the ROM file at ``rom``) into memory at ``offset``."""
    rom_data = read_rom(rom) if isinstance(rom, str) else bytes(rom)
    if offset + len(rom_data) > MEMORY_SIZE:
        raise RomTooLargeError(len(rom_data), offset, MEMORY_SIZE)
    if not rom_data:
        return state
    return state.replace(memory=write_bytes(state.memory, offset, rom_data))
