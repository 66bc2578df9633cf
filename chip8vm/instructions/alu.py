"""CHIP-8 ALU operations (8xxx)."""

from typing import Optional

from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.devices import Devices
from chip8vm.errors import UnknownOpcodeError
from chip8vm.memory import get_register, set_register, set_registers


def alu_set(vx: int, vy: int) -> tuple[int, Optional[int]]:
    """8XY0 - Set: VX = VY."""
    return vy, None


def alu_or(vx: int, vy: int) -> tuple[int, Optional[int]]:
    """8XY1 - Binary OR: VX |= VY, VF cleared."""
    return vx | vy, 0


def alu_and(vx: int, vy: int) -> tuple[int, Optional[int]]:
    """8XY2 - Binary AND: VX &= VY, VF cleared."""
    return vx & vy, 0


def alu_xor(vx: int, vy: int) -> tuple[int, Optional[int]]:
    """8XY3 - Logical XOR: VX ^= VY, VF cleared."""
    return vx ^ vy, 0


def alu_add(vx: int, vy: int) -> tuple[int, Optional[int]]:
    """8XY4 - Add: VX += VY, set carry flag."""
    result = vx + vy
    return result & 0xFF, int(result > 0xFF)


def alu_sub_xy(vx: int, vy: int) -> tuple[int, Optional[int]]:
    """8XY5 - Subtract: VX -= VY, VF = NOT borrow."""
    return (vx - vy) & 0xFF, int(vx > vy)


def alu_shift_right(operand: int) -> tuple[int, Optional[int]]:
    """8XY6 - Shift right, VF = shifted out bit."""
    return operand >> 1, operand & 1


def alu_sub_yx(vx: int, vy: int) -> tuple[int, Optional[int]]:
    """8XY7 - Subtract: VX = VY - VX, VF = NOT borrow."""
    return (vy - vx) & 0xFF, int(vy > vx)


def alu_shift_left(operand: int) -> tuple[int, Optional[int]]:
    """8XYE - Shift left, VF = shifted out bit."""
    return (operand << 1) & 0xFF, (operand & 0x80) >> 7


ALU_OPERATIONS = {
    0x0: alu_set,
    0x1: alu_or,
    0x2: alu_and,
    0x3: alu_xor,
    0x4: alu_add,
    0x5: alu_sub_xy,
    0x7: alu_sub_yx,
}

SHIFT_OPERATIONS = {
    0x6: alu_shift_right,
    0xE: alu_shift_left,
}


def execute_alu_operation(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """8XYN - ALU operations dispatcher."""
    vx = get_register(state, instruction.x)
    vy = get_register(state, instruction.y)

    if instruction.variant in ALU_OPERATIONS:
        result, vf = ALU_OPERATIONS[instruction.variant](vx, vy)
    elif instruction.variant in SHIFT_OPERATIONS:
        # Legacy shift reads VY; the later reinterpretation shifts VX in place
        operand = vy if state.legacy_shift else vx
        result, vf = SHIFT_OPERATIONS[instruction.variant](operand)
    else:
        raise UnknownOpcodeError(instruction.raw)

    if vf is None:
        return set_register(state, instruction.x, result)
    return set_registers(state, instruction.x, result, vf)
