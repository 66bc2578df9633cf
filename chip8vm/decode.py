"""Instruction word decoding.

Every CHIP-8 instruction is one big-endian 16-bit word. The top nibble selects
the instruction class; the other fields are overlapping views of the low
12 bits and each handler reads the ones it needs.
"""

from chex import dataclass

# Classes whose operation is selected by the low nibble, or by the low byte
NIBBLE_SELECTED = frozenset({0x5, 0x8, 0x9})
BYTE_SELECTED = frozenset({0xE, 0xF})


@dataclass(frozen=True)
class DecodedInstruction:
    raw: int
    opcode: int  # instruction class, bits 12-15
    x: int       # register, bits 8-11
    y: int       # register, bits 4-7
    n: int       # bits 0-3
    nn: int      # bits 0-7
    nnn: int     # address, bits 0-11

    @property
    def variant(self) -> int:
        """Operand field selecting the operation within the class."""
        if self.opcode in NIBBLE_SELECTED:
            return self.n
        if self.opcode in BYTE_SELECTED:
            return self.nn
        if self.opcode == 0x0:
            return self.nnn
        return 0


def decode(instruction: int) -> DecodedInstruction:
    word = int(instruction) & 0xFFFF
    return DecodedInstruction(
        raw=word,
        opcode=word >> 12,
        x=(word >> 8) & 0xF,
        y=(word >> 4) & 0xF,
        n=word & 0xF,
        nn=word & 0xFF,
        nnn=word & 0xFFF,
    )
