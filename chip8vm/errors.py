"""Exceptions raised by the CHIP-8 virtual machine.

Initialization errors (``ConfigError``, ``RomError``) and execution errors
(``ExecutionError`` subclasses) are fatal: the VM stops and the error reaches
the caller. ``TimerError`` is advisory and is handled by the instructions that
touch the delay and sound clocks.
"""


class Chip8Error(Exception):
    """Base class for all emulator errors."""


class ConfigError(Chip8Error):
    """Invalid emulator configuration."""


class RomError(Chip8Error):
    """ROM could not be read or loaded."""


class RomTooLargeError(RomError):
    """ROM does not fit in memory at the configured offset."""

    def __init__(self, size: int, offset: int, capacity: int):
        super().__init__(
            f"ROM is too large: {size} bytes at offset 0x{offset:03X} "
            f"exceeds {capacity} bytes of memory"
        )
        self.size = size
        self.offset = offset


class ExecutionError(Chip8Error):
    """Fatal error while executing an instruction."""


class UnknownOpcodeError(ExecutionError):
    def __init__(self, opcode: int, address: int = None):
        location = f" at 0x{address:03X}" if address is not None else ""
        super().__init__(f"unknown instruction {opcode:04X}{location}")
        self.opcode = opcode
        self.address = address


class StackOverflowError(ExecutionError):
    """Subroutine call with a full call stack."""


class StackUnderflowError(ExecutionError):
    """Return with an empty call stack."""


class MemoryAccessError(ExecutionError):
    def __init__(self, address: int, length: int, size: int):
        super().__init__(
            f"memory access out of bounds: {length} byte(s) at 0x{address:03X} "
            f"(memory size {size})"
        )
        self.address = address
        self.length = length


class InvalidProgramCounterError(ExecutionError):
    def __init__(self, pc: int):
        super().__init__(f"invalid program counter 0x{pc:04X}")
        self.pc = pc


class TimerError(Chip8Error):
    """Timer could not be queried or armed."""


class DeviceError(Chip8Error):
    """Display or audio backend could not be initialized."""
