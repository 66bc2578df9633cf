"""CHIP-8 virtual machine package."""

from chip8vm.state import EmulatorState, StackState, create_state
from chip8vm.emulator import execute, fetch, step, load_rom, read_rom
from chip8vm.decode import DecodedInstruction, decode
from chip8vm.devices import Devices
from chip8vm.config import Chip8Config, load_config
from chip8vm.scheduler import Scheduler, VirtualClock, MonotonicClock
from chip8vm.vm import Chip8VM
from chip8vm.errors import *
from chip8vm.constants import *
from chip8vm.rendering import chip8_display_to_rgb, create_color_scheme

__version__ = "0.1.0"

__all__ = [
    "EmulatorState",
    "StackState",
    "create_state",
    "fetch",
    "execute",
    "step",
    "load_rom",
    "read_rom",
    "DecodedInstruction",
    "decode",
    "Devices",
    "Chip8Config",
    "load_config",
    "Scheduler",
    "VirtualClock",
    "MonotonicClock",
    "Chip8VM",
    "Chip8Error",
    "ExecutionError",
    "UnknownOpcodeError",
    "PROGRAM_START",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "chip8_display_to_rgb",
    "create_color_scheme",
]
