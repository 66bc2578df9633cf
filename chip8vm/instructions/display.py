"""CHIP-8 display operations."""

from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.devices import Devices
from chip8vm.constants import SCREEN_WIDTH, SCREEN_HEIGHT
from chip8vm.display import sprite_blit
from chip8vm.memory import read_bytes, set_flag


def execute_display(state: EmulatorState, instruction: DecodedInstruction, devices: Devices) -> EmulatorState:
    """DXYN - Draw sprite at (VX, VY) with height N."""
    sprite_x = int(state.V[instruction.x]) % SCREEN_WIDTH
    sprite_y = int(state.V[instruction.y]) % SCREEN_HEIGHT
    sprite = read_bytes(state.memory, state.I, instruction.n)

    display, collision = sprite_blit(state.display, sprite_x, sprite_y, sprite)
    state = set_flag(state.replace(display=display), collision)

    if state.lazy_render:
        devices.screen.present(state.display)
    return state
