"""Turning the display buffer into pictures: RGB frames, screenshots, video."""

import jax.numpy as jnp
import numpy as np
from typing import Tuple
import cv2

from PIL import Image

from chip8vm.constants import SCREEN_WIDTH, SCREEN_HEIGHT

Color = Tuple[int, int, int]

# name -> (on color, off color)
COLOR_SCHEMES = {
    "mvemu": ((0x4B, 0x69, 0x33), (0x2A, 0x47, 0x33)),
    "violet": ((179, 102, 184), (45, 25, 61)),
    "classic": ((0, 255, 0), (0, 0, 0)),
    "amber": ((255, 176, 0), (0, 0, 0)),
    "white": ((255, 255, 255), (0, 0, 0)),
    "blue": ((0, 255, 255), (0, 0, 64)),
    "retro": ((255, 255, 0), (64, 0, 64)),
}


def _upscale(image: np.ndarray, scale: int) -> np.ndarray:
    """Nearest neighbor upscaling of an (H, W, C) image."""
    if scale > 1:
        image = image.repeat(scale, axis=0).repeat(scale, axis=1)
    return image


def _blend(intensity: np.ndarray, on_color, off_color) -> np.ndarray:
    """Mix off and on colors by a (H, W) intensity in [0, 1]."""
    on_color = np.asarray(on_color, dtype=np.float32)
    off_color = np.asarray(off_color, dtype=np.float32)
    return (off_color + intensity[..., None] * (on_color - off_color)).astype(np.uint8)


def chip8_display_to_rgb(
    display: jnp.ndarray,
    scale: int = 8,
    on_color: Color = (0, 255, 0),
    off_color: Color = (0, 0, 0),
) -> np.ndarray:
    """Convert the (64, 32) boolean display to an RGB image.

    Args:
        display: Display buffer indexed [x, y]
        scale: Upscaling factor
        on_color: RGB color of lit pixels
        off_color: RGB color of dark pixels

    Returns:
        uint8 array of shape (32 * scale, 64 * scale, 3)
    """
    # [x, y] -> [row, column]
    pixels = np.asarray(display, dtype=np.bool_).T
    rgb = np.where(
        pixels[..., None],
        np.asarray(on_color, dtype=np.uint8),
        np.asarray(off_color, dtype=np.uint8),
    )
    return _upscale(rgb, scale)


def create_color_scheme(scheme: str = "mvemu") -> Tuple[Color, Color]:
    """Look up the (on_color, off_color) pair of a named palette."""
    if scheme not in COLOR_SCHEMES:
        raise ValueError(
            f"Unknown color scheme '{scheme}'. Available: {list(COLOR_SCHEMES.keys())}"
        )
    return COLOR_SCHEMES[scheme]


def save_screenshot(
    display: jnp.ndarray,
    filename: str,
    scale: int = 8,
    color_scheme: str = "mvemu",
) -> None:
    """Save one display frame as an image (format chosen from the extension)."""
    on_color, off_color = create_color_scheme(color_scheme)
    Image.fromarray(chip8_display_to_rgb(display, scale, on_color, off_color)).save(filename)


def create_video(
        frames: jnp.ndarray,
        filename: str,
        fps: float = 60.0,
        scale: int = 8,
        color_scheme: str = "mvemu",
        persistence: bool = True,
        decay: float = 0.8,
) -> int:
    """Write presented frames to an MP4 file.

    With ``persistence`` lit pixels fade out over a few frames instead of
    switching off at once, which hides the flicker of XOR-drawn sprites.

    Args:
        frames: Display frames with shape (N, 64, 32)
        filename: Output MP4 file
        fps: Video frame rate
        scale: Upscaling factor
        color_scheme: Palette name
        persistence: Enable phosphor fading
        decay: Fraction of glow kept from one frame to the next

    Returns:
        Number of frames written
    """
    displays = np.asarray(frames)
    if displays.ndim != 3 or displays.shape[1:] != (SCREEN_WIDTH, SCREEN_HEIGHT):
        raise ValueError(f"Expected display shape (N, 64, 32), got {displays.shape}")

    on_color, off_color = create_color_scheme(color_scheme)
    size = (SCREEN_WIDTH * scale, SCREEN_HEIGHT * scale)
    writer = cv2.VideoWriter(filename, cv2.VideoWriter_fourcc(*'mp4v'), fps, size)

    glow = np.zeros((SCREEN_HEIGHT, SCREEN_WIDTH), dtype=np.float32)
    try:
        for display in displays:
            lit = display.T.astype(np.float32)
            glow = np.clip(glow * decay + lit, 0.0, 1.0) if persistence else lit
            frame = _upscale(_blend(glow, on_color, off_color), scale)
            writer.write(cv2.cvtColor(frame, cv2.COLOR_RGB2BGR))
    finally:
        writer.release()

    return len(displays)
