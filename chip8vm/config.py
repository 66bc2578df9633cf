"""Emulator configuration.

``Chip8Config`` is the structured schema; ``load_config`` merges it with an
optional YAML file, explicit values (from the command line) and ``key=value``
overrides using OmegaConf, then validates the result.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from chip8vm.constants import FONT_DATA, FONT_START, MEMORY_SIZE, NS_PER_SECOND, PROGRAM_START
from chip8vm.errors import ConfigError
from chip8vm.rendering import COLOR_SCHEMES


@dataclass(frozen=True)
class Chip8Config:
    """Settings fixed for the lifetime of one virtual machine."""
    rom_path: Optional[str] = None
    rom_offset: int = PROGRAM_START     # ROM load address and entry point
    font_offset: int = FONT_START       # font sprite table address
    scale: int = 10                     # window scale factor
    frequency: int = 200                # instructions per second
    refresh_interval: int = 20          # cycles between screen refreshes
    legacy_shift: bool = True           # 8XY6/8XYE shift VY into VX
    lazy_render: bool = False           # refresh only on 00E0 and DXYN
    audio_device: Optional[str] = None
    tone_frequency: float = 440.0
    color_scheme: str = "mvemu"
    seed: Optional[int] = None
    max_cycles: Optional[int] = None
    log_level: str = "INFO"

    def validate(self) -> "Chip8Config":
        """Check value ranges; return self so it can be chained."""
        if self.scale <= 0:
            raise ConfigError("Scale factor 0 not allowed")
        if self.frequency <= 0:
            raise ConfigError("CPU frequency 0 not allowed")
        if NS_PER_SECOND // self.frequency == 0:
            raise ConfigError(f"CPU frequency {self.frequency} Hz exceeds clock resolution")
        if self.refresh_interval <= 0:
            raise ConfigError("Screen refresh interval 0 not allowed")
        if not 0 <= self.rom_offset < MEMORY_SIZE:
            raise ConfigError(f"ROM offset 0x{self.rom_offset:X} outside memory")
        if not 0 <= self.font_offset <= MEMORY_SIZE - len(FONT_DATA):
            raise ConfigError(f"font table does not fit at offset 0x{self.font_offset:X}")
        if self.tone_frequency <= 0:
            raise ConfigError("Tone frequency must be positive")
        if self.max_cycles is not None and self.max_cycles <= 0:
            raise ConfigError("Cycle limit must be positive")
        if self.color_scheme not in COLOR_SCHEMES:
            raise ConfigError(
                f"Unknown color scheme '{self.color_scheme}'. Available: {list(COLOR_SCHEMES)}"
            )
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Unknown log level '{self.log_level}'")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def load_config(
    config_file: Optional[str] = None,
    overrides: Iterable[str] = (),
    **values,
) -> Chip8Config:
    """Build a validated configuration.

    Later sources win: schema defaults, then ``config_file``, then ``values``
    (``None`` entries are ignored), then ``overrides`` in ``key=value`` form.
    """
    schema = OmegaConf.structured(Chip8Config)
    OmegaConf.set_readonly(schema, False)
    sources = [schema]

    try:
        if config_file is not None:
            sources.append(OmegaConf.load(config_file))
        explicit = {key: value for key, value in values.items() if value is not None}
        if explicit:
            sources.append(OmegaConf.create(explicit))
        overrides = list(overrides)
        if overrides:
            sources.append(OmegaConf.from_dotlist(overrides))
        config = OmegaConf.to_object(OmegaConf.merge(*sources))
    except OSError as error:
        raise ConfigError(f"unable to read config file {config_file!r} ({error})") from error
    except OmegaConfBaseException as error:
        raise ConfigError(str(error)) from error

    return config.validate()
