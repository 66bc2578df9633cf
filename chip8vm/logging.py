"""Console logging utilities for the CHIP-8 virtual machine.

Diagnostics (unknown opcodes, timer failures, CPU clock reentrancy) go
through ``ConsoleLogger``. ``EmulatorLogger`` adds startup/shutdown summaries
and a tqdm progress bar for bounded headless runs.
"""

import time
import sys
from typing import Any, Callable, Dict, Optional, Tuple

from tqdm import tqdm

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"


class ConsoleLogger:
    """Leveled console logger, one line per message.

    Lines look like ``[   12.34s][    INFO][chip8vm] message``. Levels are
    colored only when the output stream is a terminal.
    """

    def __init__(
        self,
        name: str = "chip8vm",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
        stream=None,
    ):
        level = log_level.upper()
        if level not in LEVELS:
            raise ValueError(
                f"Unknown log level '{log_level}'. Available: {list(LEVELS)}"
            )
        self.name = name
        self.log_level = level
        self.stream = stream
        out = self._output()
        self.use_colors = use_colors and hasattr(out, "isatty") and out.isatty()
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

    def _output(self):
        # resolved on every write so redirected stdout is honored
        return self.stream if self.stream is not None else sys.stdout

    def _should_log(self, level: str) -> bool:
        return LEVELS.index(level) >= LEVELS.index(self.log_level)

    def _format_message(self, level: str, message: str) -> str:
        timestamp = (
            f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        )
        level_str = f"[{level:>8s}]"
        if self.use_colors:
            level_str = f"{COLORS[level]}{level_str}{RESET}"
        return f"{timestamp}{level_str}[{self.name}] {message}"

    def log(self, level: str, message: str):
        """Log a message at the specified level."""
        level = level.upper()
        if self._should_log(level):
            print(self._format_message(level, message), file=self._output(), flush=True)

    def debug(self, message: str):
        self.log("DEBUG", message)

    def info(self, message: str):
        self.log("INFO", message)

    def warning(self, message: str):
        self.log("WARNING", message)

    def error(self, message: str):
        self.log("ERROR", message)

    def critical(self, message: str):
        self.log("CRITICAL", message)


class EmulatorLogger(ConsoleLogger):
    """Logger for a VM session: configuration banner and run summary."""

    def log_startup(self, config: Dict[str, Any]):
        """Log the effective configuration before the CPU clock starts."""
        self.info("=" * 60)
        self.info("Starting CHIP-8 virtual machine with configuration:")
        for key, value in config.items():
            if key.endswith("offset") and isinstance(value, int):
                self.info(f"  {key}: 0x{value:03X}")
            else:
                self.info(f"  {key}: {value}")
        self.info("=" * 60)

    def log_shutdown(self, stats: Dict[str, Any]):
        """Log cycle statistics after the main loop exits."""
        elapsed = time.time() - self.start_time
        self.info("=" * 60)
        self.info(f"Stopped after {elapsed:.1f}s")
        for key, value in stats.items():
            if isinstance(value, float):
                self.info(f"  {key}: {value:.1f}")
            else:
                self.info(f"  {key}: {value}")
        self.info("=" * 60)


def build_tqdm_progress_bar(
    n: int,
    desc: Optional[str] = None,
    **kwargs,
) -> Tuple[Callable[[int], None], Callable[[], None]]:
    """Build a tqdm progress bar counting executed cycles.

    Returns:
        ``update(cycles)`` and ``close()`` callables.
    """
    if desc is None:
        desc = f"Running ({n:,} cycles)"

    for kwarg in ("total", "unit"):
        kwargs.pop(kwarg, None)

    bar = tqdm(total=n, desc=desc, unit="cycle", **kwargs)

    def _update(cycles: int = 1):
        bar.update(int(cycles))

    def _close():
        bar.close()

    return _update, _close
