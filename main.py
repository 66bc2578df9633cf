"""
Run a CHIP-8 ROM in a window.

    python main.py ROM_FILE [options]

Same options as the ``chip8vm`` command; see ``python main.py --help``.
"""

import sys

from chip8vm.cli import main


if __name__ == "__main__":
    sys.exit(main())
