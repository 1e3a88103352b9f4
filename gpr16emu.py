#!/usr/bin/env python3
"""
gpr16emu — run a GPR16 assembly program.

    python gpr16emu.py [program.asm] [options]

See gpr16/cli.py (or --help) for the options.
"""

import os
import sys

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from gpr16.cli import main

if __name__ == "__main__":
    sys.exit(main())
