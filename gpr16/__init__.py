"""
GPR16 — 16-bit General-Purpose-Register CPU Emulator
====================================================
A minimal word-addressed CPU: eight 16-bit registers, a 16-bit PC, Z/C/N
flags and one-word instructions, plus the assembler and CLI that drive it.

Architecture:
    ┌──────────┐    ┌───────────┐    ┌──────────┐    ┌──────────────────┐
    │ .asm     │───>│ Assembler │───>│   Bus    │<──>│ GPRCPU           │
    │ source   │    │ (2-pass)  │    │ (64K x16)│    │ fetch/decode/exec│
    └──────────┘    └───────────┘    └──────────┘    └──────────────────┘

    - bus.py:           bounds-checked word memory
    - cpu/regs.py:      register file + flag bits
    - cpu/decoder.py:   bit-field decode/encode, opcode table
    - cpu/alu.py:       16-bit ALU returning (result, flags)
    - emu.py:           step / run / reset / trace
    - assembler.py:     two-pass label resolver writing into a memory image
    - cli.py:           gpr16emu command-line driver
"""

__version__ = "0.1.0"

from .bus import Bus
from .emu import GPRCPU
from .cpu.regs import Registers, FLAG_ZERO, FLAG_CARRY, FLAG_NEGATIVE
from .cpu.decoder import Opcode, decode, encode, disassemble
from .assembler import Assembler, AssemblerError, AssembleResult, assemble, assemble_file
