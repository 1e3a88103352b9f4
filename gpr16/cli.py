"""
gpr16emu — GPR16 CPU Emulator CLI

Usage:
    gpr16emu [program.asm] [-a A] [-b B] [--no-prompt] [--no-trace]
             [--max-steps N] [--dump START[:LEN]] [--verbose] [--log-dir DIR]

Assembles the program into a fresh 64K-word bus, optionally places two
operand words at $0100/$0101, runs the CPU to HALT and reports the cycle
count, R0 and the word at $0102.

Examples:
    gpr16emu                                  # addition.asm, prompts for operands
    gpr16emu addition.asm -a 2 -b 0x3         # no prompts
    gpr16emu loop.asm --no-trace --max-steps 100000 --dump 0x100:8

Exit status: 0 halted, 1 assembly / usage error, 3 step ceiling reached.
"""

import argparse
import logging
import sys
from typing import Optional

from . import __version__
from .assembler import assemble_file
from .bus import Bus
from .config import (
    DEFAULT_LOG_NAME, DEFAULT_PROGRAM, MEMORY_SIZE, OPERAND_A_ADDR,
    OPERAND_B_ADDR, RESULT_ADDR, WORD_MASK,
)
from .emu import GPRCPU
from .log_setup import setup_logging

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_STEP_LIMIT = 3

TRACE_HEADER = (
    "\n  PC  | R0   R1   R2   R3   R4   R5   R6   R7   | Z C N | Instruction\n"
    "------+-----------------------------------------+-------+----------------"
)


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...), $ prefix, or decimal."""
    value = value.strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    if value.startswith("$"):
        return int(value[1:], 16)
    return int(value)


def _parse_dump(value: str):
    start, _, length = value.partition(":")
    return parse_int_arg(start), parse_int_arg(length) if length else 16


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gpr16emu",
        description="16-bit general-purpose-register CPU emulator",
    )
    parser.add_argument("program", nargs="?", default=DEFAULT_PROGRAM,
                        help=f"Assembly source to run (default: {DEFAULT_PROGRAM})")
    parser.add_argument("-a", "--operand-a", default=None,
                        help=f"Operand A written to ${OPERAND_A_ADDR:04X} (decimal or 0x...)")
    parser.add_argument("-b", "--operand-b", default=None,
                        help=f"Operand B written to ${OPERAND_B_ADDR:04X} (decimal or 0x...)")
    parser.add_argument("--no-prompt", action="store_true",
                        help="Never prompt for operands on stdin")
    parser.add_argument("--no-trace", action="store_true",
                        help="Do not print the per-instruction trace")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Stop with exit status 3 after this many steps")
    parser.add_argument("--dump", default=None, type=_parse_dump, metavar="START[:LEN]",
                        help="Hex dump memory after the run (e.g. 0x100:8)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log debug details to stderr")
    parser.add_argument("--log-dir", default=None,
                        help="Also write a timestamped log file into this directory")
    parser.add_argument("--version", action="version",
                        version=f"gpr16emu {__version__}")
    return parser


def _read_operands(args) -> tuple:
    """Return (a_text, b_text) from the command line or, failing that, stdin."""
    a_text, b_text = args.operand_a, args.operand_b
    if args.no_prompt or a_text is not None:
        return a_text, b_text

    print(f"Operand A at 0x{OPERAND_A_ADDR:X} (decimal or 0x...): ", end="", flush=True)
    a_text = sys.stdin.readline().strip() or None
    if a_text is not None and b_text is None:
        print(f"Operand B at 0x{OPERAND_B_ADDR:X} (decimal or 0x...): ", end="", flush=True)
        b_text = sys.stdin.readline().strip() or None
    return a_text, b_text


def _run(cpu: GPRCPU, max_steps: Optional[int]) -> Optional[int]:
    """Drive the core to HALT. Returns the cycle count, or None if the ceiling hit.

    The ceiling bounds runnable cycles, the same count run() reports, so a
    program of exactly max_steps cycles still gets to execute its HALT.
    """
    if max_steps is None:
        return cpu.run()

    cycles = 0
    while cpu.step():
        cycles += 1
        if cycles > max_steps:
            return None
    return cycles


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        DEFAULT_LOG_NAME,
        console_level=logging.DEBUG if args.verbose else logging.WARNING,
        log_dir=args.log_dir,
    )

    bus = Bus(MEMORY_SIZE)
    cpu = GPRCPU(bus)

    result = assemble_file(args.program, bus.memory, bus.capacity)
    if not result.ok:
        print(f"Assembly error at line {result.error_line}: {result.error_message}",
              file=sys.stderr)
        return EXIT_ERROR

    try:
        a_text, b_text = _read_operands(args)
        if a_text is not None:
            bus.write(OPERAND_A_ADDR, parse_int_arg(a_text) & WORD_MASK)
        if b_text is not None:
            bus.write(OPERAND_B_ADDR, parse_int_arg(b_text) & WORD_MASK)
    except ValueError as e:
        print(f"Error: bad operand value: {e}", file=sys.stderr)
        return EXIT_ERROR

    if not args.no_trace:
        cpu.enable_trace(True, sink=print)

    print("\n=== 16-bit GPR CPU Emulator ===")
    print(f"Program: {args.program}")
    if not args.no_trace:
        print(TRACE_HEADER)

    cycles = _run(cpu, args.max_steps)
    if cycles is None:
        log.warning("step limit of %d reached without HALT", args.max_steps)
        print(f"\n--- STEP LIMIT ({args.max_steps}) REACHED, PC=0x{cpu.regs.PC:04X} ---")
        return EXIT_STEP_LIMIT

    r0 = cpu.regs.R[0]
    value = bus.read(RESULT_ADDR)
    print("\n--- HALTED ---")
    print(f"Total cycles: {cycles}")
    print(f"R0: {r0} (0x{r0:04X})")
    print(f"Result at 0x{RESULT_ADDR:X}: {value} (0x{value:04X})")

    if args.dump:
        start, length = args.dump
        print()
        print(bus.hexdump(start, length))

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
