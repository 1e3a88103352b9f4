"""
GPR16 Emulator — CPU Register Set + Flag Management

Register model:
  R0-R7  — eight 16-bit general purpose registers
  PC     — 16-bit program counter (word address of the next instruction)
  FLAGS  — condition bits: . . . . . N C Z
           bit 2: N (Negative — bit 15 of result)
           bit 1: C (Carry — carry out on ADD/SHL/SHR, "no borrow" on SUB)
           bit 0: Z (Zero — result is zero)
  halted — set by HALT, cleared only by reset()
"""

from ..config import NUM_REGISTERS, WORD_MASK

# Flag bit masks
FLAG_ZERO = 0x01
FLAG_CARRY = 0x02
FLAG_NEGATIVE = 0x04

FLAG_MASK = FLAG_ZERO | FLAG_CARRY | FLAG_NEGATIVE


class Registers:
    """GPR16 CPU register set, owned exclusively by the CPU core."""

    __slots__ = ('R', 'PC', 'FLAGS', 'halted')

    def __init__(self):
        self.R: list = [0] * NUM_REGISTERS
        self.PC: int = 0
        self.FLAGS: int = 0
        self.halted: bool = False

    # --- Flag access ---

    def set_flags(self, flags: int):
        """Replace Z, C and N with `flags`. Nothing accumulates across calls."""
        self.FLAGS = (self.FLAGS & ~FLAG_MASK) | (flags & FLAG_MASK)

    @property
    def zero(self) -> bool:
        return bool(self.FLAGS & FLAG_ZERO)

    @property
    def carry(self) -> bool:
        return bool(self.FLAGS & FLAG_CARRY)

    @property
    def negative(self) -> bool:
        return bool(self.FLAGS & FLAG_NEGATIVE)

    # --- Register file ---

    def get(self, index: int) -> int:
        return self.R[index & 0x7]

    def put(self, index: int, value: int):
        self.R[index & 0x7] = value & WORD_MASK

    # --- Display ---

    def display(self) -> str:
        """Format register state for the trace."""
        regs = ' '.join(f"R{i}={v:04X}" for i, v in enumerate(self.R))
        return (f"PC={self.PC:04X} {regs} "
                f"Z={int(self.zero)} C={int(self.carry)} N={int(self.negative)}")

    def reset(self):
        """Reset CPU to power-on state."""
        self.R = [0] * NUM_REGISTERS
        self.PC = 0
        self.FLAGS = 0
        self.halted = False
