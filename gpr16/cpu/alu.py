"""
GPR16 Emulator — ALU Operations

Every function takes unsigned 16-bit operands and returns a tuple
(result, flags). `result` is already truncated to 16 bits; `flags` is the
complete Z/C/N set for that instruction and is applied by the caller with
Registers.set_flags(), which clears all three bits first.

Carry conventions:
  add16: C = carry out of bit 15 (unsigned sum > $FFFF)
  sub16: C = NO borrow (a >= b)
  shl16: C = old bit 15
  shr16: C = old bit 0
All other operations leave C clear.
"""

from .regs import FLAG_ZERO, FLAG_CARRY, FLAG_NEGATIVE


def test_nz16(val: int) -> int:
    """Test 16-bit value for N and Z flags only."""
    flags = 0
    if val & 0x8000:
        flags |= FLAG_NEGATIVE
    if not (val & 0xFFFF):
        flags |= FLAG_ZERO
    return flags


def add16(a: int, b: int) -> tuple:
    """Add two 16-bit values. Sets Z, N, C."""
    result = a + b
    flags = test_nz16(result)
    if result > 0xFFFF:
        flags |= FLAG_CARRY
    return (result & 0xFFFF, flags)


def sub16(a: int, b: int) -> tuple:
    """Subtract two 16-bit values. Sets Z, N, C (C=1 means no borrow)."""
    result = (a - b) & 0xFFFF
    flags = test_nz16(result)
    if a >= b:
        flags |= FLAG_CARRY
    return (result, flags)


def and16(a: int, b: int) -> tuple:
    result = a & b & 0xFFFF
    return (result, test_nz16(result))


def or16(a: int, b: int) -> tuple:
    result = (a | b) & 0xFFFF
    return (result, test_nz16(result))


def xor16(a: int, b: int) -> tuple:
    result = (a ^ b) & 0xFFFF
    return (result, test_nz16(result))


def not16(val: int) -> tuple:
    """One's complement."""
    result = ~val & 0xFFFF
    return (result, test_nz16(result))


def shl16(val: int) -> tuple:
    """Shift left one bit, bit 15 goes to C."""
    result = (val << 1) & 0xFFFF
    flags = test_nz16(result)
    if val & 0x8000:
        flags |= FLAG_CARRY
    return (result, flags)


def shr16(val: int) -> tuple:
    """Logical shift right one bit (zero fill), bit 0 goes to C."""
    result = (val & 0xFFFF) >> 1
    flags = test_nz16(result)
    if val & 0x0001:
        flags |= FLAG_CARRY
    return (result, flags)
