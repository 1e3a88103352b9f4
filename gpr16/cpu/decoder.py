"""
GPR16 Emulator — Instruction Decoder

Every instruction is exactly one 16-bit word:

   15    12 11   9 8    6 5         0
  +--------+------+------+-----------+
  | opcode |  Rd  |  Rs  |  (unused) |
  +--------+------+------+-----------+
                  |      imm9        |   MOVI only: bits 8-0
                  +------------------+

imm9 overlaps Rs. Only MOVI reads imm9 and MOVI ignores Rs, so the
overlap never matters. Fields are extracted by shift + mask and are never
validated; a 3-bit register field cannot be out of range.
"""

from enum import IntEnum
from typing import NamedTuple, Optional


class Opcode(IntEnum):
    HALT  = 0x0
    MOVI  = 0x1
    MOV   = 0x2
    LOAD  = 0x3
    STORE = 0x4
    ADD   = 0x5
    SUB   = 0x6
    AND   = 0x7
    OR    = 0x8
    XOR   = 0x9
    NOT   = 0xA
    SHL   = 0xB
    SHR   = 0xC
    JMP   = 0xD
    JZ    = 0xE
    NOP   = 0xF


# Operand shapes, shared with the assembler:
#   NONE — no operands          HALT, NOP
#   RI   — Rd, imm9             MOVI
#   RR   — Rd, Rs               MOV, ADD, SUB, AND, OR, XOR, NOT
#   RM   — Rd, (Rs)             LOAD, STORE
#   RD   — Rd                   SHL, SHR
#   RS   — Rs                   JMP, JZ
NONE = 'NONE'
RI = 'RI'
RR = 'RR'
RM = 'RM'
RD = 'RD'
RS = 'RS'

OPERAND_FORMS = {
    Opcode.HALT:  NONE,
    Opcode.MOVI:  RI,
    Opcode.MOV:   RR,
    Opcode.LOAD:  RM,
    Opcode.STORE: RM,
    Opcode.ADD:   RR,
    Opcode.SUB:   RR,
    Opcode.AND:   RR,
    Opcode.OR:    RR,
    Opcode.XOR:   RR,
    Opcode.NOT:   RR,
    Opcode.SHL:   RD,
    Opcode.SHR:   RD,
    Opcode.JMP:   RS,
    Opcode.JZ:    RS,
    Opcode.NOP:   NONE,
}

IMM9_MAX = 0x1FF


class Instruction(NamedTuple):
    opcode: int
    rd: int
    rs: int
    imm9: int


# ──────────────────────────────────────────────
# Field extraction
# ──────────────────────────────────────────────

def decode_opcode(word: int) -> int:
    """Bits 15-12."""
    return (word >> 12) & 0xF


def decode_rd(word: int) -> int:
    """Bits 11-9."""
    return (word >> 9) & 0x7


def decode_rs(word: int) -> int:
    """Bits 8-6."""
    return (word >> 6) & 0x7


def decode_imm9(word: int) -> int:
    """Bits 8-0, zero-extended."""
    return word & 0x1FF


def decode(word: int) -> Instruction:
    return Instruction(decode_opcode(word), decode_rd(word),
                       decode_rs(word), decode_imm9(word))


# ──────────────────────────────────────────────
# Encoding (assembler / tests)
# ──────────────────────────────────────────────

def encode(opcode: int, rd: int = 0, rs: int = 0, imm9: Optional[int] = None) -> int:
    """Build an instruction word. When imm9 is given it replaces the Rs field."""
    word = ((opcode & 0xF) << 12) | ((rd & 0x7) << 9)
    if imm9 is not None:
        return word | (imm9 & 0x1FF)
    return word | ((rs & 0x7) << 6)


def disassemble(word: int) -> str:
    """Render one instruction word as assembly text (used by the trace)."""
    ins = decode(word)
    op = Opcode(ins.opcode)  # all 16 codes are assigned
    form = OPERAND_FORMS[op]
    if form == RI:
        return f"{op.name} R{ins.rd}, ${ins.imm9:03X}"
    if form == RR:
        return f"{op.name} R{ins.rd}, R{ins.rs}"
    if form == RM:
        return f"{op.name} R{ins.rd}, (R{ins.rs})"
    if form == RD:
        return f"{op.name} R{ins.rd}"
    if form == RS:
        return f"{op.name} R{ins.rs}"
    return op.name
