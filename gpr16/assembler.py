"""
GPR16 Two-Pass Assembler.

Assembles GPR16 assembly text directly into a word memory image (normally
Bus.memory).

Input:  Assembly text, e.g.
            .ORG 0
            MOVI R6, 0x100       ; R6 = address of operand A
            LOAD R0, (R6)
            HALT
Output: Words written into the caller's memory image

Syntax:
  ; comment               to end of line
  label:                  defines label = current address (may precede an instruction)
  .ORG addr               set the location counter
  .WORD value             emit one data word at the location counter
  .WORD addr value        store value at addr, location counter unchanged
  .EQU name value         define a symbol (also: name .EQU value, name: .EQU value)
  Numbers: 123, 0x7B, $7B, %1111011. Registers: R0-R7.

Instruction forms (one word each):
  HALT | NOP
  MOVI Rd, imm9           0 <= imm9 <= $1FF
  MOV|ADD|SUB|AND|OR|XOR|NOT Rd, Rs
  LOAD|STORE Rd, (Rs)     parentheses optional, spaces inside allowed
  SHL|SHR Rd
  JMP|JZ Rs

How the two-pass algorithm works:
  Pass 1: Scan all lines, assign every label the location counter value.
  Pass 2: Encode instructions and data now that all symbols are known,
          and place each word at its address.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass
from pathlib import Path
import logging
import re

from .config import MEMORY_SIZE
from .cpu.decoder import (
    Opcode, OPERAND_FORMS, IMM9_MAX, NONE, RI, RR, RM, RD, RS, encode,
)

__all__ = ['Assembler', 'AssemblerError', 'AssembleResult', 'assemble', 'assemble_file']

log = logging.getLogger(__name__)


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


@dataclass
class AssembleResult:
    """Outcome of assemble()/assemble_file(). error_line is 1-based, 0 if not line-specific."""
    ok: bool
    error_line: int = 0
    error_message: str = ""


MNEMONICS: Dict[str, Opcode] = {op.name: op for op in Opcode}

_LABEL_RE = re.compile(r'^[A-Za-z_.][A-Za-z0-9_.]*$')
_REG_RE = re.compile(r'^[Rr]([0-7])$')
_PAREN_RE = re.compile(r'\(\s*([^()]*?)\s*\)')


# ──────────────────────────────────────────────
# Line Parser
# ──────────────────────────────────────────────

@dataclass
class AsmLine:
    """Parsed assembly source line."""
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    operands: Tuple[str, ...] = ()
    comment: Optional[str] = None
    line_num: int = 0
    raw: str = ""


def _parse_line(line: str, line_num: int) -> AsmLine:
    """Parse one line of assembly into label, mnemonic, operands, comment."""
    result = AsmLine(line_num=line_num, raw=line)

    text = line
    semi_pos = text.find(';')
    if semi_pos >= 0:
        result.comment = text[semi_pos+1:].strip()
        text = text[:semi_pos]

    text = text.strip()
    if not text:
        return result

    # Label: first token ending with ':'
    head, sep, rest = text.partition(':')
    if sep and _LABEL_RE.match(head.strip()):
        result.label = head.strip()
        text = rest.strip()
        if not text:
            return result

    parts = text.split(None, 1)

    # Colonless form: NAME .EQU value
    if (result.label is None and len(parts) > 1 and _LABEL_RE.match(parts[0])
            and parts[1].split(None, 1)[0].upper() == '.EQU'):
        result.label = parts[0]
        parts = parts[1].split(None, 1)

    result.mnemonic = parts[0].upper()
    if len(parts) > 1:
        operands = _PAREN_RE.sub(r'(\1)', parts[1].strip())
        result.operands = tuple(op for op in re.split(r'[,\s]+', operands) if op)

    return result


# ──────────────────────────────────────────────
# Operand Analysis
# ──────────────────────────────────────────────

def _parse_value(text: str, symbols: Dict[str, int], line_num: int) -> int:
    """Parse a numeric value or symbol reference.
    Supports: $FF (hex), 0xFF, %10101010 (binary), 123 (decimal), -1, SYMBOL
    """
    text = text.strip()
    if text.startswith('#'):
        text = text[1:].strip()

    try:
        if text.startswith('$'):
            return int(text[1:], 16)
        if text.startswith('0x') or text.startswith('0X'):
            return int(text, 16)
        if text.startswith('%'):
            return int(text[1:], 2)
        if text.isdigit() or (text.startswith('-') and text[1:].isdigit()):
            return int(text)
    except ValueError:
        raise AssemblerError(f"Bad number: '{text}'", line_num)

    if text in symbols:
        return symbols[text]

    raise AssemblerError(f"Undefined symbol: '{text}'", line_num)


def _parse_register(text: str, line_num: int) -> int:
    """Parse R0-R7; LOAD/STORE address operands may be written (Rn)."""
    text = text.strip()
    if text.startswith('(') and text.endswith(')'):
        text = text[1:-1].strip()
    m = _REG_RE.match(text)
    if not m:
        raise AssemblerError(f"Bad register: '{text}'", line_num)
    return int(m.group(1))


_FORM_ARITY = {NONE: 0, RI: 2, RR: 2, RM: 2, RD: 1, RS: 1}


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass GPR16 assembler.

    Usage:
        asm = Assembler()
        image = asm.assemble(source_text)   # {address: word}
        print(asm.get_listing())
    """

    def __init__(self, capacity: int = MEMORY_SIZE):
        self.capacity = capacity
        self.symbols: Dict[str, int] = {}     # Label/EQU symbol table: name -> value
        self.pc: int = 0                      # Location counter
        self.image: Dict[int, int] = {}       # Assembled words: address -> word
        self.errors: List[AssemblerError] = []
        self._lines: List[AsmLine] = []
        self._placed: Dict[int, Tuple[int, int]] = {}  # line_num -> (addr, word)

    def assemble(self, source: str) -> Dict[int, int]:
        """Assemble source text into a sparse {address: word} image.

        Raises the first AssemblerError found; every error of the failing
        pass is kept in self.errors.
        """
        self.symbols = {}
        self.image = {}
        self.errors = []
        self._lines = []
        self._placed = {}

        for i, line in enumerate(source.split('\n'), 1):
            self._lines.append(_parse_line(line, i))

        self._run_pass(self._pass1_line)
        if self.errors:
            raise self.errors[0]

        self._run_pass(self._pass2_line)
        if self.errors:
            raise self.errors[0]

        return self.image

    def write_image(self, memory, capacity: Optional[int] = None):
        """Copy the assembled words into a memory image (list/array/Bus.memory)."""
        limit = self.capacity if capacity is None else capacity
        for addr, word in self.image.items():
            if addr < limit:
                memory[addr] = word

    def _run_pass(self, handler):
        self.pc = 0
        for line in self._lines:
            try:
                handler(line)
            except AssemblerError as e:
                if not e.line_text:
                    e.line_text = line.raw
                self.errors.append(e)
            except (ValueError, KeyError) as e:
                self.errors.append(AssemblerError(str(e), line.line_num, line.raw))

    # ── Pass 1: symbols ──

    def _pass1_line(self, line: AsmLine):
        """Register labels/EQUs and advance the location counter."""
        mnem = line.mnemonic

        if line.label:
            if line.label in self.symbols:
                raise AssemblerError(f"Duplicate label: '{line.label}'", line.line_num)
            if _REG_RE.match(line.label):
                raise AssemblerError(f"Label shadows register: '{line.label}'", line.line_num)
            if mnem == '.EQU':
                self._require(line, 1)
                self.symbols[line.label] = _parse_value(line.operands[0], self.symbols, line.line_num)
                return
            self.symbols[line.label] = self.pc

        if mnem is None:
            return

        if mnem == '.ORG':
            self._require(line, 1)
            self.pc = self._check_addr(
                _parse_value(line.operands[0], self.symbols, line.line_num), line)
        elif mnem == '.EQU':
            self._require(line, 2)
            name = line.operands[0]
            if not _LABEL_RE.match(name):
                raise AssemblerError(f"Bad symbol name: '{name}'", line.line_num)
            if name in self.symbols:
                raise AssemblerError(f"Duplicate label: '{name}'", line.line_num)
            self.symbols[name] = _parse_value(line.operands[1], self.symbols, line.line_num)
        elif mnem == '.WORD':
            if len(line.operands) == 1:
                self.pc += 1
            else:
                self._require(line, 2)
        elif mnem in MNEMONICS:
            self.pc += 1
        else:
            raise AssemblerError(f"Unknown mnemonic: {mnem}", line.line_num)

    # ── Pass 2: encode + place ──

    def _pass2_line(self, line: AsmLine):
        """Emit the word(s) for one line."""
        mnem = line.mnemonic
        if mnem is None or mnem == '.EQU':
            return

        if mnem == '.ORG':
            self.pc = _parse_value(line.operands[0], self.symbols, line.line_num)
            return

        if mnem == '.WORD':
            if len(line.operands) == 2:
                addr = _parse_value(line.operands[0], self.symbols, line.line_num)
                self._place(addr, self._data_word(line.operands[1], line), line)
            else:
                self._place(self.pc, self._data_word(line.operands[0], line), line)
                self.pc += 1
            return

        self._place(self.pc, self._encode(MNEMONICS[mnem], line), line)
        self.pc += 1

    def _encode(self, op: Opcode, line: AsmLine) -> int:
        form = OPERAND_FORMS[op]
        self._require(line, _FORM_ARITY[form])
        ops = line.operands
        n = line.line_num

        if form == NONE:
            return encode(op)
        if form == RI:
            imm = _parse_value(ops[1], self.symbols, n)
            if not 0 <= imm <= IMM9_MAX:
                raise AssemblerError(
                    f"{op.name}: immediate {imm} out of range 0..{IMM9_MAX}", n)
            return encode(op, _parse_register(ops[0], n), imm9=imm)
        if form in (RR, RM):
            return encode(op, _parse_register(ops[0], n), _parse_register(ops[1], n))
        if form == RD:
            return encode(op, rd=_parse_register(ops[0], n))
        # RS
        return encode(op, rs=_parse_register(ops[0], n))

    def _data_word(self, text: str, line: AsmLine) -> int:
        value = _parse_value(text, self.symbols, line.line_num)
        if not -0x8000 <= value <= 0xFFFF:
            raise AssemblerError(f".WORD: value {value} does not fit in 16 bits", line.line_num)
        return value & 0xFFFF

    def _place(self, addr: int, word: int, line: AsmLine):
        self._check_addr(addr, line)
        self.image[addr] = word
        self._placed[line.line_num] = (addr, word)

    def _check_addr(self, addr: int, line: AsmLine) -> int:
        if not 0 <= addr < self.capacity:
            raise AssemblerError(
                f"Address {addr:#06x} outside memory (capacity {self.capacity})",
                line.line_num)
        return addr

    @staticmethod
    def _require(line: AsmLine, count: int):
        if len(line.operands) != count:
            raise AssemblerError(
                f"{line.mnemonic}: expected {count} operand(s), got {len(line.operands)}",
                line.line_num)

    # ── Listing ──

    def get_listing(self) -> str:
        """Return a human-readable listing showing address, word, and source."""
        lines = [f"{'ADDR':>5}  {'WORD':<4}  SOURCE", "-" * 60]
        for asmline in self._lines:
            raw = asmline.raw.rstrip()
            placed = self._placed.get(asmline.line_num)
            if placed:
                addr, word = placed
                lines.append(f"${addr:04X}  {word:04X}  {raw.strip()}")
            elif raw:
                lines.append(f"{'':5}  {'':4}  {raw.strip()}")
        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Loader contract
# ──────────────────────────────────────────────

def assemble(source: str, memory_out, capacity: int = MEMORY_SIZE) -> AssembleResult:
    """Assemble source straight into memory_out (e.g. Bus.memory).

    On failure memory_out is left untouched, though callers should not
    rely on that.
    """
    asm = Assembler(capacity)
    try:
        asm.assemble(source)
    except AssemblerError as e:
        log.warning("assembly failed at line %d: %s", e.line_num, e.message)
        return AssembleResult(False, e.line_num, e.message)
    asm.write_image(memory_out, capacity)
    log.info("assembled %d words", len(asm.image))
    return AssembleResult(True)


def assemble_file(path, memory_out, capacity: int = MEMORY_SIZE) -> AssembleResult:
    """Read an .asm file and assemble() it. An unreadable file is reported at line 0."""
    try:
        source = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        log.warning("cannot read %s: %s", path, e)
        return AssembleResult(False, 0, f"cannot open '{path}': {e.strerror or e}")
    return assemble(source, memory_out, capacity)
