"""
GPR16 Emulator — CPU Core

This is the top-level class that integrates:
  - CPU registers (cpu/regs.py)
  - Instruction decoder (cpu/decoder.py)
  - ALU operations (cpu/alu.py)
  - Memory bus (bus.py), referenced but not owned

Execution model (one step):
  1. If halted: do nothing, report "not runnable"
  2. Fetch the word at PC
  3. PC := PC + 1 (before execute, so jumps overwrite it)
  4. Trace (optional)
  5. Decode + execute
  6. Report "runnable" unless the instruction just executed was HALT

The core has no failure modes. Unassigned opcodes would execute as NOP,
bus access out of range is clamped by the bus, and nothing raises. A
program that never executes HALT makes run() loop forever; callers that
need a ceiling should drive step() themselves.
"""

import logging
from typing import Callable, Optional

from .bus import Bus
from .cpu import alu
from .cpu.decoder import Opcode, Instruction, decode, disassemble
from .cpu.regs import Registers

log = logging.getLogger(__name__)


class GPRCPU:
    """GPR16 processor core.

    Usage:
        bus = Bus()
        bus.load_words([0x1005, 0x0000])   # MOVI R0, 5 ; HALT
        cpu = GPRCPU(bus)
        cycles = cpu.run()                 # 1
        cpu.regs.R[0]                      # 5
    """

    def __init__(self, bus: Bus):
        self.bus = bus
        self.regs = Registers()

        # Trace output
        self._trace = False
        self._trace_sink: Optional[Callable[[str], None]] = None
        self._trace_output = []

        # Instruction dispatch table (built in _build_dispatch)
        self._dispatch = self._build_dispatch()

        self.reset()

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> bool:
        """Execute one instruction. Returns True while the core is runnable.

        Returns False without fetching if already halted, and False for the
        step that executes HALT (PC has already moved past the HALT word).
        """
        if self.regs.halted:
            return False

        pc = self.regs.PC
        word = self.bus.read(pc)
        self.regs.PC = (pc + 1) & 0xFFFF

        if self._trace:
            self._emit_trace(pc, word)

        self.execute(word)

        return not self.regs.halted

    def run(self) -> int:
        """Step until halted. Returns the number of steps that reported runnable.

        The HALT step itself is not counted.
        """
        cycles = 0
        while self.step():
            cycles += 1
        log.debug("halted at PC=$%04X after %d cycles", self.regs.PC, cycles)
        return cycles

    def execute(self, word: int):
        """Decode one instruction word and dispatch it to its handler."""
        ins = decode(word)
        handler = self._dispatch.get(ins.opcode, self._op_nop)
        handler(ins)

    def reset(self):
        """Zero registers, PC and flags, clear halted. Memory is untouched."""
        self.regs.reset()
        self._trace_output.clear()
        log.debug("cpu reset")

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(ins) where ins is a decoded Instruction.

    def _build_dispatch(self) -> dict:
        """Build opcode -> handler dispatch table."""
        return {
            Opcode.HALT:  self._op_halt,
            Opcode.MOVI:  self._op_movi,
            Opcode.MOV:   self._op_mov,
            Opcode.LOAD:  self._op_load,
            Opcode.STORE: self._op_store,
            Opcode.ADD:   self._op_add,
            Opcode.SUB:   self._op_sub,
            Opcode.AND:   self._op_and,
            Opcode.OR:    self._op_or,
            Opcode.XOR:   self._op_xor,
            Opcode.NOT:   self._op_not,
            Opcode.SHL:   self._op_shl,
            Opcode.SHR:   self._op_shr,
            Opcode.JMP:   self._op_jmp,
            Opcode.JZ:    self._op_jz,
            Opcode.NOP:   self._op_nop,
        }

    def _store_result(self, rd: int, result_flags: tuple):
        result, flags = result_flags
        self.regs.put(rd, result)
        self.regs.set_flags(flags)

    # ── Control ──

    def _op_halt(self, ins: Instruction):
        self.regs.halted = True

    def _op_nop(self, ins: Instruction):
        pass

    def _op_jmp(self, ins: Instruction):
        self.regs.PC = self.regs.get(ins.rs)

    def _op_jz(self, ins: Instruction):
        if self.regs.zero:
            self.regs.PC = self.regs.get(ins.rs)

    # ── Load/Store ──

    def _op_movi(self, ins: Instruction):
        self._store_result(ins.rd, (ins.imm9, alu.test_nz16(ins.imm9)))

    def _op_mov(self, ins: Instruction):
        val = self.regs.get(ins.rs)
        self._store_result(ins.rd, (val, alu.test_nz16(val)))

    def _op_load(self, ins: Instruction):
        val = self.bus.read(self.regs.get(ins.rs))
        self._store_result(ins.rd, (val, alu.test_nz16(val)))

    def _op_store(self, ins: Instruction):
        self.bus.write(self.regs.get(ins.rs), self.regs.get(ins.rd))

    # ── Arithmetic / logic ──

    def _op_add(self, ins: Instruction):
        self._store_result(ins.rd, alu.add16(self.regs.get(ins.rd), self.regs.get(ins.rs)))

    def _op_sub(self, ins: Instruction):
        self._store_result(ins.rd, alu.sub16(self.regs.get(ins.rd), self.regs.get(ins.rs)))

    def _op_and(self, ins: Instruction):
        self._store_result(ins.rd, alu.and16(self.regs.get(ins.rd), self.regs.get(ins.rs)))

    def _op_or(self, ins: Instruction):
        self._store_result(ins.rd, alu.or16(self.regs.get(ins.rd), self.regs.get(ins.rs)))

    def _op_xor(self, ins: Instruction):
        self._store_result(ins.rd, alu.xor16(self.regs.get(ins.rd), self.regs.get(ins.rs)))

    def _op_not(self, ins: Instruction):
        self._store_result(ins.rd, alu.not16(self.regs.get(ins.rs)))

    # ── Shifts ──

    def _op_shl(self, ins: Instruction):
        self._store_result(ins.rd, alu.shl16(self.regs.get(ins.rd)))

    def _op_shr(self, ins: Instruction):
        self._store_result(ins.rd, alu.shr16(self.regs.get(ins.rd)))

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True,
                     sink: Optional[Callable[[str], None]] = None):
        """Enable the per-instruction trace.

        Lines go to `sink` when given, otherwise they are kept for get_trace().
        The trace is a side channel only and never changes CPU state.
        """
        self._trace = enable
        self._trace_sink = sink

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def _emit_trace(self, pc: int, word: int):
        r = self.regs
        line = (f"{pc:04X}  | {' '.join(f'{v:04X}' for v in r.R)} "
                f"| {int(r.zero)} {int(r.carry)} {int(r.negative)} "
                f"| {word:04X}  {disassemble(word)}")
        log.debug(line)
        if self._trace_sink is not None:
            self._trace_sink(line)
        else:
            self._trace_output.append(line)
