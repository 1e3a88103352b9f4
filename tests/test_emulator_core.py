"""
GPR16 Emulator — Core Integration Tests

Tests that prove the core executes real GPR16 machine code. Each test uses
hand-assembled words (opcode<<12 | Rd<<9 | Rs<<6, or | imm9 for MOVI), so
no assembler is involved.
"""

import pytest

from gpr16.bus import Bus
from gpr16.emu import GPRCPU
from gpr16.cpu.regs import FLAG_ZERO, FLAG_CARRY, FLAG_NEGATIVE


def _cpu(words, base: int = 0) -> GPRCPU:
    bus = Bus()
    bus.load_words(words, base)
    cpu = GPRCPU(bus)
    cpu.regs.PC = base
    return cpu


def _exec(word: int, r0: int = 0, r1: int = 0) -> GPRCPU:
    """Execute one instruction with R0/R1 preset."""
    cpu = _cpu([word])
    cpu.regs.R[0] = r0
    cpu.regs.R[1] = r1
    cpu.step()
    return cpu


# ═══════════════════════════════════════════════
# Test Group 1: Individual Instructions
# ═══════════════════════════════════════════════

class TestLoadStore:
    """Test MOVI/MOV/LOAD/STORE — the foundation of everything."""

    def test_movi(self):
        """MOVI R0, 5 → R0=5, Z=0, N=0, PC=1"""
        cpu = _cpu([0x1005])
        cpu.step()
        assert cpu.regs.R[0] == 5
        assert cpu.regs.PC == 1
        assert not cpu.regs.zero
        assert not cpu.regs.negative

    def test_movi_max_immediate(self):
        """MOVI R7, $1FF → R7=$01FF (zero-extended, never negative)"""
        cpu = _cpu([0x1FFF])
        cpu.step()
        assert cpu.regs.R[7] == 0x01FF
        assert not cpu.regs.negative

    def test_movi_zero(self):
        """MOVI R3, 0 → Z=1"""
        cpu = _cpu([0x1600])
        cpu.regs.R[3] = 0x1234
        cpu.step()
        assert cpu.regs.R[3] == 0
        assert cpu.regs.zero

    def test_mov(self):
        """MOV R2, R0 → R2=R0, N from bit 15"""
        cpu = _cpu([0x2400])
        cpu.regs.R[0] = 0x8001
        cpu.step()
        assert cpu.regs.R[2] == 0x8001
        assert cpu.regs.negative
        assert not cpu.regs.zero

    def test_load(self):
        """MOVI R6, $100; LOAD R0, (R6) → R0 = mem[$100]"""
        cpu = _cpu([0x1D00, 0x3180])
        cpu.bus.write(0x100, 0xBEEF)
        cpu.step()
        cpu.step()
        assert cpu.regs.R[0] == 0xBEEF
        assert cpu.regs.negative

    def test_load_zero_sets_z(self):
        """LOAD from an untouched cell → 0, Z=1"""
        cpu = _cpu([0x3180])
        cpu.regs.R[6] = 0x200
        cpu.step()
        assert cpu.regs.R[0] == 0
        assert cpu.regs.zero

    def test_store(self):
        """MOVI R2, $102; STORE R0, (R2) → mem[$102] = R0, flags untouched"""
        cpu = _cpu([0x1502, 0x4080])
        cpu.regs.R[0] = 0x1234
        cpu.step()
        cpu.regs.FLAGS = FLAG_CARRY
        cpu.step()
        assert cpu.bus.read(0x102) == 0x1234
        assert cpu.regs.FLAGS == FLAG_CARRY


class TestArithmetic:
    """ADD/SUB — carry conventions differ, check both edges."""

    def test_add(self):
        """2 + 3 → 5, no flags"""
        cpu = _exec(0x5040, r0=2, r1=3)  # ADD R0, R1
        assert cpu.regs.R[0] == 5
        assert cpu.regs.FLAGS == 0

    def test_add_carry_wraps_to_zero(self):
        """$FFFF + $0001 → $0000, Z=1, C=1, N=0"""
        cpu = _exec(0x5040, r0=0xFFFF, r1=0x0001)
        assert cpu.regs.R[0] == 0x0000
        assert cpu.regs.zero
        assert cpu.regs.carry
        assert not cpu.regs.negative

    def test_add_negative_no_carry(self):
        """$7FFF + $0001 → $8000, N=1, C=0"""
        cpu = _exec(0x5040, r0=0x7FFF, r1=0x0001)
        assert cpu.regs.R[0] == 0x8000
        assert cpu.regs.negative
        assert not cpu.regs.carry

    def test_add_same_register(self):
        """ADD R0, R0 doubles R0"""
        cpu = _exec(0x5000, r0=0x8000)
        assert cpu.regs.R[0] == 0
        assert cpu.regs.carry
        assert cpu.regs.zero

    def test_sub_equal_no_borrow(self):
        """5 - 5 → 0, Z=1, C=1 (C means no borrow)"""
        cpu = _exec(0x6040, r0=5, r1=5)  # SUB R0, R1
        assert cpu.regs.R[0] == 0
        assert cpu.regs.zero
        assert cpu.regs.carry

    def test_sub_borrow(self):
        """0 - 1 → $FFFF, C=0 (borrow), N=1"""
        cpu = _exec(0x6040, r0=0, r1=1)
        assert cpu.regs.R[0] == 0xFFFF
        assert not cpu.regs.carry
        assert cpu.regs.negative
        assert not cpu.regs.zero

    def test_sub_unsigned_compare(self):
        """$8000 - $0001 → $7FFF, C=1 (unsigned $8000 >= 1)"""
        cpu = _exec(0x6040, r0=0x8000, r1=0x0001)
        assert cpu.regs.R[0] == 0x7FFF
        assert cpu.regs.carry
        assert not cpu.regs.negative


class TestLogic:

    def test_and(self):
        cpu = _exec(0x7040, r0=0xF0F0, r1=0x8F00)
        assert cpu.regs.R[0] == 0x8000
        assert cpu.regs.negative

    def test_and_zero(self):
        cpu = _exec(0x7040, r0=0x00FF, r1=0xFF00)
        assert cpu.regs.R[0] == 0
        assert cpu.regs.zero

    def test_or(self):
        cpu = _exec(0x8040, r0=0x0F00, r1=0x00F0)
        assert cpu.regs.R[0] == 0x0FF0
        assert cpu.regs.FLAGS == 0

    def test_xor_self_is_zero(self):
        cpu = _exec(0x9000, r0=0xABCD)  # XOR R0, R0
        assert cpu.regs.R[0] == 0
        assert cpu.regs.zero

    def test_not_uses_source(self):
        """NOT R0, R1 → R0 = ~R1, R1 unchanged"""
        cpu = _exec(0xA040, r0=0x1111, r1=0x00FF)
        assert cpu.regs.R[0] == 0xFF00
        assert cpu.regs.R[1] == 0x00FF
        assert cpu.regs.negative

    def test_logic_clears_stale_carry(self):
        """Flags are recomputed, never accumulated — a previous C is cleared"""
        cpu = _cpu([0x5040, 0x8040])  # ADD R0, R1 ; OR R0, R1
        cpu.regs.R[0] = 0xFFFF
        cpu.regs.R[1] = 0x0002
        cpu.step()
        assert cpu.regs.carry
        cpu.step()
        assert not cpu.regs.carry
        assert cpu.regs.R[0] == 0x0003


class TestShifts:

    def test_shl_carry_out(self):
        """SHL $8000 → $0000, C=1, Z=1"""
        cpu = _exec(0xB000, r0=0x8000)  # SHL R0
        assert cpu.regs.R[0] == 0
        assert cpu.regs.carry
        assert cpu.regs.zero

    def test_shl_into_sign(self):
        """SHL $4000 → $8000, N=1, C=0"""
        cpu = _exec(0xB000, r0=0x4000)
        assert cpu.regs.R[0] == 0x8000
        assert cpu.regs.negative
        assert not cpu.regs.carry

    def test_shr_carry_out(self):
        """SHR $0001 → $0000, C=1, Z=1"""
        cpu = _exec(0xC000, r0=0x0001)  # SHR R0
        assert cpu.regs.R[0] == 0
        assert cpu.regs.carry
        assert cpu.regs.zero

    def test_shr_is_logical(self):
        """SHR $8000 → $4000 (zero fill, not sign extend)"""
        cpu = _exec(0xC000, r0=0x8000)
        assert cpu.regs.R[0] == 0x4000
        assert not cpu.regs.negative
        assert not cpu.regs.carry


class TestJumps:

    def test_jmp(self):
        """JMP R3 → PC = R3"""
        cpu = _cpu([0xD0C0])
        cpu.regs.R[3] = 0x0040
        cpu.step()
        assert cpu.regs.PC == 0x0040

    def test_jz_not_taken(self):
        """JZ R3 with Z=0 → PC advanced by exactly one"""
        cpu = _cpu([0xE0C0], base=0x10)
        cpu.regs.R[3] = 0x0040
        cpu.step()
        assert cpu.regs.PC == 0x11

    def test_jz_taken(self):
        """JZ R3 with Z=1 → PC = R3"""
        cpu = _cpu([0xE0C0], base=0x10)
        cpu.regs.R[3] = 0x0040
        cpu.regs.FLAGS = FLAG_ZERO
        cpu.step()
        assert cpu.regs.PC == 0x0040

    def test_jumps_leave_flags(self):
        cpu = _cpu([0xE0C0])
        cpu.regs.FLAGS = FLAG_ZERO | FLAG_NEGATIVE
        cpu.step()
        assert cpu.regs.FLAGS == FLAG_ZERO | FLAG_NEGATIVE

    def test_pc_wraps(self):
        """Fetch at $FFFF advances PC to $0000"""
        cpu = _cpu([0xF000], base=0xFFFF)  # NOP
        assert cpu.step()
        assert cpu.regs.PC == 0x0000


# ═══════════════════════════════════════════════
# Test Group 2: Step / Run / Reset
# ═══════════════════════════════════════════════

class TestStepSemantics:

    def test_nop_is_runnable(self):
        cpu = _cpu([0xF000])
        assert cpu.step() is True
        assert cpu.regs.PC == 1
        assert cpu.regs.FLAGS == 0

    def test_halt_step_not_runnable(self):
        """The step that executes HALT still advances PC but reports False"""
        cpu = _cpu([0x0000])
        assert cpu.step() is False
        assert cpu.regs.halted
        assert cpu.regs.PC == 1

    def test_step_while_halted_does_nothing(self):
        cpu = _cpu([0x0000, 0x1005])
        cpu.step()
        assert cpu.step() is False
        assert cpu.regs.PC == 1
        assert cpu.regs.R[0] == 0

    def test_empty_memory_halts(self):
        """Zeroed memory decodes as HALT"""
        cpu = GPRCPU(Bus())
        assert cpu.run() == 0
        assert cpu.regs.halted


class TestRun:

    def test_movi_halt(self):
        """[MOVI R0, 5 ; HALT] → 1 cycle, R0=5, halted"""
        cpu = _cpu([0x1005, 0x0000])
        assert cpu.run() == 1
        assert cpu.regs.R[0] == 5
        assert cpu.regs.halted

    def test_addition_program(self):
        """The addition.asm image: mem[$102] = mem[$100] + mem[$101]"""
        cpu = _cpu([
            0x1D00,  # MOVI R6, $100
            0x3180,  # LOAD R0, (R6)
            0x1F01,  # MOVI R7, $101
            0x33C0,  # LOAD R1, (R7)
            0x5040,  # ADD R0, R1
            0x1502,  # MOVI R2, $102
            0x4080,  # STORE R0, (R2)
            0x0000,  # HALT
        ])
        cpu.bus.write(0x100, 2)
        cpu.bus.write(0x101, 3)
        assert cpu.run() == 7
        assert cpu.regs.R[0] == 5
        assert cpu.bus.read(0x102) == 5

    def test_countdown_loop(self):
        """R0 counts 3 → 0 through a JZ/JMP loop"""
        cpu = _cpu([
            0x1003,  # 0: MOVI R0, 3
            0x1201,  # 1: MOVI R1, 1
            0x1607,  # 2: MOVI R3, 7
            0x1804,  # 3: MOVI R4, 4
            0x6040,  # 4: SUB R0, R1
            0xE0C0,  # 5: JZ R3
            0xD100,  # 6: JMP R4
            0x0000,  # 7: HALT
        ])
        cycles = cpu.run()
        assert cpu.regs.R[0] == 0
        assert cpu.regs.PC == 8
        # 4 setup + 3 iterations of SUB/JZ + 2 JMPs
        assert cycles == 4 + 3 * 2 + 2


class TestReset:

    def test_reset_clears_state_keeps_memory(self):
        cpu = _cpu([0x1005, 0x0000])
        cpu.run()
        cpu.regs.FLAGS = FLAG_ZERO | FLAG_CARRY
        cpu.reset()
        assert cpu.regs.R == [0] * 8
        assert cpu.regs.PC == 0
        assert cpu.regs.FLAGS == 0
        assert not cpu.regs.halted
        assert cpu.bus.read(0) == 0x1005

    def test_run_again_after_reset(self):
        cpu = _cpu([0x1005, 0x0000])
        assert cpu.run() == 1
        assert cpu.run() == 0
        cpu.reset()
        assert cpu.run() == 1


class TestTrace:

    def test_trace_collects_lines(self):
        cpu = _cpu([0x1005, 0x0000])
        cpu.enable_trace()
        cpu.run()
        lines = cpu.get_trace().splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("0000")
        assert "1005" in lines[0]
        assert "MOVI R0, $005" in lines[0]
        assert "HALT" in lines[1]

    def test_trace_shows_state_before_execute(self):
        cpu = _cpu([0x1005, 0x0000])
        cpu.enable_trace()
        cpu.run()
        first, second = cpu.get_trace().splitlines()
        assert "| 0000 0000" in first
        assert "| 0005 0000" in second

    def test_trace_sink(self):
        seen = []
        cpu = _cpu([0xF000, 0x0000])
        cpu.enable_trace(True, sink=seen.append)
        cpu.run()
        assert len(seen) == 2
        assert cpu.get_trace() == ""

    def test_trace_does_not_change_state(self):
        plain = _cpu([0x1005, 0x5000, 0x0000])
        traced = _cpu([0x1005, 0x5000, 0x0000])
        traced.enable_trace()
        assert plain.run() == traced.run()
        assert plain.regs.R == traced.regs.R
        assert plain.regs.FLAGS == traced.regs.FLAGS

    def test_trace_off_by_default(self):
        cpu = _cpu([0x1005, 0x0000])
        cpu.run()
        assert cpu.get_trace() == ""

    def test_clear_trace(self):
        cpu = _cpu([0x0000])
        cpu.enable_trace()
        cpu.run()
        cpu.clear_trace()
        assert cpu.get_trace() == ""


@pytest.mark.parametrize("flag_attr, mask", [
    ("zero", FLAG_ZERO),
    ("carry", FLAG_CARRY),
    ("negative", FLAG_NEGATIVE),
])
def test_flag_properties(flag_attr, mask):
    cpu = GPRCPU(Bus())
    cpu.regs.FLAGS = mask
    assert getattr(cpu.regs, flag_attr)
    cpu.regs.FLAGS = 0
    assert not getattr(cpu.regs, flag_attr)
