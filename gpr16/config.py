"""
GPR16 Emulator — Machine / Driver Configuration
================================================

Fixed machine parameters and the addresses the command-line driver uses
for its operand/result convention. Runtime overrides come from the CLI
options in gpr16/cli.py; nothing here is read from the environment.
"""

# =============================================================================
#  MACHINE
# =============================================================================
MEMORY_SIZE = 65536       # 64K words, covers the full 16-bit address space
WORD_MASK = 0xFFFF        # every register and memory cell is 16 bits
NUM_REGISTERS = 8         # R0..R7


# =============================================================================
#  DRIVER CONVENTIONS (math programs such as addition.asm)
# =============================================================================
OPERAND_A_ADDR = 0x100
OPERAND_B_ADDR = 0x101
RESULT_ADDR = 0x102

DEFAULT_PROGRAM = "addition.asm"


# =============================================================================
#  LOGGING
# =============================================================================
DEFAULT_LOG_NAME = "gpr16"
