"""
GPR16 Emulator — Word-Addressed Memory Bus

The bus owns a flat array of 16-bit cells shared between instruction
fetch and LOAD/STORE. It is created by the driver and handed to the CPU
by reference; the CPU never owns it.

Out-of-range access is not an error:
  read  beyond capacity -> 0
  write beyond capacity -> silently dropped
With the default 64K capacity every 16-bit address is in range, but the
check stays so smaller (or larger) buses behave the same way.
"""

from array import array
from typing import Iterable

from .config import MEMORY_SIZE, WORD_MASK


class Bus:
    """Fixed-size, zero-initialised, word-addressable memory."""

    def __init__(self, capacity: int = MEMORY_SIZE):
        if capacity <= 0:
            raise ValueError(f"bus capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._mem = array('H', [0]) * capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def memory(self) -> array:
        """Backing word store — the memory image the assembler writes into."""
        return self._mem

    # --- Core read/write ---

    def read(self, address: int) -> int:
        """Read one word. Addresses outside [0, capacity) read as 0."""
        if 0 <= address < self._capacity:
            return self._mem[address]
        return 0

    def write(self, address: int, value: int):
        """Write one word. Addresses outside [0, capacity) are ignored."""
        if 0 <= address < self._capacity:
            self._mem[address] = value & WORD_MASK

    # --- Bulk load ---

    def load_words(self, words: Iterable[int], base_addr: int = 0):
        """Copy words into memory starting at base_addr.

        Words that would land past the end of memory are dropped.
        """
        for i, word in enumerate(words):
            self.write(base_addr + i, word)

    # --- Hex dump ---

    def hexdump(self, start: int, length: int = 64) -> str:
        """Produce a hex dump of memory for debugging, 8 words per line."""
        lines = []
        for offset in range(0, length, 8):
            addr = start + offset
            count = min(8, length - offset)
            words = ' '.join(f'{self.read(addr + i):04X}' for i in range(count))
            lines.append(f'{addr:04X}  {words}')
        return '\n'.join(lines)
