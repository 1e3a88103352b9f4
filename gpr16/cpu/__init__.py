# GPR16 CPU core — register file, ALU flag arithmetic, instruction decoder.
# The fetch/decode/execute loop that ties these together lives in gpr16/emu.py.
