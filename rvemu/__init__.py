"""RV32I emulator library: decoding, execution, memory, registers and a debugger."""

__version__ = "0.1.0"