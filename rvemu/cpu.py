"""A 32-bit RISC-V CPU built from a register file and memory."""

from __future__ import annotations

from enum import IntEnum

from rvemu.execute import execute as execute_instruction
from rvemu.instruction import decode
from rvemu.isa import InvalidCode, Isa
from rvemu.memory import Memory
from rvemu.registers import Registers
from rvemu.util import warn

DEFAULT_USER_APP_SIZE = 0x50_0000
DEVICE_UPDATE_INTERVAL = 10_000
_MASK = 0xFFFF_FFFF


class PrivilegeMode(IntEnum):
    """RISC-V privilege levels."""

    USER = 0
    SUPERVISOR = 1
    MACHINE = 3


_LOWER = {
    PrivilegeMode.USER: PrivilegeMode.USER,
    PrivilegeMode.SUPERVISOR: PrivilegeMode.USER,
    PrivilegeMode.MACHINE: PrivilegeMode.SUPERVISOR,
}
_HIGHER = {
    PrivilegeMode.USER: PrivilegeMode.SUPERVISOR,
    PrivilegeMode.SUPERVISOR: PrivilegeMode.MACHINE,
    PrivilegeMode.MACHINE: PrivilegeMode.MACHINE,
}


class RV32CPU(Isa):
    """RV32I processor.

    In user mode every address is offset by ``mstatus * user_app_size``, so
    that each user program sees its own slice of physical memory.
    """

    name = "RISC-V 32"
    xlen = 32

    def __init__(
        self,
        registers: Registers | None = None,
        memory: Memory | None = None,
        user_app_size: int = DEFAULT_USER_APP_SIZE,
    ) -> None:
        self.registers = registers if registers is not None else Registers()
        self.memory = memory if memory is not None else Memory()
        self.user_app_size = user_app_size
        self.mode = PrivilegeMode.SUPERVISOR
        self._ticks = 1

    def __getitem__(self, index: int) -> int:
        return self.registers[index]

    def __setitem__(self, index: int, value: int) -> None:
        self.registers[index] = value

    @property
    def pc(self) -> int:
        return self.registers.pc

    def update_pc(self, pc: int) -> None:
        self.registers.pc = pc & _MASK

    def _translate(self, index: int) -> int:
        if self.mode is PrivilegeMode.USER:
            app = self.read_register_by_name("mstatus") or 0
            return (index + self.user_app_size * app) & _MASK
        return index

    def load_mem(self, index: int, size: int) -> int | None:
        return self.memory.load(self._translate(index), size)

    def store_mem(self, index: int, size: int, value: int) -> None:
        self.memory.store(self._translate(index), size, value)

    def read_register_by_name(self, name: str) -> int | None:
        """Read a general-purpose register or a named CSR."""
        return self.registers.read_by_name(name)

    def write_register_by_name(self, name: str, value: int) -> None:
        """Write a general-purpose register or a named CSR."""
        self.registers.write_by_name(name, value)

    def name_to_index(self, name: str) -> int | None:
        """Map a register name to its index."""
        return self.registers.name_to_index(name)

    def register_items(self) -> list[tuple[str, int]]:
        """Name and value of every integer register, then the pc."""
        return self.registers.items()

    def read_csr(self, index: int) -> int | None:
        """Read a CSR by number."""
        return self.registers.read_csr(index)

    def write_csr(self, index: int, value: int) -> None:
        """Write a CSR by number."""
        self.registers.write_csr(index, value)

    def execute(self, code: int) -> int:
        try:
            inst = decode(code)
        except InvalidCode:
            warn(f"invalid code at {self.pc:x}")
            raise
        return execute_instruction(inst, self)

    def disassemble(self, addr: int) -> str:
        """Disassemble the instruction word stored at ``addr``."""
        return str(decode(self.fetch_inst(addr)))

    def device_update(self) -> None:
        if self._ticks % DEVICE_UPDATE_INTERVAL == 0:
            self.memory.update_devices()
        self._ticks += 1

    def privilege_down(self) -> None:
        """Drop one privilege level, stopping at user mode."""
        self.mode = _LOWER[self.mode]

    def privilege_up(self) -> None:
        """Raise one privilege level, stopping at machine mode."""
        self.mode = _HIGHER[self.mode]