"""RISC-V general-purpose and control/status register file."""

from __future__ import annotations

REG_NUM = 32
CSR_NUM = 0x1000
_MASK = 0xFFFF_FFFF

REGISTER_NAMES: tuple[str, ...] = (
    "zero", "ra", "sp", "gp", "tp", "t0", "t1", "t2", "s0", "s1", "a0", "a1",
    "a2", "a3", "a4", "a5", "a6", "a7", "s2", "s3", "s4", "s5", "s6", "s7",
    "s8", "s9", "s10", "s11", "t3", "t4", "t5", "t6",
)

NAME_TO_INDEX: dict[str, int] = {name: i for i, name in enumerate(REGISTER_NAMES)}

CSR_NAMES: dict[int, str] = {
    0x001: "fflags",
    0x002: "frm",
    0x003: "fcsr",
    0x100: "sstatus",
    0x104: "sie",
    0x105: "stvec",
    0x106: "scounteren",
    0x140: "sscratch",
    0x141: "sepc",
    0x142: "scause",
    0x143: "stval",
    0x144: "sip",
    0x180: "satp",
    0xC00: "cyclel",
    0xC01: "time",
    0xC02: "instret",
    0xC80: "cycleh",
    0xC81: "timeh",
    0xC82: "instreth",
    0x300: "mstatus",
    0x301: "misa",
    0x302: "medeleg",
    0x303: "mideleg",
    0x304: "mie",
    0x305: "mtvec",
    0x306: "mcounteren",
    0x310: "mscratch",
    0x340: "mscratch",
    0x341: "mepc",
    0x342: "mcause",
    0x343: "mtval",
    0x344: "mip",
    0x34A: "mtinst",
    0x7A0: "mcycle",
    0x7A1: "minstret",
    0xB00: "mcycleh",
    0xB01: "minstreth",
}

CSR_INDEX: dict[str, int] = {name: index for index, name in CSR_NAMES.items()}


def _check_index(index: int) -> None:
    if not 0 <= index < REG_NUM:
        raise IndexError(f"Invalid register index: {index}")


def index_to_name(index: int) -> str:
    """Return the ABI name of general-purpose register ``index``."""
    _check_index(index)
    return REGISTER_NAMES[index]


class Registers:
    """Thirty-two integer registers, the pc and 4096 CSRs, all 32 bits wide."""

    def __init__(self) -> None:
        self._regs = [0] * REG_NUM
        self._csr = [0] * CSR_NUM
        self.pc = 0

    def __getitem__(self, index: int) -> int:
        _check_index(index)
        if index == 0:
            return 0
        return self._regs[index]

    def __setitem__(self, index: int, value: int) -> None:
        _check_index(index)
        self._regs[index] = value & _MASK

    def name_to_index(self, name: str) -> int | None:
        """Map ``xN`` or an ABI name to a register index."""
        if name.startswith("x"):
            digits = name[1:].removeprefix("+")
            if not digits.isascii() or not digits.isdigit():
                return None
            index = int(digits)
            return index if index < REG_NUM else None
        return NAME_TO_INDEX.get(name)

    def read_by_name(self, name: str) -> int | None:
        """Read a general-purpose register or a named CSR."""
        index = self.name_to_index(name)
        if index is not None:
            return self[index]
        csr = CSR_INDEX.get(name)
        return None if csr is None else self.read_csr(csr)

    def write_by_name(self, name: str, value: int) -> None:
        """Write a general-purpose register or a named CSR; unknown names are ignored."""
        index = self.name_to_index(name)
        if index is not None:
            self[index] = value
            return
        csr = CSR_INDEX.get(name)
        if csr is not None:
            self.write_csr(csr, value)

    def read_csr(self, index: int) -> int | None:
        """Read a CSR by number, or None when the number is out of range."""
        if not 0 <= index < CSR_NUM:
            return None
        return self._csr[index]

    def write_csr(self, index: int, value: int) -> None:
        """Write a CSR by number; out-of-range numbers are ignored."""
        if 0 <= index < CSR_NUM:
            self._csr[index] = value & _MASK

    def items(self) -> list[tuple[str, int]]:
        """Name and value of every integer register, followed by the pc."""
        pairs = list(zip(REGISTER_NAMES, self._regs))
        pairs.append(("pc", self.pc))
        return pairs