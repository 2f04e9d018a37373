"""RISC-V RV32I instruction formats: decoding, assembling and disassembly."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from rvemu.isa import InvalidCode
from rvemu.registers import index_to_name

ECALL = 0b0000_0000_0000_0000_0000_0000_0111_0011
EBREAK = 0b0000_0000_0001_0000_0000_0000_0111_0011
SRET = 0b0001_0000_0010_0000_0000_0000_0111_0011
MRET = 0b0011_0000_0010_0000_0000_0000_0111_0011

OP_REG = 0b011_0011
OP_IMM = 0b001_0011
OP_LOAD = 0b000_0011
OP_JALR = 0b110_0111
OP_SYSTEM = 0b111_0011
OP_STORE = 0b010_0011
OP_BRANCH = 0b110_0011
OP_JAL = 0b110_1111
OP_LUI = 0b011_0111
OP_AUIPC = 0b001_0111
OP_FENCE = 0b000_1111

_MASK = 0xFFFF_FFFF


def get_bits(code: int, high: int, low: int) -> int:
    """Return bits ``high`` down to ``low`` (inclusive) of ``code``."""
    return (code >> low) & ((1 << (high - low + 1)) - 1)


def _sign_fill(code: int, shift: int) -> int:
    """Arithmetic right shift of the sign bit of ``code``, as a 32-bit value."""
    if code & 0x8000_0000:
        return (_MASK << (31 - shift)) & _MASK
    return 0


def _opcode(code: int) -> int:
    return code & 0x7F


def _rs1(code: int) -> int:
    return (code >> 15) & 0x1F


def _rs2(code: int) -> int:
    return (code >> 20) & 0x1F


def _rd(code: int) -> int:
    return (code >> 7) & 0x1F


def _funct3(code: int) -> int:
    return (code >> 12) & 0x7


def _funct7(code: int) -> int:
    return (code >> 25) & 0x7F


def _csr(code: int) -> int:
    return (code >> 20) & 0xFFF


def _immediate(code: int) -> int:
    opcode = _opcode(code)
    if opcode in (OP_LUI, OP_AUIPC):
        return code & 0xFFFF_F000
    if opcode == OP_JAL:
        return (
            (get_bits(code, 31, 31) << 20)
            | (get_bits(code, 19, 12) << 12)
            | (get_bits(code, 20, 20) << 11)
            | (get_bits(code, 30, 21) << 1)
            | _sign_fill(code, 11)
        )
    if opcode in (OP_JALR, OP_IMM, OP_LOAD):
        return _sign_fill(code, 20) | ((code >> 20) & 0xFFF)
    if opcode == OP_BRANCH:
        return (
            _sign_fill(code, 20)
            | (get_bits(code, 31, 31) << 12)
            | (get_bits(code, 7, 7) << 11)
            | (get_bits(code, 30, 25) << 5)
            | (get_bits(code, 11, 8) << 1)
        )
    if opcode == OP_STORE:
        return (
            (get_bits(code, 31, 25) << 5)
            | get_bits(code, 11, 7)
            | _sign_fill(code, 20)
        )
    raise InvalidCode(code)


class Instruction(ABC):
    """A decoded instruction."""

    @abstractmethod
    def assemble(self) -> int:
        """Encode the instruction as a 32-bit machine word."""

    def disassemble(self) -> str:
        """Return the assembly text of the instruction."""
        return str(self)


@dataclass(frozen=True)
class RType(Instruction):
    """Register-register operation."""

    funct7: int
    rs1: int
    rs2: int
    funct3: int
    rd: int
    opcode: int = OP_REG

    def assemble(self) -> int:
        return (
            (self.funct7 << 25)
            | (self.rs2 << 20)
            | (self.rs1 << 15)
            | (self.funct3 << 12)
            | (self.rd << 7)
            | self.opcode
        ) & _MASK

    def __str__(self) -> str:
        if self.funct3 == 0b000:
            if self.funct7 == 0b000_0000:
                if self.rd == 0:
                    return "nop"
                name = "add"
            elif self.funct7 == 0b010_0000:
                name = "sub"
            else:
                raise InvalidCode(self.assemble())
        elif self.funct3 == 0b101:
            if self.funct7 == 0b000_0000:
                name = "srl"
            elif self.funct7 == 0b010_0000:
                name = "sra"
            else:
                raise InvalidCode(self.assemble())
        else:
            name = {
                0b001: "sll",
                0b010: "slt",
                0b011: "sltu",
                0b100: "xor",
                0b110: "or",
                0b111: "and",
            }[self.funct3]
        return (
            f"{name} {index_to_name(self.rd)}, "
            f"{index_to_name(self.rs1)}, {index_to_name(self.rs2)}"
        )


_LOADS = {0b000: "lb", 0b001: "lh", 0b010: "lw", 0b100: "lbu", 0b101: "lhu"}
_IMM_OPS = {
    0b001: "slli",
    0b010: "slti",
    0b011: "sltiu",
    0b100: "xori",
    0b110: "ori",
    0b111: "andi",
}


@dataclass(frozen=True)
class IType(Instruction):
    """Immediate operation, load or jalr."""

    imm: int
    rs1: int
    funct3: int
    rd: int
    opcode: int

    def assemble(self) -> int:
        return (
            (self.imm << 20)
            | (self.rs1 << 15)
            | (self.funct3 << 12)
            | (self.rd << 7)
            | self.opcode
        ) & _MASK

    def __str__(self) -> str:
        rd, rs1, imm = self.rd, self.rs1, self.imm
        if self.opcode == OP_JALR:
            return f"jalr x{rd}, x{rs1}, {imm}"
        if self.opcode == OP_LOAD:
            name = _LOADS.get(self.funct3)
            if name is None:
                raise InvalidCode(self.assemble())
            return f"{name} x{rd}, {imm}(x{rs1})"
        if self.opcode != OP_IMM:
            raise InvalidCode(self.assemble())
        if self.funct3 == 0b000:
            if rs1 == 0:
                return f"li {index_to_name(rd)} {imm}"
            if imm == 0:
                return f"mv {index_to_name(rd)} {index_to_name(rs1)}"
            name = "addi"
        elif self.funct3 == 0b101:
            kind = get_bits(imm, 11, 10)
            if kind == 0b00:
                name = "srli"
            elif kind == 0b01:
                name = "srai"
            else:
                raise InvalidCode(self.assemble())
            return (
                f"{name} {index_to_name(rd)}, {index_to_name(rs1)}, "
                f"{get_bits(imm, 5, 0)}"
            )
        else:
            name = _IMM_OPS[self.funct3]
        return f"{name} {index_to_name(rd)}, {index_to_name(rs1)}, {imm:#x}"


_CSR_OPS = {
    0b001: "csrrw",
    0b010: "csrrs",
    0b011: "csrrc",
    0b101: "csrrwi",
    0b110: "csrrsi",
    0b111: "csrrci",
}
_SYSTEM_OPS = {
    0b0000_0000_0000: "ecall",
    0b0000_0000_0001: "ebreak",
    0b0001_0000_0010: "sret",
    0b0011_0000_0010: "mret",
    0b0001_0000_0101: "wfi",
}


@dataclass(frozen=True)
class CsrType(Instruction):
    """CSR access or system instruction (ecall, ebreak, mret, ...)."""

    csr: int
    rs1: int
    funct3: int
    rd: int
    opcode: int = OP_SYSTEM

    def assemble(self) -> int:
        return (
            (self.csr << 20)
            | (self.rs1 << 15)
            | (self.funct3 << 12)
            | (self.rd << 7)
            | self.opcode
        ) & _MASK

    def __str__(self) -> str:
        if self.funct3 == 0b000:
            name = _SYSTEM_OPS.get(self.csr)
            if name is None:
                raise InvalidCode(self.assemble())
            return name
        name = _CSR_OPS.get(self.funct3)
        if name is None:
            raise InvalidCode(self.assemble())
        return (
            f"{name} {index_to_name(self.rd)}, "
            f"{index_to_name(self.rs1)}, 0x{self.csr:x}"
        )


_STORES = {0b000: "sb", 0b001: "sh", 0b010: "sw", 0b100: "sd"}


@dataclass(frozen=True)
class SType(Instruction):
    """Store."""

    imm: int
    rs1: int
    rs2: int
    funct3: int
    opcode: int = OP_STORE

    def assemble(self) -> int:
        return (
            (get_bits(self.imm, 11, 5) << 25)
            | (self.rs2 << 20)
            | (self.rs1 << 15)
            | (self.funct3 << 12)
            | (get_bits(self.imm, 4, 0) << 7)
            | self.opcode
        ) & _MASK

    def __str__(self) -> str:
        name = _STORES.get(self.funct3)
        if name is None:
            raise InvalidCode(self.assemble())
        return (
            f"{name} {index_to_name(self.rs2)} , "
            f"{self.imm}({index_to_name(self.rs1)})"
        )


_BRANCHES = {
    0b000: "beq",
    0b001: "bne",
    0b100: "blt",
    0b101: "bge",
    0b110: "bltu",
    0b111: "bgeu",
}


@dataclass(frozen=True)
class BType(Instruction):
    """Conditional branch."""

    imm: int
    rs1: int
    rs2: int
    funct3: int
    opcode: int = OP_BRANCH

    def assemble(self) -> int:
        return (
            (get_bits(self.imm, 12, 12) << 31)
            | (get_bits(self.imm, 10, 5) << 25)
            | (self.rs2 << 20)
            | (self.rs1 << 15)
            | (self.funct3 << 12)
            | (get_bits(self.imm, 4, 1) << 8)
            | (get_bits(self.imm, 11, 11) << 7)
            | self.opcode
        ) & _MASK

    def __str__(self) -> str:
        name = _BRANCHES.get(self.funct3)
        if name is None:
            raise InvalidCode(self.assemble())
        return (
            f"{name} {index_to_name(self.rs1)}, "
            f"{index_to_name(self.rs2)}, 0x{self.imm:x}"
        )


@dataclass(frozen=True)
class UType(Instruction):
    """Upper-immediate instruction (lui, auipc)."""

    imm: int
    rd: int
    opcode: int

    def assemble(self) -> int:
        return ((self.imm << 12) | (self.rd << 7) | self.opcode) & _MASK

    def __str__(self) -> str:
        return f"lui {index_to_name(self.rd)}, 0x{self.imm >> 12:x}"


@dataclass(frozen=True)
class JType(Instruction):
    """Jump and link."""

    imm: int
    rd: int
    opcode: int = OP_JAL

    def assemble(self) -> int:
        return (
            (get_bits(self.imm, 20, 20) << 31)
            | (get_bits(self.imm, 10, 1) << 21)
            | (get_bits(self.imm, 11, 11) << 20)
            | (get_bits(self.imm, 19, 12) << 12)
            | (self.rd << 7)
            | self.opcode
        ) & _MASK

    def __str__(self) -> str:
        return f"jal {index_to_name(self.rd)}, 0x{self.imm:x}"


@dataclass(frozen=True)
class Nop(Instruction):
    """Fence or pause, treated as doing nothing."""

    def assemble(self) -> int:
        return OP_FENCE

    def __str__(self) -> str:
        return "nop"


def decode(code: int) -> Instruction:
    """Decode a 32-bit machine word; raises InvalidCode for unknown opcodes."""
    opcode = _opcode(code)
    if opcode == OP_REG:
        return RType(_funct7(code), _rs1(code), _rs2(code), _funct3(code), _rd(code), opcode)
    if opcode in (OP_IMM, OP_LOAD, OP_JALR):
        return IType(_immediate(code), _rs1(code), _funct3(code), _rd(code), opcode)
    if opcode == OP_SYSTEM:
        return CsrType(_csr(code), _rs1(code), _funct3(code), _rd(code), opcode)
    if opcode == OP_STORE:
        return SType(_immediate(code), _rs1(code), _rs2(code), _funct3(code), opcode)
    if opcode == OP_BRANCH:
        return BType(_immediate(code), _rs1(code), _rs2(code), _funct3(code), opcode)
    if opcode == OP_JAL:
        return JType(_immediate(code), _rd(code), opcode)
    if opcode in (OP_LUI, OP_AUIPC):
        return UType(_immediate(code), _rd(code), opcode)
    if opcode == OP_FENCE:
        return Nop()
    raise InvalidCode(code)