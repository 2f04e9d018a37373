"""Execution of decoded RV32I instructions against a CPU."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from rvemu.instruction import (
    EBREAK,
    ECALL,
    MRET,
    OP_AUIPC,
    OP_IMM,
    OP_JALR,
    OP_LOAD,
    OP_LUI,
    SRET,
    BType,
    CsrType,
    Instruction,
    IType,
    JType,
    Nop,
    RType,
    SType,
    UType,
    get_bits,
)
from rvemu.isa import Ebreak, InvalidCode, InvalidMemory

if TYPE_CHECKING:
    from rvemu.cpu import RV32CPU

_MASK = 0xFFFF_FFFF
_MCAUSE_ECALL = 0x0000_000B


def _signed(value: int, bits: int = 32) -> int:
    """Interpret the low ``bits`` bits of ``value`` as two's complement."""
    value &= (1 << bits) - 1
    return value - (1 << bits) if value >> (bits - 1) else value


def _next_pc(cpu: RV32CPU) -> int:
    return (cpu.pc + 4) & _MASK


def _execute_r(inst: RType, cpu: RV32CPU) -> int:
    a, b = cpu[inst.rs1], cpu[inst.rs2]
    funct3, funct7 = inst.funct3, inst.funct7
    if funct3 == 0b000:
        if funct7 == 0b000_0000:
            result = a + b
        elif funct7 == 0b010_0000:
            result = a - b
        else:
            raise InvalidCode(inst.assemble())
    elif funct3 == 0b001:
        result = a << (b & 31)
    elif funct3 == 0b101:
        if funct7 == 0b000_0000:
            result = a >> (b & 31)
        elif funct7 == 0b010_0000:
            result = _signed(a) >> (b & 31)
        else:
            raise InvalidCode(inst.assemble())
    elif funct3 == 0b110:
        result = a | b
    elif funct3 == 0b111:
        result = a & b
    elif funct3 == 0b100:
        result = a ^ b
    elif funct3 == 0b010:
        result = int(_signed(a) < _signed(b))
    elif funct3 == 0b011:
        result = int(a < b)
    else:
        raise InvalidCode(inst.assemble())
    cpu[inst.rd] = result & _MASK
    return _next_pc(cpu)


def _immediate_op(inst: IType, value: int) -> int:
    imm, funct3 = inst.imm, inst.funct3
    if funct3 == 0b000:
        return value + imm
    if funct3 == 0b001:
        return value << (imm & 31)
    if funct3 == 0b101:
        shift = get_bits(imm, 5, 0) & 31
        if get_bits(imm, 10, 10) == 0:
            return value >> shift
        return _signed(value) >> shift
    if funct3 == 0b100:
        return value ^ imm
    if funct3 == 0b111:
        return value & imm
    if funct3 == 0b110:
        return value | imm
    if funct3 == 0b010:
        return int(_signed(value) < _signed(imm))
    if funct3 == 0b011:
        return int(value < imm)
    raise InvalidCode(inst.assemble())


_LOAD_SIZES = {0b000: 1, 0b001: 2, 0b010: 4, 0b100: 1, 0b101: 2}


def _execute_i(inst: IType, cpu: RV32CPU) -> int:
    base = cpu[inst.rs1]
    if inst.opcode == OP_JALR:
        target = (base + inst.imm) & _MASK
        cpu[inst.rd] = _next_pc(cpu)
        return target
    if inst.opcode == OP_IMM:
        cpu[inst.rd] = _immediate_op(inst, base) & _MASK
        return _next_pc(cpu)
    if inst.opcode == OP_LOAD:
        size = _LOAD_SIZES.get(inst.funct3)
        if size is None:
            raise InvalidCode(inst.assemble())
        addr = (base + inst.imm) & _MASK
        value = cpu.load_mem(addr, size)
        if value is None:
            raise InvalidMemory(addr)
        if inst.funct3 == 0b000:
            value = _signed(value, 8)
        elif inst.funct3 == 0b001:
            value = _signed(value, 16)
        cpu[inst.rd] = value & _MASK
        return _next_pc(cpu)
    raise InvalidCode(inst.assemble())


_STORE_SIZES = {0b000: 1, 0b001: 2, 0b010: 4}


def _execute_s(inst: SType, cpu: RV32CPU) -> int:
    size = _STORE_SIZES.get(inst.funct3)
    if size is None:
        raise InvalidCode(inst.assemble())
    addr = (cpu[inst.rs1] + inst.imm) & _MASK
    cpu.store_mem(addr, size, cpu[inst.rs2])
    return _next_pc(cpu)


_BRANCH_TESTS: dict[int, Callable[[int, int], bool]] = {
    0b000: lambda a, b: a == b,
    0b001: lambda a, b: a != b,
    0b100: lambda a, b: _signed(a) < _signed(b),
    0b101: lambda a, b: _signed(a) >= _signed(b),
    0b110: lambda a, b: a < b,
    0b111: lambda a, b: a >= b,
}


def _execute_b(inst: BType, cpu: RV32CPU) -> int:
    test = _BRANCH_TESTS.get(inst.funct3)
    if test is None:
        raise InvalidCode(inst.assemble())
    if test(cpu[inst.rs1], cpu[inst.rs2]):
        return (cpu.pc + inst.imm) & _MASK
    return _next_pc(cpu)


def _execute_u(inst: UType, cpu: RV32CPU) -> int:
    if inst.opcode == OP_LUI:
        cpu[inst.rd] = inst.imm
    elif inst.opcode == OP_AUIPC:
        cpu[inst.rd] = (inst.imm + cpu.pc) & _MASK
    else:
        raise InvalidCode(inst.assemble())
    return _next_pc(cpu)


def _execute_j(inst: JType, cpu: RV32CPU) -> int:
    cpu[inst.rd] = _next_pc(cpu)
    return (cpu.pc + inst.imm) & _MASK


def _execute_nop(inst: Nop, cpu: RV32CPU) -> int:
    return _next_pc(cpu)


def _read_csr(cpu: RV32CPU, inst: CsrType) -> int:
    value = cpu.read_csr(inst.csr)
    if value is None:
        raise InvalidCode(inst.assemble())
    return value


def _execute_csr(inst: CsrType, cpu: RV32CPU) -> int:
    code = inst.assemble()
    if code == ECALL:
        cpu.privilege_up()
        cpu.write_register_by_name("mepc", cpu.pc)
        cpu.write_register_by_name("mcause", _MCAUSE_ECALL)
        return cpu.read_register_by_name("mtvec")
    if code == EBREAK:
        raise Ebreak(_signed(cpu.read_register_by_name("a0"), 8))
    if code == SRET:
        cpu.privilege_down()
        return cpu.read_register_by_name("sepc")
    if code == MRET:
        cpu.privilege_down()
        return cpu.read_register_by_name("mepc")

    funct3 = inst.funct3
    if funct3 not in (0b001, 0b010, 0b011, 0b101, 0b110, 0b111):
        raise InvalidCode(code)
    old = _read_csr(cpu, inst)
    # Register forms take their operand from rs1; immediate forms use the field itself.
    operand = cpu[inst.rs1] if funct3 < 0b100 else inst.rs1
    cpu[inst.rd] = old
    if funct3 in (0b001, 0b101):
        new = operand
    elif funct3 in (0b010, 0b110):
        new = old | operand
    else:
        new = old & ~operand & _MASK
    cpu.write_csr(inst.csr, new)
    return _next_pc(cpu)


_HANDLERS: dict[type, Callable[[Instruction, RV32CPU], int]] = {
    RType: _execute_r,
    IType: _execute_i,
    SType: _execute_s,
    BType: _execute_b,
    UType: _execute_u,
    JType: _execute_j,
    CsrType: _execute_csr,
    Nop: _execute_nop,
}


def execute(inst: Instruction, cpu: RV32CPU) -> int:
    """Execute ``inst`` on ``cpu`` and return the next program counter.

    Raises Ebreak on ``ebreak``, InvalidCode for malformed instructions and
    InvalidMemory when a load cannot be satisfied.
    """
    handler = _HANDLERS.get(type(inst))
    if handler is None:
        raise InvalidCode(inst.assemble())
    return handler(inst, cpu)