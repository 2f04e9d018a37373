import pytest

from rvemu.instruction import (
    BType,
    CsrType,
    IType,
    JType,
    Nop,
    RType,
    SType,
    UType,
    decode,
    get_bits,
)
from rvemu.isa import InvalidCode


def test_get_bits():
    assert get_bits(0b1011_0000, 7, 4) == 0b1011
    assert get_bits(0xFFFF_F800, 11, 10) == 0b10
    assert get_bits(0x404, 5, 0) == 4


def test_add_display_and_round_trip():
    add = RType(0, 1, 2, 0, 3, 0b0110011)
    assert add.to_string() if False else str(add) == "add gp, ra, sp"
    code = 0b01000001111100011000001110110011
    assert decode(code).assemble() == code


def test_add_to_zero_is_nop():
    assert str(RType(0, 1, 2, 0, 0, 0b0110011)) == "nop"


def test_and_sltu_slt_display():
    assert str(RType(0, 17, 18, 0b111, 12, 0b0110011)) == "and a2, a7, s2"
    assert str(RType(0, 17, 18, 0b011, 12, 0b0110011)) == "sltu a2, a7, s2"
    assert RType(0, 17, 18, 0b010, 12, 0b0110011).disassemble() == "slt a2, a7, s2"


def test_srli_srai_display():
    assert str(IType(4, 17, 0b101, 12, 0b0010011)) == "srli a2, a7, 4"
    assert str(IType((1 << 10) + 4, 17, 0b101, 12, 0b0010011)) == "srai a2, a7, 4"


def test_csr_round_trip_and_display():
    code = 0x30352073
    inst = decode(code)
    assert inst.assemble() == code
    assert inst == CsrType(0x303, 10, 0b010, 0, 0b1110011)
    assert str(inst) == "csrrs zero, a0, 0x303"


def test_addi_decode():
    code = 0xFFF08093
    inst = decode(code)
    assert inst == IType(0xFFFFFFFF, 1, 0, 1, 0b0010011)
    assert inst.assemble() == code
    assert str(inst) == "addi ra, ra, 0xffffffff"


def test_li_and_mv():
    assert str(decode(0x00500093)) == "li ra 5"
    assert str(decode(0x00010093)) == "mv ra sp"


def test_bne_decode():
    code = 0xFE5214E3
    inst = decode(code)
    assert inst == BType(0xFFFFFFE8, 4, 5, 0b001, 0b1100011)
    assert inst.assemble() == code
    assert str(inst) == "bne tp, t0, 0xffffffe8"


def test_load_store():
    lw = decode(0x0040A103)
    assert str(lw) == "lw x2, 4(x1)"
    assert lw.assemble() == 0x0040A103
    sw = decode(0x0020A423)
    assert sw == SType(8, 1, 2, 0b010)
    assert str(sw) == "sw sp , 8(ra)"
    assert sw.assemble() == 0x0020A423


def test_jalr_and_jal():
    assert str(decode(0x00008067)) == "jalr x0, x1, 0"
    jal = decode(0x008000EF)
    assert jal == JType(8, 1)
    assert str(jal) == "jal ra, 0x8"
    assert jal.assemble() == 0x008000EF


def test_lui():
    inst = decode(0x00FF10B7)
    assert inst == UType(0x00FF1000, 1, 0b0110111)
    assert str(inst) == "lui ra, 0xff1"
    assert UType(0xFF1, 1, 0b0110111).assemble() == 0x00FF10B7


def test_system_instructions():
    assert str(decode(0x00000073)) == "ecall"
    assert str(decode(0x00100073)) == "ebreak"
    assert str(decode(0x30200073)) == "mret"
    assert str(decode(0x10200073)) == "sret"


def test_fence_is_nop():
    inst = decode(0x0FF0000F)
    assert inst == Nop()
    assert str(inst) == "nop"
    assert inst.assemble() == 0b0001111


def test_invalid_opcode():
    with pytest.raises(InvalidCode) as info:
        decode(0xFFFFFFFF)
    assert info.value.code == 0xFFFFFFFF


def test_invalid_funct7_display():
    with pytest.raises(InvalidCode):
        str(RType(1, 1, 2, 0, 3, 0b0110011))


def test_invalid_system_csr_display():
    with pytest.raises(InvalidCode):
        str(CsrType(0x7FF, 0, 0, 0, 0b1110011))