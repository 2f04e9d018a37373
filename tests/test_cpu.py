import pytest

from rvemu.cpu import PrivilegeMode, RV32CPU
from rvemu.isa import Ebreak, InvalidCode
from rvemu.memory import Device, Memory
from rvemu.registers import Registers


def test_basic():
    cpu = RV32CPU()
    cpu[4] = 100
    assert cpu[4] == 100


def test_x0_reads_zero():
    cpu = RV32CPU()
    cpu[0] = 42
    assert cpu[0] == 0


def test_uses_given_registers():
    regs = Registers()
    regs[5] = 9
    cpu = RV32CPU(registers=regs)
    assert cpu[5] == 9
    assert cpu.read_register_by_name("t0") == 9


def test_default_mode_is_supervisor():
    assert RV32CPU().mode is PrivilegeMode.SUPERVISOR


def test_privilege_transitions():
    cpu = RV32CPU()
    cpu.privilege_up()
    assert cpu.mode is PrivilegeMode.MACHINE
    cpu.privilege_up()
    assert cpu.mode is PrivilegeMode.MACHINE
    cpu.privilege_down()
    assert cpu.mode is PrivilegeMode.SUPERVISOR
    cpu.privilege_down()
    assert cpu.mode is PrivilegeMode.USER
    cpu.privilege_down()
    assert cpu.mode is PrivilegeMode.USER


def test_user_mode_addresses_are_offset():
    cpu = RV32CPU(user_app_size=0x1000)
    cpu.write_register_by_name("mstatus", 2)
    cpu.privilege_down()
    cpu.store_mem(0x10, 4, 0xCAFEBABE)
    assert cpu.load_mem(0x10, 4) == 0xCAFEBABE
    cpu.privilege_up()
    assert cpu.load_mem(0x2010, 4) == 0xCAFEBABE
    assert cpu.load_mem(0x10, 4) == 0


def test_name_and_csr_access():
    cpu = RV32CPU()
    assert cpu.name_to_index("a0") == 10
    cpu.write_csr(0x341, 0x1234)
    assert cpu.read_register_by_name("mepc") == 0x1234
    assert cpu.read_register_by_name("nosuch") is None


def test_register_items_end_with_pc():
    cpu = RV32CPU()
    cpu.update_pc(0x80)
    items = cpu.register_items()
    assert len(items) == 33
    assert items[-1] == ("pc", 0x80)
    assert items[0][0] == "zero"


def test_disassemble():
    cpu = RV32CPU()
    cpu.store_mem(0, 4, 0x00FF10B7)
    assert cpu.disassemble(0) == "lui ra, 0xff1"


def test_execute_invalid_code():
    cpu = RV32CPU()
    with pytest.raises(InvalidCode):
        cpu.execute(0xFFFFFFFF)


def test_step_advances_pc():
    cpu = RV32CPU()
    cpu.store_mem(0, 4, 0x00300513)  # addi a0, zero, 3
    cpu.step()
    assert cpu.pc == 4
    assert cpu.read_register_by_name("a0") == 3


def test_run_until_ebreak():
    cpu = RV32CPU()
    cpu.store_mem(0, 4, 0x00300513)  # addi a0, zero, 3
    cpu.store_mem(4, 4, 0x00100073)  # ebreak
    with pytest.raises(Ebreak) as info:
        cpu.run()
    assert info.value.code == 3
    assert cpu.pc == 4


class _CountingDevice(Device):
    def __init__(self):
        self.updates = 0

    def matches(self, addr):
        return False

    def read(self, addr):
        return None

    def write(self, addr, value):
        pass

    def update(self):
        self.updates += 1


def test_name_and_xlen():
    cpu = RV32CPU()
    assert cpu.name == "RISC-V 32"
    assert cpu.xlen == 32