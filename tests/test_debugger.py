import io

import pytest

from rvemu.cpu import RV32CPU
from rvemu.debugger import (
    Command,
    CommandKind,
    Debugger,
    DebuggerState,
    parse_command,
)
from rvemu.memory import Memory

ADDI_RA_5 = 0x00500093  # addi ra, zero, 5
ADDI_RA_RA_1 = 0x00108093  # addi ra, ra, 1
EBREAK = 0x00100073


def make_cpu(*codes):
    cpu = RV32CPU(memory=Memory())
    for i, code in enumerate(codes):
        cpu.store_mem(i * 4, 4, code)
    return cpu


@pytest.fixture
def out():
    return io.StringIO()


@pytest.mark.parametrize(
    "text, expected",
    [
        ("c", Command(CommandKind.CONTINUE)),
        ("s", Command(CommandKind.STEP, 1)),
        ("s 10", Command(CommandKind.STEP, 10)),
        ("p x1", Command(CommandKind.PRINT, "x1")),
        ("b 0x100", Command(CommandKind.BREAKPOINT, "0x100")),
        ("q", Command(CommandKind.QUIT)),
        ("r", Command(CommandKind.RUN)),
        ("d 1", Command(CommandKind.DELETE, 1)),
        ("invalid", None),
    ],
)
def test_command_parse(text, expected):
    assert parse_command(text) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", Command(CommandKind.BLANK)),
        ("cls", Command(CommandKind.CLEAR)),
        ("help", Command(CommandKind.HELP)),
        ("show asm", Command(CommandKind.SHOW, "asm")),
        ("layout reg", Command(CommandKind.SHOW, "reg")),
        ("d", Command(CommandKind.STEP, 1)),
        ("s abc", None),
        ("d 256", None),
        ("p", None),
        ("show", None),
    ],
)
def test_command_parse_edge_cases(text, expected):
    assert parse_command(text) == expected


def test_step_executes_instruction(out):
    cpu = make_cpu(ADDI_RA_5, EBREAK)
    dbg = Debugger(out)
    assert dbg.handle(cpu, "s") is True
    assert cpu[1] == 5
    assert cpu.pc == 4
    assert dbg.state is DebuggerState.PAUSED


def test_step_into_ebreak_exits(out):
    cpu = make_cpu(ADDI_RA_5, EBREAK)
    dbg = Debugger(out)
    dbg.handle(cpu, "s 2")
    assert dbg.state is DebuggerState.EXIT
    assert "ebreak" in out.getvalue()
    dbg.handle(cpu, "s")
    assert "The program is exit." in out.getvalue()


def test_continue_requires_pause(out):
    cpu = make_cpu(ADDI_RA_5, EBREAK)
    dbg = Debugger(out)
    dbg.handle(cpu, "c")
    assert "The program is not paused." in out.getvalue()
    assert cpu.pc == 0


def test_breakpoint_stops_run(out):
    cpu = make_cpu(ADDI_RA_5, ADDI_RA_RA_1, EBREAK)
    dbg = Debugger(out)
    dbg.handle(cpu, "b $ra")
    assert "Breakpoint 1 at $ra" in out.getvalue()
    dbg.handle(cpu, "r")
    assert "Breakpoint hit: $ra = 5" in out.getvalue()
    assert dbg.state is DebuggerState.PAUSED
    assert cpu.pc == 4


def test_run_to_ebreak(out):
    cpu = make_cpu(ADDI_RA_5, ADDI_RA_RA_1, EBREAK)
    dbg = Debugger(out)
    dbg.handle(cpu, "r")
    assert dbg.state is DebuggerState.EXIT
    assert cpu[1] == 6


def test_delete_breakpoint(out):
    cpu = make_cpu(ADDI_RA_5, EBREAK)
    dbg = Debugger(out)
    dbg.handle(cpu, "b $ra")
    dbg.handle(cpu, "d 1")
    assert dbg.breakpoints.exists() is False
    assert list(dbg.breakpoints.entries()) == []


def test_invalid_breakpoint_expression(out):
    dbg = Debugger(out)
    dbg.handle(make_cpu(), "b $nosuch")
    assert "Invalid expression" in out.getvalue()
    assert dbg.breakpoints.exists() is False


def test_print_expression(out):
    cpu = make_cpu(ADDI_RA_5)
    dbg = Debugger(out)
    dbg.handle(cpu, "s")
    dbg.handle(cpu, "p $ra")
    assert out.getvalue().splitlines()[-1] == "0x5"


def test_print_invalid_expression(out):
    Debugger(out).handle(make_cpu(), "p $zz")
    assert out.getvalue().strip() == "Invalid expression"


def test_invalid_command(out):
    Debugger(out).handle(make_cpu(), "foo")
    assert "'foo' is not a valid command" in out.getvalue()


def test_invalid_layout(out):
    Debugger(out).handle(make_cpu(), "show nothing")
    assert "'nothing' is not a valid layout argument" in out.getvalue()


def test_quit(out):
    dbg = Debugger(out)
    assert dbg.handle(make_cpu(), "q") is False
    assert dbg.state is DebuggerState.EXIT


def test_help(out):
    Debugger(out).handle(make_cpu(), "h")
    assert out.getvalue().startswith("Commands:")


def test_show_registers(out):
    cpu = make_cpu(ADDI_RA_5)
    dbg = Debugger(out)
    dbg.handle(cpu, "s")
    dbg.show_registers(cpu)
    lines = out.getvalue().splitlines()
    assert len(lines) == 9
    assert lines[0].startswith("zero")
    assert "0x5" in lines[0]
    assert lines[-1].startswith("pc")


def test_show_asm(out):
    cpu = make_cpu(ADDI_RA_5, EBREAK)
    Debugger(out).show_asm(cpu)
    lines = out.getvalue().splitlines()
    assert len(lines) == 11
    current = [line for line in lines if line.startswith(">")]
    assert len(current) == 1
    assert "0x00000000" in current[0]
    assert current[0].rstrip("│").endswith("li ra 5")
    assert "ebreak" in lines[2]
    assert "<???>" in lines[3]


def test_show_breakpoints(out):
    cpu = make_cpu(ADDI_RA_5)
    dbg = Debugger(out)
    dbg.handle(cpu, "b $pc")
    dbg.handle(cpu, "show break")
    assert out.getvalue().splitlines()[-1] == "1: $pc"


def test_debug_stops_at_quit(out):
    cpu = make_cpu(ADDI_RA_5, ADDI_RA_RA_1, EBREAK)
    dbg = Debugger(out)
    dbg.debug(cpu, ["s", "q", "s"])
    assert cpu.pc == 4
    assert dbg.state is DebuggerState.EXIT
    assert "██████╗" in out.getvalue()


def test_debug_ends_when_input_runs_out(out):
    cpu = make_cpu(ADDI_RA_5, ADDI_RA_RA_1, EBREAK)
    dbg = Debugger(out)
    dbg.debug(cpu, ["s 2"])
    assert cpu[1] == 6
    assert dbg.state is DebuggerState.PAUSED