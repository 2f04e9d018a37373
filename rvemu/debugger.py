"""Interactive command-line debugger driving an RV32 CPU."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, TextIO, Union

from rvemu.breakpoint import Breakpoints
from rvemu.evaluate import ExpressionError, evaluate
from rvemu.isa import Ebreak, EmulatorError
from rvemu.util import RDB_LOGO

if TYPE_CHECKING:
    from rvemu.cpu import RV32CPU

_RED = "\x1b[31m"
_RESET = "\x1b[0m"
_PROMPT = "\x1b[1;38;2;169;169;169m(rdb)\x1b[0m "
_CLEAR_SCREEN = "\x1b[2J\x1b[1;1H"
_U64_MAX = (1 << 64) - 1
_U8_MAX = 0xFF

HELP_TEXT = (
    "Commands:\n"
    "  c, continue\t\tContinue execution\n"
    "  s, step [count]\tStep through [count] instructions\n"
    "  show [layout]\t\tShow the current [layout]\n"
    "  p, print [expression]\tPrint the value of [expression]\n"
    "  b, breakpoint [expr]\tSet a breakpoint at [addr]\n"
    "  d, delete [number]\tDelete breakpoint [number]\n"
    "  r, run\t\tRun until breakpoint\n"
    "  l, layout [layout]\tSet the layout to [layout]\n"
    "  h, help\t\tShow this help message\n"
    "  q, quit\t\tQuit the debugger\n"
    "  clear, cls\t\tClear the screen"
)


class CommandKind(Enum):
    """The commands the debugger understands."""

    RUN = auto()
    CONTINUE = auto()
    STEP = auto()
    PRINT = auto()
    BREAKPOINT = auto()
    DELETE = auto()
    BLANK = auto()
    SHOW = auto()
    HELP = auto()
    QUIT = auto()
    CLEAR = auto()


@dataclass(frozen=True)
class Command:
    """A parsed command with its optional argument."""

    kind: CommandKind
    argument: Union[int, str, None] = None


def _parse_unsigned(text: str, limit: int) -> int | None:
    digits = text[1:] if text.startswith("+") else text
    if not digits or not (digits.isascii() and digits.isdigit()):
        return None
    value = int(digits)
    return value if value <= limit else None


_SIMPLE = {
    "clear": CommandKind.CLEAR,
    "cls": CommandKind.CLEAR,
    "c": CommandKind.CONTINUE,
    "continue": CommandKind.CONTINUE,
    "h": CommandKind.HELP,
    "help": CommandKind.HELP,
    "q": CommandKind.QUIT,
    "quit": CommandKind.QUIT,
    "r": CommandKind.RUN,
    "run": CommandKind.RUN,
}
_WITH_TEXT = {
    "p": CommandKind.PRINT,
    "print": CommandKind.PRINT,
    "b": CommandKind.BREAKPOINT,
    "breakpoint": CommandKind.BREAKPOINT,
    "show": CommandKind.SHOW,
    "layout": CommandKind.SHOW,
}


def parse_command(text: str) -> Command | None:
    """Parse one line of debugger input; None when it is not a valid command."""
    tokens = text.split()
    if not tokens:
        return Command(CommandKind.BLANK)
    name, rest = tokens[0], tokens[1:]
    if name in _SIMPLE:
        return Command(_SIMPLE[name])
    if name in _WITH_TEXT:
        return Command(_WITH_TEXT[name], rest[0]) if rest else None
    if name in ("s", "step"):
        if not rest:
            return Command(CommandKind.STEP, 1)
        count = _parse_unsigned(rest[0], _U64_MAX)
        return None if count is None else Command(CommandKind.STEP, count)
    if name in ("d", "delete"):
        if not rest:
            # A bare delete behaves like a single step.
            return Command(CommandKind.STEP, 1)
        number = _parse_unsigned(rest[0], _U8_MAX)
        return None if number is None else Command(CommandKind.DELETE, number)
    return None


class DebuggerState(Enum):
    """Execution state of the program under the debugger."""

    RUNNING = auto()
    PAUSED = auto()
    EXIT = auto()
    INIT = auto()


def _stdin_lines() -> Iterator[str]:
    while line := sys.stdin.readline():
        yield line


class Debugger:
    """Steps a CPU, evaluates expressions and stops on breakpoints."""

    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out if out is not None else sys.stdout
        self.state = DebuggerState.INIT
        self.breakpoints = Breakpoints()

    def _print(self, *parts: object, end: str = "\n") -> None:
        print(*parts, end=end, file=self.out)

    def _error(self, message: str) -> None:
        self._print(f"{_RED}Error{_RESET}: {message}")

    def continue_(self, cpu: RV32CPU) -> None:
        """Run until an error, an ebreak or a breakpoint stops the program."""
        self.state = DebuggerState.RUNNING
        while self.state is DebuggerState.RUNNING:
            try:
                self.step(cpu, 1)
                self.state = DebuggerState.RUNNING
            except Ebreak as exc:
                self._print(exc)
                self.state = DebuggerState.EXIT
                return
            except EmulatorError as exc:
                self.state = DebuggerState.PAUSED
                self._print(f"continue: {exc}")
            self._check_breakpoints(cpu)

    def step(self, cpu: RV32CPU, count: int) -> None:
        """Execute ``count`` instructions; errors from the CPU propagate."""
        for _ in range(count):
            cpu.step()
        self.state = DebuggerState.PAUSED

    def _check_breakpoints(self, cpu: RV32CPU) -> None:
        if not self.breakpoints.exists():
            return
        hit = self.breakpoints.check(cpu)
        if hit is not None:
            self._print(hit)
            self.state = DebuggerState.PAUSED

    def _print_expression(self, cpu: RV32CPU, exp: str) -> None:
        try:
            value = evaluate(cpu, exp)
        except ExpressionError:
            self._print("Invalid expression")
            return
        self._print(f"{value:#x}")

    def _make_breakpoint(self, cpu: RV32CPU, exp: str) -> None:
        try:
            number = self.breakpoints.make(cpu, exp)
        except ExpressionError:
            self._error("Invalid expression")
            return
        self._print(f"Breakpoint {number} at {exp}")

    def show_registers(self, cpu: RV32CPU) -> None:
        """Print every register, four to a line."""
        count = 0
        for name, value in cpu.register_items():
            self._print(f"{name:12} {value:#10x}   ", end="")
            count += 1
            if count % 4 == 0:
                self._print()
        if count % 4 != 0:
            self._print()

    def _draw_line(self) -> None:
        self._print(" │" + "─" * 61 + "│")

    def show_asm(self, cpu: RV32CPU) -> None:
        """Disassemble the instructions around the pc."""
        pc = cpu.pc
        low = max(pc - 0x10, 0)
        high = pc + 0x20
        self._draw_line()
        for addr in range(low, high + 1, 4):
            marker = ">" if addr == pc else " "
            try:
                text = cpu.disassemble(addr)
            except EmulatorError:
                text = "<???>"
            self._print(f"{marker}│{addr:#010x} {text:>50}│")
        self._draw_line()

    def _show_memory(self, cpu: RV32CPU) -> None:
        base = cpu.pc & ~0xF
        for row in range(4):
            addr = base + row * 16
            words = []
            for offset in range(0, 16, 4):
                try:
                    value = cpu.load_mem(addr + offset, 4)
                except EmulatorError:
                    value = None
                words.append("????????" if value is None else f"{value:08x}")
            self._print(f"{addr:#010x}: {' '.join(words)}")

    def _show(self, cpu: RV32CPU, layout: str) -> None:
        if layout.startswith("asm"):
            self.show_asm(cpu)
        elif layout.startswith("reg"):
            self.show_registers(cpu)
        elif layout.startswith("mem"):
            self._show_memory(cpu)
        elif layout.startswith("break"):
            for number, exp in self.breakpoints.entries():
                self._print(f"{number}: {exp}")
        else:
            self._error(f"'{layout}' is not a valid layout argument")

    def _step_command(self, cpu: RV32CPU, count: int) -> None:
        if self.state is DebuggerState.EXIT:
            self._print("The program is exit.")
            return
        try:
            self.step(cpu, count)
        except Ebreak:
            self.state = DebuggerState.EXIT
            self._print(Ebreak(0))
        except EmulatorError as exc:
            self._print(exc)

    def handle(self, cpu: RV32CPU, text: str) -> bool:
        """Carry out one line of input; returns False when the user quits."""
        line = text.strip()
        command = parse_command(line)
        if command is None:
            self._error(f"'{line}' is not a valid command")
            return True
        kind, arg = command.kind, command.argument
        if kind is CommandKind.CONTINUE:
            if self.state is not DebuggerState.PAUSED:
                self._print("The program is not paused.")
            else:
                self.continue_(cpu)
        elif kind is CommandKind.STEP:
            self._step_command(cpu, arg)
        elif kind is CommandKind.PRINT:
            self._print_expression(cpu, arg)
        elif kind is CommandKind.BREAKPOINT:
            self._make_breakpoint(cpu, arg)
        elif kind is CommandKind.QUIT:
            self.state = DebuggerState.EXIT
            return False
        elif kind is CommandKind.RUN:
            self.continue_(cpu)
        elif kind is CommandKind.DELETE:
            self.breakpoints.delete(arg)
        elif kind is CommandKind.SHOW:
            self._show(cpu, arg)
        elif kind is CommandKind.CLEAR:
            self._print(_CLEAR_SCREEN, end="")
        elif kind is CommandKind.HELP:
            self._print(HELP_TEXT)
        return True

    def debug(self, cpu: RV32CPU, lines: Iterable[str] | None = None) -> None:
        """Read commands from ``lines`` (standard input by default) until quit."""
        self._print(RDB_LOGO)
        source = iter(lines) if lines is not None else _stdin_lines()
        while True:
            self._print(_PROMPT, end="")
            self.out.flush()
            line = next(source, None)
            if line is None or not self.handle(cpu, line):
                return