"""Watch-expression breakpoints for the debugger."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rvemu.evaluate import evaluate

if TYPE_CHECKING:
    from rvemu.cpu import RV32CPU


@dataclass
class _Breakpoint:
    exp: str
    original_value: int
    valid: bool = True


@dataclass(frozen=True)
class BreakpointHit:
    """A breakpoint whose expression changed value."""

    index: int
    exp: str
    value: int

    def __str__(self) -> str:
        return f"Breakpoint hit: {self.exp} = {self.value}"


class Breakpoints:
    """Breakpoints that trigger when their expression's value changes.

    Slot 0 holds a disabled placeholder, so user breakpoints are numbered
    from 1.
    """

    def __init__(self) -> None:
        self._entries = [_Breakpoint("0", 0, valid=False)]

    def make(self, cpu: RV32CPU, exp: str) -> int:
        """Add a breakpoint on ``exp`` and return its number.

        A disabled breakpoint with the same expression is re-enabled instead.
        Raises ExpressionError when ``exp`` cannot be evaluated.
        """
        value = evaluate(cpu, exp)
        for index, bp in enumerate(self._entries):
            if not bp.valid and bp.exp == exp:
                bp.valid = True
                bp.original_value = value
                return index
        self._entries.append(_Breakpoint(exp, value))
        return len(self._entries) - 1

    def check(self, cpu: RV32CPU) -> BreakpointHit | None:
        """Return the first enabled breakpoint whose value changed, if any."""
        for index, bp in enumerate(self._entries):
            if bp.valid:
                value = evaluate(cpu, bp.exp)
                if value != bp.original_value:
                    return BreakpointHit(index, bp.exp, value)
        return None

    def delete(self, index: int) -> None:
        """Disable breakpoint ``index``; unknown numbers are ignored."""
        if 0 <= index < len(self._entries):
            self._entries[index].valid = False

    def entries(self) -> Iterator[tuple[int, str]]:
        """Number and expression of each enabled user breakpoint."""
        for index, bp in enumerate(self._entries):
            if index and bp.valid:
                yield index, bp.exp

    def exists(self) -> bool:
        """Whether any breakpoint is enabled."""
        return any(bp.valid for bp in self._entries)