"""Abstract instruction-set machine and the errors raised while emulating."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


class EmulatorError(Exception):
    """Base class for errors raised by the emulator."""


class Ebreak(EmulatorError):
    """The program executed ``ebreak``; ``code`` is its exit code."""

    def __init__(self, code: int) -> None:
        super().__init__(f"program stopped by ebreak with exit code {code}")
        self.code = code


class InvalidCode(EmulatorError):
    """A machine word could not be decoded or executed."""

    def __init__(self, code: int) -> None:
        super().__init__(f"invalid instruction code {code:#010x}")
        self.code = code


class InvalidMemory(EmulatorError):
    """An address could not be read or written."""

    def __init__(self, addr: int) -> None:
        super().__init__(f"invalid memory access at {addr:#x}")
        self.addr = addr


class Isa(ABC):
    """A machine that fetches, executes and retires instructions."""

    name = "generic"
    xlen = 32

    @abstractmethod
    def load_mem(self, index: int, size: int) -> int | None:
        """Read ``size`` bytes at ``index``; None when nothing can be read."""

    @abstractmethod
    def store_mem(self, index: int, size: int, value: int) -> None:
        """Write the low ``size`` bytes of ``value`` at ``index``."""

    @property
    @abstractmethod
    def pc(self) -> int:
        """The current program counter."""

    @abstractmethod
    def update_pc(self, pc: int) -> None:
        """Set the program counter."""

    @abstractmethod
    def execute(self, code: int) -> int:
        """Execute one machine word and return the next program counter."""

    @abstractmethod
    def device_update(self) -> None:
        """Give attached devices a chance to run."""

    def store_many(self, index: int, values: Iterable[int]) -> None:
        """Store each value as a single byte at consecutive addresses."""
        for offset, value in enumerate(values):
            self.store_mem(index + offset, 1, value)

    def fetch_inst(self, pc: int) -> int:
        """Fetch the 32-bit instruction word at ``pc``."""
        code = self.load_mem(pc, 4)
        if code is None:
            raise InvalidMemory(pc)
        return code

    def step(self) -> None:
        """Execute one instruction and update devices."""
        code = self.fetch_inst(self.pc)
        next_pc = self.execute(code)
        self.update_pc(next_pc)
        self.device_update()

    def run(self) -> None:
        """Step until an error (such as Ebreak) is raised."""
        while True:
            self.step()