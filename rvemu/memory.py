"""Physical memory with memory-mapped devices."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from rvemu.isa import InvalidMemory

MEMORY_SIZE = 0x1_0000_0000
_PAGE_BITS = 12
_PAGE_SIZE = 1 << _PAGE_BITS


class Device(ABC):
    """A device mapped into the address space."""

    @abstractmethod
    def matches(self, addr: int) -> bool:
        """Whether this device answers for ``addr``."""

    @abstractmethod
    def read(self, addr: int) -> int | None:
        """Read the device register at ``addr``."""

    @abstractmethod
    def write(self, addr: int, value: int) -> None:
        """Write ``value`` to the device register at ``addr``."""

    def update(self) -> None:
        """Advance the device's own state; does nothing by default."""


class Memory:
    """Four gigabytes of little-endian memory, allocated page by page."""

    def __init__(self, devices: Iterable[Device] | None = None) -> None:
        self.devices: list[Device] = list(devices or [])
        self._pages: dict[int, bytearray] = {}

    def _device_for(self, addr: int) -> Device | None:
        return next((d for d in self.devices if d.matches(addr)), None)

    def _check(self, index: int, size: int) -> None:
        if index < 0 or index + size > MEMORY_SIZE:
            raise InvalidMemory(index)

    def _read_byte(self, addr: int) -> int:
        page = self._pages.get(addr >> _PAGE_BITS)
        return 0 if page is None else page[addr & (_PAGE_SIZE - 1)]

    def _write_byte(self, addr: int, value: int) -> None:
        page = self._pages.setdefault(addr >> _PAGE_BITS, bytearray(_PAGE_SIZE))
        page[addr & (_PAGE_SIZE - 1)] = value & 0xFF

    def load(self, index: int, size: int) -> int | None:
        """Read ``size`` bytes at ``index``, or ask the device mapped there."""
        device = self._device_for(index)
        if device is not None:
            return device.read(index)
        self._check(index, size)
        return sum(self._read_byte(index + i) << (8 * i) for i in range(size))

    def store(self, index: int, size: int, value: int) -> None:
        """Write the low ``size`` bytes of ``value``, or hand it to a device."""
        device = self._device_for(index)
        if device is not None:
            device.write(index, value)
            return
        self._check(index, size)
        for i in range(size):
            self._write_byte(index + i, value >> (8 * i))

    def update_devices(self) -> None:
        """Let every device advance its state."""
        for device in self.devices:
            device.update()