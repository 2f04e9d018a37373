"""Console logging helpers, number parsing and emulator feature switches."""

from __future__ import annotations

import inspect
import os
import re

ENABLE_DEBUG = True

ENABLE_SERIAL = True
ENABLE_KBD = True
ENABLE_VGA = True
ENABLE_AUDIO = False
ENABLE_DISK = False
ENABLE_FB = False
ENABLE_TIMER = True

U32_MAX = 0xFFFF_FFFF

RDB_LOGO = r"""
██████╗ ██████╗ ██████╗ 
██╔══██╗██╔══██╗██╔══██╗
██████╔╝██║  ██║██████╔╝
██╔══██╗██║  ██║██╔══██╗
██║  ██║██████╔╝██████╔╝
╚═╝  ╚═╝╚═════╝ ╚═════╝ 
"""

_HEX = re.compile(r"\+?[0-9a-fA-F]+")
_DEC = re.compile(r"\+?[0-9]+")

_RESET = "\x1b[0m"
_BOLD = "\x1b[1m"
_BLUE_BOLD = "\x1b[1;34m"
_YELLOW_BOLD = "\x1b[1;33m"
_RED_BOLD = "\x1b[1;31m"


def parse_str(s: str) -> int:
    """Parse an unsigned 32-bit number, hexadecimal when prefixed with ``0x``.

    Raises ValueError when the text is not a valid number or does not fit.
    """
    if s.startswith("0x"):
        digits, base, pattern = s[2:], 16, _HEX
    else:
        digits, base, pattern = s, 10, _DEC
    if not pattern.fullmatch(digits):
        raise ValueError(f"invalid digit found in {s!r}")
    value = int(digits, base)
    if value > U32_MAX:
        raise ValueError(f"number too large to fit in 32 bits: {s!r}")
    return value


def _emit(label: str, colour: str, message: str, with_function: bool) -> None:
    frame = inspect.currentframe()
    caller = frame.f_back.f_back if frame and frame.f_back else None
    if caller is not None:
        where = f"{os.path.basename(caller.f_code.co_filename)}:{caller.f_lineno}"
        function = caller.f_code.co_name
    else:
        where, function = "?", "?"
    prefix = f"{colour}{label}{_RESET}"
    if with_function:
        print(f"{prefix}{function} [{where}] {message}")
    else:
        print(f"{prefix}[{where}] {message}")


def info(message: str) -> None:
    """Print an informational message."""
    _emit("[INFO] ", _BLUE_BOLD, message, with_function=False)


def warn(message: str) -> None:
    """Print a warning."""
    _emit("[WARN] ", _YELLOW_BOLD, message, with_function=True)


def error(message: str) -> None:
    """Print an error message."""
    _emit("[ERROR] ", _RED_BOLD, message, with_function=True)


def debug(message: str) -> None:
    """Print a debugging message."""
    _emit("[DEBUG] ", _BOLD, message, with_function=True)


def fatal(message: str) -> None:
    """Print a fatal error message."""
    _emit("[FATAL]: ", _RED_BOLD, message, with_function=True)