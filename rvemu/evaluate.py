"""Tokenizer and evaluator for debugger expressions such as ``$pc == 0x1000``."""

from __future__ import annotations

import string
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Union

from rvemu.isa import InvalidMemory

if TYPE_CHECKING:
    from rvemu.cpu import RV32CPU

_U64 = (1 << 64) - 1
_U32 = 0xFFFF_FFFF


class ExpressionError(ValueError):
    """An expression could not be tokenized or evaluated."""


class Op(Enum):
    """Operators understood in expressions; STAR is a memory dereference."""

    ADD = auto()
    SUB = auto()
    MUL = auto()
    DIV = auto()
    AND = auto()
    OR = auto()
    EQ = auto()
    NE = auto()
    BIT_AND = auto()
    BIT_OR = auto()
    STAR = auto()

    @property
    def precedence(self) -> int:
        """Binding strength; lower values split an expression first."""
        return _PRECEDENCE[self]


_PRECEDENCE = {
    Op.AND: 1,
    Op.OR: 1,
    Op.EQ: 2,
    Op.NE: 2,
    Op.BIT_AND: 3,
    Op.BIT_OR: 4,
    Op.ADD: 5,
    Op.SUB: 5,
    Op.MUL: 6,
    Op.DIV: 6,
    Op.STAR: 7,
}


class TokenKind(Enum):
    """Kinds of expression tokens."""

    NUMBER = auto()
    OPERATOR = auto()
    LPAREN = auto()
    RPAREN = auto()
    REGISTER = auto()


@dataclass(frozen=True)
class Token:
    """One token: a number, an operator, a parenthesis or a register name."""

    kind: TokenKind
    value: Union[int, Op, str, None] = None

    @classmethod
    def number(cls, value: int) -> Token:
        return cls(TokenKind.NUMBER, value)

    @classmethod
    def operator(cls, op: Op) -> Token:
        return cls(TokenKind.OPERATOR, op)

    @classmethod
    def register(cls, name: str) -> Token:
        return cls(TokenKind.REGISTER, name)


LPAREN = Token(TokenKind.LPAREN)
RPAREN = Token(TokenKind.RPAREN)

_SINGLE = {
    "+": Token.operator(Op.ADD),
    "-": Token.operator(Op.SUB),
    "*": Token.operator(Op.MUL),
    "/": Token.operator(Op.DIV),
    "(": LPAREN,
    ")": RPAREN,
}
# Characters that may be doubled: (single form, doubled form); None means invalid.
_DOUBLED = {
    "&": (Token.operator(Op.BIT_AND), Token.operator(Op.AND)),
    "|": (Token.operator(Op.BIT_OR), Token.operator(Op.OR)),
    "=": (None, Token.operator(Op.EQ)),
    "!": (None, Token.operator(Op.NE)),
}


class _Chars:
    """A character stream with one character of lookahead."""

    def __init__(self, text: str) -> None:
        self._it = iter(text)
        self._next = next(self._it, None)

    def peek(self) -> str | None:
        return self._next

    def take(self) -> str | None:
        current = self._next
        self._next = next(self._it, None)
        return current


def _is_ascii_digit(c: str | None) -> bool:
    return c is not None and c.isascii() and c.isdigit()


def _is_alnum(c: str | None) -> bool:
    return c is not None and c.isalnum()


def _read_hex(chars: _Chars) -> int:
    num = 0
    while _is_alnum(chars.peek()):
        c = chars.take()
        if c not in string.hexdigits:
            raise ExpressionError(f"invalid hexadecimal digit {c!r}")
        num = (num * 16 + int(c, 16)) & _U64
    return num


def _read_decimal(first: str, chars: _Chars) -> int:
    num = int(first)
    while _is_ascii_digit(chars.peek()):
        num = (num * 10 + int(chars.take())) & _U64
        # Each digit after the first also swallows the character following it.
        chars.take()
    return num


def tokenize(exp: str) -> list[Token]:
    """Split ``exp`` into tokens; raises ExpressionError on invalid input."""
    tokens: list[Token] = []
    chars = _Chars(exp)
    while (c := chars.take()) is not None:
        if c.isascii() and c.isspace():
            continue
        if _is_ascii_digit(c):
            if c == "0" and chars.peek() == "x":
                chars.take()
                tokens.append(Token.number(_read_hex(chars)))
            else:
                tokens.append(Token.number(_read_decimal(c, chars)))
        elif c == "$":
            name = []
            while _is_alnum(chars.peek()):
                name.append(chars.take())
            tokens.append(Token.register("".join(name)))
        elif c in _SINGLE:
            tokens.append(_SINGLE[c])
        elif c in _DOUBLED:
            single, doubled = _DOUBLED[c]
            if chars.peek() == c:
                chars.take()
                tokens.append(doubled)
            elif single is not None:
                tokens.append(single)
            else:
                raise ExpressionError(f"expected {c}{c if c == '=' else '='}")
        else:
            raise ExpressionError(f"unexpected character {c!r}")

    mul = Token.operator(Op.MUL)
    result: list[Token] = []
    for token in tokens:
        if token == mul and (
            not result or result[-1].kind in (TokenKind.LPAREN, TokenKind.OPERATOR)
        ):
            token = Token.operator(Op.STAR)
        result.append(token)
    return result


def find_delimiter(tokens: list[Token], start: int, end: int) -> int | None:
    """Index of the main operator in ``tokens[start..end]``, or None.

    The operator with the lowest precedence outside parentheses wins; among
    equals the rightmost one is chosen.
    """
    if start >= end:
        return None
    found = None
    precedence = None
    depth = 0
    for i, token in enumerate(tokens[start:end], start):
        if token.kind is TokenKind.LPAREN:
            depth += 1
        elif token.kind is TokenKind.RPAREN:
            depth -= 1
            if depth == 0:
                return None
        elif token.kind is TokenKind.OPERATOR and depth == 0:
            op_precedence = token.value.precedence
            if precedence is None or op_precedence <= precedence:
                found = i
                precedence = op_precedence
    return found


def _binary(op: Op, left: int, right: int) -> int:
    if op is Op.ADD:
        return (left + right) & _U64
    if op is Op.SUB:
        return (left - right) & _U64
    if op is Op.MUL:
        return (left * right) & _U64
    if op is Op.DIV:
        if right == 0:
            raise ExpressionError("division by zero")
        return left // right
    if op is Op.AND:
        return int(left != 0 and right != 0)
    if op is Op.OR:
        return int(left != 0 or right != 0)
    if op is Op.BIT_AND:
        return left & right
    if op is Op.BIT_OR:
        return left | right
    if op is Op.EQ:
        return int(left == right)
    if op is Op.NE:
        return int(left != right)
    raise ExpressionError(f"unexpected operator {op.name}")


def _operand(cpu: RV32CPU, token: Token) -> int:
    if token.kind is TokenKind.NUMBER:
        return token.value
    if token.kind is TokenKind.REGISTER:
        if token.value == "pc":
            return cpu.pc
        value = cpu.read_register_by_name(token.value)
        if value is None:
            raise ExpressionError(f"unknown register ${token.value}")
        return value
    raise ExpressionError("expected a number or a register")


def _load_word(cpu: RV32CPU, addr: int) -> int:
    try:
        value = cpu.load_mem(addr & _U32, 4)
    except InvalidMemory as exc:
        raise ExpressionError(str(exc)) from exc
    if value is None:
        raise ExpressionError(f"cannot read memory at {addr & _U32:#x}")
    return value


def _evaluate(cpu: RV32CPU, tokens: list[Token], start: int, end: int) -> int:
    if start > end:
        raise ExpressionError("empty expression")
    if tokens[start] == LPAREN and tokens[end] == RPAREN:
        return _evaluate(cpu, tokens, start + 1, end - 1)
    if start == end:
        return _operand(cpu, tokens[start])
    i = find_delimiter(tokens, start, end)
    if i is None:
        raise ExpressionError("malformed expression")
    op = tokens[i].value
    if op is Op.STAR:
        return _load_word(cpu, _evaluate(cpu, tokens, i + 1, end))
    if i == start:
        raise ExpressionError(f"missing left operand of {op.name}")
    left = _evaluate(cpu, tokens, start, i - 1)
    right = _evaluate(cpu, tokens, i + 1, end)
    return _binary(op, left, right)


def evaluate(cpu: RV32CPU, exp: str) -> int:
    """Evaluate ``exp`` against the state of ``cpu``.

    Registers are written ``$name``, ``*addr`` reads a 32-bit word and the
    result is an unsigned 64-bit number. Raises ExpressionError when the
    expression is invalid or refers to something that cannot be read.
    """
    tokens = tokenize(exp)
    if not tokens:
        raise ExpressionError("empty expression")
    return _evaluate(cpu, tokens, 0, len(tokens) - 1)