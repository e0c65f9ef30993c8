#!/usr/bin/env python3
"""
Plural-Forms rules.

Parses the `Plural-Forms` header value of a PO file, e.g.

    nplurals=3; plural=(n%10==1 && n%100!=11 ? 0 : n%10>=2 && n%10<=4 && (n%100<10 || n%100>=20) ? 1 : 2);

and compiles the C expression into a small stack program that binary
catalogs store next to their header. A reader evaluates the program for a
count without re-parsing the textual rule.

Program encoding (one opcode byte, CONST is followed by a little-endian u32):

    N       0x01    push the count
    CONST   0x02    push an unsigned 32-bit constant
    NOT     0x03    logical not of the top value
    OR..MOD 0x10-   pop b, pop a, push a <op> b
    SELECT  0x20    pop else, pop then, pop cond, push (then if cond else else)

Values are unsigned 64-bit integers, as gettext evaluates over `unsigned
long`: subtraction wraps around and the count is taken modulo 2**64. Both
branches of `?:` and both sides of `&&`/`||` are evaluated eagerly; plural
expressions have no side effects, and division by zero yields 0.
"""

import re
import struct
from dataclasses import dataclass

OP_N = 0x01
OP_CONST = 0x02
OP_NOT = 0x03
OP_SELECT = 0x20

BINARY_OPS = {
    "||": 0x10,
    "&&": 0x11,
    "==": 0x12,
    "!=": 0x13,
    "<": 0x14,
    ">": 0x15,
    "<=": 0x16,
    ">=": 0x17,
    "+": 0x18,
    "-": 0x19,
    "*": 0x1A,
    "/": 0x1B,
    "%": 0x1C,
}

# binary operator precedence levels, loosest first
PRECEDENCE = [
    ("||",),
    ("&&",),
    ("==", "!="),
    ("<", ">", "<=", ">="),
    ("+", "-"),
    ("*", "/", "%"),
]

_CONST = struct.Struct("<I")
_MAX_CONST = 0xFFFFFFFF
_MASK = 0xFFFFFFFFFFFFFFFF

DEFAULT_PLURAL_FORMS = "nplurals=2; plural=n != 1;"

_HEADER_PATTERN = re.compile(
    r"^\s*nplurals\s*=\s*(\d+)\s*;\s*plural\s*=\s*(.+?)\s*;?\s*$", re.DOTALL
)
_TOKEN_PATTERN = re.compile(r"\s*(?:(\d+)|(n)|(\|\||&&|==|!=|<=|>=|[<>+\-*/%!?:()]))")


def _apply(op: int, a: int, b: int) -> int:
    if op == 0x10:
        return int(bool(a) or bool(b))
    if op == 0x11:
        return int(bool(a) and bool(b))
    if op == 0x12:
        return int(a == b)
    if op == 0x13:
        return int(a != b)
    if op == 0x14:
        return int(a < b)
    if op == 0x15:
        return int(a > b)
    if op == 0x16:
        return int(a <= b)
    if op == 0x17:
        return int(a >= b)
    if op == 0x18:
        return (a + b) & _MASK
    if op == 0x19:
        return (a - b) & _MASK
    if op == 0x1A:
        return (a * b) & _MASK
    if op == 0x1B:
        return a // b if b else 0
    if op == 0x1C:
        return a % b if b else 0
    raise ValueError(f"Unknown plural opcode: 0x{op:02x}")


class _ExpressionCompiler:
    """Recursive descent parser emitting stack code for a plural expression."""

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = self._tokenize(expression)
        self.pos = 0
        self.code = bytearray()

    @staticmethod
    def _tokenize(expression: str) -> list[str]:
        tokens = []
        pos = 0
        stripped = expression.rstrip()
        while pos < len(stripped):
            match = _TOKEN_PATTERN.match(stripped, pos)
            if not match:
                raise ValueError(
                    f"Unexpected character {stripped[pos:].strip()[:1]!r} in plural expression"
                )
            tokens.append(match.group(match.lastindex))
            pos = match.end()
        return tokens

    def _peek(self) -> str:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else ""

    def _take(self, expected: str = "") -> str:
        token = self._peek()
        if not token or (expected and token != expected):
            wanted = f"'{expected}'" if expected else "an operand"
            found = f"'{token}'" if token else "end of expression"
            raise ValueError(f"Expected {wanted} in plural expression, found {found}")
        self.pos += 1
        return token

    def compile(self) -> bytes:
        if not self.tokens:
            raise ValueError("Empty plural expression")
        self._ternary()
        if self.pos != len(self.tokens):
            raise ValueError(f"Unexpected '{self._peek()}' in plural expression")
        return bytes(self.code)

    def _ternary(self) -> None:
        self._binary(0)
        if self._peek() == "?":
            self._take("?")
            self._ternary()
            self._take(":")
            self._ternary()
            self.code.append(OP_SELECT)

    def _binary(self, level: int) -> None:
        if level == len(PRECEDENCE):
            self._unary()
            return
        self._binary(level + 1)
        while self._peek() in PRECEDENCE[level]:
            op = self._take()
            self._binary(level + 1)
            self.code.append(BINARY_OPS[op])

    def _unary(self) -> None:
        if self._peek() == "!":
            self._take("!")
            self._unary()
            self.code.append(OP_NOT)
            return
        token = self._take()
        if token == "(":
            self._ternary()
            self._take(")")
        elif token == "n":
            self.code.append(OP_N)
        elif token.isdigit():
            value = int(token)
            if value > _MAX_CONST:
                raise ValueError(f"Constant {value} too large for plural expression")
            self.code.append(OP_CONST)
            self.code += _CONST.pack(value)
        else:
            raise ValueError(f"Unexpected '{token}' in plural expression")


def compile_expression(expression: str) -> bytes:
    """Compile a C plural expression into a stack program."""
    return _ExpressionCompiler(expression).compile()


def evaluate(program: bytes, n: int) -> int:
    """Run a compiled plural program for count n."""
    stack: list[int] = []
    pos = 0
    try:
        while pos < len(program):
            op = program[pos]
            pos += 1
            if op == OP_N:
                stack.append(n & _MASK)
            elif op == OP_CONST:
                stack.append(_CONST.unpack_from(program, pos)[0])
                pos += _CONST.size
            elif op == OP_NOT:
                stack.append(int(not stack.pop()))
            elif op == OP_SELECT:
                otherwise = stack.pop()
                then = stack.pop()
                cond = stack.pop()
                stack.append(then if cond else otherwise)
            else:
                b = stack.pop()
                a = stack.pop()
                stack.append(_apply(op, a, b))
    except (IndexError, struct.error) as e:
        raise ValueError(f"Malformed plural program at byte {pos}") from e
    if len(stack) != 1:
        raise ValueError("Malformed plural program: unbalanced stack")
    return stack[0]


@dataclass(frozen=True)
class PluralRule:
    """A parsed Plural-Forms rule with its compiled program."""
    nplurals: int
    expression: str
    program: bytes

    @classmethod
    def parse(cls, plural_forms: str) -> "PluralRule":
        """
        Parse a Plural-Forms header value.

        Raises:
            ValueError: If the value is not `nplurals=N; plural=EXPR;`
        """
        match = _HEADER_PATTERN.match(plural_forms or "")
        if not match:
            raise ValueError(f"Invalid Plural-Forms rule: {plural_forms!r}")
        nplurals = int(match.group(1))
        if nplurals < 1:
            raise ValueError(f"Invalid Plural-Forms rule: nplurals must be at least 1, got {nplurals}")
        expression = match.group(2).strip()
        return cls(nplurals=nplurals, expression=expression, program=compile_expression(expression))

    @classmethod
    def default(cls) -> "PluralRule":
        return cls.parse(DEFAULT_PLURAL_FORMS)

    def select(self, n: int) -> int:
        """Index of the plural slot for count n; out-of-range results pick slot 0."""
        index = evaluate(self.program, n)
        if 0 <= index < self.nplurals:
            return index
        return 0
