"""
Error types for Frutta.

Two families that are never mixed up: ParseError covers everything the
tokenizer and parser reject (always carrying a byte offset into the source),
and FruttaRuntimeError covers what goes wrong while evaluating a parsed
program.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    UNEXPECTED_TOKEN = "Unexpected token"
    UNEXPECTED_END_OF_FILE = "Unexpected end of file"
    UNCLOSED_PARENTHESIS = "Unclosed parenthesis"
    EXPECTED_TOKEN = "Expected token"
    INVALID_NUMBER = "Invalid number literal"


def line_and_column(source: str, pos: int) -> tuple[int, int]:
    """1-based line and column of byte offset `pos`."""
    pos = max(0, min(pos, len(source)))
    line = source.count("\n", 0, pos) + 1
    line_start = source.rfind("\n", 0, pos) + 1
    return line, pos - line_start + 1


def source_excerpt(source: str, pos: int) -> str:
    """The source line holding `pos`, with a caret marker under its column."""
    line, col = line_and_column(source, pos)
    lines = source.split("\n")
    text = lines[line - 1] if line - 1 < len(lines) else ""
    return f"| {text}\n| {'-' * (col - 1)}^"


class ParseError(Exception):
    """A lexical or syntactic error at a byte offset of the source text."""

    def __init__(self, kind: ErrorKind, pos: int, source: str,
                 token: Any = None, expected: Any = None, detail: Optional[str] = None):
        self.kind = kind
        self.pos = pos
        self.source = source
        self.token = token
        self.expected = expected
        self.detail = detail
        super().__init__(self.message)

    @property
    def message(self) -> str:
        match self.kind:
            case ErrorKind.UNEXPECTED_TOKEN:
                # The tokenizer reports a stray character with no token built yet.
                shown = repr(self.token) if self.token is not None else repr(self.detail)
                return f"{self.kind.value}: {shown}"
            case ErrorKind.EXPECTED_TOKEN:
                name = getattr(self.expected, "name", self.expected)
                got = "end of file" if self.token is None else repr(self.token)
                return f"{self.kind.value}: {name}, got {got}"
            case ErrorKind.INVALID_NUMBER:
                return f"{self.kind.value}: {self.detail!r}"
            case _:
                return self.kind.value

    @property
    def line(self) -> int:
        return line_and_column(self.source, self.pos)[0]

    @property
    def column(self) -> int:
        return line_and_column(self.source, self.pos)[1]

    def render(self) -> str:
        """Line/column diagnostic followed by the offending line and a caret."""
        return f"{self.message} at {self.line}:{self.column}\n{source_excerpt(self.source, self.pos)}"

    def __eq__(self, other):
        if not isinstance(other, ParseError):
            return NotImplemented
        return self.kind == other.kind and self.pos == other.pos and self.source == other.source

    __hash__ = Exception.__hash__


# =================================================================
# Runtime errors
# =================================================================

class FruttaRuntimeError(Exception):
    """Base class for errors raised while evaluating a program.

    `node` is the AST node being evaluated when the error was raised, if known;
    the runner uses its `pos` to point at the offending source.
    """
    def __init__(self, message: str, node: Any = None):
        super().__init__(message)
        self.node = node


class NameNotFoundError(FruttaRuntimeError):
    """An identifier is neither a variable nor a registered class."""


class NotCallableError(FruttaRuntimeError):
    """A call expression's callee is not a function."""


class FieldAccessError(FruttaRuntimeError):
    """A field was read from a value that is not a class instance, or with a non-name segment."""


class FieldNotFoundError(FruttaRuntimeError):
    """A class instance has no field of the requested name."""


class OperandTypeError(FruttaRuntimeError):
    """An operator or built-in got an operand of the wrong type."""


class UnsupportedOperatorError(OperandTypeError):
    """The left operand's class does not implement the requested magic method."""
