"""
The Frutta tokenizer.

Tokens are produced one at a time from an offset into the source text; the
tokenizer keeps no state beyond that offset, so the parser can restart it from
anywhere (which is how it peeks one token past the current one).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional, Tuple

from frutta.frutta_errors import ErrorKind, ParseError


class TokenType(Enum):
    NUMBER = "number"
    STRING = "string"
    IDENTIFIER = "identifier"
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    DIVIDER = "/"
    MODULO = "%"
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    COMMA = ","
    POINT = "."
    SEMICOLON = ";"
    LESS_THAN = "<"
    GREATER_THAN = ">"
    ASSIGN = "="
    EQUAL = "=="
    NOT_EQUAL = "!="


@dataclass(frozen=True)
class Token:
    """One lexical unit. `pos` is the start offset and does not take part in equality."""
    type: TokenType
    value: Any = None
    pos: int = field(default=0, compare=False)

    def __repr__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER):
            return f"{self.type.name.capitalize()}({self.value!r})"
        return self.type.name.replace("_", " ").title().replace(" ", "")


SINGLE_CHAR_TOKENS = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.DIVIDER,
    "%": TokenType.MODULO,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ",": TokenType.COMMA,
    ".": TokenType.POINT,
    ";": TokenType.SEMICOLON,
    "<": TokenType.LESS_THAN,
    ">": TokenType.GREATER_THAN,
}

WHITESPACE = " \n\t\r"

STRING_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t"}


def scan(source: str, pos: int = 0) -> Optional[Tuple[Token, int]]:
    """Scan the first token at or after `pos`.

    Returns `(token, end)` where `end` is the offset just past the token, or
    None when only whitespace remains. Raises ParseError on a lexical error.
    """
    n = len(source)
    while pos < n and source[pos] in WHITESPACE:
        pos += 1
    if pos >= n:
        return None

    start = pos
    char = source[pos]

    if char in SINGLE_CHAR_TOKENS:
        return Token(SINGLE_CHAR_TOKENS[char], pos=start), pos + 1

    if char == "=":
        if source.startswith("==", pos):
            return Token(TokenType.EQUAL, pos=start), pos + 2
        return Token(TokenType.ASSIGN, pos=start), pos + 1

    if char == "!":
        if source.startswith("!=", pos):
            return Token(TokenType.NOT_EQUAL, pos=start), pos + 2
        raise ParseError(ErrorKind.UNEXPECTED_TOKEN, start, source, detail=char)

    if char.isdigit():
        # Interior dots are swallowed as-is; float() decides whether the run is valid.
        while pos < n and (source[pos].isdigit() or source[pos] == "."):
            pos += 1
        text = source[start:pos]
        try:
            value = float(text)
        except ValueError:
            raise ParseError(ErrorKind.INVALID_NUMBER, start, source, detail=text) from None
        return Token(TokenType.NUMBER, value, pos=start), pos

    if char.isalpha():
        while pos < n and source[pos].isalpha():
            pos += 1
        return Token(TokenType.IDENTIFIER, source[start:pos], pos=start), pos

    if char == '"':
        return _scan_string(source, start)

    raise ParseError(ErrorKind.UNEXPECTED_TOKEN, start, source, detail=char)


def _scan_string(source: str, start: int) -> Tuple[Token, int]:
    out = []
    pos = start + 1
    n = len(source)
    while pos < n:
        char = source[pos]
        if char == '"':
            return Token(TokenType.STRING, "".join(out), pos=start), pos + 1
        if char == "\\" and pos + 1 < n and source[pos + 1] in STRING_ESCAPES:
            out.append(STRING_ESCAPES[source[pos + 1]])
            pos += 2
            continue
        out.append(char)
        pos += 1
    # Unterminated literal: report at the opening quote.
    raise ParseError(ErrorKind.UNEXPECTED_END_OF_FILE, start, source)


def tokenize_first(text: str) -> Optional[Tuple[Token, str]]:
    """Tokenize the first token of `text`, returning it with the unconsumed rest.

    >>> tokenize_first("1+2")
    (Number(1.0), '+2')
    """
    result = scan(text, 0)
    if result is None:
        return None
    token, end = result
    return token, text[end:]


def tokenize(source: str) -> Iterator[Token]:
    """Lazily yield every token of `source`."""
    pos = 0
    while True:
        result = scan(source, pos)
        if result is None:
            return
        token, pos = result
        yield token
