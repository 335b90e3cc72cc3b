import pytest

from frutta.frutta_errors import ErrorKind, ParseError
from frutta.frutta_tokens import Token, TokenType, scan, tokenize, tokenize_first


def num(v):
    return Token(TokenType.NUMBER, float(v))


def ident(name):
    return Token(TokenType.IDENTIFIER, name)


# (test_id, input, expected)
TOKENIZE_FIRST_CASES = [
    ("number_then_rest", "1+2", (num(1), "+2")),
    ("plus", "+2", (Token(TokenType.PLUS), "2")),
    ("last_number", "2", (num(2), "")),
    ("lparen", "(abc", (Token(TokenType.LPAREN), "abc")),
    ("rparen", ")", (Token(TokenType.RPAREN), "")),
    ("identifier", "abc", (ident("abc"), "")),
    ("decimal", "0.1", (num(0.1), "")),
    ("leading_space", " 1+2", (num(1), "+2")),
    ("leading_newline", "\n abc", (ident("abc"), "")),
    ("equal", "== 1", (Token(TokenType.EQUAL), " 1")),
    ("assign", "= 1", (Token(TokenType.ASSIGN), " 1")),
    ("not_equal", "!=x", (Token(TokenType.NOT_EQUAL), "x")),
    ("modulo", "%", (Token(TokenType.MODULO), "")),
    ("identifier_stops_at_digit", "abc1", (ident("abc"), "1")),
    ("trailing_dot_number", "10.abs", (num(10), "abs")),
    ("string", '"hi there" x', (Token(TokenType.STRING, "hi there"), " x")),
]


@pytest.mark.parametrize("test_id, text, expected", TOKENIZE_FIRST_CASES, ids=[c[0] for c in TOKENIZE_FIRST_CASES])
def test_tokenize_first(test_id, text, expected):
    assert tokenize_first(text) == expected


@pytest.mark.parametrize("text", ["", " ", "\n\n  "])
def test_tokenize_first_exhausted(text):
    assert tokenize_first(text) is None


def test_tokenize_sequence():
    assert list(tokenize("1+2")) == [num(1), Token(TokenType.PLUS), num(2)]


def test_keywords_are_plain_identifiers():
    tokens = list(tokenize("fn if else return true false"))
    assert all(t.type == TokenType.IDENTIFIER for t in tokens)
    assert [t.value for t in tokens] == ["fn", "if", "else", "return", "true", "false"]


def test_token_positions_are_start_offsets():
    tokens = list(tokenize("a  + b"))
    assert [t.pos for t in tokens] == [0, 3, 5]
    # Positions never take part in equality
    assert tokens[0] == Token(TokenType.IDENTIFIER, "a", pos=99)


def test_scan_restarts_from_any_offset():
    source = "x = 42"
    token, end = scan(source, 1)
    assert token == Token(TokenType.ASSIGN)
    assert end == 3
    token, end = scan(source, end)
    assert token == num(42) and end == len(source)
    assert scan(source, end) is None


def test_tokenize_is_lazy():
    tokens = tokenize("1 @")
    assert next(tokens) == num(1)
    with pytest.raises(ParseError) as exc:
        next(tokens)
    assert exc.value.kind == ErrorKind.UNEXPECTED_TOKEN
    assert exc.value.pos == 2


def test_string_escapes():
    token, rest = tokenize_first(r'"say \"hi\"\n\\ \t"')
    assert token.value == 'say "hi"\n\\ \t'
    assert rest == ""


@pytest.mark.parametrize(
    "text, kind, pos",
    [
        ("!x", ErrorKind.UNEXPECTED_TOKEN, 0),
        ("  @", ErrorKind.UNEXPECTED_TOKEN, 2),
        ("a_b", ErrorKind.UNEXPECTED_TOKEN, 1),
        ("1.2.3", ErrorKind.INVALID_NUMBER, 0),
        ('x "abc', ErrorKind.UNEXPECTED_END_OF_FILE, 2),
    ],
)
def test_lexical_errors(text, kind, pos):
    with pytest.raises(ParseError) as exc:
        list(tokenize(text))
    assert exc.value.kind == kind
    assert exc.value.pos == pos
