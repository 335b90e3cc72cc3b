"""
The Frutta parser.

A recursive-descent parser with one token of lookahead. Tokens are pulled from
the tokenizer one at a time, restarting it from the end offset of the current
token; nothing is tokenized ahead of time.

Precedence, lowest first:

    comparison      == != < >     right operand is a whole expression
    additive        + -           left-associative
    multiplicative  * / %         left-associative
    call            f(a, b)(c)
    accessor        a.b.c         flat chain
    factor          number, string, identifier, true/false, ( expr )
"""

from typing import List, Optional

from frutta.frutta_datatypes import (
    Accessor, Assign, BinaryOp, Block, Boolean, Call, Expr, ExprStatement, Fn,
    Identifier, If, Number, Return, Statement, String,
)
from frutta.frutta_errors import ErrorKind, ParseError
from frutta.frutta_tokens import Token, TokenType, scan

COMPARISON_OPS = (TokenType.EQUAL, TokenType.NOT_EQUAL, TokenType.LESS_THAN, TokenType.GREATER_THAN)
ADDITIVE_OPS = (TokenType.PLUS, TokenType.MINUS)
MULTIPLICATIVE_OPS = (TokenType.STAR, TokenType.DIVIDER, TokenType.MODULO)


class Parser:
    """Turns Frutta source text into a Block of statements."""

    def __init__(self, source: str):
        self.source = source
        # Offset just past the current token; the tokenizer restarts from here.
        self.pos = 0
        self.current: Optional[Token] = None
        self.next_token()

    # --- Token handling ---

    def next_token(self):
        """Advance to the next token (None at end of input)."""
        result = scan(self.source, self.pos)
        if result is None:
            self.current = None
            self.pos = len(self.source)
        else:
            self.current, self.pos = result

    def peek(self) -> Optional[Token]:
        """The token after the current one, without consuming anything."""
        result = scan(self.source, self.pos)
        return result[0] if result else None

    def check(self, *types: TokenType) -> bool:
        return self.current is not None and self.current.type in types

    def check_keyword(self, word: str) -> bool:
        return self.check(TokenType.IDENTIFIER) and self.current.value == word

    def error(self, kind: ErrorKind, pos: Optional[int] = None, **kwargs) -> ParseError:
        if pos is None:
            pos = self.current.pos if self.current is not None else len(self.source)
        return ParseError(kind, pos, self.source, **kwargs)

    def unexpected(self) -> ParseError:
        if self.current is None:
            return self.error(ErrorKind.UNEXPECTED_END_OF_FILE)
        return self.error(ErrorKind.UNEXPECTED_TOKEN, token=self.current)

    def expect(self, token_type: TokenType) -> Token:
        if not self.check(token_type):
            raise self.error(ErrorKind.EXPECTED_TOKEN, token=self.current, expected=token_type)
        token = self.current
        self.next_token()
        return token

    # --- Program and statements ---

    def parse_program(self) -> Block:
        statements = []
        while self.current is not None:
            if self.check(TokenType.SEMICOLON):
                self.next_token()
                continue
            statements.append(self.parse_statement())
        return Block(statements, pos=0)

    def parse_statement(self) -> Statement:
        if self.check(TokenType.IDENTIFIER):
            match self.current.value:
                case "fn":
                    return self.parse_fn()
                case "return":
                    return self.parse_return()
                case "if":
                    return self.parse_if()
            following = self.peek()
            if following is not None and following.type == TokenType.ASSIGN:
                return self.parse_assign()
        if self.check(TokenType.LBRACE):
            start = self.current.pos
            return Block(self.parse_block(), pos=start)
        start = self.current.pos if self.current is not None else len(self.source)
        return ExprStatement(self.parse_expr(), pos=start)

    def parse_block(self) -> List[Statement]:
        """Parse `{ statements }`, returning the statements."""
        if self.current is None:
            raise self.error(ErrorKind.UNEXPECTED_END_OF_FILE)
        self.expect(TokenType.LBRACE)
        statements = []
        while not self.check(TokenType.RBRACE):
            if self.current is None:
                raise self.error(ErrorKind.UNEXPECTED_END_OF_FILE)
            if self.check(TokenType.SEMICOLON):
                self.next_token()
                continue
            statements.append(self.parse_statement())
        self.next_token()
        return statements

    def parse_fn(self) -> Fn:
        start = self.current.pos
        self.next_token()
        name_token = self.expect(TokenType.IDENTIFIER)
        self.expect(TokenType.LPAREN)

        params = []
        while not self.check(TokenType.RPAREN):
            if self.current is None:
                raise self.error(ErrorKind.UNEXPECTED_END_OF_FILE)
            if self.check(TokenType.IDENTIFIER):
                params.append(self.current.value)
            elif not self.check(TokenType.COMMA):
                raise self.error(ErrorKind.EXPECTED_TOKEN, token=self.current, expected=TokenType.IDENTIFIER)
            self.next_token()
        self.next_token()

        body = self.parse_block()
        return Fn(name_token.value, params, body, pos=start)

    def parse_return(self) -> Return:
        start = self.current.pos
        self.next_token()
        return Return(self.parse_expr(), pos=start)

    def parse_if(self) -> If:
        start = self.current.pos
        self.next_token()
        condition = self.parse_expr()
        body = self.parse_block()
        else_body = []
        if self.check_keyword("else"):
            self.next_token()
            else_body = self.parse_block()
        return If(condition, body, else_body, pos=start)

    def parse_assign(self) -> Assign:
        name_token = self.current
        self.next_token()  # name
        self.next_token()  # =
        return Assign(name_token.value, self.parse_expr(), pos=name_token.pos)

    # --- Expressions ---

    def parse_expr(self) -> Expr:
        lhs = self.parse_add_sub()
        while self.check(*COMPARISON_OPS):
            op = self.current
            self.next_token()
            # Recursing into the full expression makes this tier right-associative.
            rhs = self.parse_expr()
            lhs = BinaryOp(op.type, lhs, rhs, pos=op.pos)
        return lhs

    def parse_add_sub(self) -> Expr:
        lhs = self.parse_term()
        while self.check(*ADDITIVE_OPS):
            op = self.current
            self.next_token()
            lhs = BinaryOp(op.type, lhs, self.parse_term(), pos=op.pos)
        return lhs

    def parse_term(self) -> Expr:
        lhs = self.parse_call()
        while self.check(*MULTIPLICATIVE_OPS):
            op = self.current
            self.next_token()
            lhs = BinaryOp(op.type, lhs, self.parse_call(), pos=op.pos)
        return lhs

    def parse_call(self) -> Expr:
        lhs = self.parse_accessors()
        while self.check(TokenType.LPAREN):
            start = self.current.pos
            self.next_token()
            args = []
            while not self.check(TokenType.RPAREN):
                args.append(self.parse_expr())
                if self.check(TokenType.COMMA):
                    self.next_token()
                elif not self.check(TokenType.RPAREN):
                    if self.current is None:
                        raise self.error(ErrorKind.UNEXPECTED_END_OF_FILE)
                    raise self.error(ErrorKind.EXPECTED_TOKEN, token=self.current, expected=TokenType.COMMA)
            self.next_token()
            lhs = Call(lhs, args, pos=start)
        return lhs

    def parse_accessors(self) -> Expr:
        root = self.parse_factor()
        segments = [root]
        while self.check(TokenType.POINT):
            self.next_token()
            segments.append(self.parse_factor())
        if len(segments) == 1:
            return root
        return Accessor(segments, pos=root.pos)

    def parse_factor(self) -> Expr:
        token = self.current
        if token is None:
            raise self.error(ErrorKind.UNEXPECTED_END_OF_FILE)
        match token.type:
            case TokenType.NUMBER:
                self.next_token()
                return Number(token.value, pos=token.pos)
            case TokenType.STRING:
                self.next_token()
                return String(token.value, pos=token.pos)
            case TokenType.IDENTIFIER:
                self.next_token()
                if token.value == "true":
                    return Boolean(True, pos=token.pos)
                if token.value == "false":
                    return Boolean(False, pos=token.pos)
                return Identifier(token.value, pos=token.pos)
            case TokenType.LPAREN:
                return self.parse_paren()
        raise self.unexpected()

    def parse_paren(self) -> Expr:
        l_paren_pos = self.current.pos
        self.next_token()
        expr = self.parse_expr()
        if not self.check(TokenType.RPAREN):
            raise self.error(ErrorKind.UNCLOSED_PARENTHESIS, pos=l_paren_pos)
        self.next_token()
        return expr


def parse(source: str) -> Block:
    """Parse a whole program into a Block. Raises ParseError."""
    return Parser(source).parse_program()


def parse_expression(source: str) -> Expr:
    """Parse a single expression; trailing input is an error."""
    parser = Parser(source)
    expr = parser.parse_expr()
    if parser.current is not None:
        raise parser.unexpected()
    return expr
