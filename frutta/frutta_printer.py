"""
A pretty-printer for Frutta ASTs and runtime values.
"""
import json
import math
from decimal import Decimal

from frutta.frutta_classes import ClassInstance, StringInstance
from frutta.frutta_datatypes import (
    Accessor, Assign, BinaryOp, Block, Boolean, BuiltinFunction, Call, ExprStatement,
    Fn, Identifier, If, Number, Return, String, UserFunction,
)
from frutta.frutta_tokens import TokenType

# Binding strength of each binary operator tier.
PRECEDENCE = {
    TokenType.EQUAL: 1, TokenType.NOT_EQUAL: 1,
    TokenType.LESS_THAN: 1, TokenType.GREATER_THAN: 1,
    TokenType.PLUS: 2, TokenType.MINUS: 2,
    TokenType.STAR: 3, TokenType.DIVIDER: 3, TokenType.MODULO: 3,
}
COMPARISON_TIER = 1


def display(value) -> str:
    """The text Std.print writes for a runtime value."""
    match value:
        case None:
            return "None"
        case bool():
            return "true" if value else "false"
        case ClassInstance():
            return value.display()
        case UserFunction() | BuiltinFunction():
            return f"<function {value.name}>"
    return str(value)


class Printer:
    """Formats Frutta AST nodes into source text that parses back to the same tree."""

    def __init__(self, indent_width=4):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, list):
            return self._pformat_statements
        # Runtime values print in their display form
        return lambda o, l: display(o)

    def _create_handlers(self):
        return {
            Number: self._pformat_number,
            Boolean: self._pformat_boolean,
            String: self._pformat_string,
            Identifier: self._pformat_identifier,
            Accessor: self._pformat_accessor,
            Call: self._pformat_call,
            BinaryOp: self._pformat_binary_op,
            ExprStatement: self._pformat_expr_statement,
            Return: self._pformat_return,
            Block: self._pformat_block,
            Fn: self._pformat_fn,
            Assign: self._pformat_assign,
            If: self._pformat_if,
        }

    # --- Expressions ---

    def _pformat_number(self, obj, level):
        value = obj.value
        if math.isfinite(value) and value >= 0:
            if value == int(value):
                return str(int(value))
            # Plain decimal notation; the tokenizer has no exponents.
            return format(Decimal(repr(value)), "f")
        # Not expressible as a literal; keep the value readable at least.
        return repr(value)

    def _pformat_boolean(self, obj, level):
        return 'true' if obj.value else 'false'

    def _pformat_string(self, obj, level):
        escaped = obj.value.replace('\\', '\\\\').replace('"', '\\"')
        escaped = escaped.replace('\n', '\\n').replace('\t', '\\t')
        return f'"{escaped}"'

    def _pformat_identifier(self, obj, level):
        return obj.name

    def _pformat_operand(self, obj, level):
        """Format an expression that must read as a single factor."""
        text = self.pformat(obj, level)
        if isinstance(obj, (Boolean, String, Identifier)):
            return text
        # Numbers too: the tokenizer would swallow a following '.' into the literal.
        return f"({text})"

    def _pformat_accessor(self, obj, level):
        root = self._pformat_operand(obj.segments[0], level)
        rest = [self._pformat_operand(seg, level) for seg in obj.segments[1:]]
        return ".".join([root] + rest)

    def _pformat_call(self, obj, level):
        callee = obj.callee
        callee_s = self.pformat(callee, level)
        if isinstance(callee, BinaryOp):
            callee_s = f"({callee_s})"
        args = ", ".join(self.pformat(arg, level) for arg in obj.args)
        return f"{callee_s}({args})"

    def _pformat_binary_op(self, obj, level):
        prec = PRECEDENCE[obj.op]
        lhs_s = self.pformat(obj.lhs, level)
        rhs_s = self.pformat(obj.rhs, level)
        if isinstance(obj.lhs, BinaryOp):
            lhs_prec = PRECEDENCE[obj.lhs.op]
            # The comparison tier nests to the right, so an equal-tier left operand needs parens.
            if lhs_prec < prec or (lhs_prec == prec and prec == COMPARISON_TIER):
                lhs_s = f"({lhs_s})"
        if isinstance(obj.rhs, BinaryOp):
            rhs_prec = PRECEDENCE[obj.rhs.op]
            if rhs_prec < prec or (rhs_prec == prec and prec != COMPARISON_TIER):
                rhs_s = f"({rhs_s})"
        return f"{lhs_s} {obj.op.value} {rhs_s}"

    # --- Statements ---

    def _pformat_statements(self, statements, level):
        lines = []
        for stmt in statements:
            if isinstance(stmt, Block):
                text = self._pformat_body(stmt.statements, level)
            else:
                text = self.pformat(stmt, level)
            # A statement opening with '(' would otherwise read as a call on the previous one.
            if lines and text.startswith("("):
                lines[-1] += ";"
            lines.append(text)
        indent = self._indent_char * level
        return "\n".join(indent + line for line in lines)

    def _pformat_body(self, statements, level):
        if not statements:
            return "{}"
        inner = self._pformat_statements(statements, level + 1)
        return "{\n" + inner + "\n" + self._indent_char * level + "}"

    def _pformat_expr_statement(self, obj, level):
        return self.pformat(obj.expr, level)

    def _pformat_return(self, obj, level):
        return f"return {self.pformat(obj.expr, level)}"

    def _pformat_block(self, obj, level):
        # Formatted directly, a Block is a program: its statements without braces.
        # Nested blocks go through _pformat_statements and keep theirs.
        return self._pformat_statements(obj.statements, level)

    def _pformat_fn(self, obj, level):
        return f"fn {obj.name}({', '.join(obj.params)}) {self._pformat_body(obj.body, level)}"

    def _pformat_assign(self, obj, level):
        return f"{obj.name} = {self.pformat(obj.value, level)}"

    def _pformat_if(self, obj, level):
        text = f"if {self.pformat(obj.condition, level)} {self._pformat_body(obj.body, level)}"
        if obj.else_body:
            text += f" else {self._pformat_body(obj.else_body, level)}"
        return text


def pformat(obj) -> str:
    return Printer().pformat(obj)


def debug_repr(value) -> str:
    """A quoted, unambiguous rendering for stack traces and REPL echoes of strings."""
    if isinstance(value, StringInstance):
        return json.dumps(value.value)
    return display(value)
