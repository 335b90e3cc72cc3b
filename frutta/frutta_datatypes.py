"""
Defines the core data types for the Frutta language.

This module provides the AST node classes produced by the parser and consumed
directly by the evaluator, plus the runtime types the evaluator works with:
environments, function values and the return signal.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from frutta.frutta_classes import ClassRegistry
    from frutta.frutta_tokens import TokenType


# =================================================================
# Abstract Base Classes
# =================================================================

class Node:
    """Base class for AST nodes.

    `pos` is the offset of the token that started the node. It is metadata only
    and never takes part in equality, so parsed trees compare structurally.
    """
    _fields: tuple = ()

    def __init__(self, pos: Optional[int] = None):
        self.pos = pos

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return all(getattr(self, f) == getattr(other, f) for f in self._fields)

    def __hash__(self):
        return hash((type(self).__name__,) + tuple(repr(getattr(self, f)) for f in self._fields))

    def __repr__(self) -> str:
        args = ", ".join(repr(getattr(self, f)) for f in self._fields)
        return f"{type(self).__name__}({args})"


class Expr(Node):
    """Abstract base class for all expressions."""


class Statement(Node):
    """Abstract base class for all statements."""


# =================================================================
# Expressions
# =================================================================

class Number(Expr):
    _fields = ("value",)

    def __init__(self, value: float, pos: Optional[int] = None):
        super().__init__(pos)
        self.value = float(value)


class Boolean(Expr):
    _fields = ("value",)

    def __init__(self, value: bool, pos: Optional[int] = None):
        super().__init__(pos)
        self.value = value


class String(Expr):
    _fields = ("value",)

    def __init__(self, value: str, pos: Optional[int] = None):
        super().__init__(pos)
        self.value = value


class Identifier(Expr):
    _fields = ("name",)

    def __init__(self, name: str, pos: Optional[int] = None):
        super().__init__(pos)
        self.name = name


class Accessor(Expr):
    """A field access chain such as `a.b.c`.

    `segments[0]` is the root expression; every later segment must be an
    Identifier naming a field. The parser builds chains flat, so `a.b.c` is a
    single Accessor with three segments rather than nested ones.
    """
    _fields = ("segments",)

    def __init__(self, segments: List[Expr], pos: Optional[int] = None):
        super().__init__(pos)
        if len(segments) < 2:
            raise ValueError("Accessor must have a root and at least one field.")
        self.segments = list(segments)


class Call(Expr):
    """A call such as `add(1, 2)`: callee expression plus argument expressions."""
    _fields = ("callee", "args")

    def __init__(self, callee: Expr, args: List[Expr], pos: Optional[int] = None):
        super().__init__(pos)
        self.callee = callee
        self.args = list(args)


class BinaryOp(Expr):
    """A binary operation. `op` is the TokenType of the operator."""
    _fields = ("op", "lhs", "rhs")

    def __init__(self, op: 'TokenType', lhs: Expr, rhs: Expr, pos: Optional[int] = None):
        super().__init__(pos)
        self.op = op
        self.lhs = lhs
        self.rhs = rhs


# =================================================================
# Statements
# =================================================================

class ExprStatement(Statement):
    _fields = ("expr",)

    def __init__(self, expr: Expr, pos: Optional[int] = None):
        super().__init__(pos)
        self.expr = expr


class Return(Statement):
    _fields = ("expr",)

    def __init__(self, expr: Expr, pos: Optional[int] = None):
        super().__init__(pos)
        self.expr = expr


class Block(Statement):
    """An ordered list of statements; also the container of a whole program."""
    _fields = ("statements",)

    def __init__(self, statements: List[Statement], pos: Optional[int] = None):
        super().__init__(pos)
        self.statements = list(statements)

    def __iter__(self):
        return iter(self.statements)

    def __len__(self) -> int:
        return len(self.statements)


class Fn(Statement):
    _fields = ("name", "params", "body")

    def __init__(self, name: str, params: List[str], body: List[Statement], pos: Optional[int] = None):
        super().__init__(pos)
        self.name = name
        self.params = list(params)
        self.body = list(body)


class Assign(Statement):
    _fields = ("name", "value")

    def __init__(self, name: str, value: Expr, pos: Optional[int] = None):
        super().__init__(pos)
        self.name = name
        self.value = value


class If(Statement):
    _fields = ("condition", "body", "else_body")

    def __init__(self, condition: Expr, body: List[Statement],
                 else_body: Optional[List[Statement]] = None, pos: Optional[int] = None):
        super().__init__(pos)
        self.condition = condition
        self.body = list(body)
        self.else_body = list(else_body or [])


# =================================================================
# Core Runtime Types
# =================================================================

class MagicMethod(Enum):
    """Symbolic operator names a class instance can implement."""
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    MOD = "mod"
    EQUAL = "equal"
    NOT_EQUAL = "not-equal"
    GREATER_THAN = "greater-than"
    LESS_THAN = "less-than"


class Environment:
    """Variable bindings for one scope plus a handle on the shared class table.

    Environments are never chained: a function call gets a new Environment
    seeded with a copy of the caller's bindings, so the callee can read the
    caller's variables but cannot rebind them.
    """
    def __init__(self, classes: 'ClassRegistry', variables: Optional[Dict[str, Any]] = None):
        self.classes = classes
        self.variables: Dict[str, Any] = dict(variables or {})

    def __getitem__(self, name: str) -> Any:
        return self.variables[name]

    def __setitem__(self, name: str, value: Any):
        self.variables[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self.variables

    def child(self, bindings: Dict[str, Any], classes: Optional['ClassRegistry'] = None) -> 'Environment':
        """A fresh environment: a copy of these bindings overlaid with `bindings`."""
        env = Environment(classes if classes is not None else self.classes, self.variables)
        env.variables.update(bindings)
        return env

    def __repr__(self) -> str:
        keys = ", ".join(self.variables.keys())
        return f"<Environment bindings=[{keys}]>"


class FruttaCallable:
    """Base class for all function values."""
    name: str = "<fn>"


class BuiltinFunction(FruttaCallable):
    """A native function. It receives the evaluated argument list and returns a value."""
    def __init__(self, func: Callable[[List[Any]], Any], name: Optional[str] = None):
        self.func = func
        self.name = name or getattr(func, "__name__", "<builtin>")

    def __call__(self, args: List[Any]) -> Any:
        return self.func(args)

    def __repr__(self) -> str:
        return f"<builtin {self.name}>"


class UserFunction(FruttaCallable):
    """A function declared with `fn`.

    It captures the class table it was declared against, not the declaring
    environment; variables come from the caller at call time.
    """
    def __init__(self, name: str, params: List[str], body: List[Statement], classes: 'ClassRegistry'):
        self.name = name
        self.params = list(params)
        self.body = list(body)
        self.classes = classes

    def __repr__(self) -> str:
        return f"<fn {self.name}({', '.join(self.params)})>"

    def __eq__(self, other):
        if not isinstance(other, UserFunction):
            return NotImplemented
        # The class table does not take part in equality.
        return self.name == other.name and self.params == other.params and self.body == other.body

    def __hash__(self):
        return hash((self.name, tuple(self.params), len(self.body)))


class ReturnValue:
    """Control-flow signal carrying the value of an executed `return`."""
    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"ReturnValue({self.value!r})"


def is_return(x) -> bool:
    return isinstance(x, ReturnValue)


def unwrap_return(x):
    return x.value if is_return(x) else x
