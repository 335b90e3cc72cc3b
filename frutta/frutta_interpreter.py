"""
The core Frutta interpreter: the Evaluator walks the AST produced by the
parser, with no intermediate lowering.
"""
import os
import sys
from typing import Any, List, Optional

from frutta.frutta_classes import ClassInstance, ClassRegistry, NumberInstance, StringInstance, type_name
from frutta.frutta_datatypes import (
    Accessor, Assign, BinaryOp, Block, Boolean, BuiltinFunction, Call, Environment,
    Expr, ExprStatement, Fn, FruttaCallable, Identifier, If, MagicMethod, Number,
    Return, ReturnValue, Statement, String, UserFunction, is_return, unwrap_return,
)
from frutta.frutta_errors import (
    FieldAccessError, FieldNotFoundError, FruttaRuntimeError, NameNotFoundError,
    NotCallableError, OperandTypeError,
)
from frutta.frutta_tokens import TokenType

OPERATOR_METHODS = {
    TokenType.PLUS: MagicMethod.ADD,
    TokenType.MINUS: MagicMethod.SUB,
    TokenType.STAR: MagicMethod.MUL,
    TokenType.DIVIDER: MagicMethod.DIV,
    TokenType.MODULO: MagicMethod.MOD,
    TokenType.EQUAL: MagicMethod.EQUAL,
    TokenType.NOT_EQUAL: MagicMethod.NOT_EQUAL,
    TokenType.GREATER_THAN: MagicMethod.GREATER_THAN,
    TokenType.LESS_THAN: MagicMethod.LESS_THAN,
}


class Evaluator:
    """The Frutta execution engine.

    One Evaluator is one runtime: it owns the class table and the top-level
    environment, which persists across `exec_statement` calls (a whole REPL
    session). Function calls run in fresh environments and never touch it.
    """

    def __init__(self, classes: Optional[ClassRegistry] = None, stdout=None, stdin=None):
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stdin = stdin if stdin is not None else sys.stdin
        self.classes = classes if classes is not None else ClassRegistry.with_builtins(self)
        self.env = Environment(self.classes)
        self.call_stack: List[dict] = []
        self.current_node = None
        # Value of the most recent top-level expression statement (REPL echo).
        self.last_value: Any = None

    def _dbg(self, *parts):
        if os.environ.get("FRUTTA_DEBUG"):
            try:
                print("[DBG]", *parts, file=sys.stderr)
            except Exception:
                pass

    def _push_frame(self, name, func, args, call_site_node):
        self.call_stack.append({
            'name': name,
            'func': func,
            'args': args,
            'call_site': getattr(call_site_node, 'pos', None),
        })

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    # --- Statements ---

    def exec_statement(self, stmt: Statement) -> Optional[Any]:
        """Execute one statement in the top-level environment.

        Returns the value of a `return` reached at top level, or None. On
        failure the frames of the failing call chain are left in `call_stack`
        and attached to the exception as `frutta_frames`.
        """
        self.call_stack.clear()
        self.last_value = None
        try:
            result = self._exec(stmt, self.env, top_level=True)
        except Exception as e:
            e.frutta_frames = list(self.call_stack)
            raise
        return unwrap_return(result)

    def _exec(self, stmt: Statement, env: Environment, top_level: bool = False) -> Optional[ReturnValue]:
        self.current_node = stmt
        match stmt:
            case Block(statements=statements):
                return self._exec_block(statements, env, top_level)
            case Assign(name=name, value=value):
                env[name] = self.eval_expr(value, env)
            case Fn(name=name, params=params, body=body):
                env[name] = UserFunction(name, params, body, env.classes)
                self._dbg("FN", name, params)
            case ExprStatement(expr=expr):
                value = self.eval_expr(expr, env)
                if top_level:
                    self.last_value = value
            case Return(expr=expr):
                return ReturnValue(self.eval_expr(expr, env))
            case If(condition=condition, body=body, else_body=else_body):
                flag = self.eval_expr(condition, env)
                if not isinstance(flag, bool):
                    raise OperandTypeError(
                        f"if condition must be a Boolean, got {type_name(flag)}", node=condition)
                return self._exec_block(body if flag else else_body, env, top_level)
            case _:
                raise FruttaRuntimeError(f"Unknown statement: {stmt!r}", node=stmt)
        return None

    def _exec_block(self, statements: List[Statement], env: Environment, top_level: bool = False) -> Optional[ReturnValue]:
        for statement in statements:
            result = self._exec(statement, env, top_level)
            if is_return(result):
                return result
        return None

    # --- Expressions ---

    def eval_expr(self, expr: Expr, env: Optional[Environment] = None) -> Any:
        env = env if env is not None else self.env
        match expr:
            case Number(value=value):
                return NumberInstance(value)
            case String(value=value):
                return StringInstance(value)
            case Boolean(value=value):
                return value
            case Identifier(name=name):
                return self._lookup(name, env, expr)
            case BinaryOp(op=op, lhs=lhs, rhs=rhs):
                left = self.eval_expr(lhs, env)
                right = self.eval_expr(rhs, env)
                return self._binary_op(op, left, right, expr)
            case Accessor(segments=segments):
                return self._access(segments, env)
            case Call(callee=callee, args=args):
                func = self.eval_expr(callee, env)
                values = [self.eval_expr(arg, env) for arg in args]
                return self.call_function(func, values, env, expr)
        raise FruttaRuntimeError(f"Unknown expression: {expr!r}", node=expr)

    def _lookup(self, name: str, env: Environment, node: Expr) -> Any:
        if name in env:
            return env[name]
        klass = env.classes.get(name)
        if klass is not None:
            # A bare class name evaluates to a fresh default instance.
            return klass.create_instance()
        raise NameNotFoundError(f"Variable or class '{name}' not found", node=node)

    def _binary_op(self, op: TokenType, left: Any, right: Any, node: BinaryOp) -> Any:
        method = OPERATOR_METHODS.get(op)
        if method is None:
            raise FruttaRuntimeError(f"Unknown operator: {op!r}", node=node)
        if not isinstance(left, ClassInstance):
            raise OperandTypeError(
                f"Operator '{op.value}' is not supported for {type_name(left)} operands", node=node)
        self._dbg("MAGIC", left.class_name, method.value, type_name(right))
        try:
            return left.call_magic(method, [left, right])
        except FruttaRuntimeError as e:
            if e.node is None:
                e.node = node
            raise

    def _access(self, segments: List[Expr], env: Environment) -> Any:
        value = self.eval_expr(segments[0], env)
        for segment in segments[1:]:
            if not isinstance(segment, Identifier):
                raise FieldAccessError(
                    f"Invalid accessor: expected a field name, got {type(segment).__name__}", node=segment)
            if not isinstance(value, ClassInstance):
                raise FieldAccessError(
                    f"Cannot access field '{segment.name}' on a {type_name(value)} value", node=segment)
            field = value.get_field(segment.name)
            if field is None:
                raise FieldNotFoundError(
                    f"{value.class_name} has no field '{segment.name}'", node=segment)
            value = field
        return value

    def call_function(self, func: Any, args: List[Any], env: Environment, node: Optional[Call] = None) -> Any:
        """Invoke a function value with already evaluated arguments.

        `env` is the caller's environment; a user function's environment is
        seeded from a copy of it.
        """
        if not isinstance(func, FruttaCallable):
            raise NotCallableError(f"Attempted to call a non-function value ({type_name(func)})", node=node)
        self._push_frame(func.name, func, args, node)
        try:
            if isinstance(func, BuiltinFunction):
                result = func(args)
            else:
                result = self._call_user_function(func, args, env)
        except FruttaRuntimeError as e:
            if e.node is None:
                e.node = node
            raise
        self._pop_frame()
        return result

    def _call_user_function(self, func: UserFunction, args: List[Any], env: Environment) -> Any:
        # Parameters without a matching argument stay unbound; extra arguments are dropped.
        bindings = dict(zip(func.params, args))
        bindings[func.name] = func
        local_env = env.child(bindings, classes=func.classes)
        self._dbg("CALL", func.name, args)
        result = self._exec_block(func.body, local_env)
        return unwrap_return(result)
