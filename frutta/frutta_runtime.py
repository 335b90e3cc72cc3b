# frutta_runtime.py

import sys
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from frutta.frutta_classes import ClassRegistry
from frutta.frutta_errors import FruttaRuntimeError, ParseError, line_and_column, source_excerpt
from frutta.frutta_interpreter import Evaluator
from frutta.frutta_parser import parse
from frutta.frutta_printer import debug_repr

# One Frutta call costs about ten Python frames; the default limit of 1000
# would stop recursion (the language's only loop) at a depth near 100.
RECURSION_LIMIT = 20000

# ===================================================================
# Script Execution
# ===================================================================


@dataclass
class ExecutionResult:
    """The structured result of a script execution.

    `line`/`col` locate the error in the source when it is known; they always
    agree with the location shown in `error_message`. `parse_time` and
    `exec_time` are wall-clock seconds (`exec_time` is None when parsing failed).
    """
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error: Optional[Exception] = None
    side_effects: List[Dict] = field(default_factory=list)
    line: Optional[int] = None
    col: Optional[int] = None
    parse_time: Optional[float] = None
    exec_time: Optional[float] = None

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class ScriptRunner:
    """Parses and executes Frutta code against one persistent runtime.

    Successive `handle_script` calls share the top-level environment, so a
    REPL can feed it one line at a time. A failing script leaves the bindings
    made by statements that already ran in place.
    """

    def __init__(self, classes: Optional[ClassRegistry] = None, stdout=None, stdin=None):
        if sys.getrecursionlimit() < RECURSION_LIMIT:
            sys.setrecursionlimit(RECURSION_LIMIT)
        self.evaluator = Evaluator(classes=classes, stdout=stdout, stdin=stdin)

    @property
    def env(self):
        return self.evaluator.env

    def _format_parse_error(self, e: ParseError) -> str:
        return f"ParseError: {e.render()}"

    def _error_pos(self, e: Exception) -> Optional[int]:
        node = getattr(e, 'node', None)
        if node is None:
            # Fall back to the statement the evaluator was running.
            node = self.evaluator.current_node
        return getattr(node, 'pos', None)

    def _format_runtime_error(self, e: Exception, source: str, pos: Optional[int]) -> str:
        match e:
            case FruttaRuntimeError():
                msg = f"{type(e).__name__}: {e}"
            case RecursionError():
                msg = "RecursionError: maximum call depth exceeded"
            case _:
                msg = f"InternalError: {type(e).__name__}: {e}"

        if pos is not None:
            line, col = line_and_column(source, pos)
            msg = f"{msg} at {line}:{col}\n{source_excerpt(source, pos)}"

        st = self._format_stacktrace(getattr(e, 'frutta_frames', None) or [])
        if st:
            msg += "\n" + st
        return msg

    def _format_stacktrace(self, frames: List[dict]) -> str:
        if not frames:
            return ""
        rendered = []
        for frame in frames:
            name = frame.get('name') or '<call>'
            args = " ".join(debug_repr(a) for a in frame.get('args') or [])
            rendered.append(f"({name} {args})" if args else f"({name})")
        return "Frutta stacktrace: " + " ".join(rendered)

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script."""
        side_effects: List[Dict] = []

        # 1. Parse
        start = time.perf_counter()
        try:
            program = parse(source_code)
        except ParseError as e:
            parse_time = time.perf_counter() - start
            msg = self._format_parse_error(e)
            side_effects.append({'topics': ['stderr'], 'message': msg})
            return ExecutionResult(status='error', error_message=msg, error=e, side_effects=side_effects,
                                   line=e.line, col=e.column, parse_time=parse_time)
        parse_time = time.perf_counter() - start

        # 2. Evaluate
        start = time.perf_counter()
        try:
            result = self.evaluator.exec_statement(program)
        except Exception as e:
            exec_time = time.perf_counter() - start
            pos = self._error_pos(e)
            msg = self._format_runtime_error(e, source_code, pos)
            line, col = line_and_column(source_code, pos) if pos is not None else (None, None)
            side_effects.append({'topics': ['stderr'], 'message': msg})
            return ExecutionResult(status='error', error_message=msg, error=e, side_effects=side_effects,
                                   line=line, col=col, parse_time=parse_time, exec_time=exec_time)
        exec_time = time.perf_counter() - start

        value = result if result is not None else self.evaluator.last_value
        return ExecutionResult(status='success', value=value, side_effects=side_effects,
                               parse_time=parse_time, exec_time=exec_time)
