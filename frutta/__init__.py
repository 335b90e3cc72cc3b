from frutta.frutta_runtime import ScriptRunner, ExecutionResult
from frutta.frutta_parser import parse
from frutta.frutta_interpreter import Evaluator

__all__ = ["ScriptRunner", "ExecutionResult", "parse", "Evaluator"]
