"""
The Frutta object model and its built-in classes.

Every value that is not None, a boolean or a function is a ClassInstance.
Numbers and strings get no special treatment from the evaluator: it asks the
left operand's instance to run a magic method, and the instance decides what
the operator means for its type.
"""

import datetime as _dt
import math
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional

from frutta.frutta_datatypes import BuiltinFunction, MagicMethod
from frutta.frutta_errors import OperandTypeError, UnsupportedOperatorError

# =================================================================
# Abstract Base Classes
# =================================================================


class Class(ABC):
    """A type that can manufacture a default instance of itself."""
    name: str = "Class"

    @abstractmethod
    def create_instance(self) -> 'ClassInstance':
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<class {self.name}>"


class ClassInstance(ABC):
    """A runtime object: answers field lookups and runs magic methods."""
    class_name: str = "Instance"

    @abstractmethod
    def get_field(self, name: str) -> Optional[Any]:
        """The value of field `name`, or None when the instance has no such field."""
        raise NotImplementedError

    def call_magic(self, method: MagicMethod, args: List[Any]) -> Any:
        """Run operator `method`; `args` is `[self, rhs]`."""
        raise UnsupportedOperatorError(
            f"{self.class_name} does not support operator '{method.value}'")

    def display(self) -> str:
        """The text Std.print writes for this instance."""
        return f"<{self.class_name} instance>"

    def __repr__(self) -> str:
        return f"<{self.class_name} {self.display()}>"


def unwrap_operand(rhs: Any, expected: type, method: MagicMethod, lhs: ClassInstance) -> ClassInstance:
    """Unwrap the right operand through its own `value` field and check its type."""
    value = rhs.get_field("value") if isinstance(rhs, ClassInstance) else None
    if not isinstance(value, expected):
        raise OperandTypeError(
            f"Invalid operand for {lhs.class_name} '{method.value}': "
            f"expected {expected.class_name}, got {type_name(rhs)}")
    return value


def type_name(value: Any) -> str:
    match value:
        case None:
            return "None"
        case bool():
            return "Boolean"
        case ClassInstance():
            return value.class_name
    return "Function"


def format_number(value: float) -> str:
    """Integral floats print without a fractional part, as `55` rather than `55.0`."""
    if math.isfinite(value) and value == int(value) and abs(value) < 1e16:
        return str(int(value))
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return repr(value)


def expect_number(value: Any, where: str) -> float:
    if not isinstance(value, NumberInstance):
        raise OperandTypeError(f"{where} expects a Number, got {type_name(value)}")
    return value.value


# =================================================================
# Number
# =================================================================

class NumberClass(Class):
    name = "Number"

    def create_instance(self) -> 'NumberInstance':
        return NumberInstance(0.0)


class NumberInstance(ClassInstance):
    class_name = "Number"

    def __init__(self, value: float):
        self.value = float(value)

    def get_field(self, name: str) -> Optional[Any]:
        value = self.value
        match name:
            case "value":
                return NumberInstance(value)
            case "abs":
                return BuiltinFunction(lambda args: NumberInstance(abs(value)), name="abs")
            case "floor":
                return BuiltinFunction(lambda args: NumberInstance(_integral(math.floor, value)), name="floor")
            case "ceil":
                return BuiltinFunction(lambda args: NumberInstance(_integral(math.ceil, value)), name="ceil")
            case "round":
                return BuiltinFunction(lambda args: NumberInstance(_integral(_round_half_away, value)), name="round")
        return None

    def call_magic(self, method: MagicMethod, args: List[Any]) -> Any:
        rhs = unwrap_operand(args[1], NumberInstance, method, self).value
        lhs = self.value
        match method:
            case MagicMethod.ADD:
                return NumberInstance(lhs + rhs)
            case MagicMethod.SUB:
                return NumberInstance(lhs - rhs)
            case MagicMethod.MUL:
                return NumberInstance(lhs * rhs)
            case MagicMethod.DIV:
                return NumberInstance(_ieee_div(lhs, rhs))
            case MagicMethod.MOD:
                return NumberInstance(math.fmod(lhs, rhs) if rhs != 0 else math.nan)
            case MagicMethod.EQUAL:
                return lhs == rhs
            case MagicMethod.NOT_EQUAL:
                return lhs != rhs
            case MagicMethod.GREATER_THAN:
                return lhs > rhs
            case MagicMethod.LESS_THAN:
                return lhs < rhs
        return super().call_magic(method, args)

    def display(self) -> str:
        return format_number(self.value)

    def __eq__(self, other):
        if not isinstance(other, NumberInstance):
            return NotImplemented
        return self.value == other.value

    def __hash__(self):
        return hash(self.value)


def _integral(func, value: float) -> float:
    # inf and nan pass through unchanged; math.floor and math.ceil raise on them.
    if not math.isfinite(value):
        return value
    return float(func(value))


def _round_half_away(value: float) -> float:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _ieee_div(lhs: float, rhs: float) -> float:
    # Python raises on float division by zero; follow IEEE 754 instead.
    if rhs == 0:
        if lhs == 0 or math.isnan(lhs):
            return math.nan
        return math.copysign(math.inf, lhs) * math.copysign(1.0, rhs)
    return lhs / rhs


# =================================================================
# String
# =================================================================

class StringClass(Class):
    name = "String"

    def create_instance(self) -> 'StringInstance':
        return StringInstance("")


class StringInstance(ClassInstance):
    class_name = "String"

    def __init__(self, value: str):
        self.value = value

    def get_field(self, name: str) -> Optional[Any]:
        value = self.value
        match name:
            case "value":
                return StringInstance(value)
            case "length":
                return NumberInstance(len(value))
            case "upper":
                return BuiltinFunction(lambda args: StringInstance(value.upper()), name="upper")
            case "lower":
                return BuiltinFunction(lambda args: StringInstance(value.lower()), name="lower")
        return None

    def call_magic(self, method: MagicMethod, args: List[Any]) -> Any:
        if method not in (MagicMethod.ADD, MagicMethod.EQUAL, MagicMethod.NOT_EQUAL):
            return super().call_magic(method, args)
        rhs = unwrap_operand(args[1], StringInstance, method, self).value
        match method:
            case MagicMethod.ADD:
                return StringInstance(self.value + rhs)
            case MagicMethod.EQUAL:
                return self.value == rhs
            case MagicMethod.NOT_EQUAL:
                return self.value != rhs

    def display(self) -> str:
        return self.value

    def __eq__(self, other):
        if not isinstance(other, StringInstance):
            return NotImplemented
        return self.value == other.value

    def __hash__(self):
        return hash(self.value)


# =================================================================
# Std
# =================================================================

class StdClass(Class):
    """Console I/O. `io` is any object with `stdout` and `stdin` streams (the Evaluator)."""
    name = "Std"

    def __init__(self, io):
        self.io = io

    def create_instance(self) -> 'StdInstance':
        return StdInstance(self.io)


class StdInstance(ClassInstance):
    class_name = "Std"

    def __init__(self, io):
        self.io = io

    def get_field(self, name: str) -> Optional[Any]:
        match name:
            case "print":
                return BuiltinFunction(self._print, name="print")
            case "input":
                return BuiltinFunction(self._input, name="input")
        return None

    def _write(self, args: List[Any]):
        from frutta.frutta_printer import display
        self.io.stdout.write("".join(display(arg) for arg in args))

    def _print(self, args: List[Any]) -> None:
        self._write(args)
        self.io.stdout.write("\n")
        self.io.stdout.flush()
        return None

    def _input(self, args: List[Any]) -> 'StringInstance':
        # Any arguments are written first as a prompt.
        if args:
            self._write(args)
            self.io.stdout.flush()
        line = self.io.stdin.readline()
        return StringInstance(line.rstrip("\r\n"))


# =================================================================
# Time and Datetime
# =================================================================

class TimeClass(Class):
    name = "Time"

    def create_instance(self) -> 'TimeInstance':
        return TimeInstance()


class TimeInstance(ClassInstance):
    class_name = "Time"

    def get_field(self, name: str) -> Optional[Any]:
        match name:
            case "now":
                return BuiltinFunction(lambda args: NumberInstance(time.time()), name="now")
            case "sleep":
                return BuiltinFunction(self._sleep, name="sleep")
            case "datetime":
                return BuiltinFunction(lambda args: DatetimeInstance(_dt.datetime.now()), name="datetime")
        return None

    def _sleep(self, args: List[Any]) -> None:
        if len(args) != 1:
            raise OperandTypeError(f"Time.sleep expects 1 argument, got {len(args)}")
        seconds = expect_number(args[0], "Time.sleep")
        if seconds < 0:
            raise OperandTypeError("Time.sleep expects a non-negative number of seconds")
        time.sleep(seconds)
        return None


class DatetimeClass(Class):
    name = "Datetime"

    def create_instance(self) -> 'DatetimeInstance':
        return DatetimeInstance(_dt.datetime.now())


class DatetimeInstance(ClassInstance):
    class_name = "Datetime"

    FIELDS = ("year", "month", "day", "hour", "minute", "second")

    def __init__(self, moment: _dt.datetime):
        self.moment = moment

    def get_field(self, name: str) -> Optional[Any]:
        if name == "value":
            return self
        if name in self.FIELDS:
            return NumberInstance(getattr(self.moment, name))
        if name == "timestamp":
            return NumberInstance(self.moment.timestamp())
        return None

    def call_magic(self, method: MagicMethod, args: List[Any]) -> Any:
        if method not in (MagicMethod.SUB, MagicMethod.EQUAL, MagicMethod.NOT_EQUAL,
                          MagicMethod.GREATER_THAN, MagicMethod.LESS_THAN):
            return super().call_magic(method, args)
        rhs = unwrap_operand(args[1], DatetimeInstance, method, self).moment
        match method:
            case MagicMethod.SUB:
                return NumberInstance((self.moment - rhs).total_seconds())
            case MagicMethod.EQUAL:
                return self.moment == rhs
            case MagicMethod.NOT_EQUAL:
                return self.moment != rhs
            case MagicMethod.GREATER_THAN:
                return self.moment > rhs
            case MagicMethod.LESS_THAN:
                return self.moment < rhs

    def display(self) -> str:
        return self.moment.isoformat(sep=" ", timespec="seconds")


# =================================================================
# Registry
# =================================================================

class ClassRegistry:
    """The class table: maps class names to Class objects."""

    def __init__(self):
        self._classes: Dict[str, Class] = {}

    @classmethod
    def with_builtins(cls, io) -> 'ClassRegistry':
        registry = cls()
        for klass in (NumberClass(), StringClass(), StdClass(io), TimeClass(), DatetimeClass()):
            registry.register(klass.name, klass)
        return registry

    def register(self, name: str, klass: Class):
        self._classes[name] = klass

    def get(self, name: str) -> Optional[Class]:
        return self._classes.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._classes

    def __iter__(self) -> Iterator[str]:
        return iter(self._classes)

    def __repr__(self) -> str:
        return f"<ClassRegistry [{', '.join(self._classes)}]>"
