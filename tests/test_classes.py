import datetime as dt
import io
import math

import pytest

from frutta.frutta_classes import (
    Class, ClassInstance, ClassRegistry, DatetimeInstance, NumberInstance,
    StdInstance, StringInstance, TimeInstance, format_number, type_name,
)
from frutta.frutta_datatypes import BuiltinFunction, MagicMethod
from frutta.frutta_errors import OperandTypeError, UnsupportedOperatorError


def num(v):
    return NumberInstance(v)


def magic(lhs, method, rhs):
    return lhs.call_magic(method, [lhs, rhs])


# --- Number ---

@pytest.mark.parametrize(
    "lhs, method, rhs, expected",
    [
        (7, MagicMethod.ADD, 3, num(10)),
        (7, MagicMethod.SUB, 3, num(4)),
        (7, MagicMethod.MUL, 3, num(21)),
        (7, MagicMethod.DIV, 2, num(3.5)),
        (7, MagicMethod.MOD, 3, num(1)),
        (-7, MagicMethod.MOD, 3, num(-1)),
        (7, MagicMethod.EQUAL, 7, True),
        (7, MagicMethod.NOT_EQUAL, 7, False),
        (7, MagicMethod.GREATER_THAN, 3, True),
        (7, MagicMethod.LESS_THAN, 3, False),
    ],
)
def test_number_magic_methods(lhs, method, rhs, expected):
    assert magic(num(lhs), method, num(rhs)) == expected


def test_number_division_by_zero_follows_ieee():
    assert magic(num(1), MagicMethod.DIV, num(0)).value == math.inf
    assert magic(num(-1), MagicMethod.DIV, num(0)).value == -math.inf
    assert math.isnan(magic(num(0), MagicMethod.DIV, num(0)).value)
    assert math.isnan(magic(num(1), MagicMethod.MOD, num(0)).value)


def test_number_rejects_non_number_operand():
    with pytest.raises(OperandTypeError, match="expected Number, got String"):
        magic(num(1), MagicMethod.ADD, StringInstance("a"))
    with pytest.raises(OperandTypeError, match="got Boolean"):
        magic(num(1), MagicMethod.EQUAL, True)


def test_number_fields():
    n = num(-2.5)
    assert n.get_field("value") == num(-2.5)
    assert n.get_field("abs")([]) == num(2.5)
    assert n.get_field("floor")([]) == num(-3)
    assert n.get_field("ceil")([]) == num(-2)
    assert n.get_field("round")([]) == num(-3)
    assert n.get_field("nope") is None


@pytest.mark.parametrize(
    "value, expected",
    [(2.5, 3), (-2.5, -3), (0.5, 1), (1.49, 1), (-0.4, 0), (7.0, 7)],
)
def test_number_round_halves_away_from_zero(value, expected):
    assert num(value).get_field("round")([]) == num(expected)


@pytest.mark.parametrize("field", ["floor", "ceil", "round"])
@pytest.mark.parametrize("value", [math.inf, -math.inf])
def test_rounding_fields_keep_infinities(field, value):
    assert num(value).get_field(field)([]) == num(value)


@pytest.mark.parametrize("field", ["floor", "ceil", "round"])
def test_rounding_fields_keep_nan(field):
    assert math.isnan(num(math.nan).get_field(field)([]).value)


@pytest.mark.parametrize(
    "value, text",
    [(55.0, "55"), (-3.0, "-3"), (0.5, "0.5"), (math.inf, "inf"), (-math.inf, "-inf"), (math.nan, "NaN")],
)
def test_format_number(value, text):
    assert format_number(value) == text


# --- String ---

def test_string_concatenation_and_equality():
    a, b = StringInstance("a"), StringInstance("b")
    assert magic(a, MagicMethod.ADD, b) == StringInstance("ab")
    assert magic(a, MagicMethod.EQUAL, StringInstance("a")) is True
    assert magic(a, MagicMethod.NOT_EQUAL, b) is True


@pytest.mark.parametrize("method", [MagicMethod.SUB, MagicMethod.MUL, MagicMethod.DIV, MagicMethod.LESS_THAN])
def test_string_unsupported_operators(method):
    with pytest.raises(UnsupportedOperatorError):
        magic(StringInstance("a"), method, StringInstance("b"))


def test_string_fields():
    s = StringInstance("Hello")
    assert s.get_field("length") == num(5)
    assert s.get_field("upper")([]) == StringInstance("HELLO")
    assert s.get_field("lower")([]) == StringInstance("hello")
    assert s.get_field("value") == s
    assert s.get_field("missing") is None


def test_string_plus_number_is_a_type_error():
    with pytest.raises(OperandTypeError):
        magic(StringInstance("a"), MagicMethod.ADD, num(1))


# --- Std ---

class FakeIO:
    def __init__(self, stdin_text=""):
        self.stdout = io.StringIO()
        self.stdin = io.StringIO(stdin_text)


def test_std_print_concatenates_display_forms():
    fake = FakeIO()
    std = StdInstance(fake)
    result = std.get_field("print")([StringInstance("n = "), num(3), True, None])
    assert result is None
    assert fake.stdout.getvalue() == "n = 3trueNone\n"


def test_std_input_reads_a_line_after_the_prompt():
    fake = FakeIO("Ada\nrest\n")
    std = StdInstance(fake)
    value = std.get_field("input")([StringInstance("name? ")])
    assert value == StringInstance("Ada")
    assert fake.stdout.getvalue() == "name? "


def test_std_has_no_operators():
    std = StdInstance(FakeIO())
    with pytest.raises(UnsupportedOperatorError):
        magic(std, MagicMethod.ADD, std)


# --- Time and Datetime ---

def test_time_now_and_sleep(monkeypatch):
    slept = []
    monkeypatch.setattr("frutta.frutta_classes.time.sleep", slept.append)
    t = TimeInstance()
    assert isinstance(t.get_field("now")([]), NumberInstance)
    assert t.get_field("sleep")([num(0.25)]) is None
    assert slept == [0.25]


@pytest.mark.parametrize("args", [[], [StringInstance("1")], [num(-1)], [num(1), num(2)]])
def test_time_sleep_rejects_bad_arguments(args):
    with pytest.raises(OperandTypeError):
        TimeInstance().get_field("sleep")(args)


def test_datetime_fields_and_arithmetic():
    a = DatetimeInstance(dt.datetime(2024, 2, 29, 13, 5, 9))
    b = DatetimeInstance(dt.datetime(2024, 2, 29, 13, 4, 59))
    assert a.get_field("year") == num(2024)
    assert a.get_field("month") == num(2)
    assert a.get_field("second") == num(9)
    assert a.display() == "2024-02-29 13:05:09"
    assert magic(a, MagicMethod.SUB, b) == num(10)
    assert magic(a, MagicMethod.GREATER_THAN, b) is True
    assert magic(a, MagicMethod.EQUAL, b) is False
    with pytest.raises(UnsupportedOperatorError):
        magic(a, MagicMethod.ADD, b)


def test_time_datetime_returns_a_datetime():
    assert isinstance(TimeInstance().get_field("datetime")([]), DatetimeInstance)


# --- Registry and user-defined classes ---

class Point(ClassInstance):
    class_name = "Point"

    def __init__(self, x=0.0, y=0.0):
        self.x, self.y = x, y

    def get_field(self, name):
        match name:
            case "x":
                return num(self.x)
            case "y":
                return num(self.y)
            case "value":
                return self
            case "moved":
                return BuiltinFunction(lambda args: Point(self.x + args[0].value, self.y + args[1].value), name="moved")
        return None

    def call_magic(self, method, args):
        if method == MagicMethod.ADD:
            other = args[1]
            return Point(self.x + other.x, self.y + other.y)
        return super().call_magic(method, args)

    def display(self):
        return f"Point({format_number(self.x)}, {format_number(self.y)})"


class PointClass(Class):
    name = "Point"

    def create_instance(self):
        return Point()


def test_registry_with_builtins():
    registry = ClassRegistry.with_builtins(FakeIO())
    assert list(registry) == ["Number", "String", "Std", "Time", "Datetime"]
    assert "Std" in registry
    assert registry.get("Nope") is None
    assert registry.get("Number").create_instance() == num(0)
    assert registry.get("String").create_instance() == StringInstance("")


def test_user_class_is_registrable():
    registry = ClassRegistry.with_builtins(FakeIO())
    registry.register("Point", PointClass())
    p = registry.get("Point").create_instance()
    q = magic(p.get_field("moved")([num(1), num(2)]), MagicMethod.ADD, Point(3, 4))
    assert q.display() == "Point(4, 6)"
    with pytest.raises(UnsupportedOperatorError):
        magic(p, MagicMethod.SUB, q)


def test_type_name():
    assert type_name(None) == "None"
    assert type_name(False) == "Boolean"
    assert type_name(num(1)) == "Number"
    assert type_name(BuiltinFunction(lambda args: None, name="f")) == "Function"
