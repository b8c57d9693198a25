"""Runtime type lattice shared by the interpreter and the code generator.

Values are plain Python objects: ``int``, ``float``, ``str``, ``bool``,
``None`` and ``list`` (an integer buffer). Both engines go through the
helpers below so that promotion, concatenation text and integer width stay
identical between them.
"""
import enum
import math
import random


class RuntimeType(enum.Enum):
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    NONE = "none"
    INT_ARRAY = "int[]"

    def __str__(self):
        return self.value


NUMERIC = (RuntimeType.INT, RuntimeType.FLOAT)

ARITHMETIC_OPS = ("+", "-", "*", "/")
COMPARISON_OPS = ("<", ">", "<=", ">=", "==", "!=")
EQUALITY_OPS = ("==", "!=")

INT_BITS = 32
INT_MIN = -(1 << (INT_BITS - 1))
INT_MAX = (1 << (INT_BITS - 1)) - 1
RAND_MAX = INT_MAX

# One generator for the whole process; the JIT reaches it through a callback.
shared_random = random.Random()


def seed(value):
    shared_random.seed(value)


def random_int():
    return shared_random.randint(0, RAND_MAX)


def type_of(value):
    # bool first: it is a subclass of int
    if value is None:
        return RuntimeType.NONE
    if isinstance(value, bool):
        return RuntimeType.BOOL
    if isinstance(value, int):
        return RuntimeType.INT
    if isinstance(value, float):
        return RuntimeType.FLOAT
    if isinstance(value, str):
        return RuntimeType.STRING
    if isinstance(value, list):
        return RuntimeType.INT_ARRAY
    raise TypeError(f"not a runtime value: {value!r}")


def wrap_int(value):
    """Wrap an integer to signed 32 bits, as the generated ``i32`` code does."""
    value &= (1 << INT_BITS) - 1
    if value > INT_MAX:
        value -= 1 << INT_BITS
    return value


def int_div(left, right):
    # C semantics: truncate toward zero
    quotient = abs(left) // abs(right)
    if (left < 0) != (right < 0):
        quotient = -quotient
    return wrap_int(quotient)


def format_float(value):
    return "%g" % value


def to_text(value):
    """Canonical text form used by concatenation, print and string equality."""
    kind = type_of(value)
    if kind is RuntimeType.BOOL:
        return "true" if value else "false"
    if kind is RuntimeType.FLOAT:
        return format_float(value)
    if kind is RuntimeType.NONE:
        return "none"
    if kind is RuntimeType.INT_ARRAY:
        return "[" + ", ".join(str(v) for v in value) + "]"
    return str(value)


def promote(left, right):
    """Result type of arithmetic/comparison between two numeric types."""
    if RuntimeType.FLOAT in (left, right):
        return RuntimeType.FLOAT
    return RuntimeType.INT


def is_numeric(kind):
    return kind in NUMERIC


def binary_result(left, op, right):
    """Type of ``left op right``, or None when the combination is illegal."""
    if is_numeric(left) and is_numeric(right):
        return promote(left, right)
    if op == "+" and RuntimeType.STRING in (left, right):
        other = right if left is RuntimeType.STRING else left
        if other in (RuntimeType.NONE, RuntimeType.INT_ARRAY):
            return None
        return RuntimeType.STRING
    return None


def comparable(left, op, right):
    if is_numeric(left) and is_numeric(right):
        return True
    textual = (RuntimeType.STRING, RuntimeType.BOOL)
    if op in EQUALITY_OPS and (left in textual or right in textual):
        return left not in (RuntimeType.NONE, RuntimeType.INT_ARRAY) and \
            right not in (RuntimeType.NONE, RuntimeType.INT_ARRAY)
    return False


def zero_value(kind):
    return {
        RuntimeType.INT: 0,
        RuntimeType.FLOAT: 0.0,
        RuntimeType.BOOL: False,
        RuntimeType.STRING: "",
        RuntimeType.INT_ARRAY: [],
    }.get(kind)


def float_to_int(value):
    """Truncate toward zero; NaN, infinities and out-of-range values give INT_MIN."""
    if not math.isfinite(value):
        return INT_MIN
    truncated = int(value)
    if not INT_MIN <= truncated <= INT_MAX:
        return INT_MIN
    return truncated


def coerce_value(value, target):
    """Coerce a result to a declared type the way a function return site does.

    Never fails: combinations with no sensible conversion produce the
    target's zero value.
    """
    kind = type_of(value)
    if kind is target:
        return value
    if target is RuntimeType.NONE:
        return None
    if target is RuntimeType.STRING and kind not in (RuntimeType.NONE, RuntimeType.INT_ARRAY):
        return to_text(value)
    if target is RuntimeType.FLOAT and kind in (RuntimeType.INT, RuntimeType.BOOL):
        return float(value)
    if target is RuntimeType.INT:
        if kind is RuntimeType.FLOAT:
            return float_to_int(value)
        if kind is RuntimeType.BOOL:
            return int(value)
    if target is RuntimeType.BOOL and kind in NUMERIC:
        return value != 0
    return zero_value(target)
