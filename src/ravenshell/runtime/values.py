"""
Runtime values for the Raven shell evaluator.

A `Value` is a closed tagged union: `kind` says which variant it is and
`data` holds the Python payload. Values are immutable. Arrays are stored as
tuples and dicts are copied on construction, so assigning a value never
aliases it and every "mutation" builds a new value.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..ast import BlockStatement


class ValueKind(Enum):
    INTEGER = "integer"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    DICT = "dict"
    NIL = "nil"


@dataclass(frozen=True)
class Value:
    """
    A runtime value.

    The `data` field holds the Python payload: int, str, bool, a tuple of
    Values, a dict of str -> Value, or None for nil.
    """
    kind: ValueKind
    data: Any = None

    def __repr__(self) -> str:
        return f"Value({self.kind.value}, {self.data!r})"

    def __str__(self) -> str:
        return to_display_string(self)

    def is_truthy(self) -> bool:
        return is_truthy(self)


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")


def wrap_int64(n: int) -> int:
    """Wrap an arbitrary Python int into the signed 64-bit range."""
    n &= 0xFFFFFFFFFFFFFFFF
    if n > INT64_MAX:
        n -= 2 ** 64
    return n


# Convenience constructors

def int_val(n: int) -> Value:
    """Create an integer value (wrapped to signed 64 bits)."""
    return Value(ValueKind.INTEGER, wrap_int64(int(n)))


def string_val(s: str) -> Value:
    return Value(ValueKind.STRING, str(s))


def bool_val(b: bool) -> Value:
    return Value(ValueKind.BOOLEAN, bool(b))


def array_val(items: Iterable[Value]) -> Value:
    """Create an array value. The items are copied into a tuple."""
    return Value(ValueKind.ARRAY, tuple(items))


def dict_val(items: Dict[str, Value]) -> Value:
    """Create a dict value. The mapping is copied."""
    return Value(ValueKind.DICT, dict(items))


NIL = Value(ValueKind.NIL, None)
TRUE = bool_val(True)
FALSE = bool_val(False)


# Conversions

def to_display_string(value: Value) -> str:
    """The text a value prints as."""
    kind = value.kind
    if kind == ValueKind.STRING:
        return value.data
    if kind == ValueKind.INTEGER:
        return str(value.data)
    if kind == ValueKind.BOOLEAN:
        return "true" if value.data else "false"
    if kind == ValueKind.ARRAY:
        return "[" + ", ".join(to_display_string(v) for v in value.data) + "]"
    if kind == ValueKind.DICT:
        pairs = ", ".join(f'"{k}": {to_display_string(v)}' for k, v in value.data.items())
        return "{" + pairs + "}"
    return ""


def to_integer(value: Value) -> Optional[int]:
    """
    Coerce a value to an integer.

    Integers pass through and strings holding an optionally signed run of
    digits are parsed. Anything else returns None.
    """
    if value.kind == ValueKind.INTEGER:
        return value.data
    if value.kind == ValueKind.STRING and _INTEGER_TEXT.fullmatch(value.data):
        parsed = int(value.data)
        if INT64_MIN <= parsed <= INT64_MAX:
            return parsed
    return None


def is_truthy(value: Value) -> bool:
    """Truthiness used by conditions, `!`, `&&` and `||`."""
    kind = value.kind
    if kind == ValueKind.BOOLEAN:
        return value.data
    if kind == ValueKind.INTEGER:
        return value.data != 0
    if kind == ValueKind.STRING:
        return value.data != ""
    if kind == ValueKind.ARRAY:
        return len(value.data) > 0
    if kind == ValueKind.NIL:
        return False
    return True


def values_equal(left: Value, right: Value) -> bool:
    """Integer comparison when both sides coerce, string comparison otherwise."""
    left_int = to_integer(left)
    right_int = to_integer(right)
    if left_int is not None and right_int is not None:
        return left_int == right_int
    return to_display_string(left) == to_display_string(right)


def from_python(obj: Any) -> Value:
    """Wrap a plain Python object (as produced by a config file) as a Value."""
    if obj is None:
        return NIL
    if isinstance(obj, bool):
        return bool_val(obj)
    if isinstance(obj, int):
        return int_val(obj)
    if isinstance(obj, (list, tuple)):
        return array_val(from_python(item) for item in obj)
    if isinstance(obj, dict):
        return dict_val({str(k): from_python(v) for k, v in obj.items()})
    return string_val(str(obj))


@dataclass
class UserFunction:
    """
    A function defined with `fn`.

    The closure is a snapshot of the defining environment's variables taken
    at definition time. Later changes to those variables are not seen.
    """
    name: str
    parameters: List[str]
    body: "BlockStatement"
    closure: Dict[str, Value] = field(default_factory=dict)
