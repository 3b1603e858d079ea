"""
Built-in function registry for the Raven shell evaluator.

Maps function names to Python implementations. Arity is checked against
the call site before any argument is evaluated; type checks happen inside
each implementation on the evaluated arguments.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..errors import EvalError
from .values import (
    Value, ValueKind,
    int_val, string_val, bool_val, array_val,
    to_display_string, to_integer,
)

_ORDINALS = ("first", "second", "third")


@dataclass
class BuiltinFunction:
    """A built-in function with its implementation and accepted arity."""
    name: str
    min_args: int
    max_args: int
    implementation: Callable[..., Value]
    doc: str = ""

    def arity_message(self) -> str:
        if self.min_args == self.max_args:
            plural = "argument" if self.min_args == 1 else "arguments"
            return f"{self.name}() takes exactly {self.min_args} {plural}"
        return f"{self.name}() takes {self.min_args} or {self.max_args} arguments"

    def check_arity(self, count: int) -> None:
        if not self.min_args <= count <= self.max_args:
            raise EvalError(self.arity_message())

    def __call__(self, *args: Value) -> Value:
        return self.implementation(*args)


def _expect(fn: str, position: int, value: Value, kind: ValueKind, noun: str):
    if value.kind != kind:
        raise EvalError(f"{fn}() {_ORDINALS[position]} argument must be {noun}")
    return value.data


def _string_arg(fn: str, position: int, value: Value) -> str:
    return _expect(fn, position, value, ValueKind.STRING, "a string")


def _array_arg(fn: str, position: int, value: Value) -> tuple:
    return _expect(fn, position, value, ValueKind.ARRAY, "an array")


def _int_arg(fn: str, position: int, value: Value) -> int:
    n = to_integer(value)
    if n is None:
        raise EvalError(f"{fn}() {_ORDINALS[position]} argument must be an integer")
    return n


def _compile(pattern: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise EvalError(f"invalid regex: {e}")


class BuiltinRegistry:
    """
    Registry of all built-in functions.

    Functions are registered by name and looked up at call time. User
    functions with the same name take precedence over these.
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        return self._functions.get(name)

    def register(self, func: BuiltinFunction) -> None:
        self._functions[func.name] = func

    def names(self) -> List[str]:
        return sorted(self._functions)

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def _register_all(self) -> None:
        self._register_sequence_functions()
        self._register_string_functions()
        self._register_array_functions()
        self._register_regex_functions()

    # --- Sequences ---

    def _register_sequence_functions(self) -> None:

        def _range(n: Value) -> Value:
            count = to_integer(n)
            if count is None:
                raise EvalError("range() argument must be an integer")
            if count < 0:
                raise EvalError("range() argument must not be negative")
            return array_val(int_val(i) for i in range(count))

        def _append(arr: Value, item: Value) -> Value:
            items = _array_arg("append", 0, arr)
            return array_val(items + (item,))

        def _len(v: Value) -> Value:
            if v.kind in (ValueKind.STRING, ValueKind.ARRAY):
                return int_val(len(v.data))
            raise EvalError("len() argument must be string or array")

        self.register(BuiltinFunction("range", 1, 1, _range,
                                      "range(n): the integers 0 to n-1"))
        self.register(BuiltinFunction("append", 2, 2, _append,
                                      "append(arr, v): a new array with v at the end"))
        self.register(BuiltinFunction("push", 2, 2, _append, "alias of append"))
        self.register(BuiltinFunction("len", 1, 1, _len,
                                      "len(x): characters in a string or items in an array"))

    # --- Strings ---

    def _register_string_functions(self) -> None:

        def _split(s: Value, sep: Value) -> Value:
            text = _string_arg("split", 0, s)
            separator = _string_arg("split", 1, sep)
            if separator == "":
                # Splitting on nothing yields the individual characters
                return array_val(string_val(ch) for ch in text)
            return array_val(string_val(part) for part in text.split(separator))

        def _trim(s: Value) -> Value:
            return string_val(_string_arg("trim", 0, s).strip())

        def _upper(s: Value) -> Value:
            return string_val(_string_arg("upper", 0, s).upper())

        def _lower(s: Value) -> Value:
            return string_val(_string_arg("lower", 0, s).lower())

        def _contains(s: Value, sub: Value) -> Value:
            text = _string_arg("contains", 0, s)
            return bool_val(_string_arg("contains", 1, sub) in text)

        def _replace(s: Value, old: Value, new: Value) -> Value:
            text = _string_arg("replace", 0, s)
            return string_val(text.replace(_string_arg("replace", 1, old),
                                           _string_arg("replace", 2, new)))

        self.register(BuiltinFunction("split", 2, 2, _split, "split(s, sep)"))
        self.register(BuiltinFunction("trim", 1, 1, _trim, "trim(s): strip surrounding whitespace"))
        self.register(BuiltinFunction("upper", 1, 1, _upper, "upper(s)"))
        self.register(BuiltinFunction("lower", 1, 1, _lower, "lower(s)"))
        self.register(BuiltinFunction("contains", 2, 2, _contains, "contains(s, sub)"))
        self.register(BuiltinFunction("replace", 3, 3, _replace,
                                      "replace(s, old, new): replace every occurrence"))

    # --- Arrays ---

    def _register_array_functions(self) -> None:

        def _slice(arr: Value, start: Value, end: Value = None) -> Value:
            items = _array_arg("slice", 0, arr)
            lo = max(_int_arg("slice", 1, start), 0)
            hi = len(items) if end is None else min(_int_arg("slice", 2, end), len(items))
            if lo > hi:
                return array_val(())
            return array_val(items[lo:hi])

        def _pop(arr: Value) -> Value:
            items = _array_arg("pop", 0, arr)
            if not items:
                raise EvalError("pop() on empty array")
            return items[-1]

        def _first(arr: Value) -> Value:
            items = _array_arg("first", 0, arr)
            if not items:
                raise EvalError("first() on empty array")
            return items[0]

        def _last(arr: Value) -> Value:
            items = _array_arg("last", 0, arr)
            if not items:
                raise EvalError("last() on empty array")
            return items[-1]

        def _join(arr: Value, sep: Value) -> Value:
            items = _array_arg("join", 0, arr)
            separator = _string_arg("join", 1, sep)
            return string_val(separator.join(to_display_string(v) for v in items))

        self.register(BuiltinFunction("slice", 2, 3, _slice,
                                      "slice(arr, start[, end]): bounds are clamped"))
        self.register(BuiltinFunction("pop", 1, 1, _pop, "pop(arr): the last element"))
        self.register(BuiltinFunction("first", 1, 1, _first))
        self.register(BuiltinFunction("last", 1, 1, _last))
        self.register(BuiltinFunction("join", 2, 2, _join, "join(arr, sep)"))

    # --- Regular expressions ---

    def _register_regex_functions(self) -> None:

        def _regex_match(text: Value, pattern: Value) -> Value:
            regex = _compile(to_display_string(pattern))
            return bool_val(regex.search(to_display_string(text)) is not None)

        def _regex_find(text: Value, pattern: Value) -> Value:
            regex = _compile(to_display_string(pattern))
            matches = regex.finditer(to_display_string(text))
            return array_val(string_val(m.group(0)) for m in matches)

        def _regex_replace(text: Value, pattern: Value, replacement: Value) -> Value:
            regex = _compile(to_display_string(pattern))
            try:
                return string_val(regex.sub(to_display_string(replacement),
                                            to_display_string(text)))
            except re.error as e:
                raise EvalError(f"invalid regex replacement: {e}")

        self.register(BuiltinFunction("regex_match", 2, 2, _regex_match,
                                      "regex_match(text, pattern): true if pattern occurs in text"))
        self.register(BuiltinFunction("regex_find", 2, 2, _regex_find,
                                      "regex_find(text, pattern): every match, in order"))
        self.register(BuiltinFunction("regex_replace", 3, 3, _regex_replace,
                                      "regex_replace(text, pattern, replacement)"))


def regex_matches(text: str, pattern: str) -> bool:
    """Shared implementation of the `=~` operator."""
    return _compile(pattern).search(text) is not None


# Global singleton registry
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global built-in function registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry
