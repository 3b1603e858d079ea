"""
Control-flow signals for break, continue and return.

Executing a statement returns `None` when control falls through normally,
or a `ControlSignal` that the enclosing loop or function call intercepts.
Signals are ordinary return values and never travel as exceptions.
"""

from dataclasses import dataclass
from enum import Enum

from .values import Value, NIL


class SignalKind(Enum):
    BREAK = "break"
    CONTINUE = "continue"
    RETURN = "return"


@dataclass(frozen=True)
class ControlSignal:
    kind: SignalKind
    value: Value = NIL

    def describe(self) -> str:
        """Name of the statement that raised the signal, for error messages."""
        return self.kind.value


BREAK = ControlSignal(SignalKind.BREAK)
CONTINUE = ControlSignal(SignalKind.CONTINUE)


def return_signal(value: Value = NIL) -> ControlSignal:
    return ControlSignal(SignalKind.RETURN, value)
