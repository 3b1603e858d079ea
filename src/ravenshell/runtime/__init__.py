"""
Raven shell runtime - tree-walking evaluator.

This module provides:
- Evaluator: Executes parsed programs against persistent interpreter state
- Value: Runtime tagged-union values
- ControlSignal: break/continue/return propagation
- InterpreterState: Variables, functions, cwd and active streams
- FileSystem / Environment: Host collaborators
- BuiltinRegistry: Built-in function implementations
"""

from .values import (
    Value,
    ValueKind,
    UserFunction,
    NIL,
    int_val,
    string_val,
    bool_val,
    array_val,
    dict_val,
    from_python,
    to_display_string,
    to_integer,
    is_truthy,
    values_equal,
)

from .signals import (
    SignalKind,
    ControlSignal,
)

from .host import (
    FileStat,
    FileSystem,
    LocalFileSystem,
    Environment,
    resolve_path,
)

from .context import InterpreterState

from .commands import (
    COMMANDS,
    run_command,
)

from .builtins import (
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
)

from .interpreter import (
    Evaluator,
    ExecutionResult,
    run,
)

__all__ = [
    # Values
    "Value",
    "ValueKind",
    "UserFunction",
    "NIL",
    "int_val",
    "string_val",
    "bool_val",
    "array_val",
    "dict_val",
    "from_python",
    "to_display_string",
    "to_integer",
    "is_truthy",
    "values_equal",
    # Signals
    "SignalKind",
    "ControlSignal",
    # Host
    "FileStat",
    "FileSystem",
    "LocalFileSystem",
    "Environment",
    "resolve_path",
    # State
    "InterpreterState",
    # Commands and builtins
    "COMMANDS",
    "run_command",
    "BuiltinFunction",
    "BuiltinRegistry",
    "get_builtin_registry",
    # Evaluator
    "Evaluator",
    "ExecutionResult",
    "run",
]
