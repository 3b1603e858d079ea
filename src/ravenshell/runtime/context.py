"""
Interpreter state for the Raven shell evaluator.

Holds everything that survives from one statement to the next: the working
directory, the environment overlay, variable bindings, user functions and
the active input/output streams.
"""

import sys
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, TextIO
from contextlib import contextmanager

from .values import Value, UserFunction
from .host import Environment, FileSystem, LocalFileSystem, resolve_path


@dataclass
class InterpreterState:
    """
    Mutable state shared by every statement an Evaluator runs.

    Variables live in one flat mapping per function activation: blocks do
    not open scopes, only function calls swap the whole mapping.
    """
    filesystem: FileSystem = field(default_factory=LocalFileSystem)
    environment: Environment = field(default_factory=Environment)
    cwd: str = ""

    variables: Dict[str, Value] = field(default_factory=dict)
    functions: Dict[str, UserFunction] = field(default_factory=dict)

    output: TextIO = field(default_factory=lambda: sys.stdout)
    input: TextIO = field(default_factory=lambda: sys.stdin)

    # Nesting depth of active input redirections (pipes and `<`)
    _input_redirections: int = 0

    def __post_init__(self):
        if not self.cwd:
            self.cwd = self.filesystem.current_working_directory()

    def get_variable(self, name: str) -> Optional[Value]:
        return self.variables.get(name)

    def set_variable(self, name: str, value: Value) -> None:
        self.variables[name] = value

    def home(self) -> str:
        return self.filesystem.home_directory()

    def resolve(self, path: str) -> str:
        """Resolve a shell path against the working directory."""
        return resolve_path(path, self.cwd, self.home())

    def write(self, text: str) -> None:
        self.output.write(text)

    @property
    def input_redirected(self) -> bool:
        """True while input comes from a pipe or a file rather than the caller."""
        return self._input_redirections > 0

    @contextmanager
    def redirect_output(self, stream: TextIO) -> Iterator[TextIO]:
        """
        Send output to `stream` for the duration of the block.

        Usage:
            with state.redirect_output(buffer):
                evaluate(left)
        """
        previous = self.output
        self.output = stream
        try:
            yield stream
        finally:
            self.output = previous

    @contextmanager
    def redirect_input(self, stream: TextIO) -> Iterator[TextIO]:
        """Read input from `stream` for the duration of the block."""
        previous = self.input
        self.input = stream
        self._input_redirections += 1
        try:
            yield stream
        finally:
            self._input_redirections -= 1
            self.input = previous

    @contextmanager
    def activation(self, variables: Dict[str, Value]) -> Iterator[Dict[str, Value]]:
        """Swap in a function activation's variables, restoring the caller's after."""
        previous = self.variables
        self.variables = variables
        try:
            yield variables
        finally:
            self.variables = previous
