"""
Tree-walking evaluator for the Raven shell.

Reduces AST nodes to runtime Values against a long-lived InterpreterState.
Runtime errors are raised as EvalError and surface from `eval()` as a
failed ExecutionResult. break, continue and return travel as returned
ControlSignal values. Loops consume break and continue; a function call
consumes return and hands break or continue on to the loop around the call.
"""

import io
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, TextIO

from .values import (
    Value, ValueKind, UserFunction, NIL,
    int_val, string_val, bool_val, array_val, dict_val,
    to_display_string, to_integer, is_truthy, values_equal,
)
from .signals import ControlSignal, SignalKind, BREAK, CONTINUE, return_signal
from .context import InterpreterState
from .host import Environment, FileSystem, LocalFileSystem, os_error_message
from .commands import run_command
from .builtins import BuiltinRegistry, get_builtin_registry, regex_matches

from ..ast import (
    Program, Statement, ExpressionStatement, AssignmentStatement,
    BlockStatement, ForStatement, IfStatement, BreakStatement,
    ContinueStatement, FunctionStatement, ReturnStatement, SwitchStatement,
    Expression, Identifier, PathExpression, IntegerLiteral, StringLiteral,
    BooleanLiteral, VariableReference, Command, PipeExpression,
    RedirectionExpression, RedirectionType, InfixExpression, PrefixExpression,
    CallExpression, ArrayLiteral, DictLiteral, IndexExpression,
)
from ..errors import Diagnostic, EvalError, ParserError
from ..lexer import Lexer
from ..parser import Parser

logger = logging.getLogger(__name__)

_ARITHMETIC = frozenset({"+", "-", "*", "/", "%"})
_COMPARISON = frozenset({"==", "!=", "<", ">", "<=", ">="})

# Each Raven call nests several Python frames
RECURSION_LIMIT = 10000


@dataclass
class ExecutionResult:
    """Result of evaluating a program."""
    success: bool
    value: Value = NIL
    error_message: Optional[str] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def output_value(self) -> str:
        """Display form of the last expression statement's value."""
        return to_display_string(self.value)


def _truncating_divide(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _signal_outside_error(signal: ControlSignal) -> EvalError:
    if signal.kind == SignalKind.RETURN:
        return EvalError("return outside of function")
    return EvalError(f"{signal.describe()} outside of loop")


class _EscapedSignal(Exception):
    """break or continue leaving a function call for the caller's loop."""

    def __init__(self, signal: ControlSignal):
        super().__init__(signal.describe())
        self.signal = signal


@contextmanager
def _recursion_limit(limit: int):
    """Raise the interpreter recursion limit for the duration of a run."""
    previous = sys.getrecursionlimit()
    if limit > previous:
        sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


class Evaluator:
    """
    Tree-walking evaluator.

    One Evaluator is meant to outlive many parses: variables, functions and
    the working directory persist from one `eval()` call to the next.

    Usage:
        evaluator = Evaluator(output=buffer)
        result = evaluator.eval(program)
        if not result.success:
            print(result.error_message)
    """

    def __init__(
        self,
        output: Optional[TextIO] = None,
        input: Optional[TextIO] = None,
        filesystem: Optional[FileSystem] = None,
        environment: Optional[Environment] = None,
        cwd: Optional[str] = None,
        builtins: Optional[BuiltinRegistry] = None,
    ):
        """
        Args:
            output: Sink for command output (default: sys.stdout)
            input: Source for command input (default: sys.stdin)
            filesystem: Host filesystem (default: LocalFileSystem)
            environment: Environment view (default: overlay over os.environ)
            cwd: Starting working directory (default: the process's)
            builtins: Built-in function registry (default: the global one)
        """
        state = InterpreterState(
            filesystem=filesystem or LocalFileSystem(),
            environment=environment or Environment(),
            cwd=cwd or "",
        )
        if output is not None:
            state.output = output
        if input is not None:
            state.input = input
        self.state = state
        self.builtins = builtins or get_builtin_registry()

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def cwd(self) -> str:
        return self.state.cwd

    @property
    def variables(self) -> Dict[str, Value]:
        return self.state.variables

    @property
    def functions(self) -> Dict[str, UserFunction]:
        return self.state.functions

    def get_variable(self, name: str) -> Optional[Value]:
        return self.state.get_variable(name)

    def set_env(self, name: str, value: str) -> None:
        """Set an environment variable in the local overlay."""
        self.state.environment.set(name, value)

    def eval(self, program: Program) -> ExecutionResult:
        """
        Run every statement of `program` in order.

        The first runtime error stops the program; statements before it keep
        their effects.
        """
        last_value = NIL
        with _recursion_limit(RECURSION_LIMIT):
            for stmt in program.statements:
                try:
                    if isinstance(stmt, ExpressionStatement):
                        try:
                            last_value = self.evaluate(stmt.expression)
                            continue
                        except _EscapedSignal as escaped:
                            signal = escaped.signal
                    else:
                        signal = self._execute_statement(stmt)
                    if signal is not None:
                        raise _signal_outside_error(signal)
                except EvalError as e:
                    if e.span is None:
                        e.span = stmt.token.span
                    logger.debug("runtime error at %s: %s", e.span, e.message)
                    return ExecutionResult(success=False, error_message=e.message,
                                           diagnostics=[e.to_diagnostic()])
                except RecursionError:
                    return ExecutionResult(success=False,
                                           error_message="maximum recursion depth exceeded")
        return ExecutionResult(success=True, value=last_value)

    def run_source(self, source: str) -> ExecutionResult:
        """Parse and evaluate `source`. Parse errors prevent any evaluation."""
        parser = Parser(Lexer(source))
        program = parser.parse_program()
        if parser.errors:
            error = ParserError(parser.errors)
            return ExecutionResult(success=False,
                                   error_message="; ".join(parser.error_messages()),
                                   diagnostics=list(error.diagnostics))
        return self.eval(program)

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statement(self, stmt: Statement) -> Optional[ControlSignal]:
        """Execute a statement, returning any control signal it raised."""
        try:
            return self._dispatch_statement(stmt)
        except _EscapedSignal as escaped:
            # break/continue from a called function act where the call stands
            return escaped.signal

    def _dispatch_statement(self, stmt: Statement) -> Optional[ControlSignal]:
        if isinstance(stmt, ExpressionStatement):
            self.evaluate(stmt.expression)
        elif isinstance(stmt, AssignmentStatement):
            self.state.set_variable(stmt.name.value, self.evaluate(stmt.value))
        elif isinstance(stmt, ForStatement):
            return self._execute_for(stmt)
        elif isinstance(stmt, IfStatement):
            return self._execute_if(stmt)
        elif isinstance(stmt, BreakStatement):
            return BREAK
        elif isinstance(stmt, ContinueStatement):
            return CONTINUE
        elif isinstance(stmt, FunctionStatement):
            self._execute_function_definition(stmt)
        elif isinstance(stmt, ReturnStatement):
            value = self.evaluate(stmt.value) if stmt.value is not None else NIL
            return return_signal(value)
        elif isinstance(stmt, SwitchStatement):
            return self._execute_switch(stmt)
        elif isinstance(stmt, BlockStatement):
            return self._execute_block(stmt)
        else:
            raise EvalError(f"unknown statement type: {type(stmt).__name__}")
        return None

    def _execute_block(self, block: BlockStatement) -> Optional[ControlSignal]:
        for stmt in block.statements:
            signal = self._execute_statement(stmt)
            if signal is not None:
                return signal
        return None

    def _execute_for(self, stmt: ForStatement) -> Optional[ControlSignal]:
        iterable = self.evaluate(stmt.iterable)
        if iterable.kind != ValueKind.ARRAY:
            raise EvalError(f"cannot iterate over {iterable.kind.value}")

        for item in iterable.data:
            self.state.set_variable(stmt.variable.value, item)
            signal = self._execute_block(stmt.body)
            if signal is None or signal.kind == SignalKind.CONTINUE:
                continue
            if signal.kind == SignalKind.BREAK:
                break
            return signal
        return None

    def _execute_if(self, stmt: IfStatement) -> Optional[ControlSignal]:
        if is_truthy(self.evaluate(stmt.condition)):
            return self._execute_block(stmt.consequence)
        if stmt.alternative is not None:
            return self._execute_block(stmt.alternative)
        return None

    def _execute_switch(self, stmt: SwitchStatement) -> Optional[ControlSignal]:
        subject = self.evaluate(stmt.value)
        for case in stmt.cases:
            for candidate in case.values:
                if values_equal(subject, self.evaluate(candidate)):
                    return self._execute_block(case.body)
        if stmt.default is not None:
            return self._execute_block(stmt.default)
        return None

    def _execute_function_definition(self, stmt: FunctionStatement) -> None:
        fn = UserFunction(
            name=stmt.name.value,
            parameters=[p.value for p in stmt.parameters],
            body=stmt.body,
            closure=dict(self.state.variables),
        )
        self.state.functions[fn.name] = fn
        logger.debug("defined function %s(%s)", fn.name, ", ".join(fn.parameters))

    # =========================================================================
    # Expressions
    # =========================================================================

    def evaluate(self, expr: Optional[Expression]) -> Value:
        """Reduce an expression to a Value."""
        if expr is None:
            return NIL
        if isinstance(expr, Command):
            return self._evaluate_command(expr)
        if isinstance(expr, PipeExpression):
            return self._evaluate_pipe(expr)
        if isinstance(expr, RedirectionExpression):
            return self._evaluate_redirection(expr)
        if isinstance(expr, Identifier):
            value = self.state.get_variable(expr.value)
            return value if value is not None else string_val(expr.value)
        if isinstance(expr, PathExpression):
            return string_val(self.state.resolve(expr.value))
        if isinstance(expr, StringLiteral):
            return string_val(expr.value)
        if isinstance(expr, IntegerLiteral):
            return int_val(expr.value)
        if isinstance(expr, BooleanLiteral):
            return bool_val(expr.value)
        if isinstance(expr, VariableReference):
            return string_val(self.state.environment.get(expr.name.value) or "")
        if isinstance(expr, InfixExpression):
            return self._evaluate_infix(expr)
        if isinstance(expr, PrefixExpression):
            return self._evaluate_prefix(expr)
        if isinstance(expr, CallExpression):
            return self._evaluate_call(expr)
        if isinstance(expr, ArrayLiteral):
            if expr.type_hint:
                return array_val(())
            return array_val(self.evaluate(el) for el in expr.elements)
        if isinstance(expr, DictLiteral):
            return self._evaluate_dict(expr)
        if isinstance(expr, IndexExpression):
            return self._evaluate_index(expr)
        raise EvalError(f"unknown expression type: {type(expr).__name__}")

    def _evaluate_command(self, cmd: Command) -> Value:
        args = [to_display_string(self.evaluate(arg)) for arg in cmd.arguments]
        return string_val(run_command(cmd.command_type, self.state, args))

    def _evaluate_pipe(self, pipe: PipeExpression) -> Value:
        """Run the left side into a buffer, then the right side reading from it."""
        buffer = io.StringIO()
        with self.state.redirect_output(buffer):
            self.evaluate(pipe.left)
        logger.debug("pipe carried %d characters", buffer.tell())
        buffer.seek(0)
        with self.state.redirect_input(buffer):
            return self.evaluate(pipe.right)

    def _evaluate_redirection(self, redir: RedirectionExpression) -> Value:
        target = to_display_string(self.evaluate(redir.target))
        if redir.redirection_type == RedirectionType.HEREDOC:
            raise EvalError("heredoc not yet implemented")

        path = self.state.resolve(target)
        fs = self.state.filesystem
        logger.debug("redirect %s %s", redir.redirection_type.value, path)

        if redir.redirection_type == RedirectionType.INPUT:
            try:
                stream = fs.open_for_read(path)
            except OSError as e:
                raise EvalError(f"cannot open file {target}: {os_error_message(e)}")
            with stream, self.state.redirect_input(stream):
                return self.evaluate(redir.command)

        append = redir.redirection_type == RedirectionType.APPEND
        try:
            stream = fs.open_for_write(path, append=append)
        except OSError as e:
            verb = "open" if append else "create"
            raise EvalError(f"cannot {verb} file {target}: {os_error_message(e)}")
        with stream, self.state.redirect_output(stream):
            return self.evaluate(redir.command)

    def _evaluate_prefix(self, node: PrefixExpression) -> Value:
        right = self.evaluate(node.right)
        if node.operator == "!":
            return bool_val(not is_truthy(right))
        raise EvalError(f"unknown prefix operator: {node.operator}")

    def _evaluate_infix(self, node: InfixExpression) -> Value:
        op = node.operator

        # Short-circuit: the right side only runs when it decides the result
        if op == "&&":
            if not is_truthy(self.evaluate(node.left)):
                return bool_val(False)
            return bool_val(is_truthy(self.evaluate(node.right)))
        if op == "||":
            if is_truthy(self.evaluate(node.left)):
                return bool_val(True)
            return bool_val(is_truthy(self.evaluate(node.right)))

        left = self.evaluate(node.left)
        right = self.evaluate(node.right)

        if op == "+":
            if left.kind == ValueKind.ARRAY and right.kind == ValueKind.ARRAY:
                return array_val(left.data + right.data)
            if ValueKind.STRING in (left.kind, right.kind):
                return string_val(to_display_string(left) + to_display_string(right))

        a = to_integer(left)
        b = to_integer(right)
        if a is not None and b is not None and (op in _ARITHMETIC or op in _COMPARISON):
            return self._integer_infix(op, a, b)

        if op == "==":
            return bool_val(values_equal(left, right))
        if op == "!=":
            return bool_val(not values_equal(left, right))
        if op == "+":
            return string_val(to_display_string(left) + to_display_string(right))
        if op == "=~":
            return bool_val(regex_matches(to_display_string(left), to_display_string(right)))
        raise EvalError(f"cannot apply {op} to {left.kind.value} and {right.kind.value}")

    @staticmethod
    def _integer_infix(op: str, a: int, b: int) -> Value:
        if op == "+":
            return int_val(a + b)
        if op == "-":
            return int_val(a - b)
        if op == "*":
            return int_val(a * b)
        if op == "/":
            if b == 0:
                raise EvalError("division by zero")
            return int_val(_truncating_divide(a, b))
        if op == "%":
            if b == 0:
                raise EvalError("modulo by zero")
            return int_val(a - b * _truncating_divide(a, b))
        if op == "==":
            return bool_val(a == b)
        if op == "!=":
            return bool_val(a != b)
        if op == "<":
            return bool_val(a < b)
        if op == ">":
            return bool_val(a > b)
        if op == "<=":
            return bool_val(a <= b)
        return bool_val(a >= b)

    def _evaluate_call(self, node: CallExpression) -> Value:
        fn = self.state.functions.get(node.function)
        if fn is not None:
            return self._call_user_function(fn, node.arguments)

        builtin = self.builtins.get_function(node.function)
        if builtin is None:
            raise EvalError(f"unknown function: {node.function}")
        builtin.check_arity(len(node.arguments))
        return builtin(*[self.evaluate(arg) for arg in node.arguments])

    def _call_user_function(self, fn: UserFunction, arguments: List[Expression]) -> Value:
        if len(arguments) != len(fn.parameters):
            raise EvalError(f"wrong number of arguments: expected {len(fn.parameters)}, "
                            f"got {len(arguments)}")

        # Arguments are evaluated in the caller's variables, before the switch
        values = [self.evaluate(arg) for arg in arguments]
        variables = dict(fn.closure)
        variables.update(zip(fn.parameters, values))

        logger.debug("call %s(%s)", fn.name, ", ".join(repr(v) for v in values))
        with self.state.activation(variables):
            signal = self._execute_block(fn.body)

        if signal is None:
            return NIL
        if signal.kind == SignalKind.RETURN:
            return signal.value
        raise _EscapedSignal(signal)

    def _evaluate_dict(self, node: DictLiteral) -> Value:
        entries: Dict[str, Value] = {}
        for key_expr, value_expr in node.pairs:
            key = to_display_string(self.evaluate(key_expr))
            entries[key] = self.evaluate(value_expr)
        return dict_val(entries)

    def _evaluate_index(self, node: IndexExpression) -> Value:
        left = self.evaluate(node.left)
        index = self.evaluate(node.index)

        if left.kind == ValueKind.DICT:
            key = to_display_string(index)
            if key not in left.data:
                raise EvalError(f"key not found: {key}")
            return left.data[key]

        if left.kind != ValueKind.ARRAY:
            raise EvalError(f"index operator not supported on {left.kind.value}")

        i = to_integer(index)
        if i is None:
            raise EvalError("array index must be an integer")
        if i < 0 or i >= len(left.data):
            raise EvalError(f"array index out of bounds: {i}")
        return left.data[i]


def run(source: str, **kwargs) -> ExecutionResult:
    """
    Convenience function: parse and evaluate `source` in a fresh Evaluator.

    Keyword arguments are passed to Evaluator.
    """
    return Evaluator(**kwargs).run_source(source)
