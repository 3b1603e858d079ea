"""
Built-in shell commands.

Each command receives the interpreter state and its already-stringified
arguments, writes to the active output stream, and returns the text it
wrote. Failures raise EvalError prefixed with the command name
(`"rm: ..."`).
"""

import logging
from typing import Callable, Dict, List

from ..ast import CommandType
from ..errors import EvalError
from .context import InterpreterState
from .host import os_error_message

logger = logging.getLogger(__name__)

CLEAR_SCREEN = "\033[2J\033[H"

CommandFn = Callable[[InterpreterState, List[str]], str]

COMMANDS: Dict[CommandType, CommandFn] = {}


def command(command_type: CommandType) -> Callable[[CommandFn], CommandFn]:
    """Register the decorated function as the implementation of a command."""
    def register(fn: CommandFn) -> CommandFn:
        COMMANDS[command_type] = fn
        return fn
    return register


def run_command(command_type: CommandType, state: InterpreterState, args: List[str]) -> str:
    """Run a built-in command by type."""
    fn = COMMANDS.get(command_type)
    if fn is None:
        raise EvalError(f"unknown command: {command_type.value}")
    logger.debug("command %s %r", command_type.value, args)
    return fn(state, args)


def _require_operand(name: str, args: List[str]) -> None:
    if not args:
        raise EvalError(f"{name}: missing operand")


def _emit(state: InterpreterState, text: str) -> str:
    state.write(text)
    return text


@command(CommandType.LIST)
def list_directory(state: InterpreterState, args: List[str]) -> str:
    directory = state.resolve(args[0]) if args else state.cwd
    try:
        names = sorted(state.filesystem.list_directory(directory))
    except OSError as e:
        raise EvalError(f"ls: {os_error_message(e)}")

    lines = []
    for name in names:
        info = state.filesystem.stat(state.resolve(f"{directory}/{name}"))
        if info is not None and info.is_directory:
            name += "/"
        lines.append(name + "\n")
    return _emit(state, "".join(lines))


@command(CommandType.CHANGEDIR)
def change_directory(state: InterpreterState, args: List[str]) -> str:
    if not args:
        state.cwd = state.home()
        return ""

    target = state.resolve(args[0])
    info = state.filesystem.stat(target)
    if info is None:
        raise EvalError(f"cd: {args[0]}: no such file or directory")
    if not info.is_directory:
        raise EvalError(f"cd: {args[0]}: not a directory")
    state.cwd = target
    return ""


@command(CommandType.CURRENTDIR)
def current_directory(state: InterpreterState, args: List[str]) -> str:
    state.write(state.cwd + "\n")
    return state.cwd


@command(CommandType.MAKEDIR)
def make_directory(state: InterpreterState, args: List[str]) -> str:
    _require_operand("mkdir", args)
    for arg in args:
        try:
            state.filesystem.create_directory(state.resolve(arg), recursive=True)
        except OSError as e:
            raise EvalError(f"mkdir: {os_error_message(e)}")
    return ""


@command(CommandType.REMOVEDIR)
def remove_directory(state: InterpreterState, args: List[str]) -> str:
    _require_operand("rmdir", args)
    for arg in args:
        try:
            state.filesystem.remove_empty_directory(state.resolve(arg))
        except OSError as e:
            raise EvalError(f"rmdir: {os_error_message(e)}")
    return ""


@command(CommandType.REMOVE)
def remove(state: InterpreterState, args: List[str]) -> str:
    """Remove files and whole directory trees. Missing paths are not an error."""
    _require_operand("rm", args)
    for arg in args:
        path = state.resolve(arg)
        info = state.filesystem.stat(path)
        if info is None:
            continue
        try:
            if info.is_directory:
                state.filesystem.remove_directory_recursive(path)
            else:
                state.filesystem.remove_file(path)
        except OSError as e:
            raise EvalError(f"rm: {os_error_message(e)}")
    return ""


@command(CommandType.MAKEFILE)
def make_file(state: InterpreterState, args: List[str]) -> str:
    _require_operand("mkfile", args)
    for arg in args:
        try:
            state.filesystem.create_empty_file(state.resolve(arg))
        except OSError as e:
            raise EvalError(f"mkfile: {os_error_message(e)}")
    return ""


@command(CommandType.WHOAMI)
def whoami(state: InterpreterState, args: List[str]) -> str:
    username = state.environment.get("USER") or state.environment.get("USERNAME")
    if not username:
        username = state.filesystem.current_user()
    state.write(username + "\n")
    return username


@command(CommandType.TILDE)
def home(state: InterpreterState, args: List[str]) -> str:
    path = state.home()
    state.write(path + "\n")
    return path


@command(CommandType.PRINT)
@command(CommandType.OUTPUT)
def print_text(state: InterpreterState, args: List[str]) -> str:
    """Copy redirected input through, or echo the arguments."""
    if state.input_redirected:
        return _emit(state, state.input.read())
    return _emit(state, " ".join(args) + "\n")


@command(CommandType.SHOW)
def show(state: InterpreterState, args: List[str]) -> str:
    if not args:
        raise EvalError("show: missing file argument")
    chunks = []
    for arg in args:
        try:
            content = state.filesystem.read_file(state.resolve(arg))
        except OSError as e:
            raise EvalError(f"show: {os_error_message(e)}")
        chunks.append(content.decode("utf-8", errors="replace"))
    return _emit(state, "".join(chunks))


@command(CommandType.CLEAR)
def clear(state: InterpreterState, args: List[str]) -> str:
    state.write(CLEAR_SCREEN)
    return ""
