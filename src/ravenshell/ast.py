"""
Abstract Syntax Tree (AST) node definitions for the Raven shell language.

Nodes are plain data. Each one keeps the first token it was parsed from
(`token_literal()` for diagnostics) and renders back to a canonical string
form (`render()`) used by tests and debugging output.

The tree is strict: every node owns its children and nothing is shared.
"""

import sys
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import List, Optional, TextIO, Tuple
from .tokens import Token


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode:
    """Base class for all AST nodes."""
    token: Token

    def token_literal(self) -> str:
        return self.token.literal

    def render(self) -> str:
        raise NotImplementedError(f"{self.__class__.__name__} cannot be rendered")

    def __str__(self) -> str:
        return self.render()


@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


class CommandType(Enum):
    """Built-in shell commands."""
    LIST = "ls"
    REMOVE = "rm"
    CHANGEDIR = "cd"
    REMOVEDIR = "rmdir"
    MAKEDIR = "mkdir"
    WHOAMI = "whoami"
    CURRENTDIR = "cwd"
    MAKEFILE = "mkfile"
    OUTPUT = "output"
    PRINT = "print"
    SHOW = "show"
    CLEAR = "clear"
    TILDE = "~"


class RedirectionType(Enum):
    """The four redirection operators."""
    OUTPUT = ">"
    APPEND = ">>"
    INPUT = "<"
    HEREDOC = "<<"


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Identifier(Expression):
    """A bare word: a variable name, or a literal word when unbound."""
    value: str

    def render(self) -> str:
        return self.value


@dataclass
class PathExpression(Expression):
    """A file path folded from adjacent path tokens (./foo, a/b.txt, ~/x)."""
    value: str

    def render(self) -> str:
        return self.value


@dataclass
class IntegerLiteral(Expression):
    value: int

    def render(self) -> str:
        return self.token.literal


@dataclass
class StringLiteral(Expression):
    value: str

    def render(self) -> str:
        return f'"{self.value}"'


@dataclass
class BooleanLiteral(Expression):
    value: bool

    def render(self) -> str:
        return self.token.literal


@dataclass
class VariableReference(Expression):
    """Environment variable lookup: $NAME."""
    name: Identifier

    def render(self) -> str:
        return "$" + self.name.render()


@dataclass
class Command(Expression):
    """A built-in shell command with its arguments."""
    command_type: CommandType
    name: str
    arguments: List[Expression] = field(default_factory=list)

    def render(self) -> str:
        return " ".join([self.name] + [arg.render() for arg in self.arguments])


@dataclass
class PipeExpression(Expression):
    """left | right: the output of `left` becomes the input of `right`."""
    left: Expression
    right: Expression

    def render(self) -> str:
        return f"({self.left.render()} | {self.right.render()})"


@dataclass
class RedirectionExpression(Expression):
    """command OP target, where OP is one of > >> < <<."""
    redirection_type: RedirectionType
    command: Expression
    target: Expression

    def render(self) -> str:
        return f"({self.command.render()} {self.redirection_type.value} {self.target.render()})"


@dataclass
class InfixExpression(Expression):
    left: Expression
    operator: str
    right: Expression

    def render(self) -> str:
        return f"({self.left.render()} {self.operator} {self.right.render()})"


@dataclass
class PrefixExpression(Expression):
    operator: str
    right: Expression

    def render(self) -> str:
        return f"({self.operator}{self.right.render()})"


@dataclass
class CallExpression(Expression):
    """A call to a built-in or user-defined function: range(10)."""
    function: str
    arguments: List[Expression] = field(default_factory=list)

    def render(self) -> str:
        args = ", ".join(arg.render() for arg in self.arguments)
        return f"{self.function}({args})"


@dataclass
class ArrayLiteral(Expression):
    """[1, 2, 3], or an empty typed array such as []string."""
    elements: List[Expression] = field(default_factory=list)
    type_hint: Optional[str] = None

    def render(self) -> str:
        if self.type_hint:
            return "[]" + self.type_hint
        return "[" + ", ".join(el.render() for el in self.elements) + "]"


@dataclass
class DictLiteral(Expression):
    """{"key": value}. Keys are expressions evaluated to strings."""
    pairs: List[Tuple[Expression, Expression]] = field(default_factory=list)

    def render(self) -> str:
        body = ", ".join(f"{k.render()}: {v.render()}" for k, v in self.pairs)
        return "{" + body + "}"


@dataclass
class IndexExpression(Expression):
    left: Expression
    index: Expression

    def render(self) -> str:
        return f"({self.left.render()}[{self.index.render()}])"


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class ExpressionStatement(Statement):
    expression: Optional[Expression]

    def render(self) -> str:
        if self.expression is not None:
            return self.expression.render()
        return ""


@dataclass
class AssignmentStatement(Statement):
    name: Identifier
    value: Expression

    def render(self) -> str:
        return f"{self.name.render()} = {self.value.render()}"


@dataclass
class BlockStatement(Statement):
    statements: List[Statement] = field(default_factory=list)

    def render(self) -> str:
        return "{ " + "".join(s.render() + " " for s in self.statements) + "}"


@dataclass
class ForStatement(Statement):
    variable: Identifier
    iterable: Expression
    body: BlockStatement

    def render(self) -> str:
        return (f"for {self.variable.render()} in {self.iterable.render()} "
                f"{self.body.render()}")


@dataclass
class IfStatement(Statement):
    condition: Expression
    consequence: BlockStatement
    alternative: Optional[BlockStatement] = None

    def render(self) -> str:
        out = f"if {self.condition.render()} {self.consequence.render()}"
        if self.alternative is not None:
            out += f" else {self.alternative.render()}"
        return out


@dataclass
class BreakStatement(Statement):
    def render(self) -> str:
        return "break"


@dataclass
class ContinueStatement(Statement):
    def render(self) -> str:
        return "continue"


@dataclass
class FunctionStatement(Statement):
    """fn name(params) { body }"""
    name: Identifier
    parameters: List[Identifier]
    body: BlockStatement

    def render(self) -> str:
        params = ", ".join(p.render() for p in self.parameters)
        return f"fn {self.name.render()}({params}) {self.body.render()}"


@dataclass
class ReturnStatement(Statement):
    value: Optional[Expression] = None

    def render(self) -> str:
        if self.value is None:
            return "return"
        return f"return {self.value.render()}"


@dataclass
class CaseClause(AstNode):
    """case v1, v2: { body }"""
    values: List[Expression]
    body: BlockStatement

    def render(self) -> str:
        values = ", ".join(v.render() for v in self.values)
        return f"case {values}: {self.body.render()}"


@dataclass
class SwitchStatement(Statement):
    value: Expression
    cases: List[CaseClause] = field(default_factory=list)
    default: Optional[BlockStatement] = None

    def render(self) -> str:
        out = f"switch {self.value.render()} {{ "
        for case in self.cases:
            out += case.render() + " "
        if self.default is not None:
            out += f"default {self.default.render()}"
        return out + "}"


@dataclass
class Program:
    """Root of the tree: the statements of one parse call, in order."""
    statements: List[Statement] = field(default_factory=list)

    def token_literal(self) -> str:
        if self.statements:
            return self.statements[0].token_literal()
        return ""

    def render(self) -> str:
        return "".join(s.render() for s in self.statements)

    def __str__(self) -> str:
        return self.render()


# =============================================================================
# Helpers
# =============================================================================

def print_ast(node, out: TextIO = None, indent: int = 0) -> None:
    """Print an AST node as an indented tree for debugging."""
    out = out or sys.stdout
    pad = "  " * indent
    if isinstance(node, list):
        for item in node:
            print_ast(item, out, indent)
        return
    if isinstance(node, tuple):
        out.write(f"{pad}pair\n")
        for item in node:
            print_ast(item, out, indent + 1)
        return
    if not isinstance(node, (AstNode, Program)):
        out.write(f"{pad}{node!r}\n")
        return

    out.write(f"{pad}{node.__class__.__name__}\n")
    for f in fields(node):
        if f.name == "token":
            continue
        value = getattr(node, f.name)
        if isinstance(value, (AstNode, list, tuple)):
            out.write(f"{pad}  {f.name}:\n")
            print_ast(value, out, indent + 2)
        elif isinstance(value, Enum):
            out.write(f"{pad}  {f.name}: {value.value}\n")
        elif value is not None:
            out.write(f"{pad}  {f.name}: {value!r}\n")
