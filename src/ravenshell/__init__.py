"""
Raven shell: an interpreter for a small shell and scripting language.

This module provides:
- Lexer: Tokenizes Raven shell source
- Parser: Pratt parser building an AST from tokens
- Evaluator: Tree-walking interpreter with shell commands, pipes and redirection
- Configuration loading for the command-line front end

Usage:
    from ravenshell import parse, Evaluator

    program = parse('''
    fn add(a, b) { return a + b }
    for i in range(3) {
        print add(i, 10)
    }
    ''')
    result = Evaluator().eval(program)
    if not result.success:
        print(result.error_message)
"""

import logging

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
    COMMAND_KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    Precedence,
    parse,
)

from .ast import (
    AstNode,
    Statement,
    Expression,
    Program,
    CommandType,
    RedirectionType,
    print_ast,
)

from .errors import (
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
    ShellError,
    ParserError,
    EvalError,
)

from .runtime import (
    Evaluator,
    ExecutionResult,
    Value,
    ValueKind,
    run,
)

from .config import (
    ShellConfig,
    load_config,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Tokens
    "Token",
    "TokenType",
    "SourceLocation",
    "SourceSpan",
    "KEYWORDS",
    "COMMAND_KEYWORDS",
    # Lexer
    "Lexer",
    "tokenize",
    # Parser
    "Parser",
    "Precedence",
    "parse",
    # AST
    "AstNode",
    "Statement",
    "Expression",
    "Program",
    "CommandType",
    "RedirectionType",
    "print_ast",
    # Errors
    "Diagnostic",
    "DiagnosticCollector",
    "ErrorSeverity",
    "ShellError",
    "ParserError",
    "EvalError",
    # Runtime
    "Evaluator",
    "ExecutionResult",
    "Value",
    "ValueKind",
    "run",
    # Config
    "ShellConfig",
    "load_config",
]
