"""
Token types for the Raven shell lexer.

Keywords are not a separate lexical class: the lexer scans a word as an
identifier and then re-tags it through the keyword tables below.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Special ---
    EOF = "EOF"
    ILLEGAL = "ILLEGAL"

    # --- Literals ---
    IDENT = "IDENT"
    INTEGER = "INTEGER"
    STRING = "STRING"

    # --- Command keywords ---
    LIST = "LIST"               # ls
    REMOVE = "REMOVE"           # rm
    CHANGEDIR = "CHANGEDIR"     # cd
    REMOVEDIR = "REMOVEDIR"     # rmdir
    MAKEDIR = "MAKEDIR"         # mkdir
    WHOAMI = "WHOAMI"           # whoami
    CURRENTDIR = "CURRENTDIR"   # cwd
    MAKEFILE = "MAKEFILE"       # mkfile
    OUTPUT = "OUTPUT"           # output
    PRINT = "PRINT"             # print
    SHOW = "SHOW"               # show
    CLEAR = "CLEAR"             # clear

    # --- Script keywords ---
    FOR = "FOR"
    IN = "IN"
    IF = "IF"
    ELSE = "ELSE"
    BREAK = "BREAK"
    CONTINUE = "CONTINUE"
    FN = "FN"
    RETURN = "RETURN"
    SWITCH = "SWITCH"
    CASE = "CASE"
    DEFAULT = "DEFAULT"
    TRUE = "TRUE"
    FALSE = "FALSE"

    # --- Shell operators ---
    PIPE = "PIPE"               # |
    GREATER = "GREATER"         # >  (redirection or comparison)
    INTO = "INTO"               # >>
    LESS = "LESS"               # <  (redirection or comparison)
    OUT = "OUT"                 # <<
    DOLLAR = "DOLLAR"           # $
    FULLSTOP = "FULLSTOP"       # .
    FSLASH = "FSLASH"           # /  (path separator or division)
    TILDE = "TILDE"             # ~

    # --- Script operators ---
    OR = "OR"                   # ||
    AND = "AND"                 # &&
    PLUS = "PLUS"               # +
    MINUS = "MINUS"             # -
    ASTERISK = "ASTERISK"       # *
    PERCENT = "PERCENT"         # %
    ASSIGN = "ASSIGN"           # =
    EQ = "EQ"                   # ==
    NOT_EQ = "NOT_EQ"           # !=
    REGEX_MATCH = "REGEX_MATCH"  # =~
    NOT = "NOT"                 # !
    GTE = "GTE"                 # >=
    LTE = "LTE"                 # <=

    # --- Delimiters ---
    LBRACE = "LBRACE"
    RBRACE = "RBRACE"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    COMMA = "COMMA"
    COLON = "COLON"


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    literal: str
    span: Optional[SourceSpan] = None

    def __str__(self) -> str:
        if self.type in (TokenType.IDENT, TokenType.INTEGER, TokenType.STRING,
                         TokenType.ILLEGAL):
            return f"{self.type.name}({self.literal!r})"
        return self.type.name

    def touches(self, other: "Token") -> bool:
        """True when `other` starts exactly where this token ends."""
        if self.span is None or other.span is None:
            return False
        return self.span.end.offset == other.span.start.offset


# Words that name built-in shell commands
COMMAND_KEYWORDS: dict[str, TokenType] = {
    "ls": TokenType.LIST,
    "rm": TokenType.REMOVE,
    "cd": TokenType.CHANGEDIR,
    "rmdir": TokenType.REMOVEDIR,
    "mkdir": TokenType.MAKEDIR,
    "whoami": TokenType.WHOAMI,
    "cwd": TokenType.CURRENTDIR,
    "mkfile": TokenType.MAKEFILE,
    "output": TokenType.OUTPUT,
    "print": TokenType.PRINT,
    "show": TokenType.SHOW,
    "clear": TokenType.CLEAR,
}

# Scripting keywords
KEYWORDS: dict[str, TokenType] = {
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "fn": TokenType.FN,
    "return": TokenType.RETURN,
    "switch": TokenType.SWITCH,
    "case": TokenType.CASE,
    "default": TokenType.DEFAULT,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

_COMMAND_TYPES = frozenset(COMMAND_KEYWORDS.values())


def lookup_ident(word: str) -> TokenType:
    """Classify a scanned word as a command, keyword, or plain identifier."""
    if word in COMMAND_KEYWORDS:
        return COMMAND_KEYWORDS[word]
    return KEYWORDS.get(word, TokenType.IDENT)


def is_command_token(token_type: TokenType) -> bool:
    """Check if a token type names a built-in shell command."""
    return token_type in _COMMAND_TYPES
