"""
Diagnostics and exceptions for the Raven shell.

Error code ranges:
- E1xx: Parser errors
- E4xx: Runtime errors

Lexical problems never raise; they surface as ILLEGAL tokens and are
reported by the parser (E104).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional
from .tokens import SourceSpan, Token


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E101, E400, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity = ErrorSeverity.ERROR
    span: Optional[SourceSpan] = None
    hints: List[str] = field(default_factory=list)

    def format(self) -> str:
        """Format the diagnostic for display."""
        loc = f"{self.span.start}: " if self.span is not None else ""
        parts = [f"{loc}{self.severity.value}[{self.code}]: {self.message}"]
        for hint in self.hints:
            parts.append(f"    = hint: {hint}")
        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        result = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "hints": self.hints,
        }
        if self.span is not None:
            result["range"] = {
                "start": {"line": self.span.start.line, "column": self.span.start.column},
                "end": {"line": self.span.end.line, "column": self.span.end.column},
            }
        return result

    def __str__(self) -> str:
        return self.message


class DiagnosticCollector:
    """Accumulates diagnostics so a pass can continue past the first error."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def error(self, code: str, message: str, token: Optional[Token] = None,
              hints: Optional[List[str]] = None) -> Diagnostic:
        """Record an error diagnostic anchored at `token`."""
        diag = Diagnostic(
            code=code,
            message=message,
            severity=ErrorSeverity.ERROR,
            span=token.span if token is not None else None,
            hints=list(hints or []),
        )
        self.add(diag)
        return diag

    @property
    def has_errors(self) -> bool:
        return any(d.severity == ErrorSeverity.ERROR for d in self.diagnostics)

    @property
    def messages(self) -> List[str]:
        return [d.message for d in self.diagnostics]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)


class ShellError(Exception):
    """Base exception for Raven shell errors."""
    pass


class ParserError(ShellError):
    """One or more errors found while parsing (E1xx)."""

    def __init__(self, diagnostics: List[Diagnostic]):
        self.diagnostics = list(diagnostics)
        super().__init__("; ".join(d.message for d in self.diagnostics))

    def __str__(self) -> str:
        return "\n".join(d.format() for d in self.diagnostics)


class EvalError(ShellError):
    """A runtime error that aborts the current statement sequence (E4xx)."""

    code = "E400"

    def __init__(self, message: str, span: Optional[SourceSpan] = None):
        self.message = message
        self.span = span
        super().__init__(message)

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(code=self.code, message=self.message, span=self.span)


# --- Parser error codes ---

E_UNEXPECTED_TOKEN = "E101"
E_NO_PREFIX = "E102"
E_INVALID_INTEGER = "E103"
E_ILLEGAL_TOKEN = "E104"
E_REDIRECTION_TARGET = "E105"
E_VARIABLE_NAME = "E106"
