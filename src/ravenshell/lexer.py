"""
Lexer for the Raven shell language.

Converts source text into a lazy stream of tokens for the parser.
Supports:
- Whitespace (newlines included) and `#` comments, skipped silently
- String literals delimited by `"` or `'` (no escape sequences)
- Integer literals (ASCII digits only, no sign)
- Identifiers, re-tagged as command or script keywords when they match
- Two-character operators matched by peeking one character ahead

The lexer never raises. Malformed input (an unterminated string, a stray
character) comes back as an ILLEGAL token for the parser to reject.
"""

from typing import Iterator, List
from .tokens import Token, TokenType, SourceLocation, SourceSpan, lookup_ident


# Two-character operators, keyed by their first character
TWO_CHAR_OPERATORS: dict[str, dict[str, TokenType]] = {
    '|': {'|': TokenType.OR},
    '&': {'&': TokenType.AND},
    '=': {'=': TokenType.EQ, '~': TokenType.REGEX_MATCH},
    '!': {'=': TokenType.NOT_EQ},
    '>': {'>': TokenType.INTO, '=': TokenType.GTE},
    '<': {'<': TokenType.OUT, '=': TokenType.LTE},
}

SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    '|': TokenType.PIPE,
    '=': TokenType.ASSIGN,
    '!': TokenType.NOT,
    '>': TokenType.GREATER,
    '<': TokenType.LESS,
    '.': TokenType.FULLSTOP,
    '~': TokenType.TILDE,
    '$': TokenType.DOLLAR,
    '/': TokenType.FSLASH,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
    ':': TokenType.COLON,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.ASTERISK,
    '%': TokenType.PERCENT,
}

_DIGITS = "0123456789"


class Lexer:
    """
    Tokenizer for Raven shell source.

    Usage:
        lexer = Lexer("ls | print")
        token = lexer.next_token()

    Or for streaming:
        for token in Lexer(source):
            process(token)
    """

    def __init__(self, source: str):
        self.source = source
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _make_token(self, token_type: TokenType, literal: str,
                    start: SourceLocation) -> Token:
        return Token(token_type, literal, self._span(start))

    def _skip_whitespace_and_comments(self) -> None:
        while not self._is_at_end():
            ch = self._peek()
            if ch.isspace():
                self._advance()
            elif ch == '#':
                while self._peek() != '\n' and not self._is_at_end():
                    self._advance()
            else:
                break

    def _scan_string(self) -> Token:
        """Scan a quoted string; an unterminated one becomes ILLEGAL."""
        start = self._location()
        quote = self._advance()
        content_start = self.pos

        while not self._is_at_end() and self._peek() != quote:
            self._advance()

        literal = self.source[content_start:self.pos]
        if self._is_at_end():
            return self._make_token(TokenType.ILLEGAL, literal, start)

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, literal, start)

    def _scan_integer(self) -> Token:
        start = self._location()
        while self._peek() in _DIGITS and not self._is_at_end():
            self._advance()
        literal = self.source[start.offset:self.pos]
        return self._make_token(TokenType.INTEGER, literal, start)

    def _scan_identifier_or_keyword(self) -> Token:
        start = self._location()
        while not self._is_at_end() and (self._peek().isalnum() or self._peek() == '_'):
            self._advance()
        literal = self.source[start.offset:self.pos]
        return self._make_token(lookup_ident(literal), literal, start)

    def next_token(self) -> Token:
        """Scan and return exactly one token, EOF once the input is exhausted."""
        self._skip_whitespace_and_comments()

        start = self._location()
        if self._is_at_end():
            return self._make_token(TokenType.EOF, "", start)

        ch = self._peek()

        if ch in '"\'':
            return self._scan_string()

        if ch in _DIGITS:
            return self._scan_integer()

        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword()

        # Probe the next character before committing to a one-character token
        pairs = TWO_CHAR_OPERATORS.get(ch)
        if pairs and self._peek(1) in pairs:
            token_type = pairs[self._peek(1)]
            self._advance()
            self._advance()
            return self._make_token(token_type, self.source[start.offset:self.pos], start)

        self._advance()
        token_type = SINGLE_CHAR_TOKENS.get(ch, TokenType.ILLEGAL)
        return self._make_token(token_type, ch, start)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list ending with EOF."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize

    Returns:
        List of tokens, the last one being EOF
    """
    return Lexer(source).tokenize()
