"""
Pratt parser for the Raven shell language.

Converts the lexer's token stream into an Abstract Syntax Tree (AST).

The parser keeps two tokens of state, the current token and one token of
lookahead, and dispatches on tables of prefix and infix handlers keyed by
token type. Binding powers, lowest to highest:

    LOWEST
    REDIRECT     > >> < <<      (only when the left side is command-like)
    PIPE         |
    OR           ||
    AND          &&
    EQUALS       == != =~
    LESSGREATER  < > <= >=      (comparisons)
    SUM          + -
    PRODUCT      * / %
    PREFIX       ! $
    INDEX        a[i]
    COMMAND

Because whitespace is not tokenized, source adjacency (token spans) decides
whether `.`, `/`, `(` and `[` glue onto the token before them, and line
numbers decide where a command's argument list ends.
"""

from enum import IntEnum
from typing import Callable, Dict, List, Optional
from .tokens import Token, TokenType
from .lexer import Lexer
from .ast import (
    # Expressions
    Expression, Identifier, PathExpression, IntegerLiteral, StringLiteral,
    BooleanLiteral, VariableReference, Command, CommandType, PipeExpression,
    RedirectionExpression, RedirectionType, InfixExpression, PrefixExpression,
    CallExpression, ArrayLiteral, DictLiteral, IndexExpression,
    # Statements
    Statement, ExpressionStatement, AssignmentStatement, BlockStatement,
    ForStatement, IfStatement, BreakStatement, ContinueStatement,
    FunctionStatement, ReturnStatement, SwitchStatement, CaseClause, Program,
)
from .errors import (
    Diagnostic,
    DiagnosticCollector,
    ParserError,
    E_UNEXPECTED_TOKEN,
    E_NO_PREFIX,
    E_INVALID_INTEGER,
    E_ILLEGAL_TOKEN,
    E_REDIRECTION_TARGET,
    E_VARIABLE_NAME,
)


class Precedence(IntEnum):
    LOWEST = 1
    REDIRECT = 2
    PIPE = 3
    OR = 4
    AND = 5
    EQUALS = 6
    LESSGREATER = 7
    SUM = 8
    PRODUCT = 9
    PREFIX = 10
    INDEX = 11
    COMMAND = 12


PRECEDENCES: Dict[TokenType, Precedence] = {
    TokenType.INTO: Precedence.REDIRECT,
    TokenType.OUT: Precedence.REDIRECT,
    TokenType.PIPE: Precedence.PIPE,
    TokenType.OR: Precedence.OR,
    TokenType.AND: Precedence.AND,
    TokenType.EQ: Precedence.EQUALS,
    TokenType.NOT_EQ: Precedence.EQUALS,
    TokenType.REGEX_MATCH: Precedence.EQUALS,
    TokenType.GTE: Precedence.LESSGREATER,
    TokenType.LTE: Precedence.LESSGREATER,
    TokenType.PLUS: Precedence.SUM,
    TokenType.MINUS: Precedence.SUM,
    TokenType.ASTERISK: Precedence.PRODUCT,
    TokenType.FSLASH: Precedence.PRODUCT,
    TokenType.PERCENT: Precedence.PRODUCT,
    TokenType.LBRACKET: Precedence.INDEX,
}

REDIRECTION_TYPES: Dict[TokenType, RedirectionType] = {
    TokenType.GREATER: RedirectionType.OUTPUT,
    TokenType.INTO: RedirectionType.APPEND,
    TokenType.LESS: RedirectionType.INPUT,
    TokenType.OUT: RedirectionType.HEREDOC,
}

COMMAND_TYPES: Dict[TokenType, CommandType] = {
    TokenType.LIST: CommandType.LIST,
    TokenType.REMOVE: CommandType.REMOVE,
    TokenType.CHANGEDIR: CommandType.CHANGEDIR,
    TokenType.REMOVEDIR: CommandType.REMOVEDIR,
    TokenType.MAKEDIR: CommandType.MAKEDIR,
    TokenType.WHOAMI: CommandType.WHOAMI,
    TokenType.CURRENTDIR: CommandType.CURRENTDIR,
    TokenType.MAKEFILE: CommandType.MAKEFILE,
    TokenType.OUTPUT: CommandType.OUTPUT,
    TokenType.PRINT: CommandType.PRINT,
    TokenType.SHOW: CommandType.SHOW,
    TokenType.CLEAR: CommandType.CLEAR,
}

# Tokens that may begin a command argument
ARGUMENT_START = frozenset({
    TokenType.IDENT, TokenType.STRING, TokenType.INTEGER, TokenType.DOLLAR,
    TokenType.FULLSTOP, TokenType.FSLASH, TokenType.TILDE, TokenType.TRUE,
    TokenType.FALSE, TokenType.LPAREN,
}) | frozenset(COMMAND_TYPES)

# Tokens that may continue a path once one has started
PATH_CONTINUATION = frozenset({
    TokenType.IDENT, TokenType.INTEGER, TokenType.FULLSTOP, TokenType.FSLASH,
}) | frozenset(COMMAND_TYPES)

# Tokens that read as plain words (identifiers, or command names used as words)
WORD_TOKENS = frozenset({TokenType.IDENT}) | frozenset(COMMAND_TYPES)

# Tokens that never continue an expression onto a following line
LINE_BOUND_INFIX = frozenset({TokenType.FSLASH, TokenType.LBRACKET})

PrefixParseFn = Callable[[], Expression]
InfixParseFn = Callable[[Expression], Expression]


class _StatementAbort(Exception):
    """Unwinds out of a malformed statement once its diagnostic is recorded."""
    pass


def _same_line(a: Token, b: Token) -> bool:
    if a.span is None or b.span is None:
        return True
    return a.span.end.line == b.span.start.line


def _is_command_like(expr: Expression) -> bool:
    return isinstance(expr, (Command, PipeExpression, RedirectionExpression))


class Parser:
    """
    Pratt parser for Raven shell source.

    Usage:
        parser = Parser(Lexer(source))
        program = parser.parse_program()
        if parser.errors:
            ...

    Parsing never stops at the first error. A malformed statement is
    recorded as a diagnostic, dropped, and parsing resumes with the next
    token.
    """

    def __init__(self, lexer: Lexer):
        self.lexer = lexer
        self.diagnostics = DiagnosticCollector()

        self.prefix_parse_fns: Dict[TokenType, PrefixParseFn] = {}
        self.infix_parse_fns: Dict[TokenType, InfixParseFn] = {}

        self._register_prefix(TokenType.IDENT, self._parse_identifier)
        self._register_prefix(TokenType.INTEGER, self._parse_integer_literal)
        self._register_prefix(TokenType.STRING, self._parse_string_literal)
        self._register_prefix(TokenType.TRUE, self._parse_boolean)
        self._register_prefix(TokenType.FALSE, self._parse_boolean)
        self._register_prefix(TokenType.DOLLAR, self._parse_variable_reference)
        self._register_prefix(TokenType.FULLSTOP, self._parse_path)
        self._register_prefix(TokenType.FSLASH, self._parse_path)
        self._register_prefix(TokenType.TILDE, self._parse_tilde)
        self._register_prefix(TokenType.NOT, self._parse_prefix_expression)
        self._register_prefix(TokenType.LPAREN, self._parse_grouped_expression)
        self._register_prefix(TokenType.LBRACKET, self._parse_array_literal)
        self._register_prefix(TokenType.LBRACE, self._parse_dict_literal)
        for token_type in COMMAND_TYPES:
            self._register_prefix(token_type, self._parse_command)

        self._register_infix(TokenType.PIPE, self._parse_pipe_expression)
        for token_type in REDIRECTION_TYPES:
            self._register_infix(token_type, self._parse_redirection_or_comparison)
        for token_type in (TokenType.OR, TokenType.AND, TokenType.EQ,
                           TokenType.NOT_EQ, TokenType.REGEX_MATCH, TokenType.GTE,
                           TokenType.LTE, TokenType.PLUS, TokenType.MINUS,
                           TokenType.ASTERISK, TokenType.FSLASH, TokenType.PERCENT):
            self._register_infix(token_type, self._parse_infix_expression)
        self._register_infix(TokenType.LBRACKET, self._parse_index_expression)

        # Read two tokens so cur_token and peek_token are both set
        self.cur_token: Token = self.lexer.next_token()
        self.peek_token: Token = self.lexer.next_token()

    def _register_prefix(self, token_type: TokenType, fn: PrefixParseFn) -> None:
        self.prefix_parse_fns[token_type] = fn

    def _register_infix(self, token_type: TokenType, fn: InfixParseFn) -> None:
        self.infix_parse_fns[token_type] = fn

    # =========================================================================
    # Errors
    # =========================================================================

    @property
    def errors(self) -> List[Diagnostic]:
        return self.diagnostics.diagnostics

    def error_messages(self) -> List[str]:
        return self.diagnostics.messages

    def _error(self, code: str, message: str, token: Optional[Token] = None) -> None:
        """Record a diagnostic and abandon the current statement."""
        self.diagnostics.error(code, message, token or self.cur_token)
        raise _StatementAbort()

    def _peek_error(self, expected: TokenType) -> None:
        self._error(
            E_UNEXPECTED_TOKEN,
            f"expected next token to be {expected.name}, got {self.peek_token.type.name} instead",
            self.peek_token,
        )

    def _no_prefix_parse_fn_error(self, token: Token) -> None:
        if token.type == TokenType.ILLEGAL:
            self._error(E_ILLEGAL_TOKEN, f"illegal token {token.literal!r}", token)
        self._error(E_NO_PREFIX, f"no prefix parse function for {token.type.name} found", token)

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _next_token(self) -> None:
        self.cur_token = self.peek_token
        self.peek_token = self.lexer.next_token()

    def _cur_token_is(self, token_type: TokenType) -> bool:
        return self.cur_token.type == token_type

    def _peek_token_is(self, token_type: TokenType) -> bool:
        return self.peek_token.type == token_type

    def _peek_touches(self) -> bool:
        """True when the lookahead starts right where the current token ends."""
        return self.cur_token.touches(self.peek_token)

    def _expect_peek(self, token_type: TokenType) -> None:
        if self._peek_token_is(token_type):
            self._next_token()
        else:
            self._peek_error(token_type)

    def _peek_precedence(self, left: Expression) -> Precedence:
        peek = self.peek_token
        if peek.type in (TokenType.GREATER, TokenType.LESS):
            if _is_command_like(left):
                return Precedence.REDIRECT
            return Precedence.LESSGREATER
        if peek.type in LINE_BOUND_INFIX and not _same_line(self.cur_token, peek):
            return Precedence.LOWEST
        if peek.type == TokenType.LBRACKET and not self._peek_touches():
            return Precedence.LOWEST
        return PRECEDENCES.get(peek.type, Precedence.LOWEST)

    # =========================================================================
    # Program and Statements
    # =========================================================================

    def parse_program(self) -> Program:
        """Parse statements until end of input."""
        program = Program()
        while not self._cur_token_is(TokenType.EOF):
            try:
                program.statements.append(self._parse_statement())
            except _StatementAbort:
                pass
            self._next_token()
        return program

    def _parse_statement(self) -> Statement:
        token_type = self.cur_token.type
        if token_type == TokenType.IDENT and self._peek_token_is(TokenType.ASSIGN):
            return self._parse_assignment_statement()
        if token_type == TokenType.FOR:
            return self._parse_for_statement()
        if token_type == TokenType.IF:
            return self._parse_if_statement()
        if token_type == TokenType.BREAK:
            return BreakStatement(token=self.cur_token)
        if token_type == TokenType.CONTINUE:
            return ContinueStatement(token=self.cur_token)
        if token_type == TokenType.FN:
            return self._parse_function_statement()
        if token_type == TokenType.RETURN:
            return self._parse_return_statement()
        if token_type == TokenType.SWITCH:
            return self._parse_switch_statement()
        return self._parse_expression_statement()

    def _parse_expression_statement(self) -> ExpressionStatement:
        token = self.cur_token
        return ExpressionStatement(token=token, expression=self._parse_expression(Precedence.LOWEST))

    def _parse_assignment_statement(self) -> AssignmentStatement:
        token = self.cur_token
        name = Identifier(token=token, value=token.literal)
        self._next_token()  # '='
        self._next_token()
        value = self._parse_expression(Precedence.LOWEST)
        return AssignmentStatement(token=token, name=name, value=value)

    def _parse_block_statement(self) -> BlockStatement:
        """Parse `{ statements }`; the current token is the opening brace."""
        block = BlockStatement(token=self.cur_token)
        self._next_token()
        while not self._cur_token_is(TokenType.RBRACE):
            if self._cur_token_is(TokenType.EOF):
                self._error(E_UNEXPECTED_TOKEN,
                            "expected next token to be RBRACE, got EOF instead")
            try:
                block.statements.append(self._parse_statement())
            except _StatementAbort:
                # Drop the bad statement but keep the block open
                if self._cur_token_is(TokenType.RBRACE):
                    continue
            self._next_token()
        return block

    def _parse_for_statement(self) -> ForStatement:
        """for name in iterable { body }"""
        token = self.cur_token
        self._expect_peek(TokenType.IDENT)
        variable = Identifier(token=self.cur_token, value=self.cur_token.literal)
        self._expect_peek(TokenType.IN)
        self._next_token()
        iterable = self._parse_expression(Precedence.LOWEST)
        self._expect_peek(TokenType.LBRACE)
        body = self._parse_block_statement()
        return ForStatement(token=token, variable=variable, iterable=iterable, body=body)

    def _parse_if_statement(self) -> IfStatement:
        token = self.cur_token
        self._next_token()
        condition = self._parse_expression(Precedence.LOWEST)
        self._expect_peek(TokenType.LBRACE)
        consequence = self._parse_block_statement()

        alternative = None
        if self._peek_token_is(TokenType.ELSE):
            self._next_token()
            if self._peek_token_is(TokenType.IF):
                # else if: wrap the nested if in a one-statement block
                self._next_token()
                nested = self._parse_if_statement()
                alternative = BlockStatement(token=nested.token, statements=[nested])
            else:
                self._expect_peek(TokenType.LBRACE)
                alternative = self._parse_block_statement()

        return IfStatement(token=token, condition=condition,
                           consequence=consequence, alternative=alternative)

    def _parse_function_statement(self) -> FunctionStatement:
        """fn name(a, b) { body }"""
        token = self.cur_token
        self._expect_peek(TokenType.IDENT)
        name = Identifier(token=self.cur_token, value=self.cur_token.literal)
        self._expect_peek(TokenType.LPAREN)

        parameters: List[Identifier] = []
        if self._peek_token_is(TokenType.RPAREN):
            self._next_token()
        else:
            self._expect_peek(TokenType.IDENT)
            parameters.append(Identifier(token=self.cur_token, value=self.cur_token.literal))
            while self._peek_token_is(TokenType.COMMA):
                self._next_token()
                self._expect_peek(TokenType.IDENT)
                parameters.append(Identifier(token=self.cur_token, value=self.cur_token.literal))
            self._expect_peek(TokenType.RPAREN)

        self._expect_peek(TokenType.LBRACE)
        body = self._parse_block_statement()
        return FunctionStatement(token=token, name=name, parameters=parameters, body=body)

    def _parse_return_statement(self) -> ReturnStatement:
        token = self.cur_token
        peek = self.peek_token
        if (peek.type in (TokenType.RBRACE, TokenType.EOF)
                or not _same_line(token, peek)):
            return ReturnStatement(token=token)
        self._next_token()
        return ReturnStatement(token=token, value=self._parse_expression(Precedence.LOWEST))

    def _parse_switch_statement(self) -> SwitchStatement:
        """switch value { case a, b: { ... } default { ... } }"""
        token = self.cur_token
        self._next_token()
        value = self._parse_expression(Precedence.LOWEST)
        self._expect_peek(TokenType.LBRACE)

        stmt = SwitchStatement(token=token, value=value)
        self._next_token()
        while not self._cur_token_is(TokenType.RBRACE):
            if self._cur_token_is(TokenType.CASE):
                stmt.cases.append(self._parse_case_clause())
            elif self._cur_token_is(TokenType.DEFAULT):
                if self._peek_token_is(TokenType.COLON):
                    self._next_token()
                self._expect_peek(TokenType.LBRACE)
                stmt.default = self._parse_block_statement()
            elif self._cur_token_is(TokenType.EOF):
                self._error(E_UNEXPECTED_TOKEN,
                            "expected next token to be RBRACE, got EOF instead")
            else:
                self._error(E_UNEXPECTED_TOKEN,
                            f"expected case or default in switch, got {self.cur_token.type.name}")
            self._next_token()
        return stmt

    def _parse_case_clause(self) -> CaseClause:
        token = self.cur_token
        self._next_token()
        values = [self._parse_expression(Precedence.LOWEST)]
        while self._peek_token_is(TokenType.COMMA):
            self._next_token()
            self._next_token()
            values.append(self._parse_expression(Precedence.LOWEST))
        if self._peek_token_is(TokenType.COLON):
            self._next_token()
        self._expect_peek(TokenType.LBRACE)
        return CaseClause(token=token, values=values, body=self._parse_block_statement())

    # =========================================================================
    # Expressions
    # =========================================================================

    def _parse_expression(self, precedence: Precedence) -> Expression:
        """The Pratt loop: one prefix-led expression, then fold infixes left."""
        prefix = self.prefix_parse_fns.get(self.cur_token.type)
        if prefix is None:
            self._no_prefix_parse_fn_error(self.cur_token)
        left = prefix()

        while (not self._peek_token_is(TokenType.EOF)
               and precedence < self._peek_precedence(left)):
            infix = self.infix_parse_fns.get(self.peek_token.type)
            if infix is None:
                return left
            self._next_token()
            left = infix(left)

        return left

    def _parse_identifier(self) -> Expression:
        token = self.cur_token
        if self._peek_touches():
            if self._peek_token_is(TokenType.LPAREN):
                return self._parse_call_expression()
            if self.peek_token.type in (TokenType.FSLASH, TokenType.FULLSTOP):
                return self._parse_path()
        return Identifier(token=token, value=token.literal)

    def _parse_integer_literal(self) -> Expression:
        token = self.cur_token
        value = int(token.literal)
        if value > 2**63 - 1:
            self._error(E_INVALID_INTEGER, f"could not parse {token.literal!r} as integer")
        return IntegerLiteral(token=token, value=value)

    def _parse_string_literal(self) -> Expression:
        return StringLiteral(token=self.cur_token, value=self.cur_token.literal)

    def _parse_boolean(self) -> Expression:
        return BooleanLiteral(token=self.cur_token, value=self._cur_token_is(TokenType.TRUE))

    def _parse_variable_reference(self) -> Expression:
        token = self.cur_token
        if not self._peek_token_is(TokenType.IDENT):
            self._error(E_VARIABLE_NAME, "expected identifier after $", self.peek_token)
        self._next_token()
        name = Identifier(token=self.cur_token, value=self.cur_token.literal)
        return VariableReference(token=token, name=name)

    def _parse_path(self) -> Expression:
        """
        Fold adjacent path tokens into one PathExpression.

        After a file extension (`.` then a word) only a following `/` keeps
        the path going, so `file.txt` stops while `./a.d/b` continues.
        """
        token = self.cur_token
        parts = [token.literal]
        last_was_extension = False

        while self.peek_token.type in PATH_CONTINUATION and self._peek_touches():
            if last_was_extension and not self._peek_token_is(TokenType.FSLASH):
                break
            previous = self.cur_token
            self._next_token()
            parts.append(self.cur_token.literal)
            last_was_extension = (self.cur_token.type in WORD_TOKENS
                                  and previous.type == TokenType.FULLSTOP)

        return PathExpression(token=token, value="".join(parts))

    def _parse_tilde(self) -> Expression:
        """`~/rest` is a path; a lone `~` is the home command."""
        if self._peek_token_is(TokenType.FSLASH) and self._peek_touches():
            return self._parse_path()
        return Command(token=self.cur_token, command_type=CommandType.TILDE,
                       name=self.cur_token.literal)

    def _parse_prefix_expression(self) -> Expression:
        token = self.cur_token
        self._next_token()
        right = self._parse_expression(Precedence.PREFIX)
        return PrefixExpression(token=token, operator=token.literal, right=right)

    def _parse_grouped_expression(self) -> Expression:
        self._next_token()
        expr = self._parse_expression(Precedence.LOWEST)
        self._expect_peek(TokenType.RPAREN)
        return expr

    def _parse_expression_list(self, end: TokenType) -> List[Expression]:
        """Comma-separated expressions; the current token is the opener."""
        items: List[Expression] = []
        if self._peek_token_is(end):
            self._next_token()
            return items

        self._next_token()
        items.append(self._parse_expression(Precedence.LOWEST))
        while self._peek_token_is(TokenType.COMMA):
            self._next_token()
            self._next_token()
            items.append(self._parse_expression(Precedence.LOWEST))
        self._expect_peek(end)
        return items

    def _parse_call_expression(self) -> Expression:
        token = self.cur_token
        self._next_token()  # '('
        arguments = self._parse_expression_list(TokenType.RPAREN)
        return CallExpression(token=token, function=token.literal, arguments=arguments)

    def _parse_array_literal(self) -> Expression:
        token = self.cur_token
        if self._peek_token_is(TokenType.RBRACKET):
            self._next_token()
            # []string: an empty array with a type hint
            if self._peek_token_is(TokenType.IDENT) and self._peek_touches():
                self._next_token()
                return ArrayLiteral(token=token, type_hint=self.cur_token.literal)
            return ArrayLiteral(token=token)
        return ArrayLiteral(token=token, elements=self._parse_expression_list(TokenType.RBRACKET))

    def _parse_dict_literal(self) -> Expression:
        dict_lit = DictLiteral(token=self.cur_token)
        while not self._peek_token_is(TokenType.RBRACE):
            self._next_token()
            key = self._parse_expression(Precedence.LOWEST)
            self._expect_peek(TokenType.COLON)
            self._next_token()
            value = self._parse_expression(Precedence.LOWEST)
            dict_lit.pairs.append((key, value))
            if not self._peek_token_is(TokenType.RBRACE):
                self._expect_peek(TokenType.COMMA)
        self._next_token()
        return dict_lit

    def _parse_infix_expression(self, left: Expression) -> Expression:
        token = self.cur_token
        precedence = PRECEDENCES.get(token.type, Precedence.LESSGREATER)
        self._next_token()
        right = self._parse_expression(precedence)
        return InfixExpression(token=token, left=left, operator=token.literal, right=right)

    def _parse_index_expression(self, left: Expression) -> Expression:
        token = self.cur_token
        self._next_token()
        index = self._parse_expression(Precedence.LOWEST)
        self._expect_peek(TokenType.RBRACKET)
        return IndexExpression(token=token, left=left, index=index)

    # =========================================================================
    # Shell Expressions
    # =========================================================================

    def _parse_command(self) -> Expression:
        token = self.cur_token
        command = Command(token=token, command_type=COMMAND_TYPES[token.type],
                          name=token.literal)

        # Arguments run until an operator, a delimiter, or the end of the line
        while (self.peek_token.type in ARGUMENT_START
               and _same_line(self.cur_token, self.peek_token)):
            self._next_token()
            command.arguments.append(self._parse_command_argument())

        return command

    def _parse_command_argument(self) -> Expression:
        token_type = self.cur_token.type
        if token_type == TokenType.DOLLAR:
            return self._parse_variable_reference()
        if token_type == TokenType.STRING:
            return self._parse_string_literal()
        if token_type == TokenType.INTEGER:
            return self._parse_integer_literal()
        if token_type in (TokenType.TRUE, TokenType.FALSE):
            return self._parse_boolean()
        if token_type in (TokenType.FULLSTOP, TokenType.FSLASH, TokenType.TILDE):
            return self._parse_path()
        if token_type == TokenType.LPAREN:
            return self._parse_grouped_expression()
        return self._parse_word_argument()

    def _parse_word_argument(self) -> Expression:
        """A bare word argument, possibly glued to a call, an index, or a path."""
        token = self.cur_token
        if self._peek_touches():
            if self.peek_token.type in (TokenType.FSLASH, TokenType.FULLSTOP):
                return self._parse_path()
            if token.type == TokenType.IDENT and self._peek_token_is(TokenType.LPAREN):
                expr = self._parse_call_expression()
            else:
                expr = Identifier(token=token, value=token.literal)
            while self._peek_token_is(TokenType.LBRACKET) and self._peek_touches():
                self._next_token()
                expr = self._parse_index_expression(expr)
            return expr
        return Identifier(token=token, value=token.literal)

    def _parse_pipe_expression(self, left: Expression) -> Expression:
        token = self.cur_token
        self._next_token()
        right = self._parse_expression(Precedence.PIPE)
        return PipeExpression(token=token, left=left, right=right)

    def _parse_redirection_or_comparison(self, left: Expression) -> Expression:
        token = self.cur_token
        if token.type in (TokenType.GREATER, TokenType.LESS) and not _is_command_like(left):
            return self._parse_infix_expression(left)

        self._next_token()
        target = self._parse_redirection_target()
        return RedirectionExpression(token=token,
                                     redirection_type=REDIRECTION_TYPES[token.type],
                                     command=left, target=target)

    def _parse_redirection_target(self) -> Expression:
        """A file target: word, path, string or $VAR. Never a command."""
        token = self.cur_token
        if token.type in WORD_TOKENS:
            if self._peek_touches() and self.peek_token.type in (TokenType.FSLASH,
                                                                 TokenType.FULLSTOP):
                return self._parse_path()
            return Identifier(token=token, value=token.literal)
        if token.type in (TokenType.FULLSTOP, TokenType.FSLASH, TokenType.TILDE):
            return self._parse_path()
        if token.type == TokenType.STRING:
            return self._parse_string_literal()
        if token.type == TokenType.DOLLAR:
            return self._parse_variable_reference()
        self._error(E_REDIRECTION_TARGET,
                    f"unexpected token {token.type.name} in redirection target")


def parse(source: str) -> Program:
    """
    Convenience function to parse source text into a Program.

    Args:
        source: Raven shell source

    Returns:
        Parsed Program AST

    Raises:
        ParserError: If any statement failed to parse
    """
    parser = Parser(Lexer(source))
    program = parser.parse_program()
    if parser.errors:
        raise ParserError(parser.errors)
    return program
