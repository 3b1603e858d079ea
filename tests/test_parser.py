"""
Unit tests for the Raven shell parser.
"""

import io

import pytest
from ravenshell import Lexer, Parser, ParserError, parse, print_ast
from ravenshell.ast import (
    ArrayLiteral, AssignmentStatement, BooleanLiteral, CallExpression, Command,
    CommandType, DictLiteral, ExpressionStatement, ForStatement, FunctionStatement,
    Identifier, IfStatement, IndexExpression, InfixExpression, IntegerLiteral,
    PathExpression, PipeExpression, RedirectionExpression, RedirectionType,
    ReturnStatement, StringLiteral, SwitchStatement, VariableReference,
)


def parse_one(source):
    """Parse source expected to hold a single statement."""
    program = parse(source)
    assert len(program.statements) == 1
    return program.statements[0]


def parse_expr(source):
    stmt = parse_one(source)
    assert isinstance(stmt, ExpressionStatement)
    return stmt.expression


def parse_errors(source):
    parser = Parser(Lexer(source))
    program = parser.parse_program()
    return program, parser.errors


class TestCommands:
    """Test shell command parsing."""

    def test_command_with_arguments(self):
        """Test a command with bare word arguments."""
        expr = parse_expr("rm file1 file2")
        assert isinstance(expr, Command)
        assert expr.command_type == CommandType.REMOVE
        assert len(expr.arguments) == 2
        assert all(isinstance(arg, Identifier) for arg in expr.arguments)
        assert expr.render() == "rm file1 file2"

    def test_command_without_arguments(self):
        """Test a bare command."""
        expr = parse_expr("ls")
        assert expr.command_type == CommandType.LIST
        assert expr.arguments == []

    def test_string_and_integer_arguments(self):
        """Test literal arguments keep their node types."""
        expr = parse_expr('print "hello" 42 true')
        assert isinstance(expr.arguments[0], StringLiteral)
        assert isinstance(expr.arguments[1], IntegerLiteral)
        assert isinstance(expr.arguments[2], BooleanLiteral)

    def test_variable_argument(self):
        """Test $VAR as an argument."""
        expr = parse_expr("print $HOME")
        assert isinstance(expr.arguments[0], VariableReference)
        assert expr.render() == "print $HOME"

    def test_call_argument(self):
        """Test a function call as an argument."""
        expr = parse_expr("print len(x)")
        assert isinstance(expr.arguments[0], CallExpression)
        assert expr.render() == "print len(x)"

    def test_index_argument(self):
        """Test an index expression as an argument."""
        expr = parse_expr("print arr[0]")
        assert isinstance(expr.arguments[0], IndexExpression)
        assert expr.render() == "print (arr[0])"

    def test_grouped_argument(self):
        """Test a parenthesised expression as an argument."""
        expr = parse_expr("print (x + 1)")
        assert isinstance(expr.arguments[0], InfixExpression)

    def test_command_word_as_argument(self):
        """Command names read as plain words in argument position."""
        expr = parse_expr("print ls")
        assert isinstance(expr.arguments[0], Identifier)
        assert expr.arguments[0].value == "ls"

    def test_arguments_stop_at_end_of_line(self):
        """Test that a newline ends the argument list."""
        program = parse("ls\nx = 5")
        assert len(program.statements) == 2
        assert program.statements[0].expression.arguments == []
        assert isinstance(program.statements[1], AssignmentStatement)

    def test_lone_tilde_is_home_command(self):
        """Test ~ on its own is the home command."""
        expr = parse_expr("~")
        assert isinstance(expr, Command)
        assert expr.command_type == CommandType.TILDE


class TestPaths:
    """Adjacent path tokens fold into one PathExpression."""

    @pytest.mark.parametrize("path", [
        "./src/main.go",
        "../lib",
        "/usr/local/bin",
        "~/docs",
        "a/b/c.txt",
        "dir.d/file",
    ])
    def test_path_argument(self, path):
        """Test path shapes fold into a single argument."""
        expr = parse_expr(f"cd {path}")
        assert isinstance(expr.arguments[0], PathExpression)
        assert expr.arguments[0].value == path

    def test_path_round_trip(self):
        """Re-parsing a rendered path gives the same path."""
        first = parse_expr("show ./a/b.txt").arguments[0].render()
        second = parse_expr(f"show {first}").arguments[0].render()
        assert first == second == "./a/b.txt"

    def test_path_stops_after_extension(self):
        """Test a path takes only one extension."""
        expr = parse_expr("show file.txt.txt")
        assert expr.arguments[0].value == "file.txt"
        assert len(expr.arguments) == 2

    def test_spaced_words_are_separate_arguments(self):
        """Test spaces split path pieces into arguments."""
        expr = parse_expr("show a . b")
        assert len(expr.arguments) == 3

    def test_tilde_argument(self):
        """Test ~ as an argument is a path."""
        expr = parse_expr("cd ~")
        assert isinstance(expr.arguments[0], PathExpression)
        assert expr.arguments[0].value == "~"

    def test_path_in_expression_position(self):
        """Test a path as a whole expression."""
        expr = parse_expr("file.txt")
        assert isinstance(expr, PathExpression)
        assert expr.value == "file.txt"

    def test_glued_slash_is_path_not_division(self):
        """Test x/2 is a path."""
        assert isinstance(parse_expr("x/2"), PathExpression)

    def test_spaced_slash_is_division(self):
        """Test x / 2 is division."""
        expr = parse_expr("x / 2")
        assert isinstance(expr, InfixExpression)
        assert expr.render() == "(x / 2)"


class TestPipesAndRedirection:
    """Test pipe and redirection structure."""

    def test_pipe_chain_is_left_associative(self):
        """Test pipes group to the left."""
        expr = parse_expr("ls | print | output")
        assert isinstance(expr, PipeExpression)
        assert isinstance(expr.left, PipeExpression)
        assert expr.render() == "((ls | print) | output)"

    def test_redirection_binds_looser_than_pipe(self):
        """Test redirection applies to the whole pipe."""
        expr = parse_expr("ls | print > output.txt")
        assert isinstance(expr, RedirectionExpression)
        assert expr.redirection_type == RedirectionType.OUTPUT
        assert isinstance(expr.command, PipeExpression)
        assert isinstance(expr.target, PathExpression)
        assert expr.render() == "((ls | print) > output.txt)"

    def test_append_redirection(self):
        """Test >> parses as append."""
        expr = parse_expr("ls >> log.txt")
        assert expr.redirection_type == RedirectionType.APPEND
        assert expr.render() == "(ls >> log.txt)"

    def test_input_redirection(self):
        """Test < after a command parses as input."""
        expr = parse_expr("print < input.txt")
        assert expr.redirection_type == RedirectionType.INPUT
        assert expr.render() == "(print < input.txt)"

    def test_heredoc_parses(self):
        """Test << parses as heredoc."""
        expr = parse_expr("print << EOF")
        assert expr.redirection_type == RedirectionType.HEREDOC

    def test_command_word_target(self):
        """Test a command name as a redirection target."""
        expr = parse_expr("ls > rm")
        assert isinstance(expr.target, Identifier)
        assert expr.target.value == "rm"

    def test_string_and_variable_targets(self):
        """Test string and $VAR targets."""
        assert isinstance(parse_expr('ls > "out file"').target, StringLiteral)
        assert isinstance(parse_expr("ls > $LOG").target, VariableReference)

    def test_greater_after_value_is_comparison(self):
        """Test > after a value is a comparison."""
        expr = parse_expr("x > 5")
        assert isinstance(expr, InfixExpression)
        assert expr.render() == "(x > 5)"

    def test_less_after_value_is_comparison(self):
        """Test < after a value is a comparison."""
        assert isinstance(parse_expr("a < b"), InfixExpression)

    def test_invalid_target(self):
        """Test a pipe is not a valid target."""
        _, errors = parse_errors("ls > |")
        assert len(errors) == 1
        assert errors[0].code == "E105"
        assert errors[0].message == "unexpected token PIPE in redirection target"


class TestExpressions:
    """Test operator precedence and literals."""

    @pytest.mark.parametrize("source,expected", [
        ("1 + 2 * 3", "(1 + (2 * 3))"),
        ("1 * 2 + 3", "((1 * 2) + 3)"),
        ("a || b && c", "(a || (b && c))"),
        ("x == 1 && y != 2", "((x == 1) && (y != 2))"),
        ("!true", "(!true)"),
        ("a - b - c", "((a - b) - c)"),
        ("(1 + 2) * 3", "((1 + 2) * 3)"),
        ("x % 2 == 0", "((x % 2) == 0)"),
        ('name =~ "^a"', '(name =~ "^a")'),
        ("a >= 1 || b <= 2", "((a >= 1) || (b <= 2))"),
    ])
    def test_operator_precedence(self, source, expected):
        """Test precedence through the canonical render."""
        assert parse_expr(source).render() == expected

    def test_array_literal(self):
        """Test array literal parsing."""
        expr = parse_expr("[1, 2, 3]")
        assert isinstance(expr, ArrayLiteral)
        assert expr.render() == "[1, 2, 3]"

    def test_empty_array(self):
        """Test the empty array."""
        assert parse_expr("[]").render() == "[]"

    def test_typed_empty_array(self):
        """Test []string keeps its type hint."""
        expr = parse_expr("[]string")
        assert expr.type_hint == "string"
        assert expr.elements == []

    def test_dict_literal(self):
        """Test dict literal parsing."""
        expr = parse_expr('{"a": 1, "b": 2}')
        assert isinstance(expr, DictLiteral)
        assert len(expr.pairs) == 2
        assert expr.render() == '{"a": 1, "b": 2}'

    def test_index_expression(self):
        """Test index expression parsing."""
        expr = parse_expr("arr[0]")
        assert isinstance(expr, IndexExpression)
        assert expr.render() == "(arr[0])"

    def test_call_expression(self):
        """Test call expression parsing."""
        expr = parse_expr("add(1, 2 * 3)")
        assert isinstance(expr, CallExpression)
        assert expr.function == "add"
        assert expr.render() == "add(1, (2 * 3))"

    def test_bracket_on_next_line_starts_new_statement(self):
        """Test [ on a new line does not index the previous line."""
        program = parse("x = arr\n[1, 2]")
        assert len(program.statements) == 2


class TestStatements:
    """Test statement parsing."""

    def test_assignment(self):
        """Test assignment parsing."""
        stmt = parse_one("x = 5")
        assert isinstance(stmt, AssignmentStatement)
        assert stmt.name.value == "x"
        assert stmt.render() == "x = 5"

    def test_if_else(self):
        """Test if with else."""
        stmt = parse_one('if x > 1 { print "big" } else { print "small" }')
        assert isinstance(stmt, IfStatement)
        assert stmt.render() == 'if (x > 1) { print "big" } else { print "small" }'

    def test_else_if_chain(self):
        """Test else if nests an if in the alternative."""
        stmt = parse_one("if a { b } else if c { d }")
        assert len(stmt.alternative.statements) == 1
        assert isinstance(stmt.alternative.statements[0], IfStatement)

    def test_for_loop(self):
        """Test for loop parsing."""
        stmt = parse_one("for i in range(10) { print i }")
        assert isinstance(stmt, ForStatement)
        assert stmt.render() == "for i in range(10) { print i }"

    def test_function_definition(self):
        """Test function definition parsing."""
        stmt = parse_one("fn add(a, b) { return a + b }")
        assert isinstance(stmt, FunctionStatement)
        assert [p.value for p in stmt.parameters] == ["a", "b"]
        assert stmt.render() == "fn add(a, b) { return (a + b) }"

    def test_function_without_parameters(self):
        """Test a function with no parameters and a bare return."""
        stmt = parse_one("fn f() { return }")
        assert stmt.parameters == []
        ret = stmt.body.statements[0]
        assert isinstance(ret, ReturnStatement)
        assert ret.value is None

    def test_bare_return_ends_at_line(self):
        """Test a bare return does not swallow the next line."""
        stmt = parse_one("fn f() {\n  return\n  x = 1\n}")
        assert len(stmt.body.statements) == 2
        assert stmt.body.statements[0].value is None

    def test_break_and_continue(self):
        """Test break and continue statements."""
        stmt = parse_one("for x in xs { break continue }")
        assert [s.render() for s in stmt.body.statements] == ["break", "continue"]

    def test_switch(self):
        """Test switch with cases and default."""
        source = 'switch x { case 1, 2: { print "low" } default { print "other" } }'
        stmt = parse_one(source)
        assert isinstance(stmt, SwitchStatement)
        assert len(stmt.cases) == 1
        assert len(stmt.cases[0].values) == 2
        assert stmt.default is not None
        assert stmt.render() == source

    def test_switch_colons_optional(self):
        """Test case and default accept an optional colon."""
        stmt = parse_one('switch x { case 1 { print "a" } default: { print "b" } }')
        assert len(stmt.cases) == 1
        assert stmt.default is not None

    def test_multiline_program(self):
        """Test a program spread over several lines."""
        program = parse('x = 1\nprint x\nfn f() {\n  return x\n}\n')
        assert len(program.statements) == 3


class TestParseErrors:
    """Errors are collected and parsing resumes."""

    def test_no_prefix_function(self):
        """Test a token that cannot start an expression."""
        _, errors = parse_errors("x = )")
        assert errors[0].code == "E102"
        assert errors[0].message == "no prefix parse function for RPAREN found"

    def test_recovery_continues_with_next_statement(self):
        """Test parsing resumes after a bad statement."""
        program, errors = parse_errors("x = )\ny = 2")
        assert len(errors) == 1
        assert len(program.statements) == 1
        assert program.statements[0].render() == "y = 2"

    def test_recovery_inside_block(self):
        """Test a bad statement inside a block keeps the rest of the block."""
        source = 'for i in range(3) {\n  x = )\n  print i\n}\nprint "after"'
        program, errors = parse_errors(source)
        assert len(errors) == 1
        assert len(program.statements) == 2
        loop = program.statements[0]
        assert isinstance(loop, ForStatement)
        assert [s.render() for s in loop.body.statements] == ["print i"]
        assert program.statements[1].render() == 'print "after"'

    def test_recovery_at_closing_brace(self):
        """Test a statement cut short by the closing brace ends the block."""
        program, errors = parse_errors("for i in xs { x = }\nprint 1")
        assert len(errors) == 1
        assert len(program.statements) == 2
        assert program.statements[0].body.statements == []

    def test_illegal_token(self):
        """Test illegal characters are reported."""
        _, errors = parse_errors("x = @")
        assert errors[0].code == "E104"
        assert errors[0].message == "illegal token '@'"

    def test_unterminated_string(self):
        """Test an unterminated string is one error."""
        _, errors = parse_errors('print "abc')
        assert len(errors) == 1
        assert errors[0].code == "E104"

    def test_integer_overflow(self):
        """Test integers beyond 64 bits."""
        _, errors = parse_errors("x = 99999999999999999999")
        assert errors[0].code == "E103"
        assert errors[0].message == "could not parse '99999999999999999999' as integer"

    def test_dollar_without_name(self):
        """Test $ with no variable name."""
        _, errors = parse_errors("print $")
        assert errors[0].code == "E106"

    def test_expected_token(self):
        """Test a missing keyword."""
        _, errors = parse_errors("for i range(3) { }")
        assert errors[0].code == "E101"
        assert errors[0].message.startswith("expected next token to be IN")

    def test_unclosed_block(self):
        """Test a block running into end of input."""
        _, errors = parse_errors("if x { print x")
        assert errors
        assert errors[0].message == "expected next token to be RBRACE, got EOF instead"

    def test_errors_have_positions(self):
        """Test diagnostics carry source positions."""
        _, errors = parse_errors("x = 1\ny = )")
        assert errors[0].span.start.line == 2

    def test_parse_raises(self):
        """Test parse() raises ParserError."""
        with pytest.raises(ParserError) as excinfo:
            parse("x = )")
        assert len(excinfo.value.diagnostics) == 1


class TestPrintAst:

    def test_print_ast_dump(self):
        """Test the debug tree dump."""
        out = io.StringIO()
        print_ast(parse("ls | print > out.txt"), out)
        text = out.getvalue()
        assert "RedirectionExpression" in text
        assert "PipeExpression" in text
        assert "command_type: ls" in text
