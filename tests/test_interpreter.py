"""
Tests for the Raven shell evaluator: expressions, control flow, functions,
pipes and redirection.
"""

import io

import pytest
from ravenshell import Evaluator, parse, run
from ravenshell.runtime import (
    Environment, ValueKind, array_val, int_val, string_val, bool_val,
)


def make_evaluator(tmp_path=None, env=None):
    """An evaluator writing to a buffer, isolated from the real environment."""
    out = io.StringIO()
    evaluator = Evaluator(
        output=out,
        input=io.StringIO(),
        environment=Environment(base=env or {}),
        cwd=str(tmp_path) if tmp_path is not None else None,
    )
    return evaluator, out


def run_source(source, tmp_path=None, env=None):
    evaluator, out = make_evaluator(tmp_path, env)
    result = evaluator.run_source(source)
    return result, out.getvalue()


def value_of(source):
    result, _ = run_source(source)
    assert result.success, result.error_message
    return result.value


def error_of(source, tmp_path=None):
    result, _ = run_source(source, tmp_path)
    assert not result.success
    return result.error_message


class TestArithmetic:
    """Integer arithmetic and coercion."""

    @pytest.mark.parametrize("source,expected", [
        ("1 + 2", 3),
        ("2 + 3 * 4", 14),
        ("10 - 4 - 3", 3),
        ("7 / 2", 3),
        ("7 % 3", 1),
        ('"3" * "4"', 12),
        ("(1 + 2) * 3", 9),
    ])
    def test_integer_results(self, source, expected):
        """Test arithmetic precedence and numeric string coercion."""
        assert value_of(source) == int_val(expected)

    def test_division_truncates_toward_zero(self):
        """Test that / and % truncate toward zero for negatives."""
        assert value_of("x = 0 - 7\nx / 2") == int_val(-3)
        assert value_of("x = 0 - 7\nx % 2") == int_val(-1)

    def test_division_by_zero(self):
        """Test division by zero error."""
        assert error_of("1 / 0") == "division by zero"

    def test_modulo_by_zero(self):
        """Test modulo by zero error."""
        assert error_of("1 % 0") == "modulo by zero"

    def test_overflow_wraps(self):
        """Test 64-bit wraparound on overflow."""
        assert value_of("9223372036854775807 + 1") == int_val(-9223372036854775808)

    def test_incompatible_operands(self):
        """Test comparing an array with an integer fails."""
        assert error_of("[1] < 2") == "cannot apply < to array and integer"


class TestStringsAndEquality:

    def test_string_concatenation_with_integer(self):
        """Test string + integer concatenates."""
        assert value_of('"a" + 1') == string_val("a1")

    def test_numeric_strings_concatenate_with_plus(self):
        """Test that + on two strings concatenates even when numeric."""
        assert value_of('"1" + "2"') == string_val("12")

    def test_numeric_equality_across_kinds(self):
        """Test numeric string equals integer."""
        assert value_of('"5" == 5') == bool_val(True)

    def test_string_equality(self):
        """Test string equality and inequality."""
        assert value_of('"abc" == "abc"') == bool_val(True)
        assert value_of('"abc" != "abd"') == bool_val(True)

    def test_regex_match_operator(self):
        """Test the =~ operator."""
        assert value_of('"hello" =~ "^h"') == bool_val(True)
        assert value_of('"hello" =~ "z$"') == bool_val(False)

    def test_array_concatenation(self):
        """Test array + array."""
        assert value_of("[1] + [2]") == array_val([int_val(1), int_val(2)])

    def test_unbound_identifier_is_bareword(self):
        """Test that an unbound name evaluates to its own text."""
        assert value_of("hello") == string_val("hello")

    def test_not_operator(self):
        """Test logical not on booleans and strings."""
        assert value_of("!true") == bool_val(False)
        assert value_of('!""') == bool_val(True)


class TestShortCircuit:
    """&& and || only evaluate the right side when it decides the result."""

    def test_and_skips_right_side(self):
        """Test false && skips the call."""
        result, out = run_source('fn side() { print "ran" }\nfalse && side()')
        assert result.success
        assert result.value == bool_val(False)
        assert out == ""

    def test_or_skips_right_side(self):
        """Test true || skips the call."""
        result, out = run_source('fn side() { print "ran" }\ntrue || side()')
        assert result.value == bool_val(True)
        assert out == ""

    def test_and_runs_right_side(self):
        """Test true && runs the call."""
        result, out = run_source('fn side() { print "ran" }\ntrue && side()')
        assert out == "ran\n"

    def test_short_circuit_skips_commands(self, tmp_path):
        """Test that a skipped command has no side effects."""
        result, _ = run_source("false && mkdir skipped", tmp_path)
        assert result.success
        assert not (tmp_path / "skipped").exists()


class TestControlFlow:
    """Loops, conditionals and switch."""

    def test_for_with_break(self):
        """Test break ends the loop."""
        source = "for i in range(10) {\n  if i == 5 { break }\n  print i\n}"
        result, out = run_source(source)
        assert result.success
        assert out == "0\n1\n2\n3\n4\n"

    def test_for_with_break_on_one_line(self):
        """Test a one-line loop body."""
        _, out = run_source("for i in range(10) { if i == 5 { break } print i }")
        assert out == "0\n1\n2\n3\n4\n"

    def test_for_with_continue(self):
        """Test continue skips the rest of the body."""
        source = "for i in range(5) {\n  if i % 2 == 0 { continue }\n  print i\n}"
        _, out = run_source(source)
        assert out == "1\n3\n"

    def test_loop_variable_survives_loop(self):
        """Test the loop variable keeps its last value."""
        assert value_of("for i in range(3) { }\ni") == int_val(2)

    def test_for_over_non_array(self):
        """Test iterating an integer fails."""
        assert error_of("for i in 5 { }") == "cannot iterate over integer"

    def test_if_else(self):
        """Test else branch on a falsy condition."""
        _, out = run_source('if "" { print "yes" } else { print "no" }')
        assert out == "no\n"

    def test_else_if(self):
        """Test chained else if."""
        source = 'x = 2\nif x == 1 { print "one" } else if x == 2 { print "two" } else { print "many" }'
        _, out = run_source(source)
        assert out == "two\n"

    def test_switch_matches_case(self):
        """Test switch selects the matching case."""
        source = ('x = 2\nswitch x {\n  case 1: { print "one" }\n'
                  '  case 2, 3: { print "two or three" }\n  default { print "other" }\n}')
        _, out = run_source(source)
        assert out == "two or three\n"

    def test_switch_default(self):
        """Test switch falls back to default."""
        _, out = run_source('switch 9 { case 1 { print "one" } default { print "other" } }')
        assert out == "other\n"

    def test_switch_without_match_or_default(self):
        """Test switch with no match does nothing."""
        result, out = run_source('switch 9 { case 1 { print "one" } }')
        assert result.success
        assert out == ""

    def test_break_at_top_level(self):
        """Test break outside any loop is an error."""
        assert error_of("break") == "break outside of loop"

    def test_return_at_top_level(self):
        """Test return outside any function is an error."""
        assert error_of("return 1") == "return outside of function"


class TestFunctions:
    """User-defined functions and closures."""

    def test_call(self):
        """Test calling a function with arguments."""
        assert value_of("fn add(a, b) { return a + b }\nadd(3, 4)") == int_val(7)

    def test_call_compact_spacing(self):
        """Test definitions and calls without spaces."""
        assert value_of("fn add(a,b){ return a+b }\nadd(3,4)") == int_val(7)

    def test_recursion(self):
        """Test a recursive function."""
        source = "fn fact(n) {\n  if n <= 1 { return 1 }\n  return n * fact(n - 1)\n}\nfact(5)"
        assert value_of(source) == int_val(120)

    def test_deep_recursion(self):
        """Test recursion several hundred calls deep."""
        source = ("fn sum(n) {\n  if n == 0 { return 0 }\n  return n + sum(n - 1)\n}\n"
                  "sum(500)")
        assert value_of(source) == int_val(125250)

    def test_return_from_inside_loop(self):
        """Test return leaves the loop and the function."""
        source = ("fn find() {\n  for i in range(10) {\n    if i == 3 { return i }\n  }\n"
                  "  return 0\n}\nfind()")
        assert value_of(source) == int_val(3)

    def test_no_return_gives_nil(self):
        """Test a function without return yields nil."""
        assert value_of("fn f() { x = 1 }\nf()").kind == ValueKind.NIL

    def test_closure_is_snapshot(self):
        """Test closures capture variables at definition time."""
        source = "x = 1\nfn get() { return x }\nx = 2\nget()"
        assert value_of(source) == int_val(1)

    def test_parameters_do_not_leak(self):
        """Test function locals vanish after the call."""
        assert value_of("fn f(a) { b = a }\nf(1)\nb") == string_val("b")

    def test_caller_variables_restored(self):
        """Test the caller's variables come back after the call."""
        assert value_of("a = 10\nfn f(a) { return a }\nf(3)\na") == int_val(10)

    def test_wrong_argument_count(self):
        """Test arity mismatch error."""
        source = "fn add(a, b) { return a + b }\nadd(1)"
        assert error_of(source) == "wrong number of arguments: expected 2, got 1"

    def test_unknown_function(self):
        """Test calling an undefined function."""
        assert error_of("nosuch(1)") == "unknown function: nosuch"

    def test_break_in_function_ends_callers_loop(self):
        """Test break inside a called function ends the loop around the call."""
        source = "fn stop() { break }\nfor i in range(5) { if i == 2 { stop() } print i }"
        result, out = run_source(source)
        assert result.success, result.error_message
        assert out == "0\n1\n"

    def test_continue_in_function_skips_callers_iteration(self):
        """Test continue inside a called function skips the caller's iteration."""
        source = "fn skip() { continue }\nfor i in range(4) { if i % 2 == 0 { skip() } print i }"
        _, out = run_source(source)
        assert out == "1\n3\n"

    def test_break_in_assigned_call_ends_loop(self):
        """Test break from a call on the right of an assignment."""
        source = "fn stop() { break }\nfor i in range(5) {\n  x = stop()\n  print i\n}"
        result, out = run_source(source)
        assert result.success, result.error_message
        assert out == ""

    def test_break_in_function_without_loop(self):
        """Test break escaping a top-level call is an error."""
        assert error_of("fn f() { break }\nf()") == "break outside of loop"

    def test_break_in_function_restores_caller_variables(self):
        """Test the caller's scope is restored when break leaves a call."""
        source = ("n = 1\nfn stop(n) { break }\n"
                  "for i in range(3) { stop(9) }\nn")
        assert value_of(source) == int_val(1)

    def test_user_function_shadows_builtin(self):
        """Test a user function takes precedence over a builtin."""
        assert value_of('fn len(x) { return 99 }\nlen("abc")') == int_val(99)

    def test_runaway_recursion_is_an_error(self):
        """Test unbounded recursion surfaces as a runtime error."""
        assert error_of("fn f(n) { return f(n) }\nf(1)") == "maximum recursion depth exceeded"


class TestCollections:
    """Arrays and dicts."""

    def test_array_index(self):
        """Test array indexing."""
        assert value_of("arr = [10, 20, 30]\narr[1]") == int_val(20)

    def test_array_index_out_of_bounds(self):
        """Test out of bounds index error."""
        assert error_of("arr = [1, 2, 3]\narr[10]") == "array index out of bounds: 10"

    def test_array_index_must_be_integer(self):
        """Test non-integer array index error."""
        assert error_of('arr = [1]\narr["x"]') == "array index must be an integer"

    def test_dict_index(self):
        """Test dict lookup."""
        assert value_of('d = {"a": 1, "b": 2}\nd["b"]') == int_val(2)

    def test_dict_missing_key(self):
        """Test missing dict key error."""
        assert error_of('d = {"a": 1}\nd["z"]') == "key not found: z"

    def test_index_unsupported(self):
        """Test indexing an integer fails."""
        assert error_of("x = 5\nx[0]") == "index operator not supported on integer"

    def test_append_does_not_mutate(self):
        """Test append returns a new array."""
        assert value_of("a = [1]\nb = append(a, 2)\nlen(a)") == int_val(1)
        assert value_of("a = [1]\nb = append(a, 2)\nlen(b)") == int_val(2)

    def test_assignment_copies(self):
        """Test assignment gives value semantics."""
        assert value_of("a = [1, 2]\nb = a\nb = push(b, 3)\nlen(a)") == int_val(2)

    def test_print_array(self):
        """Test array display form."""
        _, out = run_source('x = [1, "a", true]\nprint x')
        assert out == "[1, a, true]\n"

    def test_print_dict(self):
        """Test dict display form."""
        _, out = run_source('d = {"k": 1}\nprint d')
        assert out == '{"k": 1}\n'

    def test_typed_empty_array(self):
        """Test []string is an empty array."""
        assert value_of("[]string") == array_val([])


class TestEnvironment:

    def test_env_variable(self):
        """Test $VAR reads the environment."""
        result, _ = run_source("$HOME", env={"HOME": "/home/raven"})
        assert result.value == string_val("/home/raven")

    def test_unset_env_variable_is_empty(self):
        """Test an unset variable reads as an empty string."""
        assert value_of("$NOT_SET_ANYWHERE") == string_val("")

    def test_set_env_overlay(self):
        """Test set_env overrides the base environment."""
        evaluator, out = make_evaluator(env={"GREETING": "hi"})
        evaluator.set_env("GREETING", "hello")
        evaluator.run_source("print $GREETING")
        assert out.getvalue() == "hello\n"


class TestPipes:
    """Pipes connect the output of one side to the input of the next."""

    def test_pipe_into_print(self):
        """Test print reads piped input."""
        result, out = run_source('print "abc" | print')
        assert result.success
        assert out == "abc\n"
        assert result.value == string_val("abc\n")

    def test_pipe_chain(self):
        """Test a three-stage pipe."""
        _, out = run_source('print "x" | print | output')
        assert out == "x\n"

    def test_input_restored_after_pipe(self):
        """Test later statements see the normal input again."""
        _, out = run_source('print "a" | print\nprint "b"')
        assert out == "a\nb\n"

    def test_bareword_arguments(self):
        """Test bare words print as text."""
        _, out = run_source("print hello world")
        assert out == "hello world\n"


class TestRedirection:
    """Redirection to and from files under a temporary directory."""

    def test_output_redirection(self, tmp_path):
        """Test > writes to a file."""
        result, out = run_source('print "hello" > out.txt', tmp_path)
        assert result.success
        assert out == ""
        assert (tmp_path / "out.txt").read_text() == "hello\n"

    def test_append_redirection(self, tmp_path):
        """Test >> appends."""
        run_source('print "hello" > out.txt\nprint "more" >> out.txt', tmp_path)
        assert (tmp_path / "out.txt").read_text() == "hello\nmore\n"

    def test_overwrite_redirection(self, tmp_path):
        """Test > truncates."""
        run_source('print "first" > out.txt\nprint "second" > out.txt', tmp_path)
        assert (tmp_path / "out.txt").read_text() == "second\n"

    def test_input_redirection(self, tmp_path):
        """Test < reads from a file."""
        (tmp_path / "input.txt").write_text("from file\n")
        _, out = run_source("print < ./input.txt", tmp_path)
        assert out == "from file\n"

    def test_pipe_then_redirect(self, tmp_path):
        """Test a pipe whose output goes to a file."""
        run_source('print "piped" | print > result.txt', tmp_path)
        assert (tmp_path / "result.txt").read_text() == "piped\n"

    def test_output_restored_after_error(self, tmp_path):
        """Test output goes back to the terminal after a failed redirect."""
        evaluator, out = make_evaluator(tmp_path)
        result = evaluator.run_source("show missing.txt > out.txt")
        assert not result.success
        assert result.error_message.startswith("show:")
        evaluator.run_source('print "after"')
        assert out.getvalue() == "after\n"

    def test_cannot_create_file(self, tmp_path):
        """Test redirect into a missing directory."""
        message = error_of('print "x" > nodir/out.txt', tmp_path)
        assert message.startswith("cannot create file")

    def test_cannot_open_input(self, tmp_path):
        """Test input redirect from a missing file."""
        message = error_of("print < nothing.txt", tmp_path)
        assert message.startswith("cannot open file")

    def test_heredoc_not_implemented(self, tmp_path):
        """Test << reports that heredocs are unsupported."""
        assert error_of("print << EOF", tmp_path) == "heredoc not yet implemented"


class TestExecutionResult:
    """Result reporting and state persistence."""

    def test_value_of_last_expression(self):
        """Test the result carries the last expression value."""
        assert value_of("1\n2\n3") == int_val(3)

    def test_statements_before_error_keep_effects(self):
        """Test a runtime error stops the program but keeps earlier effects."""
        evaluator, _ = make_evaluator()
        result = evaluator.run_source("x = 5\ny = x / 0\nz = 1")
        assert not result.success
        assert evaluator.get_variable("x") == int_val(5)
        assert evaluator.get_variable("z") is None

    def test_runtime_error_diagnostic(self):
        """Test runtime errors carry a located diagnostic."""
        result, _ = run_source("x = 1\n[1][5]")
        assert result.diagnostics[0].code == "E400"
        assert result.diagnostics[0].span.start.line == 2

    def test_parse_error_prevents_evaluation(self):
        """Test nothing runs when the source fails to parse."""
        evaluator, out = make_evaluator()
        result = evaluator.run_source('print "before"\nx = )')
        assert not result.success
        assert result.diagnostics[0].code == "E102"
        assert out.getvalue() == ""

    def test_state_persists_between_calls(self):
        """Test variables and functions persist across runs."""
        evaluator, _ = make_evaluator()
        evaluator.run_source("x = 5")
        evaluator.run_source("fn double(n) { return n * 2 }")
        assert evaluator.run_source("double(x) + 1").value == int_val(11)

    def test_eval_parsed_program(self):
        """Test eval on an already parsed program."""
        evaluator, out = make_evaluator()
        result = evaluator.eval(parse("print 1 2"))
        assert result.success
        assert out.getvalue() == "1 2\n"

    def test_output_value(self):
        """Test output_value display form."""
        assert run_source("[1, 2]")[0].output_value == "[1, 2]"

    def test_module_run(self):
        """Test the module-level run() helper."""
        out = io.StringIO()
        result = run('print "via run"', output=out, environment=Environment(base={}))
        assert result.success
        assert out.getvalue() == "via run\n"
