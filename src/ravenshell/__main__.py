#!/usr/bin/env python3
"""
CLI for the Raven shell interpreter.

Usage:
    python -m ravenshell run FILE
    python -m ravenshell check FILE [--ast] [--json]
    python -m ravenshell repl
    python -m ravenshell            (same as repl)

Examples:
    # Run a script; stops at the first runtime error
    python -m ravenshell run scripts/cleanup.rsh

    # Parse only, reporting every syntax error
    python -m ravenshell check scripts/cleanup.rsh

    # Dump the parse tree
    python -m ravenshell check scripts/cleanup.rsh --ast
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger("ravenshell.cli")


def _configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_settings(args):
    """Load config and apply logging; returns the ShellConfig."""
    from .config import load_config

    config = load_config(args.config)
    _configure_logging(args.log_level or config.log_level)
    if config.source is not None:
        logger.info("loaded config from %s", config.source)
    return config


def _make_evaluator(config):
    """Build an Evaluator seeded with the config's environment and variables."""
    from .runtime import Evaluator, Environment, from_python

    evaluator = Evaluator(environment=Environment(overlay=config.env))
    for name, value in config.variables.items():
        evaluator.variables[name] = from_python(value)
    return evaluator


def _read_source(path_str: str) -> Optional[str]:
    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text(encoding="utf-8")


def cmd_run(args) -> int:
    """Run a script file."""
    config = _load_settings(args)
    source = _read_source(args.file)
    if source is None:
        return 1

    result = _make_evaluator(config).run_source(source)
    if not result.success:
        for diag in result.diagnostics:
            print(f"{args.file}:{diag.format()}", file=sys.stderr)
        if not result.diagnostics:
            print(f"Error: {result.error_message}", file=sys.stderr)
        return 1
    return 0


def cmd_check(args) -> int:
    """Parse a script file and report syntax errors."""
    from .lexer import Lexer
    from .parser import Parser
    from .ast import print_ast

    _load_settings(args)
    source = _read_source(args.file)
    if source is None:
        return 1

    parser = Parser(Lexer(source))
    program = parser.parse_program()

    if args.json:
        print(json.dumps([d.to_json() for d in parser.errors], indent=2))
    elif parser.errors:
        print(f"Parsing failed with {len(parser.errors)} error(s):")
        for diag in parser.errors:
            print(f"  {diag.format()}")
    else:
        print(f"OK: {len(program.statements)} statement(s)")

    if args.ast and not parser.errors:
        print_ast(program, sys.stdout)

    return 1 if parser.errors else 0


def cmd_repl(args) -> int:
    """Read-eval-print loop. Errors are reported and the loop continues."""
    config = _load_settings(args)
    evaluator = _make_evaluator(config)

    while True:
        try:
            line = input(config.prompt)
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print()
            continue

        if line.strip() in ("exit", "quit"):
            break
        if not line.strip():
            continue

        result = evaluator.run_source(line)
        if not result.success:
            print(f"Error: {result.error_message}", file=sys.stderr)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='python -m ravenshell',
        description='Raven shell interpreter',
    )
    parser.add_argument('-c', '--config', metavar='FILE',
                        help='Configuration file (default: $RAVENSHELL_CONFIG or '
                             '~/.config/ravenshell/config.yaml)')
    parser.add_argument('--log-level', metavar='LEVEL',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        type=str.upper,
                        help='Logging level (overrides the config file)')

    subparsers = parser.add_subparsers(dest='action')

    # run command
    run_parser = subparsers.add_parser('run', help='Run a script file')
    run_parser.add_argument('file', help='Script file')

    # check command
    check_parser = subparsers.add_parser('check', help='Check a script file for syntax errors')
    check_parser.add_argument('file', help='Script file')
    check_parser.add_argument('--ast', action='store_true', help='Print the parse tree')
    check_parser.add_argument('--json', action='store_true',
                              help='Print diagnostics as JSON')

    # repl command
    subparsers.add_parser('repl', help='Start an interactive session')

    args = parser.parse_args(argv)

    try:
        if args.action == 'run':
            return cmd_run(args)
        elif args.action == 'check':
            return cmd_check(args)
        else:
            return cmd_repl(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
