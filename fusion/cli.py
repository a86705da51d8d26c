#!/usr/bin/env python3
"""
Fusion compiler command line.

Usage:
    fusionc program.fn               compile and run a file
    fusionc -c "let a = 1 a + 2"     compile and run a source string
    fusionc program.fn --print-ast   also dump the resolved AST
    fusionc program.fn --no-run      stop after type checking
    fusionc --version

Options:
    -c, --command SOURCE   Source text to compile instead of a file
    --print-ast            Print the resolved AST
    --no-run               Do not evaluate the program
    -v, --verbose          Verbose logging (repeat for debug output)
    --log-file FILE        Also write log records to FILE

Exit status is 0 on success, 1 when compilation reports errors (or the
input cannot be read) and 2 when the program fails at run time.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Any, List, Optional

from . import __version__
from .compilation_unit import CompilationUnit
from .evaluator import EvaluationError
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_COMPILE_ERROR = 1
EXIT_RUNTIME_ERROR = 2


@dataclass
class CompilerOptions:
    """Which passes to run and how loudly."""
    source: str
    filename: str = "<string>"
    print_ast: bool = False
    run: bool = True
    verbosity: int = 0
    log_file: Optional[str] = None

    @property
    def log_level(self) -> int:
        if self.verbosity >= 2:
            return logging.DEBUG
        if self.verbosity == 1:
            return logging.INFO
        return logging.WARNING


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fusionc",
        description="Compile and run Fusion programs",
    )
    parser.add_argument("file", nargs="?", help="Source file (reads stdin when omitted)")
    parser.add_argument("-c", "--command", metavar="SOURCE", help="Source text to compile")
    parser.add_argument("--print-ast", action="store_true", help="Print the resolved AST")
    parser.add_argument("--no-run", action="store_true", help="Stop after type checking")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Verbose logging")
    parser.add_argument("--log-file", metavar="FILE", help="Also write logs to FILE")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_options(argv: Optional[List[str]] = None) -> CompilerOptions:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is not None and args.file is not None:
        parser.error("give either a file or -c/--command, not both")

    if args.command is not None:
        source, filename = args.command, "<command>"
    elif args.file is not None:
        with open(args.file, 'r', encoding='utf-8') as f:
            source = f.read()
        filename = args.file
    else:
        source, filename = sys.stdin.read(), "<stdin>"

    return CompilerOptions(
        source=source,
        filename=filename,
        print_ast=args.print_ast,
        run=not args.no_run,
        verbosity=args.verbose,
        log_file=args.log_file,
    )


def format_value(value: Any) -> str:
    """Render a runtime value the way Fusion source spells it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def execute(options: CompilerOptions) -> int:
    unit = CompilationUnit.compile(options.source, options.filename)

    if options.print_ast:
        print(unit.visualize())

    if unit.has_errors():
        print(unit.format_diagnostics(), file=sys.stderr)
        return EXIT_COMPILE_ERROR

    if not options.run:
        return EXIT_OK

    try:
        value = unit.run()
    except EvaluationError as e:
        print(str(e), file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if value is not None:
        print(format_value(value))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    try:
        options = parse_options(argv)
    except OSError as e:
        print(f"fusionc: cannot read input: {e}", file=sys.stderr)
        return EXIT_COMPILE_ERROR

    setup_logging(options.log_level, options.log_file)
    logger.debug("Options: print_ast=%s run=%s", options.print_ast, options.run)
    return execute(options)


if __name__ == "__main__":
    sys.exit(main())
