"""
One Fusion compilation: source text in, resolved AST out.

Phases run strictly in order and each consumes the whole output of the one
before it: lex, drop trivia, parse, resolve. All of them report into the
same DiagnosticsBag and none of them stops early. Whether the program may
run is decided once, here, from the collected diagnostics.

Author: xwest
"""

import logging
import sys
from typing import Any, Optional

from .analyzer import GlobalScope, Resolver
from .diagnostics import DiagnosticsBag, DiagnosticsPrinter
from .errors import CompilationError
from .evaluator import Evaluator
from .lexer import Lexer
from .parser import Ast, Parser
from .text import SourceText

logger = logging.getLogger(__name__)

# Parsing and resolving recurse once per nesting level.
NESTING_RECURSION_LIMIT = Evaluator.MAX_CALL_DEPTH * Evaluator.FRAMES_PER_CALL


class CompilationUnit:
    """
    Owns everything produced while compiling one source text.

    Nothing is shared between units, so independent units can be compiled
    side by side.
    """

    def __init__(self, source_text: SourceText, ast: Ast, global_scope: GlobalScope,
                 diagnostics: DiagnosticsBag):
        self.source_text = source_text
        self.ast = ast
        self.global_scope = global_scope
        self.diagnostics = diagnostics

    @classmethod
    def compile(cls, source: str, filename: str = "<string>") -> 'CompilationUnit':
        """Run every front-end phase over ``source``; never raises on bad input."""
        source_text = SourceText(source, filename)
        diagnostics = DiagnosticsBag()

        tokens = [token for token in Lexer(source, diagnostics).tokenize() if not token.is_trivia()]
        logger.debug("%s: %d significant tokens", filename, len(tokens))

        parser = Parser(tokens, diagnostics)
        ast = parser.ast
        global_scope = GlobalScope()
        resolver = Resolver(ast, global_scope, diagnostics)

        previous_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(previous_limit, NESTING_RECURSION_LIMIT))
        try:
            parser.parse()
            resolver.resolve()
        except RecursionError:
            diagnostics.report_nesting_too_deep(tokens[0].span)
            resolver.type_unreached_expressions()
        finally:
            sys.setrecursionlimit(previous_limit)

        logger.info("Compiled %s with %d diagnostics", filename, len(diagnostics))
        return cls(source_text, ast, global_scope, diagnostics)

    @classmethod
    def compile_file(cls, path: str) -> 'CompilationUnit':
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
        return cls.compile(source, path)

    def has_errors(self) -> bool:
        return self.diagnostics.has_errors()

    def format_diagnostics(self) -> str:
        return DiagnosticsPrinter(self.source_text).render_all(self.diagnostics)

    def visualize(self) -> str:
        return self.ast.visualize()

    def run(self) -> Any:
        """
        Evaluate the program.

        Raises:
            CompilationError: if compilation produced error diagnostics
            EvaluationError: if the program fails at run time
        """
        if self.has_errors():
            raise CompilationError(
                f"{self.source_text.filename}: cannot run a program with "
                f"{len(self.diagnostics.errors)} error(s)",
                self.diagnostics.errors
            )
        return Evaluator(self.ast, self.global_scope).run()


def run_source(source: str, filename: Optional[str] = None) -> Any:
    """Compile and run a source string, returning the last top-level value."""
    return CompilationUnit.compile(source, filename or "<string>").run()
