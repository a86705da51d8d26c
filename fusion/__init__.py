"""
Fusion Compiler Package

Front end for Fusion, a small imperative, expression-oriented language:
lexing, parsing into an arena-based AST, name and type resolution, and a
tree-walking evaluator.

Architecture:
    fusion/
    ├── text/            # Source spans and line/column lookup
    ├── lexer/           # Tokenization
    ├── parser/          # AST arena, parser, visitor framework
    ├── analyzer/        # Scopes, name resolution, type checking
    ├── evaluator/       # Tree-walking interpreter
    └── compilation_unit.py

Author: xwest
License: MIT
"""

__version__ = "0.1.0"
__author__ = "xwest"
__license__ = "MIT"

from .types import Type
from .diagnostics import Diagnostic, DiagnosticsBag
from .errors import FusionError, InternalCompilerError, CompilationError
from .lexer import Lexer
from .parser import Parser, Ast
from .analyzer import Resolver, GlobalScope
from .evaluator import Evaluator, EvaluationError
from .compilation_unit import CompilationUnit, run_source

__all__ = [
    # Core classes
    "Lexer",
    "Parser",
    "Ast",
    "Resolver",
    "GlobalScope",
    "Evaluator",
    "CompilationUnit",
    "run_source",
    "Type",

    # Diagnostics and errors
    "Diagnostic",
    "DiagnosticsBag",
    "FusionError",
    "InternalCompilerError",
    "CompilationError",
    "EvaluationError",

    # Version info
    "__version__",
    "__author__",
    "__license__",
]
