"""
Exception hierarchy for the Fusion compiler.

Compile-time problems in user programs are collected as diagnostics and
never raised. The exceptions here cover the two remaining cases: misuse of
the compiler's own data structures, and refusing to run a program that
failed to compile.

Author: xwest
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .diagnostics import Diagnostic


class FusionError(Exception):
    """Base class for every exception raised by the fusion package."""


class InternalCompilerError(FusionError):
    """
    Raised when a compiler pass violates an internal contract.

    Examples are looking up a handle that was never allocated, or writing a
    write-once field (type, variable index) a second time.
    """


class CompilationError(FusionError):
    """Raised when a program with error diagnostics is asked to run."""

    def __init__(self, message: str, diagnostics: Optional[List['Diagnostic']] = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])

    def __str__(self) -> str:
        result = super().__str__()
        for diagnostic in self.diagnostics:
            result += f"\n{diagnostic}"
        return result
