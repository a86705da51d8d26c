"""
Diagnostics for the Fusion compiler.

Every phase reports problems into a shared, append-only DiagnosticsBag.
Reporting never changes control flow; the compilation unit decides once,
after all phases ran, whether the program may be executed.

Error codes:
    L0xx  lexical       (bad characters, unterminated strings)
    P0xx  syntactic     (unexpected or missing tokens)
    S0xx  semantic      (unbound names, type mismatches, arity)

Author: xwest
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, TYPE_CHECKING

from .text import TextSpan, SourceText

if TYPE_CHECKING:
    from .types import Type
    from .lexer.tokens import Token, TokenKind


LEXER_ERROR_CODES = {
    "L001": "Bad character",
    "L002": "Unterminated string literal",
}

PARSER_ERROR_CODES = {
    "P001": "Unexpected token",
    "P002": "Missing token",
}

SEMANTIC_ERROR_CODES = {
    "S001": "Type mismatch",
    "S002": "Unknown type",
    "S003": "Void value used as a value",
    "S005": "Invalid operation",
    "S006": "Incompatible branch types",
    "S010": "Undefined symbol",
    "S011": "Duplicate definition",
    "S050": "Wrong number of arguments",
    "S053": "Return outside of function",
    "S054": "Missing return value",
}


@dataclass
class Diagnostic:
    """A single span-tagged compiler message."""
    message: str
    span: TextSpan
    severity: str = "error"  # "error" or "warning"
    code: Optional[str] = None
    help_text: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def __str__(self) -> str:
        code = f"[{self.code}]" if self.code else ""
        result = f"{self.severity.upper()}{code}: {self.message}\n"
        result += f"  --> {self.span}"
        if self.help_text:
            result += f"\n  help: {self.help_text}"
        return result


class DiagnosticsBag:
    """Append-only collection of diagnostics shared by all phases."""

    def __init__(self):
        self._diagnostics: List[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> Diagnostic:
        self._diagnostics.append(diagnostic)
        return diagnostic

    def report_error(self, message: str, span: TextSpan, code: Optional[str] = None,
                     help_text: Optional[str] = None) -> Diagnostic:
        return self.report(Diagnostic(message, span, "error", code, help_text))

    def report_warning(self, message: str, span: TextSpan, code: Optional[str] = None) -> Diagnostic:
        return self.report(Diagnostic(message, span, "warning", code))

    # Lexical

    def report_bad_character(self, char: str, span: TextSpan) -> Diagnostic:
        return self.report_error(f"Bad character '{char}'", span, "L001")

    def report_unterminated_string(self, span: TextSpan) -> Diagnostic:
        return self.report_error(
            "Unterminated string literal", span, "L002",
            help_text="add a closing quote matching the opening one"
        )

    def report_integer_too_large(self, literal: str, span: TextSpan) -> Diagnostic:
        return self.report_error(
            f"Integer literal '{literal}' does not fit in 64 bits", span, "L003",
            help_text="write it as a decimal literal"
        )

    # Syntactic

    def report_unexpected_token(self, found: 'Token', expected: Optional['TokenKind'] = None) -> Diagnostic:
        if expected is None:
            message = f"Unexpected token '{found.kind}'"
        else:
            message = f"Expected '{expected}', found '{found.kind}'"
        return self.report_error(message, found.span, "P001")

    def report_expected_expression(self, found: 'Token') -> Diagnostic:
        return self.report_error(f"Expected expression, found '{found.kind}'", found.span, "P001")

    def report_missing_token(self, expected: 'TokenKind', found: 'Token') -> Diagnostic:
        return self.report_error(
            f"Expected '{expected}', found '{found.kind}'", found.span, "P002"
        )

    def report_nesting_too_deep(self, span: TextSpan) -> Diagnostic:
        return self.report_error("Program is nested too deeply to compile", span, "P003")

    # Semantic

    def report_type_mismatch(self, expected: 'Type', actual: 'Type', span: TextSpan) -> Diagnostic:
        return self.report_error(
            f"Type mismatch: expected '{expected}', found '{actual}'", span, "S001"
        )

    def report_unknown_type(self, name: str, span: TextSpan) -> Diagnostic:
        return self.report_error(
            f"Unknown type '{name}'", span, "S002",
            help_text="available types are int, float, string, bool and void"
        )

    def report_void_value(self, span: TextSpan) -> Diagnostic:
        return self.report_error("Expression of type 'void' cannot be used as a value", span, "S003")

    def report_invalid_binary_operation(self, operator: str, left: 'Type', right: 'Type',
                                        span: TextSpan) -> Diagnostic:
        return self.report_error(
            f"Operator '{operator}' cannot be applied to '{left}' and '{right}'", span, "S005"
        )

    def report_invalid_unary_operation(self, operator: str, operand: 'Type', span: TextSpan) -> Diagnostic:
        return self.report_error(
            f"Operator '{operator}' cannot be applied to '{operand}'", span, "S005"
        )

    def report_incompatible_branches(self, then_type: 'Type', else_type: 'Type', span: TextSpan) -> Diagnostic:
        return self.report_error(
            f"If branches have incompatible types '{then_type}' and '{else_type}'", span, "S006"
        )

    def report_undeclared_variable(self, name: str, span: TextSpan,
                                   suggestion: Optional[str] = None) -> Diagnostic:
        help_text = f"did you mean '{suggestion}'?" if suggestion else None
        return self.report_error(f"Undeclared variable '{name}'", span, "S010", help_text)

    def report_undeclared_function(self, name: str, span: TextSpan,
                                   suggestion: Optional[str] = None) -> Diagnostic:
        help_text = f"did you mean '{suggestion}'?" if suggestion else None
        return self.report_error(f"Undeclared function '{name}'", span, "S010", help_text)

    def report_function_already_declared(self, name: str, span: TextSpan) -> Diagnostic:
        return self.report_error(f"Function '{name}' is already declared", span, "S011")

    def report_wrong_argument_count(self, name: str, expected: int, actual: int,
                                    span: TextSpan) -> Diagnostic:
        return self.report_error(
            f"Function '{name}' expects {expected} arguments, but {actual} were given",
            span, "S050"
        )

    def report_return_outside_function(self, span: TextSpan) -> Diagnostic:
        return self.report_error("'return' outside of a function", span, "S053")

    def report_missing_return_value(self, expected: 'Type', span: TextSpan) -> Diagnostic:
        return self.report_error(
            f"Missing return value, function returns '{expected}'", span, "S054"
        )

    # Queries

    def has_errors(self) -> bool:
        return any(diagnostic.is_error for diagnostic in self._diagnostics)

    @property
    def errors(self) -> List[Diagnostic]:
        return [diagnostic for diagnostic in self._diagnostics if diagnostic.is_error]

    def codes(self) -> List[Optional[str]]:
        return [diagnostic.code for diagnostic in self._diagnostics]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)

    def __repr__(self) -> str:
        return f"DiagnosticsBag({self._diagnostics!r})"


class DiagnosticsPrinter:
    """Renders diagnostics with a pointer into the original source."""

    def __init__(self, source_text: SourceText):
        self.source_text = source_text

    def render(self, diagnostic: Diagnostic) -> str:
        line, column = self.source_text.location(diagnostic.span.start)
        line_index = line - 1
        text = self.source_text.line_text(line_index)

        # Clamp the caret run to the first line of the span.
        width = max(1, min(diagnostic.span.length, len(text) - column + 1))
        gutter = " " * len(str(line))

        code = f"[{diagnostic.code}]" if diagnostic.code else ""
        lines = [
            f"{diagnostic.severity.upper()}{code}: {diagnostic.message}",
            f"{gutter}--> {self.source_text.filename}:{line}:{column}",
            f"{gutter} |",
            f"{line} | {text}",
            f"{gutter} | {' ' * (column - 1)}{'^' * width}",
        ]
        if diagnostic.help_text:
            lines.append(f"{gutter} = help: {diagnostic.help_text}")
        return "\n".join(lines)

    def render_all(self, diagnostics) -> str:
        return "\n\n".join(self.render(diagnostic) for diagnostic in diagnostics)
