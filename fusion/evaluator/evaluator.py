"""
Tree-walking evaluator for resolved Fusion programs.

Runs directly over the typed AST. Operators execute according to the tag
the resolver chose, so no operand type is inspected at run time; values
only change representation when they are stored into a slot whose static
type differs (an int flowing into a float variable, parameter or return).

Runtime errors:
    R001  division by zero
    R002  negative integer exponent
    R003  unresolved variable or call target
    R004  call depth exceeded
    R005  function ended without returning a value

Author: xwest
"""

import logging
import sys
from typing import Any, Dict, List, Optional

from ..errors import FusionError
from ..analyzer.symbol_table import GlobalScope, FunctionSymbol
from ..parser.ast_nodes import (
    Ast, BinaryOperatorKind, UnaryOperatorKind, StatementItem, FunctionDeclaration,
    ExpressionStatement, LetStatement, WhileStatement, ReturnStatement, NumberExpression,
    DecimalExpression, StringExpression, BooleanExpression, BinaryExpression, UnaryExpression,
    ParenthesizedExpression, VariableExpression, AssignmentExpression, CallExpression,
    IfExpression, BlockExpression, ErrorExpression
)
from ..parser.visitor import ASTVisitor
from ..text import TextSpan
from ..types import Type

logger = logging.getLogger(__name__)


class EvaluationError(FusionError):
    """Fatal failure while running a program."""

    def __init__(self, message: str, code: str, span: Optional[TextSpan] = None):
        super().__init__(message)
        self.code = code
        self.span = span

    def __str__(self) -> str:
        location = f" at {self.span}" if self.span is not None else ""
        return f"RUNTIME ERROR[{self.code}]: {self.args[0]}{location}"


class ReturnSignal(Exception):
    """Unwinds from a ``return`` statement to the enclosing call."""

    def __init__(self, value: Any):
        super().__init__()
        self.value = value


class Frame:
    """Activation record: a stack of block scopes mapping variable index to value."""

    def __init__(self, function: Optional[FunctionSymbol] = None):
        self.function = function
        self.scopes: List[Dict[int, Any]] = [{}]

    def push_scope(self):
        self.scopes.append({})

    def pop_scope(self):
        self.scopes.pop()

    def define(self, index: int, value: Any):
        self.scopes[-1][index] = value

    def find_scope(self, index: int) -> Optional[Dict[int, Any]]:
        for scope in reversed(self.scopes):
            if index in scope:
                return scope
        return None


def convert(value: Any, ty: Type) -> Any:
    """Change a number's representation to match a static slot type."""
    if ty is Type.FLOAT and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if ty is Type.INT and isinstance(value, float):
        return int(value)
    return value


def _divide_int(left: int, right: int) -> int:
    quotient = abs(left) // abs(right)
    return quotient if (left >= 0) == (right >= 0) else -quotient


BINARY_OPERATIONS = {
    BinaryOperatorKind.PLUS: lambda a, b: a + b,
    BinaryOperatorKind.MINUS: lambda a, b: a - b,
    BinaryOperatorKind.MULTIPLY: lambda a, b: a * b,
    BinaryOperatorKind.DIVIDE: _divide_int,
    BinaryOperatorKind.POWER: lambda a, b: a ** b,
    BinaryOperatorKind.PLUS_DECIMAL: lambda a, b: float(a) + float(b),
    BinaryOperatorKind.MINUS_DECIMAL: lambda a, b: float(a) - float(b),
    BinaryOperatorKind.MULTIPLY_DECIMAL: lambda a, b: float(a) * float(b),
    BinaryOperatorKind.DIVIDE_DECIMAL: lambda a, b: float(a) / float(b),
    BinaryOperatorKind.PLUS_STRING: lambda a, b: a + b,
    BinaryOperatorKind.BITWISE_AND: lambda a, b: a & b,
    BinaryOperatorKind.BITWISE_OR: lambda a, b: a | b,
    BinaryOperatorKind.BITWISE_XOR: lambda a, b: a ^ b,
    BinaryOperatorKind.EQUALS: lambda a, b: a == b,
    BinaryOperatorKind.NOT_EQUALS: lambda a, b: a != b,
    BinaryOperatorKind.LESS_THAN: lambda a, b: a < b,
    BinaryOperatorKind.LESS_THAN_OR_EQUAL: lambda a, b: a <= b,
    BinaryOperatorKind.GREATER_THAN: lambda a, b: a > b,
    BinaryOperatorKind.GREATER_THAN_OR_EQUAL: lambda a, b: a >= b,
}

UNARY_OPERATIONS = {
    UnaryOperatorKind.MINUS: lambda v: -v,
    UnaryOperatorKind.BITWISE_NOT: lambda v: ~v,
}

DIVISIONS = frozenset({BinaryOperatorKind.DIVIDE, BinaryOperatorKind.DIVIDE_DECIMAL})


class Evaluator(ASTVisitor):
    """
    Executes a resolved Ast.

    Top-level statements run in the global frame; each call pushes a new
    frame. Variable lookups search the current frame, then the global one.
    """

    MAX_CALL_DEPTH = 200
    # Python frames needed per Fusion call, with headroom for deep expressions.
    FRAMES_PER_CALL = 40

    def __init__(self, ast: Ast, global_scope: GlobalScope):
        super().__init__(ast)
        self.global_scope = global_scope
        self.global_frame = Frame()
        self.frames: List[Frame] = [self.global_frame]
        self.last_value: Any = None

    @property
    def current_frame(self) -> Frame:
        return self.frames[-1]

    def run(self) -> Any:
        """Execute every top-level item; returns the last expression statement's value."""
        previous_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(previous_limit, self.MAX_CALL_DEPTH * self.FRAMES_PER_CALL))
        try:
            self.ast.visit(self)
        except RecursionError:
            raise EvaluationError("Maximum call depth exceeded", "R004") from None
        finally:
            sys.setrecursionlimit(previous_limit)
        logger.debug("Evaluation finished with %r", self.last_value)
        return self.last_value

    # ========================================================================
    # Items and statements
    # ========================================================================

    def visit_statement_item(self, item: StatementItem):
        value = self.visit_statement(item.statement)
        if isinstance(self.ast.query_statement(item.statement), ExpressionStatement):
            self.last_value = value

    def visit_function_declaration(self, item: FunctionDeclaration):
        # Declarations only run when called.
        return None

    def visit_expression_statement(self, statement: ExpressionStatement) -> Any:
        return self.visit_expression(statement.expression)

    def visit_let_statement(self, statement: LetStatement):
        value = self.visit_expression(statement.initializer)
        if statement.variable_index is None:
            raise EvaluationError(f"Unresolved variable '{statement.name}'", "R003",
                                  statement.identifier.span)
        variable = self.global_scope.variable(statement.variable_index)
        self.current_frame.define(variable.index, convert(value, variable.ty))

    def visit_while_statement(self, statement: WhileStatement):
        while self.visit_expression(statement.condition):
            self.visit_expression(statement.body)

    def visit_return_statement(self, statement: ReturnStatement):
        value = None
        if statement.value is not None:
            value = self.visit_expression(statement.value)
        raise ReturnSignal(value)

    # ========================================================================
    # Expressions
    # ========================================================================

    def visit_number_expression(self, expression: NumberExpression) -> int:
        return expression.number

    def visit_decimal_expression(self, expression: DecimalExpression) -> float:
        return expression.number

    def visit_string_expression(self, expression: StringExpression) -> str:
        return expression.string

    def visit_boolean_expression(self, expression: BooleanExpression) -> bool:
        return expression.value

    def visit_parenthesized_expression(self, expression: ParenthesizedExpression) -> Any:
        return self.visit_expression(expression.inner)

    def visit_error_expression(self, expression: ErrorExpression):
        raise EvaluationError("Cannot evaluate an erroneous expression", "R003", expression.span)

    def visit_binary_expression(self, expression: BinaryExpression) -> Any:
        left = self.visit_expression(expression.left)
        right = self.visit_expression(expression.right)
        operator = expression.operator.kind

        if operator in DIVISIONS and right == 0:
            raise EvaluationError("Division by zero", "R001",
                                  self.ast.expression_span(expression.handle))
        if operator is BinaryOperatorKind.POWER and right < 0:
            raise EvaluationError("Negative exponent in integer power", "R002",
                                  self.ast.expression_span(expression.handle))
        return BINARY_OPERATIONS[operator](left, right)

    def visit_unary_expression(self, expression: UnaryExpression) -> Any:
        operand = self.visit_expression(expression.operand)
        return UNARY_OPERATIONS[expression.operator.kind](operand)

    def visit_variable_expression(self, expression: VariableExpression) -> Any:
        scope = self._scope_of(expression.variable_index, expression)
        return scope[expression.variable_index]

    def visit_assignment_expression(self, expression: AssignmentExpression) -> Any:
        value = self.visit_expression(expression.value)
        scope = self._scope_of(expression.variable_index, expression)
        value = convert(value, self.global_scope.variable(expression.variable_index).ty)
        scope[expression.variable_index] = value
        return value

    def _scope_of(self, index: Optional[int], expression) -> Dict[int, Any]:
        if index is None:
            raise EvaluationError(f"Unresolved variable '{expression.name}'", "R003",
                                  expression.identifier.span)
        scope = self.current_frame.find_scope(index)
        if scope is None:
            scope = self.global_frame.find_scope(index)
        if scope is None:
            # A function called before the top-level let it reads has run.
            raise EvaluationError(
                f"Variable '{expression.name}' is used before it is initialized", "R003",
                expression.identifier.span
            )
        return scope

    def visit_call_expression(self, expression: CallExpression) -> Any:
        if expression.function_index is None:
            raise EvaluationError(f"Unresolved function '{expression.function_name}'", "R003",
                                  expression.callee.span)
        function = self.global_scope.function(expression.function_index)
        arguments = [self.visit_expression(argument) for argument in expression.arguments]

        if len(self.frames) > self.MAX_CALL_DEPTH:
            raise EvaluationError("Maximum call depth exceeded", "R004", expression.callee.span)

        frame = Frame(function)
        for parameter, argument in zip(function.parameters, arguments):
            frame.define(parameter, convert(argument, self.global_scope.variable(parameter).ty))

        self.frames.append(frame)
        try:
            value = self.visit_expression(function.body)
        except ReturnSignal as signal:
            value = signal.value
        finally:
            self.frames.pop()

        if function.return_type is Type.VOID:
            return None
        if value is None:
            raise EvaluationError(
                f"Function '{function.name}' ended without returning a value", "R005",
                expression.callee.span
            )
        return convert(value, function.return_type)

    def visit_if_expression(self, expression: IfExpression) -> Any:
        if self.visit_expression(expression.condition):
            value = self.visit_expression(expression.then_branch)
        elif expression.else_branch is not None:
            value = self.visit_expression(expression.else_branch.expression)
        else:
            value = None
        if expression.ty is Type.VOID:
            return None
        return convert(value, expression.ty)

    def visit_block_expression(self, expression: BlockExpression) -> Any:
        frame = self.current_frame
        frame.push_scope()
        value = None
        try:
            for statement in expression.statements:
                result = self.visit_statement(statement)
                is_expression = isinstance(self.ast.query_statement(statement), ExpressionStatement)
                value = result if is_expression else None
        finally:
            frame.pop_scope()
        return value
