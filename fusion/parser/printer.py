"""
Indented tree dump of a Fusion AST.

Used by Ast.visualize() and the ``--print-ast`` CLI flag. Expressions show
their type once the resolver has run.
"""

from typing import List

from ..types import Type
from .ast_nodes import (
    Ast, StatementItem, FunctionDeclaration, ExpressionStatement, LetStatement, WhileStatement,
    ReturnStatement, Expression, NumberExpression, DecimalExpression, StringExpression,
    BooleanExpression, BinaryExpression, UnaryExpression, ParenthesizedExpression,
    VariableExpression, AssignmentExpression, CallExpression, IfExpression, BlockExpression,
    ErrorExpression
)
from .visitor import ASTVisitor


class ASTPrinter(ASTVisitor):
    """Collects one line per node, indented by depth."""

    INDENT = "  "

    def __init__(self, ast: Ast):
        super().__init__(ast)
        self.lines: List[str] = []
        self.depth = 0

    def result(self) -> str:
        return "\n".join(self.lines)

    def _line(self, text: str):
        self.lines.append(f"{self.INDENT * self.depth}{text}")

    def _expression_line(self, expression: Expression, text: str):
        if expression.ty is not Type.UNRESOLVED:
            text = f"{text} : {expression.ty}"
        self._line(text)

    def _nested(self, visit, *args):
        self.depth += 1
        try:
            visit(*args)
        finally:
            self.depth -= 1

    # Items

    def visit_statement_item(self, item: StatementItem):
        self.visit_statement(item.statement)

    def visit_function_declaration(self, item: FunctionDeclaration):
        parameters = ", ".join(
            f"{parameter.name}: {parameter.type_annotation.type_name.lexeme}"
            for parameter in item.parameters
        )
        returns = f" -> {item.return_type.type_name.lexeme}" if item.return_type else ""
        self._line(f"FunctionDeclaration {item.name}({parameters}){returns}")
        self._nested(self.visit_expression, item.body)

    # Statements

    def visit_expression_statement(self, statement: ExpressionStatement):
        self._line("ExpressionStatement")
        self._nested(self.visit_expression, statement.expression)

    def visit_let_statement(self, statement: LetStatement):
        annotation = ""
        if statement.type_annotation is not None:
            annotation = f": {statement.type_annotation.type_name.lexeme}"
        self._line(f"LetStatement {statement.name}{annotation}")
        self._nested(self.visit_expression, statement.initializer)

    def visit_while_statement(self, statement: WhileStatement):
        self._line("WhileStatement")
        self._nested(super().visit_while_statement, statement)

    def visit_return_statement(self, statement: ReturnStatement):
        self._line("ReturnStatement")
        self._nested(super().visit_return_statement, statement)

    # Expressions

    def visit_number_expression(self, expression: NumberExpression):
        self._expression_line(expression, f"Number {expression.number}")

    def visit_decimal_expression(self, expression: DecimalExpression):
        self._expression_line(expression, f"Decimal {expression.number}")

    def visit_string_expression(self, expression: StringExpression):
        self._expression_line(expression, f"String {expression.string!r}")

    def visit_boolean_expression(self, expression: BooleanExpression):
        self._expression_line(expression, f"Boolean {str(expression.value).lower()}")

    def visit_binary_expression(self, expression: BinaryExpression):
        self._expression_line(expression, f"Binary {expression.operator.kind.name}")
        self._nested(super().visit_binary_expression, expression)

    def visit_unary_expression(self, expression: UnaryExpression):
        self._expression_line(expression, f"Unary {expression.operator.kind.name}")
        self._nested(super().visit_unary_expression, expression)

    def visit_parenthesized_expression(self, expression: ParenthesizedExpression):
        self._expression_line(expression, "Parenthesized")
        self._nested(self.visit_expression, expression.inner)

    def visit_variable_expression(self, expression: VariableExpression):
        self._expression_line(expression, f"Variable {expression.name}")

    def visit_assignment_expression(self, expression: AssignmentExpression):
        self._expression_line(expression, f"Assignment {expression.name}")
        self._nested(super().visit_assignment_expression, expression)

    def visit_call_expression(self, expression: CallExpression):
        self._expression_line(expression, f"Call {expression.function_name}")
        self._nested(super().visit_call_expression, expression)

    def visit_if_expression(self, expression: IfExpression):
        self._expression_line(expression, "If")
        self._nested(super().visit_if_expression, expression)

    def visit_block_expression(self, expression: BlockExpression):
        self._expression_line(expression, "Block")
        self._nested(super().visit_block_expression, expression)

    def visit_error_expression(self, expression: ErrorExpression):
        self._expression_line(expression, f"Error {expression.span.literal!r}")
