"""
Visitor framework over the Fusion AST arena.

A pass subclasses ASTVisitor and overrides only the node kinds it cares
about; every other kind falls back to a default that walks the node's
children. Dispatch goes through tables keyed by the node-kind enums, and
the tables are checked for completeness when this module is imported, so
adding a node kind without a handler fails loudly.

Default traversal order:
    block        statements in source order
    binary       left, then right
    call         arguments left to right
    if           condition, then-branch, else-branch
    while        condition, then body
    let          initializer
    assignment   value

Every visit method returns a value (None by default) so passes that
compute something per node (types, runtime values, printed text) can use
the same dispatch.

Author: xwest
"""

from enum import Enum
from typing import Any, Dict, Type

from .ast_nodes import (
    Ast, ItemHandle, StatementHandle, ExpressionHandle, ItemKind, StatementKind, ExpressionKind,
    StatementItem, FunctionDeclaration, ExpressionStatement, LetStatement, WhileStatement,
    ReturnStatement, NumberExpression, DecimalExpression, StringExpression, BooleanExpression,
    BinaryExpression, UnaryExpression, ParenthesizedExpression, VariableExpression,
    AssignmentExpression, CallExpression, IfExpression, BlockExpression, ErrorExpression
)


ITEM_DISPATCH: Dict[ItemKind, str] = {
    ItemKind.STATEMENT: "visit_statement_item",
    ItemKind.FUNCTION_DECLARATION: "visit_function_declaration",
}

STATEMENT_DISPATCH: Dict[StatementKind, str] = {
    StatementKind.EXPRESSION: "visit_expression_statement",
    StatementKind.LET: "visit_let_statement",
    StatementKind.WHILE: "visit_while_statement",
    StatementKind.RETURN: "visit_return_statement",
}

EXPRESSION_DISPATCH: Dict[ExpressionKind, str] = {
    ExpressionKind.NUMBER: "visit_number_expression",
    ExpressionKind.DECIMAL: "visit_decimal_expression",
    ExpressionKind.STRING: "visit_string_expression",
    ExpressionKind.BINARY: "visit_binary_expression",
    ExpressionKind.UNARY: "visit_unary_expression",
    ExpressionKind.PARENTHESIZED: "visit_parenthesized_expression",
    ExpressionKind.VARIABLE: "visit_variable_expression",
    ExpressionKind.ASSIGNMENT: "visit_assignment_expression",
    ExpressionKind.BOOLEAN: "visit_boolean_expression",
    ExpressionKind.CALL: "visit_call_expression",
    ExpressionKind.IF: "visit_if_expression",
    ExpressionKind.BLOCK: "visit_block_expression",
    ExpressionKind.ERROR: "visit_error_expression",
}


class ASTVisitor:
    """Base class for passes over an Ast."""

    def __init__(self, ast: Ast):
        self.ast = ast

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def visit_item(self, handle: ItemHandle) -> Any:
        item = self.ast.query_item(handle)
        return getattr(self, ITEM_DISPATCH[item.kind])(item)

    def visit_statement(self, handle: StatementHandle) -> Any:
        statement = self.ast.query_statement(handle)
        return getattr(self, STATEMENT_DISPATCH[statement.kind])(statement)

    def visit_expression(self, handle: ExpressionHandle) -> Any:
        expression = self.ast.query_expression(handle)
        return getattr(self, EXPRESSION_DISPATCH[expression.kind])(expression)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def visit_statement_item(self, item: StatementItem) -> Any:
        return self.visit_statement(item.statement)

    def visit_function_declaration(self, item: FunctionDeclaration) -> Any:
        return self.visit_expression(item.body)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def visit_expression_statement(self, statement: ExpressionStatement) -> Any:
        return self.visit_expression(statement.expression)

    def visit_let_statement(self, statement: LetStatement) -> Any:
        self.visit_expression(statement.initializer)
        return None

    def visit_while_statement(self, statement: WhileStatement) -> Any:
        self.visit_expression(statement.condition)
        self.visit_expression(statement.body)
        return None

    def visit_return_statement(self, statement: ReturnStatement) -> Any:
        if statement.value is not None:
            self.visit_expression(statement.value)
        return None

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def visit_number_expression(self, expression: NumberExpression) -> Any:
        return None

    def visit_decimal_expression(self, expression: DecimalExpression) -> Any:
        return None

    def visit_string_expression(self, expression: StringExpression) -> Any:
        return None

    def visit_boolean_expression(self, expression: BooleanExpression) -> Any:
        return None

    def visit_binary_expression(self, expression: BinaryExpression) -> Any:
        self.visit_expression(expression.left)
        self.visit_expression(expression.right)
        return None

    def visit_unary_expression(self, expression: UnaryExpression) -> Any:
        self.visit_expression(expression.operand)
        return None

    def visit_parenthesized_expression(self, expression: ParenthesizedExpression) -> Any:
        return self.visit_expression(expression.inner)

    def visit_variable_expression(self, expression: VariableExpression) -> Any:
        return None

    def visit_assignment_expression(self, expression: AssignmentExpression) -> Any:
        self.visit_expression(expression.value)
        return None

    def visit_call_expression(self, expression: CallExpression) -> Any:
        for argument in expression.arguments:
            self.visit_expression(argument)
        return None

    def visit_if_expression(self, expression: IfExpression) -> Any:
        self.visit_expression(expression.condition)
        self.visit_expression(expression.then_branch)
        if expression.else_branch is not None:
            self.visit_expression(expression.else_branch.expression)
        return None

    def visit_block_expression(self, expression: BlockExpression) -> Any:
        for statement in expression.statements:
            self.visit_statement(statement)
        return None

    def visit_error_expression(self, expression: ErrorExpression) -> Any:
        return None


def _check_dispatch_table(kinds: Type[Enum], table: Dict[Any, str]) -> None:
    missing = [kind for kind in kinds if kind not in table]
    if missing:
        raise TypeError(f"No visitor dispatch for {kinds.__name__} members: {missing}")
    for kind, method_name in table.items():
        if not callable(getattr(ASTVisitor, method_name, None)):
            raise TypeError(f"ASTVisitor has no method '{method_name}' for {kind}")


_check_dispatch_table(ItemKind, ITEM_DISPATCH)
_check_dispatch_table(StatementKind, STATEMENT_DISPATCH)
_check_dispatch_table(ExpressionKind, EXPRESSION_DISPATCH)
