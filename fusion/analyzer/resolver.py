"""
Name resolution and type checking for Fusion.

The Resolver is a single visitor pass that:
- declares every function up front so calls may precede declarations
- opens a scope per function body and per block
- binds ``let`` names to fresh variable indices and resolves references
- computes each expression's type bottom-up and writes it into the AST
- rewrites generic arithmetic operators into their float or string
  variants once both operand types are known

Failures are reported to the diagnostics bag and the offending expression
gets the ERROR type, which is compatible with everything, so a single
mistake produces a single diagnostic.

Author: xwest
"""

import logging
from typing import Dict, List, Optional, Tuple

from ..diagnostics import DiagnosticsBag
from ..lexer.tokens import Token
from ..parser.ast_nodes import (
    Ast, ItemHandle, ExpressionHandle, BinaryOperatorKind, UnaryOperatorKind,
    SPECIALIZED_OPERATORS, StatementItem, FunctionDeclaration, ExpressionStatement,
    LetStatement, WhileStatement, ReturnStatement, Expression, NumberExpression,
    DecimalExpression, StringExpression, BooleanExpression, BinaryExpression, UnaryExpression,
    ParenthesizedExpression, VariableExpression, AssignmentExpression, CallExpression,
    IfExpression, BlockExpression, ErrorExpression
)
from ..parser.visitor import ASTVisitor
from ..types import Type
from .symbol_table import SymbolTable, GlobalScope, FunctionSymbol, ScopeKind

logger = logging.getLogger(__name__)


ARITHMETIC_OPERATORS = frozenset(SPECIALIZED_OPERATORS)

BITWISE_OPERATORS = frozenset({
    BinaryOperatorKind.BITWISE_AND,
    BinaryOperatorKind.BITWISE_OR,
    BinaryOperatorKind.BITWISE_XOR,
})

EQUALITY_OPERATORS = frozenset({
    BinaryOperatorKind.EQUALS,
    BinaryOperatorKind.NOT_EQUALS,
})

ORDERING_OPERATORS = frozenset({
    BinaryOperatorKind.LESS_THAN,
    BinaryOperatorKind.LESS_THAN_OR_EQUAL,
    BinaryOperatorKind.GREATER_THAN,
    BinaryOperatorKind.GREATER_THAN_OR_EQUAL,
})


def binary_result(operator: BinaryOperatorKind, left: Type,
                  right: Type) -> Optional[Tuple[Type, BinaryOperatorKind]]:
    """
    Result type and specialized operator for a binary operation.

    Returns None when the operator does not apply to the operand types.
    """
    if operator in ARITHMETIC_OPERATORS:
        if left is Type.INT and right is Type.INT:
            return Type.INT, operator
        if left.is_numeric and right.is_numeric:
            return Type.FLOAT, SPECIALIZED_OPERATORS[operator]
        if operator is BinaryOperatorKind.PLUS and left is Type.STRING and right is Type.STRING:
            return Type.STRING, BinaryOperatorKind.PLUS_STRING
    elif operator is BinaryOperatorKind.POWER:
        if left is Type.INT and right is Type.INT:
            return Type.INT, operator
    elif operator in BITWISE_OPERATORS:
        if left is right and left in (Type.INT, Type.BOOL):
            return left, operator
    elif operator in EQUALITY_OPERATORS:
        return Type.BOOL, operator
    elif operator in ORDERING_OPERATORS:
        if left.is_numeric and right.is_numeric:
            return Type.BOOL, operator
    return None


UNARY_RESULTS: Dict[UnaryOperatorKind, Tuple[Type, ...]] = {
    UnaryOperatorKind.MINUS: (Type.INT, Type.FLOAT),
    UnaryOperatorKind.BITWISE_NOT: (Type.INT,),
}


class Resolver(ASTVisitor):
    """
    Resolves names and types over a freshly parsed Ast.

    Every expression type, variable index, call target and operator
    specialization is a write-once field, so running a second Resolver over
    the same Ast raises InternalCompilerError instead of silently
    re-resolving.
    """

    def __init__(self, ast: Ast, global_scope: GlobalScope, diagnostics: DiagnosticsBag):
        super().__init__(ast)
        self.global_scope = global_scope
        self.diagnostics = diagnostics
        self.symbols = SymbolTable(global_scope)
        self._function_symbols: Dict[ItemHandle, FunctionSymbol] = {}

    def resolve(self) -> None:
        """Run the pass over every item of the Ast."""
        self._declare_functions()
        self.ast.visit(self)
        self.type_unreached_expressions()
        logger.debug("Resolved %s", self.global_scope)

    def type_unreached_expressions(self) -> int:
        """
        Give the ERROR type to every expression still unresolved.

        Syntax recovery can abandon a statement after some of its
        expressions were already allocated; no item references those, so
        the visit never reaches them.

        Returns:
            Number of expressions typed here
        """
        unreached = [expression for expression in self.ast.expressions
                     if expression.ty is Type.UNRESOLVED]
        for expression in unreached:
            self.ast.set_type(expression.handle, Type.ERROR)
        if unreached:
            logger.debug("Typed %d unreached expressions as errors", len(unreached))
        return len(unreached)

    # ========================================================================
    # Declarations
    # ========================================================================

    def _declare_functions(self):
        for item in self.ast.items:
            if not isinstance(item, FunctionDeclaration):
                continue

            parameters: List[int] = []
            for parameter in item.parameters:
                ty = self._resolve_type_name(parameter.type_annotation.type_name)
                parameters.append(self.global_scope.declare_variable(parameter.name, ty).index)

            return_type = Type.VOID
            if item.return_type is not None:
                return_type = self._resolve_type_name(item.return_type.type_name)

            symbol = self.global_scope.declare_function(
                item.name, parameters, return_type, item.body, item.handle
            )
            if symbol is None:
                self.diagnostics.report_function_already_declared(item.name, item.identifier.span)
                # Still resolve the body, against a symbol nobody can call.
                symbol = FunctionSymbol(item.name, parameters, return_type, item.body, item.handle, -1)
            else:
                self.ast.set_function_for_item(item.handle, symbol.index)
            self._function_symbols[item.handle] = symbol

    def _resolve_type_name(self, type_name: Token) -> Type:
        ty = Type.from_str(type_name.lexeme)
        if ty is None:
            self.diagnostics.report_unknown_type(type_name.lexeme, type_name.span)
            return Type.ERROR
        return ty

    def _set_type(self, expression: Expression, ty: Type) -> Type:
        self.ast.set_type(expression.handle, ty)
        return ty

    def _expect_type(self, expected: Type, actual: Type, handle: ExpressionHandle) -> bool:
        if actual.is_assignable_to(expected):
            return True
        self.diagnostics.report_type_mismatch(expected, actual, self.ast.expression_span(handle))
        return False

    # ========================================================================
    # Items
    # ========================================================================

    def visit_statement_item(self, item: StatementItem):
        self.visit_statement(item.statement)

    def visit_function_declaration(self, item: FunctionDeclaration):
        symbol = self._function_symbols[item.handle]
        self.symbols.enter_scope(ScopeKind.FUNCTION, symbol)
        for parameter, index in zip(item.parameters, symbol.parameters):
            self.symbols.current_scope.bind(parameter.name, index)

        body_type = self.visit_expression(item.body)
        if symbol.return_type is not Type.VOID and body_type is not Type.VOID:
            self._expect_type(symbol.return_type, body_type, item.body)

        self.symbols.exit_scope()

    # ========================================================================
    # Statements
    # ========================================================================

    def visit_expression_statement(self, statement: ExpressionStatement) -> Type:
        return self.visit_expression(statement.expression)

    def visit_let_statement(self, statement: LetStatement) -> Type:
        initializer_type = self.visit_expression(statement.initializer)
        if initializer_type is Type.VOID:
            self.diagnostics.report_void_value(self.ast.expression_span(statement.initializer))
            initializer_type = Type.ERROR

        variable_type = initializer_type
        if statement.type_annotation is not None:
            variable_type = self._resolve_type_name(statement.type_annotation.type_name)
            self._expect_type(variable_type, initializer_type, statement.initializer)

        symbol = self.symbols.declare_variable(statement.name, variable_type)
        self.ast.set_variable_for_statement(statement.handle, symbol.index)
        return Type.VOID

    def visit_while_statement(self, statement: WhileStatement) -> Type:
        condition_type = self.visit_expression(statement.condition)
        self._expect_type(Type.BOOL, condition_type, statement.condition)
        self.visit_expression(statement.body)
        return Type.VOID

    def visit_return_statement(self, statement: ReturnStatement) -> Type:
        value_type = None
        if statement.value is not None:
            value_type = self.visit_expression(statement.value)

        function = self.symbols.current_function
        if function is None:
            self.diagnostics.report_return_outside_function(self.ast.statement_span(statement.handle))
        elif value_type is None:
            if function.return_type not in (Type.VOID, Type.ERROR):
                self.diagnostics.report_missing_return_value(
                    function.return_type, statement.return_keyword.span
                )
        elif not (value_type is Type.VOID and function.return_type is Type.VOID):
            self._expect_type(function.return_type, value_type, statement.value)
        return Type.VOID

    # ========================================================================
    # Expressions
    # ========================================================================

    def visit_number_expression(self, expression: NumberExpression) -> Type:
        return self._set_type(expression, Type.INT)

    def visit_decimal_expression(self, expression: DecimalExpression) -> Type:
        return self._set_type(expression, Type.FLOAT)

    def visit_string_expression(self, expression: StringExpression) -> Type:
        return self._set_type(expression, Type.STRING)

    def visit_boolean_expression(self, expression: BooleanExpression) -> Type:
        return self._set_type(expression, Type.BOOL)

    def visit_error_expression(self, expression: ErrorExpression) -> Type:
        return self._set_type(expression, Type.ERROR)

    def visit_parenthesized_expression(self, expression: ParenthesizedExpression) -> Type:
        return self._set_type(expression, self.visit_expression(expression.inner))

    def visit_binary_expression(self, expression: BinaryExpression) -> Type:
        left = self.visit_expression(expression.left)
        right = self.visit_expression(expression.right)
        if left is Type.ERROR or right is Type.ERROR:
            return self._set_type(expression, Type.ERROR)

        operator = expression.operator.kind
        result = None
        if left.is_assignable_to(right) and right.is_assignable_to(left):
            result = binary_result(operator, left, right)
        if result is None:
            self.diagnostics.report_invalid_binary_operation(
                operator.symbol, left, right, self.ast.expression_span(expression.handle)
            )
            return self._set_type(expression, Type.ERROR)

        result_type, specialized = result
        self.ast.specialize_operator(expression.handle, specialized)
        return self._set_type(expression, result_type)

    def visit_unary_expression(self, expression: UnaryExpression) -> Type:
        operand = self.visit_expression(expression.operand)
        if operand is Type.ERROR:
            return self._set_type(expression, Type.ERROR)

        operator = expression.operator.kind
        if operand not in UNARY_RESULTS[operator]:
            self.diagnostics.report_invalid_unary_operation(
                str(operator), operand, self.ast.expression_span(expression.handle)
            )
            return self._set_type(expression, Type.ERROR)
        return self._set_type(expression, operand)

    def visit_variable_expression(self, expression: VariableExpression) -> Type:
        symbol = self.symbols.lookup_variable(expression.name)
        if symbol is None:
            self.diagnostics.report_undeclared_variable(
                expression.name, expression.identifier.span,
                self.symbols.suggest_variable(expression.name)
            )
            return self._set_type(expression, Type.ERROR)

        self.ast.set_variable(expression.handle, symbol.index)
        return self._set_type(expression, symbol.ty)

    def visit_assignment_expression(self, expression: AssignmentExpression) -> Type:
        value_type = self.visit_expression(expression.value)
        symbol = self.symbols.lookup_variable(expression.name)
        if symbol is None:
            self.diagnostics.report_undeclared_variable(
                expression.name, expression.identifier.span,
                self.symbols.suggest_variable(expression.name)
            )
            return self._set_type(expression, Type.ERROR)

        self.ast.set_variable(expression.handle, symbol.index)
        if value_type is Type.VOID:
            self.diagnostics.report_void_value(self.ast.expression_span(expression.value))
        else:
            self._expect_type(symbol.ty, value_type, expression.value)
        return self._set_type(expression, symbol.ty)

    def visit_call_expression(self, expression: CallExpression) -> Type:
        argument_types = [self.visit_expression(argument) for argument in expression.arguments]

        function = self.global_scope.lookup_function(expression.function_name)
        if function is None:
            self.diagnostics.report_undeclared_function(
                expression.function_name, expression.callee.span,
                self.symbols.suggest_function(expression.function_name)
            )
            return self._set_type(expression, Type.ERROR)

        self.ast.set_function(expression.handle, function.index)

        if len(argument_types) != len(function.parameters):
            self.diagnostics.report_wrong_argument_count(
                function.name, len(function.parameters), len(argument_types),
                self.ast.expression_span(expression.handle)
            )
            return self._set_type(expression, Type.ERROR)

        arguments_ok = True
        for argument, argument_type, parameter in zip(
                expression.arguments, argument_types, function.parameters):
            parameter_type = self.global_scope.variable(parameter).ty
            if not self._expect_type(parameter_type, argument_type, argument):
                arguments_ok = False

        return self._set_type(expression, function.return_type if arguments_ok else Type.ERROR)

    def visit_if_expression(self, expression: IfExpression) -> Type:
        condition_type = self.visit_expression(expression.condition)
        self._expect_type(Type.BOOL, condition_type, expression.condition)

        then_type = self.visit_expression(expression.then_branch)
        if expression.else_branch is None:
            return self._set_type(expression, Type.VOID)

        else_type = self.visit_expression(expression.else_branch.expression)
        unified = Type.unify(then_type, else_type)
        if unified is None:
            self.diagnostics.report_incompatible_branches(
                then_type, else_type, self.ast.expression_span(expression.handle)
            )
            return self._set_type(expression, Type.ERROR)
        return self._set_type(expression, unified)

    def visit_block_expression(self, expression: BlockExpression) -> Type:
        self.symbols.enter_scope(ScopeKind.BLOCK)
        block_type = Type.VOID
        for statement in expression.statements:
            statement_type = self.visit_statement(statement)
            is_expression = isinstance(self.ast.query_statement(statement), ExpressionStatement)
            block_type = statement_type if is_expression else Type.VOID
        self.symbols.exit_scope()
        return self._set_type(expression, block_type)
