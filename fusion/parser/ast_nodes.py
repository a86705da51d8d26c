"""
Abstract Syntax Tree node definitions for Fusion.

Nodes live in an arena (the ``Ast``) made of three stores: items,
statements and expressions. Nodes never reference each other directly;
they hold handles into the arena. Later passes attach information
(resolved variable and function indices, inferred types, specialized
operators) by writing into the arena through the handle, and each of
those fields can be written exactly once.

Author: xwest
"""

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from ..errors import InternalCompilerError
from ..lexer.tokens import Token
from ..text import TextSpan
from ..types import Type


# ============================================================================
# Handles
# ============================================================================

@dataclass(frozen=True)
class ItemHandle:
    """Stable index of an item in the arena."""
    index: int


@dataclass(frozen=True)
class StatementHandle:
    """Stable index of a statement in the arena."""
    index: int


@dataclass(frozen=True)
class ExpressionHandle:
    """Stable index of an expression in the arena."""
    index: int


Handle = Union[ItemHandle, StatementHandle, ExpressionHandle]


# ============================================================================
# Node kinds
# ============================================================================

class ItemKind(Enum):
    STATEMENT = "StatementItem"
    FUNCTION_DECLARATION = "FunctionDeclaration"


class StatementKind(Enum):
    EXPRESSION = "ExpressionStatement"
    LET = "LetStatement"
    WHILE = "WhileStatement"
    RETURN = "ReturnStatement"


class ExpressionKind(Enum):
    NUMBER = "NumberExpression"
    DECIMAL = "DecimalExpression"
    STRING = "StringExpression"
    BINARY = "BinaryExpression"
    UNARY = "UnaryExpression"
    PARENTHESIZED = "ParenthesizedExpression"
    VARIABLE = "VariableExpression"
    ASSIGNMENT = "AssignmentExpression"
    BOOLEAN = "BooleanExpression"
    CALL = "CallExpression"
    IF = "IfExpression"
    BLOCK = "BlockExpression"
    ERROR = "ErrorExpression"


# ============================================================================
# Operators
# ============================================================================

class Associativity(Enum):
    LEFT = "left"
    RIGHT = "right"


class BinaryOperatorKind(Enum):
    """
    Binary operator tags.

    The parser only produces the generic arithmetic tags. The resolver
    rewrites them into the DECIMAL or STRING variants once the operand
    types are known.
    """
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    POWER = "**"
    PLUS_DECIMAL = "+d"
    MINUS_DECIMAL = "-d"
    MULTIPLY_DECIMAL = "*d"
    DIVIDE_DECIMAL = "/d"
    PLUS_STRING = "+s"
    BITWISE_AND = "&"
    BITWISE_OR = "|"
    BITWISE_XOR = "^"
    EQUALS = "=="
    NOT_EQUALS = "!="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="

    def __str__(self) -> str:
        return self.value

    def precedence(self) -> int:
        return BINARY_PRECEDENCE[self]

    def associativity(self) -> Associativity:
        if self is BinaryOperatorKind.POWER:
            return Associativity.RIGHT
        return Associativity.LEFT

    @property
    def is_relational(self) -> bool:
        return self in RELATIONAL_OPERATORS

    @property
    def symbol(self) -> str:
        """Source spelling, shared by the generic tag and its variants."""
        return self.value[:-1] if self.value[-1] in "ds" else self.value


BINARY_PRECEDENCE: Dict[BinaryOperatorKind, int] = {
    BinaryOperatorKind.POWER: 20,
    BinaryOperatorKind.MULTIPLY: 19,
    BinaryOperatorKind.DIVIDE: 19,
    BinaryOperatorKind.MULTIPLY_DECIMAL: 19,
    BinaryOperatorKind.DIVIDE_DECIMAL: 19,
    BinaryOperatorKind.PLUS: 18,
    BinaryOperatorKind.MINUS: 18,
    BinaryOperatorKind.PLUS_DECIMAL: 18,
    BinaryOperatorKind.MINUS_DECIMAL: 18,
    BinaryOperatorKind.PLUS_STRING: 18,
    BinaryOperatorKind.BITWISE_AND: 17,
    BinaryOperatorKind.BITWISE_XOR: 16,
    BinaryOperatorKind.BITWISE_OR: 15,
    BinaryOperatorKind.EQUALS: 30,
    BinaryOperatorKind.NOT_EQUALS: 30,
    BinaryOperatorKind.LESS_THAN: 29,
    BinaryOperatorKind.LESS_THAN_OR_EQUAL: 29,
    BinaryOperatorKind.GREATER_THAN: 29,
    BinaryOperatorKind.GREATER_THAN_OR_EQUAL: 29,
}

RELATIONAL_OPERATORS = frozenset({
    BinaryOperatorKind.EQUALS,
    BinaryOperatorKind.NOT_EQUALS,
    BinaryOperatorKind.LESS_THAN,
    BinaryOperatorKind.LESS_THAN_OR_EQUAL,
    BinaryOperatorKind.GREATER_THAN,
    BinaryOperatorKind.GREATER_THAN_OR_EQUAL,
})

# Generic arithmetic tag -> its float variant.
SPECIALIZED_OPERATORS: Dict[BinaryOperatorKind, BinaryOperatorKind] = {
    BinaryOperatorKind.PLUS: BinaryOperatorKind.PLUS_DECIMAL,
    BinaryOperatorKind.MINUS: BinaryOperatorKind.MINUS_DECIMAL,
    BinaryOperatorKind.MULTIPLY: BinaryOperatorKind.MULTIPLY_DECIMAL,
    BinaryOperatorKind.DIVIDE: BinaryOperatorKind.DIVIDE_DECIMAL,
}


class UnaryOperatorKind(Enum):
    MINUS = "-"
    BITWISE_NOT = "~"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BinaryOperator:
    kind: BinaryOperatorKind
    token: Token


@dataclass(frozen=True)
class UnaryOperator:
    kind: UnaryOperatorKind
    token: Token


# ============================================================================
# Syntax fragments
# ============================================================================

@dataclass(frozen=True)
class TypeAnnotation:
    """``: type`` after a let name or a parameter name."""
    colon: Token
    type_name: Token


@dataclass(frozen=True)
class FunctionReturnType:
    """``-> type`` after a parameter list."""
    arrow: Token
    type_name: Token


@dataclass(frozen=True)
class FunctionParameter:
    identifier: Token
    type_annotation: TypeAnnotation

    @property
    def name(self) -> str:
        return self.identifier.lexeme


@dataclass(frozen=True)
class ElseBranch:
    else_keyword: Token
    expression: 'ExpressionHandle'


# ============================================================================
# Base nodes
# ============================================================================

class ASTNode(ABC):
    """Base class for all arena nodes."""

    def __init__(self):
        self.handle: Optional[Handle] = None

    def children(self) -> List[Handle]:
        """Child handles in traversal order."""
        return []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.handle})"


class Item(ASTNode):
    """Base class for top-level items."""
    kind: ClassVar[ItemKind]


class Statement(ASTNode):
    """Base class for statements."""
    kind: ClassVar[StatementKind]

    def __init__(self):
        super().__init__()
        self.terminator: Optional[Token] = None


class Expression(ASTNode):
    """
    Base class for expressions.

    Every expression carries a type slot that starts out unresolved and
    is filled in by the resolver.
    """
    kind: ClassVar[ExpressionKind]

    def __init__(self):
        super().__init__()
        self._ty: Optional[Type] = None

    @property
    def ty(self) -> Type:
        return self._ty if self._ty is not None else Type.UNRESOLVED


# ============================================================================
# Items
# ============================================================================

class StatementItem(Item):
    """A statement at the top level of a program."""
    kind = ItemKind.STATEMENT

    def __init__(self, statement: StatementHandle):
        super().__init__()
        self.statement = statement

    def children(self) -> List[Handle]:
        return [self.statement]


class FunctionDeclaration(Item):
    """``func name(params) -> type { body }``."""
    kind = ItemKind.FUNCTION_DECLARATION

    def __init__(self, func_keyword: Token, identifier: Token, left_paren: Token,
                 parameters: List[FunctionParameter], right_paren: Token,
                 return_type: Optional[FunctionReturnType], body: ExpressionHandle):
        super().__init__()
        self.func_keyword = func_keyword
        self.identifier = identifier
        self.left_paren = left_paren
        self.parameters = parameters
        self.right_paren = right_paren
        self.return_type = return_type
        self.body = body
        self.function_index: Optional[int] = None

    @property
    def name(self) -> str:
        return self.identifier.lexeme

    def children(self) -> List[Handle]:
        return [self.body]


# ============================================================================
# Statements
# ============================================================================

class ExpressionStatement(Statement):
    kind = StatementKind.EXPRESSION

    def __init__(self, expression: ExpressionHandle):
        super().__init__()
        self.expression = expression

    def children(self) -> List[Handle]:
        return [self.expression]


class LetStatement(Statement):
    """``let name [: type] = initializer``."""
    kind = StatementKind.LET

    def __init__(self, let_keyword: Token, identifier: Token,
                 type_annotation: Optional[TypeAnnotation], equals: Token,
                 initializer: ExpressionHandle):
        super().__init__()
        self.let_keyword = let_keyword
        self.identifier = identifier
        self.type_annotation = type_annotation
        self.equals = equals
        self.initializer = initializer
        self.variable_index: Optional[int] = None

    @property
    def name(self) -> str:
        return self.identifier.lexeme

    def children(self) -> List[Handle]:
        return [self.initializer]


class WhileStatement(Statement):
    kind = StatementKind.WHILE

    def __init__(self, while_keyword: Token, condition: ExpressionHandle, body: ExpressionHandle):
        super().__init__()
        self.while_keyword = while_keyword
        self.condition = condition
        self.body = body

    def children(self) -> List[Handle]:
        return [self.condition, self.body]


class ReturnStatement(Statement):
    kind = StatementKind.RETURN

    def __init__(self, return_keyword: Token, value: Optional[ExpressionHandle]):
        super().__init__()
        self.return_keyword = return_keyword
        self.value = value

    def children(self) -> List[Handle]:
        return [self.value] if self.value is not None else []


# ============================================================================
# Expressions
# ============================================================================

class NumberExpression(Expression):
    kind = ExpressionKind.NUMBER

    def __init__(self, token: Token, number: int):
        super().__init__()
        self.token = token
        self.number = number


class DecimalExpression(Expression):
    kind = ExpressionKind.DECIMAL

    def __init__(self, token: Token, number: float):
        super().__init__()
        self.token = token
        self.number = number


class StringExpression(Expression):
    kind = ExpressionKind.STRING

    def __init__(self, token: Token, string: str):
        super().__init__()
        self.token = token
        self.string = string


class BooleanExpression(Expression):
    kind = ExpressionKind.BOOLEAN

    def __init__(self, token: Token, value: bool):
        super().__init__()
        self.token = token
        self.value = value


class BinaryExpression(Expression):
    kind = ExpressionKind.BINARY

    def __init__(self, left: ExpressionHandle, operator: BinaryOperator, right: ExpressionHandle):
        super().__init__()
        self.left = left
        self.operator = operator
        self.right = right
        self.specialized = False

    def children(self) -> List[Handle]:
        return [self.left, self.right]


class UnaryExpression(Expression):
    kind = ExpressionKind.UNARY

    def __init__(self, operator: UnaryOperator, operand: ExpressionHandle):
        super().__init__()
        self.operator = operator
        self.operand = operand

    def children(self) -> List[Handle]:
        return [self.operand]


class ParenthesizedExpression(Expression):
    kind = ExpressionKind.PARENTHESIZED

    def __init__(self, left_paren: Token, inner: ExpressionHandle, right_paren: Token):
        super().__init__()
        self.left_paren = left_paren
        self.inner = inner
        self.right_paren = right_paren

    def children(self) -> List[Handle]:
        return [self.inner]


class VariableExpression(Expression):
    kind = ExpressionKind.VARIABLE

    def __init__(self, identifier: Token):
        super().__init__()
        self.identifier = identifier
        self.variable_index: Optional[int] = None

    @property
    def name(self) -> str:
        return self.identifier.lexeme


class AssignmentExpression(Expression):
    kind = ExpressionKind.ASSIGNMENT

    def __init__(self, identifier: Token, equals: Token, value: ExpressionHandle):
        super().__init__()
        self.identifier = identifier
        self.equals = equals
        self.value = value
        self.variable_index: Optional[int] = None

    @property
    def name(self) -> str:
        return self.identifier.lexeme

    def children(self) -> List[Handle]:
        return [self.value]


class CallExpression(Expression):
    kind = ExpressionKind.CALL

    def __init__(self, callee: Token, left_paren: Token, arguments: List[ExpressionHandle],
                 right_paren: Token):
        super().__init__()
        self.callee = callee
        self.left_paren = left_paren
        self.arguments = arguments
        self.right_paren = right_paren
        self.function_index: Optional[int] = None

    @property
    def function_name(self) -> str:
        return self.callee.lexeme

    def children(self) -> List[Handle]:
        return list(self.arguments)


class IfExpression(Expression):
    kind = ExpressionKind.IF

    def __init__(self, if_keyword: Token, condition: ExpressionHandle,
                 then_branch: ExpressionHandle, else_branch: Optional[ElseBranch]):
        super().__init__()
        self.if_keyword = if_keyword
        self.condition = condition
        self.then_branch = then_branch
        self.else_branch = else_branch

    def children(self) -> List[Handle]:
        children: List[Handle] = [self.condition, self.then_branch]
        if self.else_branch is not None:
            children.append(self.else_branch.expression)
        return children


class BlockExpression(Expression):
    kind = ExpressionKind.BLOCK

    def __init__(self, open_brace: Token, statements: List[StatementHandle], close_brace: Token):
        super().__init__()
        self.open_brace = open_brace
        self.statements = statements
        self.close_brace = close_brace

    def children(self) -> List[Handle]:
        return list(self.statements)


class ErrorExpression(Expression):
    """Placeholder for input the parser could not make sense of."""
    kind = ExpressionKind.ERROR

    def __init__(self, span: TextSpan):
        super().__init__()
        self.span = span


# ============================================================================
# The arena
# ============================================================================

class Ast:
    """
    Arena owning every node of one compilation unit.

    Nodes are appended by the factory methods and never removed. Lookups
    by handle are constant time; an out-of-range handle or a handle from
    the wrong store is a compiler bug and raises InternalCompilerError.
    """

    def __init__(self):
        self.items: List[Item] = []
        self.statements: List[Statement] = []
        self.expressions: List[Expression] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query_item(self, handle: ItemHandle) -> Item:
        return self._query(self.items, handle, ItemHandle)

    def query_statement(self, handle: StatementHandle) -> Statement:
        return self._query(self.statements, handle, StatementHandle)

    def query_expression(self, handle: ExpressionHandle) -> Expression:
        return self._query(self.expressions, handle, ExpressionHandle)

    @staticmethod
    def _query(store: List[Any], handle: Handle, handle_type: type) -> Any:
        if not isinstance(handle, handle_type):
            raise InternalCompilerError(
                f"Expected {handle_type.__name__}, got {type(handle).__name__}"
            )
        if not 0 <= handle.index < len(store):
            raise InternalCompilerError(f"{handle} is out of range (size {len(store)})")
        return store[handle.index]

    # ------------------------------------------------------------------
    # Write-once setters
    # ------------------------------------------------------------------

    def set_type(self, handle: ExpressionHandle, ty: Type) -> None:
        expression = self.query_expression(handle)
        if ty is Type.UNRESOLVED:
            raise InternalCompilerError(f"Cannot assign the unresolved type to {expression!r}")
        self._write_once(expression, "_ty", ty, "type")

    def set_variable(self, handle: ExpressionHandle, variable_index: int) -> None:
        expression = self.query_expression(handle)
        if not isinstance(expression, (VariableExpression, AssignmentExpression)):
            raise InternalCompilerError(f"{expression!r} does not reference a variable")
        self._write_once(expression, "variable_index", variable_index, "variable index")

    def set_variable_for_statement(self, handle: StatementHandle, variable_index: int) -> None:
        statement = self.query_statement(handle)
        if not isinstance(statement, LetStatement):
            raise InternalCompilerError(f"{statement!r} does not declare a variable")
        self._write_once(statement, "variable_index", variable_index, "variable index")

    def set_function(self, handle: ExpressionHandle, function_index: int) -> None:
        expression = self.query_expression(handle)
        if not isinstance(expression, CallExpression):
            raise InternalCompilerError(f"{expression!r} is not a call")
        self._write_once(expression, "function_index", function_index, "function index")

    def set_function_for_item(self, handle: ItemHandle, function_index: int) -> None:
        item = self.query_item(handle)
        if not isinstance(item, FunctionDeclaration):
            raise InternalCompilerError(f"{item!r} is not a function declaration")
        self._write_once(item, "function_index", function_index, "function index")

    def specialize_operator(self, handle: ExpressionHandle, kind: BinaryOperatorKind) -> None:
        """Replace the generic operator tag of a binary expression, once."""
        expression = self.query_expression(handle)
        if not isinstance(expression, BinaryExpression):
            raise InternalCompilerError(f"{expression!r} is not a binary expression")
        if expression.specialized:
            raise InternalCompilerError(f"Operator of {expression!r} is already specialized")
        expression.operator = BinaryOperator(kind, expression.operator.token)
        expression.specialized = True

    @staticmethod
    def _write_once(node: ASTNode, attribute: str, value: Any, description: str) -> None:
        if getattr(node, attribute) is not None:
            raise InternalCompilerError(f"The {description} of {node!r} is already set")
        setattr(node, attribute, value)

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def _add_item(self, item: Item) -> Item:
        item.handle = ItemHandle(len(self.items))
        self.items.append(item)
        return item

    def _add_statement(self, statement: Statement) -> Statement:
        statement.handle = StatementHandle(len(self.statements))
        self.statements.append(statement)
        return statement

    def _add_expression(self, expression: Expression) -> Expression:
        expression.handle = ExpressionHandle(len(self.expressions))
        self.expressions.append(expression)
        return expression

    # Items

    def statement_item(self, statement: StatementHandle) -> StatementItem:
        return self._add_item(StatementItem(statement))

    def function_item(self, func_keyword: Token, identifier: Token, left_paren: Token,
                      parameters: List[FunctionParameter], right_paren: Token,
                      return_type: Optional[FunctionReturnType],
                      body: ExpressionHandle) -> FunctionDeclaration:
        return self._add_item(FunctionDeclaration(
            func_keyword, identifier, left_paren, parameters, right_paren, return_type, body
        ))

    # Statements

    def expression_statement(self, expression: ExpressionHandle) -> ExpressionStatement:
        return self._add_statement(ExpressionStatement(expression))

    def let_statement(self, let_keyword: Token, identifier: Token,
                      type_annotation: Optional[TypeAnnotation], equals: Token,
                      initializer: ExpressionHandle) -> LetStatement:
        return self._add_statement(
            LetStatement(let_keyword, identifier, type_annotation, equals, initializer)
        )

    def while_statement(self, while_keyword: Token, condition: ExpressionHandle,
                        body: ExpressionHandle) -> WhileStatement:
        return self._add_statement(WhileStatement(while_keyword, condition, body))

    def return_statement(self, return_keyword: Token,
                         value: Optional[ExpressionHandle]) -> ReturnStatement:
        return self._add_statement(ReturnStatement(return_keyword, value))

    # Expressions

    def number_expression(self, token: Token, number: int) -> NumberExpression:
        return self._add_expression(NumberExpression(token, number))

    def decimal_expression(self, token: Token, number: float) -> DecimalExpression:
        return self._add_expression(DecimalExpression(token, number))

    def string_expression(self, token: Token, string: str) -> StringExpression:
        return self._add_expression(StringExpression(token, string))

    def boolean_expression(self, token: Token, value: bool) -> BooleanExpression:
        return self._add_expression(BooleanExpression(token, value))

    def binary_expression(self, operator: BinaryOperator, left: ExpressionHandle,
                          right: ExpressionHandle) -> BinaryExpression:
        return self._add_expression(BinaryExpression(left, operator, right))

    def unary_expression(self, operator: UnaryOperator, operand: ExpressionHandle) -> UnaryExpression:
        return self._add_expression(UnaryExpression(operator, operand))

    def parenthesized_expression(self, left_paren: Token, inner: ExpressionHandle,
                                 right_paren: Token) -> ParenthesizedExpression:
        return self._add_expression(ParenthesizedExpression(left_paren, inner, right_paren))

    def variable_expression(self, identifier: Token) -> VariableExpression:
        return self._add_expression(VariableExpression(identifier))

    def assignment_expression(self, identifier: Token, equals: Token,
                              value: ExpressionHandle) -> AssignmentExpression:
        return self._add_expression(AssignmentExpression(identifier, equals, value))

    def call_expression(self, callee: Token, left_paren: Token, arguments: List[ExpressionHandle],
                        right_paren: Token) -> CallExpression:
        return self._add_expression(CallExpression(callee, left_paren, arguments, right_paren))

    def if_expression(self, if_keyword: Token, condition: ExpressionHandle,
                      then_branch: ExpressionHandle, else_branch: Optional[ElseBranch]) -> IfExpression:
        return self._add_expression(IfExpression(if_keyword, condition, then_branch, else_branch))

    def block_expression(self, open_brace: Token, statements: List[StatementHandle],
                         close_brace: Token) -> BlockExpression:
        return self._add_expression(BlockExpression(open_brace, statements, close_brace))

    def error_expression(self, span: TextSpan) -> ErrorExpression:
        return self._add_expression(ErrorExpression(span))

    # ------------------------------------------------------------------
    # Spans
    # ------------------------------------------------------------------

    def expression_span(self, handle: ExpressionHandle) -> TextSpan:
        """Source span of an expression, recomputed from its tokens."""
        expression = self.query_expression(handle)
        spans: List[TextSpan] = []

        if isinstance(expression, (NumberExpression, DecimalExpression,
                                   StringExpression, BooleanExpression)):
            spans.append(expression.token.span)
        elif isinstance(expression, BinaryExpression):
            spans.append(self.expression_span(expression.left))
            spans.append(expression.operator.token.span)
            spans.append(self.expression_span(expression.right))
        elif isinstance(expression, UnaryExpression):
            spans.append(expression.operator.token.span)
            spans.append(self.expression_span(expression.operand))
        elif isinstance(expression, ParenthesizedExpression):
            spans.append(expression.left_paren.span)
            spans.append(self.expression_span(expression.inner))
            spans.append(expression.right_paren.span)
        elif isinstance(expression, VariableExpression):
            spans.append(expression.identifier.span)
        elif isinstance(expression, AssignmentExpression):
            spans.append(expression.identifier.span)
            spans.append(expression.equals.span)
            spans.append(self.expression_span(expression.value))
        elif isinstance(expression, CallExpression):
            spans.append(expression.callee.span)
            spans.append(expression.left_paren.span)
            spans.extend(self.expression_span(argument) for argument in expression.arguments)
            spans.append(expression.right_paren.span)
        elif isinstance(expression, IfExpression):
            spans.append(expression.if_keyword.span)
            spans.append(self.expression_span(expression.condition))
            spans.append(self.expression_span(expression.then_branch))
            if expression.else_branch is not None:
                spans.append(expression.else_branch.else_keyword.span)
                spans.append(self.expression_span(expression.else_branch.expression))
        elif isinstance(expression, BlockExpression):
            spans.append(expression.open_brace.span)
            spans.extend(self.statement_span(statement) for statement in expression.statements)
            spans.append(expression.close_brace.span)
        elif isinstance(expression, ErrorExpression):
            spans.append(expression.span)
        else:
            raise InternalCompilerError(f"No span rule for {expression!r}")

        return TextSpan.combine(spans)

    def statement_span(self, handle: StatementHandle) -> TextSpan:
        statement = self.query_statement(handle)
        spans: List[TextSpan] = []

        if isinstance(statement, ExpressionStatement):
            spans.append(self.expression_span(statement.expression))
        elif isinstance(statement, LetStatement):
            spans.append(statement.let_keyword.span)
            spans.append(statement.identifier.span)
            if statement.type_annotation is not None:
                spans.append(statement.type_annotation.colon.span)
                spans.append(statement.type_annotation.type_name.span)
            spans.append(statement.equals.span)
            spans.append(self.expression_span(statement.initializer))
        elif isinstance(statement, WhileStatement):
            spans.append(statement.while_keyword.span)
            spans.append(self.expression_span(statement.condition))
            spans.append(self.expression_span(statement.body))
        elif isinstance(statement, ReturnStatement):
            spans.append(statement.return_keyword.span)
            if statement.value is not None:
                spans.append(self.expression_span(statement.value))
        else:
            raise InternalCompilerError(f"No span rule for {statement!r}")

        if statement.terminator is not None:
            spans.append(statement.terminator.span)
        return TextSpan.combine(spans)

    def item_span(self, handle: ItemHandle) -> TextSpan:
        item = self.query_item(handle)
        if isinstance(item, StatementItem):
            return self.statement_span(item.statement)

        spans = [item.func_keyword.span, item.identifier.span, item.left_paren.span]
        for parameter in item.parameters:
            spans.append(parameter.identifier.span)
            spans.append(parameter.type_annotation.colon.span)
            spans.append(parameter.type_annotation.type_name.span)
        spans.append(item.right_paren.span)
        if item.return_type is not None:
            spans.append(item.return_type.arrow.span)
            spans.append(item.return_type.type_name.span)
        spans.append(self.expression_span(item.body))
        return TextSpan.combine(spans)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def visit(self, visitor) -> None:
        """Run a visitor over every top-level item in source order."""
        for item in self.items:
            visitor.visit_item(item.handle)

    def visualize(self) -> str:
        from .printer import ASTPrinter
        printer = ASTPrinter(self)
        self.visit(printer)
        return printer.result()

    def __repr__(self) -> str:
        return (f"Ast(items={len(self.items)}, statements={len(self.statements)}, "
                f"expressions={len(self.expressions)})")
