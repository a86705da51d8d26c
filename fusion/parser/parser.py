"""
Fusion Parser Implementation

Recursive descent for items and statements, precedence climbing for
expressions. The parser fills an Ast arena and reports problems into the
shared diagnostics bag instead of stopping at the first one.

Expression layering, loosest first:

    assignment      name = value               (right recursive)
    relational      == != < <= > >=            (precedence 29-30)
    arithmetic      | ^ & + - * / **           (precedence 15-20)
    unary           - ~                        (prefix, chains freely)
    primary         literals, names, calls, ( ), if, { }

Relational operators carry the highest numbers in the precedence table but
form the outermost band, so ``a + b == c`` groups as ``(a + b) == c``.

Author: xwest
"""

import logging
from typing import List, Optional

from ..diagnostics import DiagnosticsBag
from ..lexer.lexer import tokenize_string
from ..lexer.tokens import Token, TokenKind
from ..text import TextSpan
from .ast_nodes import (
    Ast, Associativity, BinaryOperator, BinaryOperatorKind, UnaryOperator, UnaryOperatorKind,
    TypeAnnotation, FunctionReturnType, FunctionParameter, ElseBranch, Statement, Expression,
    IfExpression, BlockExpression
)
from .errors import ParseError, SyntaxErrorRecovery, create_missing_token_error

logger = logging.getLogger(__name__)


BINARY_OPERATOR_TOKENS = {
    TokenKind.PLUS: BinaryOperatorKind.PLUS,
    TokenKind.MINUS: BinaryOperatorKind.MINUS,
    TokenKind.ASTERISK: BinaryOperatorKind.MULTIPLY,
    TokenKind.SLASH: BinaryOperatorKind.DIVIDE,
    TokenKind.DOUBLE_ASTERISK: BinaryOperatorKind.POWER,
    TokenKind.AMPERSAND: BinaryOperatorKind.BITWISE_AND,
    TokenKind.PIPE: BinaryOperatorKind.BITWISE_OR,
    TokenKind.CARET: BinaryOperatorKind.BITWISE_XOR,
    TokenKind.EQUALS_EQUALS: BinaryOperatorKind.EQUALS,
    TokenKind.BANG_EQUALS: BinaryOperatorKind.NOT_EQUALS,
    TokenKind.LESS_THAN: BinaryOperatorKind.LESS_THAN,
    TokenKind.LESS_THAN_EQUALS: BinaryOperatorKind.LESS_THAN_OR_EQUAL,
    TokenKind.GREATER_THAN: BinaryOperatorKind.GREATER_THAN,
    TokenKind.GREATER_THAN_EQUALS: BinaryOperatorKind.GREATER_THAN_OR_EQUAL,
}

UNARY_OPERATOR_TOKENS = {
    TokenKind.MINUS: UnaryOperatorKind.MINUS,
    TokenKind.TILDE: UnaryOperatorKind.BITWISE_NOT,
}

# Tokens after `return` that mean "no value".
RETURN_VALUE_TERMINATORS = {
    TokenKind.CLOSE_BRACE,
    TokenKind.SEMICOLON,
    TokenKind.EOF,
    TokenKind.LET,
    TokenKind.WHILE,
    TokenKind.FUNC,
    TokenKind.RETURN,
}

# Tokens left in place when an expression is missing, so the enclosing
# statement, argument list or block can still use them.
PRIMARY_ERROR_KEEP = {
    TokenKind.LET,
    TokenKind.WHILE,
    TokenKind.FUNC,
    TokenKind.RETURN,
    TokenKind.CLOSE_BRACE,
    TokenKind.RIGHT_PAREN,
    TokenKind.COMMA,
    TokenKind.SEMICOLON,
    TokenKind.EOF,
}

RELATIONAL_FLOOR = min(kind.precedence() for kind in BinaryOperatorKind if kind.is_relational)


class Parser:
    """
    Fusion parser.

    Consumes a token list (trivia is skipped if present) and produces an
    Ast. Syntax errors become ErrorExpression nodes plus diagnostics.
    """

    def __init__(self, tokens: List[Token], diagnostics: Optional[DiagnosticsBag] = None,
                 ast: Optional[Ast] = None):
        """
        Initialize parser with a list of tokens.

        Args:
            tokens: Tokens from the lexer, normally ending with EOF
            diagnostics: Bag receiving syntax errors
            ast: Arena to populate; a fresh one is created when omitted
        """
        self.tokens = [token for token in tokens if not token.is_trivia()]
        if not self.tokens or self.tokens[-1].kind != TokenKind.EOF:
            end = self.tokens[-1].span.end if self.tokens else 0
            self.tokens.append(Token(TokenKind.EOF, TextSpan(end, end, "")))
        self.current = 0
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsBag()
        self.ast = ast if ast is not None else Ast()

    def parse(self) -> Ast:
        """Parse the whole token list into the arena."""
        while not self._is_at_end():
            self._parse_item()
        logger.debug("Parsed %r", self.ast)
        return self.ast

    # ========================================================================
    # Items
    # ========================================================================

    def _parse_item(self):
        if not self._check(TokenKind.FUNC):
            statement = self._parse_statement()
            return self.ast.statement_item(statement.handle)

        start = self.current
        try:
            return self._parse_function_declaration()
        except ParseError as error:
            statement = self._recover(error, start)
            return self.ast.statement_item(statement.handle)

    def _parse_function_declaration(self):
        func_keyword = self._advance()
        identifier = self._consume(TokenKind.IDENTIFIER, "function declaration")
        left_paren = self._consume(TokenKind.LEFT_PAREN, "function declaration")

        parameters: List[FunctionParameter] = []
        if not self._check(TokenKind.RIGHT_PAREN):
            while True:
                name = self._consume(TokenKind.IDENTIFIER, "parameter list")
                parameters.append(FunctionParameter(name, self._parse_type_annotation()))
                if not self._match(TokenKind.COMMA):
                    break
        right_paren = self._consume(TokenKind.RIGHT_PAREN, "parameter list")

        return_type = None
        if self._check(TokenKind.ARROW):
            arrow = self._advance()
            type_name = self._consume(TokenKind.IDENTIFIER, "return type")
            return_type = FunctionReturnType(arrow, type_name)

        body = self._parse_block_expression()
        return self.ast.function_item(
            func_keyword, identifier, left_paren, parameters, right_paren, return_type, body.handle
        )

    def _parse_type_annotation(self) -> TypeAnnotation:
        colon = self._consume(TokenKind.COLON, "type annotation")
        type_name = self._consume(TokenKind.IDENTIFIER, "type annotation")
        return TypeAnnotation(colon, type_name)

    # ========================================================================
    # Statements
    # ========================================================================

    def _parse_statement(self) -> Statement:
        start = self.current
        try:
            if self._check(TokenKind.LET):
                statement = self._parse_let_statement()
            elif self._check(TokenKind.WHILE):
                statement = self._parse_while_statement()
            elif self._check(TokenKind.RETURN):
                statement = self._parse_return_statement()
            else:
                statement = self.ast.expression_statement(self._parse_expression().handle)
        except ParseError as error:
            return self._recover(error, start)

        if self._check(TokenKind.SEMICOLON):
            statement.terminator = self._advance()
        elif self.current == start and not self._is_at_end():
            # Nothing was consumed (a stray closing token); skip it.
            self._advance()
        return statement

    def _parse_let_statement(self) -> Statement:
        let_keyword = self._advance()
        identifier = self._consume(TokenKind.IDENTIFIER, "let statement")
        type_annotation = None
        if self._check(TokenKind.COLON):
            type_annotation = self._parse_type_annotation()
        equals = self._consume(TokenKind.EQUALS, "let statement")
        initializer = self._parse_expression()
        return self.ast.let_statement(let_keyword, identifier, type_annotation, equals,
                                      initializer.handle)

    def _parse_while_statement(self) -> Statement:
        while_keyword = self._advance()
        condition = self._parse_expression()
        body = self._parse_block_expression()
        return self.ast.while_statement(while_keyword, condition.handle, body.handle)

    def _parse_return_statement(self) -> Statement:
        return_keyword = self._advance()
        value = None
        if self._peek().kind not in RETURN_VALUE_TERMINATORS:
            value = self._parse_expression().handle
        return self.ast.return_statement(return_keyword, value)

    def _recover(self, error: ParseError, start: int) -> Statement:
        """Report a syntax error and replace the broken statement."""
        self.diagnostics.report_missing_token(error.expected, error.found)

        self.current = SyntaxErrorRecovery.synchronize_to_statement_boundary(
            self.tokens, self.current
        )
        if self.current == start and not self._is_at_end():
            self._advance()

        consumed = self.tokens[start:self.current] or [self._peek()]
        span = TextSpan.combine(token.span for token in consumed)
        logger.debug("Recovered from syntax error, skipped %r", span.literal)
        return self.ast.expression_statement(self.ast.error_expression(span).handle)

    # ========================================================================
    # Expressions
    # ========================================================================

    def _parse_expression(self) -> Expression:
        if self._check(TokenKind.IDENTIFIER) and self._peek(1).kind == TokenKind.EQUALS:
            return self._parse_assignment_expression()
        return self._parse_relational_expression(RELATIONAL_FLOOR)

    def _parse_assignment_expression(self) -> Expression:
        identifier = self._advance()
        equals = self._advance()
        value = self._parse_expression()
        return self.ast.assignment_expression(identifier, equals, value.handle)

    def _parse_relational_expression(self, min_precedence: int) -> Expression:
        left = self._parse_arithmetic_expression(0)
        while True:
            operator = self._peek_binary_operator(relational=True)
            if operator is None or operator.precedence() < min_precedence:
                return left
            token = self._advance()
            right = self._parse_relational_expression(operator.precedence() + 1)
            left = self.ast.binary_expression(
                BinaryOperator(operator, token), left.handle, right.handle
            )

    def _parse_arithmetic_expression(self, min_precedence: int) -> Expression:
        left = self._parse_unary_expression()
        while True:
            operator = self._peek_binary_operator(relational=False)
            if operator is None or operator.precedence() < min_precedence:
                return left
            token = self._advance()
            if operator.associativity() == Associativity.RIGHT:
                next_precedence = operator.precedence()
            else:
                next_precedence = operator.precedence() + 1
            right = self._parse_arithmetic_expression(next_precedence)
            left = self.ast.binary_expression(
                BinaryOperator(operator, token), left.handle, right.handle
            )

    def _peek_binary_operator(self, relational: bool) -> Optional[BinaryOperatorKind]:
        operator = BINARY_OPERATOR_TOKENS.get(self._peek().kind)
        if operator is None or operator.is_relational != relational:
            return None
        return operator

    def _parse_unary_expression(self) -> Expression:
        operators: List[UnaryOperator] = []
        while self._peek().kind in UNARY_OPERATOR_TOKENS:
            token = self._advance()
            operators.append(UnaryOperator(UNARY_OPERATOR_TOKENS[token.kind], token))

        # Innermost operator applies first.
        expression = self._parse_primary_expression()
        for operator in reversed(operators):
            expression = self.ast.unary_expression(operator, expression.handle)
        return expression

    def _parse_primary_expression(self) -> Expression:
        token = self._peek()
        kind = token.kind

        if kind == TokenKind.NUMBER:
            return self.ast.number_expression(self._advance(), token.value)
        if kind == TokenKind.DECIMAL:
            return self.ast.decimal_expression(self._advance(), token.value)
        if kind == TokenKind.STRING:
            return self.ast.string_expression(self._advance(), token.value)
        if kind in (TokenKind.TRUE, TokenKind.FALSE):
            return self.ast.boolean_expression(self._advance(), kind == TokenKind.TRUE)
        if kind == TokenKind.LEFT_PAREN:
            left_paren = self._advance()
            inner = self._parse_expression()
            right_paren = self._consume(TokenKind.RIGHT_PAREN, "parenthesized expression")
            return self.ast.parenthesized_expression(left_paren, inner.handle, right_paren)
        if kind == TokenKind.OPEN_BRACE:
            return self._parse_block_expression()
        if kind == TokenKind.IF:
            return self._parse_if_expression()
        if kind == TokenKind.IDENTIFIER:
            if self._peek(1).kind == TokenKind.LEFT_PAREN:
                return self._parse_call_expression()
            return self.ast.variable_expression(self._advance())

        # Bad tokens were already reported by the lexer.
        if kind != TokenKind.BAD:
            self.diagnostics.report_expected_expression(token)
        if kind not in PRIMARY_ERROR_KEEP:
            self._advance()
        return self.ast.error_expression(token.span)

    def _parse_call_expression(self) -> Expression:
        callee = self._advance()
        left_paren = self._advance()
        arguments = []
        if not self._check(TokenKind.RIGHT_PAREN):
            while True:
                arguments.append(self._parse_expression().handle)
                if not self._match(TokenKind.COMMA):
                    break
        right_paren = self._consume(TokenKind.RIGHT_PAREN, "argument list")
        return self.ast.call_expression(callee, left_paren, arguments, right_paren)

    def _parse_if_expression(self) -> IfExpression:
        if_keyword = self._advance()
        condition = self._parse_expression()
        then_branch = self._parse_block_expression()

        else_branch = None
        if self._check(TokenKind.ELSE):
            else_keyword = self._advance()
            if self._check(TokenKind.IF):
                expression = self._parse_if_expression()
            else:
                expression = self._parse_block_expression()
            else_branch = ElseBranch(else_keyword, expression.handle)

        return self.ast.if_expression(if_keyword, condition.handle, then_branch.handle, else_branch)

    def _parse_block_expression(self) -> BlockExpression:
        open_brace = self._consume(TokenKind.OPEN_BRACE, "block")
        statements = []
        while not self._check(TokenKind.CLOSE_BRACE) and not self._is_at_end():
            statements.append(self._parse_statement().handle)
        close_brace = self._consume(TokenKind.CLOSE_BRACE, "block")
        return self.ast.block_expression(open_brace, statements, close_brace)

    # ========================================================================
    # Token helpers
    # ========================================================================

    def _match(self, kind: TokenKind) -> bool:
        """Check if current token matches kind and consume if so."""
        if self._check(kind):
            self._advance()
            return True
        return False

    def _check(self, kind: TokenKind) -> bool:
        """Check if current token matches kind without consuming."""
        return self._peek().kind == kind

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._peek()
        if not self._is_at_end():
            self.current += 1
        return token

    def _is_at_end(self) -> bool:
        return self._peek().kind == TokenKind.EOF

    def _peek(self, offset: int = 0) -> Token:
        index = min(self.current + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _consume(self, kind: TokenKind, context: str) -> Token:
        """Consume token of expected kind or raise error."""
        if self._check(kind):
            return self._advance()
        raise create_missing_token_error(kind, self._peek(), context)


def parse_string(source: str, diagnostics: Optional[DiagnosticsBag] = None) -> Ast:
    """Convenience function: lex and parse a source string."""
    if diagnostics is None:
        diagnostics = DiagnosticsBag()
    return Parser(tokenize_string(source, diagnostics), diagnostics).parse()
