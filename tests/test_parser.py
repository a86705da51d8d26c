"""
Test suite for the Fusion parser and AST arena.

Tests cover:
- Operator precedence and associativity
- Statements, items, if/else chains, blocks and calls
- Error recovery and resynchronization
- Arena handles, write-once fields and spans

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from fusion.diagnostics import DiagnosticsBag
from fusion.errors import InternalCompilerError
from fusion.lexer import tokenize_string
from fusion.parser import (
    Ast, ASTVisitor, Parser, ExpressionHandle, StatementHandle, ItemHandle,
    BinaryOperatorKind, UnaryOperatorKind, Associativity, parse_string
)
from fusion.parser.ast_nodes import (
    FunctionDeclaration, StatementItem, LetStatement, ExpressionStatement, CallExpression,
    VariableExpression, ErrorExpression, BinaryExpression, UnaryExpression
)
from fusion.types import Type


class ASTFlattener(ASTVisitor):
    """Records a preorder listing of statements and expressions."""

    def __init__(self, ast: Ast):
        super().__init__(ast)
        self.nodes = []

    def visit_function_declaration(self, item):
        self.nodes.append(f"Func({item.name})")
        return super().visit_function_declaration(item)

    def visit_let_statement(self, statement):
        self.nodes.append("Let")
        return super().visit_let_statement(statement)

    def visit_while_statement(self, statement):
        self.nodes.append("While")
        return super().visit_while_statement(statement)

    def visit_return_statement(self, statement):
        self.nodes.append("Return")
        return super().visit_return_statement(statement)

    def visit_number_expression(self, expression):
        self.nodes.append(str(expression.number))

    def visit_decimal_expression(self, expression):
        self.nodes.append(str(expression.number))

    def visit_string_expression(self, expression):
        self.nodes.append(repr(expression.string))

    def visit_boolean_expression(self, expression):
        self.nodes.append(str(expression.value).lower())

    def visit_variable_expression(self, expression):
        self.nodes.append(expression.name)

    def visit_binary_expression(self, expression):
        self.nodes.append(f"Binary({expression.operator.kind})")
        return super().visit_binary_expression(expression)

    def visit_unary_expression(self, expression):
        self.nodes.append(f"Unary({expression.operator.kind})")
        return super().visit_unary_expression(expression)

    def visit_parenthesized_expression(self, expression):
        self.nodes.append("Paren")
        return super().visit_parenthesized_expression(expression)

    def visit_assignment_expression(self, expression):
        self.nodes.append(f"Assign({expression.name})")
        return super().visit_assignment_expression(expression)

    def visit_call_expression(self, expression):
        self.nodes.append(f"Call({expression.function_name})")
        return super().visit_call_expression(expression)

    def visit_if_expression(self, expression):
        self.nodes.append("If")
        return super().visit_if_expression(expression)

    def visit_block_expression(self, expression):
        self.nodes.append("Block")
        return super().visit_block_expression(expression)

    def visit_error_expression(self, expression):
        self.nodes.append("Error")


class ParserTestCase(unittest.TestCase):

    def _parse(self, source: str):
        diagnostics = DiagnosticsBag()
        ast = parse_string(source, diagnostics)
        return ast, diagnostics

    def _flatten(self, source: str, allow_errors: bool = False):
        ast, diagnostics = self._parse(source)
        if not allow_errors:
            self.assertFalse(diagnostics.has_errors(), f"Unexpected errors: {list(diagnostics)}")
        flattener = ASTFlattener(ast)
        ast.visit(flattener)
        return flattener.nodes


class TestOperatorPrecedence(ParserTestCase):
    """Test cases for precedence climbing."""

    def test_multiplication_binds_tighter_than_addition(self):
        self.assertEqual(
            self._flatten("1 + 2 * 3"),
            ["Binary(+)", "1", "Binary(*)", "2", "3"]
        )

    def test_power_is_right_associative(self):
        self.assertEqual(
            self._flatten("2 ** 3 ** 2"),
            ["Binary(**)", "2", "Binary(**)", "3", "2"]
        )

    def test_subtraction_is_left_associative(self):
        self.assertEqual(
            self._flatten("1 - 2 - 3"),
            ["Binary(-)", "Binary(-)", "1", "2", "3"]
        )

    def test_chained_unary_operators(self):
        self.assertEqual(
            self._flatten("let a = -1 + -2 * -3 ** ------4"),
            ["Let", "Binary(+)", "Unary(-)", "1", "Binary(*)", "Unary(-)", "2",
             "Binary(**)", "Unary(-)", "3"] + ["Unary(-)"] * 6 + ["4"]
        )

    def test_long_unary_chain(self):
        ast, diagnostics = self._parse("-" * 1500 + "~4")
        self.assertFalse(diagnostics.has_errors())
        self.assertEqual(len(ast.items), 1)

        statement = ast.query_statement(ast.items[0].statement)
        expression = ast.query_expression(statement.expression)
        operators = []
        while isinstance(expression, UnaryExpression):
            operators.append(expression.operator.kind)
            expression = ast.query_expression(expression.operand)
        self.assertEqual(operators, [UnaryOperatorKind.MINUS] * 1500 + [UnaryOperatorKind.BITWISE_NOT])
        self.assertEqual(expression.number, 4)

    def test_bitwise_precedence(self):
        self.assertEqual(
            self._flatten("1 | 2 ^ 3 & 4"),
            ["Binary(|)", "1", "Binary(^)", "2", "Binary(&)", "3", "4"]
        )

    def test_bitwise_not(self):
        self.assertEqual(self._flatten("~~5"), ["Unary(~)", "Unary(~)", "5"])

    def test_arithmetic_groups_inside_equality(self):
        self.assertEqual(
            self._flatten("1 + 2 == 3"),
            ["Binary(==)", "Binary(+)", "1", "2", "3"]
        )

    def test_arithmetic_groups_inside_comparison(self):
        self.assertEqual(
            self._flatten("a * 2 < b - 1"),
            ["Binary(<)", "Binary(*)", "a", "2", "Binary(-)", "b", "1"]
        )

    def test_equality_binds_tighter_than_comparison(self):
        self.assertEqual(
            self._flatten("1 < 2 == true"),
            ["Binary(<)", "1", "Binary(==)", "2", "true"]
        )

    def test_equality_chain_is_left_associative(self):
        self.assertEqual(
            self._flatten("a == b != c"),
            ["Binary(!=)", "Binary(==)", "a", "b", "c"]
        )

    def test_parentheses_override_precedence(self):
        self.assertEqual(
            self._flatten("(1 + 2) * 3"),
            ["Binary(*)", "Paren", "Binary(+)", "1", "2", "3"]
        )

    def test_precedence_table(self):
        self.assertEqual(BinaryOperatorKind.POWER.precedence(), 20)
        self.assertEqual(BinaryOperatorKind.MULTIPLY_DECIMAL.precedence(), 19)
        self.assertEqual(BinaryOperatorKind.PLUS_STRING.precedence(), 18)
        self.assertEqual(BinaryOperatorKind.BITWISE_OR.precedence(), 15)
        self.assertEqual(BinaryOperatorKind.EQUALS.precedence(), 30)
        self.assertEqual(BinaryOperatorKind.GREATER_THAN_OR_EQUAL.precedence(), 29)
        self.assertEqual(BinaryOperatorKind.POWER.associativity(), Associativity.RIGHT)
        self.assertEqual(BinaryOperatorKind.MINUS.associativity(), Associativity.LEFT)


class TestStatementsAndItems(ParserTestCase):
    """Test cases for statements, items and compound expressions."""

    def test_let_with_type_annotation(self):
        ast, diagnostics = self._parse("let x: float = 1")
        self.assertFalse(diagnostics.has_errors())
        statement = ast.query_statement(ast.items[0].statement)
        self.assertIsInstance(statement, LetStatement)
        self.assertEqual(statement.name, "x")
        self.assertEqual(statement.type_annotation.type_name.lexeme, "float")

    def test_if_else(self):
        self.assertEqual(
            self._flatten("if a > 1 { a } else { 0 }"),
            ["If", "Binary(>)", "a", "1", "Block", "a", "Block", "0"]
        )

    def test_else_if_chain(self):
        self.assertEqual(
            self._flatten("if a { 1 } else if b { 2 } else { 3 }"),
            ["If", "a", "Block", "1", "If", "b", "Block", "2", "Block", "3"]
        )

    def test_while(self):
        self.assertEqual(
            self._flatten("while a < 10 { a = a + 1 }"),
            ["While", "Binary(<)", "a", "10", "Block", "Assign(a)", "Binary(+)", "a", "1"]
        )

    def test_function_declaration(self):
        ast, diagnostics = self._parse("func add(a: int, b: int) -> int { return a + b }")
        self.assertFalse(diagnostics.has_errors())
        self.assertEqual(len(ast.items), 1)
        function = ast.items[0]
        self.assertIsInstance(function, FunctionDeclaration)
        self.assertEqual(function.name, "add")
        self.assertEqual([p.name for p in function.parameters], ["a", "b"])
        self.assertEqual(
            [p.type_annotation.type_name.lexeme for p in function.parameters], ["int", "int"]
        )
        self.assertEqual(function.return_type.type_name.lexeme, "int")

    def test_function_without_parameters_or_return_type(self):
        self.assertEqual(
            self._flatten("func hello() { 1 }"),
            ["Func(hello)", "Block", "1"]
        )

    def test_function_and_call(self):
        self.assertEqual(
            self._flatten("func add(a: int, b: int) -> int { return a + b }\nadd(2 * 3, 4 + 5)"),
            ["Func(add)", "Block", "Return", "Binary(+)", "a", "b",
             "Call(add)", "Binary(*)", "2", "3", "Binary(+)", "4", "5"]
        )

    def test_call_without_arguments(self):
        ast, _ = self._parse("f()")
        statement = ast.query_statement(ast.items[0].statement)
        call = ast.query_expression(statement.expression)
        self.assertIsInstance(call, CallExpression)
        self.assertEqual(call.arguments, [])

    def test_assignment_is_right_recursive(self):
        self.assertEqual(
            self._flatten("a = b = 3"),
            ["Assign(a)", "Assign(b)", "3"]
        )

    def test_return_without_value(self):
        self.assertEqual(
            self._flatten("func f() { return }"),
            ["Func(f)", "Block", "Return"]
        )

    def test_statements_without_separators(self):
        ast, diagnostics = self._parse("let a = 1 let b = 2 a + b")
        self.assertFalse(diagnostics.has_errors())
        self.assertEqual(len(ast.items), 3)

    def test_semicolon_terminator_is_kept(self):
        ast, _ = self._parse("let a = 1;")
        statement = ast.query_statement(ast.items[0].statement)
        self.assertIsNotNone(statement.terminator)
        span = ast.statement_span(statement.handle)
        self.assertEqual((span.start, span.end), (0, 10))
        self.assertTrue(span.literal.endswith(";"))

    def test_literals(self):
        self.assertEqual(
            self._flatten("\"text\" 2.5 true false"),
            ["'text'", "2.5", "true", "false"]
        )


class TestErrorRecovery(ParserTestCase):
    """Test cases for syntax errors."""

    def test_missing_identifier_resynchronizes(self):
        ast, diagnostics = self._parse("let = 5\nlet b = 2")
        self.assertEqual(diagnostics.codes(), ["P002"])
        last = ast.query_statement(ast.items[-1].statement)
        self.assertIsInstance(last, LetStatement)
        self.assertEqual(last.name, "b")

    def test_broken_statement_becomes_error_expression(self):
        ast, _ = self._parse("let = 5")
        statement = ast.query_statement(ast.items[0].statement)
        self.assertIsInstance(statement, ExpressionStatement)
        self.assertIsInstance(ast.query_expression(statement.expression), ErrorExpression)

    def test_missing_operand_keeps_next_statement(self):
        ast, diagnostics = self._parse("let a = 1 +\nlet b = 2")
        self.assertEqual(diagnostics.codes(), ["P001"])
        self.assertEqual(len(ast.items), 2)
        first = ast.query_statement(ast.items[0].statement)
        initializer = ast.query_expression(first.initializer)
        self.assertIsInstance(initializer, BinaryExpression)
        self.assertIsInstance(ast.query_expression(initializer.right), ErrorExpression)

    def test_unclosed_call(self):
        ast, diagnostics = self._parse("f(1, 2\nlet c = 3")
        self.assertTrue(diagnostics.has_errors())
        self.assertIsInstance(ast.query_statement(ast.items[-1].statement), LetStatement)

    def test_stray_closing_brace(self):
        ast, diagnostics = self._parse("} let a = 1")
        self.assertEqual(diagnostics.codes(), ["P001"])
        self.assertIsInstance(ast.query_statement(ast.items[-1].statement), LetStatement)

    def test_bad_token_not_reported_twice(self):
        ast, diagnostics = self._parse("let a = @")
        self.assertEqual(diagnostics.codes(), ["L001"])

    def test_broken_function_does_not_hide_later_errors(self):
        ast, diagnostics = self._parse("func f(a int) { a }\nlet = 1")
        codes = diagnostics.codes()
        self.assertEqual(codes[0], "P002")
        self.assertEqual(codes[-1], "P002")
        self.assertGreaterEqual(codes.count("P002"), 2)

    def test_unclosed_block(self):
        ast, diagnostics = self._parse("{ let a = 1")
        self.assertEqual(diagnostics.codes(), ["P002"])

    def test_parser_terminates_on_garbage(self):
        ast, diagnostics = self._parse(") , ; } ) else ->")
        self.assertTrue(diagnostics.has_errors())


class TestAstArena(ParserTestCase):
    """Test cases for handles, write-once fields and spans."""

    def test_handles_are_distinct_types(self):
        self.assertNotEqual(ExpressionHandle(0), StatementHandle(0))
        self.assertEqual(ExpressionHandle(3), ExpressionHandle(3))
        self.assertEqual(len({ItemHandle(1), ItemHandle(1), ItemHandle(2)}), 2)

    def test_out_of_range_handle(self):
        ast, _ = self._parse("1")
        with self.assertRaises(InternalCompilerError):
            ast.query_expression(ExpressionHandle(99))

    def test_wrong_handle_family(self):
        ast, _ = self._parse("1")
        with self.assertRaises(InternalCompilerError):
            ast.query_expression(StatementHandle(0))

    def test_type_starts_unresolved_and_is_write_once(self):
        ast, _ = self._parse("1")
        handle = ExpressionHandle(0)
        self.assertIs(ast.query_expression(handle).ty, Type.UNRESOLVED)
        ast.set_type(handle, Type.INT)
        self.assertIs(ast.query_expression(handle).ty, Type.INT)
        with self.assertRaises(InternalCompilerError):
            ast.set_type(handle, Type.FLOAT)

    def test_variable_index_is_write_once(self):
        ast, _ = self._parse("a")
        handle = ExpressionHandle(0)
        self.assertIsInstance(ast.query_expression(handle), VariableExpression)
        ast.set_variable(handle, 0)
        with self.assertRaises(InternalCompilerError):
            ast.set_variable(handle, 1)

    def test_operator_specialization_is_write_once(self):
        ast, _ = self._parse("1.0 + 2.0")
        binary = next(e for e in ast.expressions if isinstance(e, BinaryExpression))
        ast.specialize_operator(binary.handle, BinaryOperatorKind.PLUS_DECIMAL)
        self.assertIs(binary.operator.kind, BinaryOperatorKind.PLUS_DECIMAL)
        with self.assertRaises(InternalCompilerError):
            ast.specialize_operator(binary.handle, BinaryOperatorKind.PLUS)

    def test_set_variable_rejects_other_nodes(self):
        ast, _ = self._parse("1")
        with self.assertRaises(InternalCompilerError):
            ast.set_variable(ExpressionHandle(0), 0)

    def test_expression_span(self):
        ast, _ = self._parse("let total = (a + 1) * 2")
        let = ast.query_statement(ast.items[0].statement)
        span = ast.expression_span(let.initializer)
        self.assertEqual((span.start, span.end), (12, 23))

    def test_spans_cover_source(self):
        sources = [
            "func add(a: int, b: int) -> int { return a + b }",
            "let a = if x { 1 } else { 2 }",
            "while i < 10 { i = i + 1 }",
        ]
        for source in sources:
            ast, diagnostics = self._parse(source)
            self.assertFalse(diagnostics.has_errors())
            literal = "".join(ast.item_span(item.handle).literal for item in ast.items)
            significant = "".join(t.lexeme for t in tokenize_string(source))
            self.assertEqual(literal, significant, source)

    def test_parser_accepts_unfiltered_tokens(self):
        from fusion.lexer import Lexer
        ast = Parser(Lexer("let a = 1").tokenize()).parse()
        self.assertIsInstance(ast.items[0], StatementItem)

    def test_visualize(self):
        ast, _ = self._parse("let a = 1 + 2")
        dump = ast.visualize()
        self.assertIn("LetStatement a", dump)
        self.assertIn("Binary PLUS", dump)
        self.assertIn("    Number 1", dump)


def run_parser_tests():
    """Run all parser tests."""
    loader = unittest.defaultTestLoader
    suite = unittest.TestSuite()
    for case in (TestOperatorPrecedence, TestStatementsAndItems, TestErrorRecovery, TestAstArena):
        suite.addTests(loader.loadTestsFromTestCase(case))

    runner = unittest.TextTestRunner(verbosity=2)
    return runner.run(suite)


if __name__ == "__main__":
    print("Running Fusion Parser Tests...")
    print("=" * 60)

    result = run_parser_tests()
    sys.exit(0 if result.wasSuccessful() else 1)
