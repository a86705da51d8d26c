"""
Fusion Parser Package

Builds the arena-based AST from a token list. Items and statements are
parsed by recursive descent, expressions by precedence climbing. Passes
over the tree subclass ASTVisitor.

Author: xwest
"""

from .ast_nodes import (
    Ast, ItemHandle, StatementHandle, ExpressionHandle, ItemKind, StatementKind, ExpressionKind,
    BinaryOperatorKind, UnaryOperatorKind, Associativity
)
from .parser import Parser, parse_string
from .visitor import ASTVisitor
from .printer import ASTPrinter
from .errors import ParseError

__all__ = [
    "Ast",
    "ItemHandle",
    "StatementHandle",
    "ExpressionHandle",
    "ItemKind",
    "StatementKind",
    "ExpressionKind",
    "BinaryOperatorKind",
    "UnaryOperatorKind",
    "Associativity",
    "Parser",
    "parse_string",
    "ASTVisitor",
    "ASTPrinter",
    "ParseError",
]
