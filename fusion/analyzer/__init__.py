"""
Fusion Semantic Analyzer Package

Binds every variable and function reference to a stable index, infers and
checks expression types, and specializes generic operators.

Author: xwest
"""

from .symbol_table import (
    GlobalScope, VariableSymbol, FunctionSymbol, Scope, ScopeKind, SymbolTable
)
from .resolver import Resolver

__all__ = [
    "Resolver",
    "GlobalScope",
    "VariableSymbol",
    "FunctionSymbol",
    "Scope",
    "ScopeKind",
    "SymbolTable",
]
