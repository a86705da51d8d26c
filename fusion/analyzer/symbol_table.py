"""
Symbol table and scope management for Fusion semantic analysis.

The GlobalScope owns two index tables that outlive resolution: every
variable binding and every function declaration, each addressed by a
stable integer index. The resolver writes those indices into the AST and
the evaluator (or any backend) reads them back.

Lexical scopes only map names to indices while the resolver walks the
tree; a ``let`` always allocates a fresh index, so shadowing never
overwrites an earlier binding.

Author: xwest
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..errors import InternalCompilerError
from ..parser.ast_nodes import ExpressionHandle, ItemHandle
from ..types import Type


@dataclass
class VariableSymbol:
    """A single variable binding (let or parameter)."""
    name: str
    ty: Type
    index: int

    def __str__(self) -> str:
        return f"{self.name}: {self.ty}"


@dataclass
class FunctionSymbol:
    """A declared function."""
    name: str
    parameters: List[int]  # variable indices, in declaration order
    return_type: Type
    body: ExpressionHandle
    declaration: ItemHandle
    index: int

    def __str__(self) -> str:
        return f"func {self.name}/{len(self.parameters)} -> {self.return_type}"


class GlobalScope:
    """Index tables for all variables and functions of one compilation unit."""

    def __init__(self):
        self.variables: List[VariableSymbol] = []
        self.functions: List[FunctionSymbol] = []
        self._functions_by_name: Dict[str, int] = {}

    def declare_variable(self, name: str, ty: Type) -> VariableSymbol:
        symbol = VariableSymbol(name, ty, len(self.variables))
        self.variables.append(symbol)
        return symbol

    def declare_function(self, name: str, parameters: List[int], return_type: Type,
                         body: ExpressionHandle, declaration: ItemHandle) -> Optional[FunctionSymbol]:
        """Declare a function; returns None if the name is already taken."""
        if name in self._functions_by_name:
            return None
        symbol = FunctionSymbol(name, parameters, return_type, body, declaration, len(self.functions))
        self.functions.append(symbol)
        self._functions_by_name[name] = symbol.index
        return symbol

    def lookup_function(self, name: str) -> Optional[FunctionSymbol]:
        index = self._functions_by_name.get(name)
        return self.functions[index] if index is not None else None

    def variable(self, index: int) -> VariableSymbol:
        return self.variables[index]

    def function(self, index: int) -> FunctionSymbol:
        return self.functions[index]

    def function_names(self) -> List[str]:
        return list(self._functions_by_name)

    def __str__(self) -> str:
        return f"GlobalScope({len(self.variables)} variables, {len(self.functions)} functions)"


class ScopeKind(Enum):
    """Types of scopes."""
    GLOBAL = "global"
    FUNCTION = "function"
    BLOCK = "block"


@dataclass
class Scope:
    """Represents a lexical scope."""
    kind: ScopeKind
    parent: Optional['Scope'] = None
    function: Optional[FunctionSymbol] = None  # enclosing function, if any
    variables: Dict[str, int] = field(default_factory=dict)

    def bind(self, name: str, index: int) -> None:
        """Bind a name in this scope; a later bind of the same name shadows it."""
        self.variables[name] = index

    def lookup_variable(self, name: str) -> Optional[int]:
        """Look up a variable in this scope and parent scopes."""
        if name in self.variables:
            return self.variables[name]
        if self.parent:
            return self.parent.lookup_variable(name)
        return None

    def visible_names(self) -> List[str]:
        names = self.parent.visible_names() if self.parent else []
        return names + [name for name in self.variables if name not in names]

    def __str__(self) -> str:
        return f"Scope({self.kind.value}, {len(self.variables)} variables)"


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate edit distance between two strings."""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def closest_name(name: str, candidates: List[str], max_distance: int = 2) -> Optional[str]:
    """Pick the candidate most similar to ``name`` (for error suggestions)."""
    scored = [
        (levenshtein_distance(name.lower(), candidate.lower()), candidate)
        for candidate in candidates
        if candidate != name
    ]
    scored = [entry for entry in scored if entry[0] <= max_distance]
    if not scored:
        return None
    scored.sort(key=lambda entry: entry[0])
    return scored[0][1]


class SymbolTable:
    """
    Manages the stack of lexical scopes during resolution.

    The outermost scope is the global scope of top-level statements.
    Function bodies get a FUNCTION scope whose parent is that global scope,
    so functions see top-level bindings declared before them but never the
    locals of their callers.
    """

    def __init__(self, global_scope: Optional[GlobalScope] = None):
        """Initialize the symbol table with a global scope."""
        self.global_scope = global_scope if global_scope is not None else GlobalScope()
        self.root_scope = Scope(ScopeKind.GLOBAL)
        self.current_scope = self.root_scope

    def enter_scope(self, kind: ScopeKind, function: Optional[FunctionSymbol] = None) -> Scope:
        """Enter a new scope."""
        if kind == ScopeKind.FUNCTION:
            scope = Scope(kind, parent=self.root_scope, function=function)
        else:
            scope = Scope(kind, parent=self.current_scope, function=self.current_scope.function)
        self.current_scope = scope
        return scope

    def exit_scope(self) -> Scope:
        """Exit the current scope."""
        if self.current_scope is self.root_scope:
            raise InternalCompilerError("Cannot exit the global scope")
        exited = self.current_scope
        self.current_scope = exited.parent
        return exited

    def declare_variable(self, name: str, ty: Type) -> VariableSymbol:
        symbol = self.global_scope.declare_variable(name, ty)
        self.current_scope.bind(name, symbol.index)
        return symbol

    def lookup_variable(self, name: str) -> Optional[VariableSymbol]:
        index = self.current_scope.lookup_variable(name)
        return self.global_scope.variable(index) if index is not None else None

    def suggest_variable(self, name: str) -> Optional[str]:
        return closest_name(name, self.current_scope.visible_names())

    def suggest_function(self, name: str) -> Optional[str]:
        return closest_name(name, self.global_scope.function_names())

    @property
    def current_function(self) -> Optional[FunctionSymbol]:
        return self.current_scope.function
