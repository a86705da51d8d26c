"""
The Fusion type model.

Fusion has a closed set of primitive types. UNRESOLVED marks expressions
the resolver has not reached yet; ERROR marks expressions that failed to
type check and is compatible with everything so that one mistake yields
one diagnostic.

Author: xwest
"""

from enum import Enum
from typing import Optional


class Type(Enum):
    """Primitive types. The value is the display name."""
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    VOID = "void"
    UNRESOLVED = "unresolved"
    ERROR = "?"

    def __str__(self) -> str:
        return self.value

    @property
    def is_numeric(self) -> bool:
        return self in (Type.INT, Type.FLOAT)

    def is_assignable_to(self, target: 'Type') -> bool:
        """
        Directed compatibility check: can a value of this type be stored in
        a slot of the target type?

        Int and Float convert into each other implicitly; String and Bool
        only match themselves; ERROR matches anything in both directions.
        """
        if self is Type.ERROR or target is Type.ERROR:
            return True
        if self.is_numeric and target.is_numeric:
            return True
        if self in (Type.STRING, Type.BOOL):
            return self is target
        return False

    @classmethod
    def from_str(cls, name: str) -> Optional['Type']:
        """Map a type name written in source code to a type, or None."""
        return _SOURCE_TYPE_NAMES.get(name)

    @staticmethod
    def unify(first: 'Type', second: 'Type') -> Optional['Type']:
        """
        Find the common type of two branches.

        Returns None when the types cannot be unified.
        """
        if first is Type.ERROR:
            return second
        if second is Type.ERROR:
            return first
        if first is second:
            return first
        if first.is_numeric and second.is_numeric:
            return Type.FLOAT
        return None


_SOURCE_TYPE_NAMES = {
    "int": Type.INT,
    "float": Type.FLOAT,
    "string": Type.STRING,
    "bool": Type.BOOL,
    "void": Type.VOID,
}
