"""
Type system definitions for Lag.

Lag has a deliberately small, closed set of types:
    int, float, bool, string, void

plus function types for declared functions and builtins. The only
implicit conversion is int widening to float.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Tuple
from abc import ABC, abstractmethod


# =============================================================================
# Type Classes
# =============================================================================

@dataclass(frozen=True)
class Type(ABC):
    """Base class for all Lag types."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The type name for display/errors."""
        pass

    def is_assignable_from(self, other: "Type") -> bool:
        """Check if this type can accept a value of the other type."""
        return self == other

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PrimitiveType(Type):
    """A primitive type (int, float, bool, string, void)."""
    _name: str

    @property
    def name(self) -> str:
        return self._name

    def is_assignable_from(self, other: "Type") -> bool:
        if self == other:
            return True
        # int can be promoted to float
        if self._name == "float" and isinstance(other, PrimitiveType) and other._name == "int":
            return True
        if isinstance(other, ErrorType):
            return True
        return False


@dataclass(frozen=True)
class AnyType(Type):
    """Parameter type of builtins accepting any printable value."""

    @property
    def name(self) -> str:
        return "any"

    def is_assignable_from(self, other: "Type") -> bool:
        return other != VOID


@dataclass(frozen=True)
class FunctionType(Type):
    """The type of a declared function or builtin."""
    param_types: Tuple[Type, ...]
    return_type: Type

    @property
    def name(self) -> str:
        params = ", ".join(t.name for t in self.param_types)
        return f"fn({params}) -> {self.return_type.name}"


@dataclass(frozen=True)
class ErrorType(Type):
    """A type representing a type error (prevents cascading errors)."""

    @property
    def name(self) -> str:
        return "<error>"

    def is_assignable_from(self, other: "Type") -> bool:
        return True


# =============================================================================
# Built-in Type Instances
# =============================================================================

INT = PrimitiveType("int")
FLOAT = PrimitiveType("float")
BOOL = PrimitiveType("bool")
STRING = PrimitiveType("string")
VOID = PrimitiveType("void")
ANY = AnyType()
ERROR = ErrorType()


BUILTIN_TYPES: Dict[str, Type] = {
    "int": INT,
    "float": FLOAT,
    "bool": BOOL,
    "string": STRING,
    "void": VOID,
}


def resolve_type_name(name: str) -> Optional[Type]:
    """Look up a type by name."""
    return BUILTIN_TYPES.get(name)


# =============================================================================
# Type Compatibility Helpers
# =============================================================================

def is_numeric(t: Type) -> bool:
    """Check if type is numeric (int or float)."""
    return t == INT or t == FLOAT


def is_error(t: Type) -> bool:
    return isinstance(t, ErrorType)


def needs_widening(target: Type, source: Type) -> bool:
    """True when assigning ``source`` to ``target`` converts int to float."""
    return target == FLOAT and source == INT


def common_type(t1: Type, t2: Type) -> Optional[Type]:
    """
    Find the common type that both t1 and t2 can be assigned to.

    Returns None if no common type exists.
    """
    if t1 == t2:
        return t1
    if is_numeric(t1) and is_numeric(t2):
        return FLOAT
    return None
