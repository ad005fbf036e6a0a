"""
Symbol table management for the Lag type checker.

Scopes nest as global (builtins) -> module (functions, top-level lets)
-> function (parameters) -> one scope per block. Lookup walks from the
innermost scope outward, so inner declarations shadow outer ones.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any, Tuple
from enum import Enum, auto

from .types import Type, FunctionType, INT, FLOAT, STRING, VOID, ANY
from .tokens import SourceSpan


class SymbolKind(Enum):
    """The kind of symbol being tracked."""
    VARIABLE = auto()
    PARAMETER = auto()
    LOOP_VARIABLE = auto()
    FUNCTION = auto()
    BUILTIN = auto()


@dataclass(eq=False)
class Symbol:
    """A symbol in the symbol table.

    Symbols compare by identity: two declarations of the same name in
    different scopes are different symbols.
    """
    name: str
    kind: SymbolKind
    type: Type
    span: Optional[SourceSpan] = None  # Where it was defined
    is_mutable: bool = False
    is_global: bool = False            # Declared at module scope
    node: Any = None                   # Declaring AST node


@dataclass
class FunctionSignature:
    """Type signature for a function or built-in."""
    name: str
    params: List[Tuple[str, Type]]
    return_type: Type

    @property
    def arity(self) -> int:
        return len(self.params)

    def to_type(self) -> FunctionType:
        return FunctionType(tuple(t for _, t in self.params), self.return_type)


@dataclass
class Scope:
    """A single scope in the scope stack."""
    symbols: Dict[str, Symbol] = field(default_factory=dict)
    parent: Optional["Scope"] = None
    name: str = ""  # For debugging: "fn area", "block", etc.

    def define(self, symbol: Symbol) -> None:
        self.symbols[symbol.name] = symbol

    def lookup_local(self, name: str) -> Optional[Symbol]:
        """Look up a symbol in this scope only."""
        return self.symbols.get(name)

    def lookup(self, name: str) -> Optional[Symbol]:
        """Look up a symbol in this scope or any parent scope."""
        symbol = self.symbols.get(name)
        if symbol is not None:
            return symbol
        if self.parent is not None:
            return self.parent.lookup(name)
        return None


BUILTIN_SIGNATURES: Dict[str, FunctionSignature] = {
    "print": FunctionSignature("print", [("value", ANY)], VOID),
    "str": FunctionSignature("str", [("value", ANY)], STRING),
    "len": FunctionSignature("len", [("s", STRING)], INT),
    "sqrt": FunctionSignature("sqrt", [("x", FLOAT)], FLOAT),
    "floor": FunctionSignature("floor", [("x", FLOAT)], INT),
}


class SymbolTable:
    """
    Manages scopes and symbol definitions for type checking.

    Provides:
    - Nested scope management (push/pop)
    - Symbol definition and lookup
    - Built-in function registry
    """

    def __init__(self):
        # Global scope contains built-in functions
        self._global_scope = Scope(name="global")
        self._current_scope = self._global_scope
        self._builtins: Dict[str, FunctionSignature] = dict(BUILTIN_SIGNATURES)
        self.signatures: Dict[int, FunctionSignature] = {}

        for name, signature in self._builtins.items():
            symbol = Symbol(name, SymbolKind.BUILTIN, signature.to_type())
            self._global_scope.define(symbol)
            self.signatures[id(symbol)] = signature

    def push_scope(self, name: str = "") -> None:
        self._current_scope = Scope(parent=self._current_scope, name=name)

    def pop_scope(self) -> None:
        if self._current_scope.parent is not None:
            self._current_scope = self._current_scope.parent

    def define(self, symbol: Symbol) -> bool:
        """
        Define a symbol in the current scope.

        Returns True if successful, False if already defined in current scope.
        """
        if self._current_scope.lookup_local(symbol.name) is not None:
            return False
        self._current_scope.define(symbol)
        return True

    def define_function(self, symbol: Symbol, signature: FunctionSignature) -> bool:
        if not self.define(symbol):
            return False
        self.signatures[id(symbol)] = signature
        return True

    def lookup(self, name: str) -> Optional[Symbol]:
        """Look up a symbol in the current scope chain."""
        return self._current_scope.lookup(name)

    def signature_of(self, symbol: Symbol) -> Optional[FunctionSignature]:
        return self.signatures.get(id(symbol))

    def lookup_builtin(self, name: str) -> Optional[FunctionSignature]:
        return self._builtins.get(name)

    def is_builtin(self, name: str) -> bool:
        return name in self._builtins

    @property
    def at_module_scope(self) -> bool:
        return self._current_scope.parent is self._global_scope

    def current_scope_name(self) -> str:
        return self._current_scope.name
