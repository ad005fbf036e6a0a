"""
Transpiler from a type-checked Lag program to Python source text.

The output is a standalone module:

    # header
    import logging as _lag_logging
    import math as _lag_math
    _lag_logger = ...
    def _lag_str(value): ...

    def <one per Lag function>(...): ...

    def __lag_init__():
        global <top-level variables>
        <top-level lets in source order>

    __lag_exports__ = {'<lag name>': <host function>, ...}

Every Lag symbol is given its own host name, so block scoping and
shadowing survive the move to Python's function-level scoping.
"""

import builtins
import keyword
import math
from typing import Dict, List, Set

from .ast import (
    AstNode, AstVisitor, Program, FunctionDef, Block,
    LetStatement, AssignmentStatement, IfStatement, WhileStatement,
    ForStatement, ReturnStatement, ExpressionStatement,
    Literal, Identifier, BinaryOp, UnaryOp, FunctionCall, walk,
)
from .checker import TypedProgram
from .symbols import Symbol, SymbolKind
from .tokens import TokenType
from .types import INT
from .errors import error_transpile_too_deep
from ..utils.logging import script_logger


HELPER_NAMES = {
    "_lag_logging",
    "_lag_math",
    "_lag_logger",
    "_lag_str",
    "__lag_init__",
    "__lag_exports__",
}

RESERVED_NAMES: Set[str] = (
    set(keyword.kwlist)
    | set(keyword.softkwlist)
    | set(dir(builtins))
    | HELPER_NAMES
)

BINARY_OPERATORS = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.AND: "and",
    TokenType.OR: "or",
}

# Python binding strength of emitted expressions (higher = tighter)
OR, AND, NOT, COMPARISON, ADDITIVE, MULTIPLICATIVE, NEGATE, ATOM = range(1, 9)

HOST_PRECEDENCE = {
    TokenType.OR: OR,
    TokenType.AND: AND,
    TokenType.EQ: COMPARISON,
    TokenType.NE: COMPARISON,
    TokenType.LT: COMPARISON,
    TokenType.GT: COMPARISON,
    TokenType.LE: COMPARISON,
    TokenType.GE: COMPARISON,
    TokenType.PLUS: ADDITIVE,
    TokenType.MINUS: ADDITIVE,
    TokenType.STAR: MULTIPLICATIVE,
    TokenType.SLASH: MULTIPLICATIVE,
    TokenType.PERCENT: MULTIPLICATIVE,
}

# Builtin name -> host call template
BUILTIN_CALLS = {
    "print": "_lag_logger.info('%s', _lag_str({0}))",
    "str": "_lag_str({0})",
    "len": "len({0})",
    "sqrt": "_lag_math.sqrt({0})",
    "floor": "_lag_math.floor({0})",
}

PRELUDE = '''\
import logging as _lag_logging
import math as _lag_math

_lag_logger = _lag_logging.getLogger({logger_name!r})


def _lag_str(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)
'''

INDENT = "    "


def _is_reserved(name: str) -> bool:
    if name in RESERVED_NAMES or name.startswith("_lag_"):
        return True
    return name.startswith("__") and name.endswith("__")


class Transpiler(AstVisitor):
    """
    Emits Python source for a TypedProgram.

    Statements are emitted through ``visit_*`` methods that append lines;
    expressions return their host text, parenthesised only where Python
    would otherwise group them differently from the Lag tree.
    """

    def __init__(self, typed: TypedProgram, module_name: str):
        self.typed = typed
        self.module_name = module_name
        self._lines: List[str] = []
        self._depth = 0
        self._host_names: Dict[int, str] = {}
        self._taken: Set[str] = set()

    # =========================================================================
    # Naming
    # =========================================================================

    def _host_name(self, symbol: Symbol) -> str:
        """The unique Python name for a Lag symbol, allocated on first use."""
        key = id(symbol)
        if key not in self._host_names:
            candidate = symbol.name
            suffix = 0
            while _is_reserved(candidate) or candidate in self._taken:
                suffix += 1
                candidate = f"{symbol.name}_{suffix}"
            self._taken.add(candidate)
            self._host_names[key] = candidate
        return self._host_names[key]

    def _name_of(self, node: AstNode) -> str:
        return self._host_name(self.typed.symbol_of(node))

    # =========================================================================
    # Emission
    # =========================================================================

    def _emit(self, text: str) -> None:
        self._lines.append(f"{INDENT * self._depth}{text}")

    def _emit_body(self, statements) -> None:
        """Emit an indented suite, falling back to 'pass' when it is empty."""
        self._depth += 1
        mark = len(self._lines)
        for stmt in statements:
            stmt.accept(self)
        if len(self._lines) == mark:
            self._emit("pass")
        self._depth -= 1

    def transpile(self) -> str:
        program = self.typed.program

        # Top-level names first, so they keep their Lag spelling when possible
        for decl in program.declarations:
            self._name_of(decl)

        header = f"# Generated from Lag module {self.module_name!r}. Do not edit."
        self._lines.append(header)
        self._lines.extend(PRELUDE.format(logger_name=script_logger(self.module_name).name)
                           .rstrip("\n").split("\n"))

        for func in program.functions:
            self._lines.extend(["", ""])
            func.accept(self)

        self._lines.extend(["", ""])
        self._emit_init(program)

        self._lines.extend(["", ""])
        self._emit_exports(program)
        return "\n".join(self._lines) + "\n"

    def _emit_init(self, program: Program) -> None:
        self._emit("def __lag_init__():")
        self._depth += 1
        names = [self._name_of(let) for let in program.globals]
        if names:
            self._emit(f"global {', '.join(names)}")
        for let in program.globals:
            let.accept(self)
        if not names:
            self._emit("pass")
        self._depth -= 1

    def _emit_exports(self, program: Program) -> None:
        if not program.functions:
            self._emit("__lag_exports__ = {}")
            return
        self._emit("__lag_exports__ = {")
        for func in program.functions:
            self._emit(f"{INDENT}{func.name!r}: {self._name_of(func)},")
        self._emit("}")

    def _assigned_globals(self, func: FunctionDef) -> List[str]:
        """Host names of module-level variables assigned inside ``func``."""
        names = []
        for node in walk(func.body):
            if isinstance(node, AssignmentStatement):
                symbol = self.typed.symbol_of(node.target)
                if symbol.is_global and symbol.kind == SymbolKind.VARIABLE:
                    name = self._host_name(symbol)
                    if name not in names:
                        names.append(name)
        return names

    # =========================================================================
    # Declarations and Statements
    # =========================================================================

    def visit_FunctionDef(self, node: FunctionDef) -> None:
        params = ", ".join(self._name_of(p) for p in node.parameters)
        self._emit(f"def {self._name_of(node)}({params}):")
        assigned = self._assigned_globals(node)
        if assigned:
            self._depth += 1
            self._emit(f"global {', '.join(assigned)}")
            self._depth -= 1
        self._emit_body(node.body.statements)

    def visit_Block(self, node: Block) -> None:
        # Names are already unique, so a nested block flattens into the suite
        for stmt in node.statements:
            stmt.accept(self)

    def visit_LetStatement(self, node: LetStatement) -> None:
        self._emit(f"{self._name_of(node)} = {self._expr(node.value)}")

    def visit_AssignmentStatement(self, node: AssignmentStatement) -> None:
        self._emit(f"{self._name_of(node.target)} = {self._expr(node.value)}")

    def visit_IfStatement(self, node: IfStatement, keyword_: str = "if") -> None:
        self._emit(f"{keyword_} {self._expr(node.condition)}:")
        self._emit_body(node.then_branch.statements)
        if isinstance(node.else_branch, IfStatement):
            self.visit_IfStatement(node.else_branch, "elif")
        elif node.else_branch is not None:
            self._emit("else:")
            self._emit_body(node.else_branch.statements)

    def visit_WhileStatement(self, node: WhileStatement) -> None:
        self._emit(f"while {self._expr(node.condition)}:")
        self._emit_body(node.body.statements)

    def visit_ForStatement(self, node: ForStatement) -> None:
        start = self._expr(node.start)
        end = self._expr(node.end)
        self._emit(f"for {self._name_of(node)} in range({start}, {end}):")
        self._emit_body(node.body.statements)

    def visit_ReturnStatement(self, node: ReturnStatement) -> None:
        if node.value is None:
            self._emit("return")
        else:
            self._emit(f"return {self._expr(node.value)}")

    def visit_ExpressionStatement(self, node: ExpressionStatement) -> None:
        self._emit(self._expr(node.expression))

    # =========================================================================
    # Expressions
    # =========================================================================

    def _expr(self, node: AstNode) -> str:
        text = node.accept(self)
        if self.typed.is_widened(node):
            return f"float({text})"
        return text

    def _precedence(self, node: AstNode) -> int:
        """Binding strength of the host text emitted for ``node``."""
        if self.typed.is_widened(node):
            return ATOM
        if isinstance(node, BinaryOp):
            return HOST_PRECEDENCE[node.operator]
        if isinstance(node, UnaryOp):
            return NOT if node.operator == TokenType.NOT else NEGATE
        return ATOM

    def _operand(self, node: AstNode, minimum: int) -> str:
        text = self._expr(node)
        if self._precedence(node) < minimum:
            return f"({text})"
        return text

    def _host_operator(self, node: BinaryOp) -> str:
        if (node.operator == TokenType.SLASH
                and self.typed.type_of(node.left) == INT
                and self.typed.type_of(node.right) == INT):
            return "//"
        return BINARY_OPERATORS[node.operator]

    def visit_Literal(self, node: Literal) -> str:
        if node.literal_type == TokenType.BOOL_LITERAL:
            return "True" if node.value else "False"
        if node.literal_type == TokenType.FLOAT_LITERAL and math.isinf(node.value):
            return "float('inf')"
        return repr(node.value)

    def visit_Identifier(self, node: Identifier) -> str:
        return self._name_of(node)

    def visit_BinaryOp(self, node: BinaryOp) -> str:
        # Left-deep chains (a + b + c + ...) are emitted in a loop, not recursively
        chain = [node]
        while (isinstance(chain[-1].left, BinaryOp)
               and not self.typed.is_widened(chain[-1].left)):
            chain.append(chain[-1].left)

        text = None
        below = None
        for current in reversed(chain):
            level = HOST_PRECEDENCE[current.operator]
            # Comparisons chain in Python, so they never nest unparenthesised
            left_minimum = level + 1 if level == COMPARISON else level
            if below is None:
                text = self._operand(current.left, left_minimum)
            elif HOST_PRECEDENCE[below.operator] < left_minimum:
                text = f"({text})"
            right = self._operand(current.right, level + 1)
            text = f"{text} {self._host_operator(current)} {right}"
            below = current
        return text

    def visit_UnaryOp(self, node: UnaryOp) -> str:
        if node.operator == TokenType.NOT:
            return f"not {self._operand(node.operand, NOT)}"
        return f"-{self._operand(node.operand, NEGATE)}"

    def visit_FunctionCall(self, node: FunctionCall) -> str:
        args = [self._expr(arg) for arg in node.arguments]
        symbol = self.typed.symbol_of(node.callee)
        if symbol.kind == SymbolKind.BUILTIN:
            return BUILTIN_CALLS[symbol.name].format(*args)
        return f"{self._host_name(symbol)}({', '.join(args)})"


def transpile(typed: TypedProgram, module_name: str = "main") -> str:
    """
    Transpile a type-checked program into Python source text.

    Args:
        typed: The TypedProgram produced by ``check``
        module_name: Name used in the header and the script logger

    Returns:
        Complete Python module source

    Raises:
        ValueError: If given anything other than a TypedProgram
        TranspileError: If an expression is nested too deeply to emit
    """
    if not isinstance(typed, TypedProgram):
        raise ValueError(
            f"transpile() needs a type-checked program, got {type(typed).__name__}"
        )
    try:
        return Transpiler(typed, module_name).transpile()
    except RecursionError:
        raise error_transpile_too_deep(typed.program.span) from None
