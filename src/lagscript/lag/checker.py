"""
Type checker for Lag.

Traverses the AST in a single top-down, left-to-right pass and either
collects diagnostics (``TypeChecker.check``) or produces a TypedProgram
for the transpiler (``check``). The checker never mutates the AST; the
resolved types, symbol bindings and int-to-float widenings are kept in
side tables on the TypedProgram.
"""

from typing import List, Optional, Dict, Set, Any
from dataclasses import dataclass, field

from .ast import (
    AstNode, Program, FunctionDef, Block,
    Statement, LetStatement, AssignmentStatement,
    ForStatement, WhileStatement, IfStatement,
    ExpressionStatement, ReturnStatement,
    Expression, Literal, Identifier, BinaryOp, UnaryOp, FunctionCall,
    TypeAnnotation,
)
from .tokens import TokenType, SourceSpan
from .types import (
    Type, ERROR, INT, FLOAT, BOOL, STRING, VOID,
    resolve_type_name, is_numeric, is_error, needs_widening, common_type,
)
from .symbols import SymbolTable, Symbol, SymbolKind, FunctionSignature
from .errors import (
    Diagnostic, DiagnosticCollector, ErrorSeverity,
    TypeError as LagTypeError, nesting_diagnostic,
)


ARITHMETIC_OPS = (TokenType.PLUS, TokenType.MINUS, TokenType.STAR,
                  TokenType.SLASH, TokenType.PERCENT)
COMPARISON_OPS = (TokenType.LT, TokenType.GT, TokenType.LE, TokenType.GE)
EQUALITY_OPS = (TokenType.EQ, TokenType.NE)
LOGICAL_OPS = (TokenType.AND, TokenType.OR)

OPERATOR_SPELLING = {
    TokenType.PLUS: "+", TokenType.MINUS: "-", TokenType.STAR: "*",
    TokenType.SLASH: "/", TokenType.PERCENT: "%",
    TokenType.LT: "<", TokenType.GT: ">", TokenType.LE: "<=", TokenType.GE: ">=",
    TokenType.EQ: "==", TokenType.NE: "!=",
    TokenType.AND: "&&", TokenType.OR: "||", TokenType.NOT: "!",
}


@dataclass
class TypedProgram:
    """A Program that passed type checking, plus its side tables.

    Tables are keyed by node identity; the program object is kept alive
    alongside them.
    """
    program: Program
    types: Dict[int, Type] = field(default_factory=dict)
    bindings: Dict[int, Symbol] = field(default_factory=dict)
    widened: Set[int] = field(default_factory=set)
    signatures: Dict[int, FunctionSignature] = field(default_factory=dict)

    def type_of(self, node: AstNode) -> Type:
        return self.types[id(node)]

    def symbol_of(self, node: AstNode) -> Symbol:
        """The symbol an identifier refers to, or a declaration introduces."""
        return self.bindings[id(node)]

    def is_widened(self, node: AstNode) -> bool:
        return id(node) in self.widened

    def signature_of(self, symbol: Symbol) -> Optional[FunctionSignature]:
        return self.signatures.get(id(symbol))


@dataclass
class TypeFailure:
    """One type error with the offending node and the mismatch."""
    diagnostic: Diagnostic
    node: Any
    expected: str
    actual: str


@dataclass
class CheckResult:
    """Result of type checking a program."""
    diagnostics: List[Diagnostic]
    failures: List[TypeFailure]
    has_errors: bool
    has_warnings: bool
    typed_program: Optional[TypedProgram] = None


class TypeChecker:
    """
    Type checker for Lag.

    Traverses the AST and validates:
    - Declarations before use, no redeclaration within a scope
    - Type compatibility in lets, assignments, calls and returns
    - Boolean conditions and integer loop bounds
    - Exact call arity against declared functions and builtins
    - A return on every path of a non-void function
    """

    def __init__(self, max_errors: int = 20, source: Optional[str] = None):
        self.symbols = SymbolTable()
        self.diagnostics = DiagnosticCollector(max_errors)
        self.max_errors = max_errors
        self._source_lines = source.splitlines() if source is not None else []
        self._failures: List[TypeFailure] = []
        self._current_function: Optional[FunctionSignature] = None
        self._typed: Optional[TypedProgram] = None

    def check(self, program: Program) -> CheckResult:
        """Type check a complete program."""
        self._typed = TypedProgram(program=program)
        try:
            self._check_program(program)
        except RecursionError:
            self._too_deep(program)

        typed = None if self.diagnostics.has_errors else self._typed
        if typed is not None:
            typed.signatures = dict(self.symbols.signatures)

        return CheckResult(
            diagnostics=self.diagnostics.diagnostics,
            failures=list(self._failures),
            has_errors=self.diagnostics.has_errors,
            has_warnings=self.diagnostics.has_warnings,
            typed_program=typed,
        )

    # =========================================================================
    # Program/Function Checking
    # =========================================================================

    def _check_program(self, program: Program) -> None:
        self.symbols.push_scope("module")

        # Pre-pass: register every function so calls may precede declarations
        for func in program.functions:
            self._register_function(func)

        for decl in program.declarations:
            if self.diagnostics.should_stop:
                break
            if isinstance(decl, FunctionDef):
                self._check_function(decl)
            else:
                self._check_let_statement(decl, is_global=True)

        self.symbols.pop_scope()

    def _register_function(self, func: FunctionDef) -> None:
        """Register a function signature in the module scope."""
        params = []
        for param in func.parameters:
            params.append((param.name, self._resolve_type_node(param.type_annotation, param)))
        return_type = VOID
        if func.return_type is not None:
            return_type = self._resolve_type_node(func.return_type)

        signature = FunctionSignature(func.name, params, return_type)
        symbol = Symbol(
            name=func.name,
            kind=SymbolKind.FUNCTION,
            type=signature.to_type(),
            span=func.span,
            is_global=True,
            node=func,
        )
        if self.symbols.define_function(symbol, signature):
            self._bind(func, symbol)
        else:
            self._redeclared(func, func.name)

    def _check_function(self, func: FunctionDef) -> None:
        """Type check a function definition."""
        if id(func) not in self._typed.bindings:
            return  # Redeclared; already reported
        symbol = self._typed.bindings[id(func)]
        signature = self.symbols.signature_of(symbol)

        self._current_function = signature
        self.symbols.push_scope(f"fn {func.name}")

        for param, (_, param_type) in zip(func.parameters, signature.params):
            param_symbol = Symbol(
                name=param.name,
                kind=SymbolKind.PARAMETER,
                type=param_type,
                span=param.span,
                is_mutable=True,
                node=param,
            )
            if self.symbols.define(param_symbol):
                self._bind(param, param_symbol)
            else:
                self._redeclared(param, param.name)

        self._check_block(func.body)

        if signature.return_type != VOID and not self._always_returns(func.body):
            self._error(
                f"function '{func.name}' does not return a value on every path",
                func.span, "E243", func,
                expected=f"return of type '{signature.return_type}'",
                actual="missing return",
            )

        self.symbols.pop_scope()
        self._current_function = None

    def _always_returns(self, stmt: Statement) -> bool:
        """Whether every path through ``stmt`` ends in a return."""
        if isinstance(stmt, ReturnStatement):
            return True
        if isinstance(stmt, Block):
            return any(self._always_returns(s) for s in stmt.statements)
        if isinstance(stmt, IfStatement):
            return (stmt.else_branch is not None
                    and self._always_returns(stmt.then_branch)
                    and self._always_returns(stmt.else_branch))
        return False

    # =========================================================================
    # Statement Checking
    # =========================================================================

    def _check_block(self, block: Block) -> None:
        self.symbols.push_scope("block")
        for stmt in block.statements:
            self._check_statement(stmt)
        self.symbols.pop_scope()

    def _check_statement(self, stmt: Statement) -> None:
        """Check a statement."""
        if self.diagnostics.should_stop:
            return

        if isinstance(stmt, LetStatement):
            self._check_let_statement(stmt)
        elif isinstance(stmt, AssignmentStatement):
            self._check_assignment_statement(stmt)
        elif isinstance(stmt, IfStatement):
            self._check_if_statement(stmt)
        elif isinstance(stmt, WhileStatement):
            self._check_condition(stmt.condition, "while")
            self._check_block(stmt.body)
        elif isinstance(stmt, ForStatement):
            self._check_for_statement(stmt)
        elif isinstance(stmt, ReturnStatement):
            self._check_return_statement(stmt)
        elif isinstance(stmt, Block):
            self._check_block(stmt)
        elif isinstance(stmt, ExpressionStatement):
            self._check_expression(stmt.expression)
        else:
            raise ValueError(f"unhandled statement node {type(stmt).__name__}")

    def _check_let_statement(self, stmt: LetStatement, is_global: bool = False) -> None:
        """Check a let statement; the name is visible only after it."""
        init_type = self._check_expression(stmt.value)

        if init_type == VOID:
            self._error(
                f"cannot initialize '{stmt.name}' with a void expression",
                stmt.value.span, "E211", stmt,
                expected="value", actual="void",
            )
            init_type = ERROR

        if stmt.type_annotation is not None:
            declared_type = self._resolve_type_node(stmt.type_annotation, stmt)
            self._expect_assignable(
                declared_type, stmt.value, init_type, stmt,
                f"cannot initialize '{stmt.name}' of type '{declared_type}' "
                f"with a value of type '{init_type}'",
                "E210",
            )
            var_type = declared_type
        else:
            var_type = init_type

        symbol = Symbol(
            name=stmt.name,
            kind=SymbolKind.VARIABLE,
            type=var_type,
            span=stmt.span,
            is_mutable=True,
            is_global=is_global,
            node=stmt,
        )
        if self.symbols.define(symbol):
            self._bind(stmt, symbol)
        else:
            self._redeclared(stmt, stmt.name)

    def _check_assignment_statement(self, stmt: AssignmentStatement) -> None:
        value_type = self._check_expression(stmt.value)
        target = stmt.target
        symbol = self.symbols.lookup(target.name)

        if symbol is None:
            self._undeclared(target)
            return

        self._bind(target, symbol)
        self._record(target, symbol.type)

        if symbol.kind in (SymbolKind.FUNCTION, SymbolKind.BUILTIN):
            self._error(
                f"cannot assign to function '{target.name}'",
                target.span, "E213", stmt,
                expected="mutable variable", actual="function",
            )
            return
        if not symbol.is_mutable:
            self._error(
                f"cannot assign to loop variable '{target.name}'",
                target.span, "E213", stmt,
                expected="mutable variable", actual=f"loop variable '{target.name}'",
            )
            return

        self._expect_assignable(
            symbol.type, stmt.value, value_type, stmt,
            f"cannot assign a value of type '{value_type}' to '{target.name}' "
            f"of type '{symbol.type}'",
            "E212",
        )

    def _check_if_statement(self, stmt: IfStatement) -> None:
        self._check_condition(stmt.condition, "if")
        self._check_block(stmt.then_branch)
        if isinstance(stmt.else_branch, IfStatement):
            self._check_if_statement(stmt.else_branch)
        elif stmt.else_branch is not None:
            self._check_block(stmt.else_branch)

    def _check_condition(self, expr: Expression, keyword: str) -> None:
        cond_type = self._check_expression(expr)
        if cond_type != BOOL and not is_error(cond_type):
            self._error(
                f"'{keyword}' condition must be 'bool', got '{cond_type}'",
                expr.span, "E220", expr,
                expected="bool", actual=cond_type.name,
            )

    def _check_for_statement(self, stmt: ForStatement) -> None:
        """Check a counted loop; bounds are resolved before the variable exists."""
        for bound in (stmt.start, stmt.end):
            bound_type = self._check_expression(bound)
            if bound_type != INT and not is_error(bound_type):
                self._error(
                    f"'for' range bound must be 'int', got '{bound_type}'",
                    bound.span, "E221", bound,
                    expected="int", actual=bound_type.name,
                )

        self.symbols.push_scope("for")
        symbol = Symbol(
            name=stmt.variable,
            kind=SymbolKind.LOOP_VARIABLE,
            type=INT,
            span=stmt.span,
            is_mutable=False,
            node=stmt,
        )
        self.symbols.define(symbol)
        self._bind(stmt, symbol)
        self._check_block(stmt.body)
        self.symbols.pop_scope()

    def _check_return_statement(self, stmt: ReturnStatement) -> None:
        return_type = self._current_function.return_type

        if stmt.value is None:
            if return_type != VOID:
                self._error(
                    f"missing return value, function returns '{return_type}'",
                    stmt.span, "E242", stmt,
                    expected=return_type.name, actual="void",
                )
            return

        value_type = self._check_expression(stmt.value)
        if return_type == VOID:
            self._error(
                "void function cannot return a value",
                stmt.value.span, "E241", stmt,
                expected="void", actual=value_type.name,
            )
            return

        self._expect_assignable(
            return_type, stmt.value, value_type, stmt,
            f"cannot return a value of type '{value_type}' from a function "
            f"returning '{return_type}'",
            "E240",
        )

    # =========================================================================
    # Expression Checking
    # =========================================================================

    def _check_expression(self, expr: Expression) -> Type:
        """Check an expression and return its type."""
        if isinstance(expr, Literal):
            result = self._check_literal(expr)
        elif isinstance(expr, Identifier):
            result = self._check_identifier(expr)
        elif isinstance(expr, BinaryOp):
            result = self._check_binary_op(expr)
        elif isinstance(expr, UnaryOp):
            result = self._check_unary_op(expr)
        elif isinstance(expr, FunctionCall):
            result = self._check_function_call(expr)
        else:
            raise ValueError(f"unhandled expression node {type(expr).__name__}")
        self._record(expr, result)
        return result

    def _check_literal(self, expr: Literal) -> Type:
        return {
            TokenType.INT_LITERAL: INT,
            TokenType.FLOAT_LITERAL: FLOAT,
            TokenType.STRING_LITERAL: STRING,
            TokenType.BOOL_LITERAL: BOOL,
        }[expr.literal_type]

    def _check_identifier(self, expr: Identifier) -> Type:
        symbol = self.symbols.lookup(expr.name)
        if symbol is None:
            self._undeclared(expr)
            return ERROR

        self._bind(expr, symbol)
        if symbol.kind in (SymbolKind.FUNCTION, SymbolKind.BUILTIN):
            self._error(
                f"function '{expr.name}' cannot be used as a value",
                expr.span, "E271", expr,
                expected="value", actual="function",
            )
            return ERROR
        return symbol.type

    def _check_binary_op(self, expr: BinaryOp) -> Type:
        # Left-deep chains (a + b + c + ...) are walked in a loop, not recursively
        chain = [expr]
        while isinstance(chain[-1].left, BinaryOp):
            chain.append(chain[-1].left)

        left_type = self._check_expression(chain[-1].left)
        for node in reversed(chain):
            right_type = self._check_expression(node.right)
            left_type = self._binary_result(node, left_type, right_type)
            if node is not expr:
                self._record(node, left_type)
        return left_type

    def _binary_result(self, expr: BinaryOp, left_type: Type, right_type: Type) -> Type:
        op = expr.operator
        spelling = OPERATOR_SPELLING[op]

        if is_error(left_type) or is_error(right_type):
            return BOOL if op in COMPARISON_OPS + EQUALITY_OPS + LOGICAL_OPS else ERROR

        if op in ARITHMETIC_OPS:
            if is_numeric(left_type) and is_numeric(right_type):
                if left_type == INT and right_type == INT:
                    return INT
                return FLOAT
            if op == TokenType.PLUS and left_type == STRING and right_type == STRING:
                return STRING
            self._operand_error(expr, spelling, left_type, right_type, "E250",
                                "numeric operands")
            return ERROR

        if op in COMPARISON_OPS:
            if is_numeric(left_type) and is_numeric(right_type):
                return BOOL
            self._operand_error(expr, spelling, left_type, right_type, "E251",
                                "numeric operands")
            return BOOL

        if op in EQUALITY_OPS:
            if common_type(left_type, right_type) is None or left_type == VOID:
                self._operand_error(expr, spelling, left_type, right_type, "E252",
                                    "operands of a common type")
            return BOOL

        if op in LOGICAL_OPS:
            if left_type != BOOL or right_type != BOOL:
                self._operand_error(expr, spelling, left_type, right_type, "E253",
                                    "bool operands")
            return BOOL

        raise ValueError(f"unhandled binary operator {op.name}")

    def _check_unary_op(self, expr: UnaryOp) -> Type:
        operand_type = self._check_expression(expr.operand)
        if is_error(operand_type):
            return BOOL if expr.operator == TokenType.NOT else ERROR

        if expr.operator == TokenType.NOT:
            if operand_type != BOOL:
                self._error(
                    f"operand of '!' must be 'bool', got '{operand_type}'",
                    expr.span, "E260", expr,
                    expected="bool", actual=operand_type.name,
                )
            return BOOL

        if is_numeric(operand_type):
            return operand_type
        self._error(
            f"cannot negate a value of type '{operand_type}'",
            expr.span, "E261", expr,
            expected="int or float", actual=operand_type.name,
        )
        return ERROR

    def _check_function_call(self, expr: FunctionCall) -> Type:
        callee = expr.callee
        symbol = self.symbols.lookup(callee.name)

        # Arguments are checked first, in source order
        arg_types = [self._check_expression(arg) for arg in expr.arguments]

        if symbol is None:
            self._error(
                f"call to undeclared function '{callee.name}'",
                callee.span, "E230", expr,
                expected="declared function", actual="undeclared",
            )
            return ERROR

        self._bind(callee, symbol)
        signature = self.symbols.signature_of(symbol)
        if signature is None:
            self._error(
                f"'{callee.name}' is not a function",
                callee.span, "E230", expr,
                expected="function", actual=f"variable of type '{symbol.type}'",
            )
            return ERROR
        self._record(callee, symbol.type)

        if len(expr.arguments) != signature.arity:
            self._error(
                f"'{callee.name}' takes {signature.arity} argument(s) "
                f"but {len(expr.arguments)} were given",
                expr.span, "E231", expr,
                expected=f"{signature.arity} argument(s)",
                actual=f"{len(expr.arguments)} argument(s)",
            )
            return signature.return_type

        for arg, arg_type, (param_name, param_type) in zip(expr.arguments, arg_types,
                                                           signature.params):
            self._expect_assignable(
                param_type, arg, arg_type, arg,
                f"argument '{param_name}' of '{callee.name}' expects "
                f"'{param_type}', got '{arg_type}'",
                "E232",
            )

        return signature.return_type

    # =========================================================================
    # Helpers
    # =========================================================================

    def _resolve_type_node(self, node: TypeAnnotation, owner: Optional[AstNode] = None) -> Type:
        """Resolve a type annotation; variables and parameters cannot be void."""
        resolved = resolve_type_name(node.name)
        if resolved is None:
            self._error(f"unknown type '{node.name}'", node.span, "E270", node,
                        expected="type", actual=node.name)
            return ERROR
        if resolved == VOID and owner is not None:
            self._error(
                "variables and parameters cannot have type 'void'",
                node.span, "E214", owner,
                expected="int, float, bool or string", actual="void",
            )
            return ERROR
        return resolved

    def _expect_assignable(self, target: Type, expr: Expression, actual: Type,
                           node: AstNode, message: str, code: str) -> None:
        """Check assignability of ``expr`` to ``target`` and note widening."""
        if is_error(actual) or is_error(target):
            return
        if not target.is_assignable_from(actual):
            self._error(message, expr.span, code, node,
                        expected=target.name, actual=actual.name)
            return
        if needs_widening(target, actual):
            self._typed.widened.add(id(expr))

    def _operand_error(self, expr: BinaryOp, spelling: str, left: Type, right: Type,
                       code: str, expected: str) -> None:
        self._error(
            f"cannot apply '{spelling}' to '{left}' and '{right}'",
            expr.span, code, expr,
            expected=expected, actual=f"'{left}' and '{right}'",
        )

    def _undeclared(self, expr: Identifier) -> None:
        self._error(
            f"undeclared identifier '{expr.name}'",
            expr.span, "E201", expr,
            expected=f"declaration of '{expr.name}'", actual="undeclared",
        )

    def _redeclared(self, node: AstNode, name: str) -> None:
        self._error(
            f"'{name}' is already declared in this scope",
            node.span, "E202", node,
            expected=f"unique name '{name}' in scope", actual="redeclaration",
        )

    def _bind(self, node: AstNode, symbol: Symbol) -> None:
        self._typed.bindings[id(node)] = symbol

    def _record(self, node: AstNode, t: Type) -> None:
        self._typed.types[id(node)] = t

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def _error(self, message: str, span: SourceSpan, code: str, node: Any,
               expected: str, actual: str) -> None:
        """Record an error diagnostic together with the offending node."""
        source_line = None
        line = span.start.line
        if 1 <= line <= len(self._source_lines):
            source_line = self._source_lines[line - 1]
        diag = Diagnostic(
            code=code,
            message=message,
            severity=ErrorSeverity.ERROR,
            span=span,
            source_line=source_line,
        )
        self.diagnostics.add(diag)
        self._failures.append(TypeFailure(diag, node, expected, actual))

    def _too_deep(self, program: Program) -> None:
        diag = nesting_diagnostic("E272", program.span)
        self.diagnostics.add(diag)
        self._failures.append(TypeFailure(diag, program, "shallower nesting",
                                          "too deeply nested"))


def check_program(program: Program, max_errors: int = 20,
                  source: Optional[str] = None) -> CheckResult:
    """
    Type check a program and collect every diagnostic.

    Args:
        program: The parsed Program AST
        max_errors: Maximum errors before stopping (default 20)
        source: Optional source text, quoted in diagnostics

    Returns:
        CheckResult with diagnostics and, when clean, the TypedProgram
    """
    checker = TypeChecker(max_errors=max_errors, source=source)
    return checker.check(program)


def check(program: Program, max_errors: int = 20,
          source: Optional[str] = None) -> TypedProgram:
    """
    Type check a program, raising on the first error.

    Raises:
        TypeError: carrying the offending node, expected and actual
            descriptions, and every diagnostic collected
    """
    result = check_program(program, max_errors, source)
    if result.has_errors:
        first = result.failures[0]
        raise LagTypeError(
            first.diagnostic,
            node=first.node,
            expected=first.expected,
            actual=first.actual,
            diagnostics=result.diagnostics,
        )
    return result.typed_program
