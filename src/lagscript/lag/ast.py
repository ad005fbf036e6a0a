"""
Abstract Syntax Tree (AST) node definitions for Lag.

The tree is a closed set of node dataclasses, one per syntactic
construct. Consumers (type checker, transpiler) dispatch on the node
class through ``accept`` and raise on any class they do not handle.

Every node also exposes a generic shape for tooling:

- ``kind``: the construct tag ("Program", "Let", "Binary", ...)
- ``literal_value``: source text of a literal, ``None`` elsewhere
- ``children``: ordered child nodes
"""

from dataclasses import dataclass, field, fields
from typing import Optional, List, Union, Any, ClassVar
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    KIND: ClassVar[str] = "Node"

    @property
    def kind(self) -> str:
        return self.KIND

    @property
    def literal_value(self) -> Optional[str]:
        return None

    @property
    def children(self) -> List["AstNode"]:
        """Child nodes in declaration order of the node's fields."""
        result = []
        for f in fields(self):
            if f.name == "span":
                continue
            value = getattr(self, f.name)
            if isinstance(value, AstNode):
                result.append(value)
            elif isinstance(value, list):
                result.extend(item for item in value if isinstance(item, AstNode))
        return result

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Type Nodes
# =============================================================================

@dataclass
class TypeAnnotation(AstNode):
    """A type annotation like 'int' or 'string'."""
    name: str

    KIND: ClassVar[str] = "Type"


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class Literal(Expression):
    """A literal value (int, float, string, bool)."""
    value: Union[int, float, str, bool]
    literal_type: TokenType  # INT_LITERAL, FLOAT_LITERAL, STRING_LITERAL, BOOL_LITERAL
    text: str = ""           # Original lexeme

    KIND: ClassVar[str] = "Literal"

    @property
    def literal_value(self) -> Optional[str]:
        return self.text


@dataclass
class Identifier(Expression):
    """A variable or function name reference."""
    name: str

    KIND: ClassVar[str] = "Identifier"


@dataclass
class BinaryOp(Expression):
    """A binary operation (e.g., a + b, x && y)."""
    left: Expression
    operator: TokenType
    right: Expression

    KIND: ClassVar[str] = "Binary"


@dataclass
class UnaryOp(Expression):
    """A unary operation (e.g., !x, -n)."""
    operator: TokenType
    operand: Expression

    KIND: ClassVar[str] = "Unary"


@dataclass
class FunctionCall(Expression):
    """A call of a named function (e.g., area(2.0, 3.0))."""
    callee: Identifier
    arguments: List[Expression]

    KIND: ClassVar[str] = "Call"


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class LetStatement(Statement):
    """A variable declaration.

    Syntax:
        let name = expr;
        let name: type = expr;
    """
    name: str
    type_annotation: Optional[TypeAnnotation]
    value: Expression

    KIND: ClassVar[str] = "Let"


@dataclass
class AssignmentStatement(Statement):
    """Assignment to an existing variable (e.g., x = x + 1;)."""
    target: Identifier
    value: Expression

    KIND: ClassVar[str] = "Assign"


@dataclass
class ReturnStatement(Statement):
    """A return statement, with or without a value."""
    value: Optional[Expression] = None

    KIND: ClassVar[str] = "Return"


@dataclass
class ExpressionStatement(Statement):
    """An expression evaluated for its side effects."""
    expression: Expression

    KIND: ClassVar[str] = "ExprStmt"


@dataclass
class Block(Statement):
    """A brace-delimited block opening a new scope."""
    statements: List[Statement] = field(default_factory=list)

    KIND: ClassVar[str] = "Block"


@dataclass
class IfStatement(Statement):
    """An if statement; else_branch is a Block or a nested IfStatement."""
    condition: Expression
    then_branch: Block
    else_branch: Optional[Union[Block, "IfStatement"]] = None

    KIND: ClassVar[str] = "If"


@dataclass
class WhileStatement(Statement):
    """A while loop."""
    condition: Expression
    body: Block

    KIND: ClassVar[str] = "While"


@dataclass
class ForStatement(Statement):
    """A counted loop over a half-open range.

    Syntax:
        for i in start..end { ... }
    """
    variable: str
    start: Expression
    end: Expression
    body: Block

    KIND: ClassVar[str] = "For"


# =============================================================================
# Declarations
# =============================================================================

@dataclass
class Parameter(AstNode):
    """A function parameter."""
    name: str
    type_annotation: TypeAnnotation

    KIND: ClassVar[str] = "Param"


@dataclass
class FunctionDef(AstNode):
    """A function definition.

    Syntax:
        fn name(param1: type1, param2: type2) -> return_type { ... }

    A missing return type means void.
    """
    name: str
    parameters: List[Parameter]
    return_type: Optional[TypeAnnotation]
    body: Block

    KIND: ClassVar[str] = "Function"


@dataclass
class Program(AstNode):
    """A complete Lag program: top-level declarations in source order."""
    declarations: List[Union[FunctionDef, LetStatement]] = field(default_factory=list)
    filename: Optional[str] = None

    KIND: ClassVar[str] = "Program"

    @property
    def functions(self) -> List[FunctionDef]:
        return [d for d in self.declarations if isinstance(d, FunctionDef)]

    @property
    def globals(self) -> List[LetStatement]:
        return [d for d in self.declarations if isinstance(d, LetStatement)]


# =============================================================================
# Visitor Helpers
# =============================================================================

def walk(node: AstNode):
    """Yield ``node`` and all of its descendants, depth first."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def shape(node: AstNode) -> tuple:
    """Structural fingerprint of a tree: kinds, literals and child order."""
    return (node.kind, node.literal_value, tuple(shape(c) for c in node.children))


def format_ast(node: AstNode, indent: int = 0) -> str:
    """Render an AST as an indented outline for debugging."""
    label = node.kind
    if isinstance(node, (Identifier, LetStatement, FunctionDef, Parameter, TypeAnnotation)):
        label += f" {node.name}"
    elif isinstance(node, ForStatement):
        label += f" {node.variable}"
    elif isinstance(node, (BinaryOp, UnaryOp)):
        label += f" {node.operator.name}"
    elif node.literal_value is not None:
        label += f" {node.literal_value}"
    lines = ["  " * indent + label]
    for child in node.children:
        lines.append(format_ast(child, indent + 1))
    return "\n".join(lines)
