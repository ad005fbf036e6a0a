"""
Lag language front end.

This package provides:
- Lexer: Tokenizes Lag source code
- Parser: Builds the AST from tokens
- Type checker: Validates types, scopes and returns
- Transpiler: Emits Python source for a checked program

Usage:
    from lagscript.lag import parse, check, transpile

    source = '''
    let scale: float = 2;

    fn area(w: float, h: float) -> float {
        return w * h * scale;
    }
    '''
    program = parse(source)
    typed = check(program)
    python_source = transpile(typed, "shapes")
"""

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
    is_type_token,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    parse_tokens,
)

from .ast import (
    AstNode,
    AstVisitor,
    TypeAnnotation,
    Expression,
    Literal,
    Identifier,
    BinaryOp,
    UnaryOp,
    FunctionCall,
    Statement,
    LetStatement,
    AssignmentStatement,
    ReturnStatement,
    ExpressionStatement,
    Block,
    IfStatement,
    WhileStatement,
    ForStatement,
    Parameter,
    FunctionDef,
    Program,
    walk,
    shape,
    format_ast,
)

from .errors import (
    ScriptError,
    LagError,
    SyntaxError,
    LexerError,
    ParserError,
    TypeError,
    TranspileError,
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
)

from .types import (
    Type,
    PrimitiveType,
    FunctionType,
    INT, FLOAT, BOOL, STRING, VOID,
    resolve_type_name,
)

from .symbols import (
    SymbolTable,
    Symbol,
    SymbolKind,
    FunctionSignature,
    Scope,
)

from .checker import (
    TypeChecker,
    CheckResult,
    TypedProgram,
    check,
    check_program,
)

from .transpiler import (
    Transpiler,
    transpile,
)

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    'is_type_token',

    # Lexer
    'Lexer',
    'tokenize',

    # Parser
    'Parser',
    'parse',
    'parse_tokens',

    # AST
    'AstNode',
    'AstVisitor',
    'TypeAnnotation',
    'Expression',
    'Literal',
    'Identifier',
    'BinaryOp',
    'UnaryOp',
    'FunctionCall',
    'Statement',
    'LetStatement',
    'AssignmentStatement',
    'ReturnStatement',
    'ExpressionStatement',
    'Block',
    'IfStatement',
    'WhileStatement',
    'ForStatement',
    'Parameter',
    'FunctionDef',
    'Program',
    'walk',
    'shape',
    'format_ast',

    # Errors
    'ScriptError',
    'LagError',
    'SyntaxError',
    'LexerError',
    'ParserError',
    'TypeError',
    'TranspileError',
    'Diagnostic',
    'DiagnosticCollector',
    'ErrorSeverity',

    # Type system
    'Type',
    'PrimitiveType',
    'FunctionType',
    'INT', 'FLOAT', 'BOOL', 'STRING', 'VOID',
    'resolve_type_name',

    # Symbol table
    'SymbolTable',
    'Symbol',
    'SymbolKind',
    'FunctionSignature',
    'Scope',

    # Type checker
    'TypeChecker',
    'CheckResult',
    'TypedProgram',
    'check',
    'check_program',

    # Transpiler
    'Transpiler',
    'transpile',
]
