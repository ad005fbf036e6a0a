"""
Token types for the Lag lexer.

Lag uses C-style surface syntax: brace-delimited blocks, semicolon
terminated statements, `//` and `/* */` comments.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type errors
- E4xx: Host compilation errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the Lag lexer."""

    # --- Literals ---
    INT_LITERAL = auto()        # 42
    FLOAT_LITERAL = auto()      # 3.14, 1e-9
    STRING_LITERAL = auto()     # "hello"
    BOOL_LITERAL = auto()       # true, false

    # --- Identifiers ---
    IDENTIFIER = auto()

    # --- Keywords ---
    LET = auto()                # let
    FN = auto()                 # fn
    RETURN = auto()             # return
    IF = auto()                 # if
    ELSE = auto()               # else
    WHILE = auto()              # while
    FOR = auto()                # for
    IN = auto()                 # in

    # --- Type keywords ---
    TYPE_INT = auto()           # int
    TYPE_FLOAT = auto()         # float
    TYPE_BOOL = auto()          # bool
    TYPE_STRING = auto()        # string
    TYPE_VOID = auto()          # void

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==
    NE = auto()                 # !=

    # --- Logical operators ---
    AND = auto()                # &&
    OR = auto()                 # ||
    NOT = auto()                # !

    # --- Assignment ---
    ASSIGN = auto()             # =

    # --- Delimiters ---
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    COLON = auto()              # :
    SEMICOLON = auto()          # ;
    COMMA = auto()              # ,
    ARROW = auto()              # ->
    RANGE = auto()              # ..

    # --- Special ---
    EOF = auto()


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # The actual value (int, float, str, bool)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.INT_LITERAL, TokenType.FLOAT_LITERAL,
                         TokenType.STRING_LITERAL, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "fn": TokenType.FN,
    "return": TokenType.RETURN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "in": TokenType.IN,

    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,

    "int": TokenType.TYPE_INT,
    "float": TokenType.TYPE_FLOAT,
    "bool": TokenType.TYPE_BOOL,
    "string": TokenType.TYPE_STRING,
    "void": TokenType.TYPE_VOID,
}


# Human-readable spelling used in parser error messages
TOKEN_SPELLING: dict[TokenType, str] = {
    TokenType.LBRACE: "'{'",
    TokenType.RBRACE: "'}'",
    TokenType.LPAREN: "'('",
    TokenType.RPAREN: "')'",
    TokenType.COLON: "':'",
    TokenType.SEMICOLON: "';'",
    TokenType.COMMA: "','",
    TokenType.ARROW: "'->'",
    TokenType.RANGE: "'..'",
    TokenType.ASSIGN: "'='",
    TokenType.EOF: "end of input",
}


def is_type_token(token_type: TokenType) -> bool:
    """Check if a token type represents a type keyword."""
    return token_type.name.startswith("TYPE_")


def describe_token(token: Token) -> str:
    """Describe a token for an error message."""
    if token.type in TOKEN_SPELLING:
        return TOKEN_SPELLING[token.type]
    if token.lexeme:
        return f"'{token.lexeme}'"
    return token.type.name
