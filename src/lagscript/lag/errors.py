"""
Lag-specific exceptions and error handling.

Every pipeline failure is raised as an exception carrying structured
Diagnostic objects, so a host logging facility can render them without
parsing message strings.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type errors
- E3xx: Transpiler errors
- E4xx / W4xx: Host compilation errors and warnings
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    @property
    def location(self) -> Optional[str]:
        """The start location as 'file:line:column', if known."""
        if self.span is None:
            return None
        return str(self.span.start)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        loc = self.location or "<unknown>"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None and self.span is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": None,
            "hints": self.hints,
        }
        if self.span is not None:
            data["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return data


class ScriptError(Exception):
    """Base exception for every scripting pipeline failure."""
    pass


class LagError(ScriptError):
    """Base exception for errors found in Lag source."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def message(self) -> str:
        return self.diagnostic.message

    @property
    def line(self) -> int:
        return self.diagnostic.span.start.line if self.diagnostic.span else 0

    @property
    def column(self) -> int:
        return self.diagnostic.span.start.column if self.diagnostic.span else 0

    def __str__(self) -> str:
        return self.diagnostic.format()


class SyntaxError(LagError):
    """Lag source could not be tokenized or parsed."""
    pass


class LexerError(SyntaxError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(SyntaxError):
    """Error during parsing (E1xx)."""
    pass


class TypeError(LagError):
    """Error during type checking (E2xx).

    ``node`` is the offending AST node; ``expected`` and ``actual``
    describe the mismatch in words or type names.
    """

    def __init__(self, diagnostic: Diagnostic, node: Any = None,
                 expected: Optional[str] = None, actual: Optional[str] = None,
                 diagnostics: Optional[List[Diagnostic]] = None):
        super().__init__(diagnostic)
        self.node = node
        self.expected = expected
        self.actual = actual
        self.diagnostics = diagnostics if diagnostics is not None else [diagnostic]


class TranspileError(LagError):
    """Error while generating host source (E3xx)."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with '\"' on the same line"],
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated multi-line comment."""
    diag = Diagnostic(
        code="E004",
        message="unterminated multi-line comment (expected closing */)",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid escape sequence '\\{seq}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\r, \\\", \\\\, \\0"],
    )
    return LexerError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006: Invalid number literal."""
    diag = Diagnostic(
        code="E006",
        message=f"invalid number literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ParserError(diag)


def error_unmatched_delimiter(opening: str, opened_at: SourceSpan, span: SourceSpan,
                              found: str, source_line: str = None) -> ParserError:
    """E103: Bracket or brace never closed."""
    closing = {"'{'": "'}'", "'('": "')'"}.get(opening, "closing delimiter")
    diag = Diagnostic(
        code="E103",
        message=f"unmatched {opening} opened at {opened_at.start}: "
                f"expected {closing}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_closing(found: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Closing bracket or brace with no opener."""
    diag = Diagnostic(
        code="E104",
        message=f"unmatched closing {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def nesting_diagnostic(code: str, span: Optional[SourceSpan],
                       source_line: str = None) -> Diagnostic:
    """E105/E272/E301: Expression nested deeper than the interpreter can follow."""
    return Diagnostic(
        code=code,
        message="expression too deeply nested",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["split the expression using intermediate 'let' bindings"],
    )


def error_nesting_too_deep(span: SourceSpan, source_line: str = None) -> ParserError:
    """E105: Parser recursion limit reached."""
    return ParserError(nesting_diagnostic("E105", span, source_line))


# --- Transpiler error codes ---

def error_transpile_too_deep(span: Optional[SourceSpan]) -> TranspileError:
    """E301: Transpiler recursion limit reached."""
    return TranspileError(nesting_diagnostic("E301", span))


class DiagnosticCollector:
    """Collects diagnostics during a pipeline stage."""

    def __init__(self, max_errors: int = 20):
        self.diagnostics: List[Diagnostic] = []
        self.max_errors = max_errors
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    @property
    def should_stop(self) -> bool:
        """Check if we've hit the max error limit."""
        return self._error_count >= self.max_errors

    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.ERROR]

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"\n{self._error_count} error(s), {self.warning_count} warning(s)")
        elif self.warning_count > 0:
            parts.append(f"\n{self.warning_count} warning(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
