"""
Recursive descent parser for Lag.

Converts a token stream into an Abstract Syntax Tree (AST) rooted at
a Program node. Brace blocks and parenthesised groups are tracked on a
delimiter stack so that an unclosed '{' or '(' is reported at the
place it was opened.
"""

from typing import List, Optional
from .tokens import Token, TokenType, SourceSpan, is_type_token, describe_token
from .lexer import tokenize
from .ast import (
    TypeAnnotation,
    Expression, Literal, Identifier, BinaryOp, UnaryOp, FunctionCall,
    Statement, LetStatement, AssignmentStatement, ReturnStatement,
    ExpressionStatement, Block, IfStatement, WhileStatement, ForStatement,
    Parameter, FunctionDef, Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_unmatched_delimiter,
    error_unexpected_closing,
    error_nesting_too_deep,
)


LITERAL_TOKENS = (
    TokenType.INT_LITERAL,
    TokenType.FLOAT_LITERAL,
    TokenType.STRING_LITERAL,
    TokenType.BOOL_LITERAL,
)

CLOSING_FOR = {
    TokenType.LBRACE: TokenType.RBRACE,
    TokenType.LPAREN: TokenType.RPAREN,
}


class Parser:
    """
    Recursive descent parser for Lag.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    The parser implements standard precedence climbing for expressions:
        Lowest:  ||
                 &&
                 == !=
                 < > <= >=
                 + -
                 * / %
        Highest: unary (! -)
                 call
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 4,
        TokenType.GT: 4,
        TokenType.LE: 4,
        TokenType.GE: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.STAR: 6,
        TokenType.SLASH: 6,
        TokenType.PERCENT: 6,
    }

    def __init__(self, tokens: List[Token], filename: Optional[str] = None,
                 source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source
        self.pos = 0
        self._open_delimiters: List[Token] = []
        self._source_lines = source.splitlines() if source is not None else []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _open(self, token_type: TokenType, expected: str) -> Token:
        """Consume an opening delimiter and remember where it was."""
        token = self._consume(token_type, expected)
        self._open_delimiters.append(token)
        return token

    def _close(self, token_type: TokenType) -> Token:
        """Consume the closing delimiter for the innermost open one."""
        opener = self._open_delimiters[-1]
        if self._check(token_type):
            self._open_delimiters.pop()
            return self._advance()
        found = self._current()
        raise error_unmatched_delimiter(
            describe_token(opener),
            opener.span,
            found.span,
            describe_token(found),
            self._source_line(found.span),
        )

    def _source_line(self, span: SourceSpan) -> Optional[str]:
        line = span.start.line
        if 1 <= line <= len(self._source_lines):
            return self._source_lines[line - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error for the current token."""
        token = self._current()
        if token.type == TokenType.EOF:
            if self._open_delimiters:
                opener = self._open_delimiters[-1]
                raise error_unmatched_delimiter(
                    describe_token(opener), opener.span, token.span, "end of input"
                )
            raise error_unexpected_eof(expected, token.span)
        if token.type in (TokenType.RBRACE, TokenType.RPAREN):
            expected_closer = None
            if self._open_delimiters:
                expected_closer = CLOSING_FOR[self._open_delimiters[-1].type]
            if expected_closer != token.type:
                raise error_unexpected_closing(
                    describe_token(token), token.span, self._source_line(token.span)
                )
        raise error_unexpected_token(
            expected, describe_token(token), token.span, self._source_line(token.span)
        )

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Type Parsing
    # =========================================================================

    def _parse_type(self) -> TypeAnnotation:
        """Parse a type annotation."""
        token = self._current()
        if not is_type_token(token.type):
            self._error("type")
        self._advance()
        return TypeAnnotation(span=token.span, name=token.value)

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_binary_expr(1)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (!, -)."""
        if self._check_any(TokenType.NOT, TokenType.MINUS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        return self._parse_call_expr()

    def _parse_call_expr(self) -> Expression:
        """Parse a primary expression, then a call if one follows a name."""
        expr = self._parse_primary_expr()

        if isinstance(expr, Identifier) and self._check(TokenType.LPAREN):
            self._open(TokenType.LPAREN, "'('")
            args = []
            if not self._check(TokenType.RPAREN):
                args.append(self._parse_expression())
                while self._match(TokenType.COMMA):
                    args.append(self._parse_expression())
            end = self._close(TokenType.RPAREN)
            expr = FunctionCall(
                span=SourceSpan(expr.span.start, end.span.end),
                callee=expr,
                arguments=args
            )

        return expr

    def _parse_primary_expr(self) -> Expression:
        """Parse literals, identifiers and parenthesised expressions."""
        token = self._current()

        if token.type in LITERAL_TOKENS:
            self._advance()
            return Literal(
                span=token.span,
                value=token.value,
                literal_type=token.type,
                text=token.lexeme
            )

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.LPAREN:
            self._open(TokenType.LPAREN, "'('")
            expr = self._parse_expression()
            self._close(TokenType.RPAREN)
            return expr

        self._error("expression")

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a single statement."""
        if self._check(TokenType.LET):
            return self._parse_let_statement()
        if self._check(TokenType.IF):
            return self._parse_if_statement()
        if self._check(TokenType.WHILE):
            return self._parse_while_statement()
        if self._check(TokenType.FOR):
            return self._parse_for_statement()
        if self._check(TokenType.RETURN):
            return self._parse_return_statement()
        if self._check(TokenType.LBRACE):
            return self._parse_block()
        if self._check(TokenType.IDENTIFIER) and self._peek(1).type == TokenType.ASSIGN:
            return self._parse_assignment()

        start = self._current()
        expr = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")
        return ExpressionStatement(span=self._span_from(start), expression=expr)

    def _parse_let_statement(self) -> LetStatement:
        """Parse: let name (: type)? = expr ;"""
        start = self._advance()  # consume 'let'
        name = self._consume(TokenType.IDENTIFIER, "variable name").value

        type_annotation = None
        if self._match(TokenType.COLON):
            type_annotation = self._parse_type()

        self._consume(TokenType.ASSIGN, "'='")
        value = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")

        return LetStatement(
            span=self._span_from(start),
            name=name,
            type_annotation=type_annotation,
            value=value
        )

    def _parse_assignment(self) -> AssignmentStatement:
        start = self._advance()  # identifier
        self._advance()  # consume '='
        value = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")
        return AssignmentStatement(
            span=self._span_from(start),
            target=Identifier(span=start.span, name=start.value),
            value=value
        )

    def _parse_if_statement(self) -> IfStatement:
        start = self._advance()  # consume 'if'
        condition = self._parse_expression()
        then_branch = self._parse_block()

        else_branch = None
        if self._match(TokenType.ELSE):
            if self._check(TokenType.IF):
                else_branch = self._parse_if_statement()
            else:
                else_branch = self._parse_block()

        return IfStatement(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch
        )

    def _parse_while_statement(self) -> WhileStatement:
        start = self._advance()  # consume 'while'
        condition = self._parse_expression()
        body = self._parse_block()
        return WhileStatement(span=self._span_from(start), condition=condition, body=body)

    def _parse_for_statement(self) -> ForStatement:
        """Parse: for name in start..end { ... }"""
        start = self._advance()  # consume 'for'
        variable = self._consume(TokenType.IDENTIFIER, "loop variable").value
        self._consume(TokenType.IN, "'in'")
        range_start = self._parse_expression()
        self._consume(TokenType.RANGE, "'..'")
        range_end = self._parse_expression()
        body = self._parse_block()

        return ForStatement(
            span=self._span_from(start),
            variable=variable,
            start=range_start,
            end=range_end,
            body=body
        )

    def _parse_return_statement(self) -> ReturnStatement:
        start = self._advance()  # consume 'return'
        value = None
        if not self._check(TokenType.SEMICOLON):
            value = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")
        return ReturnStatement(span=self._span_from(start), value=value)

    def _parse_block(self) -> Block:
        """Parse a brace-delimited block."""
        start = self._open(TokenType.LBRACE, "'{'")
        statements = []

        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            statements.append(self._parse_statement())

        self._close(TokenType.RBRACE)
        return Block(span=self._span_from(start), statements=statements)

    # =========================================================================
    # Declaration Parsing
    # =========================================================================

    def _parse_parameter(self) -> Parameter:
        start = self._current()
        name = self._consume(TokenType.IDENTIFIER, "parameter name").value
        self._consume(TokenType.COLON, "':'")
        type_annotation = self._parse_type()
        return Parameter(
            span=self._span_from(start),
            name=name,
            type_annotation=type_annotation
        )

    def _parse_function_def(self) -> FunctionDef:
        """Parse a function definition (fn keyword)."""
        start = self._advance()  # consume 'fn'
        name = self._consume(TokenType.IDENTIFIER, "function name").value

        self._open(TokenType.LPAREN, "'('")
        parameters = []
        if not self._check(TokenType.RPAREN):
            parameters.append(self._parse_parameter())
            while self._match(TokenType.COMMA):
                parameters.append(self._parse_parameter())
        self._close(TokenType.RPAREN)

        return_type = None
        if self._match(TokenType.ARROW):
            return_type = self._parse_type()

        body = self._parse_block()

        return FunctionDef(
            span=self._span_from(start),
            name=name,
            parameters=parameters,
            return_type=return_type,
            body=body
        )

    def parse_program(self) -> Program:
        """Parse a complete program."""
        start = self._current()
        declarations = []

        while not self._is_at_end():
            if self._check(TokenType.FN):
                declarations.append(self._parse_function_def())
            elif self._check(TokenType.LET):
                declarations.append(self._parse_let_statement())
            else:
                self._error("'fn' or 'let'")

        return Program(
            span=SourceSpan(start.span.start, self._current().span.end),
            declarations=declarations,
            filename=self.filename
        )


def parse_tokens(tokens: List[Token], filename: Optional[str] = None,
                 source: Optional[str] = None) -> Program:
    """Parse an already tokenized program."""
    parser = Parser(tokens, filename, source)
    try:
        return parser.parse_program()
    except RecursionError:
        span = parser._current().span
        raise error_nesting_too_deep(span, parser._source_line(span)) from None


def parse(source: str, filename: Optional[str] = None) -> Program:
    """
    Parse Lag source text into a Program.

    Args:
        source: Lag source code
        filename: Optional filename for error messages

    Returns:
        Parsed Program AST

    Raises:
        LexerError: If tokenization fails
        ParserError: If parsing fails
    """
    tokens = tokenize(source, filename)
    return parse_tokens(tokens, filename, source)
