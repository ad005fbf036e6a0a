"""
Unit tests for the Lag lexer.
"""

import pytest
from lagscript.lag import tokenize, Lexer, TokenType, LexerError


def token_types(source: str):
    return [t.type for t in tokenize(source)]


class TestLiterals:
    """Test literal tokens."""

    def test_int_literal(self):
        tokens = tokenize("42")
        assert tokens[0].type == TokenType.INT_LITERAL
        assert tokens[0].value == 42
        assert tokens[-1].type == TokenType.EOF

    def test_float_literal(self):
        tokens = tokenize("3.25 1e3 2.5E-2")
        assert [t.value for t in tokens[:-1]] == [3.25, 1000.0, 0.025]
        assert all(t.type == TokenType.FLOAT_LITERAL for t in tokens[:-1])

    def test_float_keeps_lexeme(self):
        """The original spelling is kept for the AST."""
        token = tokenize("1e3")[0]
        assert token.lexeme == "1e3"

    def test_range_is_not_float(self):
        """'1..5' lexes as INT RANGE INT."""
        assert token_types("1..5") == [
            TokenType.INT_LITERAL, TokenType.RANGE, TokenType.INT_LITERAL, TokenType.EOF
        ]

    def test_string_literal(self):
        token = tokenize('"hello"')[0]
        assert token.type == TokenType.STRING_LITERAL
        assert token.value == "hello"

    def test_string_escapes(self):
        token = tokenize(r'"a\tb\n\"c\"\\"')[0]
        assert token.value == 'a\tb\n"c"\\'

    def test_bool_literals(self):
        tokens = tokenize("true false")
        assert tokens[0].type == TokenType.BOOL_LITERAL
        assert tokens[0].value is True
        assert tokens[1].value is False


class TestKeywordsAndOperators:
    """Test keywords, identifiers and operators."""

    def test_keywords(self):
        assert token_types("let fn return if else while for in") == [
            TokenType.LET, TokenType.FN, TokenType.RETURN, TokenType.IF,
            TokenType.ELSE, TokenType.WHILE, TokenType.FOR, TokenType.IN,
            TokenType.EOF,
        ]

    def test_type_keywords(self):
        assert token_types("int float bool string void") == [
            TokenType.TYPE_INT, TokenType.TYPE_FLOAT, TokenType.TYPE_BOOL,
            TokenType.TYPE_STRING, TokenType.TYPE_VOID, TokenType.EOF,
        ]

    def test_identifier(self):
        token = tokenize("player_speed2")[0]
        assert token.type == TokenType.IDENTIFIER
        assert token.value == "player_speed2"

    def test_two_char_operators(self):
        assert token_types("-> == != <= >= && || ..") == [
            TokenType.ARROW, TokenType.EQ, TokenType.NE, TokenType.LE,
            TokenType.GE, TokenType.AND, TokenType.OR, TokenType.RANGE,
            TokenType.EOF,
        ]

    def test_single_char_operators(self):
        assert token_types("+ - * / % < > ! = { } ( ) : ; ,") == [
            TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
            TokenType.PERCENT, TokenType.LT, TokenType.GT, TokenType.NOT,
            TokenType.ASSIGN, TokenType.LBRACE, TokenType.RBRACE,
            TokenType.LPAREN, TokenType.RPAREN, TokenType.COLON,
            TokenType.SEMICOLON, TokenType.COMMA, TokenType.EOF,
        ]


class TestComments:
    """Test comment handling."""

    def test_line_comment(self):
        assert token_types("let // comment\nx") == [
            TokenType.LET, TokenType.IDENTIFIER, TokenType.EOF
        ]

    def test_nested_block_comment(self):
        assert token_types("a /* outer /* inner */ still */ b") == [
            TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF
        ]

    def test_unterminated_block_comment(self):
        with pytest.raises(LexerError) as exc_info:
            tokenize("a /* never closed")
        assert exc_info.value.diagnostic.code == "E004"


class TestLocations:
    """Test source locations."""

    def test_line_and_column(self):
        tokens = tokenize("let x\n  = 5;", filename="demo.lag")
        assign = tokens[2]
        assert assign.type == TokenType.ASSIGN
        assert assign.span.start.line == 2
        assert assign.span.start.column == 3
        assert str(assign.span.start) == "demo.lag:2:3"

    def test_streaming(self):
        """The lexer can be iterated and stops after EOF."""
        types = [t.type for t in Lexer("a b")]
        assert types == [TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF]


class TestLexerErrors:
    """Test lexer error codes."""

    def test_unexpected_character(self):
        with pytest.raises(LexerError) as exc_info:
            tokenize("let x = 5 @ 3;")
        diag = exc_info.value.diagnostic
        assert diag.code == "E001"
        assert "'@'" in diag.message
        assert diag.source_line == "let x = 5 @ 3;"

    def test_unterminated_string(self):
        with pytest.raises(LexerError) as exc_info:
            tokenize('"abc')
        assert exc_info.value.diagnostic.code == "E002"

    def test_newline_in_string(self):
        with pytest.raises(LexerError) as exc_info:
            tokenize('"abc\ndef"')
        assert exc_info.value.diagnostic.code == "E002"

    def test_invalid_escape(self):
        with pytest.raises(LexerError) as exc_info:
            tokenize(r'"\q"')
        assert exc_info.value.diagnostic.code == "E005"

    def test_invalid_number(self):
        with pytest.raises(LexerError) as exc_info:
            tokenize("12abc")
        assert exc_info.value.diagnostic.code == "E006"

    def test_missing_exponent_digits(self):
        with pytest.raises(LexerError) as exc_info:
            tokenize("1e+")
        assert exc_info.value.diagnostic.code == "E006"

    def test_error_format_has_caret(self):
        with pytest.raises(LexerError) as exc_info:
            tokenize("x = $;")
        text = exc_info.value.diagnostic.format()
        assert "error[E001]" in text
        assert "^" in text
