"""
Unit tests for the Lag parser.
"""

import pytest
import textwrap
from lagscript.lag import (
    tokenize, parse, parse_tokens, Parser, ParserError, LexerError, SyntaxError, TokenType,
    Program, FunctionDef, Parameter, TypeAnnotation,
    Literal, Identifier, BinaryOp, UnaryOp, FunctionCall,
    LetStatement, AssignmentStatement, ReturnStatement, ExpressionStatement,
    Block, IfStatement, WhileStatement, ForStatement,
    walk, shape, format_ast,
)


def parse_source(source: str) -> Program:
    """Helper to parse indented test source."""
    return parse(textwrap.dedent(source))


def parse_expr(text: str):
    """Parse a single expression through a top-level let."""
    program = parse(f"let v = {text};")
    return program.declarations[0].value


class TestProgramParsing:
    """Test top-level declarations."""

    def test_empty_program(self):
        program = parse_source("")
        assert program.declarations == []
        assert program.kind == "Program"

    def test_two_lets(self):
        """Two top-level lets become two Let children in order."""
        program = parse("let x: int = 5; let y: int = x + 1;")
        assert [c.kind for c in program.children] == ["Let", "Let"]
        x, y = program.declarations
        assert x.name == "x"
        assert x.type_annotation.name == "int"
        assert isinstance(x.value, Literal)
        assert x.value.literal_value == "5"
        assert isinstance(y.value, BinaryOp)
        assert y.value.operator == TokenType.PLUS

    def test_let_without_annotation(self):
        program = parse("let name = \"lag\";")
        let = program.declarations[0]
        assert let.type_annotation is None
        assert let.value.value == "lag"

    def test_function_definition(self):
        program = parse_source("""
        fn area(w: float, h: float) -> float {
            return w * h;
        }
        """)
        func = program.functions[0]
        assert isinstance(func, FunctionDef)
        assert func.name == "area"
        assert [p.name for p in func.parameters] == ["w", "h"]
        assert all(isinstance(p, Parameter) for p in func.parameters)
        assert func.parameters[0].type_annotation.name == "float"
        assert func.return_type.name == "float"
        assert isinstance(func.body.statements[0], ReturnStatement)

    def test_function_without_return_type(self):
        program = parse("fn tick() { }")
        func = program.functions[0]
        assert func.return_type is None
        assert func.body.statements == []

    def test_functions_and_globals_in_source_order(self):
        program = parse("let a = 1; fn f() { } let b = 2;")
        assert [d.kind for d in program.declarations] == ["Let", "Function", "Let"]
        assert [g.name for g in program.globals] == ["a", "b"]
        assert [f.name for f in program.functions] == ["f"]

    def test_filename_recorded(self):
        program = parse("let a = 1;", "demo.lag")
        assert program.filename == "demo.lag"
        assert program.declarations[0].span.start.filename == "demo.lag"

    def test_parse_tokens(self):
        tokens = tokenize("let a = 1;")
        program = parse_tokens(tokens)
        assert len(program.declarations) == 1


class TestStatements:
    """Test statement parsing inside function bodies."""

    def body_of(self, source: str):
        program = parse(f"fn f() {{ {source} }}")
        return program.functions[0].body.statements

    def test_assignment(self):
        stmt = self.body_of("x = x + 1;")[0]
        assert isinstance(stmt, AssignmentStatement)
        assert stmt.target.name == "x"

    def test_expression_statement(self):
        stmt = self.body_of("print(1);")[0]
        assert isinstance(stmt, ExpressionStatement)
        assert isinstance(stmt.expression, FunctionCall)

    def test_return_without_value(self):
        stmt = self.body_of("return;")[0]
        assert isinstance(stmt, ReturnStatement)
        assert stmt.value is None

    def test_if_else_if_else(self):
        stmt = self.body_of("if a { } else if b { } else { }")[0]
        assert isinstance(stmt, IfStatement)
        assert isinstance(stmt.else_branch, IfStatement)
        assert isinstance(stmt.else_branch.else_branch, Block)

    def test_while(self):
        stmt = self.body_of("while i < 10 { i = i + 1; }")[0]
        assert isinstance(stmt, WhileStatement)
        assert isinstance(stmt.condition, BinaryOp)
        assert len(stmt.body.statements) == 1

    def test_for_range(self):
        stmt = self.body_of("for i in 0..n { print(i); }")[0]
        assert isinstance(stmt, ForStatement)
        assert stmt.variable == "i"
        assert isinstance(stmt.start, Literal)
        assert isinstance(stmt.end, Identifier)

    def test_nested_block(self):
        stmt = self.body_of("{ let y = 1; }")[0]
        assert isinstance(stmt, Block)
        assert isinstance(stmt.statements[0], LetStatement)


class TestExpressions:
    """Test expression parsing and precedence."""

    def test_multiplication_binds_tighter(self):
        expr = parse_expr("1 + 2 * 3")
        assert expr.operator == TokenType.PLUS
        assert expr.right.operator == TokenType.STAR

    def test_left_associative(self):
        expr = parse_expr("10 - 4 - 3")
        assert expr.operator == TokenType.MINUS
        assert isinstance(expr.left, BinaryOp)
        assert expr.right.literal_value == "3"

    def test_parentheses(self):
        expr = parse_expr("(1 + 2) * 3")
        assert expr.operator == TokenType.STAR
        assert expr.left.operator == TokenType.PLUS

    def test_logical_precedence(self):
        expr = parse_expr("a || b && c == d")
        assert expr.operator == TokenType.OR
        assert expr.right.operator == TokenType.AND
        assert expr.right.right.operator == TokenType.EQ

    def test_unary(self):
        expr = parse_expr("!-x")
        assert isinstance(expr, UnaryOp)
        assert expr.operator == TokenType.NOT
        assert expr.operand.operator == TokenType.MINUS

    def test_call_arguments(self):
        expr = parse_expr("max3(1, a + b, f(2))")
        assert isinstance(expr, FunctionCall)
        assert expr.callee.name == "max3"
        assert len(expr.arguments) == 3
        assert isinstance(expr.arguments[2], FunctionCall)

    def test_call_without_arguments(self):
        expr = parse_expr("now()")
        assert expr.arguments == []


class TestRoundTrip:
    """Re-parsing the same source yields the same tree shape."""

    SOURCE = textwrap.dedent("""
        let limit: int = 3;

        fn fib(n: int) -> int {
            if n < 2 {
                return n;
            }
            return fib(n - 1) + fib(n - 2);
        }

        fn run() {
            for i in 0..limit {
                print("fib " + str(fib(i)));
            }
        }
    """)

    def test_shape_is_stable(self):
        assert shape(parse(self.SOURCE)) == shape(parse(self.SOURCE))

    def test_shape_ignores_whitespace_and_comments(self):
        compact = "let limit: int = 3; // the bound\n" + self.SOURCE.split("let limit: int = 3;")[1]
        assert shape(parse(compact)) == shape(parse(self.SOURCE))

    def test_shape_differs_on_literal(self):
        assert shape(parse("let a = 1;")) != shape(parse("let a = 2;"))

    def test_walk_visits_every_node(self):
        program = parse("let a = 1 + 2;")
        kinds = [n.kind for n in walk(program)]
        assert kinds == ["Program", "Let", "Binary", "Literal", "Literal"]

    def test_format_ast(self):
        text = format_ast(parse("let a: int = 1;"))
        assert text.splitlines() == [
            "Program",
            "  Let a",
            "    Type int",
            "    Literal 1",
        ]


class TestParserErrors:
    """Test parser error reporting."""

    def test_missing_semicolon(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let a = 1 let b = 2;")
        diag = exc_info.value.diagnostic
        assert diag.code == "E101"
        assert "';'" in diag.message

    def test_unexpected_eof(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let a =")
        assert exc_info.value.diagnostic.code == "E102"

    def test_statement_at_top_level(self):
        with pytest.raises(ParserError) as exc_info:
            parse("print(1);")
        assert "'fn' or 'let'" in exc_info.value.diagnostic.message

    def test_unclosed_brace_reports_opener(self):
        source = "fn f() {\n    let a = 1;\n"
        with pytest.raises(ParserError) as exc_info:
            parse(source)
        diag = exc_info.value.diagnostic
        assert diag.code == "E103"
        assert "'{'" in diag.message
        assert "1:8" in diag.message
        assert "end of input" in diag.message

    def test_mismatched_closer(self):
        with pytest.raises(ParserError) as exc_info:
            parse("fn f() { print(1 }")
        diag = exc_info.value.diagnostic
        assert diag.code == "E103"
        assert "'('" in diag.message

    def test_stray_closer(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let a = 1; }")
        assert exc_info.value.diagnostic.code == "E104"

    def test_missing_type(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let a: = 1;")
        assert "type" in exc_info.value.diagnostic.message

    def test_syntax_error_hierarchy(self):
        """Lexer and parser errors are both SyntaxErrors."""
        with pytest.raises(SyntaxError):
            parse("let a = ;")
        with pytest.raises(SyntaxError):
            parse("let a = #;")
        assert issubclass(LexerError, SyntaxError)

    def test_error_line_and_column(self):
        with pytest.raises(ParserError) as exc_info:
            parse("fn f() {\n    let = 1;\n}")
        err = exc_info.value
        assert err.line == 2
        assert err.column == 9

    def test_nesting_too_deep(self):
        """Runaway nesting is a parser error, not a crash."""
        source = "let a: int = " + "(" * 2000 + "1" + ")" * 2000 + ";"
        with pytest.raises(ParserError) as exc_info:
            parse(source)
        diag = exc_info.value.diagnostic
        assert diag.code == "E105"
        assert "too deeply nested" in diag.message


class TestLongExpressions:
    """Test expressions far longer than the interpreter's recursion limit."""

    def test_long_chain_is_left_deep(self):
        expr = parse_expr(" + ".join(["1"] * 1500))
        depth = 0
        while isinstance(expr, BinaryOp):
            assert isinstance(expr.right, Literal)
            expr = expr.left
            depth += 1
        assert depth == 1499

    def test_walk_long_chain(self):
        program = parse("let v = " + " - ".join(["x"] * 1500) + ";")
        kinds = [n.kind for n in walk(program)]
        assert kinds.count("Binary") == 1499
        assert kinds.count("Identifier") == 1500
