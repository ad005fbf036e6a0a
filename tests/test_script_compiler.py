"""
Unit tests for the in-memory host compiler.
"""

import linecache
import pytest
import textwrap

from lagscript.runtime import ScriptCompiler, CompiledModule, CompilationError
from lagscript.runtime.compiler import module_filename
from lagscript.lag import ErrorSeverity


def compile_host(source: str, module_id: str = "demo") -> CompiledModule:
    return ScriptCompiler().compile(textwrap.dedent(source), module_id)


class TestCompile:
    """Test successful compilation."""

    def test_module_is_inert(self):
        module = compile_host("""
        def area(w, h):
            return w * h
        """)
        assert module.id == "demo"
        assert module.is_loaded is False
        assert module.handle.__name__ == "lagscript.scripts.demo"
        assert module.filename == module_filename("demo") == "<lag:demo>"

    def test_public_functions_exported(self):
        module = compile_host("""
        import math

        def area(w, h):
            return w * h

        def _helper():
            return 1

        LIMIT = 3
        """)
        assert sorted(module.exports) == ["area"]
        assert module.exports["area"](2, 3) == 6

    def test_declared_exports_win(self):
        module = compile_host("""
        def one():
            return 1

        def two():
            return 2

        __lag_exports__ = {'first': one}
        """)
        assert list(module.exports) == ["first"]

    def test_exports_are_read_only(self):
        module = compile_host("def f():\n    return 1\n")
        with pytest.raises(TypeError):
            module.exports["g"] = lambda: 2

    def test_versions_increase(self):
        first = compile_host("x = 1\n")
        second = compile_host("x = 2\n")
        assert second.version > first.version

    def test_initializer(self):
        module = compile_host("""
        def __lag_init__():
            global ready
            ready = True
        """)
        assert module.initializer is not None
        assert compile_host("x = 1\n").initializer is None

    def test_source_registered_for_tracebacks(self):
        compile_host("def f():\n    return 1\n", "traced")
        assert linecache.getline("<lag:traced>", 2).strip() == "return 1"

    def test_warning_becomes_diagnostic(self):
        module = compile_host("""
        def f(x):
            return x is 1
        """)
        warnings = [d for d in module.diagnostics if d.severity == ErrorSeverity.WARNING]
        assert warnings
        assert warnings[0].code == "W401"
        assert "SyntaxWarning" in warnings[0].message

    def test_transpiled_lag_compiles(self):
        from lagscript.lag import parse, check, transpile
        host = transpile(check(parse("fn twice(n: int) -> int { return n * 2; }")), "lagmod")
        module = ScriptCompiler().compile(host, "lagmod")
        assert module.exports["twice"](21) == 42


class TestCompileErrors:
    """Test compilation failures."""

    def test_syntax_error(self):
        with pytest.raises(CompilationError) as exc_info:
            compile_host("def broken(:\n    pass\n", "bad")
        err = exc_info.value
        assert err.module_id == "bad"
        assert err.diagnostics[0].code == "E401"
        assert err.diagnostics[0].severity == ErrorSeverity.ERROR
        assert err.diagnostics[0].span.start.line == 1
        assert "E401" in err.format()

    def test_module_body_raises(self):
        with pytest.raises(CompilationError) as exc_info:
            compile_host("x = 1\ny = 1 / 0\n", "div")
        diag = exc_info.value.diagnostics[-1]
        assert diag.code == "E402"
        assert "ZeroDivisionError" in diag.message
        assert diag.span.start.line == 2
        assert isinstance(exc_info.value.__cause__, ZeroDivisionError)

    def test_null_byte(self):
        with pytest.raises(CompilationError):
            compile_host("x = 1\0\n")
