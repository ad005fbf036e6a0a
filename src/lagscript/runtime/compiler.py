"""
In-memory compiler for host (Python) source.

``ScriptCompiler.compile`` turns source text into an inert
CompiledModule: a fresh ``types.ModuleType`` populated by executing the
code object, plus a read-only export table. Nothing is written to disk
and no loader state is touched, so a module already serving calls keeps
serving while a replacement compiles.
"""

import builtins
import inspect
import itertools
import linecache
import threading
import traceback
import types
import warnings
from dataclasses import dataclass, field
from typing import Callable, List, Mapping

from ..lag.errors import Diagnostic, ErrorSeverity
from ..lag.tokens import SourceLocation, SourceSpan
from ..utils.logging import get_logger
from .errors import CompilationError

logger = get_logger(__name__)

EXPORTS_NAME = "__lag_exports__"
INIT_NAME = "__lag_init__"


@dataclass(eq=False)
class CompiledModule:
    """A compiled, not yet activated module.

    ``version`` is process-wide and strictly increasing, so of two
    modules compiled for the same id the later one always wins.
    """
    id: str
    version: int
    handle: types.ModuleType
    exports: Mapping[str, Callable]
    source: str
    is_loaded: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def filename(self) -> str:
        return self.handle.__file__

    @property
    def initializer(self):
        return getattr(self.handle, INIT_NAME, None)


class _VersionCounter:
    """Thread-safe source of module version numbers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counter = itertools.count(1)

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


_versions = _VersionCounter()

# warnings.catch_warnings swaps process-wide state
_warnings_lock = threading.Lock()


def module_filename(module_id: str) -> str:
    """Pseudo filename of generated source, shown in tracebacks."""
    return f"<lag:{module_id}>"


def _span_at(filename: str, line: int, column: int) -> SourceSpan:
    location = SourceLocation(line, max(column, 1), 0, filename)
    return SourceSpan(location, location)


def _source_line(source: str, line: int):
    lines = source.splitlines()
    if 1 <= line <= len(lines):
        return lines[line - 1]
    return None


class ScriptCompiler:
    """
    Compiles host source text into CompiledModules.

    Usage:
        compiler = ScriptCompiler()
        module = compiler.compile(python_source, "player")
    """

    def compile(self, host_source: str, module_id: str) -> CompiledModule:
        """
        Compile and execute host source into a fresh module object.

        Args:
            host_source: Python source text
            module_id: Identifier of the script the source belongs to

        Returns:
            Inert CompiledModule (``is_loaded`` is False)

        Raises:
            CompilationError: If the source does not compile or its module
                body raises
        """
        filename = module_filename(module_id)
        diagnostics: List[Diagnostic] = []

        syntax_error = None
        with _warnings_lock, warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                code = builtins.compile(host_source, filename, "exec", dont_inherit=True)
            except (builtins.SyntaxError, ValueError, RecursionError) as e:
                # ValueError: source containing null bytes on older interpreters;
                # RecursionError: a syntax tree too deep for the host compiler
                syntax_error = e
        diagnostics.extend(self._warning_diagnostics(caught, filename, host_source))

        if syntax_error is not None:
            line = getattr(syntax_error, "lineno", None) or 0
            diagnostics.insert(0, Diagnostic(
                code="E401",
                message=str(getattr(syntax_error, "msg", syntax_error)),
                severity=ErrorSeverity.ERROR,
                span=_span_at(filename, line, getattr(syntax_error, "offset", None) or 1),
                source_line=_source_line(host_source, line),
            ))
            raise CompilationError(module_id, diagnostics) from syntax_error

        version = _versions.next()
        module = types.ModuleType(f"lagscript.scripts.{module_id}")
        module.__file__ = filename
        self._register_source(filename, host_source)

        try:
            exec(code, module.__dict__)
        except Exception as e:
            line = self._failing_line(e, filename)
            diagnostics.append(Diagnostic(
                code="E402",
                message=f"module body raised {type(e).__name__}: {e}",
                severity=ErrorSeverity.ERROR,
                span=_span_at(filename, line, 1) if line else None,
                source_line=_source_line(host_source, line) if line else None,
            ))
            raise CompilationError(module_id, diagnostics) from e

        exports = self._collect_exports(module)
        logger.debug(f"Compiled '{module_id}' v{version} ({len(exports)} export(s))")
        return CompiledModule(
            id=module_id,
            version=version,
            handle=module,
            exports=types.MappingProxyType(exports),
            source=host_source,
            diagnostics=diagnostics,
        )

    def _warning_diagnostics(self, caught, filename: str, source: str) -> List[Diagnostic]:
        result = []
        for w in caught:
            line = w.lineno if w.filename == filename else 0
            result.append(Diagnostic(
                code="W401",
                message=f"{w.category.__name__}: {w.message}",
                severity=ErrorSeverity.WARNING,
                span=_span_at(filename, line, 1) if line else None,
                source_line=_source_line(source, line) if line else None,
            ))
        return result

    def _failing_line(self, error: BaseException, filename: str) -> int:
        """Deepest traceback line inside the generated source, or 0."""
        line = 0
        for frame in traceback.extract_tb(error.__traceback__):
            if frame.filename == filename:
                line = frame.lineno or 0
        return line

    def _register_source(self, filename: str, source: str) -> None:
        # Lets tracebacks and inspect show generated lines
        linecache.cache[filename] = (
            len(source), None, source.splitlines(keepends=True), filename
        )

    def _collect_exports(self, module: types.ModuleType) -> dict:
        """Exports are the declared table, else the module's own public functions."""
        declared = getattr(module, EXPORTS_NAME, None)
        if isinstance(declared, dict):
            return dict(declared)
        return {
            name: value
            for name, value in vars(module).items()
            if not name.startswith("_")
            and inspect.isfunction(value)
            and value.__module__ == module.__name__
        }
