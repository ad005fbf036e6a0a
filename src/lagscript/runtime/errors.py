"""
Runtime exceptions for compiling, loading and invoking script modules.

All of them derive from ScriptError, the same base as the Lag front-end
errors, so a caller can catch every pipeline failure at one point.
"""

from typing import List, Optional

from ..lag.errors import ScriptError, Diagnostic


class CompilationError(ScriptError):
    """Host source failed to compile, or its module body raised (E4xx).

    ``diagnostics`` holds every error and warning reported, in order.
    """

    def __init__(self, module_id: str, diagnostics: List[Diagnostic]):
        self.module_id = module_id
        self.diagnostics = list(diagnostics)
        errors = [d for d in self.diagnostics if d.severity.value == "error"]
        summary = errors[0].message if errors else "compilation failed"
        super().__init__(f"compilation of '{module_id}' failed: {summary}")

    def format(self) -> str:
        return "\n\n".join(d.format() for d in self.diagnostics)


class ModuleNotLoadedError(ScriptError):
    """No module is active for the requested script id."""

    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"no module is loaded for '{module_id}'")


class EntryPointNotFoundError(ScriptError):
    """The active module does not export the requested entry point."""

    def __init__(self, module_id: str, entry_point: str, available: Optional[List[str]] = None):
        self.module_id = module_id
        self.entry_point = entry_point
        self.available = sorted(available or [])
        message = f"module '{module_id}' has no entry point '{entry_point}'"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class ModuleInitializationError(ScriptError):
    """A module's top-level initialisation raised during activation."""

    def __init__(self, module_id: str, version: int, cause: BaseException):
        self.module_id = module_id
        self.version = version
        self.cause = cause
        super().__init__(
            f"initialisation of '{module_id}' v{version} failed: "
            f"{type(cause).__name__}: {cause}"
        )


class ScriptRuntimeError(ScriptError):
    """Script code raised while an entry point was running."""

    def __init__(self, module_id: str, entry_point: str, cause: BaseException):
        self.module_id = module_id
        self.entry_point = entry_point
        self.cause = cause
        super().__init__(
            f"'{module_id}.{entry_point}' raised {type(cause).__name__}: {cause}"
        )


class FileMissingError(ScriptError, FileNotFoundError):
    """A watched script file does not exist."""

    def __init__(self, script_id: str, path):
        self.script_id = script_id
        self.path = path
        super().__init__(f"script file for '{script_id}' is missing: {path}")
