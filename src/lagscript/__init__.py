"""
lagscript: the Lag scripting pipeline.

Lag source is parsed, type checked, transpiled to Python, compiled in
memory into a module, and hot-reloaded when its file changes.

Usage:
    from lagscript import ScriptEngine, HotReloadWatcher

    engine = ScriptEngine()
    script = engine.load_file("scripts/player.lag")
    engine.invoke(script.id, "update", 0.016)
"""

__version__ = "0.3.0"

from .lag import parse, check, transpile
from .lag.errors import ScriptError, LagError, SyntaxError, TypeError
from .runtime import (
    Script,
    ScriptId,
    ScriptLanguage,
    ScriptSource,
    ScriptEngine,
    HotReloadWatcher,
    ScriptRepository,
    ModuleLoader,
    ScriptCompiler,
)
from .utils import LagscriptConfig, load_config, setup_logging

__all__ = [
    '__version__',
    'parse',
    'check',
    'transpile',
    'ScriptError',
    'LagError',
    'SyntaxError',
    'TypeError',
    'Script',
    'ScriptId',
    'ScriptLanguage',
    'ScriptSource',
    'ScriptEngine',
    'HotReloadWatcher',
    'ScriptRepository',
    'ModuleLoader',
    'ScriptCompiler',
    'LagscriptConfig',
    'load_config',
    'setup_logging',
]
