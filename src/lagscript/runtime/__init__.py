"""
Script runtime: compile host source, load modules, store scripts and
hot-reload them from disk.

Usage:
    from lagscript.runtime import ScriptEngine, HotReloadWatcher
    from lagscript.runtime import load_script_file

    engine = ScriptEngine()
    script = engine.load_file("scripts/player.lag")
    engine.invoke(script.id, "update", 0.016)

    watcher = HotReloadWatcher(engine)
    watcher.watch(script)
    watcher.check_for_changes(script)
"""

from .scripts import Script, ScriptId, ScriptLanguage, ScriptSource
from .errors import (
    CompilationError,
    ModuleNotLoadedError,
    EntryPointNotFoundError,
    ModuleInitializationError,
    ScriptRuntimeError,
    FileMissingError,
)
from .compiler import ScriptCompiler, CompiledModule
from .loader import ModuleLoader
from .repository import ScriptRepository, load_script_file, discover_scripts
from .events import (
    EventPublisher,
    ScriptEvent,
    ScriptCompiled,
    ScriptExecuted,
    ScriptHotReloaded,
)
from .engine import ScriptEngine
from .watcher import HotReloadWatcher, WatchRecord, ReloadResult, ReloadStatus

__all__ = [
    # Script model
    'Script',
    'ScriptId',
    'ScriptLanguage',
    'ScriptSource',

    # Errors
    'CompilationError',
    'ModuleNotLoadedError',
    'EntryPointNotFoundError',
    'ModuleInitializationError',
    'ScriptRuntimeError',
    'FileMissingError',

    # Compiler and loader
    'ScriptCompiler',
    'CompiledModule',
    'ModuleLoader',

    # Repository
    'ScriptRepository',
    'load_script_file',
    'discover_scripts',

    # Events
    'EventPublisher',
    'ScriptEvent',
    'ScriptCompiled',
    'ScriptExecuted',
    'ScriptHotReloaded',

    # Orchestration
    'ScriptEngine',
    'HotReloadWatcher',
    'WatchRecord',
    'ReloadResult',
    'ReloadStatus',
]
