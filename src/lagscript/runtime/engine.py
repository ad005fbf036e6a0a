"""
Script engine: runs the pipeline and commits its results.

    Lag source -> parse -> check -> transpile -> compile -> activate
    host source --------------------------------> compile -> activate

Building is free of shared state, so any number of builds may run at
once. Committing (activate, then save) is serialised per script id and
shares its lock with ``delete``; a deleted script is never resurrected
by a reload, whether the delete came before or during the build.
"""

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from ..lag import parse, check, transpile
from ..lag.errors import ScriptError
from ..utils.config import LagscriptConfig
from ..utils.logging import get_logger
from .compiler import ScriptCompiler, CompiledModule
from .events import EventPublisher, ScriptCompiled, ScriptExecuted, ScriptHotReloaded
from .loader import ModuleLoader
from .repository import ScriptRepository, load_script_file, discover_scripts
from .scripts import Script, ScriptId, ScriptLanguage

logger = get_logger(__name__)


def _as_id(script_id: Union[ScriptId, str]) -> ScriptId:
    return script_id if isinstance(script_id, ScriptId) else ScriptId(script_id)


class ScriptEngine:
    """
    Orchestrates compilation, activation and invocation of scripts.

    Usage:
        engine = ScriptEngine()
        engine.load(script)
        engine.invoke("player", "update", 0.016)
    """

    def __init__(self, repository: Optional[ScriptRepository] = None,
                 loader: Optional[ModuleLoader] = None,
                 compiler: Optional[ScriptCompiler] = None,
                 config: Optional[LagscriptConfig] = None,
                 events: Optional[EventPublisher] = None):
        self.repository = repository if repository is not None else ScriptRepository()
        self.loader = loader if loader is not None else ModuleLoader()
        self.compiler = compiler if compiler is not None else ScriptCompiler()
        self.config = config if config is not None else LagscriptConfig()
        self.events = events if events is not None else EventPublisher()
        self._commit_locks: Dict[ScriptId, threading.Lock] = {}
        self._commit_locks_guard = threading.Lock()
        self._deleted: Set[ScriptId] = set()

    def _commit_lock(self, script_id: ScriptId) -> threading.Lock:
        with self._commit_locks_guard:
            lock = self._commit_locks.get(script_id)
            if lock is None:
                lock = self._commit_locks[script_id] = threading.Lock()
            return lock

    # =========================================================================
    # Pipeline
    # =========================================================================

    def transpile_source(self, source: str, module_name: str,
                         filename: Optional[str] = None) -> str:
        """Parse, check and transpile Lag source into Python source."""
        program = parse(source, filename)
        typed = check(program, max_errors=self.config.checker.max_errors, source=source)
        return transpile(typed, module_name)

    def build(self, script: Script) -> CompiledModule:
        """
        Run the pipeline up to an inert CompiledModule.

        Raises:
            SyntaxError, TypeError: For invalid Lag source
            CompilationError: If the host source does not compile
        """
        module_id = script.id.value
        filename = str(script.file_path) if script.file_path else None
        try:
            if script.language == ScriptLanguage.LAG:
                host_source = self.transpile_source(script.source.code, module_id, filename)
            else:
                host_source = script.source.code
            module = self.compiler.compile(host_source, module_id)
        except ScriptError as e:
            logger.error(f"Failed to build '{module_id}': {e}")
            self.events.publish(ScriptCompiled(script.id, False))
            raise

        for warning in module.diagnostics:
            logger.warning(f"'{module_id}': {warning.message}")
        self.events.publish(ScriptCompiled(script.id, True))
        return module

    def _commit(self, script: Script, module: CompiledModule) -> bool:
        """Activate the module, then store the source that produced it."""
        if not self.loader.activate(module):
            return False
        self.repository.save(script)
        return True

    # =========================================================================
    # Public operations
    # =========================================================================

    def load(self, script: Script) -> Optional[CompiledModule]:
        """
        Build a script and make it the active version.

        Returns None when a newer version was activated first. Loading
        clears an earlier ``delete``, so the script may be reloaded again.
        """
        if not script.id.is_valid:
            raise ValueError("cannot load a script with an invalid id")
        module = self.build(script)
        with self._commit_lock(script.id):
            self._deleted.discard(script.id)
            if not self._commit(script, module):
                logger.info(f"Discarding stale build of '{script.id}' v{module.version}")
                return None
        return module

    def reload(self, script: Script) -> Optional[CompiledModule]:
        """
        Rebuild a script and swap it in.

        Returns None when the result was discarded: the script was
        deleted, before or while it was building, or a newer version was
        activated first.
        """
        module = self.build(script)
        with self._commit_lock(script.id):
            if script.id in self._deleted:
                logger.info(f"Discarding reload of '{script.id}': script was deleted")
                return None
            if not self._commit(script, module):
                return None
        logger.info(f"Hot-reloaded '{script.id}' v{module.version}")
        self.events.publish(ScriptHotReloaded(script.id, module.version))
        return module

    def invoke(self, script_id: Union[ScriptId, str], entry_point: str, *args) -> Any:
        """
        Call an entry point of a script's active module.

        Raises:
            ModuleNotLoadedError, EntryPointNotFoundError, ScriptRuntimeError
        """
        script_id = _as_id(script_id)
        result = self.loader.invoke(script_id.value, entry_point, args)
        self.events.publish(ScriptExecuted(script_id, entry_point))
        return result

    def delete(self, script_id: Union[ScriptId, str]) -> bool:
        """
        Remove a script and deactivate its module.

        Later reloads of the id are discarded until it is loaded again.
        """
        script_id = _as_id(script_id)
        with self._commit_lock(script_id):
            removed = self.repository.delete(script_id)
            deactivated = self.loader.deactivate(script_id.value)
            if removed or deactivated:
                self._deleted.add(script_id)
        return removed or deactivated

    def active_module(self, script_id: Union[ScriptId, str]) -> Optional[CompiledModule]:
        return self.loader.active_module(_as_id(script_id).value)

    def load_file(self, path: Union[str, Path],
                  script_id: Optional[ScriptId] = None) -> Script:
        """Read a script file and load it. Returns the stored Script."""
        script = load_script_file(path, script_id)
        self.load(script)
        return script

    def load_directory(self, directory: Union[str, Path]) -> List[Script]:
        """Load every script in a directory; failures are logged and skipped."""
        loaded = []
        for script in discover_scripts(directory):
            try:
                self.load(script)
            except ScriptError as e:
                logger.error(f"Skipping '{script.id}': {e}")
                continue
            loaded.append(script)
        return loaded
