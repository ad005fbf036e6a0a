"""
Module loader: owns the active CompiledModule for each script id.

Activation publishes a module with a single pointer swap under a lock.
Invocation takes its reference under the same lock and calls outside
it, so a swap never disturbs a call already running and callers never
observe a half-published module.
"""

import threading
from typing import Any, Dict, List, Optional

from ..utils.logging import get_logger
from .compiler import CompiledModule
from .errors import (
    ModuleNotLoadedError,
    EntryPointNotFoundError,
    ModuleInitializationError,
    ScriptRuntimeError,
)

logger = get_logger(__name__)


class ModuleLoader:
    """
    Holds at most one active module per script id.

    Usage:
        loader = ModuleLoader()
        loader.activate(compiled)
        result = loader.invoke("player", "update", 0.016)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Dict[str, CompiledModule] = {}

    def activate(self, module: CompiledModule) -> bool:
        """
        Run the module's initialiser, then make it the active module.

        Returns False, leaving the active module in place, if a module
        with a newer version is already active.

        Raises:
            ModuleInitializationError: If the initialiser raises; the
                previous module stays active
        """
        current = self.active_module(module.id)
        if current is not None and current.version >= module.version:
            logger.warning(
                f"Refusing stale module '{module.id}' v{module.version} "
                f"(v{current.version} is active)"
            )
            return False

        initializer = module.initializer
        if initializer is not None:
            try:
                initializer()
            except Exception as e:
                raise ModuleInitializationError(module.id, module.version, e) from e

        with self._lock:
            current = self._active.get(module.id)
            # Re-check: another activation may have won while initialising
            if current is not None and current.version >= module.version:
                logger.warning(
                    f"Refusing stale module '{module.id}' v{module.version} "
                    f"(v{current.version} is active)"
                )
                return False
            self._active[module.id] = module
            module.is_loaded = True
            if current is not None:
                current.is_loaded = False

        if current is not None:
            logger.info(f"Swapped '{module.id}' v{current.version} -> v{module.version}")
        else:
            logger.info(f"Activated '{module.id}' v{module.version}")
        return True

    def invoke(self, module_id: str, entry_point: str, args=()) -> Any:
        """
        Call an exported entry point of the active module.

        Raises:
            ModuleNotLoadedError: If no module is active for the id
            EntryPointNotFoundError: If the module does not export it
            ScriptRuntimeError: If the script code raises
        """
        with self._lock:
            module = self._active.get(module_id)
        if module is None:
            raise ModuleNotLoadedError(module_id)

        function = module.exports.get(entry_point)
        if function is None:
            raise EntryPointNotFoundError(module_id, entry_point, list(module.exports))

        try:
            return function(*args)
        except Exception as e:
            raise ScriptRuntimeError(module_id, entry_point, e) from e

    def deactivate(self, module_id: str) -> bool:
        """Drop the active module for an id. Returns False if none was active."""
        with self._lock:
            module = self._active.pop(module_id, None)
            if module is not None:
                module.is_loaded = False
        if module is None:
            return False
        logger.info(f"Deactivated '{module_id}' v{module.version}")
        return True

    def active_module(self, module_id: str) -> Optional[CompiledModule]:
        with self._lock:
            return self._active.get(module_id)

    def is_active(self, module_id: str) -> bool:
        return self.active_module(module_id) is not None

    def active_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._active)
