"""
Hot-reload watcher.

The watcher keeps one WatchRecord per script and, when asked, compares
the file's modification time against it. A strictly newer time means a
change: the record advances to the observed time, the file is re-read
and the engine rebuilds and swaps the module. A failed rebuild leaves
the previous module serving and is kept as the record's ``last_error``.

There is no timer: callers decide when to call ``check_for_changes``.

Reloads of one script never overlap. A change seen while that script is
already reloading is coalesced: the running reload reads the file once
more when it finishes, so the newest source always ends up active.
"""

import threading
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from ..lag.errors import ScriptError
from ..utils.logging import get_logger
from .compiler import CompiledModule
from .engine import ScriptEngine
from .errors import FileMissingError
from .scripts import Script, ScriptId, ScriptSource

logger = get_logger(__name__)


class ReloadStatus(Enum):
    """Outcome of one ``check_for_changes`` call."""
    UNCHANGED = "unchanged"
    RELOADED = "reloaded"
    FAILED = "failed"
    DISCARDED = "discarded"      # Script deleted while rebuilding
    COALESCED = "coalesced"      # Folded into a reload already running
    SCHEDULED = "scheduled"      # Submitted to the executor
    NOT_WATCHED = "not_watched"


@dataclass
class WatchRecord:
    """Last observed state of a watched script file."""
    script_id: ScriptId
    file_path: Path
    last_modified_ns: int
    last_error: Optional[Exception] = None
    reload_count: int = 0


@dataclass
class ReloadResult:
    """Result of checking one script for changes."""
    script_id: ScriptId
    status: ReloadStatus
    module: Optional[CompiledModule] = None
    error: Optional[Exception] = None
    future: Optional[Future] = None

    @property
    def changed(self) -> bool:
        return self.status not in (ReloadStatus.UNCHANGED, ReloadStatus.NOT_WATCHED)


class _ReloadSlot:
    """Per-script reload state: at most one running, at most one queued."""

    def __init__(self):
        self.lock = threading.Lock()
        self.running = False
        self.rerun = False


def _modified_ns(script_id: ScriptId, path: Path) -> int:
    try:
        return path.stat().st_mtime_ns
    except FileNotFoundError as e:
        raise FileMissingError(script_id.value, path) from e


class HotReloadWatcher:
    """
    Watches script files and reloads them through a ScriptEngine.

    Usage:
        watcher = HotReloadWatcher(engine)
        watcher.watch(script)
        ...
        result = watcher.check_for_changes(script)

    With an executor, reloads run there and ``check_for_changes``
    returns a SCHEDULED result carrying the future.
    """

    def __init__(self, engine: ScriptEngine, executor: Optional[Executor] = None):
        self.engine = engine
        self.executor = executor
        self._lock = threading.Lock()
        self._records: Dict[ScriptId, WatchRecord] = {}
        self._scripts: Dict[ScriptId, Script] = {}
        self._slots: Dict[ScriptId, _ReloadSlot] = {}

    # =========================================================================
    # Registration
    # =========================================================================

    def watch(self, script: Script) -> WatchRecord:
        """
        Start watching a script's backing file.

        Raises:
            ValueError: If the script has no file path
            FileMissingError: If the file does not exist
        """
        if script.file_path is None:
            raise ValueError(f"script '{script.id}' has no file to watch")
        path = Path(script.file_path)
        record = WatchRecord(script.id, path, _modified_ns(script.id, path))
        with self._lock:
            self._records[script.id] = record
            self._scripts[script.id] = script
            self._slots.setdefault(script.id, _ReloadSlot())
        logger.debug(f"Watching '{script.id}' at {path}")
        return record

    def unwatch(self, script_id: ScriptId) -> bool:
        with self._lock:
            self._scripts.pop(script_id, None)
            return self._records.pop(script_id, None) is not None

    def record(self, script_id: ScriptId) -> Optional[WatchRecord]:
        with self._lock:
            return self._records.get(script_id)

    def watched(self) -> List[WatchRecord]:
        with self._lock:
            return list(self._records.values())

    def is_watching(self, script_id: ScriptId) -> bool:
        with self._lock:
            return script_id in self._records

    # =========================================================================
    # Change detection
    # =========================================================================

    def check_for_changes(self, script: Script) -> ReloadResult:
        """
        Reload a script if its file changed since last observed.

        Raises:
            FileMissingError: If the file no longer exists; the record and
                the active module are left untouched
        """
        with self._lock:
            record = self._records.get(script.id)
            slot = self._slots.get(script.id)
        if record is None:
            return ReloadResult(script.id, ReloadStatus.NOT_WATCHED)

        modified = _modified_ns(script.id, record.file_path)
        with self._lock:
            if modified <= record.last_modified_ns:
                return ReloadResult(script.id, ReloadStatus.UNCHANGED)
            record.last_modified_ns = modified
            self._scripts[script.id] = script

        logger.info(f"Change detected in '{script.id}' ({record.file_path})")

        with slot.lock:
            if slot.running:
                slot.rerun = True
                return ReloadResult(script.id, ReloadStatus.COALESCED)
            slot.running = True

        if self.executor is not None:
            future = self.executor.submit(self._run_reloads, script.id, record, slot)
            return ReloadResult(script.id, ReloadStatus.SCHEDULED, future=future)
        return self._run_reloads(script.id, record, slot)

    def check_all(self) -> List[ReloadResult]:
        """Check every watched script; missing files are reported as FAILED."""
        with self._lock:
            scripts = list(self._scripts.values())
        results = []
        for script in scripts:
            try:
                results.append(self.check_for_changes(script))
            except FileMissingError as e:
                logger.warning(str(e))
                results.append(ReloadResult(script.id, ReloadStatus.FAILED, error=e))
        return results

    # =========================================================================
    # Reloading
    # =========================================================================

    def _run_reloads(self, script_id: ScriptId, record: WatchRecord,
                     slot: _ReloadSlot) -> ReloadResult:
        """Reload until no further change was queued while running."""
        while True:
            try:
                result = self._reload_once(script_id, record)
            except BaseException:
                with slot.lock:
                    slot.running = False
                    slot.rerun = False
                raise
            with slot.lock:
                if not slot.rerun:
                    slot.running = False
                    return result
                slot.rerun = False
            logger.debug(f"Re-reading '{script_id}' for a change seen mid-reload")

    def _reload_once(self, script_id: ScriptId, record: WatchRecord) -> ReloadResult:
        with self._lock:
            script = self._scripts.get(script_id)
        if script is None:
            # Unwatched while a reload was queued
            return ReloadResult(script_id, ReloadStatus.DISCARDED)

        try:
            modified = _modified_ns(script_id, record.file_path)
            code = record.file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            record.last_error = e
            logger.error(f"Cannot read '{script_id}' from {record.file_path}: {e}")
            return ReloadResult(script_id, ReloadStatus.FAILED, error=e)

        with self._lock:
            record.last_modified_ns = max(record.last_modified_ns, modified)

        updated = script.with_source(ScriptSource(code, script.language))
        try:
            module = self.engine.reload(updated)
        except ScriptError as e:
            record.last_error = e
            logger.error(f"Reload of '{script_id}' failed, keeping previous version: {e}")
            return ReloadResult(script_id, ReloadStatus.FAILED, error=e)

        if module is None:
            return ReloadResult(script_id, ReloadStatus.DISCARDED)

        record.last_error = None
        record.reload_count += 1
        with self._lock:
            if script_id in self._scripts:
                self._scripts[script_id] = updated
        return ReloadResult(script_id, ReloadStatus.RELOADED, module=module)
