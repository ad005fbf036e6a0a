"""
In-memory script repository.

Readers never take a lock: every write publishes a new immutable
snapshot of the mapping, and a read works on whichever snapshot was
current when it started. Writers are serialised per script id, so
saves of different scripts do not wait on each other.
"""

import threading
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union

from ..utils.logging import get_logger
from .scripts import Script, ScriptId, ScriptLanguage, ScriptSource

logger = get_logger(__name__)

SCRIPT_EXTENSIONS = (".lag", ".py")


class ScriptRepository:
    """
    Stores Scripts by id. Last writer wins.

    Usage:
        repo = ScriptRepository()
        repo.save(script)
        script = repo.load(ScriptId("player"))
    """

    def __init__(self):
        self._snapshot: Mapping[ScriptId, Script] = MappingProxyType({})
        self._publish_lock = threading.Lock()
        self._key_locks: Dict[ScriptId, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    def _key_lock(self, script_id: ScriptId) -> threading.Lock:
        with self._key_locks_guard:
            lock = self._key_locks.get(script_id)
            if lock is None:
                lock = self._key_locks[script_id] = threading.Lock()
            return lock

    def _publish(self, script_id: ScriptId, script: Optional[Script]) -> bool:
        """Copy-on-write update of one entry; returns whether it existed."""
        with self._publish_lock:
            data = dict(self._snapshot)
            existed = script_id in data
            if script is None:
                data.pop(script_id, None)
            else:
                data[script_id] = script
            self._snapshot = MappingProxyType(data)
        return existed

    def save(self, script: Script) -> None:
        """Insert or replace a script."""
        if not script.id.is_valid:
            raise ValueError("cannot save a script with an invalid id")
        with self._key_lock(script.id):
            self._publish(script.id, script)
        logger.debug(f"Saved script '{script.id}'")

    def load(self, script_id: ScriptId) -> Optional[Script]:
        return self._snapshot.get(script_id)

    def delete(self, script_id: ScriptId) -> bool:
        """Remove a script. Returns False if it was not stored."""
        with self._key_lock(script_id):
            existed = self._publish(script_id, None)
        if existed:
            logger.debug(f"Deleted script '{script_id}'")
        return existed

    def list_all(self) -> List[Script]:
        return list(self._snapshot.values())

    def clear(self) -> None:
        with self._publish_lock:
            self._snapshot = MappingProxyType({})

    def __contains__(self, script_id: ScriptId) -> bool:
        return script_id in self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)


def load_script_file(path: Union[str, Path], script_id: Optional[ScriptId] = None) -> Script:
    """
    Build a Script from a file on disk.

    The language follows the extension (.lag or .py); the id defaults to
    the file stem.
    """
    path = Path(path)
    language = ScriptLanguage.from_path(path)
    code = path.read_text(encoding="utf-8")
    if script_id is None:
        script_id = ScriptId(path.stem)
    return Script(script_id, ScriptSource(code, language), path)


def discover_scripts(directory: Union[str, Path]) -> List[Script]:
    """Load every .lag and .py script in a directory, sorted by file name."""
    directory = Path(directory)
    if not directory.is_dir():
        raise NotADirectoryError(f"not a directory: {directory}")

    scripts = []
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix.lower() in SCRIPT_EXTENSIONS:
            if path.name.startswith("_"):
                continue
            scripts.append(load_script_file(path))
    logger.debug(f"Discovered {len(scripts)} script(s) in {directory}")
    return scripts
