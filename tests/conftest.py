"""Shared fixtures for lagscript tests."""

import logging
import os
import textwrap

import pytest

from lagscript.runtime import Script, ScriptId, ScriptSource, ScriptLanguage


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so caplog sees records from every test."""
    yield
    logger = logging.getLogger("lagscript")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def make_script():
    """Build an in-memory Lag (or host) script."""
    def _make(name, code, language=ScriptLanguage.LAG, file_path=None):
        return Script(ScriptId(name), ScriptSource(textwrap.dedent(code), language), file_path)
    return _make


@pytest.fixture
def write_script(tmp_path):
    """Write a script file and return its path."""
    def _write(name, code):
        path = tmp_path / name
        path.write_text(textwrap.dedent(code), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def bump_mtime():
    """Move a file's modification time forward; returns the new time in ns.

    Times handed out only ever increase, even when a rewrite resets the
    file's own time to "now".
    """
    last = [0]

    def _bump(path, seconds=10):
        later = max(path.stat().st_mtime_ns, last[0]) + seconds * 1_000_000_000
        os.utime(path, ns=(later, later))
        last[0] = later
        return later
    return _bump
