"""
Unit tests for ModuleLoader: activation, swapping and invocation.
"""

import threading
import pytest

from lagscript.runtime import (
    ScriptCompiler, ModuleLoader,
    ModuleNotLoadedError, EntryPointNotFoundError,
    ModuleInitializationError, ScriptRuntimeError,
)


def compile_version(value, module_id="player"):
    source = (
        "def __lag_init__():\n"
        "    global state\n"
        f"    state = {value!r}\n"
        "\n"
        "def version():\n"
        f"    return {value!r}\n"
        "\n"
        "def fail():\n"
        "    raise RuntimeError('boom')\n"
    )
    return ScriptCompiler().compile(source, module_id)


class TestActivation:
    """Test activating and swapping modules."""

    def test_activate(self):
        loader = ModuleLoader()
        module = compile_version("v1")
        assert loader.activate(module)
        assert module.is_loaded
        assert loader.active_module("player") is module
        assert loader.is_active("player")
        assert loader.active_ids() == ["player"]

    def test_initializer_runs_on_activation(self):
        module = compile_version("v1")
        assert not hasattr(module.handle, "state")
        ModuleLoader().activate(module)
        assert module.handle.state == "v1"

    def test_swap(self):
        loader = ModuleLoader()
        old = compile_version("v1")
        new = compile_version("v2")
        loader.activate(old)
        loader.activate(new)
        assert loader.invoke("player", "version") == "v2"
        assert new.is_loaded
        assert not old.is_loaded

    def test_stale_version_refused(self):
        loader = ModuleLoader()
        old = compile_version("v1")
        new = compile_version("v2")
        loader.activate(new)
        assert loader.activate(old) is False
        assert loader.active_module("player") is new
        assert not old.is_loaded

    def test_initializer_failure_keeps_previous(self):
        loader = ModuleLoader()
        good = compile_version("v1")
        loader.activate(good)
        bad = ScriptCompiler().compile(
            "def __lag_init__():\n    raise ValueError('nope')\n", "player"
        )
        with pytest.raises(ModuleInitializationError) as exc_info:
            loader.activate(bad)
        assert exc_info.value.version == bad.version
        assert isinstance(exc_info.value.cause, ValueError)
        assert loader.active_module("player") is good
        assert not bad.is_loaded

    def test_deactivate(self):
        loader = ModuleLoader()
        module = compile_version("v1")
        loader.activate(module)
        assert loader.deactivate("player")
        assert not module.is_loaded
        assert not loader.deactivate("player")
        with pytest.raises(ModuleNotLoadedError):
            loader.invoke("player", "version")


class TestInvoke:
    """Test invoking entry points."""

    def test_invoke_with_args(self):
        loader = ModuleLoader()
        loader.activate(ScriptCompiler().compile("def add(a, b):\n    return a + b\n", "math"))
        assert loader.invoke("math", "add", (2, 3)) == 5

    def test_not_loaded(self):
        with pytest.raises(ModuleNotLoadedError) as exc_info:
            ModuleLoader().invoke("ghost", "run")
        assert exc_info.value.module_id == "ghost"

    def test_missing_entry_point(self):
        loader = ModuleLoader()
        loader.activate(compile_version("v1"))
        with pytest.raises(EntryPointNotFoundError) as exc_info:
            loader.invoke("player", "jump")
        assert exc_info.value.entry_point == "jump"
        assert "version" in exc_info.value.available

    def test_script_exception_wrapped(self):
        loader = ModuleLoader()
        loader.activate(compile_version("v1"))
        with pytest.raises(ScriptRuntimeError) as exc_info:
            loader.invoke("player", "fail")
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert loader.is_active("player")

    def test_swap_during_call_does_not_disturb_it(self):
        """A call already running keeps the module it started with."""
        loader = ModuleLoader()
        started = threading.Event()
        release = threading.Event()
        source = (
            "def slow(started, release):\n"
            "    started.set()\n"
            "    release.wait(5)\n"
            "    return version()\n"
            "\n"
            "def version():\n"
            "    return 'v1'\n"
        )
        loader.activate(ScriptCompiler().compile(source, "player"))

        results = []
        worker = threading.Thread(
            target=lambda: results.append(loader.invoke("player", "slow", (started, release)))
        )
        worker.start()
        assert started.wait(5)

        loader.activate(compile_version("v2"))
        assert loader.invoke("player", "version") == "v2"

        release.set()
        worker.join(5)
        assert results == ["v1"]
