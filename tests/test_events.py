"""
Unit tests for the script event publisher.
"""

import logging
import pytest

from lagscript.runtime import (
    EventPublisher, ScriptId, ScriptCompiled, ScriptExecuted, ScriptHotReloaded,
)


class TestEventPublisher:
    """Test subscribe/unsubscribe/publish."""

    def test_publish_to_subscribers(self):
        events = EventPublisher()
        received = []
        events.subscribe(ScriptCompiled, received.append)
        event = ScriptCompiled(ScriptId("player"), True)
        events.publish(event)
        assert received == [event]

    def test_dispatch_by_event_class(self):
        events = EventPublisher()
        compiled, executed = [], []
        events.subscribe(ScriptCompiled, compiled.append)
        events.subscribe(ScriptExecuted, executed.append)
        events.publish(ScriptExecuted(ScriptId("p"), "update"))
        assert compiled == []
        assert len(executed) == 1

    def test_unsubscribe(self):
        events = EventPublisher()
        received = []
        events.subscribe(ScriptHotReloaded, received.append)
        assert events.handler_count(ScriptHotReloaded) == 1
        assert events.unsubscribe(ScriptHotReloaded, received.append)
        assert not events.unsubscribe(ScriptHotReloaded, received.append)
        events.publish(ScriptHotReloaded(ScriptId("p"), 3))
        assert received == []
        assert events.handler_count(ScriptHotReloaded) == 0

    def test_none_handler_rejected(self):
        with pytest.raises(ValueError):
            EventPublisher().subscribe(ScriptCompiled, None)

    def test_failing_handler_is_logged(self, caplog):
        """A raising handler does not stop the others or the publisher."""
        events = EventPublisher()
        received = []

        def broken(event):
            raise RuntimeError("handler bug")

        events.subscribe(ScriptCompiled, broken)
        events.subscribe(ScriptCompiled, received.append)
        with caplog.at_level(logging.ERROR, logger="lagscript"):
            events.publish(ScriptCompiled(ScriptId("p"), False))
        assert len(received) == 1
        assert any("ScriptCompiled" in r.getMessage() for r in caplog.records)

    def test_events_are_frozen(self):
        event = ScriptHotReloaded(ScriptId("p"), 1)
        with pytest.raises(AttributeError):
            event.version = 2
