"""
Script lifecycle events and a small publish/subscribe hub.

Handlers subscribe per event class. A handler that raises is logged and
skipped; the remaining handlers still run and the publisher never sees
the exception.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Type

from ..utils.logging import get_logger
from .scripts import ScriptId

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScriptEvent:
    """Base class for script events."""
    script_id: ScriptId


@dataclass(frozen=True)
class ScriptCompiled(ScriptEvent):
    """A script went through the pipeline, successfully or not."""
    success: bool


@dataclass(frozen=True)
class ScriptExecuted(ScriptEvent):
    """An entry point of a script returned normally."""
    entry_point: str


@dataclass(frozen=True)
class ScriptHotReloaded(ScriptEvent):
    """A changed script file was recompiled and swapped in."""
    version: int


class EventPublisher:
    """Dispatches events to handlers registered for their class."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: Dict[Type[ScriptEvent], List[Callable]] = {}

    def subscribe(self, event_type: Type[ScriptEvent], handler: Callable) -> None:
        if handler is None:
            raise ValueError("handler must not be None")
        with self._lock:
            self._subscriptions.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: Type[ScriptEvent], handler: Callable) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        with self._lock:
            handlers = self._subscriptions.get(event_type)
            if not handlers or handler not in handlers:
                return False
            handlers.remove(handler)
            if not handlers:
                del self._subscriptions[event_type]
            return True

    def publish(self, event: ScriptEvent) -> None:
        with self._lock:
            handlers = list(self._subscriptions.get(type(event), ()))

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Error in handler for {type(event).__name__}")

    def handler_count(self, event_type: Type[ScriptEvent]) -> int:
        with self._lock:
            return len(self._subscriptions.get(event_type, ()))
