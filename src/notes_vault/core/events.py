"""Synchronous change notifications from the store to its observers."""

from collections import defaultdict
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from loguru import logger

Handler = Callable[[Any], None]


class Event(StrEnum):
    """State transitions announced by the store, with their payloads."""

    INITIALIZED = "initialized"  # None
    NODES_CHANGED = "nodes_changed"  # None
    NODE_CREATED = "node_created"  # Node
    NODE_UPDATED = "node_updated"  # Node
    NODE_DELETED = "node_deleted"  # node id
    NODE_MOVED = "node_moved"  # Node
    SELECTION_CHANGED = "selection_changed"  # node id or None
    CONTENT_CHANGED = "content_changed"  # Content
    ACTIVE_CHANGED = "active_changed"  # node id
    EXPANSION_CHANGED = "expansion_changed"  # node id


class EventChannel:
    """Observer registry with in-order, synchronous delivery.

    Handler exceptions propagate to whoever emitted the event.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[Event, list[Handler]] = defaultdict(list)

    def subscribe(self, event: Event, handler: Handler) -> Callable[[], None]:
        """Register handler for event; returns a callable that unregisters it."""
        self._handlers[Event(event)].append(handler)
        return lambda: self.unsubscribe(event, handler)

    def unsubscribe(self, event: Event, handler: Handler) -> None:
        handlers = self._handlers.get(Event(event))
        if handlers and handler in handlers:
            handlers.remove(handler)

    def emit(self, event: Event, payload: Any = None) -> None:
        # Snapshot the list so handlers may unsubscribe while being called.
        handlers = list(self._handlers.get(event, ()))
        logger.trace("Emitting {} to {} handlers", event, len(handlers))
        for handler in handlers:
            handler(payload)

    def handler_count(self, event: Event) -> int:
        return len(self._handlers.get(event, ()))
