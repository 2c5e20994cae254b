from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# Channels a presentation layer can subscribe to. Payloads are keyword arguments.
ARROW_PLACED = "arrow_placed"  # pos, direction
ARROW_REMOVED = "arrow_removed"  # pos
KEY_ENABLED = "key_enabled"  # direction
KEY_DISABLED = "key_disabled"  # direction
POSITION_CHANGED = "position_changed"  # pos
LEVEL_LOADED = "level_loaded"  # level_id, start, keys
LEVEL_ADVANCE = "level_advance"  # level_id
GAME_COMPLETE = "game_complete"

ALL_EVENTS = (
    ARROW_PLACED,
    ARROW_REMOVED,
    KEY_ENABLED,
    KEY_DISABLED,
    POSITION_CHANGED,
    LEVEL_LOADED,
    LEVEL_ADVANCE,
    GAME_COMPLETE,
)


class EventBus:
    """Lightweight, threadsafe publish/subscribe event bus.

    The engine only emits notifications through here; it never holds a
    reference to anything drawable. Handlers are called synchronously in
    subscription order.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Callable[..., Any]]] = {}
        self._lock = RLock()

    def subscribe(self, event: str, handler: Callable[..., Any]) -> None:
        """Subscribe a handler to an event channel.

        Args:
            event: Event channel name.
            handler: Callable that accepts keyword arguments of event payload.
        """
        with self._lock:
            self._handlers.setdefault(event, [])
            if handler not in self._handlers[event]:
                self._handlers[event].append(handler)
                logger.debug("Subscribed handler %s to event '%s'", handler, event)

    def subscribe_all(self, handler: Callable[..., Any]) -> None:
        """Subscribe ``handler(event, **payload)`` to every engine channel."""
        for event in ALL_EVENTS:
            self.subscribe(event, _Tagged(event, handler))

    def unsubscribe(self, event: str, handler: Callable[..., Any]) -> None:
        """Unsubscribe a handler from an event channel."""
        with self._lock:
            handlers = self._handlers.get(event)
            if not handlers:
                return
            if handler in handlers:
                handlers.remove(handler)
                logger.debug("Unsubscribed handler %s from event '%s'", handler, event)
            if not handlers:
                del self._handlers[event]

    def clear(self) -> None:
        """Remove all handlers for all events (useful in tests)."""
        with self._lock:
            self._handlers.clear()

    def emit(self, event: str, **kwargs: Any) -> List[Any]:
        """Emit an event with payload to all subscribed handlers.

        Returns:
            List of return values from handlers (if any).
        """
        with self._lock:
            handlers = list(self._handlers.get(event, []))
        if not handlers:
            logger.debug("Emitting '%s' with no subscribers. Payload=%s", event, kwargs)
            return []
        logger.debug("Emitting '%s' to %d handlers. Payload=%s", event, len(handlers), kwargs)
        results: List[Any] = []
        for handler in handlers:
            try:
                results.append(handler(**kwargs))
            except Exception as exc:
                logger.exception("Error in handler %s for event '%s': %s", handler, event, exc)
        return results


class _Tagged:
    """Adapter passing the channel name to a catch-all handler."""

    __slots__ = ("event", "handler")

    def __init__(self, event: str, handler: Callable[..., Any]) -> None:
        self.event = event
        self.handler = handler

    def __call__(self, **kwargs: Any) -> Any:
        return self.handler(self.event, **kwargs)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, _Tagged):
            return self.event == other.event and self.handler == other.handler
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.event, self.handler))


__all__ = [
    "EventBus",
    "ALL_EVENTS",
    "ARROW_PLACED",
    "ARROW_REMOVED",
    "KEY_ENABLED",
    "KEY_DISABLED",
    "POSITION_CHANGED",
    "LEVEL_LOADED",
    "LEVEL_ADVANCE",
    "GAME_COMPLETE",
]
