"""Engine event observers.

The engine exposes an explicit observer list per instance. Listeners are
dispatched synchronously, in registration order, on the thread that emits
the event.

Available Events:
    - progress: Data resolution progress, payload ``{"percent": float}``
    - cache_hit: A data provider served a cached result
    - cache_miss: A data provider had to fetch fresh data
    - error: A block failed to render, payload ``ErrorDescriptor``
    - registration_error: A block failed to register, payload ``ErrorDescriptor``

Example:
    >>> hub = EventHub()
    >>> hub.on(EventType.ERROR, lambda descriptor: print(descriptor.message))
    >>> hub.emit(EventType.ERROR, descriptor)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Events surfaced to the host."""

    PROGRESS = "progress"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    ERROR = "error"
    REGISTRATION_ERROR = "registration_error"


@dataclass
class Listener:
    """A registered event handler.

    Attributes:
        event: Event the handler listens to.
        handler: Callback receiving the event payload (if any).
        source: Identifier of whoever registered the handler.
    """

    event: EventType
    handler: Callable[..., Any]
    source: str = "host"

    def __call__(self, *args: Any) -> Any:
        return self.handler(*args)


class EventHub:
    """Observer list for engine events."""

    def __init__(self) -> None:
        self._listeners: dict[EventType, list[Listener]] = defaultdict(list)

    def on(
        self,
        event: EventType | str,
        handler: Callable[..., Any],
        source: str = "host",
    ) -> Listener:
        """Register a handler for an event.

        Raises:
            ValueError: If the event name is unknown.
        """
        event_type = EventType(event)
        listener = Listener(event=event_type, handler=handler, source=source)
        self._listeners[event_type].append(listener)
        logger.debug("Registered listener for %s from %s", event_type.value, source)
        return listener

    def off(self, event: EventType | str, handler: Callable[..., Any] | None = None) -> int:
        """Remove handlers for an event.

        Args:
            event: Event name.
            handler: Specific handler to remove; all handlers when None.

        Returns:
            Number of handlers removed.
        """
        event_type = EventType(event)
        listeners = self._listeners.get(event_type, [])
        before = len(listeners)
        if handler is None:
            self._listeners[event_type] = []
        else:
            self._listeners[event_type] = [l for l in listeners if l.handler != handler]
        return before - len(self._listeners[event_type])

    def emit(self, event: EventType | str, *payload: Any) -> int:
        """Dispatch an event to its listeners.

        A failing listener is logged and does not stop the others.

        Returns:
            Number of listeners that ran successfully.
        """
        event_type = EventType(event)
        delivered = 0
        for listener in list(self._listeners.get(event_type, [])):
            try:
                listener(*payload)
                delivered += 1
            except Exception as e:
                logger.error(
                    "Error in %s listener %s from %s: %s",
                    event_type.value,
                    getattr(listener.handler, "__name__", repr(listener.handler)),
                    listener.source,
                    e,
                )
        return delivered

    # Convenience emitters used by data providers

    def progress(self, percent: float) -> None:
        self.emit(EventType.PROGRESS, {"percent": float(percent)})

    def cache_hit(self, key: str | None = None) -> None:
        self.emit(EventType.CACHE_HIT, {"key": key})

    def cache_miss(self, key: str | None = None) -> None:
        self.emit(EventType.CACHE_MISS, {"key": key})

    def listeners(self, event: EventType | str | None = None) -> list[Listener]:
        """Get registered listeners, optionally for one event."""
        if event is None:
            return [l for group in self._listeners.values() for l in group]
        return list(self._listeners.get(EventType(event), []))

    def clear(self) -> None:
        self._listeners.clear()
