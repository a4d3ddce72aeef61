"""RoadStash Events - Cache Operation Events.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEvent:
    """Base cache event."""

    key: str


@dataclass(frozen=True)
class CacheHit(CacheEvent):
    """A live record was found."""

    value: Any = None
    expiry: Optional[datetime] = None


@dataclass(frozen=True)
class CacheMissed(CacheEvent):
    """No live record was found."""


@dataclass(frozen=True)
class KeyWritten(CacheEvent):
    """A record was persisted.

    Attributes:
        ttl: Seconds until expiry, None for no expiry
        size: Approximate serialized size in bytes
    """

    value: Any = None
    ttl: Optional[float] = None
    size: int = 0


@dataclass(frozen=True)
class KeyForgotten(CacheEvent):
    """A key was deleted."""


Listener = Callable[[CacheEvent], None]


class EventDispatcher:
    """Synchronous event dispatcher.

    Listeners registered for a class also receive its subclasses' events.
    A failing listener is logged and skipped; it never fails the cache
    operation that raised the event.
    """

    def __init__(self):
        self._listeners: Dict[Type[CacheEvent], List[Listener]] = {}
        self._lock = threading.RLock()

    def listen(self, event_type: Type[CacheEvent], listener: Listener) -> None:
        """Register a listener.

        Args:
            event_type: Event class to listen for
            listener: Callable receiving the event
        """
        with self._lock:
            self._listeners.setdefault(event_type, []).append(listener)

    def forget(self, event_type: Type[CacheEvent]) -> None:
        """Remove all listeners for an event class."""
        with self._lock:
            self._listeners.pop(event_type, None)

    def dispatch(self, event: CacheEvent) -> CacheEvent:
        """Deliver an event to matching listeners.

        Returns:
            The event
        """
        with self._lock:
            listeners = [
                listener
                for event_type, registered in self._listeners.items()
                if isinstance(event, event_type)
                for listener in registered
            ]

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener error for {type(event).__name__}({event.key}): {e}")

        return event

    def has_listeners(self, event_type: Type[CacheEvent]) -> bool:
        return bool(self._listeners.get(event_type))


__all__ = [
    "CacheEvent",
    "CacheHit",
    "CacheMissed",
    "KeyWritten",
    "KeyForgotten",
    "EventDispatcher",
]
