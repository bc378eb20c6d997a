"""
In-process publish/subscribe channel for domain events.

Handlers run synchronously in the publisher's thread, in subscription
order. A failing handler is logged and does not prevent the remaining
handlers from running.
"""

import threading
from collections.abc import Callable, Mapping
from typing import Any, Dict, List

from core.logger import get_logger
from models import EventType, event_key

logger = get_logger("events")

EventHandler = Callable[[Mapping[str, Any]], Any]


class EventBus:
    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: EventType | str, handler: EventHandler) -> None:
        with self._lock:
            self._handlers.setdefault(event_key(event_type), []).append(handler)

    def unsubscribe(self, event_type: EventType | str, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._handlers.get(event_key(event_type), [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event_type: EventType | str, payload: Mapping[str, Any]) -> None:
        key = event_key(event_type)
        with self._lock:
            handlers = list(self._handlers.get(key, []))
        logger.debug("Publishing %s to %d handler(s)", key, len(handlers))
        for handler in handlers:
            try:
                handler(payload)
            except Exception as exc:
                logger.error("Handler for %s failed: %s", key, exc, exc_info=True)

    def handler_count(self, event_type: EventType | str) -> int:
        with self._lock:
            return len(self._handlers.get(event_key(event_type), []))
