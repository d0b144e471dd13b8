"""Synchronous in-process bus for domain events."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)


class EventBus:
    """Publish/subscribe bus for domain events.

    Handlers run synchronously, in registration order, on the publishing
    thread. A failing handler propagates to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        with self._lock:
            self._subscribers[event_type].append(handler)

    def publish(self, event: Any) -> None:
        with self._lock:
            handlers = list(self._subscribers.get(type(event), []))
        logger.debug("bus.publish", event_type=type(event).__name__, handlers=len(handlers))
        for handler in handlers:
            handler(event)
