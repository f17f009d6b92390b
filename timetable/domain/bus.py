"""Simple synchronous in-process event bus."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Publish/subscribe bus for domain events.

    Handlers are called synchronously in registration order.  Handlers do
    best-effort bookkeeping: a failing handler is logged and skipped, and
    never fails the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: Any) -> int:
        """Deliver *event*; return the number of handlers that failed."""
        failures = 0
        for handler in self._subscribers.get(type(event), []):
            try:
                handler(event)
            except Exception:
                failures += 1
                logger.exception(
                    "Handler %s failed for %s",
                    getattr(handler, "__name__", handler),
                    type(event).__name__,
                )
        return failures
