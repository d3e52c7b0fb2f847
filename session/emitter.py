"""
Event Emitter

Publish-subscribe delivery of UI trigger events.
"""

from __future__ import annotations

import logging
from typing import Callable

from .events import UITriggerEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[UITriggerEvent], None]


class EventEmitter:
    """Event emitter for UI trigger events. ``"*"`` subscribes to everything."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscriber]] = {}

    def subscribe(self, event_type: str, callback: Subscriber) -> None:
        """Subscribe to an event type."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        if callback not in self._subscribers[event_type]:
            self._subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: str, callback: Subscriber) -> None:
        """Unsubscribe from an event type."""
        if event_type in self._subscribers:
            if callback in self._subscribers[event_type]:
                self._subscribers[event_type].remove(callback)

    def emit(self, event: UITriggerEvent) -> None:
        """Emit an event to all subscribers."""
        logger.debug(
            f"[Emitter] {event.event_type}",
            extra={
                "trigger": event.event_type,
                "url": event.identity.url if event.identity else None,
                "item_id": event.identity.item_id if event.identity else None,
            },
        )
        callbacks = list(self._subscribers.get(event.event_type, [])) + list(self._subscribers.get("*", []))
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                # A failing subscriber must not block the others
                logger.exception(f"[Emitter] Subscriber failed for {event.event_type}")
