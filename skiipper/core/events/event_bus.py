"""In-process event bus shared by the outbox dispatcher and subscribers."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List

from skiipper.core.events.event_models import EventRecord

logger = logging.getLogger(__name__)

EventHandler = Callable[[EventRecord], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: Dict[str, List[EventHandler]] = {}

    def subscribe(self, event_type: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for ``event_type`` and return an unsubscribe callable.

        Subscribing the same handler twice is a no-op, so app factories can
        re-register their subscriptions safely.
        """
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(event_type, handler)

        return _unsubscribe

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_type: str) -> List[EventHandler]:
        return list(self._subscribers.get(event_type, []))

    def publish(self, event: EventRecord) -> None:
        handlers = self.handlers_for(event.event_type)
        if not handlers:
            logger.debug("No subscribers for %s", event.event_type)
        for handler in handlers:
            handler(event)


# Global singleton
event_bus = EventBus()
