"""Event publisher - hands committed scheduling events to listeners and the notification bridge."""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..services.collaborators import NotificationBridge
from .scheduling_events import SchedulingEvent

logger = logging.getLogger(__name__)

EventListener = Callable[[SchedulingEvent], None]


class EventPublisher:
    """
    Publishes domain events after their transaction has committed.

    Listener and bridge failures are logged and never raised to the caller.
    """

    def __init__(self, bridge: Optional[NotificationBridge] = None):
        self.bridge = bridge
        self._listeners: List[EventListener] = []

    def register(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unregister(self, listener: EventListener) -> None:
        self._listeners = [existing for existing in self._listeners if existing is not listener]

    @property
    def listeners(self) -> Sequence[EventListener]:
        return tuple(self._listeners)

    def publish(self, event: SchedulingEvent) -> None:
        payload: Dict[str, Any] = event.model_dump(mode="json")

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Scheduling event listener error: %s", listener)

        if self.bridge is not None:
            for recipient_id in event.recipients():
                try:
                    self.bridge.notify(event.event_type, recipient_id, payload)
                except Exception:
                    logger.exception(
                        "Notification bridge failed for %s to %s", event.event_type, recipient_id
                    )

        logger.info("scheduling_event=%s payload=%s", event.event_type, payload)

    def publish_all(self, events: Sequence[SchedulingEvent]) -> None:
        for event in events:
            self.publish(event)
