"""Scheduling domain events and their publisher."""

from .publisher import EventListener, EventPublisher
from .scheduling_events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingDeclined,
    BookingEventBase,
    BookingRequested,
    BookingStarted,
    SchedulingEvent,
    SlotCreated,
    SlotDeleted,
    SlotEvent,
    SlotReplaced,
    SlotUpdated,
)

__all__ = [
    # Slot events
    "SlotEvent",
    "SlotCreated",
    "SlotReplaced",
    "SlotUpdated",
    "SlotDeleted",
    # Booking events
    "BookingEventBase",
    "BookingRequested",
    "BookingConfirmed",
    "BookingDeclined",
    "BookingCancelled",
    "BookingStarted",
    "BookingCompleted",
    # Publishing
    "SchedulingEvent",
    "EventListener",
    "EventPublisher",
]
