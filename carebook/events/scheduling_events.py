"""Typed scheduling events: slot changes and booking lifecycle."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
import logging
from typing import ClassVar, List, Optional

from pydantic import BaseModel, ConfigDict

from ..core.enums import BookingStatus
from ..models.availability import AvailabilitySlot
from ..models.booking import Booking

logger = logging.getLogger(__name__)


class SchedulingEvent(BaseModel):
    """Base class for scheduling domain events."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    event_type: ClassVar[str] = "scheduling.event"

    def recipients(self) -> List[str]:
        """Users to notify about this event."""
        return []


# Slot events (the caregiver is told their schedule changed)


class SlotEvent(SchedulingEvent):
    slot_id: str
    caregiver_id: str
    slot_date: date
    start_time: time
    end_time: time
    total_capacity: int
    base_rate: Decimal

    def recipients(self) -> List[str]:
        return [self.caregiver_id]

    @classmethod
    def from_slot(cls, slot: AvailabilitySlot, **extra: object) -> "SlotEvent":
        return cls(
            slot_id=slot.id,
            caregiver_id=slot.caregiver_id,
            slot_date=slot.slot_date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            total_capacity=slot.total_capacity,
            base_rate=slot.base_rate,
            **extra,
        )


class SlotCreated(SlotEvent):
    event_type: ClassVar[str] = "slot.created"


class SlotReplaced(SlotEvent):
    event_type: ClassVar[str] = "slot.replaced"

    replaced_slot_id: str


class SlotUpdated(SlotEvent):
    event_type: ClassVar[str] = "slot.updated"


class SlotDeleted(SlotEvent):
    event_type: ClassVar[str] = "slot.deleted"


# Booking events


class BookingEventBase(SchedulingEvent):
    booking_id: str
    caregiver_id: str
    parent_id: str
    slot_id: Optional[str] = None
    status: BookingStatus
    start_at: datetime
    end_at: datetime
    occurred_at: datetime

    def recipients(self) -> List[str]:
        # Caregiver actions are reported to the parent
        return [self.parent_id]

    @classmethod
    def from_booking(
        cls, booking: Booking, occurred_at: datetime, **extra: object
    ) -> "BookingEventBase":
        return cls(
            booking_id=booking.id,
            caregiver_id=booking.caregiver_id,
            parent_id=booking.parent_id,
            slot_id=booking.slot_id,
            status=BookingStatus(booking.status),
            start_at=booking.start_at,
            end_at=booking.end_at,
            occurred_at=occurred_at,
            **extra,
        )


class BookingRequested(BookingEventBase):
    event_type: ClassVar[str] = "booking.requested"

    children_count: int
    total_amount: Decimal

    def recipients(self) -> List[str]:
        return [self.caregiver_id]


class BookingConfirmed(BookingEventBase):
    event_type: ClassVar[str] = "booking.confirmed"


class BookingDeclined(BookingEventBase):
    event_type: ClassVar[str] = "booking.declined"

    reason: Optional[str] = None


class BookingCancelled(BookingEventBase):
    event_type: ClassVar[str] = "booking.cancelled"

    reason: Optional[str] = None


class BookingStarted(BookingEventBase):
    event_type: ClassVar[str] = "booking.started"


class BookingCompleted(BookingEventBase):
    event_type: ClassVar[str] = "booking.completed"


__all__ = [
    "BookingCancelled",
    "BookingCompleted",
    "BookingConfirmed",
    "BookingDeclined",
    "BookingEventBase",
    "BookingRequested",
    "BookingStarted",
    "SchedulingEvent",
    "SlotCreated",
    "SlotDeleted",
    "SlotEvent",
    "SlotReplaced",
    "SlotUpdated",
]
