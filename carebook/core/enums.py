# carebook/core/enums.py
"""
Core enums for the CareBook scheduling core.

String enums so values serialize cleanly to the database and to JSON.
"""

from enum import Enum


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


class BookingEvent(str, Enum):
    """Caregiver actions that move a booking between statuses."""

    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"
    START = "start"
    COMPLETE = "complete"


class ConflictPolicy(str, Enum):
    """Caller's explicit choice for a slot that already starts at the same instant."""

    REPLACE = "REPLACE"
    SKIP = "SKIP"


class ResolutionOutcome(str, Enum):
    """What the conflict resolver did with a candidate slot."""

    CREATED = "created"
    REPLACED = "replaced"
    SKIPPED = "skipped"


class ReservationStatus(str, Enum):
    """Lifecycle of a capacity reservation token."""

    ACTIVE = "ACTIVE"
    RELEASED = "RELEASED"


class DayOfWeek(str, Enum):
    """Days of the week, Monday first to match ``date.weekday()``."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def offset(self) -> int:
        """Days after Monday."""
        return list(DayOfWeek).index(self)
