"""
SQLAlchemy models for the CareBook scheduling core.

Importing this package registers every mapper on ``Base.metadata``.
"""

from .availability import AvailabilitySlot
from .booking import Booking
from .reservation import SlotReservation

__all__ = [
    "AvailabilitySlot",
    "Booking",
    "SlotReservation",
]
