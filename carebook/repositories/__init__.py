"""
Repository layer for the CareBook scheduling core.

Repositories own data access only; services own transactions.
"""

from .base_repository import BaseRepository, IRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .reservation_repository import ReservationRepository
from .slot_repository import SlotRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "IRepository",
    "RepositoryFactory",
    "ReservationRepository",
    "SlotRepository",
]
