# carebook/repositories/reservation_repository.py
"""
Reservation Repository for the CareBook scheduling core.

The only code that writes ``availability_slots.current_occupancy``. Every
write is a single conditional UPDATE whose WHERE clause is the capacity
guard, so concurrent requests cannot overbook or drive occupancy negative.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import ReservationStatus
from ..models.availability import AvailabilitySlot
from ..models.reservation import SlotReservation
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReservationRepository(BaseRepository[SlotReservation]):
    """Repository for capacity reservation tokens and slot occupancy."""

    def __init__(self, db: Session):
        super().__init__(db, SlotReservation)
        self.logger = logging.getLogger(__name__)

    def increment_occupancy(self, slot_id: str) -> int:
        """Take one place if any is free. Returns 1 on success, 0 if full or missing."""
        query = self.db.query(AvailabilitySlot).filter(
            AvailabilitySlot.id == slot_id,
            AvailabilitySlot.current_occupancy < AvailabilitySlot.total_capacity,
        )
        return self._execute_update(
            query, {AvailabilitySlot.current_occupancy: AvailabilitySlot.current_occupancy + 1}
        )

    def decrement_occupancy(self, slot_id: str) -> int:
        """Give one place back, never going below zero."""
        query = self.db.query(AvailabilitySlot).filter(
            AvailabilitySlot.id == slot_id,
            AvailabilitySlot.current_occupancy > 0,
        )
        return self._execute_update(
            query, {AvailabilitySlot.current_occupancy: AvailabilitySlot.current_occupancy - 1}
        )

    def create_token(
        self, slot_id: str, booking_id: str, reserved_at: Optional[datetime] = None
    ) -> SlotReservation:
        values = {
            "slot_id": slot_id,
            "booking_id": booking_id,
            "status": ReservationStatus.ACTIVE.value,
        }
        if reserved_at is not None:
            values["reserved_at"] = reserved_at
        return self.create(**values)

    def mark_released(self, reservation_id: str, released_at: datetime) -> int:
        """Flip an ACTIVE token to RELEASED. Returns 0 if it was already released."""
        query = self.db.query(SlotReservation).filter(
            SlotReservation.id == reservation_id,
            SlotReservation.status == ReservationStatus.ACTIVE.value,
        )
        return self._execute_update(
            query,
            {
                SlotReservation.status: ReservationStatus.RELEASED.value,
                SlotReservation.released_at: released_at,
            },
        )

    def get_occupancy(self, slot_id: str) -> Optional[int]:
        """Current occupancy as stored, bypassing the identity map."""
        slot = (
            self.db.query(AvailabilitySlot)
            .filter(AvailabilitySlot.id == slot_id)
            .populate_existing()
        )
        found = self._execute_query(slot)
        return found[0].current_occupancy if found else None

    def count_active(self, slot_id: str) -> int:
        return self.count(slot_id=slot_id, status=ReservationStatus.ACTIVE.value)
