# carebook/services/capacity_ledger.py
"""
Capacity Ledger for the CareBook scheduling core.

The only component that changes a slot's ``current_occupancy``.

reserve: one conditional increment guarded by ``occupancy < capacity``,
then an ACTIVE reservation token. Under concurrency the database decides
the winners; there is no read-then-write window.

release: flips the token ACTIVE -> RELEASED and only the caller that wins
that flip decrements occupancy. Releasing the same token again returns
False and changes nothing.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, SlotFullError
from ..models.reservation import SlotReservation
from ..repositories.factory import RepositoryFactory
from ..repositories.reservation_repository import ReservationRepository
from .base import BaseService, Clock

logger = logging.getLogger(__name__)


class CapacityLedger(BaseService):
    """Reserves and releases places in availability slots."""

    def __init__(
        self,
        db: Session,
        reservation_repository: Optional[ReservationRepository] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock=clock)
        self.repository = (
            reservation_repository or RepositoryFactory.create_reservation_repository(db)
        )

    @BaseService.measure_operation("reserve")
    def reserve(self, slot_id: str, booking_id: str) -> SlotReservation:
        """
        Hold one place in ``slot_id`` for ``booking_id``.

        Raises:
            SlotFullError: no place left
            NotFoundException: no such slot
        """

        def _reserve() -> SlotReservation:
            if not self.repository.increment_occupancy(slot_id):
                if self.repository.get_occupancy(slot_id) is None:
                    raise NotFoundException(f"Slot {slot_id} not found", code="SLOT_NOT_FOUND")
                raise SlotFullError(slot_id)
            return self.repository.create_token(slot_id, booking_id, reserved_at=self.clock())

        reservation = self.run_in_transaction("reserve", _reserve)
        self.logger.debug(
            "Reserved place in slot %s for booking %s (token %s)",
            slot_id,
            booking_id,
            reservation.id,
        )
        return reservation

    @BaseService.measure_operation("release")
    def release(self, slot_id: Optional[str], reservation_id: str) -> bool:
        """
        Return the place held by ``reservation_id``.

        Returns:
            True if this call gave capacity back, False if the token was
            already released (or unknown)
        """

        def _release() -> bool:
            if not self.repository.mark_released(reservation_id, self.clock()):
                return False
            if slot_id is None:
                return False
            return bool(self.repository.decrement_occupancy(slot_id))

        released = self.run_in_transaction("release", _release)
        if released:
            self.logger.debug("Released token %s on slot %s", reservation_id, slot_id)
        else:
            self.logger.info("Token %s was already released, nothing to return", reservation_id)
        return released

    def occupancy(self, slot_id: str) -> int:
        current = self.run_in_transaction(
            "occupancy", lambda: self.repository.get_occupancy(slot_id)
        )
        if current is None:
            raise NotFoundException(f"Slot {slot_id} not found", code="SLOT_NOT_FOUND")
        return current
