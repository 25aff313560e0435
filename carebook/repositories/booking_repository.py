# carebook/repositories/booking_repository.py
"""
Booking Repository for the CareBook scheduling core.

This repository handles:
- Booking creation (no commit)
- Compare-and-set status transitions
- Caregiver/parent booking listings
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Query, Session

from ..core.constants import DEFAULT_QUERY_LIMIT
from ..core.enums import BookingStatus
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def compare_and_set_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
        extra_values: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Move the booking to ``new_status`` only if it is still in ``expected``.

        Returns:
            1 when this caller won the transition, 0 when the status had
            already changed (or the booking does not exist)
        """
        values: Dict[Any, Any] = {Booking.status: new_status.value}
        for key, value in (extra_values or {}).items():
            values[getattr(Booking, key)] = value

        query = self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.status == expected.value,
        )
        return self._execute_update(query, values)

    def list_for_caregiver(
        self,
        caregiver_id: str,
        status: Optional[BookingStatus] = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> List[Booking]:
        query = self._build_query().filter(Booking.caregiver_id == caregiver_id)
        return self._execute_query(self._finish_listing(query, status, limit))

    def list_for_parent(
        self,
        parent_id: str,
        status: Optional[BookingStatus] = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> List[Booking]:
        query = self._build_query().filter(Booking.parent_id == parent_id)
        return self._execute_query(self._finish_listing(query, status, limit))

    def _finish_listing(
        self, query: Query, status: Optional[BookingStatus], limit: int
    ) -> Query:
        if status is not None:
            query = query.filter(Booking.status == status.value)
        return query.order_by(Booking.start_at, Booking.id).limit(limit)
