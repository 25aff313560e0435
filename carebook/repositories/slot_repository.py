# carebook/repositories/slot_repository.py
"""
Slot Repository for the CareBook scheduling core.

Data access for availability slots:
- Lookup by caregiver and normalized start instant (conflict detection)
- Date range listing
- Locating slots that cover a requested care window
- Creation under a savepoint, so a unique-key race leaves the outer
  transaction usable
- Conditional delete and conditional capacity/rate updates

Occupancy is never written here; see ``ReservationRepository``.
"""

from datetime import date, time
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.availability import AvailabilitySlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SlotRepository(BaseRepository[AvailabilitySlot]):
    """Repository for availability slot data access."""

    def __init__(self, db: Session):
        super().__init__(db, AvailabilitySlot)
        self.logger = logging.getLogger(__name__)

    def find_by_start(
        self, caregiver_id: str, slot_date: date, start_time: time
    ) -> Optional[AvailabilitySlot]:
        """Return the caregiver's slot starting at exactly this date and time, if any."""
        try:
            return (
                self.db.query(AvailabilitySlot)
                .filter(
                    AvailabilitySlot.caregiver_id == caregiver_id,
                    AvailabilitySlot.slot_date == slot_date,
                    AvailabilitySlot.start_time == start_time,
                )
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            raise self._wrap_error(e, "find slot by start")

    def list_for_range(
        self, caregiver_id: str, start_date: date, end_date: date
    ) -> List[AvailabilitySlot]:
        """
        Slots with ``start_date <= slot_date < end_date``.

        Ordered by (slot_date, start_time).
        """
        query = (
            self._build_query()
            .filter(
                AvailabilitySlot.caregiver_id == caregiver_id,
                AvailabilitySlot.slot_date >= start_date,
                AvailabilitySlot.slot_date < end_date,
            )
            .order_by(AvailabilitySlot.slot_date, AvailabilitySlot.start_time)
            .populate_existing()
        )
        return self._execute_query(query)

    def find_covering(
        self, caregiver_id: str, slot_date: date, start_time: time, end_time: time
    ) -> List[AvailabilitySlot]:
        """
        Slots on ``slot_date`` whose window contains [start_time, end_time].

        Earliest start first, then oldest slot first.
        """
        query = (
            self._build_query()
            .filter(
                AvailabilitySlot.caregiver_id == caregiver_id,
                AvailabilitySlot.slot_date == slot_date,
                AvailabilitySlot.start_time <= start_time,
                AvailabilitySlot.end_time >= end_time,
            )
            .order_by(
                AvailabilitySlot.start_time,
                AvailabilitySlot.created_at,
                AvailabilitySlot.id,
            )
            .populate_existing()
        )
        return self._execute_query(query)

    def create_slot(self, **kwargs: Any) -> AvailabilitySlot:
        """
        Insert a slot inside a savepoint.

        Raises:
            IntegrityConstraintException: unique (caregiver, date, start) or a
                check constraint rejected the row. Only the savepoint is rolled
                back.
        """
        slot = AvailabilitySlot(**kwargs)
        try:
            with self.db.begin_nested():
                self.db.add(slot)
                self.db.flush()
        except SQLAlchemyError as e:
            raise self._wrap_error(e, "create availability slot")
        self.logger.debug("Created slot %s", slot.id)
        return slot

    def delete_if_unoccupied(self, slot_id: str) -> int:
        """Delete the slot only while nobody holds a place in it. Returns rows deleted."""
        query = self.db.query(AvailabilitySlot).filter(
            AvailabilitySlot.id == slot_id,
            AvailabilitySlot.current_occupancy == 0,
        )
        deleted = self._execute_delete(query)
        if deleted:
            self._evict(slot_id)
        return deleted

    def update_editable_fields(self, slot_id: str, values: Dict[str, Any]) -> int:
        """
        Update rate/notes/capacity in one statement.

        When ``total_capacity`` is among the values, the row only matches while
        its occupancy still fits the new capacity. Returns rows updated.
        """
        query = self.db.query(AvailabilitySlot).filter(AvailabilitySlot.id == slot_id)
        new_capacity = values.get("total_capacity")
        if new_capacity is not None:
            query = query.filter(AvailabilitySlot.current_occupancy <= new_capacity)
        return self._execute_update(query, values)

    def _evict(self, slot_id: str) -> None:
        """Drop a bulk-deleted slot from the identity map."""
        for obj in list(self.db.identity_map.values()):
            if isinstance(obj, AvailabilitySlot) and obj.id == slot_id:
                self.db.expunge(obj)
