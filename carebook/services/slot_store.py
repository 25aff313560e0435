# carebook/services/slot_store.py
"""
Slot Store Service for the CareBook scheduling core.

Persistence of availability slots with their field validation. The store
does not look for duplicates itself (that is the conflict resolver's job);
the database unique key only catches a creation race, which is reported as
``DuplicateSlotError``.

Every guarded write here is a single conditional statement:
- delete only matches ``current_occupancy = 0``
- a capacity change only matches ``current_occupancy <= new_capacity``
"""

from datetime import date, time, timedelta
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import MAX_LIST_RANGE_DAYS
from ..core.exceptions import (
    CapacityInUseError,
    DuplicateSlotError,
    IntegrityConstraintException,
    NotFoundException,
    ValidationException,
)
from ..core.validation import (
    RateLike,
    TimeLike,
    normalize_time,
    to_money,
    validate_capacity,
    validate_window,
)
from ..models.availability import AvailabilitySlot
from ..repositories.factory import RepositoryFactory
from ..repositories.slot_repository import SlotRepository
from .base import BaseService, Clock

logger = logging.getLogger(__name__)


class SlotStore(BaseService):
    """Create, read, update and delete availability slots."""

    def __init__(
        self,
        db: Session,
        slot_repository: Optional[SlotRepository] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock=clock)
        self.repository = slot_repository or RepositoryFactory.create_slot_repository(db)

    @BaseService.measure_operation("slot_create")
    def create(
        self,
        caregiver_id: str,
        slot_date: date,
        start_time: TimeLike,
        end_time: TimeLike,
        total_capacity: int,
        base_rate: RateLike,
        is_recurring: bool = False,
        notes: Optional[str] = None,
    ) -> AvailabilitySlot:
        """
        Validate and insert one slot.

        Raises:
            ValidationException: bad time range, capacity or rate
            DuplicateSlotError: another slot won a race for the same start
        """
        start = normalize_time(start_time)
        end = normalize_time(end_time)
        validate_window(start, end)
        validate_capacity(total_capacity)
        rate = to_money(base_rate)

        def _create() -> AvailabilitySlot:
            try:
                return self.repository.create_slot(
                    caregiver_id=caregiver_id,
                    slot_date=slot_date,
                    start_time=start,
                    end_time=end,
                    total_capacity=total_capacity,
                    current_occupancy=0,
                    base_rate=rate,
                    is_recurring=is_recurring,
                    notes=notes,
                )
            except IntegrityConstraintException as e:
                existing = self.repository.find_by_start(caregiver_id, slot_date, start)
                if existing is not None:
                    raise DuplicateSlotError(existing.id) from e
                raise ValidationException(f"Slot rejected by the database: {e}") from e

        slot = self.run_in_transaction("slot_create", _create)
        self.log_operation(
            "slot_created",
            slot_id=slot.id,
            caregiver_id=caregiver_id,
            slot_date=slot_date.isoformat(),
        )
        return slot

    def get(self, caregiver_id: str, start_date: date, end_date: date) -> List[AvailabilitySlot]:
        """Slots dated in ``[start_date, end_date)``, by date then start time."""
        if end_date <= start_date:
            raise ValidationException(
                "End date must be after start date",
                code="INVALID_DATE_RANGE",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        if end_date - start_date > timedelta(days=MAX_LIST_RANGE_DAYS):
            raise ValidationException(
                f"Date range cannot exceed {MAX_LIST_RANGE_DAYS} days",
                code="INVALID_DATE_RANGE",
            )
        return self.run_in_transaction(
            "slot_list",
            lambda: self.repository.list_for_range(caregiver_id, start_date, end_date),
        )

    def get_by_id(self, slot_id: str) -> AvailabilitySlot:
        return self.run_in_transaction("slot_get", lambda: self._load(slot_id))

    def find_by_start(
        self, caregiver_id: str, slot_date: date, start_time: time
    ) -> Optional[AvailabilitySlot]:
        return self.run_in_transaction(
            "slot_find_by_start",
            lambda: self.repository.find_by_start(caregiver_id, slot_date, start_time),
        )

    def find_covering(
        self, caregiver_id: str, slot_date: date, start_time: time, end_time: time
    ) -> List[AvailabilitySlot]:
        """Slots on ``slot_date`` whose window contains the given times, earliest start first."""
        return self.run_in_transaction(
            "slot_find_covering",
            lambda: self.repository.find_covering(caregiver_id, slot_date, start_time, end_time),
        )

    def delete_if_unoccupied(self, slot_id: str) -> bool:
        """Guarded delete; False when the slot holds a reservation or is gone."""
        return self.run_in_transaction(
            "slot_delete_if_unoccupied",
            lambda: bool(self.repository.delete_if_unoccupied(slot_id)),
        )

    def _load(self, slot_id: str) -> AvailabilitySlot:
        slot = self.repository.get_by_id(slot_id, refresh=True)
        if slot is None:
            raise NotFoundException(f"Slot {slot_id} not found", code="SLOT_NOT_FOUND")
        return slot

    @BaseService.measure_operation("slot_delete")
    def delete(self, slot_id: str) -> AvailabilitySlot:
        """
        Delete a slot nobody has booked.

        Returns the slot as it was just before deletion.

        Raises:
            NotFoundException: no such slot
            CapacityInUseError: the slot holds at least one reservation
        """

        def _delete() -> AvailabilitySlot:
            slot = self.get_by_id(slot_id)
            if self.repository.delete_if_unoccupied(slot_id):
                return slot
            current = self.get_by_id(slot_id)
            raise CapacityInUseError(slot_id, current.current_occupancy)

        deleted = self.run_in_transaction("slot_delete", _delete)
        self.log_operation("slot_deleted", slot_id=slot_id, caregiver_id=deleted.caregiver_id)
        return deleted

    @BaseService.measure_operation("slot_clear_day")
    def delete_for_day(
        self, caregiver_id: str, slot_date: date
    ) -> Tuple[List[AvailabilitySlot], List[AvailabilitySlot]]:
        """
        Delete every unbooked slot the caregiver has on ``slot_date``.

        Occupied slots are left in place rather than failing the call.

        Returns:
            (deleted, kept) slots, each ordered by start time
        """

        def _clear() -> Tuple[List[AvailabilitySlot], List[AvailabilitySlot]]:
            deleted: List[AvailabilitySlot] = []
            kept: List[AvailabilitySlot] = []
            slots = self.repository.list_for_range(
                caregiver_id, slot_date, slot_date + timedelta(days=1)
            )
            for slot in slots:
                if self.repository.delete_if_unoccupied(slot.id):
                    deleted.append(slot)
                else:
                    kept.append(self._load(slot.id))
            return deleted, kept

        deleted, kept = self.run_in_transaction("slot_clear_day", _clear)
        self.log_operation(
            "slot_day_cleared",
            caregiver_id=caregiver_id,
            slot_date=slot_date.isoformat(),
            deleted=len(deleted),
            kept=len(kept),
        )
        return deleted, kept

    @BaseService.measure_operation("slot_update")
    def update_capacity_or_rate(
        self,
        slot_id: str,
        total_capacity: Optional[int] = None,
        base_rate: Optional[RateLike] = None,
        notes: Optional[str] = None,
    ) -> AvailabilitySlot:
        """
        Edit capacity, rate and/or notes. ``None`` leaves a field unchanged.

        Rate and notes are always editable. Capacity may rise freely and may
        only fall as far as the current occupancy, checked in the same
        statement that writes it.
        """
        values: Dict[str, Any] = {}
        if total_capacity is not None:
            validate_capacity(total_capacity)
            values["total_capacity"] = total_capacity
        if base_rate is not None:
            values["base_rate"] = to_money(base_rate)
        if notes is not None:
            values["notes"] = notes

        def _update() -> AvailabilitySlot:
            slot = self.get_by_id(slot_id)
            if not values:
                return slot
            if not self.repository.update_editable_fields(slot_id, values):
                current = self.get_by_id(slot_id)
                raise CapacityInUseError(slot_id, current.current_occupancy, total_capacity)
            return self.get_by_id(slot_id)

        slot = self.run_in_transaction("slot_update", _update)
        self.log_operation("slot_updated", slot_id=slot_id, fields=sorted(values))
        return slot
