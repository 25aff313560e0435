# carebook/services/conflict_resolver.py
"""
Conflict Resolver for the CareBook scheduling core.

Decides what happens when a new slot starts at the same instant as one the
caregiver already has. The caller must state a policy; there is no default
and no prompt.

    no existing slot   -> create
    existing + REPLACE -> delete the existing slot (only if unoccupied), create
    existing + SKIP    -> nothing changes, the existing slot is reported
    existing + None    -> DuplicateSlotError naming the existing slot

Replace is delete-then-create inside one transaction: if the existing slot
is occupied nothing is deleted and nothing is created.
"""

from dataclasses import dataclass
from datetime import date
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import ConflictPolicy, ResolutionOutcome
from ..core.exceptions import DuplicateSlotError, OccupiedSlotConflict, ValidationException
from ..core.validation import (
    RateLike,
    TimeLike,
    normalize_time,
    to_money,
    validate_capacity,
    validate_window,
)
from ..models.availability import AvailabilitySlot
from .base import BaseService, Clock
from .slot_store import SlotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotResolution:
    """Result of resolving one candidate slot."""

    outcome: ResolutionOutcome
    slot: AvailabilitySlot
    replaced_slot_id: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.outcome is not ResolutionOutcome.SKIPPED


def parse_policy(value: Optional[ConflictPolicy]) -> Optional[ConflictPolicy]:
    if value is None:
        return None
    try:
        return ConflictPolicy(value)
    except ValueError as e:
        raise ValidationException(
            f"Unknown conflict policy: {value}",
            code="INVALID_CONFLICT_POLICY",
            details={"allowed": [p.value for p in ConflictPolicy]},
        ) from e


class ConflictResolver(BaseService):
    """Applies an explicit conflict policy to same-start slots."""

    def __init__(
        self,
        db: Session,
        slot_store: Optional[SlotStore] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock=clock)
        self.slot_store = slot_store or SlotStore(db, clock=clock)

    @BaseService.measure_operation("resolve_slot")
    def resolve(
        self,
        caregiver_id: str,
        slot_date: date,
        start_time: TimeLike,
        end_time: TimeLike,
        total_capacity: int,
        base_rate: RateLike,
        is_recurring: bool = False,
        notes: Optional[str] = None,
        *,
        conflict_policy: Optional[ConflictPolicy],
    ) -> SlotResolution:
        """
        Create the candidate slot, honoring ``conflict_policy`` on a clash.

        Raises:
            ValidationException: invalid candidate (nothing is touched)
            DuplicateSlotError: clash and no policy
            OccupiedSlotConflict: REPLACE against an occupied slot
        """
        start = normalize_time(start_time)
        end = normalize_time(end_time)
        validate_window(start, end)
        validate_capacity(total_capacity)
        rate = to_money(base_rate)
        policy = parse_policy(conflict_policy)

        def _create() -> AvailabilitySlot:
            return self.slot_store.create(
                caregiver_id,
                slot_date,
                start,
                end,
                total_capacity,
                rate,
                is_recurring=is_recurring,
                notes=notes,
            )

        def _resolve() -> SlotResolution:
            existing = self.slot_store.find_by_start(caregiver_id, slot_date, start)
            if existing is None:
                return SlotResolution(ResolutionOutcome.CREATED, _create())

            if policy is None:
                raise DuplicateSlotError(existing.id)

            if policy is ConflictPolicy.SKIP:
                self.logger.info("Skipping candidate, slot %s already starts there", existing.id)
                return SlotResolution(ResolutionOutcome.SKIPPED, existing)

            if not self.slot_store.delete_if_unoccupied(existing.id):
                raise OccupiedSlotConflict(existing.id, existing.current_occupancy)
            return SlotResolution(
                ResolutionOutcome.REPLACED, _create(), replaced_slot_id=existing.id
            )

        resolution = self.run_in_transaction("resolve_slot", _resolve)
        self.log_operation(
            "slot_resolved",
            caregiver_id=caregiver_id,
            outcome=resolution.outcome.value,
            slot_id=resolution.slot.id,
        )
        return resolution
