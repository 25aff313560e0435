# carebook/services/booking_lifecycle.py
"""
Booking Lifecycle for the CareBook scheduling core.

Booking state machine:

    PENDING     --accept-->   CONFIRMED     (confirmed_at)
    PENDING     --decline-->  CANCELLED     (release)
    CONFIRMED   --cancel-->   CANCELLED     (release)
    CONFIRMED   --start-->    IN_PROGRESS   (only once now >= start_at)
    IN_PROGRESS --complete--> COMPLETED     (completed_at, release)

Every transition is a compare-and-set on the expected current status, so
two concurrent actions on one booking cannot both succeed. The loser gets
an InvalidTransitionError naming the status it actually found.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from ..core.enums import BookingEvent, BookingStatus
from ..core.exceptions import InvalidTransitionError, NotFoundException, ValidationException
from ..models.booking import Booking
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock
from .capacity_ledger import CapacityLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    target: BookingStatus
    timestamp_field: Optional[str] = None
    releases_capacity: bool = False
    requires_started: bool = False


TRANSITIONS: Dict[tuple, Transition] = {
    (BookingStatus.PENDING, BookingEvent.ACCEPT): Transition(
        BookingStatus.CONFIRMED, timestamp_field="confirmed_at"
    ),
    (BookingStatus.PENDING, BookingEvent.DECLINE): Transition(
        BookingStatus.CANCELLED, timestamp_field="cancelled_at", releases_capacity=True
    ),
    (BookingStatus.CONFIRMED, BookingEvent.CANCEL): Transition(
        BookingStatus.CANCELLED, timestamp_field="cancelled_at", releases_capacity=True
    ),
    (BookingStatus.CONFIRMED, BookingEvent.START): Transition(
        BookingStatus.IN_PROGRESS, timestamp_field="started_at", requires_started=True
    ),
    (BookingStatus.IN_PROGRESS, BookingEvent.COMPLETE): Transition(
        BookingStatus.COMPLETED, timestamp_field="completed_at", releases_capacity=True
    ),
}


@dataclass(frozen=True)
class TransitionResult:
    booking: Booking
    previous_status: BookingStatus
    event: BookingEvent
    capacity_released: bool


class BookingLifecycle(BaseService):
    """Creates bookings and moves them through their statuses."""

    def __init__(
        self,
        db: Session,
        capacity_ledger: Optional[CapacityLedger] = None,
        booking_repository: Optional[BookingRepository] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock=clock)
        self.capacity_ledger = capacity_ledger or CapacityLedger(db, clock=clock)
        self.repository = booking_repository or RepositoryFactory.create_booking_repository(db)

    def create(self, **booking_data: Any) -> Booking:
        """
        Persist a PENDING booking.

        The caller has already reserved capacity and passes the token as
        ``reservation_id``; this runs in the caller's transaction so a failure
        here also undoes the reservation.
        """
        booking_data.setdefault("requested_at", self.clock())
        booking_data["status"] = BookingStatus.PENDING.value
        return self.run_in_transaction(
            "booking_create", lambda: self.repository.create(**booking_data)
        )

    def get(self, booking_id: str) -> Booking:
        return self.run_in_transaction("booking_get", lambda: self._load(booking_id))

    def _load(self, booking_id: str) -> Booking:
        booking = self.repository.get_by_id(booking_id, refresh=True)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")
        return booking

    def list_bookings(
        self,
        caregiver_id: Optional[str] = None,
        parent_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> List[Booking]:
        """Bookings for exactly one of caregiver or parent, by start time."""
        if (caregiver_id is None) == (parent_id is None):
            raise ValidationException(
                "Provide exactly one of caregiver_id or parent_id",
                code="INVALID_BOOKING_FILTER",
            )
        limit = max(1, min(limit, MAX_QUERY_LIMIT))

        def _list() -> List[Booking]:
            if caregiver_id is not None:
                return self.repository.list_for_caregiver(caregiver_id, status=status, limit=limit)
            return self.repository.list_for_parent(parent_id, status=status, limit=limit)

        return self.run_in_transaction("booking_list", _list)

    @BaseService.measure_operation("booking_transition")
    def transition(
        self, booking_id: str, event: BookingEvent, reason: Optional[str] = None
    ) -> TransitionResult:
        """
        Apply ``event`` to the booking.

        Raises:
            NotFoundException: unknown booking
            InvalidTransitionError: event not allowed from the current status,
                start requested before the booking's start time, or another
                request changed the status first
        """
        try:
            event = BookingEvent(event)
        except ValueError as e:
            raise ValidationException(
                f"Unknown booking event: {event}",
                code="INVALID_BOOKING_EVENT",
                details={"allowed": [ev.value for ev in BookingEvent]},
            ) from e

        def _transition() -> TransitionResult:
            booking = self.get(booking_id)
            current = BookingStatus(booking.status)
            transition = TRANSITIONS.get((current, event))
            if transition is None:
                raise InvalidTransitionError(booking_id, current.value, event.value)

            now = self.clock()
            if transition.requires_started and now < booking.start_at:
                raise InvalidTransitionError(
                    booking_id,
                    current.value,
                    event.value,
                    reason=f"care starts at {booking.start_at.isoformat()}",
                )

            values: Dict[str, Any] = {}
            if transition.timestamp_field:
                values[transition.timestamp_field] = now
            if transition.target is BookingStatus.CANCELLED and reason:
                values["cancellation_reason"] = reason

            if not self.repository.compare_and_set_status(
                booking_id, current, transition.target, values
            ):
                found = self.get(booking_id)
                raise InvalidTransitionError(
                    booking_id,
                    found.status,
                    event.value,
                    reason="the booking was changed by another request",
                )

            released = False
            if transition.releases_capacity and booking.reservation_id:
                released = self.capacity_ledger.release(booking.slot_id, booking.reservation_id)

            return TransitionResult(
                booking=self.get(booking_id),
                previous_status=current,
                event=event,
                capacity_released=released,
            )

        result = self.run_in_transaction("booking_transition", _transition)
        self.log_operation(
            "booking_transitioned",
            booking_id=booking_id,
            from_status=result.previous_status.value,
            to_status=result.booking.status,
            booking_event=event.value,
        )
        return result
