# carebook/services/scheduling_service.py
"""
Scheduling Service for the CareBook scheduling core.

The entry point used by the API. Coordinates:
- Manual slot creation through the conflict resolver
- Weekly template application (one transaction for the whole batch)
- Slot edits and deletion
- Booking requests (capacity reservation + PENDING booking, atomically)
- Caregiver actions on bookings

Events are published only after the owning transaction has committed.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import BookingEvent, BookingStatus, ConflictPolicy, DayOfWeek, ResolutionOutcome
from ..core.exceptions import NotFoundException, SlotFullError, ValidationException
from ..core.ulid_helper import generate_ulid
from ..core.validation import RateLike, TimeLike, round_money
from ..events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingDeclined,
    BookingRequested,
    BookingStarted,
    EventPublisher,
    SchedulingEvent,
    SlotCreated,
    SlotDeleted,
    SlotReplaced,
    SlotUpdated,
)
from ..models.availability import AvailabilitySlot
from ..models.booking import Booking
from .base import BaseService, Clock
from .booking_lifecycle import BookingLifecycle, TransitionResult
from .capacity_ledger import CapacityLedger
from .collaborators import (
    CaregiverProfileProvider,
    LoggingNotificationBridge,
    NotificationBridge,
    SettingsCaregiverProfileProvider,
)
from .conflict_resolver import ConflictResolver, SlotResolution, parse_policy
from .schedule_templates import ScheduleTemplate, expand, get_template
from .slot_store import SlotStore

logger = logging.getLogger(__name__)

_TRANSITION_EVENTS = {
    BookingEvent.ACCEPT: BookingConfirmed,
    BookingEvent.DECLINE: BookingDeclined,
    BookingEvent.CANCEL: BookingCancelled,
    BookingEvent.START: BookingStarted,
    BookingEvent.COMPLETE: BookingCompleted,
}


@dataclass
class DayClearance:
    """Slots removed from, and left on, one day."""

    slot_date: date
    deleted: List[AvailabilitySlot] = field(default_factory=list)
    kept: List[AvailabilitySlot] = field(default_factory=list)


@dataclass
class TemplateApplication:
    """What applying a template to one week did."""

    template: ScheduleTemplate
    week_start: date
    resolutions: List[SlotResolution] = field(default_factory=list)

    def _with(self, outcome: ResolutionOutcome) -> List[AvailabilitySlot]:
        return [r.slot for r in self.resolutions if r.outcome is outcome]

    @property
    def created(self) -> List[AvailabilitySlot]:
        return self._with(ResolutionOutcome.CREATED)

    @property
    def replaced(self) -> List[AvailabilitySlot]:
        return self._with(ResolutionOutcome.REPLACED)

    @property
    def skipped(self) -> List[AvailabilitySlot]:
        return self._with(ResolutionOutcome.SKIPPED)


class SchedulingService(BaseService):
    """Slot management and booking lifecycle for caregivers and parents."""

    def __init__(
        self,
        db: Session,
        notification_bridge: Optional[NotificationBridge] = None,
        profile_provider: Optional[CaregiverProfileProvider] = None,
        event_publisher: Optional[EventPublisher] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize scheduling service.

        Args:
            db: Database session
            notification_bridge: Delivers notifications; defaults to logging them
            profile_provider: Source of caregiver default rates
            event_publisher: Optional publisher (overrides notification_bridge)
            clock: Caregiver-local "now"; defaults to ``datetime.now``
        """
        super().__init__(db, clock=clock)
        self.profile_provider = profile_provider or SettingsCaregiverProfileProvider()
        self.event_publisher = event_publisher or EventPublisher(
            notification_bridge or LoggingNotificationBridge()
        )
        self.slot_store = SlotStore(db, clock=clock)
        self.conflict_resolver = ConflictResolver(db, slot_store=self.slot_store, clock=clock)
        self.capacity_ledger = CapacityLedger(db, clock=clock)
        self.booking_lifecycle = BookingLifecycle(
            db, capacity_ledger=self.capacity_ledger, clock=clock
        )

    # Slots

    @BaseService.measure_operation("create_slot")
    def create_slot(
        self,
        caregiver_id: str,
        slot_date: date,
        start_time: TimeLike,
        end_time: TimeLike,
        total_capacity: Optional[int] = None,
        base_rate: Optional[RateLike] = None,
        is_recurring: bool = False,
        notes: Optional[str] = None,
        *,
        conflict_policy: Optional[ConflictPolicy],
    ) -> SlotResolution:
        """
        Create one availability slot.

        ``conflict_policy`` must always be passed; ``None`` means "fail with
        DuplicateSlotError if a slot already starts there".
        """
        capacity = settings.default_slot_capacity if total_capacity is None else total_capacity
        rate = self._default_rate(caregiver_id) if base_rate is None else base_rate

        resolution = self.run_in_transaction(
            "create_slot",
            lambda: self.conflict_resolver.resolve(
                caregiver_id,
                slot_date,
                start_time,
                end_time,
                capacity,
                rate,
                is_recurring=is_recurring,
                notes=notes,
                conflict_policy=conflict_policy,
            ),
        )
        self._publish(self._slot_events([resolution]))
        return resolution

    def list_slots(
        self, caregiver_id: str, start_date: date, end_date: date
    ) -> List[AvailabilitySlot]:
        return self.slot_store.get(caregiver_id, start_date, end_date)

    def get_slot(self, slot_id: str) -> AvailabilitySlot:
        return self.slot_store.get_by_id(slot_id)

    @BaseService.measure_operation("update_slot")
    def update_slot(
        self,
        slot_id: str,
        total_capacity: Optional[int] = None,
        base_rate: Optional[RateLike] = None,
        notes: Optional[str] = None,
    ) -> AvailabilitySlot:
        slot = self.slot_store.update_capacity_or_rate(
            slot_id, total_capacity=total_capacity, base_rate=base_rate, notes=notes
        )
        self._publish([SlotUpdated.from_slot(slot)])
        return slot

    @BaseService.measure_operation("delete_slot")
    def delete_slot(self, slot_id: str) -> None:
        slot = self.slot_store.delete(slot_id)
        self._publish([SlotDeleted.from_slot(slot)])

    @BaseService.measure_operation("clear_day")
    def delete_slots_for_day(self, caregiver_id: str, slot_date: date) -> DayClearance:
        """
        Delete all of a caregiver's unbooked slots on one day.

        Slots holding reservations are kept and reported back.
        """
        deleted, kept = self.slot_store.delete_for_day(caregiver_id, slot_date)
        self._publish([SlotDeleted.from_slot(slot) for slot in deleted])
        return DayClearance(slot_date=slot_date, deleted=deleted, kept=kept)

    @BaseService.measure_operation("apply_template")
    def apply_template(
        self,
        caregiver_id: str,
        template_name: str,
        week_start: date,
        capacity: Optional[int] = None,
        rate: Optional[RateLike] = None,
        days: Optional[Iterable[Union[DayOfWeek, str]]] = None,
        *,
        conflict_policy: Optional[ConflictPolicy],
    ) -> TemplateApplication:
        """
        Expand a weekly template and store every candidate in one transaction.

        Any failure (a duplicate with no policy, an occupied slot under
        REPLACE) rolls back the whole week.
        """
        template = get_template(template_name)
        capacity = settings.default_slot_capacity if capacity is None else capacity
        rate = self._default_rate(caregiver_id) if rate is None else rate
        candidates = expand(template, week_start, capacity, rate, days=days)
        policy = parse_policy(conflict_policy)

        def _apply() -> TemplateApplication:
            application = TemplateApplication(template=template, week_start=week_start)
            for candidate in candidates:
                application.resolutions.append(
                    self.conflict_resolver.resolve(
                        caregiver_id,
                        candidate.slot_date,
                        candidate.start_time,
                        candidate.end_time,
                        candidate.total_capacity,
                        candidate.base_rate,
                        is_recurring=candidate.is_recurring,
                        notes=candidate.notes,
                        conflict_policy=policy,
                    )
                )
            return application

        application = self.run_in_transaction("apply_template", _apply)
        self.log_operation(
            "template_applied",
            caregiver_id=caregiver_id,
            template=template.name,
            week_start=week_start.isoformat(),
            created=len(application.created),
            replaced=len(application.replaced),
            skipped=len(application.skipped),
        )
        self._publish(self._slot_events(application.resolutions))
        return application

    # Bookings

    @BaseService.measure_operation("request_booking")
    def request_booking(
        self,
        parent_id: str,
        caregiver_id: str,
        start_at: datetime,
        end_at: datetime,
        children_count: int = 1,
        special_requests: Optional[str] = None,
    ) -> Booking:
        """
        Reserve a place and create a PENDING booking, or change nothing.

        The request must fit inside one of the caregiver's slots on a single
        day. Matching slots are tried earliest start first.

        Raises:
            ValidationException: malformed window or children_count
            NotFoundException: no slot covers the window
            SlotFullError: every covering slot is full
        """
        start_at = start_at.replace(tzinfo=None)
        end_at = end_at.replace(tzinfo=None)
        self._validate_booking_request(start_at, end_at, children_count)

        def _request() -> Booking:
            slots = self.slot_store.find_covering(
                caregiver_id, start_at.date(), start_at.time(), end_at.time()
            )
            if not slots:
                raise NotFoundException(
                    "No availability covers the requested time",
                    code="NO_MATCHING_SLOT",
                    details={
                        "caregiver_id": caregiver_id,
                        "start_at": start_at.isoformat(),
                        "end_at": end_at.isoformat(),
                    },
                )

            booking_id = generate_ulid()
            for slot in slots:
                try:
                    reservation = self.capacity_ledger.reserve(slot.id, booking_id)
                except SlotFullError:
                    continue
                return self._create_booking(
                    booking_id,
                    slot,
                    reservation.id,
                    parent_id,
                    start_at,
                    end_at,
                    children_count,
                    special_requests,
                )

            raise SlotFullError(
                slots[0].id if len(slots) == 1 else None,
                details={"candidate_slot_ids": [slot.id for slot in slots]},
            )

        booking = self.run_in_transaction("request_booking", _request)
        self.log_operation(
            "booking_requested",
            booking_id=booking.id,
            caregiver_id=caregiver_id,
            slot_id=booking.slot_id,
        )
        self._publish(
            [
                BookingRequested.from_booking(
                    booking,
                    booking.requested_at,
                    children_count=booking.children_count,
                    total_amount=booking.total_amount,
                )
            ]
        )
        return booking

    @BaseService.measure_operation("transition_booking")
    def transition_booking(
        self, booking_id: str, event: BookingEvent, reason: Optional[str] = None
    ) -> Booking:
        result: TransitionResult = self.booking_lifecycle.transition(booking_id, event, reason)
        event_cls = _TRANSITION_EVENTS[result.event]
        extra = {"reason": reason} if event_cls in (BookingDeclined, BookingCancelled) else {}
        self._publish([event_cls.from_booking(result.booking, self.clock(), **extra)])
        return result.booking

    def get_booking(self, booking_id: str) -> Booking:
        return self.booking_lifecycle.get(booking_id)

    def list_bookings(
        self,
        caregiver_id: Optional[str] = None,
        parent_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: Optional[int] = None,
    ) -> List[Booking]:
        kwargs = {"limit": limit} if limit is not None else {}
        return self.booking_lifecycle.list_bookings(
            caregiver_id=caregiver_id, parent_id=parent_id, status=status, **kwargs
        )

    # Helpers

    def _default_rate(self, caregiver_id: str) -> Decimal:
        rate = self.profile_provider.get_caregiver_default_rate(caregiver_id)
        return settings.default_hourly_rate if rate is None else rate

    def _validate_booking_request(
        self, start_at: datetime, end_at: datetime, children_count: int
    ) -> None:
        if start_at >= end_at:
            raise ValidationException(
                "Start time must be before end time", code="INVALID_TIME_RANGE"
            )
        if end_at.date() != start_at.date():
            raise ValidationException(
                "A booking must start and end on the same day", code="INVALID_TIME_RANGE"
            )
        if isinstance(children_count, bool) or not isinstance(children_count, int) or children_count < 1:
            raise ValidationException(
                "children_count must be at least 1",
                code="INVALID_CHILDREN_COUNT",
                details={"children_count": children_count},
            )

    def _create_booking(
        self,
        booking_id: str,
        slot: AvailabilitySlot,
        reservation_id: str,
        parent_id: str,
        start_at: datetime,
        end_at: datetime,
        children_count: int,
        special_requests: Optional[str],
    ) -> Booking:
        hours = round_money(Decimal(int((end_at - start_at).total_seconds())) / Decimal(3600))
        hourly_rate = Decimal(slot.base_rate)
        return self.booking_lifecycle.create(
            id=booking_id,
            caregiver_id=slot.caregiver_id,
            parent_id=parent_id,
            slot_id=slot.id,
            reservation_id=reservation_id,
            start_at=start_at,
            end_at=end_at,
            children_count=children_count,
            hourly_rate=hourly_rate,
            total_hours=hours,
            total_amount=round_money(hourly_rate * hours),
            special_requests=special_requests,
            requested_at=self.clock(),
        )

    def _slot_events(self, resolutions: Iterable[SlotResolution]) -> List[SchedulingEvent]:
        events: List[SchedulingEvent] = []
        for resolution in resolutions:
            if resolution.outcome is ResolutionOutcome.CREATED:
                events.append(SlotCreated.from_slot(resolution.slot))
            elif resolution.outcome is ResolutionOutcome.REPLACED:
                events.append(
                    SlotReplaced.from_slot(
                        resolution.slot, replaced_slot_id=resolution.replaced_slot_id
                    )
                )
        return events

    def _publish(self, events: List[SchedulingEvent]) -> None:
        self.event_publisher.publish_all(events)
