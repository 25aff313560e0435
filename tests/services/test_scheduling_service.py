"""Tests for SchedulingService orchestration and event publishing."""

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from carebook.core.enums import BookingEvent, BookingStatus, ConflictPolicy, ResolutionOutcome
from carebook.core.exceptions import (
    DuplicateSlotError,
    NotFoundException,
    OccupiedSlotConflict,
    SlotFullError,
    ValidationException,
)
from carebook.events import EventPublisher
from carebook.services.collaborators import SettingsCaregiverProfileProvider
from carebook.services.scheduling_service import SchedulingService

from tests.helpers import WEEK_START, FailingBridge

NEXT_WEEK = WEEK_START + timedelta(days=7)


class TestSlots:
    def test_create_then_list_round_trip(self, scheduling_service):
        resolution = scheduling_service.create_slot(
            "caregiver-1",
            WEEK_START,
            time(9),
            time(17),
            3,
            Decimal("25"),
            notes="Garden available",
            conflict_policy=None,
        )

        assert resolution.outcome is ResolutionOutcome.CREATED
        [listed] = scheduling_service.list_slots("caregiver-1", WEEK_START, NEXT_WEEK)
        assert listed.id == resolution.slot.id
        assert (listed.start_time, listed.end_time) == (time(9), time(17))
        assert listed.total_capacity == 3
        assert listed.available_spots == 3
        assert listed.base_rate == Decimal("25.00")
        assert listed.notes == "Garden available"

    def test_defaults_come_from_profile_and_settings(self, db, clock, bridge):
        service = SchedulingService(
            db,
            profile_provider=SettingsCaregiverProfileProvider({"caregiver-1": Decimal("31.50")}),
            event_publisher=EventPublisher(bridge),
            clock=clock,
        )
        slot = service.create_slot("caregiver-1", WEEK_START, time(9), time(12), conflict_policy=None).slot

        assert slot.base_rate == Decimal("31.50")
        assert slot.total_capacity == 3

    def test_provider_without_rate_falls_back_to_settings(self, db, clock):
        class NoRates:
            def get_caregiver_default_rate(self, caregiver_id):
                return None

        service = SchedulingService(db, profile_provider=NoRates(), clock=clock)
        slot = service.create_slot("caregiver-1", WEEK_START, time(9), time(12), conflict_policy=None).slot
        assert slot.base_rate == Decimal("25.00")

    def test_slot_events(self, scheduling_service, make_slot, bridge):
        original = make_slot()
        make_slot(end=time(12), conflict_policy=ConflictPolicy.SKIP)
        replacement = make_slot(end=time(12), conflict_policy=ConflictPolicy.REPLACE)
        scheduling_service.update_slot(replacement.id, base_rate=Decimal("30"))
        scheduling_service.delete_slot(replacement.id)

        assert bridge.events == ["slot.created", "slot.replaced", "slot.updated", "slot.deleted"]
        assert {recipient for _, recipient, _ in bridge.calls} == {"caregiver-1"}
        replaced_payload = bridge.calls[1][2]
        assert replaced_payload["replaced_slot_id"] == original.id
        assert replaced_payload["slot_id"] == replacement.id

    def test_failed_operation_publishes_nothing(self, scheduling_service, make_slot, bridge):
        make_slot()
        bridge.calls.clear()

        with pytest.raises(DuplicateSlotError):
            make_slot()
        assert bridge.calls == []

    def test_get_missing_slot(self, scheduling_service):
        with pytest.raises(NotFoundException):
            scheduling_service.get_slot("01HZZZZZZZZZZZZZZZZZZZZZZZ")

    def test_delete_slots_for_day(self, scheduling_service, make_slot, bridge):
        morning = make_slot(start=time(8), end=time(12), capacity=1)
        afternoon = make_slot(start=time(13), end=time(17))
        tuesday = make_slot(slot_date=WEEK_START + timedelta(days=1))
        scheduling_service.request_booking(
            "parent-1", "caregiver-1", datetime(2030, 6, 3, 9), datetime(2030, 6, 3, 11)
        )
        bridge.calls.clear()

        clearance = scheduling_service.delete_slots_for_day("caregiver-1", WEEK_START)

        assert clearance.slot_date == WEEK_START
        assert [s.id for s in clearance.deleted] == [afternoon.id]
        assert [s.id for s in clearance.kept] == [morning.id]
        assert bridge.events == ["slot.deleted"]
        assert bridge.calls[0][2]["slot_id"] == afternoon.id
        remaining = scheduling_service.list_slots("caregiver-1", WEEK_START, NEXT_WEEK)
        assert [s.id for s in remaining] == [morning.id, tuesday.id]


class TestApplyTemplate:
    def test_creates_a_week(self, scheduling_service, bridge):
        application = scheduling_service.apply_template(
            "caregiver-1", "Traditional Work Week", WEEK_START, 2, Decimal("22"), conflict_policy=None
        )

        assert len(application.created) == 5
        slots = scheduling_service.list_slots("caregiver-1", WEEK_START, NEXT_WEEK)
        assert [s.slot_date.weekday() for s in slots] == [0, 1, 2, 3, 4]
        assert all(s.is_recurring and s.total_capacity == 2 for s in slots)
        assert bridge.events == ["slot.created"] * 5

    def test_day_filter(self, scheduling_service):
        application = scheduling_service.apply_template(
            "caregiver-1", "Full Day", WEEK_START, days=["saturday", "Sunday"], conflict_policy=None
        )
        assert [s.slot_date for s in application.created] == [
            WEEK_START + timedelta(days=5),
            WEEK_START + timedelta(days=6),
        ]

    def test_duplicate_without_policy_rolls_back_the_week(self, scheduling_service, make_slot, bridge):
        existing = make_slot(slot_date=WEEK_START + timedelta(days=2))
        bridge.calls.clear()

        with pytest.raises(DuplicateSlotError) as exc_info:
            scheduling_service.apply_template(
                "caregiver-1", "Traditional Work Week", WEEK_START, conflict_policy=None
            )
        assert exc_info.value.conflicting_slot_id == existing.id

        slots = scheduling_service.list_slots("caregiver-1", WEEK_START, NEXT_WEEK)
        assert [s.id for s in slots] == [existing.id]
        assert bridge.calls == []

    def test_skip_keeps_existing(self, scheduling_service, make_slot):
        existing = make_slot(end=time(12))

        application = scheduling_service.apply_template(
            "caregiver-1", "Traditional Work Week", WEEK_START, conflict_policy=ConflictPolicy.SKIP
        )
        assert [s.id for s in application.skipped] == [existing.id]
        assert len(application.created) == 4
        assert scheduling_service.get_slot(existing.id).end_time == time(12)

    def test_replace_blocked_by_occupied_slot_rolls_back(self, scheduling_service, make_slot):
        occupied = make_slot(slot_date=WEEK_START + timedelta(days=4), end=time(12))
        scheduling_service.request_booking(
            "parent-1", "caregiver-1", datetime(2030, 6, 7, 9), datetime(2030, 6, 7, 10)
        )

        with pytest.raises(OccupiedSlotConflict):
            scheduling_service.apply_template(
                "caregiver-1", "Traditional Work Week", WEEK_START, conflict_policy=ConflictPolicy.REPLACE
            )

        slots = scheduling_service.list_slots("caregiver-1", WEEK_START, NEXT_WEEK)
        assert [s.id for s in slots] == [occupied.id]

    def test_rejects_non_monday(self, scheduling_service):
        with pytest.raises(ValidationException):
            scheduling_service.apply_template(
                "caregiver-1", "Traditional Work Week", WEEK_START + timedelta(days=1), conflict_policy=None
            )

    def test_unknown_template(self, scheduling_service):
        with pytest.raises(NotFoundException):
            scheduling_service.apply_template("caregiver-1", "Night Shift", WEEK_START, conflict_policy=None)


class TestRequestBooking:
    def test_booking_amount_uses_slot_rate(self, scheduling_service, make_slot, bridge):
        slot = make_slot(rate="18.75")

        booking = scheduling_service.request_booking(
            "parent-1",
            "caregiver-1",
            datetime(2030, 6, 3, 9, 10),
            datetime(2030, 6, 3, 11, 30),
            children_count=2,
            special_requests="Nut allergy",
        )

        assert booking.status == BookingStatus.PENDING.value
        assert booking.slot_id == slot.id
        assert booking.reservation_id
        assert booking.hourly_rate == Decimal("18.75")
        # 2h20m = 2.33h
        assert booking.total_hours == Decimal("2.33")
        assert booking.total_amount == Decimal("43.69")
        assert booking.special_requests == "Nut allergy"
        assert scheduling_service.get_slot(slot.id).available_spots == 2

        assert bridge.events[-1] == "booking.requested"
        event, recipient, payload = bridge.calls[-1]
        assert recipient == "caregiver-1"
        assert payload["children_count"] == 2

    def test_rate_change_does_not_touch_existing_booking(self, scheduling_service, make_slot):
        slot = make_slot(rate="20")
        booking = scheduling_service.request_booking(
            "parent-1", "caregiver-1", datetime(2030, 6, 3, 10), datetime(2030, 6, 3, 11)
        )
        scheduling_service.update_slot(slot.id, base_rate=Decimal("40"))

        assert scheduling_service.get_booking(booking.id).total_amount == Decimal("20.00")

    def test_timezone_is_dropped(self, scheduling_service, make_slot):
        make_slot()
        booking = scheduling_service.request_booking(
            "parent-1",
            "caregiver-1",
            datetime(2030, 6, 3, 10, tzinfo=timezone.utc),
            datetime(2030, 6, 3, 11, tzinfo=timezone.utc),
        )
        assert booking.start_at == datetime(2030, 6, 3, 10)

    def test_falls_through_to_next_covering_slot(self, scheduling_service, make_slot):
        morning = make_slot(start=time(8), end=time(12), capacity=1)
        wide = make_slot(start=time(9), end=time(17), capacity=1)
        window = (datetime(2030, 6, 3, 10), datetime(2030, 6, 3, 11))

        first = scheduling_service.request_booking("parent-1", "caregiver-1", *window)
        second = scheduling_service.request_booking("parent-2", "caregiver-1", *window)
        assert (first.slot_id, second.slot_id) == (morning.id, wide.id)

        with pytest.raises(SlotFullError) as exc_info:
            scheduling_service.request_booking("parent-3", "caregiver-1", *window)
        assert exc_info.value.slot_id is None
        assert exc_info.value.details["candidate_slot_ids"] == [morning.id, wide.id]

    def test_no_covering_slot(self, scheduling_service, make_slot):
        make_slot(start=time(9), end=time(12))
        with pytest.raises(NotFoundException) as exc_info:
            scheduling_service.request_booking(
                "parent-1", "caregiver-1", datetime(2030, 6, 3, 11), datetime(2030, 6, 3, 13)
            )
        assert exc_info.value.code == "NO_MATCHING_SLOT"

    @pytest.mark.parametrize(
        "start, end, children",
        [
            (datetime(2030, 6, 3, 12), datetime(2030, 6, 3, 10), 1),
            (datetime(2030, 6, 3, 22), datetime(2030, 6, 4, 2), 1),
            (datetime(2030, 6, 3, 10), datetime(2030, 6, 3, 11), 0),
        ],
    )
    def test_invalid_requests(self, scheduling_service, make_slot, start, end, children):
        make_slot()
        with pytest.raises(ValidationException):
            scheduling_service.request_booking("parent-1", "caregiver-1", start, end, children)

    def test_failed_request_changes_nothing(self, scheduling_service, make_slot):
        slot = make_slot(capacity=1)
        scheduling_service.request_booking(
            "parent-1", "caregiver-1", datetime(2030, 6, 3, 10), datetime(2030, 6, 3, 11)
        )
        with pytest.raises(SlotFullError):
            scheduling_service.request_booking(
                "parent-2", "caregiver-1", datetime(2030, 6, 3, 10), datetime(2030, 6, 3, 11)
            )

        assert scheduling_service.get_slot(slot.id).current_occupancy == 1
        assert len(scheduling_service.list_bookings(caregiver_id="caregiver-1")) == 1


class TestTransitions:
    def test_events_go_to_parent(self, scheduling_service, make_slot, bridge, clock):
        make_slot()
        booking = scheduling_service.request_booking(
            "parent-1", "caregiver-1", datetime(2030, 6, 3, 10), datetime(2030, 6, 3, 11)
        )
        scheduling_service.transition_booking(booking.id, BookingEvent.ACCEPT)
        scheduling_service.transition_booking(booking.id, BookingEvent.CANCEL, reason="Sick")

        assert bridge.events[-2:] == ["booking.confirmed", "booking.cancelled"]
        _, recipient, payload = bridge.calls[-1]
        assert recipient == "parent-1"
        assert payload["reason"] == "Sick"
        assert payload["status"] == "CANCELLED"

    def test_bridge_failure_does_not_undo_state(self, db, clock, make_slot):
        failing = FailingBridge()
        service = SchedulingService(db, notification_bridge=failing, clock=clock)
        slot = make_slot()

        booking = service.request_booking(
            "parent-1", "caregiver-1", datetime(2030, 6, 3, 10), datetime(2030, 6, 3, 11)
        )
        confirmed = service.transition_booking(booking.id, BookingEvent.ACCEPT)

        assert failing.attempts == 2
        assert confirmed.status == BookingStatus.CONFIRMED.value
        assert service.get_slot(slot.id).current_occupancy == 1

    def test_listener_failure_is_contained(self, db, clock, make_slot, bridge):
        publisher = EventPublisher(bridge)
        seen = []

        def broken(event):
            raise RuntimeError("listener bug")

        publisher.register(broken)
        publisher.register(seen.append)
        service = SchedulingService(db, event_publisher=publisher, clock=clock)
        make_slot()

        service.request_booking(
            "parent-1", "caregiver-1", datetime(2030, 6, 3, 10), datetime(2030, 6, 3, 11)
        )
        assert [e.event_type for e in seen] == ["booking.requested"]
        assert bridge.events[-1] == "booking.requested"
