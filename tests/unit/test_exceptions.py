"""Tests for domain exceptions and lock contention detection."""

from unittest.mock import Mock

from fastapi import HTTPException
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from carebook.core.exceptions import (
    CapacityInUseError,
    ConflictException,
    DuplicateSlotError,
    InvalidTransitionError,
    LockContentionException,
    NotFoundException,
    OccupiedSlotConflict,
    ServiceException,
    SlotFullError,
    ValidationException,
    is_lock_contention,
)


class TestHttpMapping:
    @pytest.mark.parametrize(
        "exc, status_code",
        [
            (ValidationException("bad"), 400),
            (NotFoundException("missing"), 404),
            (DuplicateSlotError("01HZZZZZZZZZZZZZZZZZZZZZZZ"), 409),
            (OccupiedSlotConflict("slot-1", 2), 409),
            (CapacityInUseError("slot-1", 2), 409),
            (SlotFullError("slot-1"), 409),
            (InvalidTransitionError("booking-1", "COMPLETED", "cancel"), 409),
            (ServiceException("db down"), 500),
        ],
    )
    def test_status_codes(self, exc, status_code):
        http_exc = exc.to_http_exception()
        assert isinstance(http_exc, HTTPException)
        assert http_exc.status_code == status_code
        assert http_exc.detail["code"] == exc.code

    def test_duplicate_carries_conflicting_slot(self):
        exc = DuplicateSlotError("slot-7")
        assert isinstance(exc, ConflictException)
        assert exc.conflicting_slot_id == "slot-7"
        assert exc.to_http_exception().detail["details"]["conflicting_slot_id"] == "slot-7"

    def test_invalid_transition_details(self):
        exc = InvalidTransitionError("booking-1", "PENDING", "start", reason="too early")
        assert exc.current_status == "PENDING"
        assert exc.event == "start"
        assert "too early" in exc.message
        assert exc.details == {"booking_id": "booking-1", "current_status": "PENDING", "event": "start"}

    def test_capacity_message_mentions_requested_capacity(self):
        exc = CapacityInUseError("slot-1", 3, requested_capacity=2)
        assert exc.details["requested_capacity"] == 2
        assert "lowered to 2" in exc.message

    def test_default_code_is_class_name(self):
        assert ValidationException("bad").code == "ValidationException"


class TestLockContention:
    def _operational(self, message: str, pgcode=None) -> OperationalError:
        orig = Exception(message)
        orig.pgcode = pgcode
        return OperationalError("UPDATE availability_slots", {}, orig)

    def test_sqlite_busy_is_contention(self):
        assert is_lock_contention(self._operational("database is locked"))

    @pytest.mark.parametrize("pgcode", ["40P01", "40001", "55P03"])
    def test_postgres_lock_codes(self, pgcode):
        assert is_lock_contention(self._operational("could not serialize", pgcode=pgcode))

    def test_other_operational_errors_are_not_contention(self):
        assert not is_lock_contention(self._operational("no such table: bookings"))

    def test_integrity_error_is_not_contention(self):
        assert not is_lock_contention(IntegrityError("INSERT", {}, Mock()))

    def test_wrapped_contention(self):
        assert is_lock_contention(LockContentionException("busy"))
